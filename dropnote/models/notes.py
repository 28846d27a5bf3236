"""Decoded domain records: notes and announcements.

Both are produced at most once per successfully parsed payload occurrence
and handed to subscribers; the indexer itself never stores them.  The
``index`` field records where in the transaction the payload was found:
the literal ``"memo"`` or the position of the emitting event.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

NoteIndex = Union[Literal["memo"], int]


class Note(BaseModel):
    """A sender-to-recipient message extracted from a transaction."""

    model_config = ConfigDict(frozen=True)

    txhash: str
    chain: str
    index: NoteIndex
    timestamp: datetime
    sender: str = Field(min_length=1)
    message: str = Field(min_length=1)
    encrypted: bool = False


class Announcement(BaseModel):
    """A broadcast message with no recipient."""

    model_config = ConfigDict(frozen=True)

    txhash: str
    chain: str
    index: NoteIndex
    sender: str = Field(min_length=1)
    message: str = Field(min_length=1)
    timestamp: datetime
    encrypted: bool = False
