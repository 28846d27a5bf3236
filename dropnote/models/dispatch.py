"""Pipeline-internal and subscriber-facing event models.

``Source`` and ``Classification`` are produced by the classifier,
``DecodedPayload`` by the parsers.  ``TxObserved``, ``NoteEvent`` and
``AnnounceEvent`` are the payloads published on the indexer's event hub.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from dropnote.models.ledger import CandidateTransaction, NetworkConfig
from dropnote.models.notes import Announcement, Note, NoteIndex


class Source(str, Enum):  # noqa: UP042
    """Which convention a transaction's dropnote was found in."""

    MEMO = "memo"
    EVENTS = "events"


class TxDecision(str, Enum):  # noqa: UP042
    """Return value of a ``tx`` listener.  ``STOP`` cancels processing."""

    CONTINUE = "continue"
    STOP = "stop"


class Classification(BaseModel):
    """Outcome of classifying a candidate transaction.

    ``subtype`` is only known up front for the memo convention; event
    subtypes are read per event during parsing.
    """

    model_config = ConfigDict(frozen=True)

    source: Source
    subtype: str | None = None


class DecodedPayload(BaseModel):
    """Subtype plus ordered fields extracted by a parser."""

    model_config = ConfigDict(frozen=True)

    subtype: str
    source: Source
    index: NoteIndex
    sender: str
    fields: dict[str, str] = Field(default_factory=dict)
    encrypted: bool = False


class TxObserved(BaseModel):
    """Published before parsing every classified transaction."""

    model_config = ConfigDict(frozen=True)

    network: NetworkConfig
    tx: CandidateTransaction
    source: Source


class NoteEvent(BaseModel):
    """Published once per decoded note.  ``members`` is sorted."""

    model_config = ConfigDict(frozen=True)

    network: NetworkConfig
    note: Note
    members: list[str]


class AnnounceEvent(BaseModel):
    """Published once per decoded announcement."""

    model_config = ConfigDict(frozen=True)

    network: NetworkConfig
    announcement: Announcement
