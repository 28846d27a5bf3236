"""Dropnote domain models: re-exports all public model classes.

The models are organized across three submodules by concern:
    - ledger.py   : Networks, transactions, execution results, blocks
    - notes.py    : Decoded notes and announcements
    - dispatch.py : Classification, decoded payloads, published events
"""

from __future__ import annotations

from dropnote.models.dispatch import (
    AnnounceEvent,
    Classification,
    DecodedPayload,
    NoteEvent,
    Source,
    TxDecision,
    TxObserved,
)
from dropnote.models.ledger import (
    Block,
    CandidateTransaction,
    EventAttribute,
    LedgerEvent,
    NetworkConfig,
    Transaction,
    TxResult,
)
from dropnote.models.notes import Announcement, Note, NoteIndex

__all__ = [
    # ledger
    "Block",
    "CandidateTransaction",
    "EventAttribute",
    "LedgerEvent",
    "NetworkConfig",
    "Transaction",
    "TxResult",
    # notes
    "Announcement",
    "Note",
    "NoteIndex",
    # dispatch
    "AnnounceEvent",
    "Classification",
    "DecodedPayload",
    "NoteEvent",
    "Source",
    "TxDecision",
    "TxObserved",
]
