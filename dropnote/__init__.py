"""Dropnote indexer: finds and decodes notes embedded in ledger transactions."""

from dropnote.models import (
    AnnounceEvent,
    Announcement,
    NetworkConfig,
    Note,
    NoteEvent,
    Source,
    TxDecision,
    TxObserved,
)
from dropnote.pipeline import DropnoteIndexer, HandlerContext, HandlerRegistry, IndexerEvents

__version__ = "0.1.0"

__all__ = [
    "AnnounceEvent",
    "Announcement",
    "DropnoteIndexer",
    "HandlerContext",
    "HandlerRegistry",
    "IndexerEvents",
    "NetworkConfig",
    "Note",
    "NoteEvent",
    "Source",
    "TxDecision",
    "TxObserved",
]
