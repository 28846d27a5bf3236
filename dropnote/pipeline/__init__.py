"""Pipeline components for the dropnote indexer."""

from dropnote.pipeline.classifier import classify
from dropnote.pipeline.event_extractor import parse_event
from dropnote.pipeline.event_hub import IndexerEvents
from dropnote.pipeline.handlers import HandlerContext, HandlerRegistry
from dropnote.pipeline.height_window import DEFAULT_LOOKBACK_BLOCKS, HeightWindow, resolve_window
from dropnote.pipeline.indexer import DropnoteIndexer
from dropnote.pipeline.memo_parser import parse_memo

__all__ = [
    "DEFAULT_LOOKBACK_BLOCKS",
    "DropnoteIndexer",
    "HandlerContext",
    "HandlerRegistry",
    "HeightWindow",
    "IndexerEvents",
    "classify",
    "parse_event",
    "parse_memo",
    "resolve_window",
]
