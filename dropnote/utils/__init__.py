"""Utility modules for the Dropnote indexer.

- **errors** -- Domain exception hierarchy rooted at DropnoteError, with
  scoped ``IndexingError`` variants tagged by :class:`ErrorKind`.
- **concurrency** -- asyncio semaphore throttling for per-page fan-out.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

# -- Domain exception hierarchy --------------------------------------------
from dropnote.utils.errors import (
    ConfigurationError,
    DropnoteError,
    EncryptionUnsupportedError,
    ErrorKind,
    EventParseError,
    HandlerError,
    IndexingError,
    MemoParseError,
    PayloadFormatError,
    TransportError,
)

# -- Async concurrency helpers ---------------------------------------------
from dropnote.utils.concurrency import throttled_gather

# -- Structured logging setup ----------------------------------------------
from dropnote.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "DropnoteError",
    "EncryptionUnsupportedError",
    "ErrorKind",
    "EventParseError",
    "HandlerError",
    "IndexingError",
    "MemoParseError",
    "PayloadFormatError",
    "TransportError",
    "configure_logging",
    "get_logger",
    "throttled_gather",
]
