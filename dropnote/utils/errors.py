"""Custom exception hierarchy for the Dropnote indexer.

All application exceptions inherit from :class:`DropnoteError`, which
carries an optional ``provider_name`` so error handlers can identify which
external collaborator (e.g. "cosmos_rest", "sqlite_checkpoint") caused the
failure.

The hierarchy is organized by pipeline stage:

    DropnoteError  (base -- catch-all for any dropnote error)
    +-- ConfigurationError          (startup / missing config)
    +-- EncryptionUnsupportedError  (payload flagged as encrypted)
    +-- PayloadFormatError          (grammar / attribute violations)
    +-- IndexingError               (scoped failure, tagged with ErrorKind)
        +-- TransportError          (ledger client or checkpoint store)
        +-- MemoParseError          (memo convention decode failure)
        +-- EventParseError         (event convention decode failure)
        +-- HandlerError            (registered handler raised)

Parsers raise the unscoped ``PayloadFormatError`` /
``EncryptionUnsupportedError``; the indexer wraps them into the scoped
``IndexingError`` subclasses before publishing them on the error stream.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):  # noqa: UP042
    """Discriminator for :class:`IndexingError` variants."""

    TRANSPORT = "transport"
    MEMO_PARSE = "memo-parse"
    EVENT_PARSE = "event-parse"
    HANDLER = "handler"


class DropnoteError(Exception):
    """Base exception for all Dropnote errors.

    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[cosmos_rest] Block query failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Startup errors
# ---------------------------------------------------------------------------

class ConfigurationError(DropnoteError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Payload decode errors (unscoped)
# ---------------------------------------------------------------------------

class PayloadFormatError(DropnoteError):
    """Raised by a parser when a payload violates its grammar."""

    def __init__(self, message: str = "Malformed dropnote payload") -> None:
        super().__init__(message=message)


class EncryptionUnsupportedError(DropnoteError):
    """Raised when a payload is flagged as encrypted.

    Decryption is not implemented; encrypted payloads are never decoded
    as plaintext.
    """

    def __init__(self, message: str = "Encrypted dropnotes are not supported") -> None:
        super().__init__(message=message)


# ---------------------------------------------------------------------------
# Scoped indexing errors (published on the indexer's error stream)
# ---------------------------------------------------------------------------

class IndexingError(DropnoteError):
    """A failure scoped to a network and, where known, a transaction.

    Attributes
    ----------
    kind:
        Which stage failed (see :class:`ErrorKind`).
    network:
        Name of the network being indexed.
    txhash:
        Hash of the originating transaction, if any.
    event_index:
        Index of the originating event within the transaction (event source only).
    memo:
        Raw memo text (memo source only).
    cause:
        The underlying exception.
    """

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        network: str | None = None,
        txhash: str | None = None,
        event_index: int | None = None,
        memo: str | None = None,
        cause: BaseException | None = None,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self.network = network
        self.txhash = txhash
        self.event_index = event_index
        self.memo = memo
        self.cause = cause

    @property
    def is_encryption_unsupported(self) -> bool:
        return isinstance(self.cause, EncryptionUnsupportedError)


class TransportError(IndexingError):
    """Raised when the ledger client or checkpoint store fails."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str = "Ledger transport failed", **kwargs) -> None:  # noqa: ANN003
        super().__init__(message, **kwargs)


class MemoParseError(IndexingError):
    """A memo-convention payload could not be decoded."""

    kind = ErrorKind.MEMO_PARSE

    def __init__(self, message: str = "Failed to parse dropnote memo", **kwargs) -> None:  # noqa: ANN003
        super().__init__(message, **kwargs)


class EventParseError(IndexingError):
    """An event-convention payload could not be decoded."""

    kind = ErrorKind.EVENT_PARSE

    def __init__(self, message: str = "Failed to parse dropnote event", **kwargs) -> None:  # noqa: ANN003
        super().__init__(message, **kwargs)


class HandlerError(IndexingError):
    """A registered subtype handler raised while processing a payload."""

    kind = ErrorKind.HANDLER

    def __init__(self, message: str = "Dropnote handler failed", **kwargs) -> None:  # noqa: ANN003
        super().__init__(message, **kwargs)
