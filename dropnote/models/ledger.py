"""Ledger-facing data shapes consumed by the indexer.

These models describe what the ledger client hands to the pipeline: the
network being indexed, decoded transactions together with their execution
result, and block headers.  They are constructed per observation and never
persisted by the indexer itself.

All models are frozen Pydantic v2 models.  ``LedgerEvent`` offers the small
attribute-lookup helpers the parsers rely on, so callers never walk the raw
``attributes`` list themselves.
"""

from __future__ import annotations

import hashlib
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class NetworkConfig(BaseModel):
    """An opaque handle identifying one chain.

    The indexer only reads ``name`` (checkpoint keys, note chain names) and
    ``address_prefix`` (watch-address filtering).  The remaining fields are
    consumed by concrete ledger clients.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    address_prefix: str
    rest_url: str = ""
    # Address watched when the caller supplies none.
    default_address: str | None = None


class EventAttribute(BaseModel):
    """A single ``key``/``value`` pair on an emitted event."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: str = ""


class LedgerEvent(BaseModel):
    """An event emitted while executing a transaction."""

    model_config = ConfigDict(frozen=True)

    type: str
    attributes: list[EventAttribute] = Field(default_factory=list)

    def attrs(self, key: str | None = None) -> list[EventAttribute]:
        """Return all attributes, or only those named *key*."""
        if key is None:
            return list(self.attributes)
        return [a for a in self.attributes if a.key == key]

    def attr(self, key: str, index: int = 0) -> str | None:
        """Return the value of the *index*-th attribute named *key*, if any."""
        matches = self.attrs(key)
        if index < len(matches):
            return matches[index].value
        return None


class TxResult(BaseModel):
    """Execution result of a transaction.

    A non-zero ``code`` is a ledger-level failure; such transactions are
    never inspected further.
    """

    model_config = ConfigDict(frozen=True)

    code: int = 0
    txhash: str | None = None
    height: int
    events: list[LedgerEvent] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.code


class Transaction(BaseModel):
    """The decoded parts of a transaction the indexer cares about."""

    model_config = ConfigDict(frozen=True)

    memo: str = ""
    # Raw encoded transaction bytes, used to derive the hash when the
    # execution result does not carry one.
    raw: bytes | None = None
    body: dict = Field(default_factory=dict)


class CandidateTransaction(BaseModel):
    """A decoded transaction plus its execution result."""

    model_config = ConfigDict(frozen=True)

    tx: Transaction
    result: TxResult

    @property
    def height(self) -> int:
        return self.result.height

    @property
    def txhash(self) -> str:
        if self.result.txhash:
            return self.result.txhash
        if self.tx.raw:
            return hashlib.sha256(self.tx.raw).hexdigest().upper()
        return ""


class Block(BaseModel):
    """Header fields of a block."""

    model_config = ConfigDict(frozen=True)

    height: int
    time: datetime
