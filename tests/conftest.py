"""Shared pytest fixtures for the dropnote test suite."""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from dropnote.interfaces.ledger_client import BlockCallback, ILedgerClient, Unsubscribe
from dropnote.models.ledger import (
    Block,
    CandidateTransaction,
    EventAttribute,
    LedgerEvent,
    NetworkConfig,
    Transaction,
    TxResult,
)
from dropnote.providers.checkpoint.memory_store import MemoryCheckpointStore

SENDER = "cosmos1xyzsender0000000000000000000000000000"
RECIPIENT = "cosmos1abcrecipient000000000000000000000000"
WATCHED = "cosmos1watched00000000000000000000000000000"
CONTRACT = "cosmos1contract0000000000000000000000000000"
GENESIS_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

# Marker placed in a fake page to simulate an undecodable transaction.
MALFORMED = "malformed-tx"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_event(event_type: str, **attrs: str) -> LedgerEvent:
    return LedgerEvent(
        type=event_type,
        attributes=[EventAttribute(key=k, value=v) for k, v in attrs.items()],
    )


def message_event(sender: str = SENDER) -> LedgerEvent:
    """The bank module's ``message`` event carrying the tx sender."""
    return make_event("message", action="/cosmos.bank.v1beta1.MsgSend", sender=sender)


def make_candidate(
    memo: str = "",
    events: list[LedgerEvent] | None = None,
    code: int = 0,
    height: int = 100,
    txhash: str | None = "ABC123",
) -> CandidateTransaction:
    if events is None:
        events = [message_event()]
    return CandidateTransaction(
        tx=Transaction(memo=memo),
        result=TxResult(code=code, txhash=txhash, height=height, events=events),
    )


def block_time(height: int) -> datetime:
    return GENESIS_TIME + timedelta(seconds=3 * height)


# ---------------------------------------------------------------------------
# Fake ledger client
# ---------------------------------------------------------------------------


class FakeLedgerClient(ILedgerClient):
    """In-memory ledger: transactions per recipient, manual block pushes."""

    def __init__(self, tip: int = 1000, page_size: int = 2) -> None:
        self.tip = tip
        self.page_size = page_size
        self.txs: dict[str, list[Any]] = {}
        self.search_calls: list[tuple[str, int, int]] = []
        self.block_at_calls: list[int] = []
        self.subscribe_from: list[int | None] = []
        self._subscribers: list[BlockCallback] = []

    def add_tx(self, recipient: str, candidate: Any) -> None:
        self.txs.setdefault(recipient, []).append(candidate)

    async def current_block(self, network: NetworkConfig) -> Block:
        return Block(height=self.tip, time=block_time(self.tip))

    async def block_at(self, network: NetworkConfig, height: int) -> Block:
        self.block_at_calls.append(height)
        return Block(height=height, time=block_time(height))

    async def search_transactions(
        self,
        network: NetworkConfig,
        recipient: str,
        from_height: int,
        to_height: int,
    ) -> AsyncIterator[list[Any]]:
        self.search_calls.append((recipient, from_height, to_height))
        matches = [
            item
            for item in self.txs.get(recipient, [])
            if not isinstance(item, CandidateTransaction)
            or from_height <= item.height <= to_height
        ]
        for start in range(0, len(matches), self.page_size):
            yield matches[start:start + self.page_size]

    def subscribe_to_blocks(
        self,
        network: NetworkConfig,
        on_block: BlockCallback,
        from_height: int | None = None,
    ) -> Unsubscribe:
        self.subscribe_from.append(from_height)
        self._subscribers.append(on_block)

        def _unsubscribe() -> None:
            if on_block in self._subscribers:
                self._subscribers.remove(on_block)

        return _unsubscribe

    def decode_transaction(self, raw: Any) -> CandidateTransaction | None:
        return raw if isinstance(raw, CandidateTransaction) else None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def push_block(self, height: int) -> None:
        """Deliver a new block to every subscriber, in subscription order."""
        self.tip = height
        block = Block(height=height, time=block_time(height))
        for callback in list(self._subscribers):
            await callback(block)


class Recorder:
    """Collects everything an indexer publishes."""

    def __init__(self) -> None:
        self.txs: list[Any] = []
        self.notes: list[Any] = []
        self.announcements: list[Any] = []
        self.errors: list[Any] = []

    def attach(self, indexer: Any) -> Recorder:
        indexer.on_tx(self.txs.append)
        indexer.on_note(self.notes.append)
        indexer.on_announce(self.announcements.append)
        indexer.on_error(self.errors.append)
        return self


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def network() -> NetworkConfig:
    return NetworkConfig(
        name="cosmoshub",
        address_prefix="cosmos",
        rest_url="https://rest.example.test",
        default_address=WATCHED,
    )


@pytest.fixture
def ledger() -> FakeLedgerClient:
    return FakeLedgerClient()


@pytest.fixture
def store() -> MemoryCheckpointStore:
    return MemoryCheckpointStore()
