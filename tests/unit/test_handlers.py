"""Unit tests for HandlerRegistry and the built-in handlers."""

from __future__ import annotations

import pytest

from dropnote.models.dispatch import DecodedPayload, Source
from dropnote.pipeline.event_hub import IndexerEvents
from dropnote.pipeline.handlers import (
    HandlerContext,
    HandlerRegistry,
    handle_announce,
    handle_message,
)
from tests.conftest import RECIPIENT, SENDER, FakeLedgerClient, block_time, make_candidate


async def _noop(payload, ctx) -> None:  # noqa: ANN001
    return None


# ======================================================================
# HandlerRegistry
# ======================================================================


class TestHandlerRegistry:
    def test_builtin_handlers_cover_both_sources(self) -> None:
        registry = HandlerRegistry.with_builtin_handlers()
        for source in Source:
            assert registry.subtypes(source) == ["announce", "message"]
            assert registry.lookup(source, "message") is handle_message
            assert registry.lookup(source, "announce") is handle_announce

    def test_empty_registry(self) -> None:
        registry = HandlerRegistry()
        assert registry.lookup(Source.MEMO, "message") is None
        assert registry.subtypes(Source.EVENTS) == []

    def test_reregistration_replaces_handler(self) -> None:
        registry = HandlerRegistry.with_builtin_handlers()
        registry.register_memo("message", _noop)
        assert registry.lookup(Source.MEMO, "message") is _noop
        # The event table is independent.
        assert registry.lookup(Source.EVENTS, "message") is handle_message

    def test_memo_subtypes_are_case_insensitive(self) -> None:
        registry = HandlerRegistry()
        registry.register_memo("Reaction", _noop)
        assert registry.lookup(Source.MEMO, "reaction") is _noop
        assert registry.lookup(Source.MEMO, "REACTION") is _noop

    def test_event_subtypes_are_exact(self) -> None:
        registry = HandlerRegistry()
        registry.register_event("Reaction", _noop)
        assert registry.lookup(Source.EVENTS, "Reaction") is _noop
        assert registry.lookup(Source.EVENTS, "reaction") is None


# ======================================================================
# Built-in handlers
# ======================================================================


class TestBuiltinHandlers:
    @pytest.fixture()
    def hub(self) -> IndexerEvents:
        return IndexerEvents()

    def _ctx(self, network, hub: IndexerEvents, height: int = 250) -> HandlerContext:  # noqa: ANN001
        return HandlerContext(
            network=network,
            candidate=make_candidate(height=height, txhash="DEADBEEF"),
            client=FakeLedgerClient(),
            events=hub,
        )

    @pytest.mark.asyncio
    async def test_message_publishes_note(self, network, hub: IndexerEvents) -> None:  # noqa: ANN001
        received = []
        hub.on_note(received.append)
        payload = DecodedPayload(
            subtype="message",
            source=Source.MEMO,
            index="memo",
            sender=SENDER,
            fields={"recipient": RECIPIENT, "message": "hello"},
        )

        await handle_message(payload, self._ctx(network, hub))

        assert len(received) == 1
        event = received[0]
        assert event.note.txhash == "DEADBEEF"
        assert event.note.chain == "cosmoshub"
        assert event.note.index == "memo"
        assert event.note.sender == SENDER
        assert event.note.message == "hello"
        assert event.note.timestamp == block_time(250)
        assert event.members == sorted([SENDER, RECIPIENT])

    @pytest.mark.asyncio
    async def test_members_sorted_regardless_of_direction(
        self, network, hub: IndexerEvents  # noqa: ANN001
    ) -> None:
        received = []
        hub.on_note(received.append)
        payload = DecodedPayload(
            subtype="message",
            source=Source.EVENTS,
            index=4,
            sender="cosmos1zzz",
            fields={"recipient": "cosmos1aaa", "message": "x"},
        )

        await handle_message(payload, self._ctx(network, hub))

        assert received[0].members == ["cosmos1aaa", "cosmos1zzz"]
        assert received[0].note.index == 4

    @pytest.mark.asyncio
    async def test_announce_publishes_announcement(self, network, hub: IndexerEvents) -> None:  # noqa: ANN001
        received = []
        hub.on_announce(received.append)
        payload = DecodedPayload(
            subtype="announce",
            source=Source.MEMO,
            index="memo",
            sender=SENDER,
            fields={"message": "gm"},
        )

        await handle_announce(payload, self._ctx(network, hub, height=7))

        assert len(received) == 1
        ann = received[0].announcement
        assert ann.message == "gm"
        assert ann.sender == SENDER
        assert ann.timestamp == block_time(7)

    @pytest.mark.asyncio
    async def test_block_time_queries_candidate_height(self, network, hub: IndexerEvents) -> None:  # noqa: ANN001
        ctx = self._ctx(network, hub, height=42)
        assert await ctx.block_time() == block_time(42)
        assert ctx.client.block_at_calls == [42]
