"""Unit tests for CosmosRestLedgerClient.

HTTP is served by ``httpx.MockTransport`` so no network access is needed.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import MagicMock

import httpx
import pytest

from dropnote.models.ledger import Block, NetworkConfig
from dropnote.providers.ledger import cosmos_rest_provider
from dropnote.providers.ledger.cosmos_rest_provider import (
    CosmosRestLedgerClient,
    parse_block_time,
)
from dropnote.utils.errors import ConfigurationError, TransportError

BASE_URL = "https://rest.example.test"


def _block_body(height: int, time: str = "2024-05-01T12:00:00.123456789Z") -> dict:
    return {"sdk_block": {"header": {"height": str(height), "time": time}}}


def _tx_response(height: int, txhash: str, memo: str = "", code: int = 0) -> dict:
    return {
        "height": str(height),
        "txhash": txhash,
        "code": code,
        "tx": {"body": {"memo": memo, "messages": []}},
        "events": [
            {
                "type": "message",
                "attributes": [{"key": "sender", "value": "cosmos1sender", "index": True}],
            }
        ],
    }


def _client(handler, **kwargs) -> CosmosRestLedgerClient:  # noqa: ANN001
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CosmosRestLedgerClient(http_client=http, **kwargs)


# ======================================================================
# parse_block_time
# ======================================================================


class TestParseBlockTime:
    def test_nanoseconds_truncated(self) -> None:
        parsed = parse_block_time("2024-05-01T12:00:00.123456789Z")
        assert parsed == datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)

    def test_no_fraction(self) -> None:
        parsed = parse_block_time("2024-05-01T12:00:00Z")
        assert parsed == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)

    def test_short_fraction_padded(self) -> None:
        assert parse_block_time("2024-05-01T12:00:00.5Z").microsecond == 500000

    def test_explicit_offset(self) -> None:
        parsed = parse_block_time("2024-05-01T14:00:00+02:00")
        assert parsed == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)

    def test_garbage(self) -> None:
        with pytest.raises(ValueError):
            parse_block_time("yesterday")


# ======================================================================
# Blocks
# ======================================================================


class TestBlocks:
    @pytest.mark.asyncio
    async def test_current_block(self, network: NetworkConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/cosmos/base/tendermint/v1beta1/blocks/latest"
            return httpx.Response(200, json=_block_body(12345))

        block = await _client(handler).current_block(network)
        assert block.height == 12345
        assert block.time.microsecond == 123456

    @pytest.mark.asyncio
    async def test_block_at_accepts_legacy_block_key(self, network: NetworkConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/blocks/77")
            return httpx.Response(
                200, json={"block": {"header": {"height": "77", "time": "2024-01-01T00:00:00Z"}}}
            )

        block = await _client(handler).block_at(network, 77)
        assert block.height == 77

    @pytest.mark.asyncio
    async def test_http_error_raises_transport_error(self, network: NetworkConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"message": "unavailable"})

        with pytest.raises(TransportError) as exc_info:
            await _client(handler).current_block(network)
        assert exc_info.value.network == "cosmoshub"
        assert exc_info.value.provider_name == "cosmos_rest"

    @pytest.mark.asyncio
    async def test_malformed_block_raises_transport_error(self, network: NetworkConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"sdk_block": {"header": {}}})

        with pytest.raises(TransportError):
            await _client(handler).current_block(network)

    @pytest.mark.asyncio
    async def test_missing_rest_url(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        bare = NetworkConfig(name="local", address_prefix="cosmos")
        with pytest.raises(ConfigurationError):
            await _client(handler).current_block(bare)


# ======================================================================
# Transaction search
# ======================================================================


class TestSearchTransactions:
    @pytest.mark.asyncio
    async def test_paginates_until_short_page(self, network: NetworkConfig) -> None:
        requests: list[httpx.Request] = []
        pages = {
            "1": [_tx_response(10, "A"), _tx_response(11, "B")],
            "2": [_tx_response(12, "C")],
        }

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            items = pages[request.url.params["page"]]
            return httpx.Response(200, json={"tx_responses": items, "total": "3"})

        client = _client(handler, page_limit=2)
        collected = [
            page async for page in client.search_transactions(network, "cosmos1me", 10, 20)
        ]

        assert [[tx["txhash"] for tx in page] for page in collected] == [["A", "B"], ["C"]]
        assert len(requests) == 2
        params = requests[0].url.params
        assert params["query"] == (
            "transfer.recipient='cosmos1me' AND tx.height>=10 AND tx.height<=20"
        )
        assert params["limit"] == "2"
        assert params["order_by"] == "ORDER_BY_ASC"

    @pytest.mark.asyncio
    async def test_stops_when_total_reached(self, network: NetworkConfig) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(
                200, json={"tx_responses": [_tx_response(1, "A"), _tx_response(2, "B")], "total": "2"}
            )

        client = _client(handler, page_limit=2)
        collected = [page async for page in client.search_transactions(network, "x", 1, 2)]

        assert len(collected) == 1
        assert calls == 1

    @pytest.mark.asyncio
    async def test_empty_result_yields_nothing(self, network: NetworkConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"tx_responses": [], "total": "0"})

        client = _client(handler)
        assert [page async for page in client.search_transactions(network, "x", 1, 2)] == []


# ======================================================================
# decode_transaction
# ======================================================================


class TestDecodeTransaction:
    def test_decodes_gateway_item(self) -> None:
        client = _client(lambda r: httpx.Response(200))
        candidate = client.decode_transaction(_tx_response(99, "HASH", memo="dropnote:[a:b]"))

        assert candidate is not None
        assert candidate.txhash == "HASH"
        assert candidate.height == 99
        assert candidate.tx.memo == "dropnote:[a:b]"
        assert candidate.result.succeeded
        assert candidate.result.events[0].attr("sender") == "cosmos1sender"

    def test_failed_code_preserved(self) -> None:
        client = _client(lambda r: httpx.Response(200))
        candidate = client.decode_transaction(_tx_response(1, "H", code=5))
        assert candidate.result.code == 5
        assert not candidate.result.succeeded

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "not a dict",
            {"txhash": "H"},
            {"height": "abc", "txhash": "H"},
            {"height": "1", "events": [{"attributes": []}]},
        ],
    )
    def test_malformed_returns_none(self, raw) -> None:  # noqa: ANN001
        client = _client(lambda r: httpx.Response(200))
        assert client.decode_transaction(raw) is None


# ======================================================================
# Block subscription
# ======================================================================


class TestSubscribeToBlocks:
    @pytest.mark.asyncio
    async def test_reports_first_tip_then_each_new_height(self, network: NetworkConfig) -> None:
        tips = iter([100, 100, 103])

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/blocks/latest"):
                height = next(tips, 103)
            else:
                height = int(request.url.path.rsplit("/", 1)[-1])
            return httpx.Response(200, json=_block_body(height))

        client = _client(handler, poll_interval=0.01)
        seen: list[int] = []
        done = asyncio.Event()

        async def on_block(block: Block) -> None:
            seen.append(block.height)
            if block.height == 103:
                done.set()

        unsubscribe = client.subscribe_to_blocks(network, on_block)
        try:
            await asyncio.wait_for(done.wait(), timeout=2)
        finally:
            unsubscribe()

        assert seen == [100, 101, 102, 103]

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_polling(self, network: NetworkConfig) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json=_block_body(1))

        client = _client(handler, poll_interval=0.01)
        unsubscribe = client.subscribe_to_blocks(network, lambda block: asyncio.sleep(0))
        await asyncio.sleep(0.05)
        unsubscribe()
        await asyncio.sleep(0)
        after = calls
        await asyncio.sleep(0.05)

        assert calls == after

    @pytest.mark.asyncio
    async def test_from_height_reports_blocks_already_produced(
        self, network: NetworkConfig
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/blocks/latest"):
                return httpx.Response(200, json=_block_body(105))
            return httpx.Response(200, json=_block_body(int(request.url.path.rsplit("/", 1)[-1])))

        client = _client(handler, poll_interval=0.01)
        seen: list[int] = []
        done = asyncio.Event()

        async def on_block(block: Block) -> None:
            seen.append(block.height)
            if block.height == 105:
                done.set()

        unsubscribe = client.subscribe_to_blocks(network, on_block, from_height=101)
        try:
            await asyncio.wait_for(done.wait(), timeout=2)
            await asyncio.sleep(0.03)
        finally:
            unsubscribe()

        assert seen == [101, 102, 103, 104, 105]

    @pytest.mark.asyncio
    async def test_transport_failure_retried_on_next_poll(self, network: NetworkConfig) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                return httpx.Response(503)
            return httpx.Response(200, json=_block_body(7))

        client = _client(handler, poll_interval=0.01)
        done = asyncio.Event()

        async def on_block(block: Block) -> None:
            done.set()

        unsubscribe = client.subscribe_to_blocks(network, on_block)
        try:
            await asyncio.wait_for(done.wait(), timeout=2)
        finally:
            unsubscribe()

        assert calls >= 2

    @pytest.mark.asyncio
    async def test_unrecoverable_failure_is_logged(self, monkeypatch: pytest.MonkeyPatch) -> None:
        mock_logger = MagicMock()
        monkeypatch.setattr(cosmos_rest_provider, "logger", mock_logger)
        bare = NetworkConfig(name="local", address_prefix="cosmos")
        client = _client(lambda request: httpx.Response(200, json=_block_body(1)))

        unsubscribe = client.subscribe_to_blocks(bare, lambda block: asyncio.sleep(0))
        await asyncio.sleep(0.05)
        unsubscribe()

        failures = [
            c for c in mock_logger.error.call_args_list if c.args == ("block_subscription_failed",)
        ]
        assert len(failures) == 1
        assert failures[0].kwargs["network"] == "local"
        assert failures[0].kwargs["error_type"] == "ConfigurationError"
