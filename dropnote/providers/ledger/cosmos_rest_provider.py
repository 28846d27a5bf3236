"""Cosmos SDK REST gateway client implementing ILedgerClient.

Talks to the gRPC-gateway endpoints every Cosmos SDK node exposes:

    GET /cosmos/base/tendermint/v1beta1/blocks/latest
    GET /cosmos/base/tendermint/v1beta1/blocks/{height}
    GET /cosmos/tx/v1beta1/txs?query=...&page=N&limit=M

Transaction search uses the ``query`` parameter (SDK v0.50+).  The gateway
returns transactions already decoded to JSON, so ``decode_transaction``
only validates and reshapes a ``tx_responses`` item.

Block subscriptions are implemented by polling the latest block every
``poll_interval`` seconds and reporting each height between polls in order,
starting at ``from_height`` when given and at the first polled tip otherwise.
Transport failures are logged and retried on the next poll; any other
failure ends the subscription and is logged.
Follows the same adapter pattern as the other providers: injected
``httpx.AsyncClient``, errors raised as :class:`TransportError`.
"""

from __future__ import annotations

import asyncio
import functools
import re
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

import httpx
from pydantic import ValidationError

from dropnote.interfaces.ledger_client import BlockCallback, ILedgerClient, Unsubscribe
from dropnote.models.ledger import Block, CandidateTransaction, NetworkConfig, Transaction, TxResult
from dropnote.utils.errors import ConfigurationError, TransportError
from dropnote.utils.logging import get_logger

_PROVIDER_NAME = "cosmos_rest"
_LATEST_BLOCK_PATH = "/cosmos/base/tendermint/v1beta1/blocks/latest"
_BLOCK_PATH = "/cosmos/base/tendermint/v1beta1/blocks/{height}"
_TXS_PATH = "/cosmos/tx/v1beta1/txs"
_DEFAULT_POLL_INTERVAL = 3.0
_DEFAULT_PAGE_LIMIT = 100

# RFC 3339 with up to nanosecond precision, as emitted by CometBFT.
_TIME_RE = re.compile(r"^(?P<base>[^.Z+]+?)(?:\.(?P<frac>\d+))?(?P<tz>Z|[+-]\d{2}:\d{2})?$")

logger = get_logger(__name__)


def parse_block_time(value: str) -> datetime:
    """Parse a CometBFT timestamp, truncating to microseconds."""
    match = _TIME_RE.match(value.strip())
    if match is None:
        raise ValueError(f"Unrecognised block time: {value!r}")
    frac = (match.group("frac") or "0")[:6].ljust(6, "0")
    tz = match.group("tz") or "Z"
    if tz == "Z":
        tz = "+00:00"
    return datetime.fromisoformat(f"{match.group('base')}.{frac}{tz}")


def _log_poll_exit(network_name: str, task: asyncio.Task) -> None:
    """Report a poll task that stopped for any reason other than unsubscribe."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "block_subscription_failed",
            network=network_name,
            error=str(exc),
            error_type=type(exc).__name__,
        )


class CosmosRestLedgerClient(ILedgerClient):
    """Ledger client backed by a node's REST gateway.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient`` for testability and connection pooling.
    poll_interval:
        Seconds between latest-block polls for subscriptions.
    page_limit:
        Transactions requested per search page.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        poll_interval: float = _DEFAULT_POLL_INTERVAL,
        page_limit: int = _DEFAULT_PAGE_LIMIT,
    ) -> None:
        self._http = http_client
        self._poll_interval = poll_interval
        self._page_limit = page_limit

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    # ------------------------------------------------------------------
    # ILedgerClient implementation
    # ------------------------------------------------------------------

    async def current_block(self, network: NetworkConfig) -> Block:
        data = await self._get_json(network, _LATEST_BLOCK_PATH)
        return self._parse_block(network, data)

    async def block_at(self, network: NetworkConfig, height: int) -> Block:
        data = await self._get_json(network, _BLOCK_PATH.format(height=height))
        return self._parse_block(network, data)

    async def search_transactions(
        self,
        network: NetworkConfig,
        recipient: str,
        from_height: int,
        to_height: int,
    ) -> AsyncIterator[list[Any]]:
        query = (
            f"transfer.recipient='{recipient}' "
            f"AND tx.height>={from_height} AND tx.height<={to_height}"
        )
        page = 1
        seen = 0
        while True:
            data = await self._get_json(
                network,
                _TXS_PATH,
                params={
                    "query": query,
                    "page": page,
                    "limit": self._page_limit,
                    "order_by": "ORDER_BY_ASC",
                },
            )
            items = data.get("tx_responses") or []
            logger.debug(
                "tx_search_page",
                network=network.name,
                page=page,
                count=len(items),
                total=data.get("total"),
            )
            if items:
                yield items

            seen += len(items)
            total = int(data.get("total") or 0)
            if len(items) < self._page_limit or (total and seen >= total):
                break
            page += 1

    def subscribe_to_blocks(
        self,
        network: NetworkConfig,
        on_block: BlockCallback,
        from_height: int | None = None,
    ) -> Unsubscribe:
        task = asyncio.get_running_loop().create_task(
            self._poll_blocks(network, on_block, from_height)
        )
        task.add_done_callback(functools.partial(_log_poll_exit, network.name))
        logger.debug("block_subscription_started", network=network.name, from_height=from_height)

        def _unsubscribe() -> None:
            task.cancel()
            logger.debug("block_subscription_stopped", network=network.name)

        return _unsubscribe

    def decode_transaction(self, raw: Any) -> CandidateTransaction | None:
        try:
            tx_json = raw.get("tx") or {}
            memo = (tx_json.get("body") or {}).get("memo") or ""
            result = TxResult(
                code=int(raw.get("code") or 0),
                txhash=raw.get("txhash") or None,
                height=int(raw["height"]),
                events=[
                    {
                        "type": event["type"],
                        "attributes": [
                            {"key": a.get("key", ""), "value": a.get("value") or ""}
                            for a in event.get("attributes") or []
                        ],
                    }
                    for event in raw.get("events") or []
                ],
            )
            return CandidateTransaction(
                tx=Transaction(memo=memo, body=tx_json.get("body") or {}),
                result=result,
            )
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as exc:
            logger.debug("tx_decode_failed", error=str(exc))
            return None

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _poll_blocks(
        self,
        network: NetworkConfig,
        on_block: BlockCallback,
        from_height: int | None,
    ) -> None:
        next_height = from_height
        while True:
            try:
                tip = await self.current_block(network)
                if next_height is None:
                    next_height = tip.height
                for height in range(next_height, tip.height + 1):
                    block = tip if height == tip.height else await self.block_at(network, height)
                    try:
                        await on_block(block)
                    except Exception as exc:
                        logger.error(
                            "block_callback_failed",
                            network=network.name,
                            height=height,
                            error=str(exc),
                        )
                    next_height = height + 1
            except TransportError as exc:
                logger.warning("block_poll_failed", network=network.name, error=str(exc))
            await asyncio.sleep(self._poll_interval)

    async def _get_json(
        self,
        network: NetworkConfig,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not network.rest_url:
            raise ConfigurationError(
                f"Network {network.name!r} has no REST URL configured",
                provider_name=_PROVIDER_NAME,
            )
        url = f"{network.rest_url.rstrip('/')}{path}"
        try:
            response = await self._http.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TransportError(
                f"GET {path} failed: {exc}",
                network=network.name,
                cause=exc,
                provider_name=_PROVIDER_NAME,
            ) from exc
        if not isinstance(data, dict):
            raise TransportError(
                f"GET {path} returned a non-object body",
                network=network.name,
                provider_name=_PROVIDER_NAME,
            )
        return data

    def _parse_block(self, network: NetworkConfig, data: dict[str, Any]) -> Block:
        block = data.get("sdk_block") or data.get("block") or {}
        header = block.get("header") or {}
        try:
            return Block(height=int(header["height"]), time=parse_block_time(header["time"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise TransportError(
                f"Malformed block response: {exc}",
                network=network.name,
                cause=exc,
                provider_name=_PROVIDER_NAME,
            ) from exc
