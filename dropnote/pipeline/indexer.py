"""Central orchestrator for the dropnote indexing pipeline.

Ties the classifier, the parsers and the handler registry together across
two feed modes:

    scan()          bounded, paginated history over a height window
    watch_address() live: re-query each new block for one address
    watch()         watch_address() for many addresses, a catch-up scan
                    from the checkpoint, and per-block checkpointing

Per transaction the pipeline runs::

    Observed → Classified → (Skipped)
                          → ParsedMemo   → (Dispatched | MemoParseFailed)
                          → ParsedEvents → (Dispatched | EventParseFailed)*

Parse and handler failures are published on the error channel and never
raised out of :meth:`process_tx`, :meth:`scan` or :meth:`watch`.  Transport
failures while setting up a scan or watch propagate to the caller; those
hit inside a live block callback are published as :class:`TransportError`.

Delivery is at-least-once: a live watch and a concurrent scan over the same
address may both publish the same note.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

from dropnote.interfaces.checkpoint_store import ICheckpointStore, height_key
from dropnote.interfaces.ledger_client import ILedgerClient, Unsubscribe
from dropnote.models.dispatch import (
    AnnounceEvent,
    DecodedPayload,
    NoteEvent,
    Source,
    TxDecision,
    TxObserved,
)
from dropnote.models.ledger import Block, CandidateTransaction, LedgerEvent, NetworkConfig
from dropnote.pipeline.classifier import classify, dropnote_events
from dropnote.pipeline.event_extractor import event_subtype, parse_event
from dropnote.pipeline.event_hub import IndexerEvents
from dropnote.pipeline.handlers import Handler, HandlerContext, HandlerRegistry
from dropnote.pipeline.height_window import DEFAULT_LOOKBACK_BLOCKS, HeightWindow, resolve_window
from dropnote.pipeline.memo_parser import parse_memo
from dropnote.utils.concurrency import throttled_gather
from dropnote.utils.errors import (
    ConfigurationError,
    DropnoteError,
    EventParseError,
    HandlerError,
    IndexingError,
    MemoParseError,
    TransportError,
)
from dropnote.utils.logging import get_logger


class DropnoteIndexer:
    """Discovers, decodes and publishes dropnotes.

    Parameters
    ----------
    client:
        Ledger collaborator used for block and transaction retrieval.
    store:
        Checkpoint store; one ``"{network}.height"`` key per watched network.
    registry:
        Subtype handler tables.  Defaults to the built-in ``message`` and
        ``announce`` handlers.
    events:
        Event hub to publish on.  A fresh one is created when omitted.
    max_concurrency:
        Optional cap on transactions processed at once.  ``None`` fans out
        every transaction of a page immediately.
    lookback:
        Default scan depth in blocks when neither a start height nor a
        checkpoint is available.
    """

    def __init__(
        self,
        client: ILedgerClient,
        store: ICheckpointStore,
        registry: HandlerRegistry | None = None,
        events: IndexerEvents | None = None,
        max_concurrency: int | None = None,
        lookback: int = DEFAULT_LOOKBACK_BLOCKS,
    ) -> None:
        self._client = client
        self._store = store
        self._registry = registry or HandlerRegistry.with_builtin_handlers()
        self.events = events or IndexerEvents()
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        self._lookback = lookback
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Subscriptions (shortcuts onto the event hub)
    # ------------------------------------------------------------------

    def on_tx(self, callback: Callable[[TxObserved], Any]) -> Callable[[], None]:
        return self.events.on_tx(callback)

    def on_note(self, callback: Callable[[NoteEvent], Any]) -> Callable[[], None]:
        return self.events.on_note(callback)

    def on_announce(self, callback: Callable[[AnnounceEvent], Any]) -> Callable[[], None]:
        return self.events.on_announce(callback)

    def on_error(self, callback: Callable[[IndexingError], Any]) -> Callable[[], None]:
        return self.events.on_error(callback)

    # ------------------------------------------------------------------
    # Checkpointing
    # ------------------------------------------------------------------

    async def checkpoint(self, network: NetworkConfig) -> int | None:
        """Return the last persisted block height for *network*, if any."""
        value = await self._store.get(height_key(network.name))
        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        try:
            return int(value)
        except ValueError:
            self._logger.warning("checkpoint_unreadable", network=network.name, value=value)
            return None

    async def resolve_window(
        self,
        network: NetworkConfig,
        from_height: int | None = None,
        to_height: int | None = None,
    ) -> HeightWindow:
        """Resolve a scan window, resuming from the stored checkpoint."""
        checkpoint = await self.checkpoint(network) if from_height is None else None
        return await resolve_window(
            self._client,
            network,
            from_height=from_height,
            to_height=to_height,
            checkpoint=checkpoint,
            lookback=self._lookback,
        )

    # ------------------------------------------------------------------
    # Feed modes
    # ------------------------------------------------------------------

    async def scan(
        self,
        network: NetworkConfig,
        address: str | None = None,
        from_height: int | None = None,
        to_height: int | None = None,
    ) -> int:
        """Scan historical transactions sent to *address*.

        Missing bounds default to ``[tip - lookback, tip]``; the checkpoint
        is neither read nor advanced.  Pages are consumed in order and the
        transactions of each page are processed concurrently.

        Returns
        -------
        int
            Number of decodable transactions that were routed through the
            pipeline.
        """
        address = address or self._default_address(network)
        window = await resolve_window(
            self._client,
            network,
            from_height=from_height,
            to_height=to_height,
            lookback=self._lookback,
        )
        self._logger.info(
            "scan_start",
            network=network.name,
            address=address,
            from_height=window.from_height,
            to_height=window.to_height,
        )
        processed = await self._scan_window(network, address, window)
        self._logger.info("scan_complete", network=network.name, address=address, txs=processed)
        return processed

    def watch_address(
        self,
        network: NetworkConfig,
        address: str | None = None,
        from_height: int | None = None,
    ) -> Unsubscribe:
        """Process transactions sent to *address* in every new block.

        Blocks are followed from *from_height* when given, otherwise from
        the current tip.  Calling this twice for the same network and address duplicates
        every downstream event.
        """
        address = address or self._default_address(network)
        active = True

        async def _on_block(block: Block) -> None:
            if not active:
                return
            window = HeightWindow(from_height=block.height, to_height=block.height)
            try:
                await self._scan_window(network, address, window)
            except Exception as exc:
                await self.events.emit_error(
                    TransportError(
                        f"Failed to query transactions at height {block.height}: {exc}",
                        network=network.name,
                        cause=exc,
                        provider_name=self._client.get_provider_name(),
                    )
                )

        unsubscribe = self._client.subscribe_to_blocks(network, _on_block, from_height)
        self._logger.info("watch_address_started", network=network.name, address=address)

        def _unsubscribe() -> None:
            nonlocal active
            active = False
            unsubscribe()
            self._logger.info("watch_address_stopped", network=network.name, address=address)

        return _unsubscribe

    async def watch(
        self,
        network: NetworkConfig,
        addresses: list[str] | None = None,
    ) -> Unsubscribe:
        """Watch *addresses* live after catching up from the checkpoint.

        Addresses not matching the network's prefix are dropped.  Live
        subscriptions start at the block after the catch-up window.  Every new
        block tip is persisted as the checkpoint, whether or not it held a
        dropnote.  The returned callable tears down every subscription.
        """
        if addresses is None:
            addresses = [self._default_address(network)]
        addresses = [a for a in addresses if a.startswith(network.address_prefix)]
        key = height_key(network.name)

        async def _persist_height(block: Block) -> None:
            try:
                await self._store.set(key, str(block.height))
            except Exception as exc:
                await self.events.emit_error(
                    TransportError(
                        f"Failed to persist checkpoint {block.height}: {exc}",
                        network=network.name,
                        cause=exc,
                    )
                )

        window = await self.resolve_window(network)
        follow_from = window.to_height + 1
        unsubs: list[Unsubscribe] = [
            self.watch_address(network, a, from_height=follow_from) for a in addresses
        ]

        try:
            await asyncio.gather(
                *(self.scan(network, a, window.from_height, window.to_height) for a in addresses)
            )
        except BaseException:
            for unsub in unsubs:
                unsub()
            raise

        unsubs.append(self._client.subscribe_to_blocks(network, _persist_height, follow_from))
        self._logger.info(
            "watch_started",
            network=network.name,
            addresses=addresses,
            caught_up_to=window.to_height,
        )

        def _unsubscribe_all() -> None:
            for unsub in unsubs:
                unsub()

        return _unsubscribe_all

    # ------------------------------------------------------------------
    # Per-transaction pipeline
    # ------------------------------------------------------------------

    async def process_tx(self, network: NetworkConfig, candidate: CandidateTransaction) -> None:
        """Route one candidate through classify → parse → dispatch."""
        result = candidate.result
        if not result.succeeded:
            return

        classification = classify(candidate.tx.memo, result.events)
        if classification is None:
            return

        decision = await self.events.emit_tx(
            TxObserved(network=network, tx=candidate, source=classification.source)
        )
        if decision == TxDecision.STOP:
            self._logger.debug("tx_cancelled", network=network.name, txhash=candidate.txhash)
            return

        if classification.source is Source.MEMO:
            await self._process_memo(network, candidate, classification.subtype or "")
        else:
            await self._process_events(network, candidate)

    async def _process_memo(
        self,
        network: NetworkConfig,
        candidate: CandidateTransaction,
        subtype: str,
    ) -> None:
        handler = self._registry.lookup(Source.MEMO, subtype)
        if handler is None:
            self._logger.debug("unhandled_subtype", source="memo", subtype=subtype)
            return

        memo = candidate.tx.memo
        try:
            payload = parse_memo(memo, candidate.result.events)
        except DropnoteError as exc:
            await self.events.emit_error(
                MemoParseError(
                    f"Failed to parse memo of tx {candidate.txhash}: {exc}",
                    network=network.name,
                    txhash=candidate.txhash,
                    memo=memo,
                    cause=exc,
                )
            )
            return

        await self._dispatch(network, candidate, handler, payload)

    async def _process_events(self, network: NetworkConfig, candidate: CandidateTransaction) -> None:
        await throttled_gather(
            [
                self._process_event(network, candidate, index, event)
                for index, event in dropnote_events(candidate.result.events)
            ],
            return_exceptions=False,
        )

    async def _process_event(
        self,
        network: NetworkConfig,
        candidate: CandidateTransaction,
        index: int,
        event: LedgerEvent,
    ) -> None:
        subtype = event_subtype(event)
        handler = self._registry.lookup(Source.EVENTS, subtype) if subtype else None
        if subtype and handler is None:
            self._logger.debug("unhandled_subtype", source="events", subtype=subtype)
            return

        try:
            payload = parse_event(event, index)
        except DropnoteError as exc:
            await self.events.emit_error(
                EventParseError(
                    f"Failed to parse event {index} of tx {candidate.txhash}: {exc}",
                    network=network.name,
                    txhash=candidate.txhash,
                    event_index=index,
                    cause=exc,
                )
            )
            return

        await self._dispatch(network, candidate, handler, payload)

    async def _dispatch(
        self,
        network: NetworkConfig,
        candidate: CandidateTransaction,
        handler: Handler,
        payload: DecodedPayload,
    ) -> None:
        ctx = HandlerContext(
            network=network,
            candidate=candidate,
            client=self._client,
            events=self.events,
        )
        try:
            await handler(payload, ctx)
        except Exception as exc:
            from_events = payload.source is Source.EVENTS
            await self.events.emit_error(
                HandlerError(
                    f"Handler for {payload.source.value} subtype {payload.subtype!r} "
                    f"failed on tx {candidate.txhash}: {exc}",
                    network=network.name,
                    txhash=candidate.txhash,
                    event_index=payload.index if from_events else None,
                    memo=None if from_events else candidate.tx.memo,
                    cause=exc,
                )
            )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _scan_window(
        self,
        network: NetworkConfig,
        address: str,
        window: HeightWindow,
    ) -> int:
        processed = 0
        pages = self._client.search_transactions(
            network, address, window.from_height, window.to_height
        )
        async for page in pages:
            candidates: list[CandidateTransaction] = []
            for raw in page:
                candidate = self._client.decode_transaction(raw)
                if candidate is None:
                    self._logger.debug("malformed_tx_skipped", network=network.name)
                    continue
                candidates.append(candidate)

            results = await throttled_gather(
                [self.process_tx(network, c) for c in candidates],
                semaphore=self._semaphore,
            )
            for candidate, outcome in zip(candidates, results):
                if isinstance(outcome, Exception):
                    await self.events.emit_error(
                        HandlerError(
                            f"Unexpected failure processing tx {candidate.txhash}: {outcome}",
                            network=network.name,
                            txhash=candidate.txhash,
                            cause=outcome,
                        )
                    )
            processed += len(candidates)
        return processed

    def _default_address(self, network: NetworkConfig) -> str:
        if not network.default_address:
            raise ConfigurationError(
                f"No watch address given and network {network.name!r} has no default address"
            )
        return network.default_address
