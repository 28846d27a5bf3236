"""Subscriber notification for the indexer.

# ─── HOW PUBLISHING WORKS ─────────────────────────────────────────────
#
#   DropnoteIndexer ──emit_*()──→ IndexerEvents ──callback()──→ subscribers
#
#   - Four channels: tx, note, announce, error.
#   - Callbacks may be sync or async (asyncio.iscoroutine check).
#   - A failing listener is logged and skipped; it never reaches the
#     pipeline or the other listeners.
#   - ``tx`` listeners act as a pre-dispatch hook: returning
#     ``TxDecision.STOP`` cancels processing of that transaction.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

from dropnote.models.dispatch import AnnounceEvent, NoteEvent, TxDecision, TxObserved
from dropnote.utils.errors import IndexingError
from dropnote.utils.logging import get_logger

_CHANNELS = ("tx", "note", "announce", "error")


class IndexerEvents:
    """Listener registry and broadcaster for indexer events."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable]] = {channel: [] for channel in _CHANNELS}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def on_tx(self, callback: Callable[[TxObserved], Any]) -> Callable[[], None]:
        """Register a pre-dispatch hook.  Return ``TxDecision.STOP`` to cancel."""
        return self._register("tx", callback)

    def on_note(self, callback: Callable[[NoteEvent], Any]) -> Callable[[], None]:
        return self._register("note", callback)

    def on_announce(self, callback: Callable[[AnnounceEvent], Any]) -> Callable[[], None]:
        return self._register("announce", callback)

    def on_error(self, callback: Callable[[IndexingError], Any]) -> Callable[[], None]:
        return self._register("error", callback)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def emit_tx(self, event: TxObserved) -> TxDecision:
        """Notify ``tx`` listeners and return the combined decision.

        Every listener runs; any one of them returning ``STOP`` cancels.
        """
        decision = TxDecision.CONTINUE
        for result in await self._notify("tx", event):
            if result == TxDecision.STOP:
                decision = TxDecision.STOP
        return decision

    async def emit_note(self, event: NoteEvent) -> None:
        await self._notify("note", event)

    async def emit_announce(self, event: AnnounceEvent) -> None:
        await self._notify("announce", event)

    async def emit_error(self, error: IndexingError) -> None:
        self._logger.warning(
            "indexing_error",
            kind=error.kind.value,
            network=error.network,
            txhash=error.txhash,
            event_index=error.event_index,
            error=str(error),
            cause=str(error.cause) if error.cause else None,
        )
        await self._notify("error", error)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _register(self, channel: str, callback: Callable) -> Callable[[], None]:
        listeners = self._listeners[channel]
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered", channel=channel, total_listeners=len(listeners)
            )

        def _unregister() -> None:
            if callback in listeners:
                listeners.remove(callback)
                self._logger.debug(
                    "listener_unregistered", channel=channel, remaining_listeners=len(listeners)
                )

        return _unregister

    async def _notify(self, channel: str, payload: Any) -> list[Any]:
        results: list[Any] = []
        for callback in list(self._listeners[channel]):
            try:
                result = callback(payload)
                if asyncio.iscoroutine(result):
                    result = await result
                results.append(result)
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    channel=channel,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
        return results
