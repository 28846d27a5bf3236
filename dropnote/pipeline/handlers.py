"""Subtype handler registry and the built-in handlers.

Two independent tables map a subtype string to an async handler: one for
memo payloads and one for event payloads.  Registering a subtype again
replaces the previous handler, which is how host applications override the
built-in ``message`` / ``announce`` behaviour.  Looking up an unregistered
subtype returns ``None`` and the indexer skips the payload silently.

A handler receives the decoded payload and a :class:`HandlerContext` and
is responsible for building the domain object and publishing it.  Any
exception it raises is caught by the indexer and reported as a
:class:`~dropnote.utils.errors.HandlerError`.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

from dropnote.interfaces.ledger_client import ILedgerClient
from dropnote.models.dispatch import AnnounceEvent, DecodedPayload, NoteEvent, Source
from dropnote.models.ledger import CandidateTransaction, NetworkConfig
from dropnote.models.notes import Announcement, Note
from dropnote.pipeline.event_hub import IndexerEvents


@dataclass(frozen=True)
class HandlerContext:
    """What a handler may use besides the payload itself."""

    network: NetworkConfig
    candidate: CandidateTransaction
    client: ILedgerClient
    events: IndexerEvents

    @property
    def txhash(self) -> str:
        return self.candidate.txhash

    async def block_time(self) -> datetime:
        """Timestamp of the block the transaction was included in."""
        block = await self.client.block_at(self.network, self.candidate.height)
        return block.time


Handler = Callable[[DecodedPayload, HandlerContext], Awaitable[None]]


class HandlerRegistry:
    """Subtype-keyed dispatch tables, one per source."""

    def __init__(self) -> None:
        self._tables: dict[Source, dict[str, Handler]] = {
            Source.MEMO: {},
            Source.EVENTS: {},
        }

    @classmethod
    def with_builtin_handlers(cls) -> HandlerRegistry:
        """Return a registry with ``message`` and ``announce`` for both sources."""
        registry = cls()
        for source in Source:
            registry.register(source, "message", handle_message)
            registry.register(source, "announce", handle_announce)
        return registry

    def register(self, source: Source, subtype: str, handler: Handler) -> None:
        """Register *handler* for *subtype*; the last registration wins."""
        if source is Source.MEMO:
            subtype = subtype.lower()
        self._tables[source][subtype] = handler

    def register_memo(self, subtype: str, handler: Handler) -> None:
        self.register(Source.MEMO, subtype, handler)

    def register_event(self, subtype: str, handler: Handler) -> None:
        self.register(Source.EVENTS, subtype, handler)

    def lookup(self, source: Source, subtype: str) -> Handler | None:
        if source is Source.MEMO:
            subtype = subtype.lower()
        return self._tables[source].get(subtype)

    def subtypes(self, source: Source) -> list[str]:
        return sorted(self._tables[source])


# ---------------------------------------------------------------------------
# Built-in handlers
# ---------------------------------------------------------------------------

async def handle_message(payload: DecodedPayload, ctx: HandlerContext) -> None:
    """Publish a :class:`Note` with both parties as sorted members."""
    recipient = payload.fields["recipient"]
    note = Note(
        txhash=ctx.txhash,
        chain=ctx.network.name,
        index=payload.index,
        timestamp=await ctx.block_time(),
        sender=payload.sender,
        message=payload.fields["message"],
        encrypted=payload.encrypted,
    )
    members = sorted([payload.sender, recipient])
    await ctx.events.emit_note(NoteEvent(network=ctx.network, note=note, members=members))


async def handle_announce(payload: DecodedPayload, ctx: HandlerContext) -> None:
    """Publish an :class:`Announcement`."""
    announcement = Announcement(
        txhash=ctx.txhash,
        chain=ctx.network.name,
        index=payload.index,
        sender=payload.sender,
        message=payload.fields["message"],
        timestamp=await ctx.block_time(),
        encrypted=payload.encrypted,
    )
    await ctx.events.emit_announce(AnnounceEvent(network=ctx.network, announcement=announcement))
