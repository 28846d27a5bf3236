"""Abstract base class for ledger clients.

The indexer never talks to a chain directly.  Block retrieval, transaction
search, block subscriptions and transaction decoding are all delegated to an
``ILedgerClient`` implementation injected at construction time.  Network
level retry and reconnection are the client's responsibility; the indexer
awaits each call exactly once.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from dropnote.models.ledger import Block, CandidateTransaction, NetworkConfig

BlockCallback = Callable[[Block], Awaitable[None]]
Unsubscribe = Callable[[], None]


class ILedgerClient(ABC):
    """Contract for the ledger collaborator."""

    @abstractmethod
    async def current_block(self, network: NetworkConfig) -> Block:
        """Return the latest block (chain tip) of *network*."""

    @abstractmethod
    async def block_at(self, network: NetworkConfig, height: int) -> Block:
        """Return the block at *height*."""

    @abstractmethod
    def search_transactions(
        self,
        network: NetworkConfig,
        recipient: str,
        from_height: int,
        to_height: int,
    ) -> AsyncIterator[list[Any]]:
        """Yield pages of raw transactions transferring to *recipient*.

        Bounds are inclusive.  Pages are yielded in order; each page is a
        list of raw items accepted by :meth:`decode_transaction`.
        """

    @abstractmethod
    def subscribe_to_blocks(
        self,
        network: NetworkConfig,
        on_block: BlockCallback,
        from_height: int | None = None,
    ) -> Unsubscribe:
        """Invoke *on_block* for every new block, in height order.

        With *from_height* every block from that height onward is reported,
        including blocks already produced when the subscription starts.
        Otherwise reporting starts at the current tip.  Returns an
        unsubscribe callable.
        """

    @abstractmethod
    def decode_transaction(self, raw: Any) -> CandidateTransaction | None:
        """Decode one raw search result, or return ``None`` when malformed."""

    def get_provider_name(self) -> str:
        return type(self).__name__
