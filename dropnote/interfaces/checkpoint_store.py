"""Abstract base class for checkpoint stores.

A checkpoint store is a small key/value store for string or binary values.
The indexer keeps one key per network (``"{network}.height"``) holding the
last block height it has seen while watching.  Implementations may use a
dict, a JSON file, SQLite, or any string-only mapping.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

CheckpointValue = str | bytes


def height_key(network_name: str) -> str:
    """Return the checkpoint key for *network_name*."""
    return f"{network_name}.height"


class ICheckpointStore(ABC):
    """Contract for checkpoint key/value stores.

    All operations are async.  Concurrent ``set`` calls for different keys
    must not interfere with one another.
    """

    @abstractmethod
    async def get(self, key: str) -> CheckpointValue | None:
        """Return the value stored under *key*, or ``None``."""

    @abstractmethod
    async def set(self, key: str, value: CheckpointValue) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*.  No-op when absent."""

    @abstractmethod
    async def keys(self) -> list[str]:
        """Return every stored key."""

    async def close(self) -> None:
        """Flush pending writes and release resources.  No-op by default."""
