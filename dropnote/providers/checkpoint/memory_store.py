"""In-memory checkpoint store.

Simple dict-backed store suitable for tests and one-shot scans.  Nothing
survives the process; swap in a file or SQLite store for resumable watches.
"""

from __future__ import annotations

import structlog

from dropnote.interfaces.checkpoint_store import CheckpointValue, ICheckpointStore

logger = structlog.get_logger(logger_name=__name__)


class MemoryCheckpointStore(ICheckpointStore):
    """Checkpoint store backed by a plain ``dict``."""

    def __init__(self) -> None:
        self._values: dict[str, CheckpointValue] = {}

    async def get(self, key: str) -> CheckpointValue | None:
        return self._values.get(key)

    async def set(self, key: str, value: CheckpointValue) -> None:
        self._values[key] = value
        logger.debug("checkpoint_set", key=key)

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._values)
