"""SQLite-backed checkpoint store.

Persists checkpoints to a local SQLite database at ``data/checkpoints.db``.
Uses ``aiosqlite`` for async I/O.  Each write is its own transaction, so
concurrent ``set`` calls for different networks never interfere.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import structlog

from dropnote.interfaces.checkpoint_store import CheckpointValue, ICheckpointStore
from dropnote.utils.errors import TransportError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/checkpoints.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS checkpoints (
    key         TEXT    PRIMARY KEY,
    kind        TEXT    NOT NULL,
    value       BLOB    NOT NULL,
    updated_at  TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_UPSERT_SQL = """\
INSERT INTO checkpoints (key, kind, value)
VALUES (?, ?, ?)
ON CONFLICT(key)
DO UPDATE SET kind       = excluded.kind,
              value      = excluded.value,
              updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""


class SQLiteCheckpointStore(ICheckpointStore):
    """SQLite checkpoint persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)
        self._initialized = False

    async def initialize(self) -> None:
        """Create the checkpoints table if it doesn't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_CREATE_TABLE_SQL)
                await db.commit()
        except aiosqlite.Error as exc:
            raise TransportError(
                f"Failed to initialise checkpoint database: {exc}",
                cause=exc,
                provider_name="sqlite_checkpoint",
            ) from exc
        self._initialized = True
        logger.info("checkpoint_db_initialized", path=str(self._db_path))

    async def get(self, key: str) -> CheckpointValue | None:
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT kind, value FROM checkpoints WHERE key = ?;", (key,)
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        kind, value = row
        if kind == "string":
            return value.decode("utf-8") if isinstance(value, bytes) else str(value)
        return bytes(value)

    async def set(self, key: str, value: CheckpointValue) -> None:
        await self._ensure_initialized()
        if isinstance(value, str):
            kind, blob = "string", value.encode("utf-8")
        else:
            kind, blob = "binary", bytes(value)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_UPSERT_SQL, (key, kind, blob))
            await db.commit()
        logger.debug("checkpoint_set", key=key)

    async def delete(self, key: str) -> None:
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("DELETE FROM checkpoints WHERE key = ?;", (key,))
            await db.commit()

    async def keys(self) -> list[str]:
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("SELECT key FROM checkpoints ORDER BY key;")
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()
