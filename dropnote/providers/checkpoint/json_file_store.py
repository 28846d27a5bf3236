"""JSON-file checkpoint store with debounced writes.

The file holds two maps, one for string values and one for binary values
(base64-encoded on disk)::

    {"strings": {"cosmoshub.height": "20000000"}, "binary": {}}

Writes are coalesced: every ``set``/``delete`` (re)starts a timer of
``flush_delay`` seconds and only the state at expiry is written, so the last
write always wins.  :meth:`flush` and :meth:`close` write any pending state
immediately.  File reads and writes run on a worker thread; each write
serializes a snapshot of the maps taken on the event loop.  A missing or
unreadable file starts empty.
"""

from __future__ import annotations

import asyncio
import base64
import json
from pathlib import Path

import structlog

from dropnote.interfaces.checkpoint_store import CheckpointValue, ICheckpointStore

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_PATH = Path("data/checkpoints.json")
_DEFAULT_FLUSH_DELAY = 1.0


class JsonFileCheckpointStore(ICheckpointStore):
    """File-backed checkpoint store.

    Parameters
    ----------
    path:
        Location of the JSON file.  Parent directories are created on write.
    flush_delay:
        Seconds of quiet before pending changes are written.
    """

    def __init__(
        self,
        path: str | Path = _DEFAULT_PATH,
        flush_delay: float = _DEFAULT_FLUSH_DELAY,
    ) -> None:
        self._path = Path(path)
        self._flush_delay = flush_delay
        self._strings: dict[str, str] | None = None
        self._binary: dict[str, bytes] | None = None
        self._pending: asyncio.TimerHandle | None = None
        self._writer: asyncio.Task | None = None
        self._dirty = False
        self._load_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # ICheckpointStore implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> CheckpointValue | None:
        strings, binary = await self._load()
        if key in strings:
            return strings[key]
        return binary.get(key)

    async def set(self, key: str, value: CheckpointValue) -> None:
        strings, binary = await self._load()
        if isinstance(value, str):
            strings[key] = value
            binary.pop(key, None)
        else:
            binary[key] = bytes(value)
            strings.pop(key, None)
        self._schedule_save()

    async def delete(self, key: str) -> None:
        strings, binary = await self._load()
        strings.pop(key, None)
        binary.pop(key, None)
        self._schedule_save()

    async def keys(self) -> list[str]:
        strings, binary = await self._load()
        return list(dict.fromkeys([*strings, *binary]))

    async def flush(self) -> None:
        """Write pending changes now."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        await self._save()

    async def close(self) -> None:
        await self.flush()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _load(self) -> tuple[dict[str, str], dict[str, bytes]]:
        async with self._load_lock:
            if self._strings is None or self._binary is None:
                self._strings, self._binary = await asyncio.to_thread(self._read)
        return self._strings, self._binary

    def _read(self) -> tuple[dict[str, str], dict[str, bytes]]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            strings = {str(k): str(v) for k, v in data.get("strings", {}).items()}
            binary = {str(k): base64.b64decode(v) for k, v in data.get("binary", {}).items()}
        except FileNotFoundError:
            logger.debug("checkpoint_file_missing", path=str(self._path))
            return {}, {}
        except (OSError, ValueError, AttributeError) as exc:
            logger.warning("checkpoint_file_unreadable", path=str(self._path), error=str(exc))
            return {}, {}
        return strings, binary

    def _schedule_save(self) -> None:
        self._dirty = True
        if self._pending is not None:
            self._pending.cancel()
        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(self._flush_delay, self._save_later)

    def _save_later(self) -> None:
        self._pending = None
        self._writer = asyncio.get_running_loop().create_task(self._save_logged())

    async def _save_logged(self) -> None:
        try:
            await self._save()
        except OSError as exc:
            logger.error("checkpoint_file_write_failed", path=str(self._path), error=str(exc))

    async def _save(self) -> None:
        async with self._write_lock:
            if not self._dirty or self._strings is None or self._binary is None:
                return
            strings, binary = dict(self._strings), dict(self._binary)
            self._dirty = False
            try:
                await asyncio.to_thread(self._write, strings, binary)
            except OSError:
                self._dirty = True
                raise

    def _write(self, strings: dict[str, str], binary: dict[str, bytes]) -> None:
        payload = {
            "strings": strings,
            "binary": {k: base64.b64encode(v).decode("ascii") for k, v in binary.items()},
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload), encoding="utf-8")
        tmp_path.replace(self._path)
        logger.debug("checkpoint_file_written", path=str(self._path), keys=len(strings))
