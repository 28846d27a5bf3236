"""Checkpoint store over any string-only key/value mapping.

Mirrors browser ``localStorage`` semantics: the backend only stores strings,
so binary values are base64-encoded.  Keys are namespaced as
``"{prefix}::string::{key}"`` and ``"{prefix}::binary::{key}"`` so several
stores can share one backend (e.g. a ``dbm`` file or a plain dict).
"""

from __future__ import annotations

import base64
from collections.abc import MutableMapping

from dropnote.interfaces.checkpoint_store import CheckpointValue, ICheckpointStore


class PrefixedMappingCheckpointStore(ICheckpointStore):
    """Namespaced checkpoint store on a ``MutableMapping[str, str]``."""

    def __init__(self, prefix: str, backend: MutableMapping[str, str] | None = None) -> None:
        self._prefix = prefix
        self._backend: MutableMapping[str, str] = backend if backend is not None else {}

    def _string_key(self, key: str) -> str:
        return f"{self._prefix}::string::{key}"

    def _binary_key(self, key: str) -> str:
        return f"{self._prefix}::binary::{key}"

    async def get(self, key: str) -> CheckpointValue | None:
        encoded = self._backend.get(self._binary_key(key))
        if encoded is not None:
            return base64.b64decode(encoded)
        return self._backend.get(self._string_key(key))

    async def set(self, key: str, value: CheckpointValue) -> None:
        if isinstance(value, str):
            self._backend.pop(self._binary_key(key), None)
            self._backend[self._string_key(key)] = value
        else:
            self._backend.pop(self._string_key(key), None)
            self._backend[self._binary_key(key)] = base64.b64encode(value).decode("ascii")

    async def delete(self, key: str) -> None:
        self._backend.pop(self._binary_key(key), None)
        self._backend.pop(self._string_key(key), None)

    async def keys(self) -> list[str]:
        found: list[str] = []
        for namespace in ("string", "binary"):
            marker = f"{self._prefix}::{namespace}::"
            found.extend(k[len(marker):] for k in self._backend if k.startswith(marker))
        return list(dict.fromkeys(found))
