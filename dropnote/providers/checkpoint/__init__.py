"""Checkpoint stores.

MemoryCheckpointStore is dict-backed and forgets everything on exit.
JsonFileCheckpointStore and SQLiteCheckpointStore persist across restarts,
so a watch resumes from its last seen block instead of the default lookback.
PrefixedMappingCheckpointStore adapts any string-only mapping.
"""

from dropnote.providers.checkpoint.json_file_store import JsonFileCheckpointStore
from dropnote.providers.checkpoint.mapping_store import PrefixedMappingCheckpointStore
from dropnote.providers.checkpoint.memory_store import MemoryCheckpointStore
from dropnote.providers.checkpoint.sqlite_store import SQLiteCheckpointStore

__all__ = [
    "JsonFileCheckpointStore",
    "MemoryCheckpointStore",
    "PrefixedMappingCheckpointStore",
    "SQLiteCheckpointStore",
]
