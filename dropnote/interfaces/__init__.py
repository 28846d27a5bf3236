"""Public interface definitions for the indexer's external collaborators.

The indexer reaches the chain and its checkpoint medium exclusively through
the abstract base classes defined here.  Concrete adapters live in
``dropnote/providers/`` and are wired together in ``dropnote/main.py``.

    Interface          →  Concrete implementations (in dropnote/providers/)
    ─────────────────────────────────────────────────────────────────────
    ILedgerClient      →  CosmosRestLedgerClient
    ICheckpointStore   →  MemoryCheckpointStore, JsonFileCheckpointStore,
                          PrefixedMappingCheckpointStore, SQLiteCheckpointStore
"""

from dropnote.interfaces.checkpoint_store import CheckpointValue, ICheckpointStore, height_key
from dropnote.interfaces.ledger_client import BlockCallback, ILedgerClient, Unsubscribe

__all__ = [
    "BlockCallback",
    "CheckpointValue",
    "ICheckpointStore",
    "ILedgerClient",
    "Unsubscribe",
    "height_key",
]
