"""Dropnote indexer wiring.

Builds the ledger client, checkpoint store and indexer from ``Settings`` and
``config/config.yaml``.  Used by the CLI and by host applications that want
a ready-to-run indexer without assembling the providers by hand.
"""

from __future__ import annotations

from typing import Any

import httpx

from dropnote.config.loader import load_config, resolve_network
from dropnote.config.settings import Settings
from dropnote.interfaces.checkpoint_store import ICheckpointStore
from dropnote.models.ledger import NetworkConfig
from dropnote.pipeline.handlers import HandlerRegistry
from dropnote.pipeline.indexer import DropnoteIndexer
from dropnote.providers.checkpoint.json_file_store import JsonFileCheckpointStore
from dropnote.providers.checkpoint.memory_store import MemoryCheckpointStore
from dropnote.providers.checkpoint.sqlite_store import SQLiteCheckpointStore
from dropnote.providers.ledger.cosmos_rest_provider import CosmosRestLedgerClient
from dropnote.utils.errors import ConfigurationError


def build_checkpoint_store(app_settings: Settings) -> ICheckpointStore:
    """Select the checkpoint backend named by ``checkpoint_backend``."""
    backend = app_settings.checkpoint_backend.lower()
    if backend == "memory":
        return MemoryCheckpointStore()
    if backend == "json":
        return JsonFileCheckpointStore(
            path=app_settings.checkpoint_path,
            flush_delay=app_settings.checkpoint_flush_delay,
        )
    if backend == "sqlite":
        return SQLiteCheckpointStore(db_path=app_settings.checkpoint_path)
    raise ConfigurationError(f"Unknown checkpoint backend {app_settings.checkpoint_backend!r}")


def build_ledger_client(
    app_settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> CosmosRestLedgerClient:
    http_client = http_client or httpx.AsyncClient(timeout=app_settings.request_timeout)
    return CosmosRestLedgerClient(
        http_client=http_client,
        poll_interval=app_settings.block_poll_interval,
        page_limit=app_settings.page_limit,
    )


def build_indexer(
    custom_settings: Settings | None = None,
    registry: HandlerRegistry | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Construct the indexer and its collaborators.

    Parameters
    ----------
    custom_settings:
        Application settings.  Read from the environment if not provided.
    registry:
        Handler registry to use; built-in handlers when omitted.
    http_client:
        Shared HTTP client; one is created with the configured timeout
        when omitted.

    Returns
    -------
    dict
        ``indexer``, ``network``, ``client``, ``store``, ``config`` and
        ``settings``, keyed by role name.
    """
    s = custom_settings or Settings()
    config = load_config(settings=s)
    network: NetworkConfig = resolve_network(s.network, config)

    client = build_ledger_client(s, http_client=http_client)
    store = build_checkpoint_store(s)
    indexer = DropnoteIndexer(
        client=client,
        store=store,
        registry=registry,
        max_concurrency=s.max_concurrency or None,
    )

    return {
        "indexer": indexer,
        "network": network,
        "client": client,
        "store": store,
        "config": config,
        "settings": s,
    }
