"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

    1. config/config.yaml  : The network table
    2. .env file           : Local developer overrides (not committed)
    3. Environment vars    : Set at deploy time

``load_config()`` reads the YAML file first, then applies the
``DROPNOTE_REST_URL`` override from :class:`Settings` to the selected
network.  Every other tunable lives on :class:`Settings` alone.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from dropnote.config.settings import Settings
from dropnote.models.ledger import NetworkConfig
from dropnote.utils.errors import ConfigurationError


def load_config(path: str | None = None, settings: Settings | None = None) -> dict[str, Any]:
    """Load the YAML network table and merge environment overrides into it.

    Args:
        path: Path to the YAML configuration file.  Defaults to
              ``settings.config_path``.
        settings: Settings instance to merge.  A fresh one is read from the
                  environment when omitted.

    Returns:
        Configuration dictionary with a ``networks`` table.
    """
    settings = settings or Settings()
    config_path = Path(path or settings.config_path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}
    yaml_config.setdefault("networks", {})

    env_overrides: dict[str, Any] = {}
    if settings.rest_url:
        env_overrides["networks"] = {settings.network: {"rest_url": settings.rest_url}}

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def resolve_network(name: str, config: dict[str, Any]) -> NetworkConfig:
    """Build the :class:`NetworkConfig` for *name* from the ``networks`` table."""
    networks = config.get("networks") or {}
    entry = networks.get(name)
    if not isinstance(entry, dict):
        known = ", ".join(sorted(networks)) or "none"
        raise ConfigurationError(f"Unknown network {name!r} (configured: {known})")
    try:
        return NetworkConfig(name=name, **entry)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration for network {name!r}: {exc}") from exc


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
