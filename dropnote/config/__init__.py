"""Configuration module: exports Settings, load_config and resolve_network."""

from dropnote.config.loader import load_config, resolve_network
from dropnote.config.settings import Settings

__all__ = ["Settings", "load_config", "resolve_network"]
