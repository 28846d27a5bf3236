"""Application settings loaded from environment variables via pydantic-settings.

Values are read from (highest priority first):

    1. Environment variables, prefixed ``DROPNOTE_`` (e.g. ``DROPNOTE_NETWORK``)
    2. A ``.env`` file in the working directory
    3. The defaults below

``APP_ENV`` and ``LOG_LEVEL`` are also accepted unprefixed so the logging
setup and the settings agree on the environment.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Dropnote indexer settings."""

    model_config = SettingsConfigDict(
        env_prefix="DROPNOTE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === App Config ===
    app_env: str = Field(
        default="development",
        validation_alias=AliasChoices("DROPNOTE_APP_ENV", "APP_ENV", "app_env"),
    )
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("DROPNOTE_LOG_LEVEL", "LOG_LEVEL", "log_level"),
    )
    config_path: str = "config/config.yaml"

    # === Network ===
    # Name of an entry in config.yaml's ``networks`` table.
    network: str = "cosmoshub"
    # Overrides the table's REST URL when non-empty.
    rest_url: str = ""
    request_timeout: float = 30.0
    block_poll_interval: float = 3.0
    page_limit: int = 100
    # Comma-separated; empty means the network's default address.
    watch_addresses: str = ""

    # === Pipeline ===
    # 0 = no cap on concurrently processed transactions per page.
    max_concurrency: int = 0

    # === Checkpoints ===
    checkpoint_backend: str = "json"  # memory | json | sqlite
    checkpoint_path: str = "data/checkpoints.json"
    checkpoint_flush_delay: float = 1.0

    def get_watch_addresses(self) -> list[str]:
        """Return the configured watch addresses, or an empty list."""
        return [a.strip() for a in self.watch_addresses.split(",") if a.strip()]
