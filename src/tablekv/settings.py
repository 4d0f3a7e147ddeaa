"""Environment-driven settings for tablekv.

The store itself is configured with plain constructor arguments
(:class:`tablekv.store.StoreConfig`).  Services that prefer twelve-factor
configuration can instead build a store from :class:`StoreSettings`, which
reads ``TABLEKV_*`` environment variables and an optional ``.env`` file.

Features:
    - **KVBaseSettings:** log level / JSON toggle shared by every settings class
    - **StoreSettings:** database URL, table name, per-operation timeout
    - **.env file support:** automatic loading via pydantic-settings
    - **Extra ignore:** unknown env vars don't cause startup failures

Examples:
    >>> import os
    >>> os.environ["TABLEKV_DATABASE_URL"] = "mariadb://kv:kv@db:3306/app"
    >>> os.environ["TABLEKV_TIMEOUT"] = "1.5"
    >>> StoreSettings().timeout
    1.5

Tags:
    settings, configuration, pydantic, environment, tablekv
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class KVBaseSettings(BaseSettings):
    """Common settings shared across tablekv settings classes.

    Fields
    ──────
    log_level    : structlog log level
    log_json     : force JSON (True) or console (False) output; None = auto
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None


class StoreSettings(KVBaseSettings):
    """Settings for a single key-value store (``TABLEKV_`` prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="TABLEKV_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite:///:memory:",
        description="sqlite:///path, postgresql://, mysql:// or mariadb:// URL",
    )
    table: str = Field(default="kv_store", description="Backing table name")
    timeout: float = Field(
        default=3.0,
        description="Per-operation timeout in seconds (0 = default)",
    )

    @field_validator("timeout")
    @classmethod
    def _non_negative_timeout(cls, value: float) -> float:
        if value < 0:
            raise ValueError("timeout must be >= 0")
        return value


__all__ = [
    "KVBaseSettings",
    "StoreSettings",
]
