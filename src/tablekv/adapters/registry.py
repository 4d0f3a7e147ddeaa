"""Adapter lookup by backend name or database URL.

The store takes an adapter instance; this module is how configuration
turns into one.  Names are case-insensitive and ``postgres`` is accepted
for ``postgresql``.

Examples:
    >>> get_adapter("sqlite", path="kv.db")
    >>> get_adapter_from_url("mariadb://kv:secret@db:3306/app", pool_size=10)
    >>> get_adapter_from_url("postgresql://db/app", connect_timeout=3)

Tags:
    tablekv, database, registry, factory, url
"""

from __future__ import annotations

from typing import Any

from tablekv.errors import ConfigError

from .base import DatabaseAdapter
from .mysql import MariaDBAdapter, MySQLAdapter
from .postgresql import PostgreSQLAdapter
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType

_ALIASES = {"postgres": DatabaseType.POSTGRESQL.value}


class AdapterRegistry:
    """Backend name to adapter class, with room for third-party backends."""

    def __init__(self):
        self._classes: dict[str, type[DatabaseAdapter]] = {
            DatabaseType.SQLITE.value: SQLiteAdapter,
            DatabaseType.POSTGRESQL.value: PostgreSQLAdapter,
            DatabaseType.MYSQL.value: MySQLAdapter,
            DatabaseType.MARIADB.value: MariaDBAdapter,
        }

    @staticmethod
    def _key(name: DatabaseType | str) -> str:
        key = name.value if isinstance(name, DatabaseType) else name.lower()
        return _ALIASES.get(key, key)

    def register(self, name: str, adapter_class: type[DatabaseAdapter]) -> None:
        """Make *adapter_class* available under *name*, replacing any previous entry."""
        self._classes[self._key(name)] = adapter_class

    def create(self, name: DatabaseType | str, **kwargs: Any) -> DatabaseAdapter:
        """Instantiate the adapter registered under *name*; nothing is connected yet."""
        key = self._key(name)
        try:
            adapter_class = self._classes[key]
        except KeyError:
            raise ConfigError(f"Unknown database adapter: {key}") from None
        return adapter_class(**kwargs)

    def list_adapters(self) -> list[str]:
        """Accepted backend names, aliases included."""
        return sorted([*self._classes, *_ALIASES])


adapter_registry = AdapterRegistry()


def get_adapter(db_type: DatabaseType | str, **kwargs: Any) -> DatabaseAdapter:
    """Build an unconnected adapter from the global registry."""
    return adapter_registry.create(db_type, **kwargs)


def get_adapter_from_url(
    url: str,
    *,
    connect_timeout: int | None = None,
    **kwargs: Any,
) -> DatabaseAdapter:
    """Build an unconnected adapter from a database URL.

    ``connect_timeout`` applies to server backends and is ignored for
    SQLite, which opens a local file.
    """
    config = DatabaseConfig.from_url(url)
    if config.db_type is DatabaseType.SQLITE:
        return get_adapter(config.db_type, path=config.path, **kwargs)
    if connect_timeout is not None:
        kwargs["connect_timeout"] = connect_timeout
    return get_adapter(
        config.db_type,
        host=config.host,
        port=config.port,
        database=config.database,
        username=config.username,
        password=config.password,
        **kwargs,
    )


__all__ = [
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
    "get_adapter_from_url",
]
