"""
tablekv - a key-value store on top of one relational table.

Backends: SQLite (stdlib), PostgreSQL (psycopg2), MySQL and MariaDB
(mysql-connector-python).
"""

__version__ = "0.1.0"

from tablekv.adapters import DatabaseAdapter, SQLiteAdapter, get_adapter, get_adapter_from_url
from tablekv.errors import (
    DatabaseConnectionError,
    KeyNotFoundError,
    KVError,
    TimeoutError,
    UnknownKeyError,
)
from tablekv.store import (
    DEFAULT_TIMEOUT,
    KeyValueStore,
    StoreConfig,
    new_store,
    new_store_from_settings,
)

__all__ = [
    "__version__",
    # Store
    "KeyValueStore",
    "StoreConfig",
    "DEFAULT_TIMEOUT",
    "new_store",
    "new_store_from_settings",
    # Adapters
    "DatabaseAdapter",
    "SQLiteAdapter",
    "get_adapter",
    "get_adapter_from_url",
    # Errors
    "KVError",
    "KeyNotFoundError",
    "UnknownKeyError",
    "TimeoutError",
    "DatabaseConnectionError",
]
