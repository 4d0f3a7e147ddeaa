"""Database adapters -- one interface for every supported backend.

Manifesto:
    The store must run identically on SQLite (tests, single process),
    PostgreSQL and MySQL/MariaDB.  Each adapter owns its driver
    connection or pool, arms the per-call deadline and translates driver
    exceptions into :mod:`tablekv.errors`.

    Each server adapter is **import-guarded**: the database driver is only
    required at ``connect()`` time, not at import time.  Install the
    corresponding extra::

        pip install tablekv[postgresql]   # psycopg2-binary
        pip install tablekv[mysql]        # mysql-connector-python

Architecture::

    DatabaseAdapter (base.py)        connect / transaction(timeout) / query
        |-- SQLiteAdapter            stdlib sqlite3 (always available)
        |-- PostgreSQLAdapter        psycopg2 (optional)
        |-- MySQLAdapter             mysql.connector (optional)
            |-- MariaDBAdapter       mysql.connector (optional)

    AdapterRegistry (registry.py)    Singleton: DatabaseType -> adapter class
    DatabaseConfig (types.py)        Connection parameters + URL parsing
    DatabaseType (types.py)          Enum of supported backends

Guardrails:
    ❌ ``cursor.execute("SELECT ... WHERE key='" + key + "'")``
    ✅ ``cursor.execute(f"SELECT ... WHERE key = {d.placeholder(0)}", (key,))``
    ❌ Importing optional drivers at module scope
    ✅ Import-guarded at ``connect()`` time with clear ``ConfigError``

Tags:
    tablekv, database, adapters, multi-backend, import-guarded,
    registry-pattern, postgresql, sqlite, mysql, mariadb
"""

from tablekv.dialect import Dialect, get_dialect
from tablekv.protocols import Connection

from .base import DatabaseAdapter
from .mysql import MariaDBAdapter, MySQLAdapter
from .postgresql import PostgreSQLAdapter
from .registry import AdapterRegistry, adapter_registry, get_adapter, get_adapter_from_url
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType

__all__ = [
    # Types
    "DatabaseType",
    "DatabaseConfig",
    # Protocols / Abstractions
    "Connection",
    "Dialect",
    "get_dialect",
    # Base class
    "DatabaseAdapter",
    # Implementations
    "SQLiteAdapter",
    "PostgreSQLAdapter",
    "MySQLAdapter",
    "MariaDBAdapter",
    # Registry
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
    "get_adapter_from_url",
]
