"""SQL dialect abstraction for the key-value store.

Provides a ``Dialect`` protocol and concrete implementations for every
supported backend.  The store builds its five statements from dialect
fragments (placeholders, identifier quoting, upsert, DDL types) without
importing or referencing any database driver.

Manifesto:
    The same store must run on SQLite (tests, single process), PostgreSQL
    and MySQL/MariaDB.  Without a dialect layer the store would carry one
    copy of every statement per backend.

    - **One interface:** Dialect protocol for all SQL generation
    - **Zero coupling:** The store never imports database drivers
    - **Testable:** SQLiteDialect for tests, the others for production

Architecture::

    Store code:
    ┌────────────────────────────────────────────────────────────────┐
    │  d.upsert(d.quote(table), [d.quote("key"), d.quote("value")],  │
    │           [d.quote("key")])                                    │
    └────────────────────────────────────────────────────────────────┘
                              │
                              ▼
    ┌──────────────┐ ┌──────────────────┐ ┌───────────────────────────┐
    │ SQLite       │ │ PostgreSQL       │ │ MySQL / MariaDB           │
    │ ?  "key"     │ │ %s  "key"        │ │ %s  `key`                 │
    │ ON CONFLICT  │ │ ON CONFLICT      │ │ ON DUPLICATE KEY UPDATE   │
    │ BLOB         │ │ BYTEA            │ │ MEDIUMBLOB                │
    └──────────────┘ └──────────────────┘ └───────────────────────────┘

Examples:
    >>> from tablekv.dialect import get_dialect
    >>> d = get_dialect("sqlite")
    >>> d.placeholders(2)
    '?, ?'
    >>> d.quote("key")
    '"key"'

Guardrails:
    ❌ DON'T: Interpolate values into SQL
    ✅ DO: Interpolate only quoted identifiers; bind values via placeholders

Tags:
    dialect, sql, abstraction, portability, database, tablekv

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a **SQL fragment** (string) that is valid for
    the target database.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    # -- Placeholder generation --------------------------------------------

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list.

        >>> dialect.placeholders(3)
        '?, ?, ?'          # SQLite
        '%s, %s, %s'       # PostgreSQL / MySQL / MariaDB
        """
        ...

    # -- Identifiers -------------------------------------------------------

    def quote(self, identifier: str) -> str:
        """Quote a table or column name (``key`` is reserved in MySQL)."""
        ...

    # -- DML helpers -------------------------------------------------------

    def upsert(
        self,
        table: str,
        columns: list[str],
        key_columns: list[str],
    ) -> str:
        """``INSERT … ON CONFLICT (keys) DO UPDATE SET …`` or equivalent.

        ``table`` and ``columns`` are expected to be quoted already.
        Returns the full SQL statement with placeholders.
        """
        ...

    # -- DDL helpers -------------------------------------------------------

    def string_type(self, length: int) -> str:
        """Bounded string column type."""
        ...

    def binary_type(self) -> str:
        """Large variable-length binary column type."""
        ...

    def create_table_if_not_exists(
        self,
        table: str,
        columns: list[tuple[str, str]],
        key_columns: list[str],
    ) -> str:
        """``CREATE TABLE IF NOT EXISTS`` with a primary key.

        ``columns`` is a list of ``(quoted_name, column_type)`` pairs.
        """
        ...


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite dialect — ``?`` placeholders, ``"double quoted"`` identifiers."""

    @property
    def name(self) -> str:
        return "sqlite"

    # -- Placeholders ------------------------------------------------------

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    # -- Identifiers -------------------------------------------------------

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    # -- DML ---------------------------------------------------------------

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        keys = ", ".join(key_columns)
        update_cols = [c for c in columns if c not in key_columns]
        updates = ", ".join(f"{c} = excluded.{c}" for c in update_cols)
        return (
            f"INSERT INTO {table} ({cols}) VALUES ({ph}) "
            f"ON CONFLICT ({keys}) DO UPDATE SET {updates}"
        )

    # -- DDL ---------------------------------------------------------------

    def string_type(self, length: int) -> str:
        return f"VARCHAR({length})"

    def binary_type(self) -> str:
        return "BLOB"

    def create_table_if_not_exists(
        self, table: str, columns: list[tuple[str, str]], key_columns: list[str]
    ) -> str:
        defs = ", ".join(f"{name} {col_type}" for name, col_type in columns)
        return f"CREATE TABLE IF NOT EXISTS {table} ({defs}, PRIMARY KEY ({', '.join(key_columns)}))"


class PostgreSQLDialect:
    """PostgreSQL dialect — ``%s`` placeholders (psycopg2), ``BYTEA`` values."""

    @property
    def name(self) -> str:
        return "postgresql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        keys = ", ".join(key_columns)
        update_cols = [c for c in columns if c not in key_columns]
        updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in update_cols)
        return (
            f"INSERT INTO {table} ({cols}) VALUES ({ph}) "
            f"ON CONFLICT ({keys}) DO UPDATE SET {updates}"
        )

    def string_type(self, length: int) -> str:
        return f"VARCHAR({length})"

    def binary_type(self) -> str:
        return "BYTEA"

    def create_table_if_not_exists(
        self, table: str, columns: list[tuple[str, str]], key_columns: list[str]
    ) -> str:
        defs = ", ".join(f"{name} {col_type}" for name, col_type in columns)
        return f"CREATE TABLE IF NOT EXISTS {table} ({defs}, PRIMARY KEY ({', '.join(key_columns)}))"


class MySQLDialect:
    """MySQL dialect — ``%s`` placeholders, backtick identifiers.

    Compatible with ``mysql.connector`` and ``PyMySQL`` (both use
    ``%s`` format paramstyle).
    """

    @property
    def name(self) -> str:
        return "mysql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def quote(self, identifier: str) -> str:
        return "`" + identifier.replace("`", "``") + "`"

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        update_cols = [c for c in columns if c not in key_columns]
        updates = ", ".join(f"{c} = VALUES({c})" for c in update_cols)
        return (
            f"INSERT INTO {table} ({cols}) VALUES ({ph}) "
            f"ON DUPLICATE KEY UPDATE {updates}"
        )

    def string_type(self, length: int) -> str:
        return f"VARCHAR({length})"

    def binary_type(self) -> str:
        return "MEDIUMBLOB"

    def create_table_if_not_exists(
        self, table: str, columns: list[tuple[str, str]], key_columns: list[str]
    ) -> str:
        defs = ", ".join(f"{name} {col_type}" for name, col_type in columns)
        return f"CREATE TABLE IF NOT EXISTS {table} ({defs}, CONSTRAINT PK PRIMARY KEY ({', '.join(key_columns)}))"


class MariaDBDialect(MySQLDialect):
    """MariaDB dialect — same SQL surface as MySQL."""

    @property
    def name(self) -> str:
        return "mariadb"


# =========================================================================
# Registry / Factory
# =========================================================================

# Pre-instantiated singletons (dialects are stateless)
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
    "mysql": MySQLDialect(),
    "mariadb": MariaDBDialect(),
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Args:
        db_type: One of ``'sqlite'``, ``'postgresql'``, ``'postgres'``,
                 ``'mysql'``, ``'mariadb'`` (or a ``DatabaseType``).

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower() if isinstance(db_type, str) else db_type.value
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres'})}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation (third-party drivers, test doubles)."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    # Protocol
    "Dialect",
    # Implementations
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "MariaDBDialect",
    # Factory
    "get_dialect",
    "register_dialect",
]
