"""
Structural protocols for database handles.

Adapters hand out driver connections (``sqlite3.Connection``,
``psycopg2`` pooled connections, ``mysql.connector`` pooled connections).
The store never imports a driver; it only relies on the DB-API 2.0 shape
described here.

Architecture:
    ::

        protocols.py
        ├── Cursor       — execute / fetchone / fetchall / rowcount
        └── Connection   — cursor / commit / rollback

Tags:
    protocol, connection, cursor, dbapi, tablekv
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cursor(Protocol):
    """Minimal DB-API 2.0 cursor used by the store."""

    rowcount: int

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from last query."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from last query."""
        ...

    def close(self) -> None:
        """Release the cursor."""
        ...


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface.

    Satisfied by ``sqlite3.Connection``, psycopg2 connections and
    mysql.connector pooled connections without any wrapping.

    Examples:
        >>> cur = conn.cursor()
        >>> cur.execute("SELECT value FROM kv_store WHERE key = ?", ("a",))
        >>> cur.fetchone()
    """

    def cursor(self) -> Cursor:
        """Open a new cursor."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


__all__ = [
    "Connection",
    "Cursor",
]
