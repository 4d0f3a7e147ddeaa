"""Database adapter base class.

Manifesto:
    All database adapters share common lifecycle (connect/disconnect),
    deadline-bounded transactions and driver error translation.  The
    abstract base class defines the interface contract so the store never
    depends on a specific database vendor.

Features:
    - Abstract ``connect()``, ``disconnect()``, ``get_connection()``
    - ``transaction(timeout)``: checkout, arm deadline, commit/rollback,
      release, translate driver errors into :mod:`tablekv.errors`
    - ``execute()`` / ``query()`` / ``query_one()`` convenience helpers
    - ``fetch_all_sets()`` drains every result set a cursor reports
    - Context-manager protocol for connection lifecycle

Tags:
    tablekv, database, abstract-base, adapter-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from tablekv.dialect import Dialect, get_dialect
from tablekv.errors import KVError
from tablekv.logging import get_logger
from tablekv.protocols import Connection, Cursor

from .types import DatabaseConfig, DatabaseType

logger = get_logger(__name__)

# smallest budget handed to _arm_timeout once checkout has used the rest
_MIN_BUDGET = 0.001


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Subclasses own the driver connection (or pool).  Whoever constructs
    the adapter owns its lifetime; consumers such as the store only borrow
    connections through :meth:`transaction`.
    """

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._connected = False
        self._dialect: Dialect = get_dialect(config.db_type.value)

    @property
    def dialect(self) -> Dialect:
        """SQL dialect for this adapter's database type."""
        return self._dialect

    @property
    def db_type(self) -> DatabaseType:
        """Database type."""
        return self._config.db_type

    @property
    def is_connected(self) -> bool:
        """Whether adapter is connected."""
        return self._connected

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to database."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to database."""
        ...

    @abstractmethod
    def get_connection(self) -> Connection:
        """Get a connection (may be from pool)."""
        ...

    @abstractmethod
    def translate_error(self, error: Exception, timeout: float | None = None) -> KVError | None:
        """Map a driver exception to a :class:`KVError`.

        Returns ``None`` for exceptions that did not come from the driver;
        those propagate unchanged.
        """
        ...

    # -- Deadline hooks ----------------------------------------------------

    def _checkout(self, timeout: float | None) -> Connection:  # noqa: ARG002
        """Borrow a connection for one transaction."""
        return self.get_connection()

    def _arm_timeout(self, conn: Connection, timeout: float) -> None:  # noqa: ARG002
        """Bound every statement on *conn* by *timeout* seconds."""
        return None

    def _release(self, conn: Connection) -> None:  # noqa: ARG002
        """Give a borrowed connection back."""
        return None

    # -- Transactions ------------------------------------------------------

    @contextmanager
    def transaction(self, timeout: float | None = None) -> Iterator[Connection]:
        """Context manager for a single, optionally deadline-bounded transaction.

        Waiting for a connection and the statements that follow share one
        budget of *timeout* seconds.  Commits on success and rolls back on
        any exception.  Driver exceptions are re-raised as :class:`KVError`
        subclasses with the original chained as ``cause``.
        """
        started = time.monotonic()
        try:
            conn = self._checkout(timeout)
        except KVError:
            raise
        except Exception as e:
            raise self._translated(e, timeout) from e

        try:
            if timeout is not None:
                remaining = timeout - (time.monotonic() - started)
                self._arm_timeout(conn, max(remaining, _MIN_BUDGET))
            yield conn
            conn.commit()
        except KVError:
            self._rollback_quietly(conn)
            raise
        except Exception as e:
            self._rollback_quietly(conn)
            raise self._translated(e, timeout) from e
        finally:
            self._release(conn)

    def _translated(self, error: Exception, timeout: float | None) -> Exception:
        translated = self.translate_error(error, timeout)
        return translated if translated is not None else error

    def _rollback_quietly(self, conn: Connection) -> None:
        try:
            conn.rollback()
        except Exception as e:
            logger.warning(
                "rollback_failed",
                backend=self.db_type.value,
                error_type=type(e).__name__,
                error=str(e),
            )

    # -- Query helpers -----------------------------------------------------

    def fetch_all_sets(self, cursor: Cursor) -> list[Any]:
        """Fetch rows from the current result set and every following one."""
        rows: list[Any] = []
        while True:
            rows.extend(cursor.fetchall())
            nextset = getattr(cursor, "nextset", None)
            if nextset is None or not nextset():
                return rows

    def execute(self, sql: str, params: tuple = (), *, timeout: float | None = None) -> int:
        """Execute a statement in its own transaction; return ``rowcount``."""
        with self.transaction(timeout) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, params)
                return cursor.rowcount
            finally:
                cursor.close()

    def query(
        self, sql: str, params: tuple = (), *, timeout: float | None = None
    ) -> list[dict[str, Any]]:
        """Execute query and return results as dicts."""
        with self.transaction(timeout) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, params)
                columns = [desc[0] for desc in cursor.description]
                return [dict(zip(columns, row, strict=False)) for row in self.fetch_all_sets(cursor)]
            finally:
                cursor.close()

    def query_one(
        self, sql: str, params: tuple = (), *, timeout: float | None = None
    ) -> dict[str, Any] | None:
        """Execute query and return single result."""
        results = self.query(sql, params, timeout=timeout)
        return results[0] if results else None

    def __enter__(self) -> DatabaseAdapter:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.disconnect()


__all__ = [
    "DatabaseAdapter",
]
