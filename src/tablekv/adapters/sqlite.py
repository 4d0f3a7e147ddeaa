"""SQLite database adapter."""

from __future__ import annotations

import sqlite3
import threading
import time
from typing import Any

from tablekv.errors import (
    DatabaseConnectionError,
    IntegrityError,
    KVError,
    QueryError,
    TimeoutError,
)
from tablekv.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType

# VM instructions between deadline checks
_PROGRESS_STEPS = 1000


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter.

    Uses the built-in sqlite3 module with one shared connection.  Suitable for:
    - Development and testing
    - Single-process applications

    Concurrent transactions are serialized on a lock; waiting for it counts
    against the caller's timeout.
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        readonly: bool = False,
        timeout: float = 5.0,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.SQLITE,
            path=path,
            readonly=readonly,
            options=kwargs,
        )
        super().__init__(config)
        self._timeout = timeout
        self._conn: Any = None
        self._lock = threading.RLock()

    def connect(self) -> None:
        """Connect to SQLite database."""
        path = self._config.path or ":memory:"
        uri = path.startswith("file:") or "?" in path

        try:
            self._conn = sqlite3.connect(
                path,
                timeout=self._timeout,
                check_same_thread=False,
                uri=uri,
            )
            if self._config.readonly:
                self._conn.execute("PRAGMA query_only = ON")

            self._connected = True

        except sqlite3.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to SQLite: {e}",
                cause=e,
            ) from e

    def disconnect(self) -> None:
        """Close SQLite connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                self._connected = False

    def get_connection(self) -> Connection:
        """Get the SQLite connection."""
        if not self._conn:
            self.connect()
        return self._conn

    # -- Deadline hooks ----------------------------------------------------

    def _checkout(self, timeout: float | None) -> Connection:
        if not self._lock.acquire(timeout=timeout if timeout is not None else -1):
            raise TimeoutError(f"Timed out after {timeout}s waiting for the SQLite connection")
        try:
            return self.get_connection()
        except BaseException:
            self._lock.release()
            raise

    def _arm_timeout(self, conn: Connection, timeout: float) -> None:
        deadline = time.monotonic() + timeout
        conn.set_progress_handler(lambda: int(time.monotonic() > deadline), _PROGRESS_STEPS)
        conn.execute(f"PRAGMA busy_timeout = {round(timeout * 1000)}")

    def _release(self, conn: Connection) -> None:
        try:
            conn.set_progress_handler(None, 0)
            conn.execute(f"PRAGMA busy_timeout = {round(self._timeout * 1000)}")
        finally:
            self._lock.release()

    # -- Errors ------------------------------------------------------------

    def translate_error(self, error: Exception, timeout: float | None = None) -> KVError | None:
        if not isinstance(error, sqlite3.Error):
            return None

        message = str(error)
        if isinstance(error, sqlite3.OperationalError):
            if message == "interrupted" or "locked" in message:
                return TimeoutError(
                    f"SQLite statement exceeded {timeout}s: {message}",
                    cause=error,
                )
            if "unable to open" in message:
                return DatabaseConnectionError(f"SQLite unavailable: {message}", cause=error)
        if isinstance(error, sqlite3.IntegrityError):
            return IntegrityError(f"SQLite constraint violated: {message}", cause=error)
        if isinstance(error, sqlite3.ProgrammingError) and "closed" in message:
            return DatabaseConnectionError(f"SQLite connection closed: {message}", cause=error)
        return QueryError(f"SQLite error: {message}", cause=error)


__all__ = [
    "SQLiteAdapter",
]
