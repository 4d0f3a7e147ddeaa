"""PostgreSQL database adapter.

Uses ``psycopg2`` with a ``ThreadedConnectionPool``.  Callers beyond
``pool_size`` wait for a free connection inside their own timeout instead
of failing with "connection pool exhausted".  Statements are bounded with a
transaction-local ``statement_timeout``; a cancelled statement surfaces as
:class:`~tablekv.errors.TimeoutError`.

The server enforces ``statement_timeout``, so a peer that vanishes
mid-statement is detected on the client through TCP keepalives
(``keepalives_idle`` and friends, overridable through adapter kwargs)
and ``connect_timeout`` bounds connection setup.

Install the driver::

    pip install psycopg2-binary
    # or:  pip install tablekv[postgresql]
"""

from __future__ import annotations

import threading
from typing import Any

from tablekv.errors import (
    ConfigError,
    DatabaseConnectionError,
    IntegrityError,
    KVError,
    QueryError,
    TimeoutError,
)
from tablekv.protocols import Connection, Cursor

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType

# libpq keepalive settings: a dead peer is noticed after about 5 + 2 * 3 seconds
KEEPALIVE_OPTIONS = {
    "keepalives": 1,
    "keepalives_idle": 5,
    "keepalives_interval": 2,
    "keepalives_count": 3,
}


class PostgreSQLAdapter(DatabaseAdapter):
    """
    PostgreSQL database adapter.

    Suitable for production deployments; many threads may share one
    adapter since every transaction borrows its own pooled connection.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        pool_size: int = 5,
        connect_timeout: int = 10,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.POSTGRESQL,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            pool_size=pool_size,
            connect_timeout=connect_timeout,
            options=kwargs,
        )
        super().__init__(config)
        self._pool: Any = None
        self._driver: Any = None
        self._slots = threading.BoundedSemaphore(pool_size)
        self._connect_lock = threading.Lock()

    def connect(self) -> None:
        """Connect to PostgreSQL database."""
        try:
            import psycopg2
            import psycopg2.pool
        except ImportError:
            raise ConfigError(
                "psycopg2 is required for PostgreSQL. Install with: pip install psycopg2-binary"
            ) from None

        self._driver = psycopg2
        try:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=1,
                maxconn=self._config.pool_size,
                host=self._config.host,
                port=self._config.port,
                database=self._config.database,
                user=self._config.username,
                password=self._config.password,
                connect_timeout=self._config.connect_timeout,
                **{**KEEPALIVE_OPTIONS, **self._config.options},
            )
            self._connected = True
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL: {e}",
                cause=e,
            ) from e

    def disconnect(self) -> None:
        """Close PostgreSQL connection pool."""
        if self._pool:
            self._pool.closeall()
            self._pool = None
            self._connected = False

    def get_connection(self) -> Connection:
        """Get connection from pool."""
        if not self._pool:
            with self._connect_lock:
                if not self._pool:
                    self.connect()
        return self._pool.getconn()

    # -- Deadline hooks ----------------------------------------------------

    def _checkout(self, timeout: float | None) -> Connection:
        if not self._slots.acquire(timeout=timeout):
            raise TimeoutError(
                f"Timed out after {timeout}s waiting for a pooled PostgreSQL connection"
            )
        try:
            return self.get_connection()
        except BaseException:
            self._slots.release()
            raise

    def _arm_timeout(self, conn: Connection, timeout: float) -> None:
        cursor = conn.cursor()
        try:
            # is_local=true: reset at commit/rollback
            cursor.execute(
                "SELECT set_config('statement_timeout', %s, true)",
                (str(max(1, round(timeout * 1000))),),
            )
        finally:
            cursor.close()

    def _release(self, conn: Connection) -> None:
        try:
            if self._pool:
                self._pool.putconn(conn, close=bool(getattr(conn, "closed", False)))
        finally:
            self._slots.release()

    def fetch_all_sets(self, cursor: Cursor) -> list[Any]:
        # psycopg2 raises NotSupportedError from nextset(); one set per statement
        return list(cursor.fetchall())

    # -- Errors ------------------------------------------------------------

    def translate_error(self, error: Exception, timeout: float | None = None) -> KVError | None:
        if self._driver is None:
            return None

        import psycopg2
        import psycopg2.errors
        import psycopg2.pool

        if isinstance(error, (psycopg2.errors.QueryCanceled, psycopg2.errors.LockNotAvailable)):
            return TimeoutError(
                f"PostgreSQL statement exceeded {timeout}s: {error}",
                cause=error,
            )
        if isinstance(error, (psycopg2.OperationalError, psycopg2.InterfaceError, psycopg2.pool.PoolError)):
            return DatabaseConnectionError(f"PostgreSQL unavailable: {error}", cause=error)
        if isinstance(error, psycopg2.IntegrityError):
            return IntegrityError(f"PostgreSQL constraint violated: {error}", cause=error)
        if isinstance(error, psycopg2.Error):
            return QueryError(f"PostgreSQL error: {error}", cause=error)
        return None


__all__ = [
    "PostgreSQLAdapter",
]
