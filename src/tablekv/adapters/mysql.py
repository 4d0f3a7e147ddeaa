"""MySQL and MariaDB database adapters.

Uses ``mysql.connector`` from the ``mysql-connector-python`` package.
MySQL uses **format** (``%s``) placeholder style.

Install the driver::

    pip install mysql-connector-python
    # or:  pip install tablekv[mysql]

This adapter is import-guarded: if ``mysql.connector`` is not installed
a clear :class:`~tablekv.errors.ConfigError` is raised at
``connect()`` time.

Every transaction is bounded three ways:

- server statement limits, which differ between the two servers:
  MySQL ``max_execution_time`` (milliseconds, SELECT only, error 3024),
  MariaDB ``max_statement_time`` (seconds, every statement, error 1969)
- lock waits: ``innodb_lock_wait_timeout`` for row locks (error 1205) and
  ``lock_wait_timeout`` for metadata locks taken by DDL
- a client watchdog that issues ``KILL QUERY`` from a separate connection
  once the budget is spent, so writes are bounded on MySQL too (the killed
  statement fails with error 1317)

Callers beyond ``pool_size`` wait for a free pooled connection within
their timeout instead of failing with "pool exhausted".
"""

from __future__ import annotations

import math
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
from tablekv.logging import get_logger
from tablekv.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType

logger = get_logger(__name__)

ER_LOCK_WAIT_TIMEOUT = 1205
ER_QUERY_INTERRUPTED = 1317
ER_STATEMENT_TIMEOUT = 1969
ER_QUERY_TIMEOUT = 3024

_TIMEOUT_ERRNOS = frozenset(
    {ER_LOCK_WAIT_TIMEOUT, ER_QUERY_INTERRUPTED, ER_STATEMENT_TIMEOUT, ER_QUERY_TIMEOUT}
)


def _whole_seconds(timeout: float) -> int:
    return max(1, math.ceil(timeout))


class MySQLAdapter(DatabaseAdapter):
    """MySQL database adapter.

    Uses ``mysql.connector`` with connection pooling.
    Suitable for web-scale and cloud deployments.
    """

    db_kind: DatabaseType = DatabaseType.MYSQL

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3306,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        pool_size: int = 5,
        connect_timeout: int = 10,
        charset: str = "utf8mb4",
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=self.db_kind,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            pool_size=pool_size,
            connect_timeout=connect_timeout,
            options={**(kwargs or {}), "charset": charset},
        )
        super().__init__(config)
        self._pool: Any = None
        self._driver: Any = None
        self._slots = threading.BoundedSemaphore(pool_size)
        self._connect_lock = threading.Lock()
        self._watchdogs: dict[int, threading.Timer] = {}
        self._watchdog_lock = threading.Lock()

    def _connection_args(self) -> dict[str, Any]:
        return {
            "host": self._config.host,
            "port": self._config.port,
            "database": self._config.database,
            "user": self._config.username,
            "password": self._config.password,
            "connection_timeout": self._config.connect_timeout,
            **self._config.options,
        }

    def connect(self) -> None:
        """Create the connection pool."""
        try:
            import mysql.connector
            from mysql.connector import pooling
        except ImportError:
            raise ConfigError(
                "mysql-connector-python is required for MySQL/MariaDB. "
                "Install with: pip install mysql-connector-python"
            ) from None

        self._driver = mysql.connector
        try:
            self._pool = pooling.MySQLConnectionPool(
                pool_name=f"tablekv_{self.db_type.value}_{id(self):x}",
                pool_size=self._config.pool_size,
                autocommit=False,
                **self._connection_args(),
            )
            self._connected = True
        except mysql.connector.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to {self.db_type.value}: {e}",
                cause=e,
            ) from e

    def disconnect(self) -> None:
        """Close idle pooled connections and drop the pool.

        Connections still checked out close when their transaction ends.
        """
        if self._pool:
            self._pool._remove_connections()
        self._pool = None
        self._connected = False

    def get_connection(self) -> Connection:
        """Get connection from pool."""
        if not self._pool:
            with self._connect_lock:
                if not self._pool:
                    self.connect()
        return self._pool.get_connection()

    # -- Deadline hooks ----------------------------------------------------

    def session_timeout_statements(self, timeout: float) -> list[tuple[str, tuple]]:
        """Statements that bound every following statement on the session."""
        return [
            ("SET SESSION max_execution_time = %s", (max(1, round(timeout * 1000)),)),
            ("SET SESSION innodb_lock_wait_timeout = %s", (_whole_seconds(timeout),)),
            ("SET SESSION lock_wait_timeout = %s", (_whole_seconds(timeout),)),
        ]

    def _checkout(self, timeout: float | None) -> Connection:
        if not self._slots.acquire(timeout=timeout):
            raise TimeoutError(
                f"Timed out after {timeout}s waiting for a pooled {self.db_type.value} connection"
            )
        try:
            return self.get_connection()
        except BaseException:
            self._slots.release()
            raise

    def _arm_timeout(self, conn: Connection, timeout: float) -> None:
        cursor = conn.cursor()
        try:
            for sql, params in self.session_timeout_statements(timeout):
                cursor.execute(sql, params)
        finally:
            cursor.close()

        watchdog = threading.Timer(timeout, self._kill_query, (conn.connection_id,))
        watchdog.daemon = True
        with self._watchdog_lock:
            self._watchdogs[id(conn)] = watchdog
        watchdog.start()

    def _kill_query(self, connection_id: int) -> None:
        """Interrupt the statement running on *connection_id*."""
        logger.warning("statement_killed", backend=self.db_type.value, connection_id=connection_id)
        try:
            killer = self._driver.connect(**self._connection_args())
            try:
                cursor = killer.cursor()
                cursor.execute(f"KILL QUERY {int(connection_id)}")
                cursor.close()
            finally:
                killer.close()
        except self._driver.Error as e:
            logger.warning(
                "kill_query_failed",
                backend=self.db_type.value,
                connection_id=connection_id,
                error=str(e),
            )

    def _release(self, conn: Connection) -> None:
        with self._watchdog_lock:
            watchdog = self._watchdogs.pop(id(conn), None)
        if watchdog is not None:
            watchdog.cancel()
        try:
            conn.close()  # mysql.connector returns to pool on close
        except Exception as e:
            logger.warning(
                "connection_release_failed",
                backend=self.db_type.value,
                error_type=type(e).__name__,
            )
        finally:
            self._slots.release()

    # -- Errors ------------------------------------------------------------

    def translate_error(self, error: Exception, timeout: float | None = None) -> KVError | None:
        if self._driver is None:
            return None

        from mysql.connector import errors

        if not isinstance(error, errors.Error):
            return None

        name = self.db_type.value
        if error.errno in _TIMEOUT_ERRNOS:
            return TimeoutError(f"{name} statement exceeded {timeout}s: {error}", cause=error)
        if isinstance(error, (errors.PoolError, errors.InterfaceError, errors.OperationalError)):
            return DatabaseConnectionError(f"{name} unavailable: {error}", cause=error)
        if isinstance(error, errors.IntegrityError):
            return IntegrityError(f"{name} constraint violated: {error}", cause=error)
        return QueryError(f"{name} error: {error}", cause=error)


class MariaDBAdapter(MySQLAdapter):
    """MariaDB database adapter (same driver, different statement timeout)."""

    db_kind = DatabaseType.MARIADB

    def session_timeout_statements(self, timeout: float) -> list[tuple[str, tuple]]:
        return [
            ("SET SESSION max_statement_time = %s", (round(timeout, 3),)),
            ("SET SESSION innodb_lock_wait_timeout = %s", (_whole_seconds(timeout),)),
            ("SET SESSION lock_wait_timeout = %s", (_whole_seconds(timeout),)),
        ]


__all__ = [
    "MySQLAdapter",
    "MariaDBAdapter",
]
