"""Key-value store backed by a single relational table.

:class:`KeyValueStore` maps five operations onto one ``key``/``value``
table through a :class:`~tablekv.adapters.DatabaseAdapter`:

    ┌──────────────────────┬───────────────────────────────────────────┐
    │ init()               │ CREATE TABLE IF NOT EXISTS                │
    │ set(key, value)      │ INSERT … ON CONFLICT / ON DUPLICATE KEY   │
    │ get(key)             │ SELECT value WHERE key = ?                │
    │ delete(key)          │ DELETE WHERE key = ?  (rowcount checked)  │
    │ keys_with_suffix(s)  │ SELECT key WHERE key LIKE '%' || s        │
    └──────────────────────┴───────────────────────────────────────────┘

Every call runs in its own transaction with a deadline derived from the
store's timeout at call time.  The adapter is borrowed, never owned: the
store does not connect or disconnect it.

Examples:
    >>> from tablekv.adapters import SQLiteAdapter
    >>> store = KeyValueStore(SQLiteAdapter(), "kv_store", timeout=1.5)
    >>> store.init()
    >>> store.set("a-foo", b"1")
    >>> store.get("a-foo")
    b'1'
    >>> store.keys_with_suffix("foo")
    ['a-foo']

Guardrails:
    ``keys_with_suffix`` does not escape ``%`` or ``_`` in its argument;
    they keep their LIKE meaning.  ``keys_with_suffix("_x")`` matches
    ``"ax"`` as well as ``"a_x"``.

Tags:
    key-value, store, facade, sql, tablekv
"""

from __future__ import annotations

import math
import re
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta

from tablekv.adapters import DatabaseAdapter, get_adapter_from_url
from tablekv.errors import (
    InvalidConfigError,
    KeyNotFoundError,
    KVError,
    MissingConfigError,
    UnknownKeyError,
)
from tablekv.logging import configure_logging, get_logger
from tablekv.settings import StoreSettings

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 3.0
"""Seconds each operation may take when no timeout is configured."""

KEY_COLUMN = "key"
VALUE_COLUMN = "value"
KEY_LENGTH = 255

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]{0,63}$")


def _resolve_timeout(timeout: float | timedelta | None) -> float:
    if timeout is None:
        return DEFAULT_TIMEOUT
    seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
    if seconds < 0:
        raise InvalidConfigError("timeout", timeout, "timeout must not be negative")
    return seconds or DEFAULT_TIMEOUT


@dataclass(frozen=True)
class StoreConfig:
    """Construction parameters for :class:`KeyValueStore`.

    ``timeout`` may be seconds or a ``timedelta``; ``None`` or zero means
    :data:`DEFAULT_TIMEOUT`.
    """

    adapter: DatabaseAdapter | None
    table: str
    timeout: float | timedelta | None = None


class KeyValueStore:
    """Key-value facade over one table.

    Immutable after construction and safe to share between threads; all
    state lives in the database and concurrency control is left to the
    adapter's driver and the engine.
    """

    def __init__(
        self,
        adapter: DatabaseAdapter | None,
        table: str,
        timeout: float | timedelta | None = None,
    ) -> None:
        if adapter is None:
            raise MissingConfigError("adapter")
        if not table:
            raise MissingConfigError("table")
        if not _TABLE_NAME.match(table):
            raise InvalidConfigError("table", table, f"Invalid table name: {table!r}")

        self._adapter = adapter
        self._table = table
        self._timeout = _resolve_timeout(timeout)
        self._sql = self._build_statements()

    @property
    def table(self) -> str:
        return self._table

    @property
    def timeout(self) -> float:
        """Per-operation timeout in seconds."""
        return self._timeout

    @property
    def adapter(self) -> DatabaseAdapter:
        return self._adapter

    def _build_statements(self) -> dict[str, str]:
        d = self._adapter.dialect
        table = d.quote(self._table)
        key, value = d.quote(KEY_COLUMN), d.quote(VALUE_COLUMN)
        ph = d.placeholder(0)
        return {
            "init": d.create_table_if_not_exists(
                table,
                [(key, f"{d.string_type(KEY_LENGTH)} NOT NULL"), (value, d.binary_type())],
                [key],
            ),
            "set": d.upsert(table, [key, value], [key]),
            "get": f"SELECT {value} FROM {table} WHERE {key} = {ph}",
            "delete": f"DELETE FROM {table} WHERE {key} = {ph}",
            "keys_with_suffix": f"SELECT {key} FROM {table} WHERE {key} LIKE {ph} ORDER BY {key}",
        }

    @contextmanager
    def _operation(self, name: str, **fields: str) -> Iterator[None]:
        started = time.monotonic()
        try:
            yield
        except KeyNotFoundError as e:
            e.with_context(table=self._table, operation=name, backend=self._adapter.dialect.name)
            logger.debug(f"kv.{name}", table=self._table, found=False, **fields)
            raise
        except KVError as e:
            e.with_context(table=self._table, operation=name, backend=self._adapter.dialect.name)
            logger.warning(
                f"kv.{name}.failed",
                table=self._table,
                error_type=type(e).__name__,
                error=e.message,
                elapsed_ms=round((time.monotonic() - started) * 1000, 2),
                **fields,
            )
            raise
        else:
            logger.debug(
                f"kv.{name}",
                table=self._table,
                elapsed_ms=round((time.monotonic() - started) * 1000, 2),
                **fields,
            )

    # -- Operations --------------------------------------------------------

    def init(self) -> None:
        """Create the backing table if it does not exist. Safe to repeat."""
        with self._operation("init"):
            self._adapter.execute(self._sql["init"], timeout=self._timeout)

    def set(self, key: str, value: bytes | bytearray | memoryview) -> None:
        """Insert ``key`` or replace its whole value."""
        with self._operation("set", key=key):
            self._adapter.execute(self._sql["set"], (key, bytes(value)), timeout=self._timeout)

    def get(self, key: str) -> bytes:
        """Return the value last set for ``key``.

        Raises:
            KeyNotFoundError: no record has this key.
        """
        with self._operation("get", key=key):
            row = self._adapter.query_one(self._sql["get"], (key,), timeout=self._timeout)
            if row is None:
                raise KeyNotFoundError(key)
            return bytes(row[VALUE_COLUMN])

    def delete(self, key: str) -> None:
        """Remove ``key``.

        Raises:
            UnknownKeyError: no row was deleted.
        """
        with self._operation("delete", key=key):
            if self._adapter.execute(self._sql["delete"], (key,), timeout=self._timeout) == 0:
                raise UnknownKeyError(key)

    def keys_with_suffix(self, suffix: str) -> list[str]:
        """Return every key ending with ``suffix``, ordered by key.

        ``suffix`` is used as a LIKE pattern tail without escaping.
        """
        with self._operation("keys_with_suffix", suffix=suffix):
            rows = self._adapter.query(
                self._sql["keys_with_suffix"], ("%" + suffix,), timeout=self._timeout
            )
            return [row[KEY_COLUMN] for row in rows]

    def __repr__(self) -> str:
        return (
            f"KeyValueStore(table={self._table!r}, backend={self._adapter.dialect.name!r}, "
            f"timeout={self._timeout})"
        )


def new_store(config: StoreConfig) -> KeyValueStore:
    """Build a store from a :class:`StoreConfig`."""
    return KeyValueStore(config.adapter, config.table, config.timeout)


def new_store_from_settings(
    settings: StoreSettings | None = None,
    *,
    configure_logs: bool = False,
) -> KeyValueStore:
    """Build an adapter and a store from ``TABLEKV_*`` settings.

    The caller owns the returned store's adapter (``store.adapter``) and
    should disconnect it at shutdown.  With ``configure_logs=True`` the
    settings' log level and format are applied to structlog first.

    Server backends get a ``connect_timeout`` of the store timeout rounded
    up to whole seconds, so opening a connection to an unreachable server
    fails within about one operation budget.
    """
    settings = settings or StoreSettings()
    if configure_logs:
        configure_logging(level=settings.log_level, json_format=settings.log_json)
    timeout = _resolve_timeout(settings.timeout)
    adapter = get_adapter_from_url(
        settings.database_url, connect_timeout=max(1, math.ceil(timeout))
    )
    logger.info(
        "store_configured",
        backend=adapter.dialect.name,
        table=settings.table,
        timeout=settings.timeout,
    )
    return KeyValueStore(adapter, settings.table, settings.timeout)


__all__ = [
    "DEFAULT_TIMEOUT",
    "KeyValueStore",
    "StoreConfig",
    "new_store",
    "new_store_from_settings",
]
