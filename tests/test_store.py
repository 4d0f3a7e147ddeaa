"""Tests for ``tablekv.store``: the key-value facade over SQLite."""

from __future__ import annotations

import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from tablekv.adapters import DatabaseAdapter, SQLiteAdapter
from tablekv.dialect import SQLiteDialect
from tablekv.errors import (
    ErrorCategory,
    InvalidConfigError,
    KeyNotFoundError,
    MissingConfigError,
    QueryError,
    UnknownKeyError,
)
from tablekv.store import DEFAULT_TIMEOUT, KeyValueStore, StoreConfig, new_store


class TestConstruction:
    def test_performs_no_io(self, sqlite_adapter):
        KeyValueStore(sqlite_adapter, "kv_store")
        assert sqlite_adapter.is_connected is False

    def test_default_timeout_when_unset(self, sqlite_adapter):
        assert KeyValueStore(sqlite_adapter, "kv").timeout == DEFAULT_TIMEOUT == 3.0

    def test_default_timeout_when_zero(self, sqlite_adapter):
        assert KeyValueStore(sqlite_adapter, "kv", timeout=0).timeout == DEFAULT_TIMEOUT

    def test_timedelta_timeout(self, sqlite_adapter):
        store = KeyValueStore(sqlite_adapter, "kv", timeout=timedelta(milliseconds=1500))
        assert store.timeout == 1.5

    def test_negative_timeout_rejected(self, sqlite_adapter):
        with pytest.raises(InvalidConfigError, match="timeout"):
            KeyValueStore(sqlite_adapter, "kv", timeout=-1)

    def test_missing_adapter(self):
        with pytest.raises(MissingConfigError, match="adapter"):
            KeyValueStore(None, "kv")

    def test_missing_table(self, sqlite_adapter):
        with pytest.raises(MissingConfigError, match="table"):
            KeyValueStore(sqlite_adapter, "")

    @pytest.mark.parametrize("table", ["kv; DROP TABLE x", "1kv", "kv-store", "a" * 65])
    def test_invalid_table_name(self, sqlite_adapter, table):
        with pytest.raises(InvalidConfigError, match="Invalid table name"):
            KeyValueStore(sqlite_adapter, table)

    def test_new_store_from_config(self, sqlite_adapter):
        store = new_store(StoreConfig(adapter=sqlite_adapter, table="cache", timeout=1))
        assert store.table == "cache"
        assert store.timeout == 1.0
        assert store.adapter is sqlite_adapter

    def test_repr(self, sqlite_adapter):
        assert repr(KeyValueStore(sqlite_adapter, "kv")) == (
            "KeyValueStore(table='kv', backend='sqlite', timeout=3.0)"
        )


class TestInit:
    def test_creates_table(self, sqlite_adapter):
        KeyValueStore(sqlite_adapter, "kv_store").init()
        row = sqlite_adapter.query_one(
            "SELECT name FROM sqlite_master WHERE type='table' AND name = ?", ("kv_store",)
        )
        assert row == {"name": "kv_store"}

    def test_idempotent(self, sqlite_adapter):
        store = KeyValueStore(sqlite_adapter, "kv_store")
        schema_sql = "SELECT sql FROM sqlite_master WHERE name = ?"

        store.init()
        first = sqlite_adapter.query_one(schema_sql, ("kv_store",))
        store.init()
        second = sqlite_adapter.query_one(schema_sql, ("kv_store",))

        assert first == second

    def test_init_keeps_existing_records(self, store):
        store.set("k", b"v")
        store.init()
        assert store.get("k") == b"v"

    def test_key_is_primary_key(self, store, sqlite_adapter):
        columns = sqlite_adapter.query('PRAGMA table_info("kv_store")')
        by_name = {c["name"]: c for c in columns}
        assert by_name["key"]["pk"] == 1
        assert by_name["key"]["type"] == "VARCHAR(255)"
        assert by_name["value"]["type"] == "BLOB"


class TestSetGet:
    def test_round_trip(self, store):
        store.set("greeting", b"hello")
        assert store.get("greeting") == b"hello"

    def test_binary_values_are_preserved(self, store):
        payload = bytes(range(256)) * 4
        store.set("blob", payload)
        assert store.get("blob") == payload

    def test_empty_value(self, store):
        store.set("empty", b"")
        assert store.get("empty") == b""

    def test_bytearray_and_memoryview(self, store):
        store.set("ba", bytearray(b"\x00\x01"))
        store.set("mv", memoryview(b"\x02\x03"))
        assert store.get("ba") == b"\x00\x01"
        assert store.get("mv") == b"\x02\x03"

    def test_get_returns_bytes(self, store):
        store.set("k", bytearray(b"x"))
        assert type(store.get("k")) is bytes

    def test_upsert_overwrites(self, store):
        store.set("k", b"v1")
        store.set("k", b"v2")
        assert store.get("k") == b"v2"
        assert store.keys_with_suffix("k") == ["k"]

    def test_overwrite_replaces_whole_value(self, store):
        store.set("k", b"a much longer first value")
        store.set("k", b"short")
        assert store.get("k") == b"short"

    def test_get_missing_raises_not_found(self, store):
        with pytest.raises(KeyNotFoundError) as exc_info:
            store.get("missing")
        assert not isinstance(exc_info.value, UnknownKeyError)
        assert exc_info.value.key == "missing"
        assert exc_info.value.category == ErrorCategory.NOT_FOUND

    def test_not_found_carries_context(self, store):
        with pytest.raises(KeyNotFoundError) as exc_info:
            store.get("missing")
        ctx = exc_info.value.context
        assert ctx.table == "kv_store"
        assert ctx.operation == "get"
        assert ctx.backend == "sqlite"

    def test_keys_are_case_sensitive(self, store):
        store.set("Key", b"upper")
        store.set("key", b"lower")
        assert store.get("Key") == b"upper"
        assert store.get("key") == b"lower"

    def test_set_before_init_raises_query_error(self, sqlite_adapter):
        store = KeyValueStore(sqlite_adapter, "never_created")
        with pytest.raises(QueryError, match="no such table") as exc_info:
            store.set("k", b"v")
        assert exc_info.value.context.operation == "set"


class TestDelete:
    def test_delete_removes(self, store):
        store.set("k", b"v")
        store.delete("k")
        with pytest.raises(KeyNotFoundError):
            store.get("k")

    def test_delete_unknown(self, store):
        with pytest.raises(UnknownKeyError, match="unknown key") as exc_info:
            store.delete("never-set")
        assert exc_info.value.key == "never-set"
        assert exc_info.value.context.operation == "delete"

    def test_unknown_key_is_a_not_found_error(self, store):
        with pytest.raises(KeyNotFoundError):
            store.delete("never-set")

    def test_delete_twice(self, store):
        store.set("k", b"v")
        store.delete("k")
        with pytest.raises(UnknownKeyError):
            store.delete("k")

    def test_delete_leaves_other_keys(self, store):
        store.set("a", b"1")
        store.set("b", b"2")
        store.delete("a")
        assert store.get("b") == b"2"


class TestKeysWithSuffix:
    def test_suffix_match(self, store):
        for key in ["a-foo", "b-foo", "c-bar"]:
            store.set(key, b"x")
        assert store.keys_with_suffix("foo") == ["a-foo", "b-foo"]

    def test_no_match_returns_empty_list(self, store):
        store.set("a-foo", b"x")
        assert store.keys_with_suffix("baz") == []

    def test_empty_table(self, store):
        assert store.keys_with_suffix("foo") == []

    def test_suffix_must_be_at_end(self, store):
        store.set("foo-a", b"x")
        assert store.keys_with_suffix("foo") == []

    def test_empty_suffix_matches_everything(self, store):
        store.set("b", b"x")
        store.set("a", b"x")
        assert store.keys_with_suffix("") == ["a", "b"]

    def test_wildcards_in_suffix_are_not_escaped(self, store):
        store.set("x", b"1")
        store.set("ax", b"2")
        store.set("a_x", b"3")
        # "_" matches any single character, so "ax" is listed too
        assert store.keys_with_suffix("_x") == ["a_x", "ax"]
        assert store.keys_with_suffix("%x") == ["a_x", "ax", "x"]

    def test_deleted_keys_are_not_listed(self, store):
        store.set("a-foo", b"x")
        store.set("b-foo", b"x")
        store.delete("a-foo")
        assert store.keys_with_suffix("foo") == ["b-foo"]


class TestConcurrency:
    def test_parallel_writers_share_one_store(self, store):
        def writer(n: int) -> None:
            for i in range(20):
                store.set(f"w{n}-{i}-item", str(i).encode())

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.keys_with_suffix("-item")) == 80
        assert store.get("w3-19-item") == b"19"


class TestAdapterContract:
    """The store borrows its adapter and derives a fresh deadline per call."""

    @pytest.fixture
    def adapter(self):
        adapter = MagicMock(spec=DatabaseAdapter)
        adapter.dialect = SQLiteDialect()
        return adapter

    def test_every_call_passes_the_timeout(self, adapter):
        adapter.execute.return_value = 1
        adapter.query_one.return_value = {"value": b"v"}
        adapter.query.return_value = [{"key": "a-foo"}]
        store = KeyValueStore(adapter, "kv", timeout=0.75)

        store.init()
        store.set("a-foo", b"v")
        store.get("a-foo")
        store.delete("a-foo")
        store.keys_with_suffix("foo")

        for call in adapter.execute.call_args_list + adapter.query_one.call_args_list + adapter.query.call_args_list:
            assert call.kwargs["timeout"] == 0.75

    def test_statements_are_parameterized(self, adapter):
        adapter.query.return_value = []
        store = KeyValueStore(adapter, "kv")

        store.keys_with_suffix("foo")

        sql, params = adapter.query.call_args.args
        assert sql == 'SELECT "key" FROM "kv" WHERE "key" LIKE ? ORDER BY "key"'
        assert params == ("%foo",)

    def test_delete_checks_rows_affected(self, adapter):
        adapter.execute.return_value = 0
        with pytest.raises(UnknownKeyError):
            KeyValueStore(adapter, "kv").delete("k")

    def test_never_manages_adapter_lifetime(self, adapter):
        adapter.execute.return_value = 1
        store = KeyValueStore(adapter, "kv")
        store.init()
        store.set("k", b"v")
        del store

        adapter.connect.assert_not_called()
        adapter.disconnect.assert_not_called()

    def test_adapter_stays_usable_after_store_use(self, sqlite_adapter):
        store = KeyValueStore(sqlite_adapter, "kv")
        store.init()
        store.set("k", b"v")
        assert sqlite_adapter.is_connected is True
        assert sqlite_adapter.query_one('SELECT count(*) AS n FROM "kv"') == {"n": 1}
