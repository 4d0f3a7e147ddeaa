"""Tests for the tablekv error hierarchy."""

from __future__ import annotations

import builtins
import sqlite3

import pytest

from tablekv.errors import (
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    ErrorCategory,
    ErrorContext,
    IntegrityError,
    InvalidConfigError,
    KeyNotFoundError,
    KVError,
    MissingConfigError,
    QueryError,
    TimeoutError,
    TransientError,
    UnknownKeyError,
    categorize_error,
    is_retryable,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error, parent",
        [
            (TimeoutError("t"), TransientError),
            (DatabaseConnectionError("c"), TransientError),
            (QueryError("q"), DatabaseError),
            (IntegrityError("i"), DatabaseError),
            (UnknownKeyError("k"), KeyNotFoundError),
            (MissingConfigError("table"), ConfigError),
            (InvalidConfigError("timeout", -1), ConfigError),
        ],
    )
    def test_subclasses(self, error, parent):
        assert isinstance(error, parent)
        assert isinstance(error, KVError)

    def test_timeout_is_distinct_from_builtin(self):
        assert not issubclass(TimeoutError, builtins.TimeoutError)


class TestDefaults:
    def test_base(self):
        error = KVError("boom")
        assert error.category is ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.context == ErrorContext()
        assert error.cause is None

    def test_transient_errors_are_retryable(self):
        assert TimeoutError("t").retryable is True
        assert TimeoutError("t").category is ErrorCategory.DATABASE
        assert DatabaseConnectionError("c").retryable is True

    def test_not_found(self):
        error = KeyNotFoundError("a-foo")
        assert error.key == "a-foo"
        assert error.context.key == "a-foo"
        assert error.category is ErrorCategory.NOT_FOUND
        assert error.retryable is False
        assert "a-foo" in str(error)

    def test_unknown_key_message(self):
        error = UnknownKeyError("ghost")
        assert str(error) == "unknown key"
        assert error.key == "ghost"

    def test_overrides(self):
        error = QueryError("q", retryable=True, retry_after=5, category=ErrorCategory.NETWORK)
        assert error.retryable is True
        assert error.retry_after == 5
        assert error.category is ErrorCategory.NETWORK

    def test_config_messages(self):
        assert str(MissingConfigError("table")) == "Missing required configuration: table"
        assert str(InvalidConfigError("timeout", -2)) == "Invalid configuration for timeout: -2"


class TestCause:
    def test_cause_is_chained(self):
        original = sqlite3.OperationalError("database is locked")
        error = TimeoutError("locked", cause=original)
        assert error.cause is original
        assert error.__cause__ is original


class TestContext:
    def test_with_context_sets_fields(self):
        error = QueryError("q").with_context(table="kv", operation="set", backend="sqlite")
        assert error.context.table == "kv"
        assert error.context.operation == "set"
        assert error.context.backend == "sqlite"

    def test_unknown_fields_go_to_metadata(self):
        error = QueryError("q").with_context(attempt=2, metadata="m")
        assert error.context.metadata == {"attempt": 2, "metadata": "m"}

    def test_context_to_dict_skips_unset(self):
        ctx = ErrorContext(table="kv", metadata={"attempt": 1})
        assert ctx.to_dict() == {"table": "kv", "attempt": 1}


class TestSerialization:
    def test_to_dict(self):
        error = TimeoutError(
            "statement exceeded 3.0s",
            cause=sqlite3.OperationalError("interrupted"),
        ).with_context(table="kv", operation="get", key="a")

        assert error.to_dict() == {
            "error_type": "TimeoutError",
            "message": "statement exceeded 3.0s",
            "category": "DATABASE",
            "retryable": True,
            "context": {"table": "kv", "operation": "get", "key": "a"},
            "cause": "interrupted",
        }

    def test_to_dict_minimal(self):
        assert KVError("x").to_dict() == {
            "error_type": "KVError",
            "message": "x",
            "category": "INTERNAL",
            "retryable": False,
        }

    def test_repr(self):
        assert repr(QueryError("bad sql")) == "QueryError('bad sql', category=DATABASE)"


class TestUtilities:
    def test_is_retryable(self):
        assert is_retryable(TimeoutError("t")) is True
        assert is_retryable(QueryError("q")) is False
        assert is_retryable(ConnectionResetError()) is True
        assert is_retryable(ValueError()) is False

    def test_categorize_error(self):
        assert categorize_error(UnknownKeyError("k")) is ErrorCategory.NOT_FOUND
        assert categorize_error(ConnectionRefusedError()) is ErrorCategory.NETWORK
        assert categorize_error(KeyError("k")) is ErrorCategory.NOT_FOUND
        assert categorize_error(ValueError()) is ErrorCategory.UNKNOWN
