"""
Structured error types for tablekv.

Every failure a store operation can surface is a :class:`KVError`. Driver
exceptions (``sqlite3.OperationalError``, ``psycopg2.errors.QueryCanceled``,
``mysql.connector.errors.DatabaseError`` ...) are wrapped exactly once by the
adapter that raised them and chained as ``cause`` so the original traceback
is never lost.

Manifesto:
    - **Typed hierarchy:** callers branch on class, never on message text
    - **Explicit retry semantics:** each error knows whether a retry can help
    - **Rich context:** table, operation and key travel with the error
    - **Error chaining:** the driver exception is always kept as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                           KVError                             │
        │        (category, retryable, retry_after, context, cause)     │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  TransientError          DatabaseError      KeyNotFoundError  │
        │  (retryable=True)        (DATABASE)         (NOT_FOUND)       │
        │       │                       │                   │           │
        │  TimeoutError            QueryError          UnknownKeyError  │
        │  DatabaseConnectionError IntegrityError                       │
        │                                                               │
        │  ConfigError                                                  │
        │  (CONFIG)                                                     │
        │       │                                                       │
        │  MissingConfigError                                           │
        │  InvalidConfigError                                           │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = TimeoutError("statement exceeded 3.0s")
    >>> error.retryable
    True

    >>> try:
    ...     store.delete("ghost")
    ... except UnknownKeyError as e:
    ...     e.key
    'ghost'

Guardrails:
    ❌ DON'T: Match on ``str(error)`` to detect a missing key
    ✅ DO: ``except KeyNotFoundError``

    ❌ DON'T: Swallow the driver exception
    ✅ DO: Pass it as ``cause=`` when wrapping

Tags:
    error-handling, exception-hierarchy, retry-logic, tablekv

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        NETWORK: Connection refused, DNS, socket timeouts
        DATABASE: Query failures, constraint violations, pool errors
        NOT_FOUND: The requested key does not exist
        CONFIG: Missing or invalid configuration
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    # Infrastructure errors (usually transient)
    NETWORK = "NETWORK"
    DATABASE = "DATABASE"

    # Data errors
    NOT_FOUND = "NOT_FOUND"

    # Configuration errors (never retryable)
    CONFIG = "CONFIG"

    # Internal errors
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error for logging.

    Attributes:
        table: Backing table the operation targeted
        operation: Store operation name (``init``, ``set``, ``get`` ...)
        backend: Database backend (``sqlite``, ``postgresql`` ...)
        key: Record key involved, if any
        metadata: Additional key-value pairs
    """

    table: str | None = None
    operation: str | None = None
    backend: str | None = None
    key: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["table", "operation", "backend", "key"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class KVError(Exception):
    """
    Base exception for all tablekv errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    raising sites only pass what differs from the defaults.

    Examples:
        >>> error = KVError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(table="kv_store", operation="get").context.table
        'kv_store'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> KVError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryError("insert failed", cause=e).with_context(
                table="kv_store",
                operation="set",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Usually Retryable)
# =============================================================================


class TransientError(KVError):
    """
    Temporary error that may succeed on retry.

    The store itself never retries; the flag is for callers that do.
    """

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class TimeoutError(TransientError):
    """The per-operation deadline elapsed before the statement finished."""

    default_category = ErrorCategory.DATABASE


class DatabaseConnectionError(TransientError):
    """Database connection or pool error."""

    default_category = ErrorCategory.DATABASE


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(KVError):
    """Database query or transaction error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class QueryError(DatabaseError):
    """SQL statement rejected by the engine."""

    pass


class IntegrityError(DatabaseError):
    """Database integrity constraint violation."""

    pass


# =============================================================================
# NOT-FOUND ERRORS
# =============================================================================


class KeyNotFoundError(KVError):
    """No record exists for the requested key."""

    default_category = ErrorCategory.NOT_FOUND
    default_retryable = False

    def __init__(self, key: str, message: str | None = None, **kwargs: Any):
        self.key = key
        super().__init__(message or f"key not found: {key!r}", **kwargs)
        self.context.key = key


class UnknownKeyError(KeyNotFoundError):
    """A delete affected zero rows."""

    def __init__(self, key: str, **kwargs: Any):
        super().__init__(key, "unknown key", **kwargs)


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(KVError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, KVError):
        return error.retryable
    return isinstance(error, (ConnectionError, OSError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, KVError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.NETWORK
    if isinstance(error, KeyError):
        return ErrorCategory.NOT_FOUND
    return ErrorCategory.UNKNOWN


__all__ = [
    # Category enum
    "ErrorCategory",
    # Context
    "ErrorContext",
    # Base
    "KVError",
    # Transient
    "TransientError",
    "TimeoutError",
    "DatabaseConnectionError",
    # Database
    "DatabaseError",
    "QueryError",
    "IntegrityError",
    # Not found
    "KeyNotFoundError",
    "UnknownKeyError",
    # Config
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    # Utilities
    "is_retryable",
    "categorize_error",
]
