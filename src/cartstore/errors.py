"""
Structured error types for cartstore.

Every failure raised by the persistence layer is a :class:`CartstoreError`
carrying a category, a retry hint, structured context and the underlying
driver exception (chained as ``__cause__``). Callers decide whether to
retry, roll back a transaction, or surface the error to an end user; this
layer never logs and discards a failure.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     CartstoreError                           │
        │  (category, retryable, context, cause)                       │
        ├─────────────────────────────────────────────────────────────┤
        │  TransientError          DatabaseError        MigrationError │
        │  (retryable=True)        (DATABASE)           (MIGRATION)    │
        │       │                       │                    │         │
        │  DatabaseConnectionError  QueryError          NoChangeError  │
        │                           IntegrityError      DirtyDatabase  │
        │  DatabaseUnavailableError ScanError           ScriptError    │
        │                           NotFoundError                      │
        │                                                              │
        │  ValidationError          ConfigError                        │
        │  (VALIDATION)             (CONFIG)                           │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> err = NotFoundError("no live row").with_context(table="users", entity_id=7)
    >>> err.context.table
    'users'
    >>> err.retryable
    False

Tags:
    error-handling, exception-hierarchy, persistence, cartstore
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Coarse failure class, used to route and count errors."""

    NETWORK = "NETWORK"
    DATABASE = "DATABASE"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    MIGRATION = "MIGRATION"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """Where a failure happened.

    Attributes:
        table: Table the failing statement targeted
        entity_id: Primary key involved, if any
        statement: SQL text that failed (never the bound values)
        migration: Migration script name, for bootstrap failures
        metadata: Anything else worth logging
    """

    table: str | None = None
    entity_id: int | None = None
    statement: str | None = None
    migration: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        known = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "metadata" and getattr(self, f.name) is not None
        }
        return {**known, **self.metadata}


_CONTEXT_FIELDS = frozenset(f.name for f in fields(ErrorContext)) - {"metadata"}


class CartstoreError(Exception):
    """Root of every error raised by cartstore.

    Subclasses pick their ``default_category`` and ``default_retryable``;
    a single instance may override either.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = self.default_category if category is None else category
        self.retryable = self.default_retryable if retryable is None else retryable
        self.context = ErrorContext() if context is None else context
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **details: Any) -> CartstoreError:
        """Record where the error happened and return ``self``.

        Known keys (``table``, ``entity_id``, ``statement``, ``migration``)
        fill the matching :class:`ErrorContext` field; anything else lands
        in ``context.metadata``::

            raise NotFoundError("no live row").with_context(table="users", entity_id=1)
        """
        for key, value in details.items():
            if key in _CONTEXT_FIELDS:
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Flat, JSON-friendly view for structured log fields."""
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context = self.context.to_dict()
        if context:
            data["context"] = context
        if self.cause is not None:
            data["cause"] = str(self.cause)
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


# ── Transient ──────────────────────────────────────────────────────────


class TransientError(CartstoreError):
    """May succeed if the same call is made again later."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class DatabaseConnectionError(TransientError):
    """The connection is missing, closed, or dropped mid-statement."""

    default_category = ErrorCategory.DATABASE


class DatabaseUnavailableError(DatabaseConnectionError):
    """The bootstrap poll exhausted its attempt budget.

    Fatal at startup: the retries have already happened.
    """

    default_retryable = False

    def __init__(self, message: str, *, attempts: int, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.attempts = attempts


# ── Statement failures ─────────────────────────────────────────────────


class DatabaseError(CartstoreError):
    """A statement reached the database and failed there."""

    default_category = ErrorCategory.DATABASE


class QueryError(DatabaseError):
    """A statement failed to execute or a cursor failed while advancing."""


class IntegrityError(DatabaseError):
    """A unique, foreign-key or NOT NULL constraint rejected a write."""


class ScanError(DatabaseError):
    """A result row did not match the shape of the entity being read."""


class NotFoundError(DatabaseError):
    """A single-row read or stamp found no matching row."""


# ── Caller and configuration mistakes ──────────────────────────────────


class ValidationError(CartstoreError):
    """Caller-supplied value is malformed. Never retryable."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, field: str | None = None, value: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.field is not None:
            data["field"] = self.field
        return data


class ConfigError(CartstoreError):
    """Configuration error (unknown database URL scheme, bad settings)."""

    default_category = ErrorCategory.CONFIG


# ── Migrations ─────────────────────────────────────────────────────────


class MigrationError(CartstoreError):
    """Schema migration failure."""

    default_category = ErrorCategory.MIGRATION


class NoChangeError(MigrationError):
    """The schema is already at the requested version.

    The bootstrap entrypoints treat this as success.
    """


class DirtyDatabaseError(MigrationError):
    """A previous migration was interrupted and left the version dirty."""

    def __init__(self, version: int | None):
        super().__init__(
            f"database is dirty at version {version}; fix the schema and force the version",
        )
        self.version = version


class MigrationScriptError(MigrationError):
    """A migration script failed to apply or is malformed."""


# ── Helpers ────────────────────────────────────────────────────────────


def is_retryable(error: BaseException) -> bool:
    """Whether repeating the failed call could succeed."""
    if isinstance(error, CartstoreError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: BaseException) -> ErrorCategory:
    """Category of any exception, including ones not raised by cartstore."""
    if isinstance(error, CartstoreError):
        return error.category
    for types, category in (
        ((ConnectionError, TimeoutError, OSError), ErrorCategory.NETWORK),
        ((ValueError, TypeError), ErrorCategory.VALIDATION),
    ):
        if isinstance(error, types):
            return category
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CartstoreError",
    "TransientError",
    "DatabaseConnectionError",
    "DatabaseUnavailableError",
    "DatabaseError",
    "QueryError",
    "IntegrityError",
    "ScanError",
    "NotFoundError",
    "ValidationError",
    "ConfigError",
    "MigrationError",
    "NoChangeError",
    "DirtyDatabaseError",
    "MigrationScriptError",
    "is_retryable",
    "categorize_error",
]
