"""Tests for cartstore.errors module."""

import pytest

from cartstore.errors import (
    CartstoreError,
    ConfigError,
    DatabaseConnectionError,
    DatabaseUnavailableError,
    DirtyDatabaseError,
    ErrorCategory,
    ErrorContext,
    IntegrityError,
    MigrationError,
    NoChangeError,
    NotFoundError,
    QueryError,
    ScanError,
    TransientError,
    ValidationError,
    categorize_error,
    is_retryable,
)


class TestErrorContext:
    def test_empty_context(self):
        ctx = ErrorContext()
        assert ctx.table is None
        assert ctx.metadata == {}
        assert ctx.to_dict() == {}

    def test_to_dict_skips_unset_fields(self):
        ctx = ErrorContext(table="users", entity_id=7, metadata={"attempt": 2})
        assert ctx.to_dict() == {"table": "users", "entity_id": 7, "attempt": 2}


class TestCartstoreError:
    def test_defaults(self):
        err = CartstoreError("boom")
        assert err.message == "boom"
        assert str(err) == "boom"
        assert err.category == ErrorCategory.INTERNAL
        assert err.retryable is False
        assert err.cause is None

    def test_cause_is_chained(self):
        original = RuntimeError("driver")
        err = QueryError("wrapped", cause=original)
        assert err.cause is original
        assert err.__cause__ is original

    def test_with_context_is_fluent(self):
        err = NotFoundError("missing").with_context(table="users", entity_id=3, shard="a")
        assert isinstance(err, NotFoundError)
        assert err.context.table == "users"
        assert err.context.entity_id == 3
        assert err.context.metadata == {"shard": "a"}

    def test_to_dict(self):
        err = IntegrityError("dup", cause=ValueError("x")).with_context(statement="INSERT")
        d = err.to_dict()
        assert d["error_type"] == "IntegrityError"
        assert d["category"] == "DATABASE"
        assert d["retryable"] is False
        assert d["context"] == {"statement": "INSERT"}
        assert d["cause"] == "x"

    def test_repr(self):
        assert repr(ConfigError("bad url")) == "ConfigError('bad url', category=CONFIG)"


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [QueryError, IntegrityError, ScanError, NotFoundError],
    )
    def test_database_errors_not_retryable(self, cls):
        err = cls("x")
        assert err.category == ErrorCategory.DATABASE
        assert err.retryable is False

    def test_connection_error_is_transient(self):
        err = DatabaseConnectionError("gone")
        assert isinstance(err, TransientError)
        assert err.retryable is True
        assert err.category == ErrorCategory.DATABASE

    def test_unavailable_is_fatal(self):
        err = DatabaseUnavailableError("gave up", attempts=25)
        assert isinstance(err, DatabaseConnectionError)
        assert err.retryable is False
        assert err.attempts == 25

    def test_validation_error_carries_field(self):
        err = ValidationError("bad page", field="page", value="x")
        assert err.field == "page"
        assert err.value == "x"
        assert err.to_dict()["field"] == "page"

    def test_migration_errors(self):
        assert isinstance(NoChangeError("same"), MigrationError)
        dirty = DirtyDatabaseError(4)
        assert dirty.version == 4
        assert "dirty at version 4" in dirty.message
        assert dirty.category == ErrorCategory.MIGRATION


class TestHelpers:
    def test_is_retryable(self):
        assert is_retryable(DatabaseConnectionError("x")) is True
        assert is_retryable(QueryError("x")) is False
        assert is_retryable(TimeoutError()) is True
        assert is_retryable(KeyError("x")) is False

    def test_categorize_error(self):
        assert categorize_error(ConfigError("x")) == ErrorCategory.CONFIG
        assert categorize_error(ConnectionRefusedError()) == ErrorCategory.NETWORK
        assert categorize_error(ValueError()) == ErrorCategory.VALIDATION
        assert categorize_error(KeyError()) == ErrorCategory.UNKNOWN
