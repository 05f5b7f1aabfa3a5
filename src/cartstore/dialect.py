"""SQL dialect abstraction.

The query compiler and the repositories never hardcode a placeholder style
or a timestamp function. They ask a :class:`Dialect`, so the same
statements run on PostgreSQL in production and on SQLite in development
and tests.

Architecture::

    compile_list_query(table, qf, dialect)
        │
        ├── dialect.placeholder(1)  → "%s" (psycopg2) / "?" (sqlite3)
        └── dialect.now()           → "NOW()" / "datetime('now')"

Placeholders are positional: the n-th placeholder in the SQL text binds
the n-th element of the parameter sequence. ``placeholder(index)`` takes
the 1-based position so that numbered styles can be supported without
touching the callers.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """Generates backend-specific SQL fragments."""

    @property
    def name(self) -> str:
        """Backend identifier (``"postgresql"``, ``"sqlite"``)."""
        ...

    @property
    def paramstyle(self) -> str:
        """DB-API 2.0 paramstyle of the placeholders this dialect emits."""
        ...

    def placeholder(self, index: int) -> str:
        """Placeholder for the parameter at 1-based position ``index``."""
        ...

    def placeholders(self, count: int, start: int = 1) -> str:
        """Comma-separated placeholders for ``count`` consecutive parameters."""
        ...

    def now(self) -> str:
        """SQL expression for the current timestamp."""
        ...


class SQLiteDialect:
    """SQLite dialect: ``?`` placeholders, ``datetime('now')``."""

    @property
    def name(self) -> str:
        return "sqlite"

    @property
    def paramstyle(self) -> str:
        return "qmark"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int, start: int = 1) -> str:
        return ", ".join(self.placeholder(start + i) for i in range(count))

    def now(self) -> str:
        return "datetime('now')"


class PostgreSQLDialect:
    """PostgreSQL dialect: ``%s`` placeholders (psycopg2), ``NOW()``."""

    @property
    def name(self) -> str:
        return "postgresql"

    @property
    def paramstyle(self) -> str:
        return "format"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int, start: int = 1) -> str:
        return ", ".join(self.placeholder(start + i) for i in range(count))

    def now(self) -> str:
        return "NOW()"


_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.

    Example:
        >>> get_dialect("postgresql").placeholders(2)
        '%s, %s'
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect {db_type!r}. Supported: {', '.join(sorted(_DIALECTS))}"
        )
    return _DIALECTS[key]


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "get_dialect",
]
