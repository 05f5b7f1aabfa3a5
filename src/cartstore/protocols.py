"""
Canonical protocol definitions for cartstore.

:class:`Executor` is the single capability every repository operation and
the migration engine depend on. A bare connection, an open transaction and
a SQLAlchemy session all satisfy it, so repository code never knows (or
decides) whether it runs inside a transaction.

Architecture:
    ::

        Executor Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ query_row(sql, params)   → one row, or None            │
        │ query(sql, params)       → iterator over rows          │
        │ execute(sql, params)     → affected row count          │
        │ execute_script(sql)      → multi-statement script      │
        │ dialect                  → placeholder / now() style   │
        └────────────────────────────────────────────────────────┘

        Implementations (cartstore.executors):
        ┌────────────────────────────────────────────────────────┐
        │ ConnectionExecutor   → autocommit DB-API connection    │
        │ TransactionExecutor  → transaction(conn) context       │
        │ SessionExecutor      → sqlalchemy.orm.Session          │
        └────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Add commit()/rollback() to Executor
    ✅ DO: Let the caller own transaction boundaries via transaction(conn)

Examples:
    >>> def count_users(ex: Executor) -> int:
    ...     row = ex.query_row("SELECT count(id) FROM users")
    ...     return row[0]
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any, Protocol, runtime_checkable

from cartstore.dialect import Dialect

Row = tuple[Any, ...]


@runtime_checkable
class Executor(Protocol):
    """Parameterized statement execution over a connection or transaction.

    Implementations translate driver exceptions into
    :mod:`cartstore.errors` types. ``query_row`` reports "no rows" as
    ``None``; it is not an error at this level.
    """

    @property
    def dialect(self) -> Dialect:
        """SQL dialect matching the underlying driver."""
        ...

    def query_row(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        """Execute and return the first result row, or None."""
        ...

    def query(self, sql: str, params: Sequence[Any] = ()) -> Iterator[Row]:
        """Execute and iterate over every result row."""
        ...

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Execute a statement without result rows; return the row count."""
        ...

    def execute_script(self, sql: str) -> None:
        """Execute a multi-statement script without parameters."""
        ...


__all__ = [
    "Executor",
    "Row",
]
