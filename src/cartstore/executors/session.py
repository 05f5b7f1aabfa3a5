"""SQLAlchemy session executor.

``SessionExecutor`` wraps a SQLAlchemy ``Session`` so that repository calls
can share the session's transaction with ORM code elsewhere in the
application. The session's owner commits or rolls back; this adapter only
executes statements.

Positional placeholders produced by the query compiler (``%s`` or ``?``)
are rewritten to SQLAlchemy's named ``:p0, :p1, ...`` binds in order, so
parameter positions are preserved exactly.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any

import sqlparse
from sqlalchemy import exc as sa_exc
from sqlalchemy import text
from sqlalchemy.orm import Session

from cartstore.dialect import Dialect, get_dialect
from cartstore.errors import (
    CartstoreError,
    DatabaseConnectionError,
    IntegrityError,
    QueryError,
)
from cartstore.logging import get_logger
from cartstore.protocols import Row

logger = get_logger(__name__)

_TOKENS = {"format": "%s", "qmark": "?"}


def rewrite_placeholders(sql: str, paramstyle: str) -> str:
    """Rewrite positional placeholders to ``:pN`` named binds.

    >>> rewrite_placeholders("SELECT * FROM t WHERE a = %s AND b = %s", "format")
    'SELECT * FROM t WHERE a = :p0 AND b = :p1'
    """
    token = _TOKENS[paramstyle]
    parts = sql.split(token)
    rewritten = [parts[0]]
    for idx, part in enumerate(parts[1:]):
        rewritten.append(f":p{idx}")
        rewritten.append(part)
    return "".join(rewritten)


class SessionExecutor:
    """Adapter that makes a SQLAlchemy ``Session`` satisfy ``Executor``.

    Parameters:
        session: An open ``sqlalchemy.orm.Session``.
        dialect: SQL dialect. Defaults to the dialect of the session's bind.
    """

    def __init__(self, session: Session | None, dialect: Dialect | None = None) -> None:
        self._session = session
        if dialect is None:
            name = session.get_bind().dialect.name if session is not None else "postgresql"
            dialect = get_dialect(name)
        self._dialect = dialect

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def session(self) -> Session | None:
        """Access the underlying SA session."""
        return self._session

    # -- Executor protocol -------------------------------------------------

    def query_row(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        result = self._run(sql, params)
        try:
            row = result.fetchone()
        except sa_exc.SQLAlchemyError as exc:
            raise _translate(exc, sql) from exc
        return tuple(row) if row is not None else None

    def query(self, sql: str, params: Sequence[Any] = ()) -> Iterator[Row]:
        result = self._run(sql, params)
        try:
            for row in result:
                yield tuple(row)
        except sa_exc.SQLAlchemyError as exc:
            raise _translate(exc, sql) from exc

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        return self._run(sql, params).rowcount

    def execute_script(self, sql: str) -> None:
        """Run a multi-statement script inside the session's transaction.

        The script is split with sqlparse and each statement is sent on the
        session's connection, so nothing is committed here.
        """
        session = self._require_session()
        statements = [
            s for s in sqlparse.split(sql) if sqlparse.format(s, strip_comments=True).strip()
        ]
        logger.debug("script.execute", statement_count=len(statements))
        for statement in statements:
            try:
                session.connection().exec_driver_sql(statement)
            except sa_exc.SQLAlchemyError as exc:
                raise _translate(exc, statement) from exc

    # -- internal helpers --------------------------------------------------

    def _require_session(self) -> Session:
        if self._session is None:
            raise DatabaseConnectionError("database session is not available")
        return self._session

    def _run(self, sql: str, params: Sequence[Any]) -> Any:
        session = self._require_session()
        logger.debug("statement.execute", statement=sql, param_count=len(params))
        try:
            if params:
                stmt = text(rewrite_placeholders(sql, self._dialect.paramstyle))
                return session.execute(stmt, {f"p{i}": v for i, v in enumerate(params)})
            return session.execute(text(sql))
        except sa_exc.SQLAlchemyError as exc:
            raise _translate(exc, sql) from exc


def _translate(exc: sa_exc.SQLAlchemyError, sql: str | None) -> CartstoreError:
    error: CartstoreError
    if isinstance(exc, sa_exc.IntegrityError):
        error = IntegrityError(f"constraint violation: {exc}", cause=exc)
    elif isinstance(exc, sa_exc.DBAPIError) and exc.connection_invalidated:
        error = DatabaseConnectionError(f"database connection lost: {exc}", cause=exc)
    elif isinstance(exc, (sa_exc.DisconnectionError, sa_exc.ResourceClosedError)):
        error = DatabaseConnectionError(f"database connection lost: {exc}", cause=exc)
    else:
        error = QueryError(f"statement failed: {exc}", cause=exc)
    if sql is not None:
        error.with_context(statement=sql)
    return error
