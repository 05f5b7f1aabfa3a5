"""DB-API 2.0 executors.

Wraps a raw driver connection (psycopg2 or sqlite3) to satisfy the
:class:`~cartstore.protocols.Executor` protocol.

``ConnectionExecutor`` runs each statement on its own against an
autocommit connection. ``transaction(conn)`` opens a transaction on the
same connection and yields a ``TransactionExecutor``; the context manager
commits on normal exit and rolls back on exception. Repositories accept
either one and never touch transaction boundaries themselves.

Usage::

    conn, info = create_connection("postgresql://localhost/dairycart")
    ex = ConnectionExecutor(conn)
    users.get(ex, 1)

    with transaction(conn) as tx:
        roots.archive(tx, root_id)
        options.archive_for_product_root(tx, root_id)
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from cartstore.dialect import Dialect, get_dialect
from cartstore.errors import (
    CartstoreError,
    ConfigError,
    DatabaseConnectionError,
    IntegrityError,
    QueryError,
)
from cartstore.logging import get_logger
from cartstore.protocols import Row

logger = get_logger(__name__)


class _NeverRaised(Exception):
    """Placeholder for driver exception classes a connection does not expose."""


def _driver_exception(conn: Any, name: str) -> type[BaseException]:
    # DB-API 2.0 optional extension: connections expose the module's
    # exception classes as attributes (psycopg2 and sqlite3 both do).
    exc_type = getattr(conn, name, None)
    if isinstance(exc_type, type) and issubclass(exc_type, BaseException):
        return exc_type
    return _NeverRaised


def detect_dialect(conn: Any) -> Dialect:
    """Pick the dialect matching a raw driver connection."""
    module = type(conn).__module__.split(".")[0]
    if module == "sqlite3":
        return get_dialect("sqlite")
    if module in ("psycopg2", "psycopg"):
        return get_dialect("postgresql")
    raise ConfigError(f"Cannot infer SQL dialect for connection type {type(conn).__name__!r}")


class DBAPIExecutor:
    """Executor over a DB-API 2.0 connection.

    Parameters:
        conn: A psycopg2 or sqlite3 connection. ``None`` is accepted so that
              callers can build the executor before the database is up;
              every call then raises :class:`DatabaseConnectionError`.
        dialect: SQL dialect. Inferred from the connection type if omitted.
    """

    def __init__(self, conn: Any, dialect: Dialect | None = None) -> None:
        self._conn = conn
        if dialect is None:
            dialect = detect_dialect(conn) if conn is not None else get_dialect("postgresql")
        self._dialect = dialect
        self._error = _driver_exception(conn, "Error")
        self._integrity_error = _driver_exception(conn, "IntegrityError")
        self._operational_error = _driver_exception(conn, "OperationalError")
        self._interface_error = _driver_exception(conn, "InterfaceError")

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def connection(self) -> Any:
        """The underlying driver connection."""
        return self._conn

    def is_closed(self) -> bool:
        if self._conn is None:
            return True
        # psycopg2 exposes ``closed`` as an int; sqlite3 has no such attribute
        closed = getattr(self._conn, "closed", 0)
        return isinstance(closed, (bool, int)) and bool(closed)

    # -- Executor protocol -------------------------------------------------

    def query_row(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        cursor = self._cursor()
        try:
            self._run(cursor, sql, params)
            row = cursor.fetchone()
        except self._error as exc:
            raise self._translate(exc, sql) from exc
        finally:
            cursor.close()
        return tuple(row) if row is not None else None

    def query(self, sql: str, params: Sequence[Any] = ()) -> Iterator[Row]:
        cursor = self._cursor()
        try:
            self._run(cursor, sql, params)
            for row in cursor:
                yield tuple(row)
        except self._error as exc:
            raise self._translate(exc, sql) from exc
        finally:
            cursor.close()

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        cursor = self._cursor()
        try:
            self._run(cursor, sql, params)
            return cursor.rowcount
        except self._error as exc:
            raise self._translate(exc, sql) from exc
        finally:
            cursor.close()

    def execute_script(self, sql: str) -> None:
        cursor = self._cursor()
        try:
            if self._dialect.name == "sqlite":
                cursor.executescript(sql)
            else:
                cursor.execute(sql)
        except self._error as exc:
            raise self._translate(exc, None) from exc
        finally:
            cursor.close()

    # -- internal helpers --------------------------------------------------

    def _check_available(self) -> None:
        if self.is_closed():
            raise DatabaseConnectionError("database connection is not available")

    def _cursor(self) -> Any:
        self._check_available()
        try:
            return self._conn.cursor()
        except self._error as exc:
            raise self._translate(exc, None) from exc

    def _run(self, cursor: Any, sql: str, params: Sequence[Any]) -> None:
        logger.debug("statement.execute", statement=sql, param_count=len(params))
        if params:
            cursor.execute(sql, tuple(params))
        else:
            cursor.execute(sql)

    def _translate(self, exc: BaseException, sql: str | None) -> CartstoreError:
        error: CartstoreError
        if isinstance(exc, self._integrity_error):
            error = IntegrityError(f"constraint violation: {exc}", cause=exc)
        elif isinstance(exc, self._interface_error) or (
            isinstance(exc, self._operational_error) and self.is_closed()
        ):
            error = DatabaseConnectionError(f"database connection lost: {exc}", cause=exc)
        else:
            error = QueryError(f"statement failed: {exc}", cause=exc)
        if sql is not None:
            error.with_context(statement=sql)
        return error

    def __repr__(self) -> str:
        return f"{type(self).__name__}(dialect={self._dialect.name!r}, closed={self.is_closed()})"


class ConnectionExecutor(DBAPIExecutor):
    """Executor over a bare autocommit connection."""


class TransactionExecutor(DBAPIExecutor):
    """Executor bound to one open transaction.

    Only valid inside the ``transaction()`` block that produced it; using it
    afterwards raises :class:`DatabaseConnectionError`.
    """

    def __init__(self, conn: Any, dialect: Dialect | None = None) -> None:
        super().__init__(conn, dialect)
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def is_closed(self) -> bool:
        return self._finished or super().is_closed()

    def _finish(self, statement: str) -> None:
        cursor = self._cursor()
        try:
            cursor.execute(statement)
        except self._error as exc:
            raise self._translate(exc, statement) from exc
        finally:
            cursor.close()
            self._finished = True


@contextmanager
def transaction(conn: Any, dialect: Dialect | None = None) -> Iterator[TransactionExecutor]:
    """Run a block of repository calls atomically.

    Issues ``BEGIN`` on the connection, yields a :class:`TransactionExecutor`,
    then ``COMMIT`` on normal exit or ``ROLLBACK`` if the block raises. The
    connection itself stays open and owned by the caller.
    """
    tx = TransactionExecutor(conn, dialect)
    tx._check_available()
    begin = tx._cursor()
    try:
        begin.execute("BEGIN")
    except tx._error as exc:
        raise tx._translate(exc, "BEGIN") from exc
    finally:
        begin.close()
    logger.debug("transaction.begin")

    try:
        yield tx
    except BaseException:
        if not tx.is_closed():
            tx._finish("ROLLBACK")
            logger.debug("transaction.rollback")
        raise
    else:
        tx._finish("COMMIT")
        logger.debug("transaction.commit")
