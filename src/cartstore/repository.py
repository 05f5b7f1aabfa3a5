"""Generic soft-delete repository.

Provides :class:`BaseRepository`, the one implementation of the CRUD and
archive protocol shared by every entity type. A concrete repository only
names its entity class; the table name, column order and parent key all
come from the entity's :class:`~cartstore.models.Table`.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                    BaseRepository[E]                               │
    │                                                                    │
    │   entity: type[E]        ← table, columns, parent_column           │
    │   dialect: Dialect       ← placeholder style, now()                │
    │                                                                    │
    │   exists(ex, id)             → bool                                │
    │   get(ex, id)                → E            (NotFoundError)        │
    │   list(ex, qf)               → list[E]      (fail-closed)          │
    │   count(ex, qf)              → int                                 │
    │   create(ex, entity)         → (id, created_on)                    │
    │   update(ex, entity)         → updated_on   (NotFoundError)        │
    │   archive(ex, id)            → archived_on  (NotFoundError)        │
    │   archive_for_parent(ex, id) → rows archived                       │
    └────────────────────────────────────────────────────────────────────┘

Every method borrows the caller's executor for one call. Repositories never
open, commit, roll back, or close anything, so the same calls work on a
bare connection and inside ``transaction(conn)``.

Statements are rendered for the repository's dialect. Pass the executor's
dialect when constructing (``UserRepository(ex.dialect)``); PostgreSQL is
the default.

Usage:
    >>> repo = UserRepository()
    >>> user_id, created_on = repo.create(ex, User(username="ada"))
    >>> repo.get(ex, user_id).username
    'ada'
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Generic

from cartstore.dialect import Dialect, PostgreSQLDialect
from cartstore.errors import DatabaseConnectionError, NotFoundError, QueryError, ScanError
from cartstore.logging import get_logger
from cartstore.models._base import E, Table, decode_timestamp
from cartstore.protocols import Executor
from cartstore.query import QueryFilter, compile_count_query, compile_list_query

logger = get_logger(__name__)


def _require(executor: Executor | None) -> Executor:
    if executor is None:
        raise DatabaseConnectionError("no executor supplied; database is not available")
    return executor


class BaseRepository(Generic[E]):
    """Dialect-aware CRUD and soft-delete for one entity type.

    Subclasses set :attr:`entity`; all SQL is rendered once in
    ``__init__`` from the entity's table metadata.
    """

    entity: type[E]

    def __init__(self, dialect: Dialect | None = None) -> None:
        self.dialect: Dialect = dialect or PostgreSQLDialect()
        table = self.table
        d = self.dialect
        ph = d.placeholder
        columns = ", ".join(table.select_columns)
        n = len(table.columns)

        self._exists_sql = (
            f"SELECT EXISTS(SELECT 1 FROM {table.name} WHERE id = {ph(1)} AND archived_on IS NULL)"
        )
        self._get_sql = (
            f"SELECT {columns} FROM {table.name} WHERE archived_on IS NULL AND id = {ph(1)}"
        )
        self._create_sql = (
            f"INSERT INTO {table.name} ({', '.join(table.columns)}) "
            f"VALUES ({d.placeholders(n)}) RETURNING id, created_on"
        )
        assignments = ", ".join(f"{c} = {ph(i)}" for i, c in enumerate(table.columns, start=1))
        self._update_sql = (
            f"UPDATE {table.name} SET {assignments}, updated_on = {d.now()} "
            f"WHERE id = {ph(n + 1)} RETURNING updated_on"
        )
        self._archive_sql = (
            f"UPDATE {table.name} SET archived_on = {d.now()} "
            f"WHERE id = {ph(1)} RETURNING archived_on"
        )
        self._archive_for_parent_sql = (
            f"UPDATE {table.name} SET archived_on = {d.now()} "
            f"WHERE {table.parent_column} = {ph(1)} AND archived_on IS NULL"
            if table.parent_column
            else None
        )

    @property
    def table(self) -> Table:
        return self.entity.__table__

    # -- reads -------------------------------------------------------------

    def exists(self, executor: Executor, entity_id: int) -> bool:
        """Whether a live row with ``entity_id`` exists. Absence is not an error."""
        return self._exists(executor, self._exists_sql, (entity_id,))

    def get(self, executor: Executor, entity_id: int) -> E:
        """Read one live row.

        Raises:
            NotFoundError: No live row has ``entity_id``.
        """
        return self._get_one(executor, self._get_sql, (entity_id,), entity_id=entity_id)

    def list(self, executor: Executor, qf: QueryFilter | None = None) -> list[E]:
        """Read one page of rows.

        Fail-closed: if any row fails to scan, or the cursor fails while
        advancing, the error is raised and no entities are returned.
        """
        sql, params = compile_list_query(self.table, qf, self.dialect)
        return self._list(executor, sql, params)

    def count(self, executor: Executor, qf: QueryFilter | None = None) -> int:
        sql, params = compile_count_query(self.table, qf, self.dialect)
        row = _require(executor).query_row(sql, params)
        if row is None:
            raise QueryError("count query returned no row").with_context(
                table=self.table.name, statement=sql
            )
        return int(row[0])

    # -- writes ------------------------------------------------------------

    def create(self, executor: Executor, entity: E) -> tuple[int, datetime]:
        """Insert ``entity``; the store assigns ``id`` and ``created_on``.

        Any ``id`` already set on ``entity`` is ignored. The caller can fill
        in the in-memory record from the returned pair.
        """
        row = _require(executor).query_row(self._create_sql, entity.to_params())
        if row is None:
            raise QueryError("insert returned no row").with_context(
                table=self.table.name, statement=self._create_sql
            )
        created_id, created_on = row
        logger.debug("entity.created", table=self.table.name, id=created_id)
        return created_id, self._timestamp(created_on)

    def update(self, executor: Executor, entity: E) -> datetime:
        """Rewrite every writable column of ``entity`` and stamp ``updated_on``.

        There is no partial update: the entity must carry its complete
        desired state.

        Raises:
            NotFoundError: No row has ``entity.id``.
        """
        params = (*entity.to_params(), entity.id)
        return self._stamp(executor, self._update_sql, params, entity.id)

    def archive(self, executor: Executor, entity_id: int) -> datetime:
        """Soft-delete a row by stamping ``archived_on``.

        Archiving an already archived row stamps it again.

        Raises:
            NotFoundError: No row has ``entity_id``.
        """
        archived_on = self._stamp(executor, self._archive_sql, (entity_id,), entity_id)
        logger.debug("entity.archived", table=self.table.name, id=entity_id)
        return archived_on

    def archive_for_parent(self, executor: Executor, parent_id: int) -> int:
        """Archive every live child of one parent in a single statement.

        Returns the number of rows archived.
        """
        if self._archive_for_parent_sql is None:
            raise TypeError(f"{self.table.name} has no parent column")
        count = _require(executor).execute(self._archive_for_parent_sql, (parent_id,))
        logger.debug(
            "entity.archived_for_parent",
            table=self.table.name,
            parent_id=parent_id,
            count=count,
        )
        return count

    # -- helpers for entity-specific queries -------------------------------

    def _exists(self, executor: Executor, sql: str, params: Sequence[Any]) -> bool:
        row = _require(executor).query_row(sql, params)
        if row is None:
            return False
        return bool(row[0])

    def _get_one(
        self,
        executor: Executor,
        sql: str,
        params: Sequence[Any],
        *,
        entity_id: int | None = None,
    ) -> E:
        row = _require(executor).query_row(sql, params)
        if row is None:
            raise NotFoundError(f"no live {self.table.name} row matched").with_context(
                table=self.table.name, entity_id=entity_id
            )
        return self.entity.from_row(row)

    def _list(self, executor: Executor, sql: str, params: Sequence[Any]) -> list[E]:
        return [self.entity.from_row(row) for row in _require(executor).query(sql, params)]

    def _stamp(self, executor: Executor, sql: str, params: Sequence[Any], entity_id: int | None) -> datetime:
        row = _require(executor).query_row(sql, params)
        if row is None:
            raise NotFoundError(f"no {self.table.name} row with id {entity_id}").with_context(
                table=self.table.name, entity_id=entity_id
            )
        return self._timestamp(row[0])

    def _timestamp(self, value: Any) -> datetime:
        try:
            return decode_timestamp(value)
        except (TypeError, ValueError) as exc:
            raise ScanError(
                f"cannot scan timestamp from {self.table.name}: {exc}", cause=exc
            ).with_context(table=self.table.name) from exc


__all__ = [
    "BaseRepository",
]
