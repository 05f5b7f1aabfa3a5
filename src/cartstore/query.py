"""Query filters and their SQL compiler.

A :class:`QueryFilter` describes *which page of which rows* a caller wants;
:func:`compile_list_query` and :func:`compile_count_query` turn it into SQL
text plus a positional parameter tuple for one table.

Compilation is deterministic: the same filter and table always produce
byte-identical SQL and the same parameter order. Predicates are emitted in
a fixed sequence::

    archived_on IS NULL                       (unless include_archived)
    <column> = ?                              (constraints, sorted by column)
    created_on > ? / created_on < ?           (created_after / created_before)
    updated_on > ? / updated_on < ?           (updated_after / updated_before)

Column names are only ever taken from the table's own column list, and
values only ever travel as bound parameters. Constraints on unknown
columns, ``None`` values, and unknown sort columns are dropped rather than
compiled into always-true clauses.

Examples:
    >>> from cartstore.dialect import PostgreSQLDialect
    >>> from cartstore.models import User
    >>> compile_count_query(User.__table__, QueryFilter(), PostgreSQLDialect())
    ('SELECT count(id) FROM users WHERE archived_on IS NULL LIMIT 25', ())
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from cartstore.dialect import Dialect
from cartstore.errors import ValidationError
from cartstore.models._base import Table

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 25
MAX_LIMIT = 100
DEFAULT_SORT_COLUMN = "id"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _positive_int(name: str, value: Any, default: int) -> int:
    # bool is an int subclass; True must not read as page 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{name} must be an integer, got {type(value).__name__}",
            field=name,
            value=value,
        )
    return value if value > 0 else default


@dataclass(frozen=True)
class QueryFilter:
    """Pagination, sorting and constraints for list and count reads.

    ``page`` and ``limit`` are normalized on construction: non-positive
    values fall back to the defaults and ``limit`` is capped at
    :data:`MAX_LIMIT`, so a filter can never describe an unbounded read.

    ``constraints`` maps column names to exact-match values. It is stored
    as a tuple of pairs sorted by column name.
    """

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_by: str | None = None
    sort_direction: SortDirection = SortDirection.ASC
    constraints: Mapping[str, Any] | tuple[tuple[str, Any], ...] = field(default=())
    created_after: datetime | None = None
    created_before: datetime | None = None
    updated_after: datetime | None = None
    updated_before: datetime | None = None
    include_archived: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "page", _positive_int("page", self.page, DEFAULT_PAGE))
        limit = _positive_int("limit", self.limit, DEFAULT_LIMIT)
        object.__setattr__(self, "limit", min(limit, MAX_LIMIT))

        try:
            direction = SortDirection(self.sort_direction)
        except ValueError as exc:
            raise ValidationError(
                f"sort_direction must be 'asc' or 'desc', got {self.sort_direction!r}",
                field="sort_direction",
                value=self.sort_direction,
            ) from exc
        object.__setattr__(self, "sort_direction", direction)

        pairs = self.constraints.items() if isinstance(self.constraints, Mapping) else self.constraints
        object.__setattr__(self, "constraints", tuple(sorted(pairs, key=lambda kv: kv[0])))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _where(table: Table, qf: QueryFilter, dialect: Dialect) -> tuple[str, tuple[Any, ...]]:
    clauses: list[str] = []
    params: list[Any] = []

    def bind(clause: str, value: Any) -> None:
        params.append(value)
        clauses.append(clause.format(ph=dialect.placeholder(len(params))))

    if not qf.include_archived:
        clauses.append("archived_on IS NULL")

    known = table.filterable_columns
    for column, value in qf.constraints:
        if column in known and value is not None:
            bind(f"{column} = {{ph}}", value)

    if qf.created_after is not None:
        bind("created_on > {ph}", qf.created_after)
    if qf.created_before is not None:
        bind("created_on < {ph}", qf.created_before)
    if qf.updated_after is not None:
        bind("updated_on > {ph}", qf.updated_after)
    if qf.updated_before is not None:
        bind("updated_on < {ph}", qf.updated_before)

    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, tuple(params)


def compile_list_query(
    table: Table, qf: QueryFilter | None, dialect: Dialect
) -> tuple[str, tuple[Any, ...]]:
    """Compile the "fetch rows" form of a filter.

    ``SELECT <columns> FROM <table> [WHERE ...] ORDER BY <col> <DIR>[, id ASC]
    LIMIT <n> [OFFSET <m>]``. Sorting on any column but ``id`` adds ``id``
    as a tiebreaker. OFFSET is omitted on the first page.
    """
    qf = qf or QueryFilter()
    where, params = _where(table, qf, dialect)

    sort_by = qf.sort_by if qf.sort_by in table.filterable_columns else DEFAULT_SORT_COLUMN
    order = f"{sort_by} {qf.sort_direction.value.upper()}"
    if sort_by != DEFAULT_SORT_COLUMN:
        # id breaks ties so consecutive pages never overlap
        order += f", {DEFAULT_SORT_COLUMN} ASC"
    sql = (
        f"SELECT {', '.join(table.select_columns)} FROM {table.name}{where}"
        f" ORDER BY {order}"
        f" LIMIT {qf.limit}"
    )
    if qf.page > 1:
        sql += f" OFFSET {qf.offset}"
    return sql, params


def compile_count_query(
    table: Table, qf: QueryFilter | None, dialect: Dialect
) -> tuple[str, tuple[Any, ...]]:
    """Compile the "count rows" form of a filter.

    Same predicate as the list form, no ordering and no OFFSET. The LIMIT
    is kept so that both forms carry the same page size; it never truncates
    the single count row.
    """
    qf = qf or QueryFilter()
    where, params = _where(table, qf, dialect)
    return f"SELECT count(id) FROM {table.name}{where} LIMIT {qf.limit}", params


__all__ = [
    "DEFAULT_LIMIT",
    "DEFAULT_PAGE",
    "MAX_LIMIT",
    "QueryFilter",
    "SortDirection",
    "compile_count_query",
    "compile_list_query",
]
