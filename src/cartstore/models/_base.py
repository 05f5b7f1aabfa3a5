"""Shared entity machinery.

Every entity is a keyword-only dataclass that declares its table through a
:class:`Table` class attribute. The table fixes one column order that both
the read path (``SELECT`` lists, :meth:`Entity.from_row`) and the write
path (``INSERT``/``UPDATE`` lists, :meth:`Entity.to_params`) derive from,
so the two can never drift apart.

Tags:
    cartstore, entity, mapping, dataclass
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, TypeVar, get_args, get_type_hints

from cartstore.errors import ScanError

STORE_MANAGED_COLUMNS = ("created_on", "updated_on", "archived_on")

E = TypeVar("E", bound="Entity")


@dataclass(frozen=True, slots=True)
class Table:
    """Table metadata for one entity type.

    Attributes:
        name: Table name
        columns: Caller-writable columns, in storage order
        parent_column: Foreign key to the owning parent, if any
    """

    name: str
    columns: tuple[str, ...]
    parent_column: str | None = None

    @property
    def select_columns(self) -> tuple[str, ...]:
        """Every mapped column in read order."""
        return ("id", *self.columns, *STORE_MANAGED_COLUMNS)

    @property
    def filterable_columns(self) -> frozenset[str]:
        return frozenset(self.select_columns)


@dataclass(kw_only=True)
class Entity:
    """Base for all persisted records.

    ``id`` and ``created_on`` are assigned by the store on create,
    ``updated_on`` on every update, and ``archived_on`` once on archive.
    """

    __table__: ClassVar[Table]

    id: int | None = None
    created_on: datetime | None = None
    updated_on: datetime | None = None
    archived_on: datetime | None = None

    @property
    def is_archived(self) -> bool:
        return self.archived_on is not None

    def to_params(self) -> tuple[Any, ...]:
        """Values of the writable columns, in table order."""
        return tuple(getattr(self, column) for column in self.__table__.columns)

    @classmethod
    def from_row(cls: type[E], row: tuple[Any, ...]) -> E:
        """Build an entity from a row in ``select_columns`` order.

        Each value is checked against the field's annotation. Timestamps
        arriving as ISO text (SQLite) are decoded, integer booleans become
        ``bool`` and ``memoryview`` blobs (psycopg2) become ``bytes``.

        Raises:
            ScanError: The row does not have the entity's shape, a
                non-nullable column is NULL, or a value has the wrong type.
        """
        table = cls.__table__
        columns = table.select_columns
        if len(row) != len(columns):
            raise ScanError(
                f"expected {len(columns)} columns for {table.name}, got {len(row)}"
            ).with_context(table=table.name)
        scanners = _scanners(cls)
        values = {}
        for column, value in zip(columns, row):
            kind, nullable = scanners[column]
            if value is None:
                if not nullable:
                    raise ScanError(f"{table.name}.{column} is NULL").with_context(table=table.name)
                values[column] = None
                continue
            try:
                values[column] = _SCAN[kind](value)
            except (TypeError, ValueError) as exc:
                raise ScanError(
                    f"cannot scan {table.name}.{column}: {exc}", cause=exc
                ).with_context(table=table.name) from exc
        return cls(**values)


def decode_timestamp(value: Any) -> datetime | None:
    """A ``datetime`` from a driver value; SQLite hands back ISO text."""
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise TypeError(f"expected a timestamp, got {type(value).__name__}")


def _scan_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer, got {type(value).__name__}")
    return value


def _scan_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    return float(value)


def _scan_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise TypeError(f"expected a boolean, got {value!r}")


def _scan_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected text, got {type(value).__name__}")
    return value


def _scan_bytes(value: Any) -> bytes:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise TypeError(f"expected bytes, got {type(value).__name__}")
    return bytes(value)


_SCAN: dict[type, Callable[[Any], Any]] = {
    int: _scan_int,
    float: _scan_float,
    bool: _scan_bool,
    str: _scan_str,
    bytes: _scan_bytes,
    datetime: decode_timestamp,
}


@functools.cache
def _scanners(cls: type[Entity]) -> dict[str, tuple[type, bool]]:
    """Column -> (value type, nullable), from the dataclass annotations."""
    hints = get_type_hints(cls)
    scanners = {}
    for column in cls.__table__.select_columns:
        hint = hints[column]
        args = get_args(hint)
        nullable = type(None) in args
        kind = next(a for a in args if a is not type(None)) if args else hint
        scanners[column] = (kind, nullable)
    return scanners
