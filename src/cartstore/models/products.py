"""Product catalogue entities.

Ownership runs one way: a ``ProductOption`` points at its ``ProductRoot``
and a ``ProductOptionValue`` at its ``ProductOption``. Parents hold no
back-collections; children are looked up by parent id.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar

from cartstore.models._base import Entity, Table


@dataclass(kw_only=True)
class ProductRoot(Entity):
    """Shared attributes of every product variant under one SKU prefix."""

    __table__: ClassVar[Table] = Table(
        name="product_roots",
        columns=(
            "name",
            "subtitle",
            "description",
            "sku_prefix",
            "manufacturer",
            "brand",
            "taxable",
            "cost",
            "product_weight",
            "product_height",
            "product_width",
            "product_length",
            "package_weight",
            "package_height",
            "package_width",
            "package_length",
            "quantity_per_package",
            "available_on",
        ),
    )

    name: str = ""
    subtitle: str = ""
    description: str = ""
    sku_prefix: str = ""
    manufacturer: str = ""
    brand: str = ""
    taxable: bool = False
    cost: float = 0.0
    product_weight: float = 0.0
    product_height: float = 0.0
    product_width: float = 0.0
    product_length: float = 0.0
    package_weight: float = 0.0
    package_height: float = 0.0
    package_width: float = 0.0
    package_length: float = 0.0
    quantity_per_package: int = 1
    available_on: datetime | None = None


@dataclass(kw_only=True)
class ProductOption(Entity):
    """A configurable dimension of a product root, e.g. "color"."""

    __table__: ClassVar[Table] = Table(
        name="product_options",
        columns=("name", "product_root_id"),
        parent_column="product_root_id",
    )

    name: str = ""
    product_root_id: int = 0


@dataclass(kw_only=True)
class ProductOptionValue(Entity):
    """One choice for a product option, e.g. "red"."""

    __table__: ClassVar[Table] = Table(
        name="product_option_values",
        columns=("product_option_id", "value"),
        parent_column="product_option_id",
    )

    product_option_id: int = 0
    value: str = ""
