"""Entity dataclasses and their table metadata."""

from cartstore.models._base import STORE_MANAGED_COLUMNS, Entity, Table
from cartstore.models.products import ProductOption, ProductOptionValue, ProductRoot
from cartstore.models.users import User

__all__ = [
    "STORE_MANAGED_COLUMNS",
    "Entity",
    "Table",
    "User",
    "ProductRoot",
    "ProductOption",
    "ProductOptionValue",
]
