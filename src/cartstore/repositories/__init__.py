"""Repositories for the commerce tables.

Each repository extends :class:`~cartstore.repository.BaseRepository` and
only adds the lookups specific to its entity.

Architecture::

    users.py                    UserRepository
    product_roots.py            ProductRootRepository
    product_options.py          ProductOptionRepository       (parent: product_roots)
    product_option_values.py    ProductOptionValueRepository  (parent: product_options)

Tags:
    repository, sql, soft-delete, cartstore
"""

from cartstore.repositories.product_option_values import ProductOptionValueRepository
from cartstore.repositories.product_options import ProductOptionRepository
from cartstore.repositories.product_roots import ProductRootRepository
from cartstore.repositories.users import UserRepository

__all__ = [
    "UserRepository",
    "ProductRootRepository",
    "ProductOptionRepository",
    "ProductOptionValueRepository",
]
