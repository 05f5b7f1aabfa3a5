"""Product root repository.

Tags:
    cartstore, repository, products
"""

from __future__ import annotations

from cartstore.dialect import Dialect
from cartstore.models import ProductRoot
from cartstore.protocols import Executor
from cartstore.repository import BaseRepository


class ProductRootRepository(BaseRepository[ProductRoot]):
    """CRUD for the ``product_roots`` table.

    Archiving a root does not cascade on its own; callers archive the
    root's options in the same transaction with
    :meth:`ProductOptionRepository.archive_for_product_root`.
    """

    entity = ProductRoot

    def __init__(self, dialect: Dialect | None = None) -> None:
        super().__init__(dialect)
        self._sku_prefix_exists_sql = (
            "SELECT EXISTS(SELECT 1 FROM product_roots "
            f"WHERE sku_prefix = {self.dialect.placeholder(1)} AND archived_on IS NULL)"
        )

    def exists_with_sku_prefix(self, executor: Executor, sku_prefix: str) -> bool:
        return self._exists(executor, self._sku_prefix_exists_sql, (sku_prefix,))
