"""Product option repository.

Tags:
    cartstore, repository, products
"""

from __future__ import annotations

from cartstore.dialect import Dialect
from cartstore.models import ProductOption
from cartstore.protocols import Executor
from cartstore.repository import BaseRepository


class ProductOptionRepository(BaseRepository[ProductOption]):
    """CRUD for ``product_options``, children of ``product_roots``."""

    entity = ProductOption

    def __init__(self, dialect: Dialect | None = None) -> None:
        super().__init__(dialect)
        ph = self.dialect.placeholder
        self._for_root_sql = (
            f"SELECT {', '.join(self.table.select_columns)} FROM product_options "
            f"WHERE product_root_id = {ph(1)} AND archived_on IS NULL ORDER BY id ASC"
        )
        self._name_exists_sql = (
            "SELECT EXISTS(SELECT 1 FROM product_options "
            f"WHERE name = {ph(1)} AND product_root_id = {ph(2)} AND archived_on IS NULL)"
        )

    def list_for_product_root(self, executor: Executor, product_root_id: int) -> list[ProductOption]:
        """Every live option of one product root, oldest first."""
        return self._list(executor, self._for_root_sql, (product_root_id,))

    def exists_with_name_for_product_root(
        self, executor: Executor, name: str, product_root_id: int
    ) -> bool:
        return self._exists(executor, self._name_exists_sql, (name, product_root_id))

    def archive_for_product_root(self, executor: Executor, product_root_id: int) -> int:
        """Archive all live options of a product root; returns the count."""
        return self.archive_for_parent(executor, product_root_id)
