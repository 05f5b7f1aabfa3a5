"""Product option value repository.

Tags:
    cartstore, repository, products
"""

from __future__ import annotations

from cartstore.dialect import Dialect
from cartstore.models import ProductOptionValue
from cartstore.protocols import Executor
from cartstore.repository import BaseRepository


class ProductOptionValueRepository(BaseRepository[ProductOptionValue]):
    """CRUD for ``product_option_values``, children of ``product_options``."""

    entity = ProductOptionValue

    def __init__(self, dialect: Dialect | None = None) -> None:
        super().__init__(dialect)
        ph = self.dialect.placeholder
        self._for_option_sql = (
            f"SELECT {', '.join(self.table.select_columns)} FROM product_option_values "
            f"WHERE product_option_id = {ph(1)} AND archived_on IS NULL ORDER BY id ASC"
        )
        self._value_exists_sql = (
            "SELECT EXISTS(SELECT 1 FROM product_option_values "
            f"WHERE value = {ph(1)} AND product_option_id = {ph(2)} AND archived_on IS NULL)"
        )

    def list_for_product_option(
        self, executor: Executor, product_option_id: int
    ) -> list[ProductOptionValue]:
        return self._list(executor, self._for_option_sql, (product_option_id,))

    def exists_with_value_for_product_option(
        self, executor: Executor, value: str, product_option_id: int
    ) -> bool:
        return self._exists(executor, self._value_exists_sql, (value, product_option_id))

    def archive_for_product_option(self, executor: Executor, product_option_id: int) -> int:
        """Archive all live values of a product option; returns the count."""
        return self.archive_for_parent(executor, product_option_id)
