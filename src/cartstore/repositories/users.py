"""User repository.

Tags:
    cartstore, repository, users
"""

from __future__ import annotations

from cartstore.dialect import Dialect
from cartstore.models import User
from cartstore.protocols import Executor
from cartstore.repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """CRUD for the ``users`` table, plus lookups by username."""

    entity = User

    def __init__(self, dialect: Dialect | None = None) -> None:
        super().__init__(dialect)
        ph = self.dialect.placeholder
        self._by_username_sql = (
            f"SELECT {', '.join(self.table.select_columns)} FROM users "
            f"WHERE archived_on IS NULL AND username = {ph(1)}"
        )
        self._username_exists_sql = (
            f"SELECT EXISTS(SELECT 1 FROM users WHERE username = {ph(1)} AND archived_on IS NULL)"
        )

    def get_by_username(self, executor: Executor, username: str) -> User:
        """Read the live user with ``username``; raises ``NotFoundError``."""
        return self._get_one(executor, self._by_username_sql, (username,))

    def exists_with_username(self, executor: Executor, username: str) -> bool:
        return self._exists(executor, self._username_exists_sql, (username,))
