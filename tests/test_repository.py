"""Tests for BaseRepository and the entity repositories."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import datetime
from typing import Any

import pytest

from cartstore.dialect import PostgreSQLDialect, SQLiteDialect
from cartstore.errors import (
    DatabaseConnectionError,
    IntegrityError,
    NotFoundError,
    QueryError,
    ScanError,
)
from cartstore.executors import transaction
from cartstore.models import ProductOption, ProductOptionValue, ProductRoot, User
from cartstore.query import QueryFilter, SortDirection
from cartstore.repositories import ProductOptionRepository, UserRepository


def _user(username: str = "ada", **kw: Any) -> User:
    return User(username=username, password="hash", salt=b"salt", **kw)


class FakeExecutor:
    """Executor double that replays canned rows."""

    def __init__(self, rows: Sequence[tuple] = (), fail_after: int | None = None) -> None:
        self.rows = list(rows)
        self.fail_after = fail_after
        self.statements: list[tuple[str, tuple]] = []

    @property
    def dialect(self):
        return PostgreSQLDialect()

    def query_row(self, sql, params=()):
        self.statements.append((sql, tuple(params)))
        return self.rows[0] if self.rows else None

    def query(self, sql, params=()) -> Iterator[tuple]:
        self.statements.append((sql, tuple(params)))
        for i, row in enumerate(self.rows):
            if self.fail_after is not None and i == self.fail_after:
                raise QueryError("cursor failed while advancing")
            yield row

    def execute(self, sql, params=()) -> int:
        self.statements.append((sql, tuple(params)))
        return len(self.rows)

    def execute_script(self, sql) -> None:
        self.statements.append((sql, ()))


# ── Rendered SQL ──────────────────────────────────────────────────────


class TestRenderedStatements:
    def test_postgres_is_default(self):
        repo = UserRepository()
        ex = FakeExecutor()
        repo.exists(ex, 5)
        sql, params = ex.statements[0]
        assert sql == "SELECT EXISTS(SELECT 1 FROM users WHERE id = %s AND archived_on IS NULL)"
        assert params == (5,)

    def test_update_binds_id_last(self):
        repo = ProductOptionRepository()
        ex = FakeExecutor(rows=[("2024-01-01",)])
        repo.update(ex, ProductOption(id=3, name="size", product_root_id=8))
        sql, params = ex.statements[0]
        assert sql == (
            "UPDATE product_options SET name = %s, product_root_id = %s, updated_on = NOW() "
            "WHERE id = %s RETURNING updated_on"
        )
        assert params == ("size", 8, 3)

    def test_create_never_binds_id(self):
        repo = ProductOptionRepository()
        ex = FakeExecutor(rows=[(1, "2024-01-01")])
        repo.create(ex, ProductOption(id=77, name="size", product_root_id=8))
        sql, params = ex.statements[0]
        assert sql.startswith("INSERT INTO product_options (name, product_root_id) VALUES (%s, %s)")
        assert 77 not in params


# ── Fail-closed reads ─────────────────────────────────────────────────


class TestFailClosedList:
    def test_scan_error_on_second_row(self):
        good = (1, "color", 4, None, None, None)
        bad = (2, "size")
        ex = FakeExecutor(rows=[good, bad, good])
        with pytest.raises(ScanError):
            ProductOptionRepository().list(ex)

    def test_cursor_error_while_advancing(self):
        good = (1, "color", 4, None, None, None)
        ex = FakeExecutor(rows=[good, good, good], fail_after=2)
        with pytest.raises(QueryError):
            ProductOptionRepository().list(ex)

    def test_missing_executor(self):
        with pytest.raises(DatabaseConnectionError):
            UserRepository().list(None)  # type: ignore[arg-type]

    def test_count_with_no_row(self):
        with pytest.raises(QueryError):
            UserRepository().count(FakeExecutor())


# ── Round trips on SQLite ─────────────────────────────────────────────


class TestUserRepository:
    def test_create_and_get(self, executor, users):
        changed = datetime(2024, 1, 2, 3, 4, 5)
        original = _user(first_name="Ada", is_admin=True, password_last_changed_on=changed)
        user_id, created_on = users.create(executor, original)
        assert user_id == 1
        assert isinstance(created_on, datetime)

        user = users.get(executor, user_id)
        assert user.id == user_id
        assert user.to_params() == original.to_params()
        assert user.password_last_changed_on == changed
        assert user.salt == b"salt"
        assert user.is_admin is True
        assert user.created_on == created_on
        assert user.updated_on is None
        assert not user.is_archived

    def test_create_ignores_entity_id(self, executor, users):
        user_id, _ = users.create(executor, _user(id=500))
        assert user_id == 1

    def test_get_missing(self, executor, users):
        with pytest.raises(NotFoundError) as exc_info:
            users.get(executor, 42)
        assert exc_info.value.context.table == "users"
        assert exc_info.value.context.entity_id == 42

    def test_exists(self, executor, users):
        assert users.exists(executor, 1) is False
        user_id, _ = users.create(executor, _user())
        assert users.exists(executor, user_id) is True

    def test_update(self, executor, users):
        user_id, _ = users.create(executor, _user())
        user = users.get(executor, user_id)
        user.email = "ada@example.com"
        updated_on = users.update(executor, user)
        assert isinstance(updated_on, datetime)

        again = users.get(executor, user_id)
        assert again.email == "ada@example.com"
        assert again.updated_on == updated_on

    def test_update_missing(self, executor, users):
        with pytest.raises(NotFoundError):
            users.update(executor, _user(id=9))

    def test_archive_hides_row(self, executor, users):
        user_id, _ = users.create(executor, _user())
        archived_on = users.archive(executor, user_id)
        assert isinstance(archived_on, datetime)

        assert users.exists(executor, user_id) is False
        with pytest.raises(NotFoundError):
            users.get(executor, user_id)
        assert users.list(executor) == []
        assert users.count(executor) == 0

    def test_archived_rows_visible_on_request(self, executor, users):
        user_id, _ = users.create(executor, _user())
        users.archive(executor, user_id)
        archived = users.list(executor, QueryFilter(include_archived=True))
        assert [u.id for u in archived] == [user_id]
        assert archived[0].is_archived

    def test_archive_missing(self, executor, users):
        with pytest.raises(NotFoundError):
            users.archive(executor, 3)

    def test_list_pages_and_sorts(self, executor, users):
        for name in ("carol", "ada", "bob"):
            users.create(executor, _user(name))

        first = users.list(executor, QueryFilter(limit=2, sort_by="username"))
        assert [u.username for u in first] == ["ada", "bob"]
        second = users.list(executor, QueryFilter(page=2, limit=2, sort_by="username"))
        assert [u.username for u in second] == ["carol"]

        desc = users.list(executor, QueryFilter(sort_by="username", sort_direction=SortDirection.DESC))
        assert [u.username for u in desc] == ["carol", "bob", "ada"]

    def test_pages_over_non_unique_column_are_disjoint(self, executor, users):
        for name in ("ada", "bob", "carol", "dave", "erin"):
            users.create(executor, _user(name))

        seen = []
        for page in (1, 2, 3):
            qf = QueryFilter(page=page, limit=2, sort_by="is_admin")
            seen.extend(u.username for u in users.list(executor, qf))
        assert seen == ["ada", "bob", "carol", "dave", "erin"]

    def test_list_and_count_with_constraints(self, executor, users):
        users.create(executor, _user("ada", is_admin=True))
        users.create(executor, _user("bob"))
        qf = QueryFilter(constraints={"is_admin": True})
        assert [u.username for u in users.list(executor, qf)] == ["ada"]
        assert users.count(executor, qf) == 1
        assert users.count(executor) == 2

    def test_username_lookups(self, executor, users):
        users.create(executor, _user("ada"))
        assert users.get_by_username(executor, "ada").username == "ada"
        assert users.exists_with_username(executor, "ada") is True
        assert users.exists_with_username(executor, "bob") is False
        with pytest.raises(NotFoundError):
            users.get_by_username(executor, "bob")

    def test_constraint_violation(self, executor, users):
        with pytest.raises(IntegrityError):
            users.create(executor, User(username="ada", password="x", salt=None))  # type: ignore[arg-type]


class TestProductRepositories:
    @pytest.fixture()
    def root_id(self, executor, roots) -> int:
        root_id, _ = roots.create(
            executor, ProductRoot(name="T-Shirt", sku_prefix="t-shirt", cost=12.34, taxable=True)
        )
        return root_id

    def test_root_round_trip(self, executor, roots, root_id):
        root = roots.get(executor, root_id)
        assert root.name == "T-Shirt"
        assert root.cost == pytest.approx(12.34)
        assert root.quantity_per_package == 1

    def test_root_timestamps_round_trip(self, executor, roots):
        available = datetime(2024, 1, 2, 3, 4, 5)
        original = ProductRoot(name="Mug", sku_prefix="mug", available_on=available)
        root_id, created_on = roots.create(executor, original)

        root = roots.get(executor, root_id)
        assert root.available_on == available
        assert root.to_params() == original.to_params()
        assert root.created_on == created_on
        assert root.taxable is False

    def test_sku_prefix_exists(self, executor, roots, root_id):
        assert roots.exists_with_sku_prefix(executor, "t-shirt") is True
        roots.archive(executor, root_id)
        assert roots.exists_with_sku_prefix(executor, "t-shirt") is False

    def test_options_for_root(self, executor, options, root_id):
        for name in ("color", "size"):
            options.create(executor, ProductOption(name=name, product_root_id=root_id))

        found = options.list_for_product_root(executor, root_id)
        assert [o.name for o in found] == ["color", "size"]
        assert options.exists_with_name_for_product_root(executor, "size", root_id) is True
        assert options.exists_with_name_for_product_root(executor, "size", root_id + 1) is False

    def test_option_requires_existing_root(self, executor, options):
        with pytest.raises(IntegrityError):
            options.create(executor, ProductOption(name="color", product_root_id=999))

    def test_values_for_option(self, executor, options, values, root_id):
        option_id, _ = options.create(executor, ProductOption(name="color", product_root_id=root_id))
        for value in ("red", "green"):
            values.create(executor, ProductOptionValue(product_option_id=option_id, value=value))

        found = values.list_for_product_option(executor, option_id)
        assert [v.value for v in found] == ["red", "green"]
        assert values.exists_with_value_for_product_option(executor, "red", option_id) is True
        assert values.exists_with_value_for_product_option(executor, "blue", option_id) is False

    def test_archive_cascade_in_transaction(self, conn, executor, roots, options, values, root_id):
        color_id, _ = options.create(executor, ProductOption(name="color", product_root_id=root_id))
        size_id, _ = options.create(executor, ProductOption(name="size", product_root_id=root_id))
        for option_id, value in ((color_id, "red"), (color_id, "blue"), (size_id, "small")):
            values.create(executor, ProductOptionValue(product_option_id=option_id, value=value))

        with transaction(conn, SQLiteDialect()) as tx:
            roots.archive(tx, root_id)
            archived_values = sum(
                values.archive_for_product_option(tx, o.id)
                for o in options.list_for_product_root(tx, root_id)
            )
            archived_options = options.archive_for_product_root(tx, root_id)

        assert archived_options == 2
        assert archived_values == 3
        assert roots.exists(executor, root_id) is False
        assert options.list_for_product_root(executor, root_id) == []
        assert values.list_for_product_option(executor, color_id) == []

    def test_archive_for_parent_skips_archived_rows(self, executor, options, root_id):
        option_id, _ = options.create(executor, ProductOption(name="color", product_root_id=root_id))
        options.create(executor, ProductOption(name="size", product_root_id=root_id))
        options.archive(executor, option_id)
        assert options.archive_for_product_root(executor, root_id) == 1

    def test_archive_cascade_rolls_back(self, conn, executor, roots, options, root_id):
        options.create(executor, ProductOption(name="color", product_root_id=root_id))
        with pytest.raises(RuntimeError):
            with transaction(conn, SQLiteDialect()) as tx:
                roots.archive(tx, root_id)
                options.archive_for_product_root(tx, root_id)
                raise RuntimeError("abort")
        assert roots.exists(executor, root_id) is True
        assert len(options.list_for_product_root(executor, root_id)) == 1

    def test_archive_for_parent_requires_parent(self, executor, roots):
        with pytest.raises(TypeError):
            roots.archive_for_parent(executor, 1)
