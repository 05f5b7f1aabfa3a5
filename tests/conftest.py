"""
Shared pytest fixtures for cartstore tests.

This module provides:
- In-memory SQLite connections in autocommit mode
- The entity tables rendered in SQLite DDL
- Executors and repositories bound to the SQLite dialect

Usage:
    def test_something(executor, users):
        user_id, _ = users.create(executor, User(username="ada"))
"""

import sqlite3
import sys
from pathlib import Path
from typing import Generator

import pytest

# Ensure cartstore package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cartstore.dialect import SQLiteDialect
from cartstore.executors import ConnectionExecutor
from cartstore.repositories import (
    ProductOptionRepository,
    ProductOptionValueRepository,
    ProductRootRepository,
    UserRepository,
)

# The shipped migrations are PostgreSQL DDL; tests run the same shape on SQLite.
SQLITE_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    first_name TEXT NOT NULL DEFAULT '',
    last_name TEXT NOT NULL DEFAULT '',
    username TEXT NOT NULL,
    email TEXT NOT NULL DEFAULT '',
    password TEXT NOT NULL,
    salt BLOB NOT NULL,
    is_admin BOOLEAN NOT NULL DEFAULT 0,
    password_last_changed_on TEXT,
    created_on TEXT NOT NULL DEFAULT (datetime('now')),
    updated_on TEXT,
    archived_on TEXT
);

CREATE TABLE product_roots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    subtitle TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    sku_prefix TEXT NOT NULL,
    manufacturer TEXT NOT NULL DEFAULT '',
    brand TEXT NOT NULL DEFAULT '',
    taxable BOOLEAN NOT NULL DEFAULT 0,
    cost REAL NOT NULL DEFAULT 0,
    product_weight REAL NOT NULL DEFAULT 0,
    product_height REAL NOT NULL DEFAULT 0,
    product_width REAL NOT NULL DEFAULT 0,
    product_length REAL NOT NULL DEFAULT 0,
    package_weight REAL NOT NULL DEFAULT 0,
    package_height REAL NOT NULL DEFAULT 0,
    package_width REAL NOT NULL DEFAULT 0,
    package_length REAL NOT NULL DEFAULT 0,
    quantity_per_package INTEGER NOT NULL DEFAULT 1,
    available_on TEXT,
    created_on TEXT NOT NULL DEFAULT (datetime('now')),
    updated_on TEXT,
    archived_on TEXT
);

CREATE TABLE product_options (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    product_root_id INTEGER NOT NULL REFERENCES product_roots (id),
    created_on TEXT NOT NULL DEFAULT (datetime('now')),
    updated_on TEXT,
    archived_on TEXT
);

CREATE TABLE product_option_values (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    product_option_id INTEGER NOT NULL REFERENCES product_options (id),
    value TEXT NOT NULL,
    created_on TEXT NOT NULL DEFAULT (datetime('now')),
    updated_on TEXT,
    archived_on TEXT
);
"""


@pytest.fixture()
def sqlite_schema() -> str:
    return SQLITE_SCHEMA


@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory autocommit SQLite connection with the store schema."""
    c = sqlite3.connect(":memory:", isolation_level=None)
    c.execute("PRAGMA foreign_keys=ON")
    c.executescript(SQLITE_SCHEMA)
    yield c
    c.close()


@pytest.fixture()
def dialect() -> SQLiteDialect:
    return SQLiteDialect()


@pytest.fixture()
def executor(conn: sqlite3.Connection, dialect: SQLiteDialect) -> ConnectionExecutor:
    return ConnectionExecutor(conn, dialect)


@pytest.fixture()
def users(dialect: SQLiteDialect) -> UserRepository:
    return UserRepository(dialect)


@pytest.fixture()
def roots(dialect: SQLiteDialect) -> ProductRootRepository:
    return ProductRootRepository(dialect)


@pytest.fixture()
def options(dialect: SQLiteDialect) -> ProductOptionRepository:
    return ProductOptionRepository(dialect)


@pytest.fixture()
def values(dialect: SQLiteDialect) -> ProductOptionValueRepository:
    return ProductOptionValueRepository(dialect)
