"""cartstore -- persistence layer for a commerce store.

Architecture::

    Layer 1 -- Errors, settings, logging
        errors.py          Structured error hierarchy (CartstoreError)
        settings.py        StoreSettings (pydantic-settings, CARTSTORE_ env)
        logging.py         structlog configuration

    Layer 2 -- Execution
        protocols.py       Executor protocol
        dialect.py         Placeholder style and now() per backend
        executors/         ConnectionExecutor, transaction(), SessionExecutor
        connection.py      Connection factory (create_connection)

    Layer 3 -- Mapping
        models/            Entity dataclasses and table metadata
        query.py           QueryFilter and its SQL compiler
        repository.py      BaseRepository (CRUD + soft delete)
        repositories/      Users, product roots, options, option values

    Layer 4 -- Schema
        migrations/        Asset bundle, Migrator, startup bootstrap
        cli.py             ``cartstore`` command (typer)
"""

from cartstore.connection import ConnectionInfo, create_connection, executor_for
from cartstore.dialect import Dialect, PostgreSQLDialect, SQLiteDialect, get_dialect
from cartstore.errors import (
    CartstoreError,
    DatabaseConnectionError,
    DatabaseUnavailableError,
    NotFoundError,
    QueryError,
    ValidationError,
)
from cartstore.executors import ConnectionExecutor, SessionExecutor, transaction
from cartstore.models import ProductOption, ProductOptionValue, ProductRoot, User
from cartstore.protocols import Executor
from cartstore.query import QueryFilter, SortDirection
from cartstore.repositories import (
    ProductOptionRepository,
    ProductOptionValueRepository,
    ProductRootRepository,
    UserRepository,
)

__version__ = "0.1.0"

__all__ = [
    # errors
    "CartstoreError",
    "DatabaseConnectionError",
    "DatabaseUnavailableError",
    "NotFoundError",
    "QueryError",
    "ValidationError",
    # execution
    "Dialect",
    "Executor",
    "ConnectionExecutor",
    "SessionExecutor",
    "PostgreSQLDialect",
    "SQLiteDialect",
    "ConnectionInfo",
    "create_connection",
    "executor_for",
    "get_dialect",
    "transaction",
    # mapping
    "QueryFilter",
    "SortDirection",
    "User",
    "ProductRoot",
    "ProductOption",
    "ProductOptionValue",
    "UserRepository",
    "ProductRootRepository",
    "ProductOptionRepository",
    "ProductOptionValueRepository",
]
