"""Executor implementations.

Modules
-------
dbapi      ConnectionExecutor, TransactionExecutor, transaction()
session    SessionExecutor (SQLAlchemy ``Session``)
"""

from cartstore.executors.dbapi import (
    ConnectionExecutor,
    DBAPIExecutor,
    TransactionExecutor,
    detect_dialect,
    transaction,
)
from cartstore.executors.session import SessionExecutor

__all__ = [
    "ConnectionExecutor",
    "DBAPIExecutor",
    "TransactionExecutor",
    "SessionExecutor",
    "detect_dialect",
    "transaction",
]
