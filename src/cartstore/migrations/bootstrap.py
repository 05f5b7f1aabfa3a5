"""Startup migration bootstrap.

Brings the schema to the current version before the application serves
traffic. The database is often still starting when the application
starts, so the bootstrap first polls for a usable connection with a
bounded budget (:class:`ConnectPolicy`), then hands the connection to the
:class:`~cartstore.migrations.runner.Migrator`.

Entrypoints
-----------
``migrate(url)``          apply every pending migration
``downgrade(url)``        revert every applied migration
``migrate_to(url, v)``    move to version ``v`` in either direction

All three return ``None`` when the schema already sits at the requested
version and raise on any other failure. Scripts tagged ``example_data``
run empty unless ``StoreSettings.load_example_data`` is set; their
versions are still recorded.

The connect and sleep callables are injectable so that callers and tests
control the clock::

    migrate("postgresql://localhost/dairycart", sleep=lambda _s: None)
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from cartstore.connection import ConnectionInfo, _redact, create_connection, ping
from cartstore.dialect import get_dialect
from cartstore.errors import ConfigError, DatabaseUnavailableError, NoChangeError
from cartstore.logging import get_logger
from cartstore.migrations.assets import AssetBundle
from cartstore.migrations.runner import Migrator
from cartstore.settings import StoreSettings

logger = get_logger(__name__)

ConnectFn = Callable[[str], tuple[Any, ConnectionInfo]]
SleepFn = Callable[[float], None]


@dataclass(frozen=True)
class ConnectPolicy:
    """How long to wait for the database.

    Attributes:
        attempts: Connection attempts before giving up (at least 1)
        interval: Seconds slept after each failed attempt but the last
    """

    attempts: int = 25
    interval: float = 0.5

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {self.attempts}")
        if self.interval < 0:
            raise ValueError(f"interval must be >= 0, got {self.interval}")


def wait_for_database(
    database_url: str,
    policy: ConnectPolicy | None = None,
    *,
    connect: ConnectFn = create_connection,
    sleep: SleepFn = time.sleep,
) -> tuple[Any, ConnectionInfo]:
    """Open a connection that has answered a ping.

    Each attempt connects and pings. A failure of either is logged as
    ``database.waiting`` and followed by a sleep of ``policy.interval``,
    except after the final attempt.

    Raises:
        ConfigError: The URL cannot name a database; not retried.
        DatabaseUnavailableError: Every attempt failed. The message names
            the last failure, which is also chained as the cause.
    """
    policy = policy or ConnectPolicy()
    last_error: Exception | None = None

    for attempt in range(1, policy.attempts + 1):
        conn = None
        try:
            conn, info = connect(database_url)
            ping(conn)
        except ConfigError:
            raise
        except Exception as exc:  # any driver failure counts as "not up yet"
            last_error = exc
            if conn is not None:
                conn.close()
            logger.warning(
                "database.waiting",
                attempt=attempt,
                attempts=policy.attempts,
                error=str(exc),
            )
            if attempt < policy.attempts:
                sleep(policy.interval)
            continue

        logger.info("database.available", attempt=attempt, backend=info.backend)
        return conn, info

    raise DatabaseUnavailableError(
        f"database at {_redact(database_url)} unavailable after "
        f"{policy.attempts} attempts: {last_error}",
        attempts=policy.attempts,
        cause=last_error,
    ) from last_error


def _bundle_for(settings: StoreSettings, bundle: AssetBundle | None) -> AssetBundle:
    bundle = bundle if bundle is not None else AssetBundle.from_package()
    if not settings.load_example_data:
        bundle = bundle.without_example_data()
    return bundle


def _run(
    action: Callable[[Migrator], object],
    database_url: str | None,
    settings: StoreSettings | None,
    bundle: AssetBundle | None,
    connect: ConnectFn,
    sleep: SleepFn,
) -> None:
    settings = settings or StoreSettings()
    url = database_url or settings.database_url
    conn, info = wait_for_database(url, settings.connect_policy(), connect=connect, sleep=sleep)
    try:
        migrator = Migrator(conn, _bundle_for(settings, bundle), get_dialect(info.backend))
        try:
            action(migrator)
        except NoChangeError as exc:
            logger.info("migration.no_change", reason=exc.message)
            return
        version, _ = migrator.version()
        logger.info("migration.complete", version=version)
    finally:
        conn.close()


def migrate(
    database_url: str | None = None,
    settings: StoreSettings | None = None,
    *,
    bundle: AssetBundle | None = None,
    connect: ConnectFn = create_connection,
    sleep: SleepFn = time.sleep,
) -> None:
    """Wait for the database and apply every pending migration.

    ``database_url`` overrides ``settings.database_url``; ``bundle``
    overrides the scripts shipped with the package.
    """
    _run(Migrator.up, database_url, settings, bundle, connect, sleep)


def downgrade(
    database_url: str | None = None,
    settings: StoreSettings | None = None,
    *,
    bundle: AssetBundle | None = None,
    connect: ConnectFn = create_connection,
    sleep: SleepFn = time.sleep,
) -> None:
    """Wait for the database and revert every applied migration."""
    _run(Migrator.down, database_url, settings, bundle, connect, sleep)


def migrate_to(
    database_url: str | None,
    version: int,
    settings: StoreSettings | None = None,
    *,
    bundle: AssetBundle | None = None,
    connect: ConnectFn = create_connection,
    sleep: SleepFn = time.sleep,
) -> None:
    """Wait for the database and move the schema to ``version``."""
    _run(lambda m: m.goto(version), database_url, settings, bundle, connect, sleep)


__all__ = [
    "ConnectPolicy",
    "downgrade",
    "migrate",
    "migrate_to",
    "wait_for_database",
]
