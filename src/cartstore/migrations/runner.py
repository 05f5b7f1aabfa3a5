"""Versioned SQL migration engine.

Applies the scripts of an :class:`~cartstore.migrations.assets.AssetBundle`
against one connection and records the schema version in the
``schema_migrations`` table, which holds at most one row::

    version BIGINT   the last migration that ran
    dirty   BOOLEAN  true while that migration's script is running

A script that fails leaves the version dirty; every later run refuses to
continue with :class:`~cartstore.errors.DirtyDatabaseError` until an
operator repairs the schema and calls :meth:`Migrator.force`.

Moving nowhere (``up`` when every migration is applied, ``down`` on an
empty schema, ``goto`` the current version) raises
:class:`~cartstore.errors.NoChangeError`. The bootstrap entrypoints turn
that into success; code driving the engine directly can tell the cases
apart.

Example::

    conn, info = create_connection("postgresql://localhost/dairycart")
    migrator = Migrator(conn, AssetBundle.from_package())
    migrator.up()
    print(migrator.version())   # (5, False)
"""

from __future__ import annotations

from typing import Any

from cartstore.dialect import Dialect
from cartstore.errors import (
    CartstoreError,
    DirtyDatabaseError,
    MigrationError,
    MigrationScriptError,
    NoChangeError,
)
from cartstore.executors.dbapi import ConnectionExecutor, transaction
from cartstore.logging import get_logger
from cartstore.migrations.assets import AssetBundle, Migration

logger = get_logger(__name__)

VERSION_TABLE = "schema_migrations"


class Migrator:
    """Moves the schema between versions of an asset bundle.

    Parameters
    ----------
    conn
        An autocommit DB-API connection (see
        :func:`~cartstore.connection.create_connection`). The migrator
        uses it but does not close it.
    bundle
        The ordered migration scripts.
    dialect
        SQL dialect; inferred from the connection when omitted.
    """

    def __init__(self, conn: Any, bundle: AssetBundle, dialect: Dialect | None = None) -> None:
        self._conn = conn
        self._executor = ConnectionExecutor(conn, dialect)
        self._bundle = bundle
        self._migrations = bundle.migrations()
        self._ensure_version_table()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def migrations(self) -> list[Migration]:
        return list(self._migrations)

    def version(self) -> tuple[int | None, bool]:
        """Current ``(version, dirty)``; ``(None, False)`` on a fresh schema."""
        row = self._executor.query_row(f"SELECT version, dirty FROM {VERSION_TABLE} LIMIT 1")
        if row is None:
            return None, False
        return int(row[0]), bool(row[1])

    def pending(self) -> list[Migration]:
        """Migrations newer than the current version, ascending."""
        current, _ = self.version()
        return [m for m in self._migrations if current is None or m.version > current]

    def up(self) -> list[int]:
        """Apply every pending migration in ascending order.

        Returns the versions applied.
        """
        current = self._clean_version()
        self._check_known(current)
        targets = [m for m in self._migrations if current is None or m.version > current]
        if not targets:
            raise NoChangeError(f"schema is already at the latest version ({current})")
        for migration in targets:
            self._run(migration, "up")
        return [m.version for m in targets]

    def down(self) -> list[int]:
        """Revert every applied migration in descending order.

        Returns the versions reverted.
        """
        current = self._clean_version()
        if current is None:
            raise NoChangeError("schema has no applied migrations")
        self._check_known(current)
        targets = [m for m in reversed(self._migrations) if m.version <= current]
        for migration in targets:
            self._run(migration, "down")
        return [m.version for m in targets]

    def steps(self, count: int) -> list[int]:
        """Apply ``count`` migrations forward (positive) or back (negative)."""
        current = self._clean_version()
        self._check_known(current)
        if count > 0:
            targets = [m for m in self._migrations if current is None or m.version > current][:count]
            direction = "up"
        else:
            applied = [m for m in reversed(self._migrations) if current is not None and m.version <= current]
            targets = applied[:-count] if count < 0 else []
            direction = "down"
        if not targets:
            raise NoChangeError(f"no migrations to run {count:+d} steps from version {current}")
        for migration in targets:
            self._run(migration, direction)
        return [m.version for m in targets]

    def goto(self, version: int) -> list[int]:
        """Migrate up or down until the schema is exactly at ``version``."""
        if version not in {m.version for m in self._migrations}:
            raise MigrationError(f"no migration with version {version}")
        current = self._clean_version()
        self._check_known(current)
        if current == version:
            raise NoChangeError(f"schema is already at version {version}")

        if current is None or version > current:
            targets = [
                m for m in self._migrations
                if (current is None or m.version > current) and m.version <= version
            ]
            direction = "up"
        else:
            targets = [m for m in reversed(self._migrations) if version < m.version <= current]
            direction = "down"
        for migration in targets:
            self._run(migration, direction)
        return [m.version for m in targets]

    def force(self, version: int | None) -> None:
        """Record ``version`` as current and clean, without running scripts."""
        self._set_version(version, dirty=False)
        logger.warning("migration.forced", version=version)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_version_table(self) -> None:
        self._executor.execute(
            f"CREATE TABLE IF NOT EXISTS {VERSION_TABLE} ("
            "version BIGINT NOT NULL PRIMARY KEY, "
            "dirty BOOLEAN NOT NULL)"
        )

    def _clean_version(self) -> int | None:
        current, dirty = self.version()
        if dirty:
            raise DirtyDatabaseError(current)
        return current

    def _check_known(self, current: int | None) -> None:
        if current is not None and current not in {m.version for m in self._migrations}:
            raise MigrationError(f"no migration found for current version {current}")

    def _previous(self, migration: Migration) -> int | None:
        earlier = [m.version for m in self._migrations if m.version < migration.version]
        return earlier[-1] if earlier else None

    def _set_version(self, version: int | None, *, dirty: bool) -> None:
        ph = self._executor.dialect.placeholder
        with transaction(self._conn, self._executor.dialect) as tx:
            tx.execute(f"DELETE FROM {VERSION_TABLE}")
            if version is not None:
                tx.execute(
                    f"INSERT INTO {VERSION_TABLE} (version, dirty) VALUES ({ph(1)}, {ph(2)})",
                    (version, dirty),
                )

    def _run(self, migration: Migration, direction: str) -> None:
        name = migration.up_name if direction == "up" else migration.down_name
        if name is None:
            raise MigrationScriptError(
                f"version {migration.version} has no {direction} script"
            ).with_context(migration=migration.title)

        script = self._bundle.text(name)
        resulting = migration.version if direction == "up" else self._previous(migration)

        self._set_version(migration.version, dirty=True)
        if script.strip():
            try:
                self._executor.execute_script(script)
            except CartstoreError as exc:
                logger.error("migration.failed", migration=name, error=str(exc))
                raise MigrationScriptError(
                    f"migration {name} failed: {exc.message}", cause=exc
                ).with_context(migration=name) from exc
        self._set_version(resulting, dirty=False)
        logger.info("migration.applied", migration=name, direction=direction, version=resulting)


__all__ = [
    "VERSION_TABLE",
    "Migrator",
]
