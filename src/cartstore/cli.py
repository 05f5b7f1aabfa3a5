"""
CLI: ``cartstore`` schema migration commands.

Every command reads :class:`~cartstore.settings.StoreSettings` from the
environment; ``--database`` overrides ``CARTSTORE_DATABASE_URL``.
"""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from cartstore.errors import CartstoreError
from cartstore.logging import configure_logging
from cartstore.settings import StoreSettings

app = typer.Typer(
    name="cartstore",
    help="Schema migrations for the commerce store.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

_DATABASE_OPTION = typer.Option(None, "--database", "-d", help="Database URL")


def _settings(database: str | None, **overrides: object) -> StoreSettings:
    settings = StoreSettings()
    updates = {k: v for k, v in overrides.items() if v is not None}
    if database:
        updates["database_url"] = database
    if updates:
        settings = settings.model_copy(update=updates)
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    return settings


def _fail(exc: CartstoreError) -> NoReturn:
    err_console.print(f"[red]error:[/red] {escape(exc.message)}")
    raise typer.Exit(code=1)


@app.command()
def migrate(
    database: str | None = _DATABASE_OPTION,
    example_data: bool = typer.Option(False, "--example-data", help="Also load example data"),
) -> None:
    """Apply every pending migration."""
    from cartstore.migrations.bootstrap import migrate as run_migrate

    settings = _settings(database, load_example_data=example_data or None)
    try:
        run_migrate(settings=settings)
    except CartstoreError as exc:
        _fail(exc)
    console.print("[green]schema is up to date[/green]")


@app.command()
def downgrade(
    database: str | None = _DATABASE_OPTION,
    example_data: bool = typer.Option(False, "--example-data", help="Also revert example data"),
) -> None:
    """Revert every applied migration."""
    from cartstore.migrations.bootstrap import downgrade as run_downgrade

    settings = _settings(database, load_example_data=example_data or None)
    try:
        run_downgrade(settings=settings)
    except CartstoreError as exc:
        _fail(exc)
    console.print("[green]schema downgraded[/green]")


@app.command()
def goto(
    version: int = typer.Argument(..., help="Target migration version"),
    database: str | None = _DATABASE_OPTION,
    example_data: bool = typer.Option(False, "--example-data", help="Include example data"),
) -> None:
    """Migrate up or down to VERSION."""
    from cartstore.migrations.bootstrap import migrate_to

    settings = _settings(database, load_example_data=example_data or None)
    try:
        migrate_to(None, version, settings=settings)
    except CartstoreError as exc:
        _fail(exc)
    console.print(f"[green]schema at version {version}[/green]")


@app.command()
def version(database: str | None = _DATABASE_OPTION) -> None:
    """Show the current schema version."""
    from cartstore.migrations.assets import AssetBundle
    from cartstore.migrations.bootstrap import wait_for_database
    from cartstore.migrations.runner import Migrator

    settings = _settings(database)
    try:
        conn, _info = wait_for_database(settings.database_url, settings.connect_policy())
        try:
            current, dirty = Migrator(conn, AssetBundle.from_package()).version()
        finally:
            conn.close()
    except CartstoreError as exc:
        _fail(exc)
    label = "none" if current is None else str(current)
    console.print(f"version: {label}{' (dirty)' if dirty else ''}")


@app.command()
def force(
    version: int = typer.Argument(..., help="Version to record; 0 clears the version"),
    database: str | None = _DATABASE_OPTION,
) -> None:
    """Record VERSION as current and clean, without running any script."""
    from cartstore.migrations.assets import AssetBundle
    from cartstore.migrations.bootstrap import wait_for_database
    from cartstore.migrations.runner import Migrator

    settings = _settings(database)
    try:
        conn, _info = wait_for_database(settings.database_url, settings.connect_policy())
        try:
            Migrator(conn, AssetBundle.from_package()).force(version or None)
        finally:
            conn.close()
    except CartstoreError as exc:
        _fail(exc)
    console.print(f"[yellow]version forced to {version or 'none'}[/yellow]")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
