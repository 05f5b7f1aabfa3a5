"""Migration asset bundle.

Migration scripts ship inside the package (``cartstore/migrations/sql``)
and are read through :mod:`importlib.resources`, so the bundle works from
a wheel or zip import the same way it does from a source checkout.

Script names follow ``<version>_<title>.<up|down>.sql``::

    0001_create_users.up.sql
    0001_create_users.down.sql
    0005_example_data.up.sql

An :class:`AssetBundle` is an ordered ``name -> bytes`` mapping;
:meth:`AssetBundle.migrations` pairs the forward and backward scripts of
each version into :class:`Migration` records sorted by version.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from importlib import resources

from cartstore.errors import MigrationScriptError

EXAMPLE_DATA_MARKER = "example_data"

_NAME_RE = re.compile(r"^(?P<version>\d+)_(?P<title>[A-Za-z0-9_\-]+)\.(?P<direction>up|down)\.sql$")


@dataclass(frozen=True)
class Migration:
    """One version: its forward script and (optionally) its backward script."""

    version: int
    title: str
    up_name: str | None = None
    down_name: str | None = None

    @property
    def is_example_data(self) -> bool:
        return EXAMPLE_DATA_MARKER in self.title


class AssetBundle(Mapping[str, bytes]):
    """Ordered, immutable mapping of script name to script bytes."""

    def __init__(self, assets: Mapping[str, bytes]) -> None:
        self._assets = {name: assets[name] for name in sorted(assets)}

    @classmethod
    def from_package(cls, package: str = "cartstore.migrations", directory: str = "sql") -> AssetBundle:
        """Load every ``.sql`` file shipped in ``package/directory``."""
        root = resources.files(package).joinpath(directory)
        return cls(
            {
                entry.name: entry.read_bytes()
                for entry in root.iterdir()
                if entry.is_file() and entry.name.endswith(".sql")
            }
        )

    # -- Mapping -----------------------------------------------------------

    def __getitem__(self, name: str) -> bytes:
        return self._assets[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._assets)

    def __len__(self) -> int:
        return len(self._assets)

    # -- lookup ------------------------------------------------------------

    def names(self) -> list[str]:
        """Script names in ascending order."""
        return list(self._assets)

    def load(self, name: str) -> bytes:
        """Raw bytes of the script called ``name``.

        Raises:
            MigrationScriptError: Unknown name.
        """
        try:
            return self._assets[name]
        except KeyError:
            raise MigrationScriptError(f"no migration asset named {name!r}").with_context(
                migration=name
            ) from None

    def text(self, name: str) -> str:
        """Script text for ``name``, decoded as UTF-8."""
        try:
            return self.load(name).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MigrationScriptError(
                f"migration asset {name!r} is not valid UTF-8", cause=exc
            ).with_context(migration=name) from exc

    def without_example_data(self) -> AssetBundle:
        """A copy of this bundle with every ``example_data`` script emptied.

        The names stay so the version sequence is unchanged: a database seeded
        earlier still finds its recorded version, and the emptied scripts only
        move the version row.
        """
        return AssetBundle(
            {
                name: b"" if EXAMPLE_DATA_MARKER in name else body
                for name, body in self._assets.items()
            }
        )

    def migrations(self) -> list[Migration]:
        """Pair up/down scripts by version, ascending.

        Raises:
            MigrationScriptError: A name does not follow the naming scheme, a
                version has two titles, or a version has no forward script.
        """
        found: dict[int, Migration] = {}
        for name in self._assets:
            match = _NAME_RE.match(name)
            if match is None:
                raise MigrationScriptError(
                    f"malformed migration name {name!r}; expected <version>_<title>.<up|down>.sql"
                ).with_context(migration=name)
            version = int(match["version"])
            title = match["title"]
            current = found.get(version, Migration(version=version, title=title))
            if current.title != title:
                raise MigrationScriptError(
                    f"version {version} has conflicting scripts {current.title!r} and {title!r}"
                ).with_context(migration=name)
            if match["direction"] == "up":
                current = Migration(version, title, name, current.down_name)
            else:
                current = Migration(version, title, current.up_name, name)
            found[version] = current

        for migration in found.values():
            if migration.up_name is None:
                raise MigrationScriptError(
                    f"version {migration.version} has no forward script"
                ).with_context(migration=migration.down_name)
        return [found[v] for v in sorted(found)]


__all__ = [
    "EXAMPLE_DATA_MARKER",
    "AssetBundle",
    "Migration",
]
