"""Schema migrations.

``assets``     the ordered script bundle shipped in ``migrations/sql``
``runner``     the version-tracking engine (:class:`Migrator`)
``bootstrap``  connectivity poll plus the ``migrate`` / ``downgrade`` entrypoints
"""

from cartstore.migrations.assets import EXAMPLE_DATA_MARKER, AssetBundle, Migration
from cartstore.migrations.bootstrap import (
    ConnectPolicy,
    downgrade,
    migrate,
    migrate_to,
    wait_for_database,
)
from cartstore.migrations.runner import VERSION_TABLE, Migrator

__all__ = [
    "EXAMPLE_DATA_MARKER",
    "VERSION_TABLE",
    "AssetBundle",
    "ConnectPolicy",
    "Migration",
    "Migrator",
    "downgrade",
    "migrate",
    "migrate_to",
    "wait_for_database",
]
