"""User entity."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

from cartstore.models._base import Entity, Table


@dataclass(kw_only=True)
class User(Entity):
    """An account that can sign in to the store or its admin area."""

    __table__: ClassVar[Table] = Table(
        name="users",
        columns=(
            "first_name",
            "last_name",
            "username",
            "email",
            "password",
            "salt",
            "is_admin",
            "password_last_changed_on",
        ),
    )

    first_name: str = ""
    last_name: str = ""
    username: str = ""
    email: str = ""
    password: str = field(default="", repr=False)
    salt: bytes = field(default=b"", repr=False)
    is_admin: bool = False
    password_last_changed_on: datetime | None = None
