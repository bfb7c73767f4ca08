"""Account model for The Run Around.

Logging in and out is done by setting a simple cookie with the username.
It is trivial to spoof users this way; a production site would plug
Facebook Connect into whatever login system it already has.
"""

from collections.abc import Mapping
from typing import Any

from flask_login import UserMixin

from .run import Run

RESERVED_USERNAME = "unknown"


class ReservedUsernameError(ValueError):
    """Raised when an account is constructed with the reserved username."""


class Account(UserMixin):
    """A local user account, optionally linked to a Facebook user.

    Passwords are stored and compared in plain text. This is a demo
    application; a real one would store a password hash.
    """

    def __init__(
        self,
        username: str | None,
        name: str = "",
        email: str = "",
        password: str = "",
        fb_uid: int = 0,
    ):
        if username == RESERVED_USERNAME:
            raise ReservedUsernameError(
                f"Cannot create a user with name '{RESERVED_USERNAME}'"
            )
        self.username = username
        self.name = name or ""
        self.email = email or ""
        self.password = password or ""
        self.fb_uid = int(fb_uid or 0)
        # None until loaded by AccountRepository.get_runs
        self.runs: list[Run] | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Account":
        """Build an account from a `users` row or any mapping of its columns."""
        keys = row.keys()
        return cls(
            username=row["username"] if "username" in keys else None,
            name=row["name"] if "name" in keys else "",
            email=row["email"] if "email" in keys else "",
            password=row["password"] if "password" in keys else "",
            fb_uid=row["fb_uid"] if "fb_uid" in keys else 0,
        )

    def get_id(self) -> str:
        return str(self.username)

    def is_facebook_user(self) -> bool:
        return self.fb_uid > 0

    def has_password(self) -> bool:
        """Tell whether the account has a password set.

        An account without a password cannot be disconnected from Facebook,
        only deleted outright, otherwise there is no way to log in to it.
        """
        return bool(self.password)

    @property
    def display_email(self) -> str:
        # Facebook users without a stored address show nothing
        if self.is_facebook_user() and not self.email:
            return ""
        return self.email

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Account):
            return NotImplemented
        return (
            self.username == other.username
            and self.name == other.name
            and self.email == other.email
            and self.password == other.password
            and self.fb_uid == other.fb_uid
        )

    def __repr__(self) -> str:
        return f"<Account {self.username!r} fb_uid={self.fb_uid}>"
