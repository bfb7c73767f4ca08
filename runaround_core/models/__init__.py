"""Domain models for The Run Around."""

from .account import RESERVED_USERNAME, Account, ReservedUsernameError  # noqa: F401
from .run import Run  # noqa: F401
