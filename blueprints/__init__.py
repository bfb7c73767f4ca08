"""Blueprint package for The Run Around routes.

Exports the registered blueprints to be imported by the application factory.
"""

from .account import account_bp  # noqa: F401
from .auth import auth_bp  # noqa: F401
from .public import public_bp  # noqa: F401
