"""Input validation and sanitization for account forms."""

import re

from runaround_core.models.account import RESERVED_USERNAME
from services.resolver import FACEBOOK_USERNAME_PREFIX

RESERVED_USERNAMES = {
    RESERVED_USERNAME,
    "admin",
    "root",
    "system",
    "facebook",
}


def validate_username(username: str) -> tuple[bool, str | None]:
    """Validate a username chosen at signup.

    Args:
        username: The username to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not username:
        return False, "Username is required"

    if len(username) < 2:
        return False, "Username must be at least 2 characters long"

    if len(username) > 32:
        return False, "Username must be 32 characters or less"

    if not re.match(r"^[a-zA-Z0-9_.-]+$", username):
        return (
            False,
            "Username can only contain letters, numbers, dots, hyphens, and underscores",
        )

    if username.lower() in RESERVED_USERNAMES:
        return False, f"'{username}' is a reserved username"

    # Generated for accounts created through Facebook Connect
    if username.startswith(FACEBOOK_USERNAME_PREFIX):
        return False, f"Usernames cannot start with '{FACEBOOK_USERNAME_PREFIX}'"

    return True, None


def validate_password(password: str) -> tuple[bool, str | None]:
    """Validate a local password.

    Args:
        password: The password to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not password:
        return False, "Password is required"

    if len(password) < 4:
        return False, "Password must be at least 4 characters long"

    if len(password) > 128:
        return False, "Password must be 128 characters or less"

    return True, None


def validate_email(email: str) -> tuple[bool, str | None]:
    """Validate an optional email address."""
    if not email:
        return True, None

    if len(email) > 254:
        return False, "Email must be 254 characters or less"

    if not re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", email):
        return False, "Email address is not valid"

    return True, None


def sanitize_input(text: str, max_length: int = 1000) -> str:
    """Sanitize general text input.

    Args:
        text: Text to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Remove control characters and HTML tags
    text = "".join(char for char in text if ord(char) >= 32)
    text = re.sub(r"<[^>]*>", "", text)

    if len(text) > max_length:
        text = text[:max_length]

    return text.strip()
