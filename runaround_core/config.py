"""Configuration objects for different environments."""

import os


def _parse_float(val: str, default: float) -> float:
    """Parse a string as float for env config, falling back to a default."""
    try:
        return float(val)
    except (TypeError, ValueError):
        return default


class BaseConfig:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    DATABASE = os.path.join(
        os.environ.get("FLASK_INSTANCE_PATH", "instance"), "runaround.sqlite"
    )
    # Cookie holding the username of the natively logged-in user
    USER_COOKIE_NAME = os.environ.get("USER_COOKIE_NAME", "rb_current_user")
    # Maximum number of runs to display
    MAX_DISPLAY_RUNS = 25
    # Facebook Connect application credentials
    FACEBOOK_API_KEY = os.environ.get("FACEBOOK_API_KEY", "")
    FACEBOOK_SECRET = os.environ.get("FACEBOOK_SECRET", "")
    FACEBOOK_REST_URL = os.environ.get(
        "FACEBOOK_REST_URL", "https://api.facebook.com/restserver.php"
    )
    FACEBOOK_TIMEOUT = _parse_float(os.environ.get("FACEBOOK_TIMEOUT", "5"), 5.0)
    LOGIN_RATE_LIMIT = os.environ.get("LOGIN_RATE_LIMIT", "10 per minute")


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class ProductionConfig(BaseConfig):
    DEBUG = False

    @classmethod
    def validate(cls) -> None:
        """Refuse to start in production with development defaults."""
        if cls.SECRET_KEY == "dev-key-change-in-production":
            raise RuntimeError("SECRET_KEY must be set in production")
        if not cls.FACEBOOK_API_KEY or not cls.FACEBOOK_SECRET:
            raise RuntimeError(
                "FACEBOOK_API_KEY and FACEBOOK_SECRET must be set in production"
            )


def get_config():
    """Return a config class based on the RUNAROUND_ENV environment variable."""
    env = os.environ.get("RUNAROUND_ENV", "development").lower()
    if env.startswith("prod"):
        return ProductionConfig
    return DevelopmentConfig
