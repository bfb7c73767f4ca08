"""Core application factory and setup for The Run Around.

Exposes the `create_app` factory used by both the entrypoint and tests.
"""

import os

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from database import init_app as init_db
from services.audit import audit_logger

from .config import get_config
from .errors import register_error_handlers
from .extensions import cookies, csrf, facebook, limiter, login_manager
from .models.account import Account


def create_app(
    test_config: dict | None = None, instance_path: str | None = None
) -> Flask:
    """Application factory.

    Args:
        test_config: Optional overrides to apply when testing.
        instance_path: Optional absolute path of the instance folder.

    Returns:
        A configured `Flask` application instance.
    """
    # Imported here: blueprints and services import runaround_core submodules
    from blueprints import account_bp, auth_bp, public_bp  # noqa: PLC0415
    from services.resolver import get_resolver  # noqa: PLC0415

    # Ensure Flask knows where to find top-level templates/static
    package_dir = os.path.dirname(__file__)
    project_root = os.path.abspath(os.path.join(package_dir, ".."))
    templates_dir = os.path.join(project_root, "templates")
    static_dir = os.path.join(project_root, "static")

    app = Flask(
        __name__,
        template_folder=templates_dir,
        static_folder=static_dir,
        instance_path=instance_path,
    )

    # Configuration
    config_obj = get_config()
    app.config.from_object(config_obj)
    if test_config is None:
        # Validate production settings
        if hasattr(config_obj, "validate"):
            config_obj.validate()
    else:
        app.config.update(test_config)

    # Ensure instance folder exists
    os.makedirs(app.instance_path, exist_ok=True)

    # Extensions
    init_db(app)
    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.session_protection = None
    csrf.init_app(app)
    limiter.init_app(app)
    cookies.init_app(app)
    facebook.init_app(app)
    audit_logger.init_app(app)

    @login_manager.request_loader
    def load_account(_request) -> Account | None:
        return get_resolver().resolve_current_user()

    @app.context_processor
    def inject_account_helpers() -> dict:
        return {
            "facebook_api_key": app.config.get("FACEBOOK_API_KEY", ""),
            "display_name": lambda account: get_resolver().display_name(account),
        }

    # Reverse proxy (intentional replacement of wsgi_app with wrapped middleware)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)  # type: ignore[invalid-assignment]

    # Blueprints
    app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(account_bp)

    # Errors
    register_error_handlers(app)

    return app
