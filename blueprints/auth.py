"""Authentication routes: login, logout and local signup.

Logging in and out only sets the `rb_current_user` cookie. Visitors logged
in through Facebook Connect never need these forms; their session comes
from the Facebook cookies.
"""

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask.typing import ResponseReturnValue
from flask_login import current_user, login_required, logout_user

from runaround_core.extensions import limiter
from runaround_core.models.account import Account
from services.resolver import get_resolver
from services.validation import (
    sanitize_input,
    validate_email,
    validate_password,
    validate_username,
)

auth_bp = Blueprint("auth", __name__)
"""Auth blueprint routes."""


@auth_bp.route("/login", methods=["GET", "POST"])
@limiter.limit(
    lambda: current_app.config.get("LOGIN_RATE_LIMIT", "10 per minute"),
    methods=["POST"],
)
def login() -> ResponseReturnValue:
    """Render login form and handle credential submission."""
    if current_user.is_authenticated:
        return redirect(url_for("public.index"))

    if request.method == "POST":
        username = request.form.get("username", "").strip()
        submitted_password = request.form.get("password", "")

        resolver = get_resolver()
        account = resolver.repository.find_by_username(username)
        if (
            account is not None
            and submitted_password
            and resolver.log_in(account, submitted_password)
        ):
            return redirect(url_for("public.index"))
        flash("Invalid username or password")

    return render_template("login.html")


@auth_bp.route("/logout")
@login_required
def logout() -> ResponseReturnValue:
    """Log the current user out and redirect to the public index."""
    get_resolver().log_out(current_user._get_current_object())
    logout_user()
    return redirect(url_for("public.index"))


@auth_bp.route("/signup", methods=["GET", "POST"])
def signup() -> ResponseReturnValue:
    """Create a local account and register it with Facebook."""
    if request.method == "GET":
        return render_template("signup.html")

    username = sanitize_input(request.form.get("username", ""), 32)
    name = sanitize_input(request.form.get("name", ""), 100)
    email = sanitize_input(request.form.get("email", ""), 254).lower()
    password = request.form.get("password", "")

    for is_valid, error in (
        validate_username(username),
        validate_password(password),
        validate_email(email),
    ):
        if not is_valid:
            flash(error)
            return render_template("signup.html"), 400

    resolver = get_resolver()
    if resolver.repository.find_by_username(username) is not None:
        flash("That username is already taken")
        return render_template("signup.html"), 400

    account = Account(username=username, name=name, email=email, password=password)
    # Registration lets Facebook users with this email find their account
    if not resolver.save_and_register(account):
        if resolver.repository.find_by_username(username) is None:
            flash("Could not create your account, please try again")
            return render_template("signup.html"), 500
        current_app.logger.warning(f"Could not register {username} with Facebook")

    resolver.log_in(account)
    return redirect(url_for("public.index"))
