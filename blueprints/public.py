"""Root routes for The Run Around.

The home page greets the resolved account and lists its recent runs.
Anonymous visitors get the login and Facebook Connect buttons.
"""

from datetime import date

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    send_from_directory,
    url_for,
)
from flask.typing import ResponseReturnValue
from flask_login import current_user, login_required

from services.resolver import get_resolver
from services.validation import sanitize_input

public_bp = Blueprint("public", __name__)


@public_bp.route("/")
def index() -> ResponseReturnValue:
    """Root route."""
    runs = []
    if current_user.is_authenticated:
        runs = get_resolver().repository.get_runs(current_user._get_current_object()) or []
    return render_template("index.html", runs=runs)


@public_bp.route("/runs", methods=["POST"])
@login_required
def add_run() -> ResponseReturnValue:
    """Log a run for the current account."""
    route = sanitize_input(request.form.get("route", ""), 200)
    run_date = request.form.get("date", "").strip() or date.today().isoformat()
    try:
        miles = float(request.form.get("miles", ""))
        date.fromisoformat(run_date)
    except ValueError:
        flash("Enter a valid date and distance")
        return redirect(url_for("public.index"))

    if miles <= 0:
        flash("Distance must be positive")
    elif not get_resolver().repository.add_run(
        current_user._get_current_object(), run_date, miles, route
    ):
        flash("Could not save your run")
    return redirect(url_for("public.index"))


@public_bp.route("/xd_receiver.htm")
def xd_receiver() -> ResponseReturnValue:
    """Cross-domain receiver page the Connect JavaScript library loads."""
    return send_from_directory(current_app.static_folder, "xd_receiver.htm")
