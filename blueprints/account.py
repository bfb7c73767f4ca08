"""Account settings routes: Facebook disconnect and account deletion."""

from flask import Blueprint, flash, redirect, render_template, url_for
from flask.typing import ResponseReturnValue
from flask_login import current_user, login_required, logout_user

from services.resolver import get_resolver

account_bp = Blueprint("account", __name__, url_prefix="/account")


@account_bp.route("")
@login_required
def settings() -> ResponseReturnValue:
    """Render the account settings page."""
    return render_template("account.html", account=current_user)


@account_bp.route("/disconnect", methods=["POST"])
@login_required
def disconnect() -> ResponseReturnValue:
    """Remove the Facebook link from the current account."""
    account = current_user._get_current_object()
    if not account.is_facebook_user():
        flash("Your account is not connected to Facebook")
    elif not account.has_password():
        flash("Set a password before disconnecting, or delete the account instead")
    elif get_resolver().disconnect_from_facebook(account):
        flash("Your account is no longer connected to Facebook")
    else:
        flash("Could not disconnect your account from Facebook")
    return redirect(url_for("account.settings"))


@account_bp.route("/delete", methods=["POST"])
@login_required
def delete() -> ResponseReturnValue:
    """Delete the current account and log out."""
    account = current_user._get_current_object()
    resolver = get_resolver()
    if not resolver.delete(account):
        flash("Could not delete your account")
        return redirect(url_for("account.settings"))

    resolver.log_out(account)
    logout_user()
    flash("Your account has been deleted")
    return redirect(url_for("public.index"))
