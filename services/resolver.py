"""Figure out who the logged-in user is.

There are two ways a visitor can be logged in:

1. The site's own cookie login: the `rb_current_user` cookie holds a
   username.
2. Facebook Connect: the JavaScript library leaves a signed session in
   cookies, and `FacebookConnect` turns it into a Facebook user ID.

Facebook is treated as single sign-on. Once a visitor has connected their
account, being logged in to Facebook is enough to be logged in here, and
logging out here also expires the Facebook session. When a visitor shows up
with both a native cookie and a Facebook session, the native account takes
over the Facebook identity and the cookie is cleared, so Facebook becomes
the only means of auth for the session.
"""

import hmac
import logging

from flask import current_app, g

from runaround_core.models.account import RESERVED_USERNAME, Account
from services.accounts import AccountRepository
from services.audit import log_account_event
from services.facebook import Outcome, public_email_hash

logger = logging.getLogger(__name__)

DEFAULT_COOKIE_NAME = "rb_current_user"
FACEBOOK_USERNAME_PREFIX = "FacebookUser_"


class AccountResolver:
    """Resolves the current account and performs login state changes.

    Collaborators are duck-typed:

    - ``cookies``: ``get(name)``, ``set(name, value)``, ``delete(name)``
    - ``facebook``: ``current_subject_id()``, ``session_cookie_names()``,
      ``expire_session()``, ``email_hashes_for(uid)``, ``fields_for(uid, fields)``
      returning `Outcome` values, plus ``register_users`` / ``unregister_users``
    - ``repository``: an `AccountRepository`
    """

    def __init__(
        self,
        cookies,
        facebook,
        repository: AccountRepository,
        cookie_name: str = DEFAULT_COOKIE_NAME,
    ):
        self.cookies = cookies
        self.facebook = facebook
        self.repository = repository
        self.cookie_name = cookie_name
        self._display_names: dict[str, str] = {}

    def resolve_current_user(self) -> Account | None:
        """Return the effective account for this request, or None."""
        native = self.get_logged_in_native()
        fb_uid = self.facebook.current_subject_id()

        account = None
        if fb_uid:
            account = self.repository.find_by_facebook_uid(fb_uid)

            if native is not None:
                # Connect the accounts; the native one wins
                replaced = None
                if account is not None and account.username != native.username:
                    replaced = account.username
                self.log_out(native)
                linked = self.connect_with_facebook_uid(native, fb_uid)
                log_account_event(
                    "merge",
                    native.username,
                    details={"fb_uid": fb_uid, "replaced": replaced},
                    success=linked,
                )
                account = native
            elif account is None:
                account = self.create_from_facebook_uid(fb_uid)

        if account is None and native is not None:
            account = native

        return account

    def get_logged_in_native(self) -> Account | None:
        """Return the account named by the session cookie, if any."""
        username = self.cookies.get(self.cookie_name)
        if not username or username == RESERVED_USERNAME:
            return None
        return self.repository.find_by_username(username)

    def get_by_facebook_email_hashes(self, email_hashes: list[str] | None) -> Account | None:
        """Return an existing account registered under one of `email_hashes`.

        This finds Facebook users who already have an account on the site.
        It only works because local signups are registered with Facebook.
        """
        if not email_hashes:
            return None
        return self.repository.find_by_any_email_hash(email_hashes)

    def create_from_facebook_uid(self, fb_uid: int) -> Account | None:
        """Adopt or create the account for a Facebook user.

        None of the Facebook profile is stored; only the UID is kept and the
        rest is fetched on the fly.
        """
        outcome = self.facebook.email_hashes_for(fb_uid)
        if not outcome.ok:
            # Probably an expired session
            logger.info(f"Could not fetch email hashes for fb_uid {fb_uid}: {outcome.error}")
        email_hashes = outcome.value if outcome.ok else []

        account = self.get_by_facebook_email_hashes(email_hashes)
        if account is not None:
            action = "adopt"
            account.fb_uid = int(fb_uid)
        else:
            action = "create"
            # No password: Facebook is the only way to log in to this account
            account = Account(
                username=f"{FACEBOOK_USERNAME_PREFIX}{fb_uid}",
                password="",
                fb_uid=fb_uid,
            )

        if not self.save(account):
            log_account_event(action, account.username, {"fb_uid": fb_uid}, success=False)
            return None

        log_account_event(action, account.username, {"fb_uid": fb_uid})
        return account

    def log_in(self, account: Account, password: str | None = None) -> bool:
        """Set the login cookie for `account`.

        Facebook users with an active Facebook session are already logged
        in, so no cookie is set for them.
        """
        if account.is_facebook_user() and self.facebook.current_subject_id():
            return False

        if password is not None and not hmac.compare_digest(
            account.password.encode("utf-8"), password.encode("utf-8")
        ):
            logger.warning(f"Failed login attempt for user {account.username}")
            log_account_event("login", account.username, success=False)
            return False

        self.cookies.set(self.cookie_name, account.username)
        log_account_event("login", account.username)
        return True

    def log_out(self, account: Account) -> Outcome | None:
        """Clear the login cookie and expire any Facebook session.

        The session must be expired, or the visitor is logged straight back
        in on the next request. Returns the outcome of the expiry attempt for
        Facebook users.
        """
        self.cookies.set(self.cookie_name, RESERVED_USERNAME)
        log_account_event("logout", account.username)

        if not account.is_facebook_user():
            return None

        outcome = self.facebook.expire_session()
        if not outcome.ok:
            logger.debug(f"Ignoring failure to expire Facebook session: {outcome.error}")
            return outcome

        # The Connect cookies still validate locally until they are removed
        for name in self.facebook.session_cookie_names():
            self.cookies.delete(name)
        return outcome

    def connect_with_facebook_uid(self, account: Account, fb_uid: int) -> bool:
        """Link `account` to a Facebook user.

        If another account already holds the Facebook user, that account is
        deleted and the UID moves to `account`.
        """
        if not fb_uid:
            return False

        holder = self.repository.find_by_facebook_uid(fb_uid)
        if holder is not None and holder.username != account.username:
            self.delete(holder)

        account.fb_uid = int(fb_uid)
        return self.save(account)

    def disconnect_from_facebook(self, account: Account) -> bool:
        """Remove the Facebook link, restoring a plain local account.

        Refused for accounts without a password, which would otherwise have
        no way to log in.
        """
        if not account.has_password():
            logger.warning(
                f"Refusing to disconnect {account.username} from Facebook: no password set"
            )
            log_account_event("disconnect", account.username, success=False)
            return False

        if account.email:
            self.facebook.unregister_users([public_email_hash(account.email)])

        account.fb_uid = 0
        saved = self.save(account)
        log_account_event("disconnect", account.username, success=saved)
        return saved

    def save(self, account: Account) -> bool:
        return self.repository.upsert(account)

    def save_and_register(self, account: Account) -> bool:
        """Save the account, then register its email hash with Facebook."""
        if not self.save(account):
            return False

        email_hash = public_email_hash(account.email)
        return self.facebook.register_users(
            [{"email_hash": email_hash, "account_id": account.username}]
        )

    def delete(self, account: Account) -> bool:
        """Delete the account and unregister it from Facebook."""
        if not self.repository.delete(account.username):
            log_account_event("delete", account.username, success=False)
            return False

        account.runs = None
        if account.email:
            self.facebook.unregister_users([public_email_hash(account.email)])

        log_account_event("delete", account.username)
        return True

    def display_name(self, account: Account) -> str:
        """Return the account's name, preferring the Facebook profile name.

        The profile is fetched at most once per account for this resolver.
        """
        if not account.is_facebook_user():
            return account.name

        if account.username not in self._display_names:
            name = account.name
            outcome = self.facebook.fields_for(account.fb_uid, ["name"])
            if outcome.ok and outcome.value and outcome.value.get("name"):
                name = outcome.value["name"]
            self._display_names[account.username] = name
        return self._display_names[account.username]


def get_resolver() -> AccountResolver:
    """Return the resolver for the current request."""
    if "account_resolver" not in g:
        from runaround_core.extensions import cookies, facebook  # noqa: PLC0415

        g.account_resolver = AccountResolver(
            cookies,
            facebook,
            AccountRepository(),
            cookie_name=current_app.config.get("USER_COOKIE_NAME", DEFAULT_COOKIE_NAME),
        )
    return g.account_resolver
