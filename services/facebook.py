"""Facebook Connect client.

Covers the pieces of the legacy Facebook platform the site relies on:

- validating the Connect session cookies set by the JavaScript library,
- calling the REST API (`auth.expireSession`, `fql.query`, `users.getInfo`),
- registering and unregistering local accounts by email hash
  (`connect.registerUsers` / `connect.unregisterUsers`).

Session calls return an `Outcome` instead of raising, so callers decide
which failures matter. Registration calls return a plain bool.
"""

import hashlib
import hmac
import json
import logging
import time
import zlib
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import requests
from flask import Flask, request

logger = logging.getLogger(__name__)

API_VERSION = "1.0"


def public_email_hash(email: str | None) -> str:
    """Return Facebook's public hash of an email address.

    The address is trimmed and lowercased, then hashed as
    ``"<unsigned crc32>_<md5 hex>"``. An empty address hashes to "".
    """
    normalized = (email or "").strip().lower()
    if not normalized:
        return ""
    data = normalized.encode("utf-8")
    return f"{zlib.crc32(data) & 0xFFFFFFFF}_{hashlib.md5(data).hexdigest()}"


class FacebookError(Exception):
    """Raised when a Facebook API call fails."""

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass(frozen=True)
class Outcome:
    """Result of a best-effort Facebook call."""

    ok: bool
    value: Any = None
    error: Exception | None = None

    @classmethod
    def success(cls, value: Any = None) -> "Outcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: Exception) -> "Outcome":
        return cls(ok=False, error=error)


class FacebookConnect:
    """Facebook Connect session provider and REST API client."""

    def __init__(self, app: Flask | None = None):
        self.api_key = ""
        self.secret = ""
        self.rest_url = "https://api.facebook.com/restserver.php"
        self.timeout = 5.0
        self.http = requests.Session()
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask):
        """Read the application credentials from the Flask config."""
        self.api_key = app.config.get("FACEBOOK_API_KEY", "") or ""
        self.secret = app.config.get("FACEBOOK_SECRET", "") or ""
        self.rest_url = app.config.get("FACEBOOK_REST_URL", self.rest_url)
        self.timeout = float(app.config.get("FACEBOOK_TIMEOUT", self.timeout))
        app.extensions["facebook"] = self

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.secret)

    def generate_sig(self, params: Mapping[str, Any]) -> str:
        """Sign parameters: md5 of the sorted ``k=v`` pairs followed by the secret."""
        payload = "".join(f"{k}={params[k]}" for k in sorted(params))
        return hashlib.md5((payload + self.secret).encode("utf-8")).hexdigest()

    # Session

    def session_params(self, cookies: Mapping[str, str] | None = None) -> dict | None:
        """Return the validated Connect session parameters, or None.

        The JavaScript library stores the session as ``<api_key>_<name>``
        cookies and the signature in the ``<api_key>`` cookie.
        """
        if not self.configured:
            return None
        if cookies is None:
            cookies = request.cookies

        signature = cookies.get(self.api_key)
        if not signature:
            return None

        prefix = f"{self.api_key}_"
        params = {
            name[len(prefix) :]: value
            for name, value in cookies.items()
            if name.startswith(prefix)
        }
        if not params or not hmac.compare_digest(
            self.generate_sig(params).encode("utf-8"), signature.encode("utf-8")
        ):
            return None

        try:
            expires = int(params.get("expires", "0") or 0)
        except ValueError:
            return None
        if expires and expires < time.time():
            return None

        return params

    def current_subject_id(
        self, cookies: Mapping[str, str] | None = None
    ) -> int | None:
        """Return the Facebook user ID of the active Connect session, if any."""
        params = self.session_params(cookies)
        if not params:
            return None
        try:
            uid = int(params.get("user", 0))
        except ValueError:
            return None
        return uid or None

    def session_cookie_names(self, cookies: Mapping[str, str] | None = None) -> list[str]:
        """Return the names of the Connect cookies present on the request."""
        if not self.api_key:
            return []
        if cookies is None:
            cookies = request.cookies
        prefix = f"{self.api_key}_"
        return [
            name for name in cookies if name == self.api_key or name.startswith(prefix)
        ]

    # REST transport

    def call_method(
        self,
        method: str,
        params: Mapping[str, Any] | None = None,
        session_key: str | None = None,
    ) -> Any:
        """Call a REST API method and return the decoded JSON answer.

        Raises:
            FacebookError: on transport errors or an error answer.
        """
        if not self.configured:
            raise FacebookError("Facebook Connect is not configured")

        post: dict[str, Any] = {
            "method": method if method.startswith("facebook.") else f"facebook.{method}",
            "api_key": self.api_key,
            "v": API_VERSION,
            "call_id": repr(time.time()),
            "format": "JSON",
        }
        if session_key:
            post["session_key"] = session_key
        for key, value in (params or {}).items():
            if isinstance(value, (list, tuple, dict)):
                value = json.dumps(value, separators=(",", ":"))
            post[key] = value
        post["sig"] = self.generate_sig(post)

        try:
            response = self.http.post(self.rest_url, data=post, timeout=self.timeout)
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.RequestException as e:
            raise FacebookError(f"{method} failed: {e}") from e
        except ValueError as e:
            raise FacebookError(f"{method} returned invalid JSON") from e

        if isinstance(result, dict) and "error_code" in result:
            raise FacebookError(
                result.get("error_msg", "Unknown error"), code=result["error_code"]
            )
        return result

    def _attempt(self, call: Callable[[], Any]) -> Outcome:
        try:
            return Outcome.success(call())
        except FacebookError as e:
            return Outcome.failure(e)

    def _session_key(self) -> str:
        params = self.session_params()
        if not params or not params.get("session_key"):
            raise FacebookError("No active Facebook session")
        return params["session_key"]

    def expire_session(self) -> Outcome:
        """Expire the current Connect session.

        This is not the same as disconnecting from the app; the user can get
        a new session at any time.
        """
        return self._attempt(
            lambda: self.call_method("auth.expireSession", session_key=self._session_key())
        )

    def email_hashes_for(self, fb_uid: int) -> Outcome:
        """Fetch the email hashes Facebook has on file for a user.

        Only accounts registered through `register_users` show up here.
        """

        def query() -> list[str]:
            rows = self.call_method(
                "fql.query",
                {"query": f"SELECT email_hashes FROM user WHERE uid='{int(fb_uid)}'"},
                session_key=self._session_key(),
            )
            if (
                isinstance(rows, list)
                and len(rows) == 1
                and isinstance(rows[0], dict)
                and isinstance(rows[0].get("email_hashes"), list)
            ):
                return [str(h) for h in rows[0]["email_hashes"]]
            return []

        return self._attempt(query)

    def fields_for(self, fb_uid: int, fields: Iterable[str]) -> Outcome:
        """Fetch profile fields for a user; the value is {} when nothing came back."""

        def get_info() -> dict:
            rows = self.call_method(
                "users.getInfo",
                {"uids": str(int(fb_uid)), "fields": ",".join(fields)},
                session_key=self._session_key(),
            )
            if isinstance(rows, list) and rows and isinstance(rows[0], dict):
                return rows[0]
            return {}

        return self._attempt(get_info)

    # Account registration

    def register_users(self, accounts: list[dict[str, str]]) -> bool:
        """Register ``{"email_hash", "account_id"}`` entries with Facebook."""
        accounts = [a for a in accounts if a.get("email_hash")]
        if not accounts:
            return True
        try:
            result = self.call_method("connect.registerUsers", {"accounts": accounts})
        except FacebookError as e:
            logger.error(f"Could not register accounts with Facebook: {e}")
            return False
        return bool(result)

    def unregister_users(self, email_hashes: list[str]) -> bool:
        """Unregister email hashes previously registered with Facebook."""
        email_hashes = [h for h in email_hashes if h]
        if not email_hashes:
            return True
        try:
            result = self.call_method(
                "connect.unregisterUsers", {"email_hashes": email_hashes}
            )
        except FacebookError as e:
            logger.error(f"Could not unregister accounts with Facebook: {e}")
            return False
        return bool(result)
