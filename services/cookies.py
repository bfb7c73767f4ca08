"""Request-scoped cookie store.

Reads come from the incoming request; writes are queued on `g` and copied
onto the response in an `after_request` hook. A value written during a
request is visible to later reads in that same request, and a deleted
cookie reads as None.
"""

from flask import Flask, g, request


class RequestCookies:
    """Cookie store bound to the current Flask request."""

    def __init__(self, app: Flask | None = None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask):
        """Register the hook that writes queued cookies to responses."""
        app.after_request(self.apply_pending)

    @staticmethod
    def _pending() -> dict[str, str | None]:
        if "pending_cookies" not in g:
            g.pending_cookies = {}
        return g.pending_cookies

    def get(self, name: str) -> str | None:
        pending = self._pending()
        if name in pending:
            return pending[name]
        return request.cookies.get(name)

    def set(self, name: str, value: str) -> None:
        self._pending()[name] = value

    def delete(self, name: str) -> None:
        """Expire `name` in the browser."""
        self._pending()[name] = None

    def apply_pending(self, response):
        """Copy cookies set during the request onto the response."""
        for name, value in g.pop("pending_cookies", {}).items():
            if value is None:
                response.delete_cookie(name)
            else:
                response.set_cookie(name, value, httponly=True, samesite="Lax")
        return response
