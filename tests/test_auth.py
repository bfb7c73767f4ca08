from unittest.mock import MagicMock

from flask import Flask

from database import get_user_by_username
from runaround_core.extensions import facebook
from runaround_core.models.account import Account
from services.accounts import AccountRepository
from services.facebook import Outcome, public_email_hash

COOKIE = "rb_current_user"


def _create(flask_app: Flask, **fields) -> None:
    with flask_app.app_context():
        assert AccountRepository().upsert(Account(**fields))


def test_login_get_renders(client):
    res = client.get("/login")
    assert res.status_code == 200
    assert b"log in" in res.data.lower()


def test_login_valid_password_sets_cookie(flask_app: Flask, client):
    _create(flask_app, username="alice", password="secret")

    res = client.post(
        "/login",
        data={"username": "alice", "password": "secret"},
        follow_redirects=False,
    )

    assert res.status_code in (302, 303)
    assert client.get_cookie(COOKIE).value == "alice"
    home = client.get("/")
    assert b"Welcome, alice" in home.data


def test_login_invalid_password_shows_flash(flask_app: Flask, client):
    _create(flask_app, username="alice", password="secret")

    res = client.post(
        "/login", data={"username": "alice", "password": "wrong"}, follow_redirects=True
    )

    assert res.status_code == 200
    assert b"invalid username or password" in res.data.lower()
    assert client.get_cookie(COOKIE) is None


def test_login_rejects_empty_password_for_facebook_only_account(flask_app: Flask, client):
    _create(flask_app, username="FacebookUser_5", fb_uid=5)

    res = client.post(
        "/login", data={"username": "FacebookUser_5", "password": ""}, follow_redirects=True
    )

    assert b"invalid username or password" in res.data.lower()
    assert client.get_cookie(COOKIE) is None


def test_logout_requires_login(client):
    res = client.get("/logout", follow_redirects=False)
    # Should redirect to login page due to @login_required
    assert res.status_code in (302, 303)
    assert "/login" in res.headers.get("Location", "")


def test_logout_clears_cookie(flask_app: Flask, client):
    _create(flask_app, username="alice", password="secret")
    client.set_cookie(COOKIE, "alice")

    res = client.get("/logout", follow_redirects=False)

    assert res.status_code in (302, 303)
    assert client.get_cookie(COOKIE).value == "unknown"
    assert b"Welcome" not in client.get("/").data


def test_logout_expires_facebook_session(flask_app: Flask, client, monkeypatch):
    _create(flask_app, username="runner", password="secret", fb_uid=42)
    expired = []
    monkeypatch.setattr(facebook, "current_subject_id", lambda cookies=None: 42)
    monkeypatch.setattr(
        facebook, "expire_session", lambda: expired.append(1) or Outcome.success(True)
    )
    monkeypatch.setattr(facebook, "fields_for", lambda uid, fields: Outcome.success({}))

    res = client.get("/logout", follow_redirects=False)

    assert res.status_code in (302, 303)
    assert expired == [1]


def test_signup_creates_and_registers_account(flask_app: Flask, client, monkeypatch):
    registered = []
    monkeypatch.setattr(
        facebook, "register_users", lambda accounts: registered.extend(accounts) or True
    )

    res = client.post(
        "/signup",
        data={
            "username": "erin",
            "name": "Erin",
            "email": "Erin@Example.com",
            "password": "secret",
        },
        follow_redirects=False,
    )

    assert res.status_code in (302, 303)
    assert client.get_cookie(COOKIE).value == "erin"
    with flask_app.app_context():
        row = get_user_by_username("erin")
    assert row["email"] == "erin@example.com"
    assert row["email_hash"] == public_email_hash("erin@example.com")
    assert registered == [
        {"email_hash": public_email_hash("erin@example.com"), "account_id": "erin"}
    ]


def test_signup_survives_registration_failure(flask_app: Flask, client):
    # Facebook is not configured in tests, so registration fails
    res = client.post(
        "/signup",
        data={"username": "frank", "email": "f@example.com", "password": "secret"},
    )

    assert res.status_code in (302, 303)
    with flask_app.app_context():
        assert get_user_by_username("frank") is not None


def test_signup_rejects_reserved_username(flask_app: Flask, client):
    res = client.post("/signup", data={"username": "unknown", "password": "secret"})

    assert res.status_code == 400
    assert b"reserved" in res.data
    with flask_app.app_context():
        assert get_user_by_username("unknown") is None


def test_signup_rejects_taken_username(flask_app: Flask, client):
    _create(flask_app, username="alice", password="secret")

    res = client.post("/signup", data={"username": "alice", "password": "other"})

    assert res.status_code == 400
    assert b"already taken" in res.data


def test_logout_ends_facebook_session(flask_app: Flask, client, monkeypatch):
    api_key = "apikey123"
    _create(flask_app, username="runner", fb_uid=42)
    monkeypatch.setattr(facebook, "api_key", api_key)
    monkeypatch.setattr(facebook, "secret", "s3cret")
    http = MagicMock()
    http.post.return_value.json.return_value = True
    monkeypatch.setattr(facebook, "http", http)

    params = {"user": "42", "session_key": "sk-1", "expires": "0", "ss": "xyz"}
    for name, value in params.items():
        client.set_cookie(f"{api_key}_{name}", value)
    client.set_cookie(api_key, facebook.generate_sig(params))
    assert b"Welcome, runner" in client.get("/").data

    res = client.get("/logout", follow_redirects=False)

    assert res.status_code in (302, 303)
    methods = [call.kwargs["data"]["method"] for call in http.post.call_args_list]
    assert "facebook.auth.expireSession" in methods
    assert client.get_cookie(api_key) is None
    assert client.get_cookie(f"{api_key}_user") is None
    assert client.get_cookie(f"{api_key}_session_key") is None
    home = client.get("/")
    assert b"Welcome" not in home.data
    assert b"Log in" in home.data
