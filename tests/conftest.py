import os

import pytest
from flask import Flask

from database import init_db
from runaround_core import create_app
from services.accounts import AccountRepository
from services.facebook import FacebookError, Outcome
from services.resolver import AccountResolver

COOKIE_NAME = "rb_current_user"


class FakeCookies:
    """Dict-backed cookie store."""

    def __init__(self, **values):
        self.values = dict(values)
        self.writes = []
        self.deleted = []

    def get(self, name):
        return self.values.get(name)

    def set(self, name, value):
        self.values[name] = value
        self.writes.append((name, value))

    def delete(self, name):
        self.values.pop(name, None)
        self.deleted.append(name)


class FakeFacebook:
    """In-memory Facebook session provider and registration service."""

    def __init__(self):
        self.subject_id = None
        self.email_hashes = []
        self.fields = {}
        self.field_requests = 0
        self.cookie_names = []
        self.expire_error = None
        self.hashes_error = None
        self.expired = 0
        self.registered = []
        self.unregistered = []

    def current_subject_id(self):
        return self.subject_id

    def session_cookie_names(self):
        return list(self.cookie_names)

    def expire_session(self):
        self.expired += 1
        if self.expire_error:
            return Outcome.failure(self.expire_error)
        return Outcome.success(True)

    def email_hashes_for(self, fb_uid):
        if self.hashes_error:
            return Outcome.failure(self.hashes_error)
        return Outcome.success(list(self.email_hashes))

    def fields_for(self, fb_uid, fields):
        self.field_requests += 1
        return Outcome.success({f: self.fields[f] for f in fields if f in self.fields})

    def register_users(self, accounts):
        self.registered.extend(accounts)
        return True

    def unregister_users(self, email_hashes):
        self.unregistered.extend(email_hashes)
        return True


@pytest.fixture(name="flask_app")
def app(tmp_path) -> Flask:
    test_instance_path = tmp_path / "instance"
    test_db = tmp_path / "test.sqlite"

    os.makedirs(test_instance_path, exist_ok=True)

    test_config = {
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "WTF_CSRF_ENABLED": False,
        "RATELIMIT_ENABLED": False,
        "DATABASE": str(test_db),
        "FACEBOOK_API_KEY": "",
        "FACEBOOK_SECRET": "",
    }

    flask_app = create_app(test_config, instance_path=str(test_instance_path))

    with flask_app.app_context():
        init_db()

    return flask_app


@pytest.fixture
def client(flask_app: Flask):
    return flask_app.test_client()


@pytest.fixture
def runner(flask_app: Flask):
    return flask_app.test_cli_runner()


@pytest.fixture
def app_ctx(flask_app: Flask):
    with flask_app.test_request_context():
        yield


@pytest.fixture
def fake_cookies():
    return FakeCookies()


@pytest.fixture
def fake_facebook():
    return FakeFacebook()


@pytest.fixture
def repository(app_ctx):
    return AccountRepository()


@pytest.fixture
def resolver(app_ctx, fake_cookies, fake_facebook, repository):
    return AccountResolver(fake_cookies, fake_facebook, repository, COOKIE_NAME)


@pytest.fixture
def facebook_error():
    return FacebookError("Session key invalid or no longer valid", code=102)
