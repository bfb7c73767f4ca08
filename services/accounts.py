"""Account persistence on top of the sqlite helpers in `database`.

A repository instance is meant to live for one request. Its username cache
guarantees at most one fetch per username during that time and is kept in
step with the writes made through the repository.
"""

import logging
import sqlite3
from collections.abc import Iterable

from flask import current_app

import database
from runaround_core.models.account import RESERVED_USERNAME, Account
from runaround_core.models.run import Run
from services.facebook import public_email_hash

logger = logging.getLogger(__name__)

DEFAULT_MAX_DISPLAY_RUNS = 25


class AccountRepository:
    """Find, save and delete accounts; load their runs."""

    def __init__(self, max_runs: int | None = None):
        self._by_username: dict[str, Account | None] = {}
        self.max_runs = max_runs

    def find_by_username(self, username: str | None) -> Account | None:
        if not username or username == RESERVED_USERNAME:
            return None
        if username in self._by_username:
            return self._by_username[username]

        try:
            row = database.get_user_by_username(username)
        except sqlite3.Error:
            logger.exception(f"Could not fetch username {username}")
            return None

        if row is None:
            logger.info(f"Could not find username {username}")
        account = Account.from_row(row) if row is not None else None
        self._by_username[username] = account
        return account

    def find_by_facebook_uid(self, fb_uid: int | None) -> Account | None:
        if not fb_uid:
            return None
        try:
            row = database.get_user_by_fb_uid(int(fb_uid))
        except sqlite3.Error:
            logger.exception(f"Could not fetch from db for fb_uid {fb_uid}")
            return None
        return Account.from_row(row) if row is not None else None

    def find_by_any_email_hash(self, email_hashes: Iterable[str] | None) -> Account | None:
        """Return the account whose email hash is in `email_hashes`.

        If several accounts match, the one with the lowest username is returned.
        """
        if not email_hashes:
            return None
        try:
            row = database.get_user_by_email_hashes(email_hashes)
        except sqlite3.Error:
            logger.exception("Could not fetch from db by email hashes")
            return None
        return Account.from_row(row) if row is not None else None

    def upsert(self, account: Account) -> bool:
        """Insert or update every attribute of `account`, keyed by username."""
        try:
            database.upsert_user(
                account.username,
                account.name,
                account.password,
                account.email,
                account.fb_uid,
                public_email_hash(account.email),
            )
        except sqlite3.Error:
            logger.exception(f"Could not save account ({account.username})")
            return False

        self._by_username[account.username] = account
        return True

    def delete(self, username: str) -> bool:
        try:
            database.delete_user(username)
        except sqlite3.Error:
            logger.exception(f"Could not delete account ({username})")
            return False

        self._by_username.pop(username, None)
        return True

    def get_runs(self, account: Account) -> list[Run] | None:
        """Return the account's most recent runs, loading them on first use."""
        if account.runs is not None:
            return account.runs

        limit = self.max_runs
        if limit is None:
            limit = current_app.config.get("MAX_DISPLAY_RUNS", DEFAULT_MAX_DISPLAY_RUNS)
        try:
            rows = database.get_runs_for_user(account.username, limit)
        except sqlite3.Error:
            logger.exception(f"Could not fetch runs for {account.username}")
            return None

        account.runs = [Run.from_row(row) for row in rows]
        return account.runs

    def add_run(self, account: Account, date: str, miles: float, route: str = "") -> bool:
        """Record a run and drop the account's cached run list."""
        try:
            database.insert_run(account.username, date, miles, route)
        except sqlite3.Error:
            logger.exception(f"Could not save run for {account.username}")
            return False
        account.runs = None
        return True
