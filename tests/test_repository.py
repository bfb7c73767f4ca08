import sqlite3
from unittest.mock import patch

import database
from runaround_core.models.account import Account
from services.accounts import AccountRepository
from services.facebook import public_email_hash


def test_save_then_find_round_trip(repository):
    alice = Account(
        username="alice", name="Alice", email="alice@example.com", password="pw", fb_uid=4
    )
    assert repository.upsert(alice)
    assert repository.upsert(alice)

    fresh = AccountRepository()
    found = fresh.find_by_username("alice")
    assert found == alice
    assert found is not alice
    assert fresh.find_by_facebook_uid(4) == alice
    assert fresh.find_by_any_email_hash([public_email_hash("alice@example.com")]) == alice


def test_lookup_misses(repository):
    assert repository.find_by_username("nobody") is None
    assert repository.find_by_username("unknown") is None
    assert repository.find_by_username("") is None
    assert repository.find_by_facebook_uid(0) is None
    assert repository.find_by_facebook_uid(12345) is None
    assert repository.find_by_any_email_hash([]) is None
    assert repository.find_by_any_email_hash(None) is None


def test_username_fetched_once_per_repository(repository):
    repository.upsert(Account(username="alice", password="pw"))
    fresh = AccountRepository()

    with patch(
        "database.get_user_by_username", wraps=database.get_user_by_username
    ) as fetch:
        first = fresh.find_by_username("alice")
        second = fresh.find_by_username("alice")
        fresh.find_by_username("ghost")
        fresh.find_by_username("ghost")

    assert first is second
    assert fetch.call_count == 2


def test_delete_evicts_cached_account(repository):
    repository.upsert(Account(username="alice", password="pw"))
    assert repository.find_by_username("alice") is not None

    assert repository.delete("alice")
    assert repository.find_by_username("alice") is None


def test_persistence_failures_return_false(repository):
    with patch("database.upsert_user", side_effect=sqlite3.OperationalError("locked")):
        assert repository.upsert(Account(username="alice")) is False
    with patch("database.delete_user", side_effect=sqlite3.OperationalError("locked")):
        assert repository.delete("alice") is False
    with patch("database.get_user_by_fb_uid", side_effect=sqlite3.OperationalError("x")):
        assert repository.find_by_facebook_uid(3) is None


def test_runs_are_capped_and_cached(flask_app, repository):
    flask_app.config["MAX_DISPLAY_RUNS"] = 3
    alice = Account(username="alice", password="pw")
    repository.upsert(alice)
    for day in range(1, 6):
        assert repository.add_run(alice, f"2024-05-0{day}", float(day))

    runs = repository.get_runs(alice)
    assert [r.date for r in runs] == ["2024-05-05", "2024-05-04", "2024-05-03"]
    assert runs[0].miles == 5.0

    with patch("database.get_runs_for_user") as fetch:
        assert repository.get_runs(alice) is runs
    fetch.assert_not_called()


def test_add_run_invalidates_cached_runs(repository):
    alice = Account(username="alice", password="pw")
    repository.upsert(alice)
    assert repository.get_runs(alice) == []

    repository.add_run(alice, "2024-06-01", 2.5, "park")

    assert alice.runs is None
    assert [r.route for r in repository.get_runs(alice)] == ["park"]
