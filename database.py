"""
Database helper functions for The Run Around.

Follows the recommended Flask pattern for SQLite connections using the
application context global `g` and teardown callbacks.
"""

import logging
import os
import sqlite3
from collections.abc import Iterable

import click
from flask import Flask, current_app, g
from flask.cli import with_appcontext

logger = logging.getLogger(__name__)


def get_db() -> sqlite3.Connection:
    """Get database connection, creating it if it doesn't exist."""
    if "db" not in g:
        g.db = sqlite3.connect(
            current_app.config["DATABASE"], detect_types=sqlite3.PARSE_DECLTYPES
        )
        g.db.row_factory = sqlite3.Row
        _migrate_schema_if_needed(g.db)

    return g.db


def close_db(_e: BaseException | None = None) -> None:
    """Close database connection if it exists."""
    db = g.pop("db", None)

    if db is not None:
        db.close()


def _schema_path() -> str:
    # The Flask app is created from runaround_core, so go up one level
    package_dir = os.path.dirname(current_app.root_path)
    return os.path.join(package_dir, "schema.sql")


def init_db() -> None:
    """Initialize the database with the schema."""
    db = get_db()

    with open(_schema_path(), encoding="utf8") as f:
        db.executescript(f.read())


@click.command("init-db")
@with_appcontext
def init_db_command() -> None:
    """Clear the existing data and create new tables."""
    init_db()
    click.echo("Initialized the database.")


def init_app(app: Flask) -> None:
    """Register database functions with the app."""
    app.teardown_appcontext(close_db)
    app.cli.add_command(init_db_command)


def _migrate_schema_if_needed(db: sqlite3.Connection) -> None:
    """Ensure the database schema has required columns, performing lightweight migrations.

    This function is idempotent and safe to run on each connection creation.
    If the database is empty, it will initialize it with the full schema.
    """
    try:
        cursor = db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='users'"
        )
        if cursor.fetchone() is None:
            schema_path = _schema_path()
            if os.path.exists(schema_path):
                with open(schema_path, encoding="utf8") as f:
                    db.executescript(f.read())
                db.commit()
            return

        # Databases created before Facebook Connect lack the linking columns
        cursor = db.execute("PRAGMA table_info(users)")
        columns = [row[1] for row in cursor.fetchall()]

        if "fb_uid" not in columns:
            db.execute(
                "ALTER TABLE users ADD COLUMN fb_uid INTEGER NOT NULL DEFAULT 0"
            )
            db.commit()

        if "email_hash" not in columns:
            db.execute("ALTER TABLE users ADD COLUMN email_hash TEXT")
            db.commit()

        db.execute("CREATE INDEX IF NOT EXISTS idx_users_fb_uid ON users(fb_uid)")
        db.execute(
            "CREATE INDEX IF NOT EXISTS idx_users_email_hash ON users(email_hash)"
        )
        db.commit()

        cursor = db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='runs'"
        )
        if not cursor.fetchone():
            db.executescript("""
                CREATE TABLE runs (
                    run_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL,
                    date TEXT NOT NULL DEFAULT (date('now')),
                    miles REAL NOT NULL DEFAULT 0,
                    route TEXT NOT NULL DEFAULT ''
                );
                CREATE INDEX IF NOT EXISTS idx_runs_username_date ON runs(username, date);
            """)
            db.commit()
    except sqlite3.Error:
        # If migration fails, we don't want to crash app startup; leave as-is
        logger.warning("Database schema migration failed", exc_info=True)


# User functions


def get_user_by_username(username: str) -> sqlite3.Row | None:
    """Get a user row by username."""
    db = get_db()
    return db.execute(
        "SELECT * FROM users WHERE username = ?", (username,)
    ).fetchone()


def get_user_by_fb_uid(fb_uid: int) -> sqlite3.Row | None:
    """Get the user row linked to a Facebook user ID."""
    db = get_db()
    return db.execute(
        "SELECT * FROM users WHERE fb_uid = ? ORDER BY username LIMIT 1", (fb_uid,)
    ).fetchone()


def get_user_by_email_hashes(email_hashes: Iterable[str]) -> sqlite3.Row | None:
    """Get the first user row whose email hash is one of `email_hashes`.

    When several rows match, the lowest username wins.
    """
    hashes = [h for h in email_hashes if h]
    if not hashes:
        return None

    placeholders = ", ".join("?" for _ in hashes)
    db = get_db()
    return db.execute(
        f"SELECT * FROM users WHERE email_hash IN ({placeholders}) "
        "ORDER BY username LIMIT 1",
        hashes,
    ).fetchone()


def upsert_user(
    username: str,
    name: str,
    password: str,
    email: str,
    fb_uid: int,
    email_hash: str,
) -> None:
    """Insert a user, or update every column of the existing row."""
    db = get_db()
    db.execute(
        """INSERT INTO users (username, name, password, email, fb_uid, email_hash)
           VALUES (?, ?, ?, ?, ?, ?)
           ON CONFLICT(username) DO UPDATE SET
               name = excluded.name,
               password = excluded.password,
               email = excluded.email,
               fb_uid = excluded.fb_uid,
               email_hash = excluded.email_hash""",
        (username, name, password, email, int(fb_uid), email_hash),
    )
    db.commit()


def delete_user(username: str) -> None:
    """Delete a user by username."""
    db = get_db()
    db.execute("DELETE FROM users WHERE username = ?", (username,))
    db.commit()


# Run functions


def get_runs_for_user(username: str, limit: int) -> list[sqlite3.Row]:
    """Get the most recent runs of a user, newest first."""
    db = get_db()
    return db.execute(
        "SELECT * FROM runs WHERE username = ? ORDER BY date DESC, run_id DESC LIMIT ?",
        (username, limit),
    ).fetchall()


def insert_run(username: str, date: str, miles: float, route: str = "") -> int:
    """Insert a run record.

    Returns:
        The run_id of the newly created run
    """
    db = get_db()
    cursor = db.execute(
        "INSERT INTO runs (username, date, miles, route) VALUES (?, ?, ?, ?)",
        (username, date, miles, route),
    )
    db.commit()
    rowid = cursor.lastrowid
    assert rowid is not None, "INSERT must return rowid"
    return rowid
