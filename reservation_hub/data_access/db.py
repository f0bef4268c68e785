"""SQLite connection management utilities."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

import click
from flask import Flask, current_app, g

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"
_URL_PREFIXES = ("sqlite:///", "sqlite://")


def database_path(database_url: str) -> str:
    """Translate a ``sqlite://`` URL into the path ``sqlite3.connect`` expects."""

    if database_url == "sqlite:///:memory:":
        return ":memory:"
    for prefix in _URL_PREFIXES:
        if database_url.startswith(prefix):
            return database_url[len(prefix):]
    raise ValueError(f"Unsupported database URL '{database_url}'; only sqlite is available.")


def create_connection(database_url: str, timeout: float = 5.0) -> sqlite3.Connection:
    """Open a connection with row access by column name and foreign keys enforced.

    ``timeout`` is how long a writer waits on another connection's
    ``BEGIN IMMEDIATE`` before giving up with ``database is locked``.
    """

    connection = sqlite3.connect(database_path(database_url), timeout=timeout, check_same_thread=False)
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys = ON")
    return connection


def get_db() -> sqlite3.Connection:
    """Return the connection cached on ``g`` for this app context."""

    if "db_conn" not in g:
        g.db_conn = create_connection(
            current_app.config["DATABASE_URL"],
            timeout=current_app.config.get("SQLITE_BUSY_TIMEOUT", 5.0),
        )
    return g.db_conn  # type: ignore[return-value]


def close_db(exception: Exception | None = None) -> None:
    """Drop the cached engine and close its connection."""

    g.pop("engine", None)
    connection = g.pop("db_conn", None)
    if connection is not None:
        connection.close()


@contextmanager
def immediate_transaction(db: sqlite3.Connection) -> Iterator[None]:
    """Run the block under ``BEGIN IMMEDIATE``; commit on success, roll back on error."""

    if db.in_transaction:
        db.commit()
    db.execute("BEGIN IMMEDIATE")
    try:
        yield
    except BaseException:
        db.rollback()
        raise
    db.commit()


def execute(
    db: sqlite3.Connection,
    query: str,
    params: Sequence[Any] | None = None,
    commit: bool = True,
) -> sqlite3.Cursor:
    """Run a write statement, committing unless an outer transaction owns it."""

    cursor = db.execute(query, params or [])
    if commit:
        db.commit()
    return cursor


def query_all(db: sqlite3.Connection, query: str, params: Sequence[Any] | None = None) -> list[sqlite3.Row]:
    return db.execute(query, params or []).fetchall()


def query_one(db: sqlite3.Connection, query: str, params: Sequence[Any] | None = None) -> sqlite3.Row | None:
    return db.execute(query, params or []).fetchone()


def init_db(app: Flask | None = None) -> None:
    """Drop and recreate the reservation tables from ``schema.sql``."""

    app = app or current_app
    with app.app_context():
        db = get_db()
        db.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))
        db.commit()


def init_app(app: Flask) -> None:
    """Register teardown and the ``init-db``/``seed-db`` commands."""

    app.teardown_appcontext(close_db)

    @app.cli.command("init-db")
    def init_db_command() -> None:
        """Clear existing data and create new tables."""

        init_db(app)
        click.echo("Initialized the database.")

    @app.cli.command("seed-db")
    def seed_db_command() -> None:
        """Load the demo church resources, bookings and schedules."""

        from .seed import seed  # pylint: disable=import-outside-toplevel

        counts = seed()
        click.echo(
            f"Seeded {counts['resources']} resources, {counts['bookings']} bookings "
            f"and {counts['schedules']} maintenance schedules."
        )
