"""Per-request access to the reservation engine."""

from __future__ import annotations

from flask import Flask, current_app, g

from .data_access.db import get_db
from .data_access.sqlite_repository import SqliteRepository
from .engine.locks import ResourceLocks
from .engine.service import EngineSettings, ReservationEngine


def init_app(app: Flask) -> None:
    """Build the settings once and share one lock registry across requests."""

    app.extensions["reservation_settings"] = EngineSettings.from_mapping(app.config)
    app.extensions["reservation_locks"] = ResourceLocks()


def get_engine() -> ReservationEngine:
    """Return an engine bound to the request's database connection."""

    if "engine" not in g:
        g.engine = ReservationEngine(
            SqliteRepository(get_db()),
            settings=current_app.extensions["reservation_settings"],
            locks=current_app.extensions["reservation_locks"],
        )
    return g.engine
