"""Fixtures shared by the engine, data access and HTTP tests."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
import sys
from typing import Generator

import pytest
from flask import Flask

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from reservation_hub.app import create_app
from reservation_hub.config import TestingConfig
from reservation_hub.data_access import seed
from reservation_hub.data_access.db import get_db, init_db
from reservation_hub.data_access.memory import InMemoryRepository
from reservation_hub.engine.service import EngineSettings, ReservationEngine
from reservation_hub.services import get_engine

FIXED_NOW = datetime(2024, 11, 1, 12, 0)


class FixedClock:
    """Callable clock the tests can move forward."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def app(tmp_path: Path) -> Generator[Flask, None, None]:
    """Application over a seeded SQLite file that lives for one test."""

    config = type("FileBackedTestingConfig", (TestingConfig,), {"DATABASE_URL": f"sqlite:///{tmp_path / 'hub.db'}"})
    application = create_app(config)
    with application.app_context():
        init_db(application)
        seed.seed()
    yield application


@pytest.fixture()
def client(app: Flask):
    return app.test_client()


@pytest.fixture()
def runner(app: Flask):
    return app.test_cli_runner()


@pytest.fixture()
def db(app: Flask):
    """Raw connection for asserting on stored rows."""

    with app.app_context():
        yield get_db()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(FIXED_NOW)


@pytest.fixture()
def engine(clock: FixedClock) -> ReservationEngine:
    """Engine over the in-memory repository with a fixed clock."""

    return ReservationEngine(InMemoryRepository(), clock=clock)


@pytest.fixture()
def strict_engine(clock: FixedClock) -> ReservationEngine:
    """Engine that rejects overlaps and guards deletions."""

    settings = EngineSettings(conflict_policy="reject", delete_policy="guard")
    return ReservationEngine(InMemoryRepository(), settings=settings, clock=clock)


@pytest.fixture()
def hall(engine: ReservationEngine):
    """A 200 seat fellowship hall."""

    return engine.create_resource(
        org_id="1",
        name="Fellowship Hall",
        category="facility",
        location="Education Wing",
        capacity=200,
        purchase_price=400_000.0,
    )


@pytest.fixture()
def seeded_resources(app: Flask):
    """Seeded resources keyed by name."""

    with app.app_context():
        resources, _ = get_engine().list_resources(org_id=seed.DEMO_ORG_ID)
        return {resource.name: resource for resource in resources}
