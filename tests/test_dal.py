"""SQLite data access layer tests."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime

import pytest

from reservation_hub.data_access import seed
from reservation_hub.data_access.db import execute, query_one
from reservation_hub.data_access.sqlite_repository import SqliteRepository
from reservation_hub.engine.errors import BookingConflict
from reservation_hub.engine.service import EngineSettings, ReservationEngine
from reservation_hub.models.entities import RecurrenceRule
from reservation_hub.services import get_engine


def test_seed_data_is_loaded(app, seeded_resources):
    assert set(seeded_resources) == {
        "Main Sanctuary",
        "Fellowship Hall",
        "Sound System",
        "Folding Chairs",
        "Church Van",
    }
    with app.app_context():
        engine = get_engine()
        bookings, total = engine.list_bookings()
        assert total == 9
        series_heads = [booking for booking in bookings if booking.recurrence is not None]
        assert len(series_heads) == 1
        assert series_heads[0].recurrence.days_of_week == (0,)
        assert len(engine.list_maintenance_schedules()) == 3


def test_resource_round_trip(app):
    with app.app_context():
        engine = get_engine()
        resource = engine.create_resource(
            org_id="7",
            name="Nursery",
            category="facility",
            location="Lower Level",
            capacity=12,
            tags=["children", "sunday"],
            operating_hours_per_day=8,
        )

        fetched = engine.get_resource(resource.resource_id)
        assert fetched.tags == ["children", "sunday"]
        assert fetched.operating_hours_per_day == 8
        assert isinstance(fetched.created_at, datetime)

        engine.update_resource(resource.resource_id, status="retired")
        assert engine.get_resource(resource.resource_id).status == "retired"


def test_conflicts_and_series_persist(app, seeded_resources):
    hall = seeded_resources["Fellowship Hall"]
    with app.app_context():
        engine = get_engine()
        series = engine.create_recurring_booking(
            recurrence=RecurrenceRule(frequency="weekly", end_date=date(2030, 1, 20)),
            resource_id=hall.resource_id,
            title="Men's breakfast",
            start=datetime(2030, 1, 5, 7),
            end=datetime(2030, 1, 5, 9),
            booked_by="mens ministry",
        )
        overlap = engine.create_booking(
            resource_id=hall.resource_id,
            title="Setup crew",
            start=datetime(2030, 1, 12, 8),
            end=datetime(2030, 1, 12, 10),
            booked_by="facilities",
        )

    with app.app_context():
        engine = get_engine()
        head = engine.get_booking(series[0].booking_id)
        assert head.recurrence == RecurrenceRule(frequency="weekly", end_date=date(2030, 1, 20))
        assert [booking.series_id for booking in series] == [head.booking_id] * 3
        assert engine.get_booking(series[1].booking_id).conflicts_with == {overlap.booking_id}
        assert engine.get_booking(overlap.booking_id).conflicts_with == {series[1].booking_id}

        engine.cancel_booking(overlap.booking_id)
        assert engine.get_booking(series[1].booking_id).conflicts_with == set()


def test_rejected_booking_leaves_no_rows(app, seeded_resources, db):
    van = seeded_resources["Church Van"]
    engine = ReservationEngine(SqliteRepository(db), settings=EngineSettings(conflict_policy="reject"))
    first = engine.create_booking(
        resource_id=van.resource_id,
        title="Mission trip",
        start=datetime(2030, 3, 1, 8),
        end=datetime(2030, 3, 1, 18),
        booked_by="missions",
    )

    with pytest.raises(BookingConflict):
        engine.create_booking(
            resource_id=van.resource_id,
            title="Hospital visits",
            start=datetime(2030, 3, 1, 9),
            end=datetime(2030, 3, 1, 11),
            booked_by="pastoral",
        )

    count = query_one(db, "SELECT COUNT(*) AS total FROM bookings WHERE resource_id = ?", (van.resource_id,))
    assert count["total"] == 1
    assert engine.get_booking(first.booking_id).conflicts_with == set()


def test_cascade_delete_removes_rows(app, seeded_resources, db):
    sanctuary = seeded_resources["Main Sanctuary"]
    engine = ReservationEngine(SqliteRepository(db))

    engine.delete_resource(sanctuary.resource_id)

    assert query_one(db, "SELECT 1 FROM bookings WHERE resource_id = ?", (sanctuary.resource_id,)) is None
    assert query_one(db, "SELECT 1 FROM maintenance_schedules WHERE resource_id = ?", (sanctuary.resource_id,)) is None


def test_schema_rejects_reversed_interval(app, seeded_resources, db):
    hall = seeded_resources["Fellowship Hall"]
    with pytest.raises(sqlite3.IntegrityError):
        execute(
            db,
            """
            INSERT INTO bookings (resource_id, title, booked_by, start_datetime, end_datetime, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (hall.resource_id, "Broken", "office", "2030-01-01T10:00:00", "2030-01-01T09:00:00", "x", "x"),
        )


def test_schema_rejects_unknown_category(db):
    with pytest.raises(sqlite3.IntegrityError):
        execute(
            db,
            """
            INSERT INTO resources (org_id, name, category, resource_type, location, created_at, updated_at)
            VALUES ('1', 'Spaceship', 'spacecraft', 'physical_space', 'Orbit', 'x', 'x')
            """,
        )


def test_purchase_approval_and_setup_fields_round_trip(app, seeded_resources):
    with app.app_context():
        engine = get_engine()
        projector = engine.create_resource(
            org_id="7",
            name="Projector",
            category="technology",
            resource_type="movable_equipment",
            location="AV Closet",
            subcategory="display",
            purchase_date=date(2022, 8, 15),
            warranty_expiry=date(2025, 8, 15),
            specifications={"lumens": 4000, "inputs": ["hdmi", "vga"]},
        )
        booking = engine.create_booking(
            resource_id=projector.resource_id,
            title="Mission slideshow",
            start=datetime(2030, 6, 1, 18),
            end=datetime(2030, 6, 1, 20),
            booked_by="missions",
            setup_requirements=["screen", "extension cord"],
            special_instructions="Return to the AV closet.",
        )
        engine.update_booking(booking.booking_id, status="confirmed", approved_by="Media Team")

    with app.app_context():
        engine = get_engine()
        stored = engine.get_resource(projector.resource_id)
        assert stored.subcategory == "display"
        assert stored.purchase_date == date(2022, 8, 15)
        assert stored.warranty_expiry == date(2025, 8, 15)
        assert stored.specifications == {"lumens": 4000, "inputs": ["hdmi", "vga"]}

        confirmed = engine.get_booking(booking.booking_id)
        assert confirmed.setup_requirements == ["screen", "extension cord"]
        assert confirmed.special_instructions == "Return to the AV closet."
        assert confirmed.approved_by == "Media Team"
        assert isinstance(confirmed.approved_at, datetime)


def test_reseeding_only_fills_in_missing_resources(app, seeded_resources):
    with app.app_context():
        engine = get_engine()
        engine.delete_resource(seeded_resources["Church Van"].resource_id)

        counts = seed.seed()

        assert counts == {"resources": 1, "bookings": 0, "schedules": 1}
        assert engine.list_bookings()[1] == 9
        assert len(engine.list_maintenance_schedules()) == 3
        names = [resource.name for resource in engine.list_resources(org_id=seed.DEMO_ORG_ID)[0]]
        assert names.count("Church Van") == 1

        assert seed.seed() == {"resources": 0, "bookings": 0, "schedules": 0}
