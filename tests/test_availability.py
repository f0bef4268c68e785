"""Day availability tests."""

from __future__ import annotations

from datetime import date, datetime

from reservation_hub.data_access.memory import InMemoryRepository
from reservation_hub.engine.availability import compute_availability
from reservation_hub.engine.service import EngineSettings, ReservationEngine

DAY = date(2024, 11, 4)


def test_empty_day_has_sixteen_hour_slots(engine, hall):
    day = engine.get_availability(hall.resource_id, DAY)

    assert len(day.time_slots) == 16
    assert day.time_slots[0].start_time == "06:00"
    assert day.time_slots[-1].end_time == "22:00"
    for previous, current in zip(day.time_slots, day.time_slots[1:]):
        assert previous.end_time == current.start_time
    assert all(slot.is_available for slot in day.time_slots)
    assert day.is_fully_booked is False
    assert day.conflicting_bookings == []


def test_slot_is_unavailable_iff_a_live_booking_intersects(engine, hall):
    booking = engine.create_booking(
        resource_id=hall.resource_id,
        title="Choir rehearsal",
        start=datetime(2024, 11, 4, 18, 30),
        end=datetime(2024, 11, 4, 19, 15),
        booked_by="music",
    )

    day = engine.get_availability(hall.resource_id, DAY)
    unavailable = [slot.start_time for slot in day.time_slots if not slot.is_available]

    assert unavailable == ["18:00", "19:00"]
    assert day.conflicting_bookings == [booking.booking_id]


def test_bookings_outside_operating_hours_are_ignored(engine, hall):
    engine.create_booking(
        resource_id=hall.resource_id,
        title="Overnight prayer vigil",
        start=datetime(2024, 11, 4, 22),
        end=datetime(2024, 11, 5, 5),
        booked_by="prayer team",
    )

    day = engine.get_availability(hall.resource_id, DAY)

    assert all(slot.is_available for slot in day.time_slots)


def test_fully_booked_day(engine, hall):
    engine.create_booking(
        resource_id=hall.resource_id,
        title="Conference",
        start=datetime(2024, 11, 4, 6),
        end=datetime(2024, 11, 4, 22),
        booked_by="office",
    )

    assert engine.get_availability(hall.resource_id, DAY).is_fully_booked is True


def test_operating_window_follows_settings(clock):
    settings = EngineSettings(day_start_hour=8, day_end_hour=20, slot_minutes=30)
    engine = ReservationEngine(InMemoryRepository(), settings=settings, clock=clock)
    chapel = engine.create_resource(org_id="1", name="Chapel", category="facility", location="East")

    day = engine.get_availability(chapel.resource_id, DAY)

    assert len(day.time_slots) == 24
    assert (day.time_slots[0].start_time, day.time_slots[0].end_time) == ("08:00", "08:30")


def test_compute_availability_closes_at_midnight():
    day = compute_availability([], resource_id=1, day=DAY, start_hour=20, end_hour=24)

    assert [slot.end_time for slot in day.time_slots] == ["21:00", "22:00", "23:00", "24:00"]
