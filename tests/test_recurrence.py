"""Recurring booking expansion tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from reservation_hub.engine.errors import BookingConflict, ValidationError
from reservation_hub.engine.recurrence import expand
from reservation_hub.models.entities import RecurrenceRule


def test_weekly_sunday_series(engine, hall):
    series = engine.create_recurring_booking(
        recurrence=RecurrenceRule(frequency="weekly", interval=1, days_of_week=(0,)),
        count=3,
        resource_id=hall.resource_id,
        title="Sunday School",
        start=datetime(2024, 11, 3, 9),
        end=datetime(2024, 11, 3, 11),
        booked_by="education",
    )

    assert [booking.start for booking in series] == [
        datetime(2024, 11, 3, 9),
        datetime(2024, 11, 10, 9),
        datetime(2024, 11, 17, 9),
    ]
    assert all(booking.end - booking.start == timedelta(hours=2) for booking in series)
    head = series[0]
    assert head.recurrence is not None
    assert all(booking.series_id == head.booking_id for booking in series)
    assert all(booking.recurrence is None for booking in series[1:])

    _, total = engine.list_bookings(series_id=head.booking_id)
    assert total == 3
    assert engine.get_booking(head.booking_id).recurrence.days_of_week == (0,)


def test_anchor_off_pattern_starts_at_next_match():
    rule = RecurrenceRule(frequency="weekly", days_of_week=(0,))

    intervals = expand(rule, datetime(2024, 11, 4, 9), datetime(2024, 11, 4, 10), count=2)

    assert [start.date() for start, _ in intervals] == [date(2024, 11, 10), date(2024, 11, 17)]


def test_until_bounds_series_inclusively():
    rule = RecurrenceRule(frequency="daily", interval=2)

    intervals = expand(rule, datetime(2024, 11, 1, 18), datetime(2024, 11, 1, 19), until=date(2024, 11, 7))

    assert [start.day for start, _ in intervals] == [1, 3, 5, 7]


def test_tighter_horizon_wins():
    rule = RecurrenceRule(frequency="weekly", occurrences=10)

    intervals = expand(rule, datetime(2024, 11, 1, 18), datetime(2024, 11, 1, 19), count=2)

    assert len(intervals) == 2


def test_monthly_skips_missing_days():
    rule = RecurrenceRule(frequency="monthly")

    intervals = expand(rule, datetime(2025, 1, 31, 10), datetime(2025, 1, 31, 11), count=3)

    assert [start.month for start, _ in intervals] == [1, 3, 5]


def test_unbounded_rule_is_rejected():
    with pytest.raises(ValidationError):
        expand(RecurrenceRule(frequency="weekly"), datetime(2024, 11, 3, 9), datetime(2024, 11, 3, 10))


def test_rule_with_both_bounds_is_rejected():
    rule = RecurrenceRule(frequency="weekly", end_date=date(2024, 12, 1), occurrences=4)

    with pytest.raises(ValidationError):
        expand(rule, datetime(2024, 11, 3, 9), datetime(2024, 11, 3, 10))


def test_days_of_week_only_for_weekly():
    with pytest.raises(ValidationError):
        expand(
            RecurrenceRule(frequency="daily", days_of_week=(1,)),
            datetime(2024, 11, 3, 9),
            datetime(2024, 11, 3, 10),
            count=3,
        )


def test_series_is_capped(engine, hall):
    engine.ledger.max_occurrences = 5

    series = engine.create_recurring_booking(
        recurrence=RecurrenceRule(frequency="daily"),
        until=date(2025, 11, 1),
        resource_id=hall.resource_id,
        title="Morning prayer",
        start=datetime(2024, 11, 2, 7),
        end=datetime(2024, 11, 2, 8),
        booked_by="pastoral",
    )

    assert len(series) == 5


def test_series_occurrences_conflict_with_existing_bookings(engine, hall):
    wedding = engine.create_booking(
        resource_id=hall.resource_id,
        title="Wedding reception",
        start=datetime(2024, 11, 10, 8),
        end=datetime(2024, 11, 10, 14),
        booked_by="office",
    )

    series = engine.create_recurring_booking(
        recurrence=RecurrenceRule(frequency="weekly"),
        count=2,
        resource_id=hall.resource_id,
        title="Sunday brunch",
        start=datetime(2024, 11, 3, 10),
        end=datetime(2024, 11, 3, 12),
        booked_by="hospitality",
    )

    assert series[0].conflicts_with == set()
    assert series[1].conflicts_with == {wedding.booking_id}
    assert engine.get_booking(wedding.booking_id).conflicts_with == {series[1].booking_id}


def test_reject_policy_aborts_whole_series(strict_engine):
    hall = strict_engine.create_resource(org_id="1", name="Hall", category="facility", location="Wing")
    strict_engine.create_booking(
        resource_id=hall.resource_id,
        title="Funeral",
        start=datetime(2024, 11, 17, 9),
        end=datetime(2024, 11, 17, 12),
        booked_by="office",
    )

    with pytest.raises(BookingConflict):
        strict_engine.create_recurring_booking(
            recurrence=RecurrenceRule(frequency="weekly"),
            count=3,
            resource_id=hall.resource_id,
            title="Bible study",
            start=datetime(2024, 11, 3, 10),
            end=datetime(2024, 11, 3, 11),
            booked_by="education",
        )

    _, total = strict_engine.list_bookings(resource_id=hall.resource_id)
    assert total == 1


def test_cancelling_one_occurrence_leaves_siblings(engine, hall):
    series = engine.create_recurring_booking(
        recurrence=RecurrenceRule(frequency="weekly", days_of_week=(0,)),
        count=3,
        resource_id=hall.resource_id,
        title="Choir rehearsal",
        start=datetime(2024, 11, 3, 15),
        end=datetime(2024, 11, 3, 17),
        booked_by="music",
    )

    engine.cancel_booking(series[1].booking_id)

    stored = [engine.get_booking(booking.booking_id) for booking in series]
    assert [booking.status for booking in stored] == ["pending", "cancelled", "pending"]
    assert stored[0].recurrence == RecurrenceRule(frequency="weekly", days_of_week=(0,))
    assert [booking.series_id for booking in stored] == [series[0].booking_id] * 3
