"""Summary and usage statistics tests."""

from __future__ import annotations

from datetime import datetime, timedelta

from reservation_hub.engine.stats import utilization_rate

NOW = datetime(2024, 11, 1, 12, 0)


def test_summary_for_empty_catalogue(engine):
    summary = engine.get_resource_summary("1")

    assert summary.total_resources == 0
    assert summary.utilization_rate == 0.0
    assert summary.revenue_this_month == 0.0
    assert summary.maintenance_alerts == []


def test_utilization_is_zero_without_live_bookings(engine, hall):
    booking = engine.create_booking(
        resource_id=hall.resource_id,
        title="Retreat planning",
        start=NOW - timedelta(days=2, hours=4),
        end=NOW - timedelta(days=2),
        booked_by="office",
    )
    engine.cancel_booking(booking.booking_id)

    assert engine.get_resource_summary("1").utilization_rate == 0.0
    assert engine.get_usage_stats(hall.resource_id).utilization_rate == 0.0


def test_utilization_uses_trailing_window(engine, hall):
    engine.create_booking(
        resource_id=hall.resource_id,
        title="Revival week",
        start=NOW - timedelta(days=10),
        end=NOW - timedelta(days=10) + timedelta(hours=48),
        booked_by="office",
    )
    engine.create_booking(
        resource_id=hall.resource_id,
        title="Christmas pageant",
        start=NOW + timedelta(days=30),
        end=NOW + timedelta(days=30, hours=3),
        booked_by="office",
    )

    # 48 booked hours over 16 h/day for 30 days
    assert engine.get_resource_summary("1").utilization_rate == 10.0


def test_operating_hours_feed_the_denominator(engine):
    van = engine.create_resource(
        org_id="1", name="Church Van", category="vehicle", location="Lot", operating_hours_per_day=10
    )
    engine.create_booking(
        resource_id=van.resource_id,
        title="Youth trip",
        start=NOW - timedelta(days=5),
        end=NOW - timedelta(days=5) + timedelta(hours=30),
        booked_by="youth",
    )

    assert engine.get_usage_stats(van.resource_id).utilization_rate == 10.0


def test_bookings_straddling_the_window_are_clipped(engine, hall):
    resource = engine.get_resource(hall.resource_id)
    bookings = [
        engine.create_booking(
            resource_id=hall.resource_id,
            title="Long lease",
            start=NOW - timedelta(days=31),
            end=NOW - timedelta(days=29),
            booked_by="office",
        )
    ]

    assert utilization_rate([resource], bookings, NOW) == round(24 / (16 * 30) * 100, 2)


def test_summary_counts_and_revenue(engine, hall):
    engine.create_resource(
        org_id="1",
        name="Sound System",
        category="technology",
        resource_type="movable_equipment",
        location="Booth",
        purchase_price=12_000.0,
        current_value=8_000.0,
        status="maintenance",
    )
    engine.create_booking(
        resource_id=hall.resource_id,
        title="Wedding",
        start=datetime(2024, 11, 9, 14),
        end=datetime(2024, 11, 9, 18),
        booked_by="office",
        cost=250.0,
    )
    engine.create_booking(
        resource_id=hall.resource_id,
        title="October dinner",
        start=datetime(2024, 10, 20, 18),
        end=datetime(2024, 10, 20, 20),
        booked_by="office",
        cost=100.0,
    )
    engine.create_maintenance_schedule(
        resource_id=hall.resource_id,
        schedule_type="yearly",
        title="Roof inspection",
        next_due=NOW - timedelta(days=1),
        priority="high",
    )

    summary = engine.get_resource_summary("1")

    assert summary.total_resources == 2
    assert summary.resources_by_category == [
        {"category": "facility", "count": 1},
        {"category": "technology", "count": 1},
    ]
    assert {"status": "maintenance", "count": 1} in summary.resources_by_status
    assert summary.total_bookings == 2
    assert summary.upcoming_bookings == 1
    assert summary.overdue_maintenance == 1
    assert summary.total_value == 408_000.0
    assert summary.revenue_this_month == 250.0
    assert [alert.message for alert in summary.maintenance_alerts] == ["Roof inspection is overdue"]


def test_usage_stats_breakdowns(engine, hall):
    for day in (3, 10, 17):
        engine.create_booking(
            resource_id=hall.resource_id,
            title="Sunday lunch",
            start=datetime(2024, 11, day, 12),
            end=datetime(2024, 11, day, 14),
            booked_by="hospitality",
            cost=50.0,
        )
    engine.create_booking(
        resource_id=hall.resource_id,
        title="Evening class",
        start=datetime(2024, 10, 30, 19),
        end=datetime(2024, 10, 30, 20),
        booked_by="education",
    )
    engine.create_maintenance_schedule(
        resource_id=hall.resource_id,
        schedule_type="monthly",
        title="Deep clean",
        next_due=NOW + timedelta(days=10),
        cost=120.0,
    )

    stats = engine.get_usage_stats(hall.resource_id)

    assert stats.total_bookings == 4
    assert stats.total_hours == 7.0
    assert stats.average_booking_duration == 1.75
    assert stats.revenue == 150.0
    assert stats.maintenance_cost == 120.0
    assert stats.popular_time_slots[0] == {"time": "12:00", "count": 3}
    assert stats.bookings_by_month == [
        {"month": "2024-10", "count": 1, "hours": 1.0},
        {"month": "2024-11", "count": 3, "hours": 6.0},
    ]
