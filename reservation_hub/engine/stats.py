"""Utilization, revenue and breakdown figures over resources and bookings."""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from dateutil.relativedelta import relativedelta

from ..models.entities import Booking, MaintenanceSchedule, Resource, ResourceUsageStats

DEFAULT_OPERATING_HOURS_PER_DAY = 16
DEFAULT_WINDOW_DAYS = 30
POPULAR_SLOT_LIMIT = 5


def _live(bookings: Iterable[Booking]) -> list[Booking]:
    return [booking for booking in bookings if not booking.is_cancelled]


def booked_hours_within(bookings: Iterable[Booking], window_start: datetime, window_end: datetime) -> float:
    """Hours of live bookings, each clipped to ``[window_start, window_end)``."""

    total = 0.0
    for booking in _live(bookings):
        start = max(booking.start, window_start)
        end = min(booking.end, window_end)
        if start < end:
            total += (end - start).total_seconds() / 3600
    return total


def utilization_rate(
    resources: Sequence[Resource],
    bookings: Iterable[Booking],
    now: datetime,
    window_days: int = DEFAULT_WINDOW_DAYS,
    default_hours_per_day: float = DEFAULT_OPERATING_HOURS_PER_DAY,
) -> float:
    """Booked share of bookable hours over the trailing window, in percent.

    Each resource contributes its own ``operating_hours_per_day`` to the
    denominator, or ``default_hours_per_day`` when it has none.
    """

    if not resources:
        return 0.0
    capacity_hours = sum(
        (resource.operating_hours_per_day or default_hours_per_day) * window_days for resource in resources
    )
    resource_ids = {resource.resource_id for resource in resources}
    booked = booked_hours_within(
        (booking for booking in bookings if booking.resource_id in resource_ids),
        now - timedelta(days=window_days),
        now,
    )
    return round(booked / capacity_hours * 100, 2)


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return start, start + relativedelta(months=1)


def revenue_this_month(bookings: Iterable[Booking], now: datetime) -> float:
    month_start, next_month = month_bounds(now)
    return float(
        sum(booking.cost or 0 for booking in _live(bookings) if month_start <= booking.start < next_month)
    )


def count_by(resources: Iterable[Resource], field: str) -> list[dict]:
    """Group-and-count, e.g. ``[{"category": "facility", "count": 2}]``."""

    counts = Counter(getattr(resource, field) for resource in resources)
    return [{field: value, "count": count} for value, count in sorted(counts.items())]


def usage_stats(
    resource: Resource,
    bookings: Iterable[Booking],
    schedules: Iterable[MaintenanceSchedule],
    now: datetime,
    window_days: int = DEFAULT_WINDOW_DAYS,
    default_hours_per_day: float = DEFAULT_OPERATING_HOURS_PER_DAY,
) -> ResourceUsageStats:
    live = [booking for booking in _live(bookings) if booking.resource_id == resource.resource_id]
    total_hours = sum(booking.duration_hours for booking in live)

    start_hours = Counter(booking.start.strftime("%H:00") for booking in live)
    popular = sorted(start_hours.items(), key=lambda item: (-item[1], item[0]))[:POPULAR_SLOT_LIMIT]

    months: dict[str, dict] = defaultdict(lambda: {"count": 0, "hours": 0.0})
    for booking in live:
        bucket = months[booking.start.strftime("%Y-%m")]
        bucket["count"] += 1
        bucket["hours"] += booking.duration_hours

    return ResourceUsageStats(
        resource_id=resource.resource_id,
        total_bookings=len(live),
        total_hours=round(total_hours, 2),
        utilization_rate=utilization_rate([resource], live, now, window_days, default_hours_per_day),
        average_booking_duration=round(total_hours / len(live), 2) if live else 0.0,
        revenue=float(sum(booking.cost or 0 for booking in live)),
        maintenance_cost=float(
            sum(schedule.cost or 0 for schedule in schedules if schedule.resource_id == resource.resource_id)
        ),
        popular_time_slots=[{"time": time_label, "count": count} for time_label, count in popular],
        bookings_by_month=[
            {"month": month, "count": bucket["count"], "hours": round(bucket["hours"], 2)}
            for month, bucket in sorted(months.items())
        ],
    )
