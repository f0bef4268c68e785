"""Overlap detection between bookings on the same resource."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from ..models.entities import Booking


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open intervals overlap; touching endpoints do not."""

    return start_a < end_b and end_a > start_b


def find_conflicts(
    bookings: Iterable[Booking],
    resource_id: int,
    start: datetime,
    end: datetime,
    exclude_ids: Iterable[int] = (),
) -> list[Booking]:
    """Return live bookings on ``resource_id`` that overlap ``[start, end)``.

    Cancelled bookings never participate. Results are ordered by start time,
    then id.
    """

    excluded = set(exclude_ids)
    overlapping = [
        booking
        for booking in bookings
        if booking.resource_id == resource_id
        and booking.booking_id not in excluded
        and not booking.is_cancelled
        and intervals_overlap(start, end, booking.start, booking.end)
    ]
    overlapping.sort(key=lambda booking: (booking.start, booking.booking_id))
    return overlapping
