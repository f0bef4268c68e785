"""Slot-by-slot availability of a resource over one operating day."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable

from ..models.entities import Booking, DayAvailability, TimeSlot
from .conflicts import find_conflicts

DEFAULT_DAY_START_HOUR = 6
DEFAULT_DAY_END_HOUR = 22
DEFAULT_SLOT_MINUTES = 60


def operating_window(day: date, start_hour: int, end_hour: int) -> tuple[datetime, datetime]:
    opening = datetime.combine(day, time(hour=start_hour))
    closing = datetime.combine(day, time()) + timedelta(hours=end_hour)
    return opening, closing


def compute_availability(
    bookings: Iterable[Booking],
    resource_id: int,
    day: date,
    start_hour: int = DEFAULT_DAY_START_HOUR,
    end_hour: int = DEFAULT_DAY_END_HOUR,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
) -> DayAvailability:
    """Partition ``day`` into contiguous slots and mark the occupied ones.

    A slot is unavailable when any non-cancelled booking intersects it. The
    reported ``booking_id`` is the earliest-starting of the overlapping
    bookings (lowest id on ties); ``booking_ids`` carries all of them.
    """

    opening, closing = operating_window(day, start_hour, end_hour)
    day_bookings = find_conflicts(bookings, resource_id, opening, closing)
    width = timedelta(minutes=slot_minutes)

    slots: list[TimeSlot] = []
    slot_start = opening
    while slot_start < closing:
        slot_end = min(slot_start + width, closing)
        occupying = find_conflicts(day_bookings, resource_id, slot_start, slot_end)
        slots.append(
            TimeSlot(
                start_time=slot_start.strftime("%H:%M"),
                end_time="24:00" if slot_end.date() > day else slot_end.strftime("%H:%M"),
                is_available=not occupying,
                booking_id=occupying[0].booking_id if occupying else None,
                booking_ids=[booking.booking_id for booking in occupying],
            )
        )
        slot_start = slot_end

    return DayAvailability(
        resource_id=resource_id,
        date=day,
        time_slots=slots,
        is_fully_booked=bool(slots) and all(not slot.is_available for slot in slots),
        conflicting_bookings=[booking.booking_id for booking in day_bookings],
    )
