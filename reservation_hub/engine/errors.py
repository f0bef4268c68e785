"""Errors raised by the reservation engine."""

from __future__ import annotations

from typing import Iterable


class ReservationError(Exception):
    """Base class for engine errors surfaced to callers."""


class NotFound(ReservationError):
    """Raised when a resource, booking or schedule id is unknown."""

    def __init__(self, kind: str, identifier) -> None:
        super().__init__(f"{kind} {identifier} not found.")
        self.kind = kind
        self.identifier = identifier


class ValidationError(ReservationError, ValueError):
    """Raised for malformed input such as an empty interval or a bad status."""


class CapacityExceeded(ReservationError):
    """Raised when a booking asks for more seats or units than the resource has."""


class HasActiveBookings(ReservationError):
    """Raised by guarded deletion while a resource still has live bookings."""

    def __init__(self, resource_id: int, booking_ids: Iterable[int]) -> None:
        self.resource_id = resource_id
        self.booking_ids = sorted(booking_ids)
        super().__init__(
            f"Resource {resource_id} has active bookings {self.booking_ids}; pass force=True to delete."
        )


class BookingConflict(ReservationError):
    """Raised under the reject policy when a booking overlaps existing ones."""

    def __init__(self, resource_id: int, conflicting_ids: Iterable[int]) -> None:
        self.resource_id = resource_id
        self.conflicting_ids = sorted(conflicting_ids)
        super().__init__(
            f"Booking conflicts with existing reservations {self.conflicting_ids} on resource {resource_id}."
        )
