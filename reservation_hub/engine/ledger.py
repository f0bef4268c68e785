"""Booking ledger: reservations, their lifecycle and their conflict graph."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional

from ..data_access.repository import ReservationRepository
from ..models.entities import BOOKING_STATUSES, BOOKING_TRANSITIONS, Booking, RecurrenceRule, Resource
from .catalog import ResourceCatalog
from .conflicts import find_conflicts, intervals_overlap
from .errors import BookingConflict, CapacityExceeded, NotFound, ValidationError
from .locks import ResourceLocks
from .recurrence import DEFAULT_MAX_OCCURRENCES, expand

logger = logging.getLogger(__name__)

CONFLICT_POLICIES = ("flag", "reject")
CREATABLE_STATUSES = ("pending", "confirmed")

_DETAIL_FIELDS = (
    "description",
    "purpose",
    "booked_for",
    "attendee_count",
    "quantity",
    "cost",
    "contact_name",
    "contact_email",
    "contact_phone",
    "setup_requirements",
    "special_instructions",
)
_REQUIRED_FIELDS = ("resource_id", "title", "start", "end", "status")
_MUTABLE_FIELDS = set(_DETAIL_FIELDS) | set(_REQUIRED_FIELDS) | {"approved_by"}
_RESOURCE_SENSITIVE = {"resource_id", "start", "end", "attendee_count", "quantity"}


def _validate_interval(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is None or end is None:
        raise ValidationError("Bookings need both a start and an end time.")
    if start >= end:
        raise ValidationError("Start time must be before end time.")


def _validate_amounts(booking: Booking) -> None:
    for label in ("attendee_count", "quantity", "cost"):
        value = getattr(booking, label)
        if value is not None and value < 0:
            raise ValidationError(f"Booking {label} cannot be negative.")


class BookingLedger:
    """Stores bookings and keeps every booking's conflict set symmetric.

    All writes for a resource run under that resource's lock inside one
    repository transaction, so the conflict check and the insert or update it
    guards are observed together by other writers.
    """

    def __init__(
        self,
        repository: ReservationRepository,
        catalog: ResourceCatalog,
        locks: ResourceLocks,
        clock: Callable[[], datetime],
        conflict_policy: str = "flag",
        max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    ) -> None:
        if conflict_policy not in CONFLICT_POLICIES:
            raise ValueError(f"Unknown conflict policy '{conflict_policy}'.")
        self._repository = repository
        self._catalog = catalog
        self._locks = locks
        self._clock = clock
        self.conflict_policy = conflict_policy
        self.max_occurrences = max_occurrences

    # Helpers

    def _check_resource(self, booking: Booking) -> Resource:
        resource = self._catalog.get(booking.resource_id)
        if not resource.is_bookable:
            raise ValidationError(f"Resource {resource.resource_id} is {resource.status} and cannot be booked.")
        if booking.attendee_count is not None and resource.capacity is not None:
            if booking.attendee_count > resource.capacity:
                raise CapacityExceeded(
                    f"{booking.attendee_count} attendees exceed the capacity of {resource.capacity} "
                    f"for {resource.name}."
                )
        if booking.quantity is not None and resource.quantity is not None:
            if booking.quantity > resource.quantity:
                raise CapacityExceeded(
                    f"Requested {booking.quantity} units but only {resource.quantity} of {resource.name} exist."
                )
        return resource

    def _enforce_policy(self, booking: Booking, conflicts: list[Booking]) -> None:
        if not conflicts:
            return
        conflict_ids = [conflict.booking_id for conflict in conflicts]
        if self.conflict_policy == "reject":
            raise BookingConflict(booking.resource_id, conflict_ids)
        logger.warning(
            "Booking '%s' on resource %s overlaps bookings %s",
            booking.title,
            booking.resource_id,
            conflict_ids,
        )

    def _insert(self, draft: Booking, existing: list[Booking]) -> Booking:
        """Add ``draft`` and link it with the live bookings it overlaps.

        Partners found in ``existing`` are updated in place so callers
        inserting several bookings in one transaction keep a current view.
        """

        conflicts = find_conflicts(existing, draft.resource_id, draft.start, draft.end)
        self._enforce_policy(draft, conflicts)
        draft.conflicts_with = {conflict.booking_id for conflict in conflicts}
        stored = self._repository.add_booking(draft)
        for partner in conflicts:
            partner.conflicts_with.add(stored.booking_id)
            self._repository.save_booking(partner)
        existing.append(stored)
        return stored

    def _relink(self, booking: Booking) -> None:
        """Recompute the conflict set of a changed booking and of its partners."""

        previous = set(booking.conflicts_with)
        if booking.is_cancelled:
            conflicts: list[Booking] = []
        else:
            conflicts = find_conflicts(
                self._repository.list_bookings(booking.resource_id),
                booking.resource_id,
                booking.start,
                booking.end,
                exclude_ids=(booking.booking_id,),
            )
            self._enforce_policy(booking, conflicts)
        current = {conflict.booking_id for conflict in conflicts}
        booking.conflicts_with = current
        self._repository.save_booking(booking)

        for partner_id in sorted(previous - current):
            partner = self._repository.get_booking(partner_id)
            if partner is not None and booking.booking_id in partner.conflicts_with:
                partner.conflicts_with.discard(booking.booking_id)
                self._repository.save_booking(partner)
        for partner in conflicts:
            if booking.booking_id not in partner.conflicts_with:
                partner.conflicts_with.add(booking.booking_id)
                self._repository.save_booking(partner)

    def _draft(
        self,
        resource_id: int,
        title: str,
        start: datetime,
        end: datetime,
        booked_by: str,
        status: str,
        details: dict,
        approved_by: Optional[str] = None,
    ) -> Booking:
        unknown = set(details) - set(_DETAIL_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown booking fields: {', '.join(sorted(unknown))}.")
        if not title or not title.strip():
            raise ValidationError("Booking title is required.")
        if not booked_by:
            raise ValidationError("Bookings must record who booked them.")
        if status not in CREATABLE_STATUSES:
            raise ValidationError(f"New bookings must be {' or '.join(CREATABLE_STATUSES)}.")
        if approved_by and status != "confirmed":
            raise ValidationError("Only confirmed bookings record an approver.")
        _validate_interval(start, end)
        now = self._clock()
        draft = Booking(
            booking_id=0,
            resource_id=resource_id,
            title=title.strip(),
            start=start,
            end=end,
            status=status,
            booked_by=booked_by,
            approved_by=approved_by if status == "confirmed" else None,
            approved_at=now if status == "confirmed" else None,
            created_at=now,
            updated_at=now,
            **details,
        )
        draft.setup_requirements = list(draft.setup_requirements or [])
        _validate_amounts(draft)
        return draft

    # Operations

    def create(
        self,
        resource_id: int,
        title: str,
        start: datetime,
        end: datetime,
        booked_by: str,
        status: str = "pending",
        approved_by: Optional[str] = None,
        **details,
    ) -> Booking:
        """Reserve a resource; overlaps are recorded or rejected per policy."""

        draft = self._draft(resource_id, title, start, end, booked_by, status, details, approved_by)
        with self._locks.hold(resource_id), self._repository.atomic():
            self._check_resource(draft)
            existing = self._repository.list_bookings(resource_id)
            booking = self._insert(draft, existing)
        logger.info(
            "Created booking %s on resource %s from %s to %s",
            booking.booking_id,
            resource_id,
            start.isoformat(),
            end.isoformat(),
        )
        return booking

    def create_series(
        self,
        resource_id: int,
        title: str,
        start: datetime,
        end: datetime,
        booked_by: str,
        recurrence: RecurrenceRule,
        until: Optional[date] = None,
        count: Optional[int] = None,
        status: str = "pending",
        approved_by: Optional[str] = None,
        **details,
    ) -> list[Booking]:
        """Materialize a recurring reservation as independent bookings.

        The first occurrence is the series head and carries the rule; every
        occurrence, the head included, has ``series_id`` pointing at the head.
        Under the reject policy any overlap aborts the whole series.
        """

        template = self._draft(resource_id, title, start, end, booked_by, status, details, approved_by)
        intervals = expand(recurrence, start, end, until=until, count=count, max_occurrences=self.max_occurrences)
        if not intervals:
            raise ValidationError("The recurrence produces no occurrences within its horizon.")

        created: list[Booking] = []
        with self._locks.hold(resource_id), self._repository.atomic():
            self._check_resource(template)
            existing = self._repository.list_bookings(resource_id)
            for occurrence_start, occurrence_end in intervals:
                draft = replace(
                    template,
                    start=occurrence_start,
                    end=occurrence_end,
                    recurrence=None if created else recurrence,
                    series_id=created[0].booking_id if created else None,
                    conflicts_with=set(),
                )
                stored = self._insert(draft, existing)
                if not created:
                    stored.series_id = stored.booking_id
                    self._repository.save_booking(stored)
                created.append(stored)
        logger.info(
            "Created %d-occurrence %s series %s on resource %s",
            len(created),
            recurrence.frequency,
            created[0].booking_id,
            resource_id,
        )
        return created

    def get(self, booking_id: int) -> Booking:
        booking = self._repository.get_booking(booking_id)
        if booking is None:
            raise NotFound("Booking", booking_id)
        return booking

    def update(self, booking_id: int, **changes) -> Booking:
        """Apply a partial change, e.g. a reschedule or a status transition."""

        unknown = set(changes) - _MUTABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update booking fields: {', '.join(sorted(unknown))}.")
        cleared = [name for name in _REQUIRED_FIELDS if name in changes and changes[name] is None]
        if cleared:
            raise ValidationError(f"Booking {', '.join(cleared)} cannot be cleared.")
        approver = changes.pop("approved_by", None) or None
        current = self.get(booking_id)
        target_resource = changes.get("resource_id", current.resource_id)
        with self._locks.hold(current.resource_id, target_resource), self._repository.atomic():
            booking = self.get(booking_id)
            if not BOOKING_TRANSITIONS[booking.status]:
                raise ValidationError(f"Booking {booking_id} is {booking.status} and cannot be changed.")
            new_status = changes.get("status", booking.status)
            if new_status not in BOOKING_STATUSES:
                raise ValidationError(f"Unknown booking status '{new_status}'.")
            if new_status != booking.status and new_status not in BOOKING_TRANSITIONS[booking.status]:
                raise ValidationError(f"Booking {booking_id} cannot move from {booking.status} to {new_status}.")
            approving = booking.status == "pending" and new_status == "confirmed"
            if approver and not approving:
                raise ValidationError("An approver can only be recorded when confirming a pending booking.")
            if "title" in changes and not (changes["title"] or "").strip():
                raise ValidationError("Booking title is required.")

            for key, value in changes.items():
                setattr(booking, key, value)
            if approving:
                booking.approved_by = approver
                booking.approved_at = self._clock()
            if booking.setup_requirements is None:
                booking.setup_requirements = []
            _validate_interval(booking.start, booking.end)
            _validate_amounts(booking)
            if _RESOURCE_SENSITIVE & set(changes):
                self._check_resource(booking)
            booking.updated_at = self._clock()
            self._relink(booking)
        logger.info("Updated booking %s: %s", booking_id, ", ".join(sorted(changes)) or "no changes")
        return booking

    def cancel(self, booking_id: int) -> Booking:
        """Mark a booking cancelled; it stays in the ledger for history."""

        current = self.get(booking_id)
        if current.is_cancelled:
            return current
        with self._locks.hold(current.resource_id), self._repository.atomic():
            booking = self.get(booking_id)
            if booking.is_cancelled:
                return booking
            if "cancelled" not in BOOKING_TRANSITIONS[booking.status]:
                raise ValidationError(f"Booking {booking_id} is {booking.status} and cannot be cancelled.")
            released = sorted(booking.conflicts_with)
            booking.status = "cancelled"
            booking.updated_at = self._clock()
            self._relink(booking)
        logger.info("Cancelled booking %s; released conflicts with %s", booking_id, released)
        return booking

    def list_by_resource(
        self,
        resource_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Booking]:
        """Bookings on a resource whose interval intersects ``[start, end)``."""

        self._catalog.get(resource_id)
        bookings = self._repository.list_bookings(resource_id)
        if start is not None or end is not None:
            lower = start or datetime.min
            upper = end or datetime.max
            bookings = [booking for booking in bookings if intervals_overlap(booking.start, booking.end, lower, upper)]
        bookings.sort(key=lambda booking: (booking.start, booking.booking_id))
        return bookings

    def list(
        self,
        resource_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        status: Optional[str] = None,
        booked_by: Optional[str] = None,
        series_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Booking], int]:
        """Filter bookings and return one page sorted by start, plus the total."""

        bookings = self._repository.list_bookings(resource_id)
        if start_date is not None:
            bookings = [booking for booking in bookings if booking.start >= start_date]
        if end_date is not None:
            bookings = [booking for booking in bookings if booking.end <= end_date]
        if status:
            bookings = [booking for booking in bookings if booking.status == status]
        if booked_by:
            bookings = [booking for booking in bookings if booking.booked_by == booked_by]
        if series_id is not None:
            bookings = [booking for booking in bookings if booking.series_id == series_id]
        bookings.sort(key=lambda booking: (booking.start, booking.booking_id))
        total = len(bookings)
        return bookings[offset : offset + limit], total
