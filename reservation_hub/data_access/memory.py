"""Dictionary-backed repository used by tests and embedded callers."""

from __future__ import annotations

import copy
import itertools
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, Optional

from ..models.entities import Booking, MaintenanceSchedule, Resource
from .repository import ReservationRepository


class InMemoryRepository(ReservationRepository):
    """Keeps entities in dicts keyed by id; ``atomic`` rolls back on error."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._resources: dict[int, Resource] = {}
        self._bookings: dict[int, Booking] = {}
        self._schedules: dict[int, MaintenanceSchedule] = {}
        self._resource_ids = itertools.count(1)
        self._booking_ids = itertools.count(1)
        self._schedule_ids = itertools.count(1)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            snapshot = (
                copy.deepcopy(self._resources),
                copy.deepcopy(self._bookings),
                copy.deepcopy(self._schedules),
            )
            try:
                yield
            except BaseException:
                self._resources, self._bookings, self._schedules = snapshot
                raise

    # Resources

    def add_resource(self, resource: Resource) -> Resource:
        with self._lock:
            stored = replace(copy.deepcopy(resource), resource_id=next(self._resource_ids))
            self._resources[stored.resource_id] = stored
            return copy.deepcopy(stored)

    def get_resource(self, resource_id: int) -> Optional[Resource]:
        with self._lock:
            resource = self._resources.get(resource_id)
            return copy.deepcopy(resource) if resource else None

    def save_resource(self, resource: Resource) -> None:
        with self._lock:
            self._resources[resource.resource_id] = copy.deepcopy(resource)

    def delete_resource(self, resource_id: int) -> None:
        with self._lock:
            self._resources.pop(resource_id, None)

    def list_resources(self, org_id: Optional[str] = None) -> list[Resource]:
        with self._lock:
            return [
                copy.deepcopy(resource)
                for resource in self._resources.values()
                if org_id is None or resource.org_id == org_id
            ]

    # Bookings

    def add_booking(self, booking: Booking) -> Booking:
        with self._lock:
            stored = replace(copy.deepcopy(booking), booking_id=next(self._booking_ids))
            self._bookings[stored.booking_id] = stored
            return copy.deepcopy(stored)

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        with self._lock:
            booking = self._bookings.get(booking_id)
            return copy.deepcopy(booking) if booking else None

    def save_booking(self, booking: Booking) -> None:
        with self._lock:
            self._bookings[booking.booking_id] = copy.deepcopy(booking)

    def list_bookings(self, resource_id: Optional[int] = None) -> list[Booking]:
        with self._lock:
            return [
                copy.deepcopy(booking)
                for booking in self._bookings.values()
                if resource_id is None or booking.resource_id == resource_id
            ]

    def delete_bookings_for_resource(self, resource_id: int) -> int:
        with self._lock:
            doomed = [key for key, booking in self._bookings.items() if booking.resource_id == resource_id]
            for key in doomed:
                del self._bookings[key]
            return len(doomed)

    # Maintenance schedules

    def add_schedule(self, schedule: MaintenanceSchedule) -> MaintenanceSchedule:
        with self._lock:
            stored = replace(copy.deepcopy(schedule), schedule_id=next(self._schedule_ids))
            self._schedules[stored.schedule_id] = stored
            return copy.deepcopy(stored)

    def get_schedule(self, schedule_id: int) -> Optional[MaintenanceSchedule]:
        with self._lock:
            schedule = self._schedules.get(schedule_id)
            return copy.deepcopy(schedule) if schedule else None

    def save_schedule(self, schedule: MaintenanceSchedule) -> None:
        with self._lock:
            self._schedules[schedule.schedule_id] = copy.deepcopy(schedule)

    def list_schedules(self, resource_id: Optional[int] = None) -> list[MaintenanceSchedule]:
        with self._lock:
            return [
                copy.deepcopy(schedule)
                for schedule in self._schedules.values()
                if resource_id is None or schedule.resource_id == resource_id
            ]

    def delete_schedules_for_resource(self, resource_id: int) -> int:
        with self._lock:
            doomed = [key for key, schedule in self._schedules.items() if schedule.resource_id == resource_id]
            for key in doomed:
                del self._schedules[key]
            return len(doomed)
