"""Storage interface consumed by the reservation engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional

from ..models.entities import Booking, MaintenanceSchedule, Resource


class ReservationRepository(ABC):
    """Persistence boundary for resources, bookings and maintenance schedules.

    Entities handed out are detached copies: mutating one has no effect until
    it is passed back to a ``save_*`` method. Ids are assigned by the
    repository on ``add_*``; the id attribute of the passed entity is ignored.
    """

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Group writes so they commit together or not at all."""

    # Resources

    @abstractmethod
    def add_resource(self, resource: Resource) -> Resource: ...

    @abstractmethod
    def get_resource(self, resource_id: int) -> Optional[Resource]: ...

    @abstractmethod
    def save_resource(self, resource: Resource) -> None: ...

    @abstractmethod
    def delete_resource(self, resource_id: int) -> None: ...

    @abstractmethod
    def list_resources(self, org_id: Optional[str] = None) -> list[Resource]: ...

    # Bookings

    @abstractmethod
    def add_booking(self, booking: Booking) -> Booking: ...

    @abstractmethod
    def get_booking(self, booking_id: int) -> Optional[Booking]: ...

    @abstractmethod
    def save_booking(self, booking: Booking) -> None: ...

    @abstractmethod
    def list_bookings(self, resource_id: Optional[int] = None) -> list[Booking]: ...

    @abstractmethod
    def delete_bookings_for_resource(self, resource_id: int) -> int: ...

    # Maintenance schedules

    @abstractmethod
    def add_schedule(self, schedule: MaintenanceSchedule) -> MaintenanceSchedule: ...

    @abstractmethod
    def get_schedule(self, schedule_id: int) -> Optional[MaintenanceSchedule]: ...

    @abstractmethod
    def save_schedule(self, schedule: MaintenanceSchedule) -> None: ...

    @abstractmethod
    def list_schedules(self, resource_id: Optional[int] = None) -> list[MaintenanceSchedule]: ...

    @abstractmethod
    def delete_schedules_for_resource(self, resource_id: int) -> int: ...
