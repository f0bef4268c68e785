"""Facade exposing the reservation engine's operation set."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Mapping, Optional

from ..data_access.repository import ReservationRepository
from ..models.entities import (
    Booking,
    DayAvailability,
    MaintenanceAlert,
    MaintenanceSchedule,
    RecurrenceRule,
    Resource,
    ResourceSummary,
    ResourceUsageStats,
)
from . import alerts, availability, stats
from .catalog import ResourceCatalog
from .ledger import BookingLedger
from .locks import ResourceLocks
from .maintenance import MaintenanceScheduler, is_overdue
from .recurrence import DEFAULT_MAX_OCCURRENCES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineSettings:
    """Tunable policies and constants of the engine."""

    conflict_policy: str = "flag"
    delete_policy: str = "cascade"
    day_start_hour: int = availability.DEFAULT_DAY_START_HOUR
    day_end_hour: int = availability.DEFAULT_DAY_END_HOUR
    slot_minutes: int = availability.DEFAULT_SLOT_MINUTES
    utilization_window_days: int = stats.DEFAULT_WINDOW_DAYS
    default_operating_hours: float = stats.DEFAULT_OPERATING_HOURS_PER_DAY
    due_soon_days: int = alerts.DEFAULT_DUE_SOON_DAYS
    max_recurrence_occurrences: int = DEFAULT_MAX_OCCURRENCES

    def __post_init__(self) -> None:
        if not 0 <= self.day_start_hour < self.day_end_hour <= 24:
            raise ValueError("Operating day must satisfy 0 <= start hour < end hour <= 24.")
        if self.slot_minutes <= 0:
            raise ValueError("Slot width must be positive.")
        if self.utilization_window_days <= 0 or self.default_operating_hours <= 0:
            raise ValueError("Utilization window and operating hours must be positive.")

    @classmethod
    def from_mapping(cls, config: Mapping) -> "EngineSettings":
        """Build settings from a Flask-style config mapping."""

        return cls(
            conflict_policy=config.get("RESERVATION_CONFLICT_POLICY", "flag"),
            delete_policy=config.get("RESOURCE_DELETE_POLICY", "cascade"),
            day_start_hour=int(config.get("OPERATING_DAY_START_HOUR", availability.DEFAULT_DAY_START_HOUR)),
            day_end_hour=int(config.get("OPERATING_DAY_END_HOUR", availability.DEFAULT_DAY_END_HOUR)),
            slot_minutes=int(config.get("SLOT_MINUTES", availability.DEFAULT_SLOT_MINUTES)),
            utilization_window_days=int(config.get("UTILIZATION_WINDOW_DAYS", stats.DEFAULT_WINDOW_DAYS)),
            default_operating_hours=float(
                config.get("DEFAULT_OPERATING_HOURS_PER_DAY", stats.DEFAULT_OPERATING_HOURS_PER_DAY)
            ),
            due_soon_days=int(config.get("MAINTENANCE_DUE_SOON_DAYS", alerts.DEFAULT_DUE_SOON_DAYS)),
            max_recurrence_occurrences=int(config.get("MAX_RECURRENCE_OCCURRENCES", DEFAULT_MAX_OCCURRENCES)),
        )


class ReservationEngine:
    """Resources, bookings, availability, maintenance and reporting in one place.

    The engine holds no state of its own beyond the repository it wraps and
    the lock registry; pass the same ``locks`` to every engine that shares a
    repository so their writes are serialized per resource.
    """

    def __init__(
        self,
        repository: ReservationRepository,
        settings: Optional[EngineSettings] = None,
        locks: Optional[ResourceLocks] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.repository = repository
        self.settings = settings or EngineSettings()
        self.locks = locks or ResourceLocks()
        self.clock = clock
        self.catalog = ResourceCatalog(repository, self.locks, clock, delete_policy=self.settings.delete_policy)
        self.ledger = BookingLedger(
            repository,
            self.catalog,
            self.locks,
            clock,
            conflict_policy=self.settings.conflict_policy,
            max_occurrences=self.settings.max_recurrence_occurrences,
        )
        self.maintenance = MaintenanceScheduler(repository, self.catalog, self.locks, clock)

    # Resources

    def create_resource(self, **fields) -> Resource:
        return self.catalog.create(**fields)

    def get_resource(self, resource_id: int) -> Resource:
        return self.catalog.get(resource_id)

    def update_resource(self, resource_id: int, **changes) -> Resource:
        return self.catalog.update(resource_id, **changes)

    def delete_resource(self, resource_id: int, force: bool = False) -> None:
        self.catalog.delete(resource_id, force=force)

    def list_resources(self, **filters) -> tuple[list[Resource], int]:
        return self.catalog.list(**filters)

    # Bookings

    def create_booking(self, **fields) -> Booking:
        return self.ledger.create(**fields)

    def create_recurring_booking(
        self,
        recurrence: RecurrenceRule,
        until: Optional[date] = None,
        count: Optional[int] = None,
        **fields,
    ) -> list[Booking]:
        return self.ledger.create_series(recurrence=recurrence, until=until, count=count, **fields)

    def get_booking(self, booking_id: int) -> Booking:
        return self.ledger.get(booking_id)

    def update_booking(self, booking_id: int, **changes) -> Booking:
        return self.ledger.update(booking_id, **changes)

    def cancel_booking(self, booking_id: int) -> Booking:
        return self.ledger.cancel(booking_id)

    def list_bookings(self, **filters) -> tuple[list[Booking], int]:
        return self.ledger.list(**filters)

    def list_bookings_for_resource(
        self,
        resource_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Booking]:
        return self.ledger.list_by_resource(resource_id, start, end)

    # Availability

    def get_availability(self, resource_id: int, day: date) -> DayAvailability:
        self.catalog.get(resource_id)
        result = availability.compute_availability(
            self.repository.list_bookings(resource_id),
            resource_id,
            day,
            start_hour=self.settings.day_start_hour,
            end_hour=self.settings.day_end_hour,
            slot_minutes=self.settings.slot_minutes,
        )
        logger.debug(
            "Availability for resource %s on %s: %d/%d slots free",
            resource_id,
            day.isoformat(),
            sum(slot.is_available for slot in result.time_slots),
            len(result.time_slots),
        )
        return result

    # Maintenance

    def create_maintenance_schedule(self, **fields) -> MaintenanceSchedule:
        return self.maintenance.create(**fields)

    def complete_maintenance(
        self,
        schedule_id: int,
        completed_at: Optional[datetime] = None,
        next_due: Optional[datetime] = None,
    ) -> MaintenanceSchedule:
        return self.maintenance.complete(schedule_id, completed_at=completed_at, next_due=next_due)

    def list_maintenance_schedules(self, resource_id: Optional[int] = None) -> list[MaintenanceSchedule]:
        return self.maintenance.list(resource_id)

    def get_maintenance_alerts(self, org_id: Optional[str] = None) -> list[MaintenanceAlert]:
        resources = {resource.resource_id: resource for resource in self.repository.list_resources(org_id)}
        return alerts.generate_alerts(
            self.repository.list_schedules(),
            resources,
            self.clock(),
            due_soon_days=self.settings.due_soon_days,
        )

    # Reporting

    def get_resource_summary(self, org_id: str) -> ResourceSummary:
        now = self.clock()
        resources = self.repository.list_resources(org_id)
        resource_ids = {resource.resource_id for resource in resources}
        bookings = [booking for booking in self.repository.list_bookings() if booking.resource_id in resource_ids]
        schedules = [
            schedule for schedule in self.repository.list_schedules() if schedule.resource_id in resource_ids
        ]
        return ResourceSummary(
            total_resources=len(resources),
            resources_by_category=stats.count_by(resources, "category"),
            resources_by_status=stats.count_by(resources, "status"),
            total_bookings=len(bookings),
            upcoming_bookings=sum(1 for booking in bookings if booking.start > now and not booking.is_cancelled),
            overdue_maintenance=sum(1 for schedule in schedules if is_overdue(schedule.next_due, now)),
            total_value=float(sum(resource.book_value for resource in resources)),
            utilization_rate=stats.utilization_rate(
                resources,
                bookings,
                now,
                window_days=self.settings.utilization_window_days,
                default_hours_per_day=self.settings.default_operating_hours,
            ),
            revenue_this_month=stats.revenue_this_month(bookings, now),
            maintenance_alerts=alerts.generate_alerts(
                schedules,
                {resource.resource_id: resource for resource in resources},
                now,
                due_soon_days=self.settings.due_soon_days,
            ),
        )

    def get_usage_stats(self, resource_id: int) -> ResourceUsageStats:
        resource = self.catalog.get(resource_id)
        return stats.usage_stats(
            resource,
            self.repository.list_bookings(resource_id),
            self.repository.list_schedules(resource_id),
            self.clock(),
            window_days=self.settings.utilization_window_days,
            default_hours_per_day=self.settings.default_operating_hours,
        )
