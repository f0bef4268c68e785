"""Preventive maintenance schedules and their due dates."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from ..data_access.repository import ReservationRepository
from ..models.entities import MAINTENANCE_PRIORITIES, MAINTENANCE_TYPES, MaintenanceSchedule
from .catalog import ResourceCatalog
from .errors import NotFound, ValidationError
from .locks import ResourceLocks

logger = logging.getLogger(__name__)


def is_overdue(next_due: datetime, now: datetime) -> bool:
    return next_due < now


def advance_due(next_due: datetime, schedule_type: str, frequency: int) -> datetime:
    """Return ``next_due`` moved forward by one period of the schedule."""

    if schedule_type == "daily":
        return next_due + timedelta(days=frequency)
    if schedule_type == "weekly":
        return next_due + timedelta(weeks=frequency)
    if schedule_type == "monthly":
        return next_due + relativedelta(months=frequency)
    if schedule_type == "quarterly":
        return next_due + relativedelta(months=3 * frequency)
    if schedule_type == "yearly":
        return next_due + relativedelta(years=frequency)
    raise ValidationError(f"Schedules of type '{schedule_type}' have no fixed period.")


class MaintenanceScheduler:
    """Owns maintenance schedules; overdue status is computed when observed."""

    def __init__(
        self,
        repository: ReservationRepository,
        catalog: ResourceCatalog,
        locks: ResourceLocks,
        clock: Callable[[], datetime],
    ) -> None:
        self._repository = repository
        self._catalog = catalog
        self._locks = locks
        self._clock = clock

    def _observed(self, schedule: MaintenanceSchedule, now: datetime) -> MaintenanceSchedule:
        return replace(schedule, is_overdue=is_overdue(schedule.next_due, now))

    def create(
        self,
        resource_id: int,
        schedule_type: str,
        title: str,
        next_due: datetime,
        frequency: int = 1,
        priority: str = "medium",
        description: Optional[str] = None,
        assigned_to: Optional[str] = None,
        estimated_duration: Optional[int] = None,
        cost: Optional[float] = None,
    ) -> MaintenanceSchedule:
        self._catalog.get(resource_id)
        if schedule_type not in MAINTENANCE_TYPES:
            raise ValidationError(f"Unknown maintenance type '{schedule_type}'.")
        if priority not in MAINTENANCE_PRIORITIES:
            raise ValidationError(f"Unknown priority '{priority}'.")
        if not title or not title.strip():
            raise ValidationError("Maintenance title is required.")
        if next_due is None:
            raise ValidationError("Next due date is required.")
        if frequency is None or frequency < 1:
            raise ValidationError("Maintenance frequency must be at least 1.")
        if estimated_duration is not None and estimated_duration < 0:
            raise ValidationError("Estimated duration cannot be negative.")

        schedule = self._repository.add_schedule(
            MaintenanceSchedule(
                schedule_id=0,
                resource_id=resource_id,
                schedule_type=schedule_type,
                title=title.strip(),
                description=description,
                frequency=frequency,
                next_due=next_due,
                priority=priority,
                assigned_to=assigned_to,
                estimated_duration=estimated_duration,
                cost=cost,
            )
        )
        logger.info("Created %s maintenance schedule %s for resource %s", schedule_type, schedule.schedule_id, resource_id)
        return self._observed(schedule, self._clock())

    def get(self, schedule_id: int) -> MaintenanceSchedule:
        schedule = self._repository.get_schedule(schedule_id)
        if schedule is None:
            raise NotFound("Maintenance schedule", schedule_id)
        return self._observed(schedule, self._clock())

    def complete(
        self,
        schedule_id: int,
        completed_at: Optional[datetime] = None,
        next_due: Optional[datetime] = None,
    ) -> MaintenanceSchedule:
        """Record a completed task and roll ``next_due`` forward one period.

        ``as_needed`` schedules have no period, so the caller supplies the
        following due date. An explicit ``next_due`` also overrides the
        computed one for periodic schedules.
        """

        current = self._repository.get_schedule(schedule_id)
        if current is None:
            raise NotFound("Maintenance schedule", schedule_id)
        with self._locks.hold(current.resource_id), self._repository.atomic():
            schedule = self._repository.get_schedule(schedule_id)
            if schedule is None:
                raise NotFound("Maintenance schedule", schedule_id)
            if next_due is None:
                if schedule.schedule_type == "as_needed":
                    raise ValidationError("As-needed maintenance requires the next due date on completion.")
                next_due = advance_due(schedule.next_due, schedule.schedule_type, schedule.frequency)
            schedule.last_completed = completed_at or self._clock()
            schedule.next_due = next_due
            self._repository.save_schedule(schedule)
        logger.info("Completed maintenance schedule %s; next due %s", schedule_id, next_due.isoformat())
        return self._observed(schedule, self._clock())

    def list(self, resource_id: Optional[int] = None) -> list[MaintenanceSchedule]:
        """All schedules, soonest due first, with ``is_overdue`` as of now."""

        if resource_id is not None:
            self._catalog.get(resource_id)
        now = self._clock()
        schedules = self._repository.list_schedules(resource_id)
        schedules.sort(key=lambda schedule: (schedule.next_due, schedule.schedule_id))
        return [self._observed(schedule, now) for schedule in schedules]
