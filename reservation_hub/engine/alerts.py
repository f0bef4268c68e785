"""Maintenance alerts derived from schedule due dates."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Mapping, Optional

from ..models.entities import PRIORITY_RANK, MaintenanceAlert, MaintenanceSchedule, Resource

DEFAULT_DUE_SOON_DAYS = 7


def classify(next_due: datetime, now: datetime, due_soon_days: int = DEFAULT_DUE_SOON_DAYS) -> Optional[str]:
    """Return ``"overdue"``, ``"due_soon"`` or ``None`` for a due date."""

    if next_due < now:
        return "overdue"
    if next_due <= now + timedelta(days=due_soon_days):
        return "due_soon"
    return None


def generate_alerts(
    schedules: Iterable[MaintenanceSchedule],
    resources: Mapping[int, Resource],
    now: datetime,
    due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
) -> list[MaintenanceAlert]:
    """Alerts for schedules whose resource is in ``resources``.

    Ordered by priority (critical first), then by due date.
    """

    alerts = []
    for schedule in schedules:
        resource = resources.get(schedule.resource_id)
        if resource is None:
            continue
        alert_type = classify(schedule.next_due, now, due_soon_days)
        if alert_type is None:
            continue
        wording = "is overdue" if alert_type == "overdue" else "is due soon"
        alerts.append(
            MaintenanceAlert(
                resource_id=resource.resource_id,
                resource_name=resource.name,
                schedule_id=schedule.schedule_id,
                alert_type=alert_type,
                priority=schedule.priority,
                message=f"{schedule.title} {wording}",
                due_date=schedule.next_due,
                estimated_cost=schedule.cost,
            )
        )
    alerts.sort(key=lambda alert: (PRIORITY_RANK[alert.priority], alert.due_date, alert.schedule_id))
    return alerts
