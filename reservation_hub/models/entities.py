"""Dataclass-style entity representations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

RESOURCE_CATEGORIES = ("facility", "equipment", "material", "vehicle", "technology", "other")
RESOURCE_TYPES = ("physical_space", "movable_equipment", "consumable", "digital_resource")
RESOURCE_STATUSES = ("available", "in_use", "maintenance", "out_of_order", "retired")
RESOURCE_CONDITIONS = ("excellent", "good", "fair", "poor", "needs_repair")
UNBOOKABLE_STATUSES = ("out_of_order", "retired")

BOOKING_STATUSES = ("pending", "confirmed", "in_progress", "completed", "cancelled")
ACTIVE_BOOKING_STATUSES = ("pending", "confirmed", "in_progress")
BOOKING_TRANSITIONS = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("in_progress", "completed", "cancelled"),
    "in_progress": ("completed", "cancelled"),
    "completed": (),
    "cancelled": (),
}

RECURRENCE_FREQUENCIES = ("daily", "weekly", "monthly", "yearly")

MAINTENANCE_TYPES = ("daily", "weekly", "monthly", "quarterly", "yearly", "as_needed")
MAINTENANCE_PRIORITIES = ("low", "medium", "high", "critical")
PRIORITY_RANK = {"critical": 0, "high": 1, "medium": 2, "low": 3}


@dataclass
class Resource:
    """Bookable asset owned by a church."""

    resource_id: int
    org_id: str
    name: str
    category: str
    resource_type: str
    status: str
    condition: str
    location: str
    description: Optional[str] = None
    subcategory: Optional[str] = None
    capacity: Optional[int] = None
    quantity: Optional[int] = None
    purchase_date: Optional[date] = None
    purchase_price: Optional[float] = None
    current_value: Optional[float] = None
    warranty_expiry: Optional[date] = None
    operating_hours_per_day: Optional[float] = None
    specifications: dict = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_bookable(self) -> bool:
        return self.status not in UNBOOKABLE_STATUSES

    @property
    def book_value(self) -> float:
        return self.current_value or self.purchase_price or 0.0


@dataclass
class RecurrenceRule:
    """Repeat pattern carried by the head booking of a series."""

    frequency: str
    interval: int = 1
    days_of_week: Optional[tuple[int, ...]] = None
    end_date: Optional[date] = None
    occurrences: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "frequency": self.frequency,
            "interval": self.interval,
            "days_of_week": list(self.days_of_week) if self.days_of_week is not None else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "occurrences": self.occurrences,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecurrenceRule":
        days = data.get("days_of_week")
        end_date = data.get("end_date")
        if isinstance(end_date, str):
            end_date = date.fromisoformat(end_date)
        return cls(
            frequency=data["frequency"],
            interval=int(data.get("interval") or 1),
            days_of_week=tuple(int(day) for day in days) if days is not None else None,
            end_date=end_date,
            occurrences=data.get("occurrences"),
        )


@dataclass
class Booking:
    """Reservation of a resource over the half-open interval [start, end)."""

    booking_id: int
    resource_id: int
    title: str
    start: datetime
    end: datetime
    status: str
    booked_by: str
    description: Optional[str] = None
    purpose: Optional[str] = None
    booked_for: Optional[str] = None
    attendee_count: Optional[int] = None
    quantity: Optional[int] = None
    cost: Optional[float] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    setup_requirements: list[str] = field(default_factory=list)
    special_instructions: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    recurrence: Optional[RecurrenceRule] = None
    series_id: Optional[int] = None
    conflicts_with: set[int] = field(default_factory=set)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600


@dataclass
class MaintenanceSchedule:
    """Recurring upkeep task attached to a resource."""

    schedule_id: int
    resource_id: int
    schedule_type: str
    title: str
    frequency: int
    next_due: datetime
    priority: str
    description: Optional[str] = None
    last_completed: Optional[datetime] = None
    assigned_to: Optional[str] = None
    estimated_duration: Optional[int] = None
    cost: Optional[float] = None
    is_overdue: bool = False


@dataclass
class MaintenanceAlert:
    """Derived alert for a schedule that is overdue or due soon."""

    resource_id: int
    resource_name: str
    schedule_id: int
    alert_type: str
    priority: str
    message: str
    due_date: Optional[datetime] = None
    estimated_cost: Optional[float] = None


@dataclass
class TimeSlot:
    """One fixed-width subdivision of an operating day."""

    start_time: str
    end_time: str
    is_available: bool
    booking_id: Optional[int] = None
    booking_ids: list[int] = field(default_factory=list)


@dataclass
class DayAvailability:
    """Slot breakdown of a resource for a single calendar day."""

    resource_id: int
    date: date
    time_slots: list[TimeSlot]
    is_fully_booked: bool
    conflicting_bookings: list[int] = field(default_factory=list)


@dataclass
class ResourceSummary:
    """Organisation-wide resource dashboard figures."""

    total_resources: int
    resources_by_category: list[dict]
    resources_by_status: list[dict]
    total_bookings: int
    upcoming_bookings: int
    overdue_maintenance: int
    total_value: float
    utilization_rate: float
    revenue_this_month: float
    maintenance_alerts: list[MaintenanceAlert] = field(default_factory=list)


@dataclass
class ResourceUsageStats:
    """Usage figures for a single resource."""

    resource_id: int
    total_bookings: int
    total_hours: float
    utilization_rate: float
    average_booking_duration: float
    revenue: float
    maintenance_cost: float
    popular_time_slots: list[dict] = field(default_factory=list)
    bookings_by_month: list[dict] = field(default_factory=list)
