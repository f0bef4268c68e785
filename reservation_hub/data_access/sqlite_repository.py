"""SQLite implementation of the reservation repository."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Iterator, Optional, Sequence

from ..models.entities import Booking, MaintenanceSchedule, RecurrenceRule, Resource
from .db import execute, immediate_transaction, query_all, query_one
from .repository import ReservationRepository

_RESOURCE_COLUMNS = (
    "org_id",
    "name",
    "description",
    "subcategory",
    "category",
    "resource_type",
    "status",
    "condition",
    "location",
    "capacity",
    "quantity",
    "purchase_date",
    "purchase_price",
    "current_value",
    "warranty_expiry",
    "operating_hours_per_day",
    "specifications",
    "tags",
    "created_by",
    "created_at",
    "updated_at",
)

_BOOKING_COLUMNS = (
    "resource_id",
    "series_id",
    "title",
    "description",
    "purpose",
    "booked_by",
    "booked_for",
    "start_datetime",
    "end_datetime",
    "status",
    "attendee_count",
    "quantity",
    "cost",
    "contact_name",
    "contact_email",
    "contact_phone",
    "setup_requirements",
    "special_instructions",
    "approved_by",
    "approved_at",
    "recurrence",
    "created_at",
    "updated_at",
)

_SCHEDULE_COLUMNS = (
    "resource_id",
    "schedule_type",
    "title",
    "description",
    "frequency",
    "next_due",
    "last_completed",
    "assigned_to",
    "estimated_duration",
    "cost",
    "priority",
)


def _parse(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(str(value).replace(" ", "T"))


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _format(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _row_to_resource(row) -> Resource:
    return Resource(
        resource_id=row["resource_id"],
        org_id=row["org_id"],
        name=row["name"],
        description=row["description"],
        subcategory=row["subcategory"],
        category=row["category"],
        resource_type=row["resource_type"],
        status=row["status"],
        condition=row["condition"],
        location=row["location"],
        capacity=row["capacity"],
        quantity=row["quantity"],
        purchase_date=_parse_date(row["purchase_date"]),
        purchase_price=row["purchase_price"],
        current_value=row["current_value"],
        warranty_expiry=_parse_date(row["warranty_expiry"]),
        operating_hours_per_day=row["operating_hours_per_day"],
        specifications=json.loads(row["specifications"] or "{}"),
        tags=json.loads(row["tags"] or "[]"),
        created_by=row["created_by"],
        created_at=_parse(row["created_at"]),
        updated_at=_parse(row["updated_at"]),
    )


def _row_to_booking(row, conflicts: Optional[set[int]] = None) -> Booking:
    recurrence = row["recurrence"]
    return Booking(
        booking_id=row["booking_id"],
        resource_id=row["resource_id"],
        series_id=row["series_id"],
        title=row["title"],
        description=row["description"],
        purpose=row["purpose"],
        booked_by=row["booked_by"],
        booked_for=row["booked_for"],
        start=_parse(row["start_datetime"]),
        end=_parse(row["end_datetime"]),
        status=row["status"],
        attendee_count=row["attendee_count"],
        quantity=row["quantity"],
        cost=row["cost"],
        contact_name=row["contact_name"],
        contact_email=row["contact_email"],
        contact_phone=row["contact_phone"],
        setup_requirements=json.loads(row["setup_requirements"] or "[]"),
        special_instructions=row["special_instructions"],
        approved_by=row["approved_by"],
        approved_at=_parse(row["approved_at"]),
        recurrence=RecurrenceRule.from_dict(json.loads(recurrence)) if recurrence else None,
        conflicts_with=set(conflicts or ()),
        created_at=_parse(row["created_at"]),
        updated_at=_parse(row["updated_at"]),
    )


def _row_to_schedule(row) -> MaintenanceSchedule:
    return MaintenanceSchedule(
        schedule_id=row["schedule_id"],
        resource_id=row["resource_id"],
        schedule_type=row["schedule_type"],
        title=row["title"],
        description=row["description"],
        frequency=row["frequency"],
        next_due=_parse(row["next_due"]),
        last_completed=_parse(row["last_completed"]),
        assigned_to=row["assigned_to"],
        estimated_duration=row["estimated_duration"],
        cost=row["cost"],
        priority=row["priority"],
    )


def _resource_values(resource: Resource) -> list[Any]:
    return [
        resource.org_id,
        resource.name,
        resource.description,
        resource.subcategory,
        resource.category,
        resource.resource_type,
        resource.status,
        resource.condition,
        resource.location,
        resource.capacity,
        resource.quantity,
        _format(resource.purchase_date),
        resource.purchase_price,
        resource.current_value,
        _format(resource.warranty_expiry),
        resource.operating_hours_per_day,
        json.dumps(resource.specifications, sort_keys=True),
        json.dumps(list(resource.tags)),
        resource.created_by,
        _format(resource.created_at),
        _format(resource.updated_at),
    ]


def _booking_values(booking: Booking) -> list[Any]:
    return [
        booking.resource_id,
        booking.series_id,
        booking.title,
        booking.description,
        booking.purpose,
        booking.booked_by,
        booking.booked_for,
        _format(booking.start),
        _format(booking.end),
        booking.status,
        booking.attendee_count,
        booking.quantity,
        booking.cost,
        booking.contact_name,
        booking.contact_email,
        booking.contact_phone,
        json.dumps(list(booking.setup_requirements)),
        booking.special_instructions,
        booking.approved_by,
        _format(booking.approved_at),
        json.dumps(booking.recurrence.to_dict()) if booking.recurrence else None,
        _format(booking.created_at),
        _format(booking.updated_at),
    ]


def _schedule_values(schedule: MaintenanceSchedule) -> list[Any]:
    return [
        schedule.resource_id,
        schedule.schedule_type,
        schedule.title,
        schedule.description,
        schedule.frequency,
        _format(schedule.next_due),
        _format(schedule.last_completed),
        schedule.assigned_to,
        schedule.estimated_duration,
        schedule.cost,
        schedule.priority,
    ]


def _insert_sql(table: str, columns: Sequence[str]) -> str:
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"


def _update_sql(table: str, columns: Sequence[str], key: str) -> str:
    assignments = ", ".join(f"{column} = ?" for column in columns)
    return f"UPDATE {table} SET {assignments} WHERE {key} = ?"


class SqliteRepository(ReservationRepository):
    """Repository over a ``sqlite3`` connection.

    Outside ``atomic`` every write commits immediately. Inside it, the block
    runs in a ``BEGIN IMMEDIATE`` transaction so a conflict check and the
    insert it guards are serialized against other connections to the same
    database file.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self.db = connection
        self._depth = 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if self._depth:
            yield
            return
        self._depth = 1
        try:
            with immediate_transaction(self.db):
                yield
        finally:
            self._depth = 0

    def _write(self, query: str, params: Sequence[Any]) -> sqlite3.Cursor:
        return execute(self.db, query, params, commit=not self._depth)

    # Resources

    def add_resource(self, resource: Resource) -> Resource:
        cursor = self._write(_insert_sql("resources", _RESOURCE_COLUMNS), _resource_values(resource))
        return self.get_resource(cursor.lastrowid)

    def get_resource(self, resource_id: int) -> Optional[Resource]:
        row = query_one(self.db, "SELECT * FROM resources WHERE resource_id = ?", (resource_id,))
        return _row_to_resource(row) if row else None

    def save_resource(self, resource: Resource) -> None:
        self._write(
            _update_sql("resources", _RESOURCE_COLUMNS, "resource_id"),
            _resource_values(resource) + [resource.resource_id],
        )

    def delete_resource(self, resource_id: int) -> None:
        self._write("DELETE FROM resources WHERE resource_id = ?", (resource_id,))

    def list_resources(self, org_id: Optional[str] = None) -> list[Resource]:
        if org_id is None:
            rows = query_all(self.db, "SELECT * FROM resources ORDER BY resource_id")
        else:
            rows = query_all(
                self.db,
                "SELECT * FROM resources WHERE org_id = ? ORDER BY resource_id",
                (org_id,),
            )
        return [_row_to_resource(row) for row in rows]

    # Bookings

    def _conflicts_for(self, booking_ids: Sequence[int]) -> dict[int, set[int]]:
        conflicts: dict[int, set[int]] = {booking_id: set() for booking_id in booking_ids}
        if not booking_ids:
            return conflicts
        placeholders = ", ".join("?" for _ in booking_ids)
        rows = query_all(
            self.db,
            f"SELECT booking_id, conflicting_id FROM booking_conflicts WHERE booking_id IN ({placeholders})",
            list(booking_ids),
        )
        for row in rows:
            conflicts[row["booking_id"]].add(row["conflicting_id"])
        return conflicts

    def _write_conflicts(self, booking: Booking) -> None:
        self._write("DELETE FROM booking_conflicts WHERE booking_id = ?", (booking.booking_id,))
        for other_id in sorted(booking.conflicts_with):
            self._write(
                "INSERT INTO booking_conflicts (booking_id, conflicting_id) VALUES (?, ?)",
                (booking.booking_id, other_id),
            )

    def add_booking(self, booking: Booking) -> Booking:
        cursor = self._write(_insert_sql("bookings", _BOOKING_COLUMNS), _booking_values(booking))
        booking_id = cursor.lastrowid
        if booking.conflicts_with:
            stored = self.get_booking(booking_id)
            stored.conflicts_with = set(booking.conflicts_with)
            self._write_conflicts(stored)
        return self.get_booking(booking_id)

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        row = query_one(self.db, "SELECT * FROM bookings WHERE booking_id = ?", (booking_id,))
        if not row:
            return None
        return _row_to_booking(row, self._conflicts_for([booking_id])[booking_id])

    def save_booking(self, booking: Booking) -> None:
        self._write(
            _update_sql("bookings", _BOOKING_COLUMNS, "booking_id"),
            _booking_values(booking) + [booking.booking_id],
        )
        self._write_conflicts(booking)

    def list_bookings(self, resource_id: Optional[int] = None) -> list[Booking]:
        if resource_id is None:
            rows = query_all(self.db, "SELECT * FROM bookings ORDER BY start_datetime, booking_id")
        else:
            rows = query_all(
                self.db,
                "SELECT * FROM bookings WHERE resource_id = ? ORDER BY start_datetime, booking_id",
                (resource_id,),
            )
        conflicts = self._conflicts_for([row["booking_id"] for row in rows])
        return [_row_to_booking(row, conflicts[row["booking_id"]]) for row in rows]

    def delete_bookings_for_resource(self, resource_id: int) -> int:
        cursor = self._write("DELETE FROM bookings WHERE resource_id = ?", (resource_id,))
        return cursor.rowcount

    # Maintenance schedules

    def add_schedule(self, schedule: MaintenanceSchedule) -> MaintenanceSchedule:
        cursor = self._write(_insert_sql("maintenance_schedules", _SCHEDULE_COLUMNS), _schedule_values(schedule))
        return self.get_schedule(cursor.lastrowid)

    def get_schedule(self, schedule_id: int) -> Optional[MaintenanceSchedule]:
        row = query_one(self.db, "SELECT * FROM maintenance_schedules WHERE schedule_id = ?", (schedule_id,))
        return _row_to_schedule(row) if row else None

    def save_schedule(self, schedule: MaintenanceSchedule) -> None:
        self._write(
            _update_sql("maintenance_schedules", _SCHEDULE_COLUMNS, "schedule_id"),
            _schedule_values(schedule) + [schedule.schedule_id],
        )

    def list_schedules(self, resource_id: Optional[int] = None) -> list[MaintenanceSchedule]:
        if resource_id is None:
            rows = query_all(self.db, "SELECT * FROM maintenance_schedules ORDER BY next_due, schedule_id")
        else:
            rows = query_all(
                self.db,
                "SELECT * FROM maintenance_schedules WHERE resource_id = ? ORDER BY next_due, schedule_id",
                (resource_id,),
            )
        return [_row_to_schedule(row) for row in rows]

    def delete_schedules_for_resource(self, resource_id: int) -> int:
        cursor = self._write("DELETE FROM maintenance_schedules WHERE resource_id = ?", (resource_id,))
        return cursor.rowcount
