"""Demo seed data for the church Reservation Hub."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from ..models.entities import RecurrenceRule
from ..services import get_engine

DEMO_ORG_ID = "1"


def _next_weekday(today: datetime, weekday: int) -> datetime:
    """Next date strictly after ``today`` falling on ``weekday`` (Monday=0)."""

    days_ahead = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days_ahead)


def seed() -> dict[str, int]:
    """Populate the database with representative demo records.

    Resources are matched by name. Bookings and maintenance schedules are
    only added for resources this run created, so running the seed again
    leaves existing data untouched and only reports what was added.
    """

    engine = get_engine()
    now = engine.clock().replace(second=0, microsecond=0)
    counts = {"resources": 0, "bookings": 0, "schedules": 0}

    resources = [
        {
            "name": "Main Sanctuary",
            "category": "facility",
            "resource_type": "physical_space",
            "location": "Main Building",
            "subcategory": "worship",
            "description": "Worship space with choir loft and baptistry.",
            "purchase_date": date(1998, 5, 1),
            "capacity": 500,
            "purchase_price": 1_500_000.0,
            "current_value": 1_250_000.0,
            "tags": ["worship", "weddings"],
        },
        {
            "name": "Fellowship Hall",
            "category": "facility",
            "resource_type": "physical_space",
            "location": "Education Wing",
            "description": "Open hall with a serving kitchen for meals and receptions.",
            "capacity": 200,
            "purchase_price": 400_000.0,
            "tags": ["meals", "events"],
        },
        {
            "name": "Sound System",
            "category": "technology",
            "resource_type": "movable_equipment",
            "location": "Sanctuary Booth",
            "description": "Mixing desk, wireless microphones and stage monitors.",
            "quantity": 1,
            "purchase_price": 12_000.0,
            "current_value": 8_000.0,
            "warranty_expiry": date(2027, 1, 31),
            "operating_hours_per_day": 12,
            "specifications": {"channels": "32", "wireless_mics": "8"},
            "tags": ["audio"],
        },
        {
            "name": "Folding Chairs",
            "category": "material",
            "resource_type": "movable_equipment",
            "location": "Storage Room B",
            "quantity": 100,
            "purchase_price": 2_500.0,
        },
        {
            "name": "Church Van",
            "category": "vehicle",
            "resource_type": "movable_equipment",
            "location": "North Parking Lot",
            "description": "Fifteen passenger van for youth trips and outreach.",
            "capacity": 15,
            "purchase_price": 42_000.0,
            "current_value": 30_000.0,
            "operating_hours_per_day": 10,
            "tags": ["transport"],
        },
    ]

    existing, _ = engine.list_resources(org_id=DEMO_ORG_ID, limit=1000)
    by_name = {resource.name: resource for resource in existing}
    created: set[str] = set()
    for fields in resources:
        if fields["name"] in by_name:
            continue
        by_name[fields["name"]] = engine.create_resource(org_id=DEMO_ORG_ID, created_by="Office Administrator", **fields)
        created.add(fields["name"])
    counts["resources"] = len(created)

    sunday = _next_weekday(now, 6).date()
    friday = _next_weekday(now, 4).date()

    if "Main Sanctuary" in created:
        worship = engine.create_recurring_booking(
            recurrence=RecurrenceRule(frequency="weekly", days_of_week=(0,)),
            count=8,
            resource_id=by_name["Main Sanctuary"].resource_id,
            title="Sunday Worship Service",
            start=datetime.combine(sunday, time(10, 0)),
            end=datetime.combine(sunday, time(12, 0)),
            booked_by="Pastor Reed",
            status="confirmed",
            approved_by="Church Office",
            purpose="Weekly worship",
            attendee_count=350,
        )
        counts["bookings"] += len(worship)

    if "Fellowship Hall" in created:
        engine.create_booking(
            resource_id=by_name["Fellowship Hall"].resource_id,
            title="Youth Group Dinner",
            start=datetime.combine(friday, time(18, 0)),
            end=datetime.combine(friday, time(20, 30)),
            booked_by="Jordan Youth Leader",
            purpose="Fellowship meal",
            attendee_count=60,
            cost=150.0,
            contact_name="Jordan Lee",
            contact_email="jordan@example.org",
            setup_requirements=["round tables", "serving line"],
        )
        counts["bookings"] += 1

    schedules = [
        {
            "resource": "Main Sanctuary",
            "schedule_type": "quarterly",
            "title": "HVAC inspection",
            "next_due": now - timedelta(days=3),
            "priority": "high",
            "estimated_duration": 180,
            "cost": 450.0,
            "assigned_to": "Facilities Team",
        },
        {
            "resource": "Sound System",
            "schedule_type": "monthly",
            "title": "Audio system check",
            "next_due": now + timedelta(days=5),
            "priority": "medium",
            "estimated_duration": 60,
            "cost": 0.0,
            "assigned_to": "Media Volunteers",
        },
        {
            "resource": "Church Van",
            "schedule_type": "monthly",
            "frequency": 3,
            "title": "Oil change",
            "next_due": now + timedelta(days=40),
            "priority": "low",
            "cost": 80.0,
        },
    ]
    for row in schedules:
        fields = dict(row)
        resource_name = fields.pop("resource")
        if resource_name not in created:
            continue
        engine.create_maintenance_schedule(resource_id=by_name[resource_name].resource_id, **fields)
        counts["schedules"] += 1

    return counts
