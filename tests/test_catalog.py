"""Resource catalogue, filtering and deletion policy tests."""

from __future__ import annotations

from datetime import datetime

import pytest

from reservation_hub.engine.errors import HasActiveBookings, NotFound, ValidationError


@pytest.fixture()
def catalogue(engine):
    engine.create_resource(
        org_id="1", name="Main Sanctuary", category="facility", location="Main Building", capacity=500, tags=["worship"]
    )
    engine.create_resource(
        org_id="1",
        name="Projector",
        category="technology",
        resource_type="movable_equipment",
        location="Media Closet",
        description="HD projector for the fellowship hall",
        status="maintenance",
    )
    engine.create_resource(org_id="1", name="Church Van", category="vehicle", location="North Parking Lot", capacity=15)
    engine.create_resource(org_id="2", name="Annex", category="facility", location="Main Building")
    return engine


def _names(resources):
    return [resource.name for resource in resources]


def test_filters_by_org_category_and_status(catalogue):
    resources, total = catalogue.list_resources(org_id="1")
    assert total == 3
    assert _names(resources) == ["Church Van", "Main Sanctuary", "Projector"]

    resources, _ = catalogue.list_resources(org_id="1", category="facility")
    assert _names(resources) == ["Main Sanctuary"]

    resources, _ = catalogue.list_resources(status="maintenance")
    assert _names(resources) == ["Projector"]


def test_location_and_search_term_are_case_insensitive(catalogue):
    resources, _ = catalogue.list_resources(location="main building")
    assert _names(resources) == ["Annex", "Main Sanctuary"]

    resources, _ = catalogue.list_resources(search_term="FELLOWSHIP")
    assert _names(resources) == ["Projector"]

    resources, _ = catalogue.list_resources(search_term="worship")
    assert _names(resources) == ["Main Sanctuary"]


def test_pagination_reports_total(catalogue):
    resources, total = catalogue.list_resources(limit=2, offset=1)

    assert total == 4
    assert _names(resources) == ["Church Van", "Main Sanctuary"]


def test_update_and_validation(engine, hall):
    updated = engine.update_resource(hall.resource_id, condition="fair", capacity=180, tags=["meals"])

    assert updated.condition == "fair"
    assert updated.capacity == 180
    assert engine.get_resource(hall.resource_id).tags == ["meals"]
    with pytest.raises(ValidationError):
        engine.update_resource(hall.resource_id, category="spaceship")
    with pytest.raises(ValidationError):
        engine.update_resource(hall.resource_id, org_id="2")
    with pytest.raises(ValidationError):
        engine.create_resource(org_id="1", name="  ", category="facility", location="Wing")
    with pytest.raises(NotFound):
        engine.update_resource(999, name="Nowhere")


def test_cascade_delete_removes_bookings_and_schedules(engine, hall):
    booking = engine.create_booking(
        resource_id=hall.resource_id,
        title="Potluck",
        start=datetime(2024, 11, 8, 18),
        end=datetime(2024, 11, 8, 20),
        booked_by="hospitality",
    )
    engine.create_maintenance_schedule(
        resource_id=hall.resource_id,
        schedule_type="weekly",
        title="Floor polish",
        next_due=datetime(2024, 11, 5, 9),
    )

    engine.delete_resource(hall.resource_id)

    with pytest.raises(NotFound):
        engine.get_resource(hall.resource_id)
    with pytest.raises(NotFound):
        engine.get_booking(booking.booking_id)
    assert engine.list_maintenance_schedules() == []


def test_guard_policy_blocks_delete_with_live_bookings(strict_engine):
    hall = strict_engine.create_resource(org_id="1", name="Hall", category="facility", location="Wing")
    booking = strict_engine.create_booking(
        resource_id=hall.resource_id,
        title="Potluck",
        start=datetime(2024, 11, 8, 18),
        end=datetime(2024, 11, 8, 20),
        booked_by="hospitality",
    )

    with pytest.raises(HasActiveBookings) as excinfo:
        strict_engine.delete_resource(hall.resource_id)
    assert excinfo.value.booking_ids == [booking.booking_id]
    assert strict_engine.get_resource(hall.resource_id).name == "Hall"

    strict_engine.delete_resource(hall.resource_id, force=True)
    with pytest.raises(NotFound):
        strict_engine.get_resource(hall.resource_id)


def test_guard_policy_allows_delete_after_cancellation(strict_engine):
    hall = strict_engine.create_resource(org_id="1", name="Hall", category="facility", location="Wing")
    booking = strict_engine.create_booking(
        resource_id=hall.resource_id,
        title="Potluck",
        start=datetime(2024, 11, 8, 18),
        end=datetime(2024, 11, 8, 20),
        booked_by="hospitality",
    )
    strict_engine.cancel_booking(booking.booking_id)

    strict_engine.delete_resource(hall.resource_id)

    assert strict_engine.list_resources()[1] == 0
