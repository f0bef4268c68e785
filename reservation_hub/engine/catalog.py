"""Catalog of bookable church resources."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional

from ..data_access.repository import ReservationRepository
from ..models.entities import (
    RESOURCE_CATEGORIES,
    RESOURCE_CONDITIONS,
    RESOURCE_STATUSES,
    RESOURCE_TYPES,
    Resource,
)
from .errors import HasActiveBookings, NotFound, ValidationError
from .locks import ResourceLocks

logger = logging.getLogger(__name__)

DELETE_POLICIES = ("cascade", "guard")

_MUTABLE_FIELDS = {
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
}


def _validate(resource: Resource) -> None:
    if not resource.name or not resource.name.strip():
        raise ValidationError("Resource name is required.")
    if not resource.org_id:
        raise ValidationError("Resource must belong to an organisation.")
    if not resource.location:
        raise ValidationError("Resource location is required.")
    choices = (
        ("category", resource.category, RESOURCE_CATEGORIES),
        ("type", resource.resource_type, RESOURCE_TYPES),
        ("status", resource.status, RESOURCE_STATUSES),
        ("condition", resource.condition, RESOURCE_CONDITIONS),
    )
    for label, value, allowed in choices:
        if value not in allowed:
            raise ValidationError(f"Unknown resource {label} '{value}'.")
    for label in ("capacity", "quantity"):
        value = getattr(resource, label)
        if value is not None and value < 0:
            raise ValidationError(f"Resource {label} cannot be negative.")
    hours = resource.operating_hours_per_day
    if hours is not None and not 0 < hours <= 24:
        raise ValidationError("Operating hours per day must be within (0, 24].")
    if resource.purchase_date and resource.warranty_expiry and resource.warranty_expiry < resource.purchase_date:
        raise ValidationError("Warranty cannot expire before the purchase date.")
    if not isinstance(resource.specifications, dict):
        raise ValidationError("Resource specifications must be a mapping of names to values.")


class ResourceCatalog:
    """Create, change, list and remove resources."""

    def __init__(
        self,
        repository: ReservationRepository,
        locks: ResourceLocks,
        clock: Callable[[], datetime],
        delete_policy: str = "cascade",
    ) -> None:
        if delete_policy not in DELETE_POLICIES:
            raise ValueError(f"Unknown resource delete policy '{delete_policy}'.")
        self._repository = repository
        self._locks = locks
        self._clock = clock
        self.delete_policy = delete_policy

    def create(
        self,
        org_id: str,
        name: str,
        category: str,
        location: str,
        resource_type: str = "physical_space",
        status: str = "available",
        condition: str = "good",
        description: Optional[str] = None,
        subcategory: Optional[str] = None,
        capacity: Optional[int] = None,
        quantity: Optional[int] = None,
        purchase_date: Optional[date] = None,
        purchase_price: Optional[float] = None,
        current_value: Optional[float] = None,
        warranty_expiry: Optional[date] = None,
        operating_hours_per_day: Optional[float] = None,
        specifications: Optional[dict] = None,
        tags: Optional[list[str]] = None,
        created_by: Optional[str] = None,
    ) -> Resource:
        now = self._clock()
        resource = Resource(
            resource_id=0,
            org_id=org_id,
            name=(name or "").strip(),
            description=description,
            subcategory=subcategory,
            category=category,
            resource_type=resource_type,
            status=status,
            condition=condition,
            location=location,
            capacity=capacity,
            quantity=quantity,
            purchase_date=purchase_date,
            purchase_price=purchase_price,
            current_value=current_value,
            warranty_expiry=warranty_expiry,
            operating_hours_per_day=operating_hours_per_day,
            specifications={} if specifications is None else specifications,
            tags=list(tags or []),
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        _validate(resource)
        stored = self._repository.add_resource(resource)
        logger.info("Created resource %s (%s) for org %s", stored.resource_id, stored.name, org_id)
        return stored

    def get(self, resource_id: int) -> Resource:
        resource = self._repository.get_resource(resource_id)
        if resource is None:
            raise NotFound("Resource", resource_id)
        return resource

    def update(self, resource_id: int, **changes) -> Resource:
        unknown = set(changes) - _MUTABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update resource fields: {', '.join(sorted(unknown))}.")
        with self._locks.hold(resource_id):
            resource = self.get(resource_id)
            for key, value in changes.items():
                if key == "tags":
                    value = list(value or [])
                elif key == "specifications":
                    value = {} if value is None else value
                setattr(resource, key, value)
            _validate(resource)
            resource.updated_at = self._clock()
            self._repository.save_resource(resource)
        logger.info("Updated resource %s: %s", resource_id, ", ".join(sorted(changes)) or "no changes")
        return resource

    def delete(self, resource_id: int, force: bool = False) -> None:
        """Remove a resource together with its bookings and schedules.

        Under the ``guard`` policy a resource with pending, confirmed or
        in-progress bookings is only removed when ``force`` is set.
        """

        with self._locks.hold(resource_id), self._repository.atomic():
            self.get(resource_id)
            if self.delete_policy == "guard" and not force:
                active = [
                    booking.booking_id
                    for booking in self._repository.list_bookings(resource_id)
                    if booking.is_active
                ]
                if active:
                    raise HasActiveBookings(resource_id, active)
            removed_bookings = self._repository.delete_bookings_for_resource(resource_id)
            removed_schedules = self._repository.delete_schedules_for_resource(resource_id)
            self._repository.delete_resource(resource_id)
        self._locks.forget(resource_id)
        logger.info(
            "Deleted resource %s with %d bookings and %d maintenance schedules",
            resource_id,
            removed_bookings,
            removed_schedules,
        )

    def list(
        self,
        org_id: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        location: Optional[str] = None,
        search_term: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Resource], int]:
        """Filter resources and return one page sorted by name, plus the total."""

        resources = self._repository.list_resources(org_id)
        if category:
            resources = [resource for resource in resources if resource.category == category]
        if status:
            resources = [resource for resource in resources if resource.status == status]
        if location:
            needle = location.lower()
            resources = [resource for resource in resources if needle in resource.location.lower()]
        if search_term:
            term = search_term.lower()
            resources = [
                resource
                for resource in resources
                if term in resource.name.lower()
                or term in (resource.description or "").lower()
                or any(term in tag.lower() for tag in resource.tags)
            ]
        resources.sort(key=lambda resource: (resource.name.lower(), resource.resource_id))
        total = len(resources)
        return resources[offset : offset + limit], total
