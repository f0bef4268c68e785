"""Resource catalogue routes."""

from __future__ import annotations

from datetime import date, datetime

from flask import Blueprint, current_app, jsonify, request
from flask_wtf import FlaskForm
from wtforms import DateField, FloatField, IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import InputRequired, Length, NumberRange, Optional

from ..models.entities import RESOURCE_CATEGORIES, RESOURCE_CONDITIONS, RESOURCE_STATUSES, RESOURCE_TYPES
from ..services import get_engine
from .serializers import (
    ListField,
    error_response,
    form_error_response,
    json_formdata,
    submitted_fields,
    to_dict,
)

bp = Blueprint("resources", __name__, url_prefix="/resources")


def _choices(values):
    return [(value, value.replace("_", " ").title()) for value in values]


class ResourceForm(FlaskForm):
    """Payload for registering a new resource."""

    class Meta:
        csrf = False

    org_id = StringField("Organisation", validators=[InputRequired(), Length(max=64)])
    name = StringField("Name", validators=[InputRequired(), Length(max=150)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=2000)])
    category = SelectField("Category", choices=_choices(RESOURCE_CATEGORIES))
    subcategory = StringField("Subcategory", validators=[Optional(), Length(max=100)])
    resource_type = SelectField("Type", choices=_choices(RESOURCE_TYPES), default="physical_space")
    status = SelectField("Status", choices=_choices(RESOURCE_STATUSES), default="available")
    condition = SelectField("Condition", choices=_choices(RESOURCE_CONDITIONS), default="good")
    location = StringField("Location", validators=[InputRequired(), Length(max=150)])
    capacity = IntegerField("Capacity", validators=[Optional(), NumberRange(min=0)])
    quantity = IntegerField("Quantity", validators=[Optional(), NumberRange(min=0)])
    purchase_date = DateField("Purchased on", validators=[Optional()])
    purchase_price = FloatField("Purchase price", validators=[Optional(), NumberRange(min=0)])
    current_value = FloatField("Current value", validators=[Optional(), NumberRange(min=0)])
    warranty_expiry = DateField("Warranty expires", validators=[Optional()])
    operating_hours_per_day = FloatField("Operating hours per day", validators=[Optional(), NumberRange(min=0, max=24)])
    tags = ListField("Tags")
    created_by = StringField("Created by", validators=[Optional(), Length(max=150)])


class ResourceUpdateForm(FlaskForm):
    """Partial update payload; only the keys present in the body are applied."""

    class Meta:
        csrf = False

    name = StringField("Name", validators=[Optional(), Length(max=150)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=2000)])
    category = SelectField("Category", choices=_choices(RESOURCE_CATEGORIES), validate_choice=False)
    subcategory = StringField("Subcategory", validators=[Optional(), Length(max=100)])
    resource_type = SelectField("Type", choices=_choices(RESOURCE_TYPES), validate_choice=False)
    status = SelectField("Status", choices=_choices(RESOURCE_STATUSES), validate_choice=False)
    condition = SelectField("Condition", choices=_choices(RESOURCE_CONDITIONS), validate_choice=False)
    location = StringField("Location", validators=[Optional(), Length(max=150)])
    capacity = IntegerField("Capacity", validators=[Optional(), NumberRange(min=0)])
    quantity = IntegerField("Quantity", validators=[Optional(), NumberRange(min=0)])
    purchase_date = DateField("Purchased on", validators=[Optional()])
    purchase_price = FloatField("Purchase price", validators=[Optional(), NumberRange(min=0)])
    current_value = FloatField("Current value", validators=[Optional(), NumberRange(min=0)])
    warranty_expiry = DateField("Warranty expires", validators=[Optional()])
    operating_hours_per_day = FloatField("Operating hours per day", validators=[Optional(), NumberRange(min=0, max=24)])
    tags = ListField("Tags")


def _parse_date(raw: str | None) -> date | None:
    if not raw:
        return None
    return date.fromisoformat(raw)


def _parse_datetime(raw: str | None) -> datetime | None:
    if not raw:
        return None
    return datetime.fromisoformat(raw)


def _specifications() -> tuple[bool, object]:
    # Free-form key/value pairs bypass the form; the catalog checks the shape.
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict) or "specifications" not in payload:
        return False, None
    return True, payload["specifications"]


def _resource_payload(resource) -> dict:
    payload = to_dict(resource)
    payload["is_bookable"] = resource.is_bookable
    return payload


@bp.route("/", methods=["GET"])
def list_resources():
    """List resources with optional organisation, category, status and text filters."""

    limit = request.args.get("limit", 50, type=int)
    offset = request.args.get("offset", 0, type=int)
    if limit < 1 or offset < 0:
        return error_response("limit must be positive and offset non-negative.", 400)
    resources, total = get_engine().list_resources(
        org_id=request.args.get("org_id") or None,
        category=request.args.get("category") or None,
        status=request.args.get("status") or None,
        location=request.args.get("location") or None,
        search_term=(request.args.get("q") or "").strip() or None,
        limit=limit,
        offset=offset,
    )
    return jsonify(
        {
            "resources": [_resource_payload(resource) for resource in resources],
            "total": total,
            "limit": limit,
            "offset": offset,
        }
    )


@bp.route("/", methods=["POST"])
def create_resource():
    """Register a resource for an organisation."""

    form = ResourceForm(formdata=json_formdata())
    if not form.validate():
        return form_error_response(form)
    resource = get_engine().create_resource(
        org_id=form.org_id.data.strip(),
        name=form.name.data,
        category=form.category.data,
        location=form.location.data.strip(),
        resource_type=form.resource_type.data,
        status=form.status.data,
        condition=form.condition.data,
        description=form.description.data or None,
        subcategory=form.subcategory.data or None,
        capacity=form.capacity.data,
        quantity=form.quantity.data,
        purchase_date=form.purchase_date.data,
        purchase_price=form.purchase_price.data,
        current_value=form.current_value.data,
        warranty_expiry=form.warranty_expiry.data,
        operating_hours_per_day=form.operating_hours_per_day.data,
        specifications=_specifications()[1],
        tags=form.tags.data or [],
        created_by=form.created_by.data or None,
    )
    return jsonify(_resource_payload(resource)), 201


@bp.route("/<int:resource_id>", methods=["GET"])
def detail(resource_id: int):
    return jsonify(_resource_payload(get_engine().get_resource(resource_id)))


@bp.route("/<int:resource_id>", methods=["PATCH"])
def update(resource_id: int):
    """Apply a partial update to a resource."""

    form = ResourceUpdateForm(formdata=json_formdata())
    if not form.validate():
        return form_error_response(form)
    changes = submitted_fields(form)
    for name in ("description", "subcategory"):
        if name in changes:
            changes[name] = changes[name] or None
    present, specifications = _specifications()
    if present:
        changes["specifications"] = specifications
    if "tags" in changes:
        changes["tags"] = changes["tags"] or []
    resource = get_engine().update_resource(resource_id, **changes)
    return jsonify(_resource_payload(resource))


@bp.route("/<int:resource_id>", methods=["DELETE"])
def delete(resource_id: int):
    """Delete a resource with its bookings and maintenance schedules."""

    force = request.args.get("force", "").lower() in {"1", "true", "yes"}
    get_engine().delete_resource(resource_id, force=force)
    current_app.logger.info("Resource %s deleted via API (force=%s)", resource_id, force)
    return "", 204


@bp.route("/<int:resource_id>/availability")
def availability(resource_id: int):
    """Slot-by-slot availability for one day (today when no date is given)."""

    try:
        day = _parse_date(request.args.get("date")) or date.today()
    except ValueError:
        return error_response("date must be formatted as YYYY-MM-DD.", 400)
    return jsonify(to_dict(get_engine().get_availability(resource_id, day)))


@bp.route("/<int:resource_id>/bookings")
def resource_bookings(resource_id: int):
    """Bookings on the resource that intersect the optional start/end window."""

    try:
        start = _parse_datetime(request.args.get("start"))
        end = _parse_datetime(request.args.get("end"))
    except ValueError:
        return error_response("start and end must be ISO 8601 datetimes.", 400)
    bookings = get_engine().list_bookings_for_resource(resource_id, start, end)
    return jsonify({"bookings": [to_dict(booking) for booking in bookings]})


@bp.route("/<int:resource_id>/stats")
def stats(resource_id: int):
    return jsonify(to_dict(get_engine().get_usage_stats(resource_id)))
