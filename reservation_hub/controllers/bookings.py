"""Booking workflow blueprint."""

from __future__ import annotations

from datetime import datetime

from flask import Blueprint, jsonify, request
from flask_wtf import FlaskForm
from wtforms import (
    DateField,
    DateTimeLocalField,
    FloatField,
    Form,
    FormField,
    IntegerField,
    SelectField,
    SelectMultipleField,
    StringField,
    TextAreaField,
)
from wtforms.validators import Email, InputRequired, Length, NumberRange, Optional

from ..models.entities import BOOKING_STATUSES, RECURRENCE_FREQUENCIES, RecurrenceRule
from ..services import get_engine
from .serializers import ListField, error_response, form_error_response, json_formdata, submitted_fields, to_dict

bp = Blueprint("bookings", __name__, url_prefix="/bookings")

DATETIME_FORMATS = ["%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M"]
WEEKDAYS = [(0, "Sunday"), (1, "Monday"), (2, "Tuesday"), (3, "Wednesday"), (4, "Thursday"), (5, "Friday"), (6, "Saturday")]

_DETAIL_FIELDS = (
    "description",
    "purpose",
    "booked_for",
    "attendee_count",
    "quantity",
    "cost",
    "contact_name",
    "contact_email",
    "contact_phone",
    "setup_requirements",
    "special_instructions",
)


class RecurrenceForm(Form):
    """Repeat pattern nested under ``recurrence`` in a booking payload."""

    frequency = SelectField("Frequency", choices=[(value, value.title()) for value in RECURRENCE_FREQUENCIES])
    interval = IntegerField("Interval", default=1, validators=[Optional(), NumberRange(min=1)])
    days_of_week = SelectMultipleField("Days of week", choices=WEEKDAYS, coerce=int)
    end_date = DateField("Ends on", validators=[Optional()])
    occurrences = IntegerField("Occurrences", validators=[Optional(), NumberRange(min=1)])


class BookingForm(FlaskForm):
    """Form to reserve a resource."""

    class Meta:
        csrf = False

    resource_id = IntegerField("Resource", validators=[InputRequired()])
    title = StringField("Title", validators=[InputRequired(), Length(max=200)])
    start = DateTimeLocalField(
        "Start",
        format=DATETIME_FORMATS,
        validators=[InputRequired(message="Please provide a start time.")],
    )
    end = DateTimeLocalField(
        "End",
        format=DATETIME_FORMATS,
        validators=[InputRequired(message="Please provide an end time.")],
    )
    booked_by = StringField("Booked by", validators=[InputRequired(), Length(max=150)])
    status = SelectField("Status", choices=[("pending", "Pending"), ("confirmed", "Confirmed")], default="pending")
    description = TextAreaField("Description", validators=[Optional(), Length(max=2000)])
    purpose = StringField("Purpose", validators=[Optional(), Length(max=200)])
    booked_for = StringField("Booked for", validators=[Optional(), Length(max=150)])
    attendee_count = IntegerField("Attendees", validators=[Optional(), NumberRange(min=0)])
    quantity = IntegerField("Quantity", validators=[Optional(), NumberRange(min=0)])
    cost = FloatField("Cost", validators=[Optional(), NumberRange(min=0)])
    contact_name = StringField("Contact name", validators=[Optional(), Length(max=150)])
    contact_email = StringField("Contact email", validators=[Optional(), Email(), Length(max=255)])
    contact_phone = StringField("Contact phone", validators=[Optional(), Length(max=40)])
    setup_requirements = ListField("Setup requirements")
    special_instructions = TextAreaField("Special instructions", validators=[Optional(), Length(max=2000)])
    approved_by = StringField("Approved by", validators=[Optional(), Length(max=150)])


class RecurringBookingForm(BookingForm):
    """Booking form with a repeat pattern and an optional horizon."""

    recurrence = FormField(RecurrenceForm)
    until = DateField("Until", validators=[Optional()])
    count = IntegerField("Count", validators=[Optional(), NumberRange(min=1)])


class BookingUpdateForm(FlaskForm):
    """Partial update payload; only the keys present in the body are applied."""

    class Meta:
        csrf = False

    resource_id = IntegerField("Resource", validators=[Optional()])
    title = StringField("Title", validators=[Optional(), Length(max=200)])
    start = DateTimeLocalField("Start", format=DATETIME_FORMATS, validators=[Optional()])
    end = DateTimeLocalField("End", format=DATETIME_FORMATS, validators=[Optional()])
    status = SelectField("Status", choices=[(value, value.title()) for value in BOOKING_STATUSES], validate_choice=False)
    description = TextAreaField("Description", validators=[Optional(), Length(max=2000)])
    purpose = StringField("Purpose", validators=[Optional(), Length(max=200)])
    booked_for = StringField("Booked for", validators=[Optional(), Length(max=150)])
    attendee_count = IntegerField("Attendees", validators=[Optional(), NumberRange(min=0)])
    quantity = IntegerField("Quantity", validators=[Optional(), NumberRange(min=0)])
    cost = FloatField("Cost", validators=[Optional(), NumberRange(min=0)])
    contact_name = StringField("Contact name", validators=[Optional(), Length(max=150)])
    contact_email = StringField("Contact email", validators=[Optional(), Email(), Length(max=255)])
    contact_phone = StringField("Contact phone", validators=[Optional(), Length(max=40)])
    setup_requirements = ListField("Setup requirements")
    special_instructions = TextAreaField("Special instructions", validators=[Optional(), Length(max=2000)])
    approved_by = StringField("Approved by", validators=[Optional(), Length(max=150)])


def _details(form) -> dict:
    details = {}
    for name in _DETAIL_FIELDS:
        value = form[name].data
        if value is not None and value != "":
            details[name] = value
    return details


def _rule_from(form: RecurrenceForm) -> RecurrenceRule:
    return RecurrenceRule(
        frequency=form.frequency.data,
        interval=form.interval.data or 1,
        days_of_week=tuple(form.days_of_week.data) if form.days_of_week.data else None,
        end_date=form.end_date.data,
        occurrences=form.occurrences.data,
    )


def _parse_datetime(raw: str | None) -> datetime | None:
    if not raw:
        return None
    return datetime.fromisoformat(raw)


@bp.route("/", methods=["GET"])
def list_bookings():
    """List bookings filtered by resource, window, status, booker or series."""

    limit = request.args.get("limit", 50, type=int)
    offset = request.args.get("offset", 0, type=int)
    if limit < 1 or offset < 0:
        return error_response("limit must be positive and offset non-negative.", 400)
    try:
        start_date = _parse_datetime(request.args.get("start_date"))
        end_date = _parse_datetime(request.args.get("end_date"))
    except ValueError:
        return error_response("start_date and end_date must be ISO 8601 datetimes.", 400)
    bookings, total = get_engine().list_bookings(
        resource_id=request.args.get("resource_id", type=int),
        start_date=start_date,
        end_date=end_date,
        status=request.args.get("status") or None,
        booked_by=request.args.get("booked_by") or None,
        series_id=request.args.get("series_id", type=int),
        limit=limit,
        offset=offset,
    )
    return jsonify(
        {
            "bookings": [to_dict(booking) for booking in bookings],
            "total": total,
            "limit": limit,
            "offset": offset,
        }
    )


@bp.route("/", methods=["POST"])
def create():
    """Create a booking, or a whole series when ``recurrence`` is given."""

    payload = request.get_json(silent=True) or {}
    recurring = isinstance(payload, dict) and isinstance(payload.get("recurrence"), dict)
    form_cls = RecurringBookingForm if recurring else BookingForm
    form = form_cls(formdata=json_formdata())
    if not form.validate():
        return form_error_response(form)

    fields = dict(
        resource_id=form.resource_id.data,
        title=form.title.data,
        start=form.start.data,
        end=form.end.data,
        booked_by=form.booked_by.data,
        status=form.status.data,
        approved_by=form.approved_by.data or None,
        **_details(form),
    )
    engine = get_engine()
    if not recurring:
        booking = engine.create_booking(**fields)
        return jsonify(to_dict(booking)), 201

    series = engine.create_recurring_booking(
        recurrence=_rule_from(form.recurrence.form),
        until=form.until.data,
        count=form.count.data,
        **fields,
    )
    return (
        jsonify(
            {
                "series_id": series[0].series_id,
                "bookings": [to_dict(booking) for booking in series],
            }
        ),
        201,
    )


@bp.route("/<int:booking_id>", methods=["GET"])
def detail(booking_id: int):
    return jsonify(to_dict(get_engine().get_booking(booking_id)))


@bp.route("/<int:booking_id>", methods=["PATCH"])
def update(booking_id: int):
    """Reschedule, move or change the status of a booking."""

    form = BookingUpdateForm(formdata=json_formdata())
    if not form.validate():
        return form_error_response(form)
    changes = submitted_fields(form)
    booking = get_engine().update_booking(booking_id, **changes)
    return jsonify(to_dict(booking))


@bp.route("/<int:booking_id>/cancel", methods=["POST"])
def cancel(booking_id: int):
    """Cancel a booking and release the conflicts it took part in."""

    booking = get_engine().cancel_booking(booking_id)
    return jsonify(to_dict(booking))
