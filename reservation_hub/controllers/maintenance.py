"""Maintenance schedule routes and the alerts CLI command."""

from __future__ import annotations

import click
from flask import Blueprint, jsonify, request
from flask_wtf import FlaskForm
from wtforms import DateTimeLocalField, FloatField, IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import InputRequired, Length, NumberRange, Optional

from ..models.entities import MAINTENANCE_PRIORITIES, MAINTENANCE_TYPES
from ..services import get_engine
from .bookings import DATETIME_FORMATS
from .serializers import form_error_response, json_formdata, to_dict

bp = Blueprint("maintenance", __name__, url_prefix="/maintenance", cli_group=None)


class MaintenanceScheduleForm(FlaskForm):
    """Payload for a new maintenance schedule."""

    class Meta:
        csrf = False

    resource_id = IntegerField("Resource", validators=[InputRequired()])
    schedule_type = SelectField("Type", choices=[(value, value.replace("_", " ").title()) for value in MAINTENANCE_TYPES])
    title = StringField("Title", validators=[InputRequired(), Length(max=200)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=2000)])
    frequency = IntegerField("Every", default=1, validators=[Optional(), NumberRange(min=1)])
    next_due = DateTimeLocalField("Next due", format=DATETIME_FORMATS, validators=[InputRequired()])
    priority = SelectField("Priority", choices=[(value, value.title()) for value in MAINTENANCE_PRIORITIES], default="medium")
    assigned_to = StringField("Assigned to", validators=[Optional(), Length(max=150)])
    estimated_duration = IntegerField("Estimated minutes", validators=[Optional(), NumberRange(min=0)])
    cost = FloatField("Cost", validators=[Optional(), NumberRange(min=0)])


class CompletionForm(FlaskForm):
    """Optional completion time and next due date override."""

    class Meta:
        csrf = False

    completed_at = DateTimeLocalField("Completed at", format=DATETIME_FORMATS, validators=[Optional()])
    next_due = DateTimeLocalField("Next due", format=DATETIME_FORMATS, validators=[Optional()])


@bp.route("/", methods=["GET"])
def list_schedules():
    """Schedules ordered by due date, optionally for one resource."""

    schedules = get_engine().list_maintenance_schedules(request.args.get("resource_id", type=int))
    return jsonify({"schedules": [to_dict(schedule) for schedule in schedules]})


@bp.route("/", methods=["POST"])
def create_schedule():
    form = MaintenanceScheduleForm(formdata=json_formdata())
    if not form.validate():
        return form_error_response(form)
    schedule = get_engine().create_maintenance_schedule(
        resource_id=form.resource_id.data,
        schedule_type=form.schedule_type.data,
        title=form.title.data,
        next_due=form.next_due.data,
        frequency=form.frequency.data or 1,
        priority=form.priority.data,
        description=form.description.data or None,
        assigned_to=form.assigned_to.data or None,
        estimated_duration=form.estimated_duration.data,
        cost=form.cost.data,
    )
    return jsonify(to_dict(schedule)), 201


@bp.route("/<int:schedule_id>/complete", methods=["POST"])
def complete(schedule_id: int):
    """Record completion and roll the schedule forward."""

    form = CompletionForm(formdata=json_formdata())
    if not form.validate():
        return form_error_response(form)
    schedule = get_engine().complete_maintenance(
        schedule_id,
        completed_at=form.completed_at.data,
        next_due=form.next_due.data,
    )
    return jsonify(to_dict(schedule))


@bp.route("/alerts")
def alerts():
    """Overdue and due-soon alerts, most urgent first."""

    items = get_engine().get_maintenance_alerts(request.args.get("org_id") or None)
    return jsonify({"alerts": [to_dict(alert) for alert in items]})


@bp.cli.command("maintenance-alerts")
@click.option("--org", "org_id", default=None, help="Only report resources of this organisation.")
def maintenance_alerts_command(org_id: str | None) -> None:
    """Print overdue and due-soon maintenance alerts."""

    items = get_engine().get_maintenance_alerts(org_id)
    if not items:
        click.echo("No maintenance alerts.")
        return
    for alert in items:
        due = alert.due_date.strftime("%Y-%m-%d %H:%M") if alert.due_date else "-"
        click.echo(f"[{alert.priority.upper()}] {alert.alert_type}: {alert.resource_name} - {alert.message} (due {due})")
