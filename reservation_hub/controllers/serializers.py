"""JSON helpers shared by the API blueprints."""

from __future__ import annotations

import dataclasses
from datetime import date, datetime, time
from typing import Any

from flask import current_app, jsonify, request
from werkzeug.datastructures import ImmutableMultiDict
from wtforms import Field


def _serialize_value(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, tuple):
        return list(value)
    return value


def to_dict(entity) -> dict[str, Any]:
    """Plain-dict view of an entity dataclass, nested dataclasses included."""

    data = {}
    for item in dataclasses.fields(entity):
        value = getattr(entity, item.name)
        if dataclasses.is_dataclass(value):
            value = to_dict(value)
        elif isinstance(value, list):
            value = [to_dict(element) if dataclasses.is_dataclass(element) else _serialize_value(element) for element in value]
        else:
            value = _serialize_value(value)
        data[item.name] = value
    return data


def _as_form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "y" if value else ""
    return str(value)


def _flatten(payload: dict, prefix: str = "") -> dict[str, Any]:
    # Nested objects map onto FormField names such as "recurrence-frequency".
    cleaned: dict[str, Any] = {}
    for key, value in payload.items():
        name = f"{prefix}{key}"
        if value is None:
            continue
        if isinstance(value, dict):
            cleaned.update(_flatten(value, f"{name}-"))
        elif isinstance(value, list):
            cleaned[name] = [_as_form_value(element) for element in value if element is not None]
        else:
            cleaned[name] = _as_form_value(value)
    return cleaned


def json_formdata() -> ImmutableMultiDict:
    """Request JSON as form data, dropping nulls so optional fields stay empty."""

    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        payload = {}
    return ImmutableMultiDict(_flatten(payload))


def submitted_fields(form) -> dict[str, Any]:
    """Data of the form fields that were present in the request body."""

    payload = request.get_json(silent=True) or {}
    return {name: form[name].data for name in payload if name in form._fields}


def error_response(message: str, status: int, **extra):
    body = {"error": message}
    body.update(extra)
    return jsonify(body), status


def form_error_response(form):
    current_app.logger.debug("Rejected %s payload: %s", type(form).__name__, form.errors)
    return error_response("Invalid input.", 400, fields=form.errors)


class ListField(Field):
    """Field accepting repeated values, e.g. a JSON array of tags."""

    def process_formdata(self, valuelist):
        values = []
        for raw in valuelist:
            values.extend(part.strip() for part in str(raw).split(",") if part.strip())
        self.data = values

    def _value(self):
        return ", ".join(self.data or [])
