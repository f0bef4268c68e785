"""Organisation reporting routes."""

from __future__ import annotations

from flask import Blueprint, jsonify

from ..services import get_engine
from .serializers import to_dict

bp = Blueprint("reports", __name__, url_prefix="/reports")


@bp.route("/summary/<org_id>")
def summary(org_id: str):
    """Dashboard figures for every resource an organisation owns."""

    return jsonify(to_dict(get_engine().get_resource_summary(org_id)))
