"""
NetOps Console
Breakdown Blueprint: network incident reporting and lifecycle.

Routes:
    GET    /api/v1/breakdowns                       list + stat cards + form choices
    POST   /api/v1/breakdowns                       report a breakdown
    GET    /api/v1/breakdowns/<id>
    PUT    /api/v1/breakdowns/<id>                  full edit
    DELETE /api/v1/breakdowns/<id>
    POST   /api/v1/breakdowns/<id>/transition       {status, expected_status?}
"""

from __future__ import annotations

import logging

from flask import Blueprint, g, jsonify, request

import netops.services.breakdown_service as svc
from netops.blueprints import json_body, register_error_handlers
from netops.middleware.roles import REPORTER_ROLES, require_role
from netops.models.breakdown import BREAKDOWN_SEVERITIES, BREAKDOWN_STATUSES
from netops.services.dashboard_service import get_breakdowns_page
from netops.utils.errors import E, api_error

logger = logging.getLogger(__name__)

breakdown_bp = register_error_handlers(
    Blueprint("breakdowns", __name__, url_prefix="/api/v1/breakdowns")
)


@breakdown_bp.route("", methods=["GET"])
def list_breakdowns():
    """Breakdowns page: rows, stat cards, and the site/equipment/user choices."""
    status = request.args.get("status")
    if status and status not in BREAKDOWN_STATUSES:
        return api_error(E.VALIDATION_INVALID, f"status must be one of: {', '.join(BREAKDOWN_STATUSES)}")
    severity = request.args.get("severity")
    if severity and severity not in BREAKDOWN_SEVERITIES:
        return api_error(E.VALIDATION_INVALID, f"severity must be one of: {', '.join(BREAKDOWN_SEVERITIES)}")

    page = get_breakdowns_page(status=status, severity=severity, site_id=request.args.get("site_id"))
    page["total"] = len(page["breakdowns"])
    return jsonify(page), 200


@breakdown_bp.route("", methods=["POST"])
@require_role(*REPORTER_ROLES)
def report_breakdown():
    data = json_body()
    reporter = getattr(g, "current_profile", None)
    result = svc.report_breakdown(data, reporter_id=reporter.id if reporter else None)
    return jsonify(result), 201


@breakdown_bp.route("/<breakdown_id>", methods=["GET"])
def get_breakdown(breakdown_id: str):
    return jsonify(svc.get_breakdown(breakdown_id)), 200


@breakdown_bp.route("/<breakdown_id>", methods=["PUT"])
def update_breakdown(breakdown_id: str):
    data = json_body()
    if not data:
        return api_error(E.VALIDATION_REQUIRED, "Request body is required")
    return jsonify(svc.update_breakdown(breakdown_id, data)), 200


@breakdown_bp.route("/<breakdown_id>", methods=["DELETE"])
def delete_breakdown(breakdown_id: str):
    svc.delete_breakdown(breakdown_id)
    return "", 204


@breakdown_bp.route("/<breakdown_id>/transition", methods=["POST"])
def transition_breakdown(breakdown_id: str):
    """Move one step along the lifecycle.

    Body: {"status": "<next>", "expected_status": "<what the client saw>"}
    409 when expected_status is stale, 422 when the edge is not allowed.
    """
    data = json_body()
    new_status = data.get("status")
    if not new_status:
        return api_error(E.VALIDATION_REQUIRED, "status is required", details={"status": "required"})
    result = svc.transition_breakdown(
        breakdown_id, new_status, expected_status=data.get("expected_status"),
    )
    return jsonify(result), 200
