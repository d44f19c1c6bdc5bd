"""
NetOps Console
Dashboard Blueprint: read-only page aggregates.

Routes:
    GET /api/v1/dashboard   stat cards + recent alerts
    GET /api/v1/reports     summary, charts, monthly series, breakdown report
"""

import logging

from flask import Blueprint, jsonify

from netops.blueprints import register_error_handlers
from netops.services.dashboard_service import get_dashboard, get_reports

logger = logging.getLogger(__name__)

dashboard_bp = register_error_handlers(
    Blueprint("dashboard", __name__, url_prefix="/api/v1")
)


@dashboard_bp.route("/dashboard", methods=["GET"])
def dashboard():
    return jsonify(get_dashboard()), 200


@dashboard_bp.route("/reports", methods=["GET"])
def reports():
    return jsonify(get_reports()), 200
