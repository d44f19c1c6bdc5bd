"""
NetOps Console
Inventory Blueprint: sites, equipment, alerts and users.

Routes:
    GET/POST        /api/v1/sites                 list (+ status counts) / create
    PUT/DELETE      /api/v1/sites/<id>
    GET/POST        /api/v1/equipment             list (?site_id) / create
    PUT/DELETE      /api/v1/equipment/<id>
    GET/POST        /api/v1/alerts                list (?status, ?severity, ?limit) / create
    POST            /api/v1/alerts/<id>/acknowledge
    POST            /api/v1/alerts/<id>/resolve
    GET             /api/v1/alerts/feed           poll feed (?limit, ?seen=id,id)
    GET             /api/v1/users                 users page (admin / manager)
    GET/PUT         /api/v1/users/<id>
"""

import logging

from flask import Blueprint, current_app, jsonify, request

import netops.services.inventory_service as svc
from netops.blueprints import json_body, register_error_handlers
from netops.middleware.roles import USER_ADMIN_ROLES, current_role, require_role
from netops.models.network import ALERT_SEVERITIES, ALERT_STATUSES, SITE_STATUSES
from netops.services.alert_poller import new_critical_alerts
from netops.services.dashboard_service import get_sites_page, get_users_page
from netops.utils.errors import E, api_error

logger = logging.getLogger(__name__)

inventory_bp = register_error_handlers(
    Blueprint("inventory", __name__, url_prefix="/api/v1")
)


def _check_filter(name: str, allowed):
    value = request.args.get(name)
    if value and value not in allowed:
        return value, api_error(E.VALIDATION_INVALID, f"{name} must be one of: {', '.join(allowed)}")
    return value, None


# ═════════════════════════════════════════════════════════════════════════════
# Sites
# ═════════════════════════════════════════════════════════════════════════════


@inventory_bp.route("/sites", methods=["GET"])
def list_sites():
    status, err = _check_filter("status", SITE_STATUSES)
    if err:
        return err
    return jsonify(get_sites_page(status=status)), 200


@inventory_bp.route("/sites", methods=["POST"])
def create_site():
    return jsonify(svc.create_site(json_body())), 201


@inventory_bp.route("/sites/<site_id>", methods=["PUT"])
def update_site(site_id: str):
    return jsonify(svc.update_site(site_id, json_body())), 200


@inventory_bp.route("/sites/<site_id>", methods=["DELETE"])
def delete_site(site_id: str):
    svc.delete_site(site_id)
    return "", 204


# ═════════════════════════════════════════════════════════════════════════════
# Equipment
# ═════════════════════════════════════════════════════════════════════════════


@inventory_bp.route("/equipment", methods=["GET"])
def list_equipment():
    items = svc.list_equipment(site_id=request.args.get("site_id"))
    return jsonify({"items": items, "total": len(items)}), 200


@inventory_bp.route("/equipment", methods=["POST"])
def create_equipment():
    return jsonify(svc.create_equipment(json_body())), 201


@inventory_bp.route("/equipment/<equipment_id>", methods=["PUT"])
def update_equipment(equipment_id: str):
    return jsonify(svc.update_equipment(equipment_id, json_body())), 200


@inventory_bp.route("/equipment/<equipment_id>", methods=["DELETE"])
def delete_equipment(equipment_id: str):
    svc.delete_equipment(equipment_id)
    return "", 204


# ═════════════════════════════════════════════════════════════════════════════
# Alerts
# ═════════════════════════════════════════════════════════════════════════════


@inventory_bp.route("/alerts", methods=["GET"])
def list_alerts():
    status, err = _check_filter("status", ALERT_STATUSES)
    if err:
        return err
    severity, err = _check_filter("severity", ALERT_SEVERITIES)
    if err:
        return err
    items = svc.list_alerts(status=status, severity=severity, limit=request.args.get("limit", type=int))
    return jsonify({"items": items, "total": len(items)}), 200


@inventory_bp.route("/alerts", methods=["POST"])
def create_alert():
    return jsonify(svc.create_alert(json_body())), 201


@inventory_bp.route("/alerts/<alert_id>/acknowledge", methods=["POST"])
def acknowledge_alert(alert_id: str):
    return jsonify(svc.acknowledge_alert(alert_id)), 200


@inventory_bp.route("/alerts/<alert_id>/resolve", methods=["POST"])
def resolve_alert(alert_id: str):
    return jsonify(svc.resolve_alert(alert_id)), 200


@inventory_bp.route("/alerts/feed", methods=["GET"])
def alert_feed():
    """Latest active alerts plus the critical ones the caller has not seen.

    Query params:
        limit: max alerts (default ALERT_FEED_LIMIT)
        seen:  comma-separated alert ids the client already displayed
    """
    limit = request.args.get("limit", type=int) or current_app.config.get("ALERT_FEED_LIMIT", 10)
    seen = [s for s in request.args.get("seen", "").split(",") if s]
    alerts = svc.list_alerts(status="active", limit=limit)
    return jsonify({
        "alerts": alerts,
        "new_critical": new_critical_alerts(alerts, seen),
        "seen": [a["id"] for a in alerts],
    }), 200


# ═════════════════════════════════════════════════════════════════════════════
# Users
# ═════════════════════════════════════════════════════════════════════════════


@inventory_bp.route("/users", methods=["GET"])
@require_role(*USER_ADMIN_ROLES)
def list_users():
    return jsonify(get_users_page()), 200


@inventory_bp.route("/users/<profile_id>", methods=["GET"])
def get_user(profile_id: str):
    return jsonify(svc.get_profile(profile_id)), 200


@inventory_bp.route("/users/<profile_id>", methods=["PUT"])
@require_role(*USER_ADMIN_ROLES)
def update_user(profile_id: str):
    """Edit a profile.  Role changes additionally require admin."""
    result = svc.update_profile(profile_id, json_body(), actor_role=current_role())
    return jsonify(result), 200
