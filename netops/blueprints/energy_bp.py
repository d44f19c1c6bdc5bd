"""
NetOps Console
Energy Blueprint: consumption recording and the energy page.

Routes:
    GET    /api/v1/energy          records + stats + charts (?site_id, ?limit)
    POST   /api/v1/energy          record consumption
    PUT    /api/v1/energy/<id>
    DELETE /api/v1/energy/<id>
"""

import logging

from flask import Blueprint, jsonify, request

import netops.services.energy_service as svc
from netops.blueprints import json_body, register_error_handlers
from netops.services.dashboard_service import get_energy_page

logger = logging.getLogger(__name__)

energy_bp = register_error_handlers(
    Blueprint("energy", __name__, url_prefix="/api/v1/energy")
)


@energy_bp.route("", methods=["GET"])
def energy_page():
    limit = request.args.get("limit", 100, type=int)
    page = get_energy_page(site_id=request.args.get("site_id"), limit=max(min(limit, 1000), 1))
    return jsonify(page), 200


@energy_bp.route("", methods=["POST"])
def record_energy():
    return jsonify(svc.record_energy(json_body())), 201


@energy_bp.route("/<record_id>", methods=["PUT"])
def update_energy(record_id: str):
    return jsonify(svc.update_energy(record_id, json_body())), 200


@energy_bp.route("/<record_id>", methods=["DELETE"])
def delete_energy(record_id: str):
    svc.delete_energy(record_id)
    return "", 204
