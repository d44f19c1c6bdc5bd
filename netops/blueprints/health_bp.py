"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready    : 200 whenever the process is serving
    GET /api/v1/health/live     : database round-trip, schema and rate-limit store
    GET /api/v1/health/db-diag  : row counts for every NetOps table
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from netops.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")

NETOPS_TABLES = ("sites", "equipment", "profiles", "alerts", "breakdowns", "energy_consumption")


def _check_database() -> dict:
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        return {"status": "ok", "latency_ms": round((time.perf_counter() - t0) * 1000, 1)}
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Health check database failed: %s", exc)
        return {"status": "error", "detail": str(exc)}


def _table_counts() -> dict:
    """COUNT(*) per table; a missing or locked table reports its error instead."""
    results = {}
    for table in NETOPS_TABLES:
        try:
            count = db.session.execute(db.text(f"SELECT COUNT(*) FROM {table}")).scalar()
            results[table] = {"status": "ok", "count": count}
        except SQLAlchemyError as exc:
            db.session.rollback()
            results[table] = {"status": "error", "detail": str(exc)}
    return results


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Dependency status; 503 when the database or schema is unusable."""
    checks = {"database": _check_database()}
    if checks["database"]["status"] == "ok":
        tables = _table_counts()
        broken = sorted(t for t, r in tables.items() if r["status"] != "ok")
        checks["schema"] = {"status": "error", "broken": broken} if broken else {"status": "ok"}

    redis_url = current_app.config.get("REDIS_URL", "")
    checks["rate_limit_storage"] = {"status": "ok", "backend": "redis" if redis_url else "memory"}
    checks["app"] = {
        "name": "NetOps Console",
        "debug": current_app.debug,
        "testing": current_app.testing,
        "alert_poll_interval": current_app.config.get("ALERT_POLL_INTERVAL"),
    }

    healthy = all(c.get("status", "ok") == "ok" for c in checks.values())
    return jsonify({"status": "ok" if healthy else "degraded", "checks": checks}), 200 if healthy else 503


@health_bp.route("/db-diag", methods=["GET"])
def db_diagnostic():
    """Row counts per table, for checking a deployment after a migration."""
    return jsonify(_table_counts()), 200
