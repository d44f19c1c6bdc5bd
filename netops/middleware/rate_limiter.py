"""
Rate limiting configuration.

Applies per-blueprint limits using Flask-Limiter. The Limiter instance is
created in netops/__init__.py with no default limits; this module attaches
limits per route category, read from config on every request:

    - Write blueprints (breakdowns, energy, inventory):
          WRITE_RATE_LIMIT on POST/PUT/PATCH/DELETE
    - Read-heavy blueprints (dashboard, export): READ_RATE_LIMIT
    - Health checks: exempt

Requests are counted per operator (X-User-Id) when one is given, otherwise
per remote address.

Usage:
    from netops.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import current_app, request
from flask_limiter.util import get_remote_address

logger = logging.getLogger(__name__)

WRITE_BLUEPRINTS = ("breakdowns", "energy", "inventory")
READ_BLUEPRINTS = ("dashboard", "export")
WRITE_METHODS = ["POST", "PUT", "PATCH", "DELETE"]


def rate_limit_key() -> str:
    user_id = request.headers.get("X-User-Id")
    if user_id:
        return f"user:{user_id}"
    return get_remote_address() or "unknown"


def _write_limit() -> str:
    return current_app.config.get("WRITE_RATE_LIMIT", "60/minute")


def _read_limit() -> str:
    return current_app.config.get("READ_RATE_LIMIT", "200/minute")


def init_rate_limits(app, limiter):
    """Attach the per-blueprint limits. Call after blueprints are registered."""
    if not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled (RATELIMIT_ENABLED=False)")
        return

    for bp_name in WRITE_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(_write_limit, key_func=rate_limit_key, methods=WRITE_METHODS)(bp)

    for bp_name in READ_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(_read_limit, key_func=rate_limit_key)(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    logger.info(
        "Rate limiter configured",
        extra={
            "write_limit": app.config.get("WRITE_RATE_LIMIT"),
            "read_limit": app.config.get("READ_RATE_LIMIT"),
        },
    )
