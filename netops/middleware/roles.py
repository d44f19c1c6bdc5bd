"""
Role checks for route protection.

The acting operator is identified by the ``X-User-Id`` header (set by the
auth proxy in front of the API).  Its Profile is loaded once per request
into ``g.current_profile``.

Usage:
    @bp.route("/breakdowns", methods=["POST"])
    @require_role(*REPORTER_ROLES)
    def report():
        ...

When no X-User-Id header is present, these decorators pass through so
service-to-service calls and local tools keep working.  A header that
names an unknown profile is denied.
"""

import functools
import logging

from flask import Flask, g, request

from netops.models import db
from netops.models.network import Profile
from netops.utils.errors import E, api_error

logger = logging.getLogger(__name__)

REPORTER_ROLES = ("technician", "engineer", "admin", "manager")
USER_ADMIN_ROLES = ("admin", "manager")
ROLE_ADMIN_ROLES = ("admin",)


def init_roles(app: Flask):
    """Resolve the X-User-Id header before every request."""

    @app.before_request
    def _load_profile():
        user_id = request.headers.get("X-User-Id")
        g.user_id = user_id
        g.current_profile = db.session.get(Profile, user_id) if user_id else None


def current_role() -> str | None:
    profile = getattr(g, "current_profile", None)
    return profile.role if profile is not None else None


def require_role(*roles: str):
    """
    Decorator: require the acting profile to hold one of ``roles``.
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            if not getattr(g, "user_id", None):
                # No identity header: pass through
                return f(*args, **kwargs)

            role = current_role()
            if role not in roles:
                logger.warning(
                    "User %s denied: role %s not in %s on %s",
                    g.user_id, role, roles, f.__name__,
                )
                return api_error(
                    E.FORBIDDEN, "Permission denied",
                    details={"required_any": list(roles), "role": role},
                )

            return f(*args, **kwargs)
        return decorated
    return decorator
