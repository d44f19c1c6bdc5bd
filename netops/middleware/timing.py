"""
Request timing middleware.

Every response carries X-Request-ID (echoed when the caller sent one) and
X-Request-Duration-Ms.  Requests slower than SLOW_REQUEST_MS log a
warning, 5xx responses log an error, everything else logs at DEBUG with the
acting user and the record the route touched.
"""

import logging
import time
import uuid

from flask import Flask, current_app, g, request

logger = logging.getLogger(__name__)

# Probes and the alert feed are polled constantly; keep them out of the log
_SKIP_LOG = frozenset({"/api/v1/health/live", "/api/v1/health/ready", "/api/v1/alerts/feed"})

# URL parameters that identify the record a request acted on
_RESOURCE_ARGS = ("breakdown_id", "record_id", "site_id", "equipment_id", "alert_id", "profile_id")

DEFAULT_SLOW_MS = 1000


def _resource_ref() -> str | None:
    view_args = request.view_args or {}
    for name in _RESOURCE_ARGS:
        if name in view_args:
            return f"{name}={view_args[name]}"
    return None


def _request_extra(status: int, duration_ms: float) -> dict:
    profile = getattr(g, "current_profile", None)
    return {
        "method": request.method,
        "path": request.path,
        "status": status,
        "duration_ms": duration_ms,
        "remote_addr": request.remote_addr,
        "request_id": getattr(g, "request_id", ""),
        "user_id": profile.id if profile is not None else getattr(g, "user_id", None),
        "resource": _resource_ref(),
    }


def init_request_timing(app: Flask):
    """Register before/after hooks for request timing."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _stamp_and_log(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"

        if request.path in _SKIP_LOG:
            return response

        slow_ms = current_app.config.get("SLOW_REQUEST_MS", DEFAULT_SLOW_MS)
        if duration_ms > slow_ms:
            level, label = logging.WARNING, "Slow request"
        elif response.status_code >= 500:
            level, label = logging.ERROR, "Server error"
        else:
            level, label = logging.DEBUG, "Request"
        logger.log(
            level, "%s: %s %s %d (%.0fms)",
            label, request.method, request.path, response.status_code, duration_ms,
            extra=_request_extra(response.status_code, duration_ms),
        )
        return response
