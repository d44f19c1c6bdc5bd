"""Standardised API error responses.

Usage
-----
    from netops.utils.errors import api_error, error_for, E

    return api_error(E.NOT_FOUND, "Breakdown not found")
    return api_error(E.VALIDATION_REQUIRED, "site_id is required")
    code, message, details = error_for(exc)
    return api_error(code, message, details=details)
"""

from __future__ import annotations

from flask import jsonify

from netops.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Lifecycle – HTTP 422
    INVALID_TRANSITION = "ERR_INVALID_TRANSITION"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # Permissions – HTTP 403
    FORBIDDEN = "ERR_FORBIDDEN"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.INVALID_TRANSITION: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.FORBIDDEN: 403,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return ``(jsonify({"error", "code", "details"?}), http_status)``.

    ``status`` overrides the code's default HTTP status (400 when unknown).
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _DEFAULT_STATUS.get(code, 400)


def error_for(exc: Exception) -> tuple:
    """Map a domain exception to ``(code, message, details)`` for api_error()."""
    message = str(exc)
    if isinstance(exc, NotFoundError):
        return E.NOT_FOUND, message, None
    if isinstance(exc, InvalidTransitionError):
        return E.INVALID_TRANSITION, message, exc.details
    if isinstance(exc, ValidationError):
        required = "required" in exc.details.values()
        return (E.VALIDATION_REQUIRED if required else E.VALIDATION_INVALID), message, exc.details
    if isinstance(exc, ConflictError):
        code = E.CONFLICT_STATE if exc.field == "status" else E.CONFLICT_DUPLICATE
        return code, message, {"field": exc.field}
    if isinstance(exc, PermissionError):
        return E.FORBIDDEN, message or "Permission denied", None
    return E.INTERNAL, "Internal server error", None
