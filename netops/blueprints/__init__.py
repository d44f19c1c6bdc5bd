"""
NetOps Console
Blueprint registry and shared error mapping.

Every API blueprint calls register_error_handlers() so service exceptions
map to one HTTP status each (see netops.utils.errors.error_for):

    NotFoundError            → 404
    ValidationError          → 400
    InvalidTransitionError   → 422
    ConflictError            → 409
    PermissionError          → 403
    SQLAlchemyError          → 500 (session rolled back)
"""

import logging

from flask import request
from sqlalchemy.exc import SQLAlchemyError

from netops.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from netops.models import db
from netops.utils.errors import E, api_error, error_for

logger = logging.getLogger(__name__)

_DOMAIN_ERRORS = (NotFoundError, InvalidTransitionError, ValidationError, ConflictError, PermissionError)


def json_body() -> dict:
    """Request JSON as a dict; anything else counts as an empty body."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def register_error_handlers(bp):
    """Attach the shared exception → response mapping to ``bp``."""

    def _handle_domain(error: Exception):
        code, message, details = error_for(error)
        if isinstance(error, (InvalidTransitionError, ConflictError)):
            logger.info("Rejected write on %s: %s", request.path, error)
        return api_error(code, message, details=details)

    for exc_type in _DOMAIN_ERRORS:
        bp.register_error_handler(exc_type, _handle_domain)

    @bp.errorhandler(SQLAlchemyError)
    def _handle_database(error: SQLAlchemyError):
        db.session.rollback()
        logger.exception("Database error endpoint=%s", request.endpoint)
        return api_error(E.DATABASE, "Database error. Please try again.")

    return bp
