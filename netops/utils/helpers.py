"""Shared parsing and persistence helpers used by the service layer.

parse_datetime:     ISO-8601 / datetime-local form values → aware UTC datetime
parse_number:       form numbers (str | int | float) → float, None when blank
as_utc:             normalise naive SQLite datetimes to UTC
commit_or_conflict: commit, turning IntegrityError into ConflictError
"""
import logging
from datetime import date, datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from netops.core.exceptions import ConflictError
from netops.models import db

logger = logging.getLogger(__name__)


def as_utc(dt):
    """Normalise a datetime to UTC-aware regardless of whether SQLite stored it naive.

    SQLite's DateTime columns return naive datetimes; PostgreSQL returns tz-aware.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value):
    """Parse an ISO datetime (or ``YYYY-MM-DDTHH:MM`` form value) to aware UTC.

    Returns None for empty input; raises ValueError on anything unparsable.
    Naive values are taken as UTC, which is what the edit forms submit.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError as exc:
        raise ValueError(f"Invalid datetime: {value!r}") from exc


def parse_number(value):
    """Parse a numeric form value. Blank → None; raises ValueError when not numeric."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid number: {value!r}")
    return float(value)


# ── Database commit helper ───────────────────────────────────────────────────

def commit_or_conflict(resource: str, field: str = "id", value=None):
    """Commit the current session.

    IntegrityError   → rollback + ConflictError (HTTP 409)
    SQLAlchemyError  → rollback + re-raise (blueprint answers 500)
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on %s commit: %s", resource, exc.orig)
        raise ConflictError(resource, field, value) from exc
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error on %s commit", resource)
        raise
