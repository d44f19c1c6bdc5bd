"""
NetOps Console
Breakdown Service: incident reporting and lifecycle management.

Business logic for network breakdowns:
  - Reporting with enum / foreign-key validation and downtime start stamping
  - Status transitions driven by BREAKDOWN_TRANSITIONS with edge-derived
    timestamp side effects (acknowledged_at, resolved_at, downtime_end, closed_at)
  - Full edit, which obeys the same transition table for status changes
  - Hard delete

Concurrency:
  Status writes are optimistic: the UPDATE is conditioned on the status the
  caller last saw (``expected_status``) or, when none is given, on the status
  read at the start of the call.  Zero affected rows means another operator
  moved the record first and raises ConflictError instead of silently
  overwriting their change.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update

from netops.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from netops.models import db
from netops.models.breakdown import (
    BREAKDOWN_PRIORITIES,
    BREAKDOWN_SEVERITIES,
    BREAKDOWN_STATUSES,
    BREAKDOWN_TRANSITIONS,
    BREAKDOWN_TYPES,
    Breakdown,
    transition_stamps,
    validate_breakdown_transition,
)
from netops.models.network import Equipment, Profile, Site
from netops.utils.duration import hours_to_minutes, parse_fix_time
from netops.utils.helpers import commit_or_conflict, parse_datetime, parse_number

logger = logging.getLogger(__name__)

# Fields a full edit may overwrite directly.  ``status`` is handled separately.
_EDITABLE = {
    "title", "description", "type", "severity", "priority",
    "impact_users", "estimated_fix_time", "site_id", "equipment_id",
    "assigned_to", "downtime_start", "downtime_end",
}

_STAMP_FIELDS = ("acknowledged_at", "resolved_at", "downtime_end", "closed_at")


# ═════════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═════════════════════════════════════════════════════════════════════════════


def _get_breakdown(breakdown_id: str) -> Breakdown:
    row = db.session.get(Breakdown, breakdown_id)
    if not row:
        raise NotFoundError(resource="Breakdown", resource_id=breakdown_id)
    return row


def _check_enum(field: str, value, allowed) -> str:
    if value not in allowed:
        raise ValidationError(
            f"{field} must be one of: {', '.join(allowed)}",
            details={field: f"invalid value {value!r}"},
        )
    return value


def _parse_fix_time_input(value):
    """Accept ``PT<N>H`` or a plain hour count from the form; return minutes."""
    if value in (None, ""):
        return None
    if isinstance(value, str) and value.strip().upper().startswith("PT"):
        hours = parse_fix_time(value)
    else:
        try:
            hours = parse_number(value)
        except (TypeError, ValueError):
            hours = None
    if hours is None or hours < 0:
        raise ValidationError(
            "estimated_fix_time must be a non-negative hour count or PT<N>H",
            details={"estimated_fix_time": f"invalid value {value!r}"},
        )
    return hours_to_minutes(hours)


def _parse_timestamp(field: str, value):
    try:
        return parse_datetime(value)
    except ValueError:
        raise ValidationError(
            f"{field} must be an ISO-8601 datetime",
            details={field: f"invalid value {value!r}"},
        ) from None


def _resolve_site_equipment(site_id, equipment_id):
    """Validate site / equipment references; equipment must sit on the site."""
    if not site_id:
        raise ValidationError("site_id is required", details={"site_id": "required"})
    if not db.session.get(Site, site_id):
        raise ValidationError("Site not found", details={"site_id": f"unknown site {site_id!r}"})
    if equipment_id in (None, "", "none"):
        return site_id, None
    equipment = db.session.get(Equipment, equipment_id)
    if not equipment or equipment.site_id != site_id:
        raise ValidationError(
            "Equipment does not belong to the selected site",
            details={"equipment_id": f"not installed at site {site_id!r}"},
        )
    return site_id, equipment_id


def _check_profile(field: str, profile_id):
    if profile_id in (None, "", "none"):
        return None
    if not db.session.get(Profile, profile_id):
        raise ValidationError("User not found", details={field: f"unknown user {profile_id!r}"})
    return profile_id


def _clean_fields(data: dict, *, current: Breakdown | None = None) -> dict:
    """Validate and convert editable fields present in ``data``.

    ``current`` supplies the stored site/equipment so a partial edit that
    only changes one of them is still checked against the other.
    """
    values: dict = {}

    if "title" in data or current is None:
        title = str(data.get("title") or "").strip()
        if not title:
            raise ValidationError("title is required", details={"title": "required"})
        if len(title) > 255:
            raise ValidationError("title must be ≤ 255 characters", details={"title": "too long"})
        values["title"] = title
    if "description" in data:
        values["description"] = data.get("description") or ""

    for field, allowed in (
        ("type", BREAKDOWN_TYPES),
        ("severity", BREAKDOWN_SEVERITIES),
        ("priority", BREAKDOWN_PRIORITIES),
    ):
        if field in data:
            values[field] = _check_enum(field, data[field], allowed)

    if "impact_users" in data:
        try:
            impact = int(data["impact_users"] or 0)
        except (TypeError, ValueError):
            impact = -1
        if impact < 0:
            raise ValidationError(
                "impact_users must be a non-negative integer",
                details={"impact_users": f"invalid value {data['impact_users']!r}"},
            )
        values["impact_users"] = impact

    if "estimated_fix_time" in data:
        values["estimated_fix_minutes"] = _parse_fix_time_input(data["estimated_fix_time"])

    if current is None or "site_id" in data or "equipment_id" in data:
        site_id = data.get("site_id", current.site_id if current else None)
        equipment_id = data.get("equipment_id", current.equipment_id if current else None)
        values["site_id"], values["equipment_id"] = _resolve_site_equipment(site_id, equipment_id)

    if "assigned_to" in data:
        values["assigned_to"] = _check_profile("assigned_to", data["assigned_to"])

    for field in ("downtime_start", "downtime_end"):
        if field in data:
            values[field] = _parse_timestamp(field, data[field])

    return values


def _conditional_update(breakdown_id: str, expected_status: str, values: dict) -> Breakdown:
    """UPDATE ... WHERE id = :id AND status = :expected; ConflictError on 0 rows."""
    result = db.session.execute(
        update(Breakdown)
        .where(Breakdown.id == breakdown_id, Breakdown.status == expected_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.session.rollback()
        current = db.session.get(Breakdown, breakdown_id)
        if current is None:
            raise NotFoundError(resource="Breakdown", resource_id=breakdown_id)
        logger.warning(
            "Breakdown status conflict",
            extra={"breakdown_id": breakdown_id, "expected": expected_status, "actual": current.status},
        )
        raise ConflictError(
            "Breakdown", "status", expected_status,
            message=(
                f"Breakdown status changed to '{current.status}' "
                f"(expected '{expected_status}'); reload and retry"
            ),
        )
    commit_or_conflict("Breakdown")
    return _get_breakdown(breakdown_id)


def _resolve_transition(row: Breakdown, new_status: str, expected_status: str | None, now: datetime) -> dict:
    """Validate ``row.status → new_status`` and return the stamped values."""
    _check_enum("status", new_status, BREAKDOWN_STATUSES)
    if expected_status is not None and expected_status != row.status:
        raise ConflictError(
            "Breakdown", "status", expected_status,
            message=(
                f"Breakdown status changed to '{row.status}' "
                f"(expected '{expected_status}'); reload and retry"
            ),
        )
    if not validate_breakdown_transition(row.status, new_status):
        raise InvalidTransitionError(
            "Breakdown", row.status, new_status,
            allowed=BREAKDOWN_TRANSITIONS.get(row.status, []),
        )
    values = {"status": new_status}
    values.update(transition_stamps(row.status, new_status, downtime_end=row.downtime_end, now=now))
    return values


# ═════════════════════════════════════════════════════════════════════════════
# Reporting & reads
# ═════════════════════════════════════════════════════════════════════════════


def report_breakdown(data: dict, reporter_id: str | None = None) -> dict:
    """Create a breakdown in status ``open``.

    reported_at / created_at are stamped now; downtime_start defaults to now
    unless the reporter supplies the moment the outage began.

    Args:
        data: Breakdown fields from the report form.
        reporter_id: Profile id of the reporting operator (optional).

    Returns:
        Serialized breakdown dict.

    Raises:
        ValidationError: Missing title/site, bad enum, unknown site/equipment.
    """
    values = _clean_fields(data)
    values.setdefault("type", "network_issue")
    values.setdefault("severity", "major")
    values.setdefault("priority", "medium")

    now = datetime.now(timezone.utc)
    breakdown = Breakdown(
        **values,
        status="open",
        reported_by=_check_profile("reported_by", reporter_id or data.get("reported_by")),
        reported_at=now,
        created_at=now,
    )
    if breakdown.downtime_start is None:
        breakdown.downtime_start = now

    db.session.add(breakdown)
    commit_or_conflict("Breakdown")
    logger.info(
        "Breakdown reported",
        extra={
            "breakdown_id": breakdown.id,
            "site_id": breakdown.site_id,
            "severity": breakdown.severity,
        },
    )
    return breakdown.to_dict()


def list_breakdowns(
    *,
    status: str | None = None,
    severity: str | None = None,
    site_id: str | None = None,
) -> list[dict]:
    """List breakdowns, newest first, with optional filters."""
    stmt = select(Breakdown).order_by(Breakdown.created_at.desc())
    if status:
        stmt = stmt.where(Breakdown.status == status)
    if severity:
        stmt = stmt.where(Breakdown.severity == severity)
    if site_id:
        stmt = stmt.where(Breakdown.site_id == site_id)
    rows = db.session.execute(stmt).unique().scalars().all()
    return [r.to_dict() for r in rows]


def get_breakdown(breakdown_id: str) -> dict:
    return _get_breakdown(breakdown_id).to_dict()


# ═════════════════════════════════════════════════════════════════════════════
# Lifecycle
# ═════════════════════════════════════════════════════════════════════════════


def transition_breakdown(
    breakdown_id: str,
    new_status: str,
    *,
    expected_status: str | None = None,
    now: datetime | None = None,
) -> dict:
    """Move a breakdown along one edge of BREAKDOWN_TRANSITIONS.

    Args:
        breakdown_id: Target breakdown.
        new_status: Requested status.
        expected_status: Status the caller believes is current.  When given
            and stale, the call fails with ConflictError before writing.
        now: Clock override (tests).

    Returns:
        Updated serialized breakdown.

    Raises:
        NotFoundError: Unknown breakdown.
        InvalidTransitionError: Edge not in the table (includes re-resolving).
        ConflictError: The stored status no longer matches.
    """
    row = _get_breakdown(breakdown_id)
    now = now or datetime.now(timezone.utc)
    previous = row.status
    values = _resolve_transition(row, new_status, expected_status, now)

    result = _conditional_update(breakdown_id, previous, values)
    logger.info(
        "Breakdown status changed",
        extra={"breakdown_id": breakdown_id, "from": previous, "to": new_status},
    )
    return result.to_dict()


def update_breakdown(breakdown_id: str, data: dict, *, now: datetime | None = None) -> dict:
    """Full edit of a breakdown.

    Plain fields are overwritten as given (manual downtime_start /
    downtime_end overrides included).  A status change must still be an
    edge of BREAKDOWN_TRANSITIONS; its stamps come from that edge, and
    never overwrite a timestamp the edit sets explicitly.

    Raises:
        NotFoundError, ValidationError, InvalidTransitionError, ConflictError.
    """
    row = _get_breakdown(breakdown_id)
    now = now or datetime.now(timezone.utc)
    previous = row.status

    values = _clean_fields({k: v for k, v in data.items() if k in _EDITABLE}, current=row)

    new_status = data.get("status")
    if new_status and new_status != previous:
        stamped = _resolve_transition(row, new_status, data.get("expected_status"), now)
        for field, value in stamped.items():
            if field in _STAMP_FIELDS and values.get(field) is not None:
                continue
            values[field] = value
    elif data.get("expected_status") and data["expected_status"] != previous:
        raise ConflictError(
            "Breakdown", "status", data["expected_status"],
            message=f"Breakdown status changed to '{previous}'; reload and retry",
        )

    if not values:
        return row.to_dict()

    result = _conditional_update(breakdown_id, previous, values)
    logger.info(
        "Breakdown updated",
        extra={"breakdown_id": breakdown_id, "fields": sorted(values)},
    )
    return result.to_dict()


def delete_breakdown(breakdown_id: str) -> None:
    """Permanently remove a breakdown. There is no soft delete."""
    row = _get_breakdown(breakdown_id)
    db.session.delete(row)
    commit_or_conflict("Breakdown")
    logger.info("Breakdown deleted", extra={"breakdown_id": breakdown_id})
