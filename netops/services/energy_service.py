"""
NetOps Console
Energy Service: site power consumption records.

All validation happens before the session is touched, so a rejected
record (non-positive kWh, period end not after start, equipment from
another site) never reaches the database.
"""

from __future__ import annotations

import logging

from flask import current_app, has_app_context
from sqlalchemy import select

from netops.core.exceptions import NotFoundError, ValidationError
from netops.models import db
from netops.models.energy import EnergyRecord
from netops.models.network import Equipment, Site
from netops.utils.helpers import commit_or_conflict, parse_datetime, parse_number

logger = logging.getLogger(__name__)

DEFAULT_TARIFF_PER_KWH = 0.15

_FIELDS = ("site_id", "equipment_id", "consumption_kwh", "cost_amount", "period_start", "period_end")


def derive_cost(kwh, tariff: float | None = None) -> float:
    """Cost for ``kwh`` at the configured tariff, rounded to cents."""
    if tariff is None:
        tariff = (
            current_app.config.get("ENERGY_TARIFF_PER_KWH", DEFAULT_TARIFF_PER_KWH)
            if has_app_context() else DEFAULT_TARIFF_PER_KWH
        )
    return round(float(kwh) * float(tariff), 2)


def _get_record(record_id: str) -> EnergyRecord:
    row = db.session.get(EnergyRecord, record_id)
    if not row:
        raise NotFoundError(resource="EnergyRecord", resource_id=record_id)
    return row


def _validate(data: dict) -> dict:
    """Check a complete energy payload; return column values."""
    site_id = data.get("site_id")
    if not site_id:
        raise ValidationError("Site is required", details={"site_id": "required"})
    if not db.session.get(Site, site_id):
        raise ValidationError("Site not found", details={"site_id": f"unknown site {site_id!r}"})

    equipment_id = data.get("equipment_id")
    if equipment_id in ("", "none"):
        equipment_id = None
    if equipment_id:
        equipment = db.session.get(Equipment, equipment_id)
        if not equipment or equipment.site_id != site_id:
            raise ValidationError(
                "Equipment does not belong to the selected site",
                details={"equipment_id": f"not installed at site {site_id!r}"},
            )

    try:
        kwh = parse_number(data.get("consumption_kwh"))
    except (TypeError, ValueError):
        kwh = None
    if kwh is None or kwh <= 0:
        raise ValidationError(
            "Consumption must be a positive number",
            details={"consumption_kwh": "must be > 0"},
        )

    try:
        cost = parse_number(data.get("cost_amount"))
    except (TypeError, ValueError):
        raise ValidationError(
            "Cost must be a number", details={"cost_amount": "not numeric"},
        ) from None
    if cost is not None and cost < 0:
        raise ValidationError("Cost cannot be negative", details={"cost_amount": "must be ≥ 0"})

    try:
        start = parse_datetime(data.get("period_start"))
        end = parse_datetime(data.get("period_end"))
    except ValueError:
        raise ValidationError(
            "Period dates must be ISO-8601 dates",
            details={"period_start": "invalid", "period_end": "invalid"},
        ) from None
    if start is None or end is None:
        raise ValidationError(
            "Period start and end dates are required",
            details={"period_start": "required", "period_end": "required"},
        )
    if end <= start:
        raise ValidationError(
            "Period end date must be after period start date",
            details={"period_end": "must be after period_start"},
        )

    return {
        "site_id": site_id,
        "equipment_id": equipment_id,
        "consumption_kwh": kwh,
        "cost_amount": cost if cost is not None else derive_cost(kwh),
        "period_start": start,
        "period_end": end,
    }


# ═════════════════════════════════════════════════════════════════════════════
# CRUD
# ═════════════════════════════════════════════════════════════════════════════


def record_energy(data: dict) -> dict:
    """Validate and store one consumption record.

    Raises:
        ValidationError: Before any write, when the payload is rejected.
    """
    values = _validate(data)
    record = EnergyRecord(**values)
    if data.get("recorded_at"):
        try:
            record.recorded_at = parse_datetime(data["recorded_at"])
        except ValueError:
            raise ValidationError(
                "recorded_at must be an ISO-8601 datetime", details={"recorded_at": "invalid"},
            ) from None
    db.session.add(record)
    commit_or_conflict("EnergyRecord")
    logger.info(
        "Energy recorded",
        extra={"record_id": record.id, "site_id": record.site_id, "kwh": record.consumption_kwh},
    )
    return record.to_dict()


def list_energy(*, site_id: str | None = None, limit: int = 100) -> list[dict]:
    stmt = select(EnergyRecord).order_by(EnergyRecord.recorded_at.desc())
    if site_id:
        stmt = stmt.where(EnergyRecord.site_id == site_id)
    if limit:
        stmt = stmt.limit(limit)
    return [r.to_dict() for r in db.session.execute(stmt).unique().scalars().all()]


def update_energy(record_id: str, data: dict) -> dict:
    """Merge ``data`` over the stored record and re-validate the whole thing."""
    row = _get_record(record_id)
    merged = {f: getattr(row, f) for f in _FIELDS}
    merged.update({k: v for k, v in data.items() if k in _FIELDS})
    # A changed consumption with a blank cost gets a freshly derived cost
    if "consumption_kwh" in data and data.get("cost_amount") in (None, ""):
        merged["cost_amount"] = None

    values = _validate(merged)
    for field, value in values.items():
        setattr(row, field, value)
    commit_or_conflict("EnergyRecord")
    logger.info("Energy record updated", extra={"record_id": record_id})
    return row.to_dict()


def delete_energy(record_id: str) -> None:
    row = _get_record(record_id)
    db.session.delete(row)
    commit_or_conflict("EnergyRecord")
    logger.info("Energy record deleted", extra={"record_id": record_id})
