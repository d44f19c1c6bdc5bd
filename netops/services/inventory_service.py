"""
NetOps Console
Inventory Service: sites, equipment, alerts and operator profiles.

These are the supporting records breakdowns and energy readings point at.
CRUD is plain last-write-wins; only alert status follows a transition table.

Also home to the energy form state (site → equipment cascade, automatic
cost fill) that the recording form keeps per view.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select

from netops.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from netops.models import db
from netops.models.network import (
    ALERT_SEVERITIES,
    ALERT_TRANSITIONS,
    EQUIPMENT_STATUSES,
    SITE_STATUSES,
    USER_ROLES,
    Alert,
    Equipment,
    Profile,
    Site,
    validate_alert_transition,
)
from netops.services.energy_service import derive_cost
from netops.utils.helpers import commit_or_conflict, parse_number

logger = logging.getLogger(__name__)

SITE_FIELDS = ("name", "code", "status", "type", "region", "address", "latitude", "longitude")
EQUIPMENT_FIELDS = ("site_id", "name", "type", "status", "serial_number")
PROFILE_FIELDS = ("full_name", "role", "region", "phone")


# ── Internal helpers ─────────────────────────────────────────────────────────


def _get(model, resource: str, record_id: str):
    row = db.session.get(model, record_id)
    if not row:
        raise NotFoundError(resource=resource, resource_id=record_id)
    return row


def _require(data: dict, *fields: str) -> None:
    missing = [f for f in fields if not str(data.get(f) or "").strip()]
    if missing:
        raise ValidationError(
            f"{', '.join(missing)} required",
            details={f: "required" for f in missing},
        )


def _check_enum(name: str, value, allowed) -> None:
    if value is not None and value not in allowed:
        raise ValidationError(
            f"{name} must be one of: {', '.join(allowed)}",
            details={name: f"invalid value {value!r}"},
        )


def _apply(row, data: dict, fields) -> None:
    for name in fields:
        if name in data:
            setattr(row, name, data[name])


# ═════════════════════════════════════════════════════════════════════════════
# 1. Sites
# ═════════════════════════════════════════════════════════════════════════════


def _clean_site(data: dict) -> dict:
    values = {k: data[k] for k in SITE_FIELDS if k in data}
    _check_enum("status", values.get("status"), SITE_STATUSES)
    for coord in ("latitude", "longitude"):
        if coord in values:
            try:
                values[coord] = parse_number(values[coord])
            except (TypeError, ValueError):
                raise ValidationError(
                    f"{coord} must be a number", details={coord: "not numeric"},
                ) from None
    if "code" in values:
        values["code"] = str(values["code"]).strip()
    return values


def list_sites(*, status: str | None = None) -> list[dict]:
    stmt = select(Site).order_by(Site.name)
    if status:
        stmt = stmt.where(Site.status == status)
    return [s.to_dict() for s in db.session.execute(stmt).scalars().all()]


def create_site(data: dict) -> dict:
    _require(data, "name", "code")
    values = _clean_site(data)
    site = Site(**values)
    db.session.add(site)
    commit_or_conflict("Site", "code", values["code"])
    logger.info("Site created", extra={"site_id": site.id, "code": site.code})
    return site.to_dict()


def update_site(site_id: str, data: dict) -> dict:
    site = _get(Site, "Site", site_id)
    values = _clean_site(data)
    _apply(site, values, SITE_FIELDS)
    commit_or_conflict("Site", "code", values.get("code"))
    logger.info("Site updated", extra={"site_id": site_id})
    return site.to_dict()


def delete_site(site_id: str) -> None:
    """Delete a site; its equipment, breakdowns and energy rows cascade."""
    site = _get(Site, "Site", site_id)
    db.session.delete(site)
    commit_or_conflict("Site")
    logger.info("Site deleted", extra={"site_id": site_id})


# ═════════════════════════════════════════════════════════════════════════════
# 2. Equipment
# ═════════════════════════════════════════════════════════════════════════════


def list_equipment(*, site_id: str | None = None) -> list[dict]:
    stmt = select(Equipment).order_by(Equipment.name)
    if site_id:
        stmt = stmt.where(Equipment.site_id == site_id)
    return [e.to_dict() for e in db.session.execute(stmt).scalars().all()]


def create_equipment(data: dict) -> dict:
    _require(data, "site_id", "name")
    _check_enum("status", data.get("status"), EQUIPMENT_STATUSES)
    _get(Site, "Site", data["site_id"])
    equipment = Equipment(**{k: data[k] for k in EQUIPMENT_FIELDS if k in data})
    db.session.add(equipment)
    commit_or_conflict("Equipment")
    logger.info(
        "Equipment created",
        extra={"equipment_id": equipment.id, "site_id": equipment.site_id},
    )
    return equipment.to_dict()


def update_equipment(equipment_id: str, data: dict) -> dict:
    equipment = _get(Equipment, "Equipment", equipment_id)
    _check_enum("status", data.get("status"), EQUIPMENT_STATUSES)
    if data.get("site_id"):
        _get(Site, "Site", data["site_id"])
    _apply(equipment, data, EQUIPMENT_FIELDS)
    commit_or_conflict("Equipment")
    logger.info("Equipment updated", extra={"equipment_id": equipment_id})
    return equipment.to_dict()


def delete_equipment(equipment_id: str) -> None:
    equipment = _get(Equipment, "Equipment", equipment_id)
    db.session.delete(equipment)
    commit_or_conflict("Equipment")
    logger.info("Equipment deleted", extra={"equipment_id": equipment_id})


def equipment_for_site(equipment_rows, site_id) -> list[dict]:
    """Equipment choices for the selected site; nothing when no site is chosen."""
    if not site_id:
        return []
    return [e for e in equipment_rows if e.get("site_id") == site_id]


# ── Energy form state ────────────────────────────────────────────────────────


@dataclass
class EnergyFormState:
    """Field state of one energy recording form.

    Switching site clears the equipment choice.  Typing a consumption fills
    in the cost at the tariff only while the cost field is still blank.
    ``tariff`` left as None follows ENERGY_TARIFF_PER_KWH, as the server does.
    """

    site_id: str = ""
    equipment_id: str = "none"
    consumption_kwh: str = ""
    cost_amount: str = ""
    period_start: str = ""
    period_end: str = ""
    tariff: float | None = None

    def select_site(self, site_id: str) -> None:
        self.site_id = site_id
        self.equipment_id = "none"

    def select_equipment(self, equipment_id: str) -> None:
        self.equipment_id = equipment_id or "none"

    def set_consumption(self, value) -> None:
        self.consumption_kwh = "" if value is None else str(value)
        if self.cost_amount != "":
            return
        try:
            kwh = parse_number(self.consumption_kwh)
        except ValueError:
            return
        if kwh is not None and kwh > 0:
            self.cost_amount = f"{derive_cost(kwh, self.tariff):.2f}"

    def set_cost(self, value) -> None:
        self.cost_amount = "" if value is None else str(value)

    def equipment_choices(self, equipment_rows) -> list[dict]:
        return equipment_for_site(equipment_rows, self.site_id)

    def payload(self) -> dict:
        """Form values as submitted to record_energy()."""
        return {
            "site_id": self.site_id,
            "equipment_id": None if self.equipment_id == "none" else self.equipment_id,
            "consumption_kwh": self.consumption_kwh,
            "cost_amount": self.cost_amount,
            "period_start": self.period_start,
            "period_end": self.period_end,
        }


# ═════════════════════════════════════════════════════════════════════════════
# 3. Alerts
# ═════════════════════════════════════════════════════════════════════════════


def list_alerts(
    *,
    status: str | None = None,
    severity: str | None = None,
    limit: int | None = None,
) -> list[dict]:
    """Alerts newest first with optional status / severity filters."""
    stmt = select(Alert).order_by(Alert.created_at.desc())
    if status:
        stmt = stmt.where(Alert.status == status)
    if severity:
        stmt = stmt.where(Alert.severity == severity)
    if limit:
        stmt = stmt.limit(limit)
    return [a.to_dict() for a in db.session.execute(stmt).unique().scalars().all()]


def create_alert(data: dict) -> dict:
    _require(data, "title")
    _check_enum("severity", data.get("severity"), ALERT_SEVERITIES)
    if data.get("site_id"):
        _get(Site, "Site", data["site_id"])
    alert = Alert(
        title=str(data["title"]).strip(),
        message=data.get("message", ""),
        severity=data.get("severity", "info"),
        type=data.get("type", ""),
        site_id=data.get("site_id") or None,
        equipment_id=data.get("equipment_id") or None,
    )
    db.session.add(alert)
    commit_or_conflict("Alert")
    logger.info("Alert raised", extra={"alert_id": alert.id, "severity": alert.severity})
    return alert.to_dict()


def _transition_alert(alert_id: str, new_status: str) -> dict:
    alert = _get(Alert, "Alert", alert_id)
    if not validate_alert_transition(alert.status, new_status):
        raise InvalidTransitionError(
            "Alert", alert.status, new_status,
            allowed=ALERT_TRANSITIONS.get(alert.status, []),
        )
    now = datetime.now(timezone.utc)
    previous = alert.status
    alert.status = new_status
    if new_status == "acknowledged":
        alert.acknowledged_at = now
    elif new_status == "resolved":
        alert.resolved_at = now
    commit_or_conflict("Alert")
    logger.info("Alert status changed", extra={"alert_id": alert_id, "from": previous, "to": new_status})
    return alert.to_dict()


def acknowledge_alert(alert_id: str) -> dict:
    return _transition_alert(alert_id, "acknowledged")


def resolve_alert(alert_id: str) -> dict:
    return _transition_alert(alert_id, "resolved")


# ═════════════════════════════════════════════════════════════════════════════
# 4. Profiles
# ═════════════════════════════════════════════════════════════════════════════


def list_profiles() -> list[dict]:
    stmt = select(Profile).order_by(Profile.created_at.desc())
    return [p.to_dict() for p in db.session.execute(stmt).scalars().all()]


def get_profile(profile_id: str) -> dict:
    return _get(Profile, "Profile", profile_id).to_dict()


def update_profile(profile_id: str, data: dict, *, actor_role: str | None = None) -> dict:
    """Edit full_name / role / region / phone.

    A role change is only accepted from an admin (``actor_role``).

    Raises:
        NotFoundError, ValidationError, PermissionError (non-admin role change).
    """
    profile = _get(Profile, "Profile", profile_id)
    if "role" in data and data["role"] != profile.role:
        _check_enum("role", data["role"], USER_ROLES)
        if actor_role != "admin":
            raise PermissionError("Only an admin can change a user's role")
    if "full_name" in data and not str(data["full_name"] or "").strip():
        raise ValidationError("full_name is required", details={"full_name": "required"})
    _apply(profile, data, PROFILE_FIELDS)
    commit_or_conflict("Profile")
    logger.info("Profile updated", extra={"profile_id": profile_id, "fields": sorted(set(data) & set(PROFILE_FIELDS))})
    return profile.to_dict()


def create_profile(data: dict) -> dict:
    """Register a profile (used by seeding and tests; sign-up lives elsewhere)."""
    _require(data, "full_name", "email")
    _check_enum("role", data.get("role"), USER_ROLES)
    profile = Profile(
        full_name=str(data["full_name"]).strip(),
        email=str(data["email"]).strip().lower(),
        role=data.get("role", "technician"),
        region=data.get("region", ""),
        phone=data.get("phone", ""),
    )
    db.session.add(profile)
    commit_or_conflict("Profile", "email", profile.email)
    logger.info("Profile created", extra={"profile_id": profile.id, "role": profile.role})
    return profile.to_dict()
