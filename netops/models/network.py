"""
NetOps Console
Network inventory models: sites, equipment, operator profiles, alerts.

Models:
    - Site:       cell tower / network site
    - Equipment:  monitored device installed at a site
    - Profile:    operator account (role-based access)
    - Alert:      monitoring alert raised against a site / device

Architecture:
    Site ──1:N──▶ Equipment
    Site ──1:N──▶ Alert
    Site ──1:N──▶ Breakdown, EnergyRecord   (see breakdown.py / energy.py)

Lifecycle states:
    Alert:  active → acknowledged → resolved   |  active → resolved
"""

from netops.models import _iso, _utcnow, _uuid, db


# ── Constants ────────────────────────────────────────────────────────────────

SITE_STATUSES = ("active", "maintenance", "inactive", "fault")

EQUIPMENT_STATUSES = ("operational", "maintenance", "faulty", "offline")

USER_ROLES = ("admin", "manager", "engineer", "technician")

ALERT_SEVERITIES = ("info", "warning", "critical")

ALERT_STATUSES = ("active", "acknowledged", "resolved")

ALERT_TRANSITIONS = {
    "active":       ["acknowledged", "resolved"],
    "acknowledged": ["resolved"],
    "resolved":     [],
}


def validate_alert_transition(old_status, new_status):
    """Return True if Alert status transition is valid."""
    return new_status in ALERT_TRANSITIONS.get(old_status, [])


# ═════════════════════════════════════════════════════════════════════════════
# 1. Site
# ═════════════════════════════════════════════════════════════════════════════


class Site(db.Model):
    """Network site. ``code`` is the operator-facing unique identifier."""

    __tablename__ = "sites"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    code = db.Column(db.String(30), nullable=False, unique=True)
    status = db.Column(db.String(20), nullable=False, default="active")
    type = db.Column(db.String(50), default="")
    region = db.Column(db.String(100), default="")
    address = db.Column(db.String(300), default="")
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    equipment = db.relationship(
        "Equipment", backref="site", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('active','maintenance','inactive','fault')",
            name="ck_site_status",
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "status": self.status,
            "type": self.type,
            "region": self.region,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Site {self.code}: {self.name}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. Equipment
# ═════════════════════════════════════════════════════════════════════════════


class Equipment(db.Model):
    __tablename__ = "equipment"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    site_id = db.Column(
        db.String(36), db.ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(50), default="")
    status = db.Column(db.String(20), nullable=False, default="operational")
    serial_number = db.Column(db.String(100), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('operational','maintenance','faulty','offline')",
            name="ck_equipment_status",
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "site_id": self.site_id,
            "name": self.name,
            "type": self.type,
            "status": self.status,
            "serial_number": self.serial_number,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Equipment {self.id}: {self.name} [{self.status}]>"


# ═════════════════════════════════════════════════════════════════════════════
# 3. Profile
# ═════════════════════════════════════════════════════════════════════════════


class Profile(db.Model):
    """
    Operator profile. Authentication lives outside this service; the
    profile only carries the role used for row-level checks.
    """

    __tablename__ = "profiles"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    full_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    role = db.Column(db.String(20), nullable=False, default="technician")
    region = db.Column(db.String(100), default="")
    phone = db.Column(db.String(50), default="")

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.CheckConstraint(
            "role IN ('admin','manager','engineer','technician')",
            name="ck_profile_role",
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role,
            "region": self.region,
            "phone": self.phone,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Profile {self.email} [{self.role}]>"


# ═════════════════════════════════════════════════════════════════════════════
# 4. Alert
# ═════════════════════════════════════════════════════════════════════════════


class Alert(db.Model):
    __tablename__ = "alerts"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    site_id = db.Column(
        db.String(36), db.ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )
    equipment_id = db.Column(
        db.String(36), db.ForeignKey("equipment.id", ondelete="SET NULL"),
        nullable=True,
    )
    title = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, default="")
    severity = db.Column(db.String(20), nullable=False, default="info")
    status = db.Column(db.String(20), nullable=False, default="active", index=True)
    type = db.Column(db.String(50), default="")
    acknowledged_at = db.Column(db.DateTime(timezone=True), nullable=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)

    site = db.relationship("Site", lazy="joined")
    equipment = db.relationship("Equipment", lazy="joined")

    __table_args__ = (
        db.CheckConstraint(
            "severity IN ('info','warning','critical')",
            name="ck_alert_severity",
        ),
        db.CheckConstraint(
            "status IN ('active','acknowledged','resolved')",
            name="ck_alert_status",
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "site_id": self.site_id,
            "equipment_id": self.equipment_id,
            "title": self.title,
            "message": self.message,
            "severity": self.severity,
            "status": self.status,
            "type": self.type,
            "acknowledged_at": _iso(self.acknowledged_at),
            "resolved_at": _iso(self.resolved_at),
            "created_at": _iso(self.created_at),
            "sites": {"name": self.site.name} if self.site else None,
            "equipment": {"name": self.equipment.name} if self.equipment else None,
        }

    def __repr__(self):
        return f"<Alert {self.id}: [{self.severity}] {self.title[:40]}>"
