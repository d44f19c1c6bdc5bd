"""
NetOps Console
Breakdown domain model: network / equipment incident records.

Models:
    - Breakdown: reported outage or failure with status lifecycle and
                 downtime window tracking

Architecture:
    Site ──1:N──▶ Breakdown ◀──N:1── Equipment (optional)
    Profile ──1:N──▶ Breakdown  (reported_by, assigned_to)

Lifecycle states:
    Breakdown:  open → investigating → in_progress → resolved → closed
                investigating → resolved  (fast path)
"""

from datetime import datetime, timezone

from netops.models import _iso, _utcnow, _uuid, db
from netops.utils.duration import encode_fix_time, minutes_to_hours


# ── Constants ────────────────────────────────────────────────────────────────

BREAKDOWN_TYPES = (
    "power_outage", "equipment_failure", "network_issue",
    "connectivity_loss", "software_malfunction", "hardware_defect",
)

BREAKDOWN_SEVERITIES = ("minor", "major", "critical")

BREAKDOWN_PRIORITIES = ("low", "medium", "high", "urgent")

BREAKDOWN_STATUSES = ("open", "investigating", "in_progress", "resolved", "closed")

# Statuses counted as an ongoing outage on dashboards
ACTIVE_BREAKDOWN_STATUSES = ("open", "investigating", "in_progress")


# ── Lifecycle Transition Guards ──────────────────────────────────────────────

BREAKDOWN_TRANSITIONS = {
    "open":          ["investigating"],
    "investigating": ["in_progress", "resolved"],
    "in_progress":   ["resolved"],
    "resolved":      ["closed"],
    "closed":        [],
}


def validate_breakdown_transition(old_status, new_status):
    """Return True if Breakdown status transition is valid."""
    return new_status in BREAKDOWN_TRANSITIONS.get(old_status, [])


def transition_stamps(old_status, new_status, *, downtime_end=None, now=None):
    """Return the timestamp fields written by the ``old_status → new_status`` edge.

    Stamps depend only on the edge taken:
        → investigating   acknowledged_at
        → resolved        resolved_at, downtime_end (only when not already set)
        → closed          closed_at

    Args:
        old_status: Status the record is leaving.
        new_status: Status the record is entering.
        downtime_end: Current downtime_end value of the record.
        now: Clock override (tests).

    Returns:
        Dict of column name → datetime. Empty for edges with no stamp.
    """
    if not validate_breakdown_transition(old_status, new_status):
        return {}
    now = now or datetime.now(timezone.utc)

    if new_status == "investigating":
        return {"acknowledged_at": now}
    if new_status == "resolved":
        stamps = {"resolved_at": now}
        if downtime_end is None:
            stamps["downtime_end"] = now
        return stamps
    if new_status == "closed":
        return {"closed_at": now}
    return {}


# ═════════════════════════════════════════════════════════════════════════════
# Breakdown
# ═════════════════════════════════════════════════════════════════════════════


class Breakdown(db.Model):
    """
    Network breakdown / outage record.
    The estimated fix time is stored as integer minutes; the ``PT<N>H``
    string form only exists on the wire (see netops.utils.duration).
    """

    __tablename__ = "breakdowns"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    site_id = db.Column(
        db.String(36), db.ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    equipment_id = db.Column(
        db.String(36), db.ForeignKey("equipment.id", ondelete="SET NULL"),
        nullable=True,
    )

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    type = db.Column(db.String(30), nullable=False, default="network_issue")
    severity = db.Column(db.String(10), nullable=False, default="major")
    priority = db.Column(db.String(10), nullable=False, default="medium")
    status = db.Column(db.String(20), nullable=False, default="open", index=True)

    impact_users = db.Column(db.Integer, nullable=False, default=0)
    estimated_fix_minutes = db.Column(
        db.Integer, nullable=True,
        comment="Structured estimate; serialized as PT<N>H",
    )

    # People
    reported_by = db.Column(
        db.String(36), db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True,
    )
    assigned_to = db.Column(
        db.String(36), db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True,
    )

    # Lifecycle timestamps
    reported_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    acknowledged_at = db.Column(db.DateTime(timezone=True), nullable=True)
    downtime_start = db.Column(db.DateTime(timezone=True), nullable=True)
    downtime_end = db.Column(db.DateTime(timezone=True), nullable=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    site = db.relationship("Site", lazy="joined")
    equipment = db.relationship("Equipment", lazy="joined")
    reporter = db.relationship("Profile", foreign_keys=[reported_by], lazy="joined")
    assignee = db.relationship("Profile", foreign_keys=[assigned_to], lazy="joined")

    # ── Constraints ──────────────────────────────────────────────────────
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('open','investigating','in_progress','resolved','closed')",
            name="ck_breakdown_status",
        ),
        db.CheckConstraint(
            "severity IN ('minor','major','critical')",
            name="ck_breakdown_severity",
        ),
        db.CheckConstraint(
            "priority IN ('low','medium','high','urgent')",
            name="ck_breakdown_priority",
        ),
        db.CheckConstraint("impact_users >= 0", name="ck_breakdown_impact_users"),
    )

    @property
    def estimated_fix_time(self):
        if self.estimated_fix_minutes is None:
            return None
        return encode_fix_time(minutes_to_hours(self.estimated_fix_minutes))

    def to_dict(self):
        return {
            "id": self.id,
            "site_id": self.site_id,
            "equipment_id": self.equipment_id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "severity": self.severity,
            "priority": self.priority,
            "status": self.status,
            "impact_users": self.impact_users,
            "estimated_fix_time": self.estimated_fix_time,
            "reported_by": self.reported_by,
            "assigned_to": self.assigned_to,
            "reported_at": _iso(self.reported_at),
            "acknowledged_at": _iso(self.acknowledged_at),
            "downtime_start": _iso(self.downtime_start),
            "downtime_end": _iso(self.downtime_end),
            "resolved_at": _iso(self.resolved_at),
            "closed_at": _iso(self.closed_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            # Embedded relations (same shape the list pages render)
            "sites": {"name": self.site.name, "code": self.site.code} if self.site else None,
            "equipment": {"name": self.equipment.name} if self.equipment else None,
            "reported_by_profile": {"full_name": self.reporter.full_name} if self.reporter else None,
            "assigned_to_profile": {"full_name": self.assignee.full_name} if self.assignee else None,
        }

    def __repr__(self):
        return f"<Breakdown {self.id}: [{self.severity}/{self.status}] {self.title[:40]}>"
