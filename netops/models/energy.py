"""
NetOps Console
Energy consumption model.

Models:
    - EnergyRecord: kWh consumed by a site (optionally one device) over a
                    closed period, with optional billed cost
"""

from netops.models import _iso, _utcnow, _uuid, db


class EnergyRecord(db.Model):
    __tablename__ = "energy_consumption"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    site_id = db.Column(
        db.String(36), db.ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    equipment_id = db.Column(
        db.String(36), db.ForeignKey("equipment.id", ondelete="SET NULL"),
        nullable=True,
    )
    consumption_kwh = db.Column(db.Float, nullable=False)
    cost_amount = db.Column(db.Float, nullable=True)
    period_start = db.Column(db.DateTime(timezone=True), nullable=False)
    period_end = db.Column(db.DateTime(timezone=True), nullable=False)
    recorded_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    site = db.relationship("Site", lazy="joined")
    equipment = db.relationship("Equipment", lazy="joined")

    __table_args__ = (
        db.CheckConstraint("consumption_kwh > 0", name="ck_energy_consumption_positive"),
        db.CheckConstraint("period_end > period_start", name="ck_energy_period_order"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "site_id": self.site_id,
            "equipment_id": self.equipment_id,
            "consumption_kwh": self.consumption_kwh,
            "cost_amount": self.cost_amount,
            "period_start": _iso(self.period_start),
            "period_end": _iso(self.period_end),
            "recorded_at": _iso(self.recorded_at),
            "created_at": _iso(self.created_at),
            "sites": {"name": self.site.name, "code": self.site.code} if self.site else None,
            "equipment": {"name": self.equipment.name} if self.equipment else None,
        }

    def __repr__(self):
        return f"<EnergyRecord {self.id}: {self.consumption_kwh} kWh>"
