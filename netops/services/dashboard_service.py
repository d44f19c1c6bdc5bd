"""
NetOps Console
Dashboard Service: page-level read models.

Each page function runs a fixed fan-out of independent fetches and hands
the rows to netops.services.metrics.  A fetch that fails is logged and
treated as an empty collection, so one broken table degrades its cards to
zero instead of failing the whole page.

Pages:
    - get_dashboard()       stat cards + five most recent alerts
    - get_reports()         headline summary, charts, monthly series
    - get_breakdowns_page() breakdown list + stat cards + form choices
    - get_energy_page()     energy list + stats + trend / top-site charts
    - get_sites_page()      site list + status counts
    - get_users_page()      profile list + per-role counts
    - export_snapshot()     every collection, for the report exports
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from netops.models import db
from netops.services import metrics
from netops.services.breakdown_service import list_breakdowns
from netops.services.energy_service import list_energy
from netops.services.inventory_service import (
    list_alerts,
    list_equipment,
    list_profiles,
    list_sites,
)

logger = logging.getLogger(__name__)

RECENT_ALERTS = 5
DASHBOARD_ENERGY_LIMIT = 100


def _safe_fetch(label: str, fetch, *args, **kwargs) -> list[dict]:
    """Run one read; on a database error log it and return ``[]``."""
    try:
        return fetch(*args, **kwargs)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Fetch failed, treating %s as empty", label, extra={"collection": label})
        return []


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════════════
# Pages
# ═════════════════════════════════════════════════════════════════════════════


def get_dashboard() -> dict:
    sites = _safe_fetch("sites", list_sites)
    equipment = _safe_fetch("equipment", list_equipment)
    alerts = _safe_fetch("alerts", list_alerts)
    breakdowns = _safe_fetch("breakdowns", list_breakdowns)
    energy = _safe_fetch("energy", list_energy, limit=DASHBOARD_ENERGY_LIMIT)
    return {
        "stats": metrics.dashboard_stats(sites, equipment, alerts, breakdowns, energy),
        "recent_alerts": alerts[:RECENT_ALERTS],
    }


def _report_row(row: dict, now: datetime) -> dict:
    site = row.get("sites") or {}
    return {
        "id": row.get("id"),
        "title": row.get("title"),
        "type": row.get("type"),
        "severity": row.get("severity"),
        "status": row.get("status"),
        "site_name": site.get("name") or "Unknown Site",
        "site_code": site.get("code") or "N/A",
        "impact_users": row.get("impact_users") or 0,
        "downtime_start": row.get("downtime_start"),
        "resolved_at": row.get("resolved_at"),
        "elapsed": metrics.format_elapsed(row.get("downtime_start"), now=now),
        "resolution_time": (
            metrics.format_elapsed(row.get("downtime_start"), row.get("resolved_at"))
            if row.get("resolved_at") else None
        ),
        "downtime": metrics.format_downtime(
            row.get("downtime_start"), row.get("downtime_end"), now=now,
        ),
    }


def get_reports(now: datetime | None = None) -> dict:
    now = _now(now)
    snapshot = export_snapshot()
    sites, equipment = snapshot["sites"], snapshot["equipment"]
    alerts, breakdowns, energy = snapshot["alerts"], snapshot["breakdowns"], snapshot["energy"]
    return {
        "summary": metrics.reports_summary(sites, equipment, alerts, breakdowns, energy),
        "charts": {
            "site_status": metrics.categorical(sites, "status", metrics.SITE_STATUS_LABELS),
            "equipment_status": metrics.categorical(
                equipment, "status", metrics.EQUIPMENT_STATUS_LABELS,
            ),
            "alert_severity": metrics.categorical(alerts, "severity", metrics.ALERT_SEVERITY_LABELS),
            "monthly_energy": metrics.monthly_energy(energy, now),
            "monthly_breakdowns": metrics.monthly_breakdowns(breakdowns, now),
        },
        "breakdowns": {
            "stats": metrics.breakdown_report_stats(breakdowns),
            "rows": [_report_row(b, now) for b in breakdowns],
        },
    }


def get_breakdowns_page(
    *,
    status: str | None = None,
    severity: str | None = None,
    site_id: str | None = None,
) -> dict:
    breakdowns = _safe_fetch(
        "breakdowns", list_breakdowns, status=status, severity=severity, site_id=site_id,
    )
    return {
        "breakdowns": breakdowns,
        "stats": metrics.breakdown_stats(breakdowns),
        "sites": _safe_fetch("sites", list_sites, status="active"),
        "equipment": _safe_fetch("equipment", list_equipment),
        "users": _safe_fetch("users", list_profiles),
    }


def get_energy_page(*, site_id: str | None = None, limit: int = 100) -> dict:
    records = _safe_fetch("energy", list_energy, site_id=site_id, limit=limit)
    return {
        "records": records,
        "stats": metrics.energy_stats(records),
        "charts": {
            "trend": metrics.energy_trend(records),
            "by_site": metrics.energy_by_site(records),
        },
        "sites": _safe_fetch("sites", list_sites, status="active"),
        "equipment": _safe_fetch("equipment", list_equipment),
    }


def get_sites_page(*, status: str | None = None) -> dict:
    sites = _safe_fetch("sites", list_sites, status=status)
    return {"sites": sites, "stats": metrics.site_stats(sites)}


def get_users_page() -> dict:
    users = _safe_fetch("users", list_profiles)
    return {"users": users, "stats": metrics.user_stats(users)}


def export_snapshot() -> dict:
    """All exportable collections, each fetched independently."""
    return {
        "sites": _safe_fetch("sites", list_sites),
        "equipment": _safe_fetch("equipment", list_equipment),
        "alerts": _safe_fetch("alerts", list_alerts),
        "breakdowns": _safe_fetch("breakdowns", list_breakdowns),
        "energy": _safe_fetch("energy", list_energy, limit=None),
    }
