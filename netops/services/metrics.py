"""
NetOps Console
Metrics: aggregate counters, monthly series and chart breakdowns.

Every function here is pure: it takes the flat row dicts a page service
fetched (``Model.to_dict()`` output) and reduces them.  Each metric is its
own pass over the rows; nothing is cached between calls.

Edge-case policy:
    - percentage() divides by ``total or 1`` so an empty collection yields 0.0
    - monthly series always emit every bucket, zero-filled
    - categorical() counts a fixed label set; unknown values are not drawn
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone

from netops.models.breakdown import (
    ACTIVE_BREAKDOWN_STATUSES,
    BREAKDOWN_SEVERITIES,
    BREAKDOWN_STATUSES,
    BREAKDOWN_TYPES,
)
from netops.models.network import (
    ALERT_SEVERITIES,
    EQUIPMENT_STATUSES,
    SITE_STATUSES,
    USER_ROLES,
)
from netops.utils.helpers import as_utc, parse_datetime


# ── Fixed chart label sets ───────────────────────────────────────────────────
# (value, display label).  Order is the order charts draw the slices in.

SITE_STATUS_LABELS = tuple((s, s.title()) for s in SITE_STATUSES)
EQUIPMENT_STATUS_LABELS = tuple((s, s.title()) for s in EQUIPMENT_STATUSES)
ALERT_SEVERITY_LABELS = tuple((s, s.title()) for s in ALERT_SEVERITIES)
BREAKDOWN_STATUS_LABELS = tuple(
    (s, s.replace("_", " ").title()) for s in BREAKDOWN_STATUSES
)
BREAKDOWN_SEVERITY_LABELS = tuple((s, s.title()) for s in BREAKDOWN_SEVERITIES)
BREAKDOWN_TYPE_LABELS = tuple((t, t.replace("_", " ").title()) for t in BREAKDOWN_TYPES)
USER_ROLE_LABELS = tuple((r, r.title()) for r in USER_ROLES)

MONTH_LABEL_FORMAT = "%b %y"


# ── Scalar helpers ───────────────────────────────────────────────────────────


def _num(value) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _when(value) -> datetime | None:
    """Row timestamp → aware datetime; None when missing or unparsable."""
    try:
        return parse_datetime(value)
    except ValueError:
        return None


def percentage(part, total) -> float:
    """part / total × 100, one decimal.  A zero total yields 0.0."""
    return round(_num(part) / (_num(total) or 1) * 100, 1)


def count_where(rows, field: str, *values) -> int:
    """Count rows whose ``field`` is one of ``values``."""
    return sum(1 for r in rows if r.get(field) in values)


def sum_field(rows, field: str) -> float:
    """Sum ``field`` across rows; missing or non-numeric values count as 0."""
    return sum(_num(r.get(field)) for r in rows)


def categorical(rows, field: str, labels) -> list[dict]:
    """Count rows per fixed label.  Values outside ``labels`` are dropped."""
    return [
        {"key": key, "name": name, "value": count_where(rows, field, key)}
        for key, name in labels
    ]


# ── Monthly buckets ──────────────────────────────────────────────────────────


def month_buckets(now: datetime, months: int = 6) -> list[tuple[datetime, datetime, str]]:
    """Return ``months`` calendar-month buckets ending with the month of ``now``.

    Each bucket is ``(first day 00:00, last day 23:59:59.999999, label)`` in
    the calendar of ``now``'s timezone (UTC when ``now`` is naive), oldest
    first.
    """
    tz = now.tzinfo or timezone.utc
    buckets = []
    for back in range(months - 1, -1, -1):
        index = now.year * 12 + (now.month - 1) - back
        year, month = divmod(index, 12)
        start = datetime(year, month + 1, 1, tzinfo=tz)
        nyear, nmonth = divmod(index + 1, 12)
        end = datetime(nyear, nmonth + 1, 1, tzinfo=tz) - timedelta(microseconds=1)
        buckets.append((start, end, start.strftime(MONTH_LABEL_FORMAT)))
    return buckets


def monthly_series(rows, date_field: str, now: datetime, aggregate, months: int = 6) -> list[dict]:
    """Place each row in the bucket containing ``row[date_field]``.

    ``aggregate`` reduces one bucket's rows to a dict of values; the result
    is ``[{"month": label, **aggregate(bucket_rows)}, ...]`` oldest first,
    including buckets with no rows.
    """
    buckets = month_buckets(now, months)
    tz = buckets[0][0].tzinfo
    grouped: list[list[dict]] = [[] for _ in buckets]
    for row in rows:
        when = _when(row.get(date_field))
        if when is None:
            continue
        when = when.astimezone(tz)
        for i, (start, end, _label) in enumerate(buckets):
            if start <= when <= end:
                grouped[i].append(row)
                break
    return [
        {"month": label, **aggregate(grouped[i])}
        for i, (_start, _end, label) in enumerate(buckets)
    ]


def monthly_energy(rows, now: datetime) -> list[dict]:
    """Consumption and cost per month on ``recorded_at``."""
    return monthly_series(
        rows, "recorded_at", now,
        lambda bucket: {
            "consumption": round(sum_field(bucket, "consumption_kwh"), 2),
            "cost": round(sum_field(bucket, "cost_amount"), 2),
        },
    )


def monthly_breakdowns(rows, now: datetime) -> list[dict]:
    """Breakdowns opened per month on ``created_at`` (maintenance trend)."""
    return monthly_series(
        rows, "created_at", now,
        lambda bucket: {
            "total": len(bucket),
            "resolved": count_where(bucket, "status", "resolved", "closed"),
            "critical": count_where(bucket, "severity", "critical"),
        },
    )


# ═════════════════════════════════════════════════════════════════════════════
# Page aggregates
# ═════════════════════════════════════════════════════════════════════════════


def dashboard_stats(sites, equipment, alerts, breakdowns, energy) -> dict:
    total_sites = len(sites)
    active_sites = count_where(sites, "status", "active")
    total_breakdowns = len(breakdowns)
    active_breakdowns = count_where(breakdowns, "status", *ACTIVE_BREAKDOWN_STATUSES)
    return {
        "total_sites": total_sites,
        "active_sites": active_sites,
        "site_uptime_pct": percentage(active_sites, total_sites),
        "total_equipment": len(equipment),
        "active_alerts": count_where(alerts, "status", "active"),
        "total_breakdowns": total_breakdowns,
        "active_breakdowns": active_breakdowns,
        "total_energy_kwh": round(sum_field(energy, "consumption_kwh"), 2),
        "energy_records": len(energy),
    }


def _resolution_hours(rows) -> float:
    """Mean hours from downtime_start to resolved_at over resolved rows."""
    spans = []
    for row in rows:
        start = _when(row.get("downtime_start"))
        end = _when(row.get("resolved_at"))
        if start and end:
            spans.append((end - start).total_seconds() / 3600)
    if not spans:
        return 0.0
    return round(sum(spans) / len(spans), 1)


def breakdown_stats(rows) -> dict:
    """Stat cards above the breakdowns table."""
    return {
        "total": len(rows),
        "open": count_where(rows, "status", "open"),
        "in_progress": count_where(rows, "status", "in_progress"),
        "critical": count_where(rows, "severity", "critical"),
        "impacted_users": int(sum_field(rows, "impact_users")),
        "avg_resolution_hours": _resolution_hours(rows),
    }


def breakdown_report_stats(rows) -> dict:
    """Breakdowns section of the reports page."""
    total = len(rows)
    active = count_where(rows, "status", *ACTIVE_BREAKDOWN_STATUSES)
    return {
        "total": total,
        "open": count_where(rows, "status", "open"),
        "in_progress": count_where(rows, "status", "investigating", "in_progress"),
        "resolved": count_where(rows, "status", "resolved", "closed"),
        "critical": count_where(rows, "severity", "critical"),
        "active": active,
        "resolution_rate_pct": percentage(total - active, total) if total else 0.0,
        "avg_resolution_hours": _resolution_hours(rows),
        "by_status": categorical(rows, "status", BREAKDOWN_STATUS_LABELS),
        "by_severity": categorical(rows, "severity", BREAKDOWN_SEVERITY_LABELS),
        "by_type": categorical(rows, "type", BREAKDOWN_TYPE_LABELS),
    }


def energy_stats(rows) -> dict:
    total = sum_field(rows, "consumption_kwh")
    return {
        "total_consumption_kwh": round(total, 2),
        "total_cost": round(sum_field(rows, "cost_amount"), 2),
        "average_kwh": round(total / len(rows), 2) if rows else 0.0,
        "records": len(rows),
    }


def energy_by_site(rows, limit: int = 10) -> list[dict]:
    """Per-site consumption, heaviest first, top ``limit``.  Rows without a site are skipped."""
    per_site: dict[str, dict] = {}
    for row in rows:
        site = row.get("sites")
        if not site:
            continue
        entry = per_site.setdefault(
            row.get("site_id"), {"site": site.get("name"), "consumption": 0.0, "cost": 0.0},
        )
        entry["consumption"] += _num(row.get("consumption_kwh"))
        entry["cost"] += _num(row.get("cost_amount"))
    ranked = sorted(per_site.values(), key=lambda e: e["consumption"], reverse=True)
    return [
        {"site": e["site"], "consumption": round(e["consumption"], 2), "cost": round(e["cost"], 2)}
        for e in ranked[:limit]
    ]


def energy_trend(rows, months: int = 6) -> list[dict]:
    """Monthly totals keyed ``YYYY-MM`` for months that have data; last ``months`` kept."""
    grouped: dict[str, dict] = {}
    for row in rows:
        when = _when(row.get("recorded_at"))
        if when is None:
            continue
        key = f"{when.year}-{when.month:02d}"
        entry = grouped.setdefault(key, {"consumption": 0.0, "cost": 0.0, "count": 0})
        entry["consumption"] += _num(row.get("consumption_kwh"))
        entry["cost"] += _num(row.get("cost_amount"))
        entry["count"] += 1
    ordered = OrderedDict(sorted(grouped.items()))
    trend = [
        {
            "month": key,
            "consumption": round(e["consumption"], 2),
            "cost": round(e["cost"], 2),
            "avg_consumption": round(e["consumption"] / e["count"], 2),
        }
        for key, e in ordered.items()
    ]
    return trend[-months:]


def site_stats(rows) -> dict:
    return {
        "total": len(rows),
        "active": count_where(rows, "status", "active"),
        "maintenance": count_where(rows, "status", "maintenance"),
        "inactive": count_where(rows, "status", "inactive", "fault"),
    }


def user_stats(rows, today: date | None = None) -> dict:
    """Users per role plus how many were active (updated or created) today, UTC."""
    today = today or datetime.now(timezone.utc).date()
    active_today = 0
    for row in rows:
        last = _when(row.get("updated_at") or row.get("created_at"))
        if last and last.date() == today:
            active_today += 1
    stats = {"total": len(rows), "active_today": active_today}
    for role, _name in USER_ROLE_LABELS:
        stats[role] = count_where(rows, "role", role)
    return stats


def reports_summary(sites, equipment, alerts, breakdowns, energy) -> dict:
    """Headline totals shared by the reports page and the JSON report export."""
    total_sites = len(sites)
    active_sites = count_where(sites, "status", "active")
    total_equipment = len(equipment)
    operational = count_where(equipment, "status", "operational")
    total_breakdowns = len(breakdowns)
    active_breakdowns = count_where(breakdowns, "status", *ACTIVE_BREAKDOWN_STATUSES)
    return {
        "totalSites": total_sites,
        "activeSites": active_sites,
        "siteAvailabilityPct": percentage(active_sites, total_sites),
        "totalEquipment": total_equipment,
        "operationalEquipment": operational,
        "equipmentHealthPct": percentage(operational, total_equipment),
        "totalAlerts": len(alerts),
        "activeAlerts": count_where(alerts, "status", "active"),
        "totalBreakdowns": total_breakdowns,
        "activeBreakdowns": active_breakdowns,
        "totalEnergyConsumption": round(sum_field(energy, "consumption_kwh"), 2),
        "totalEnergyCost": round(sum_field(energy, "cost_amount"), 2),
        "totalEnergyRecords": len(energy),
    }


# ── Duration display ─────────────────────────────────────────────────────────


def _span(start, end, now):
    start = _when(start)
    if start is None:
        return None
    end = _when(end) or as_utc(now) or datetime.now(timezone.utc)
    return end - start


def format_elapsed(start, end=None, now=None) -> str:
    """``< 1h`` / ``5h`` / ``2d 3h`` between start and end (or now)."""
    span = _span(start, end, now)
    if span is None:
        return "N/A"
    hours = int(span.total_seconds() // 3600)
    if hours < 1:
        return "< 1h"
    if hours < 24:
        return f"{hours}h"
    return f"{hours // 24}d {hours % 24}h"


def format_downtime(start, end=None, now=None) -> str:
    """``3h 12m`` / ``45m`` downtime window; ``N/A`` without a start."""
    span = _span(start, end, now)
    if span is None:
        return "N/A"
    minutes = max(int(span.total_seconds() // 60), 0)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m" if hours else f"{minutes}m"
