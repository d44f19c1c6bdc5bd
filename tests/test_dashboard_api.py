"""
Page, inventory, export and health endpoint tests.

Covers the read models served to the dashboard, reports, energy, sites and
users pages, including degradation to zeroed cards when a fetch fails.
"""

import io
import logging
from datetime import datetime, timezone

import pytest
from flask import g
from openpyxl import load_workbook
from sqlalchemy.exc import OperationalError

import netops.services.dashboard_service as dashboard_service
from netops import limiter
from netops.middleware.logging_config import RequestContextFilter
from netops.services.breakdown_service import report_breakdown, transition_breakdown
from netops.services.energy_service import record_energy
from netops.services.inventory_service import create_alert


def _broken(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("table locked"))


def _seed(site, equipment):
    report_breakdown({"title": "Mains failure", "site_id": site.id, "severity": "critical"})
    bid = report_breakdown({"title": "Fan alarm", "site_id": site.id, "severity": "minor"})["id"]
    transition_breakdown(bid, "investigating")
    transition_breakdown(bid, "resolved")
    create_alert({"title": "Battery low", "severity": "critical", "site_id": site.id})
    record_energy({
        "site_id": site.id, "equipment_id": equipment.id, "consumption_kwh": 250,
        "period_start": "2026-09-01", "period_end": "2026-09-30",
    })


# ── 1. Dashboard ─────────────────────────────────────────────────────────────


def test_dashboard_empty_database(client):
    res = client.get("/api/v1/dashboard")
    assert res.status_code == 200
    stats = res.get_json()["stats"]
    assert stats["total_sites"] == 0
    assert stats["site_uptime_pct"] == 0.0
    assert res.get_json()["recent_alerts"] == []


def test_dashboard_counts(client, site, equipment):
    _seed(site, equipment)
    body = client.get("/api/v1/dashboard").get_json()
    stats = body["stats"]
    assert stats["total_sites"] == 1
    assert stats["site_uptime_pct"] == 100.0
    assert stats["active_alerts"] == 1
    assert stats["total_breakdowns"] == 2
    assert stats["active_breakdowns"] == 1
    assert stats["total_energy_kwh"] == 250
    assert len(body["recent_alerts"]) == 1


def test_dashboard_degrades_when_a_fetch_fails(client, site, equipment, monkeypatch):
    _seed(site, equipment)
    monkeypatch.setattr(dashboard_service, "list_sites", _broken)
    res = client.get("/api/v1/dashboard")
    assert res.status_code == 200
    stats = res.get_json()["stats"]
    assert stats["total_sites"] == 0
    assert stats["site_uptime_pct"] == 0.0
    assert stats["total_breakdowns"] == 2


# ── 2. Reports ───────────────────────────────────────────────────────────────


def test_reports_page_shape(client, site, equipment):
    _seed(site, equipment)
    body = client.get("/api/v1/reports").get_json()
    assert body["summary"]["totalBreakdowns"] == 2
    assert body["summary"]["totalEnergyRecords"] == 1
    assert len(body["charts"]["monthly_energy"]) == 6
    assert len(body["charts"]["monthly_breakdowns"]) == 6
    assert body["charts"]["monthly_breakdowns"][-1]["total"] == 2
    assert [c["key"] for c in body["charts"]["alert_severity"]] == ["info", "warning", "critical"]
    assert body["breakdowns"]["stats"]["resolution_rate_pct"] == 50.0
    rows = {r["title"]: r for r in body["breakdowns"]["rows"]}
    assert rows["Fan alarm"]["resolution_time"] is not None
    assert rows["Mains failure"]["site_code"] == site.code


def test_reports_row_defaults_for_missing_site():
    now = datetime(2026, 10, 18, tzinfo=timezone.utc)
    row = dashboard_service._report_row({"id": "x", "sites": None}, now)
    assert row["site_name"] == "Unknown Site"
    assert row["site_code"] == "N/A"
    assert row["elapsed"] == "N/A"
    assert row["downtime"] == "N/A"


def test_reports_with_every_fetch_failing(client, monkeypatch):
    for name in ("list_sites", "list_equipment", "list_alerts", "list_breakdowns", "list_energy"):
        monkeypatch.setattr(dashboard_service, name, _broken)
    res = client.get("/api/v1/reports")
    assert res.status_code == 200
    assert res.get_json()["summary"]["totalSites"] == 0


# ── 3. Energy / sites / users pages ──────────────────────────────────────────


def test_energy_page(client, site, equipment):
    _seed(site, equipment)
    body = client.get("/api/v1/energy").get_json()
    assert body["stats"]["records"] == 1
    assert body["stats"]["total_cost"] == 37.5
    assert body["charts"]["by_site"][0]["site"] == site.name
    assert len(body["charts"]["trend"]) == 1


def test_energy_post_validation_is_400(client, site):
    res = client.post("/api/v1/energy", json={
        "site_id": site.id, "consumption_kwh": 10,
        "period_start": "2026-09-02", "period_end": "2026-09-01",
    })
    assert res.status_code == 400
    assert res.get_json()["error"] == "Period end date must be after period start date"


def test_sites_page_counts(client, site):
    client.post("/api/v1/sites", json={"name": "Gafsa", "code": "GAF-006", "status": "fault"})
    body = client.get("/api/v1/sites").get_json()
    assert body["stats"] == {"total": 2, "active": 1, "maintenance": 0, "inactive": 1}


def test_duplicate_site_code_is_409(client, site):
    res = client.post("/api/v1/sites", json={"name": "Dup", "code": site.code})
    assert res.status_code == 409
    assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"


def test_users_page_requires_admin_or_manager(client, technician, manager):
    assert client.get("/api/v1/users", headers={"X-User-Id": technician.id}).status_code == 403
    res = client.get("/api/v1/users", headers={"X-User-Id": manager.id})
    assert res.status_code == 200
    stats = res.get_json()["stats"]
    assert stats["total"] == 2
    assert stats["active_today"] == 2
    assert stats["technician"] == 1


def test_manager_cannot_change_role(client, technician, manager):
    res = client.put(
        f"/api/v1/users/{technician.id}", json={"role": "admin"},
        headers={"X-User-Id": manager.id},
    )
    assert res.status_code == 403


def test_admin_changes_role(client, technician, admin):
    res = client.put(
        f"/api/v1/users/{technician.id}", json={"role": "engineer"},
        headers={"X-User-Id": admin.id},
    )
    assert res.status_code == 200
    assert res.get_json()["role"] == "engineer"


def test_alert_feed_reports_unseen_critical(client, site):
    first = create_alert({"title": "Door open", "severity": "critical", "site_id": site.id})
    second = create_alert({"title": "Temp high", "severity": "critical", "site_id": site.id})
    body = client.get(f"/api/v1/alerts/feed?seen={first['id']}").get_json()
    assert [a["id"] for a in body["new_critical"]] == [second["id"]]
    assert set(body["seen"]) == {first["id"], second["id"]}


def test_alert_double_resolve_is_422(client):
    alert = create_alert({"title": "Link flap"})
    assert client.post(f"/api/v1/alerts/{alert['id']}/resolve").status_code == 200
    assert client.post(f"/api/v1/alerts/{alert['id']}/resolve").status_code == 422


# ── 4. Exports ───────────────────────────────────────────────────────────────


def test_csv_export_attachment(client, site):
    res = client.get("/api/v1/export/sites.csv")
    assert res.status_code == 200
    assert res.headers["Content-Disposition"].startswith("attachment; filename=sites-")
    assert site.code in res.get_data(as_text=True)


def test_csv_export_empty_is_400(client):
    res = client.get("/api/v1/export/breakdowns.csv")
    assert res.status_code == 400
    assert res.get_json()["error"] == "No data to export"


def test_csv_export_unknown_collection_is_404(client):
    assert client.get("/api/v1/export/passwords.csv").status_code == 404


def test_json_report_export(client, site, equipment):
    _seed(site, equipment)
    res = client.get("/api/v1/export/report.json")
    assert res.status_code == 200
    assert "telecom-report-" in res.headers["Content-Disposition"]
    body = res.get_json()
    assert body["summary"]["totalSites"] == 1
    assert len(body["breakdowns"]) == 2


def test_xlsx_report_export(client, site, equipment):
    _seed(site, equipment)
    res = client.get("/api/v1/export/report.xlsx")
    assert res.status_code == 200
    assert res.headers["Content-Disposition"].endswith(".xlsx")
    wb = load_workbook(io.BytesIO(res.data))
    assert "Breakdowns" in wb.sheetnames


# ── 5. Health & middleware ───────────────────────────────────────────────────


def test_health_ready(client):
    res = client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.get_json() == {"status": "ok"}


def test_health_live_reports_dependencies(client):
    body = client.get("/api/v1/health/live").get_json()
    assert body["status"] == "ok"
    assert body["checks"]["database"]["status"] == "ok"
    assert body["checks"]["schema"]["status"] == "ok"
    assert body["checks"]["rate_limit_storage"]["backend"] == "memory"


def test_health_db_diag_counts_tables(client, site, equipment):
    body = client.get("/api/v1/health/db-diag").get_json()
    assert body["sites"] == {"status": "ok", "count": 1}
    assert body["equipment"]["count"] == 1
    assert body["breakdowns"]["count"] == 0


def test_request_id_is_echoed(client):
    res = client.get("/api/v1/health/ready", headers={"X-Request-ID": "abc123"})
    assert res.headers["X-Request-ID"] == "abc123"
    assert "X-Request-Duration-Ms" in res.headers


@pytest.mark.parametrize("path", ["/api/v1/nope", "/api/v1/breakdowns/x/y/z"])
def test_unknown_route_is_json_404(client, path):
    res = client.get(path)
    assert res.status_code == 404
    assert res.get_json()["code"] == "ERR_NOT_FOUND"


def test_request_id_generated_when_absent(client):
    res = client.get("/api/v1/health/ready")
    assert len(res.headers["X-Request-ID"]) == 12


def test_log_records_pick_up_request_context(app):
    record = logging.LogRecord("netops.test", logging.INFO, __file__, 1, "msg", None, None)
    with app.test_request_context("/api/v1/dashboard"):
        g.request_id = "req-42"
        g.user_id = "u-1"
        assert RequestContextFilter().filter(record) is True
    assert record.request_id == "req-42"
    assert record.user_id == "u-1"


def test_write_rate_limit_returns_429(app, client, monkeypatch):
    monkeypatch.setitem(app.config, "WRITE_RATE_LIMIT", "2/minute")
    limiter.reset()
    try:
        for _ in range(2):
            assert client.post("/api/v1/breakdowns", json={}).status_code == 400
        res = client.post("/api/v1/breakdowns", json={})
        assert res.status_code == 429
        assert res.get_json()["code"] == "ERR_RATE_LIMITED"

        # reads on a write blueprint and health checks are not counted
        assert client.get("/api/v1/breakdowns").status_code == 200
        assert client.get("/api/v1/health/ready").status_code == 200
    finally:
        limiter.reset()


def test_rate_limit_is_counted_per_operator(app, client, technician, manager, monkeypatch):
    monkeypatch.setitem(app.config, "WRITE_RATE_LIMIT", "1/minute")
    limiter.reset()
    try:
        tech = {"X-User-Id": technician.id}
        assert client.post("/api/v1/breakdowns", json={}, headers=tech).status_code == 400
        assert client.post("/api/v1/breakdowns", json={}, headers=tech).status_code == 429
        res = client.post("/api/v1/breakdowns", json={}, headers={"X-User-Id": manager.id})
        assert res.status_code == 400
    finally:
        limiter.reset()
