"""
Breakdown API tests: HTTP status mapping and role checks.

    201 report · 200 read/edit/transition · 204 delete
    400 validation · 404 unknown · 409 stale expected_status · 422 bad edge
    403 X-User-Id naming an unknown profile
"""

from netops.models import db as _db
from netops.models.network import Profile


BASE = "/api/v1/breakdowns"


def _post(client, site, headers=None, **overrides):
    body = {"title": "Microwave link down", "site_id": site.id, "severity": "major"}
    body.update(overrides)
    return client.post(BASE, json=body, headers=headers or {})


# ── 1. Create / read / delete ────────────────────────────────────────────────


def test_report_returns_201(client, site):
    res = _post(client, site)
    assert res.status_code == 201
    data = res.get_json()
    assert data["status"] == "open"
    assert data["downtime_start"] is not None


def test_report_records_reporter_from_header(client, site, technician):
    res = _post(client, site, headers={"X-User-Id": technician.id})
    assert res.status_code == 201
    assert res.get_json()["reported_by"] == technician.id
    assert res.get_json()["reported_by_profile"] == {"full_name": technician.full_name}


def test_report_missing_site_is_400(client):
    res = client.post(BASE, json={"title": "No site"})
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"


def test_report_bad_severity_is_400(client, site):
    res = _post(client, site, severity="apocalyptic")
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"


def test_get_unknown_is_404(client):
    res = client.get(f"{BASE}/missing")
    assert res.status_code == 404
    assert res.get_json()["code"] == "ERR_NOT_FOUND"


def test_delete_returns_204(client, site):
    bid = _post(client, site).get_json()["id"]
    assert client.delete(f"{BASE}/{bid}").status_code == 204
    assert client.get(f"{BASE}/{bid}").status_code == 404


def test_list_page_includes_stats_and_choices(client, site, equipment, technician):
    _post(client, site, severity="critical", impact_users=200)
    _post(client, site)
    res = client.get(BASE)
    assert res.status_code == 200
    page = res.get_json()
    assert page["total"] == 2
    assert page["stats"]["critical"] == 1
    assert page["stats"]["impacted_users"] == 200
    assert [s["id"] for s in page["sites"]] == [site.id]
    assert [e["id"] for e in page["equipment"]] == [equipment.id]
    assert [u["id"] for u in page["users"]] == [technician.id]


def test_list_filters(client, site):
    _post(client, site, severity="critical")
    _post(client, site, severity="minor")
    assert client.get(f"{BASE}?severity=minor").get_json()["total"] == 1
    assert client.get(f"{BASE}?status=bogus").status_code == 400


# ── 2. Lifecycle over HTTP ───────────────────────────────────────────────────


def test_transition_walks_the_lifecycle(client, site):
    bid = _post(client, site).get_json()["id"]
    for old, new in (("open", "investigating"), ("investigating", "resolved"), ("resolved", "closed")):
        res = client.post(f"{BASE}/{bid}/transition", json={"status": new, "expected_status": old})
        assert res.status_code == 200, res.get_json()
        assert res.get_json()["status"] == new
    final = client.get(f"{BASE}/{bid}").get_json()
    assert all(final[f] for f in ("acknowledged_at", "resolved_at", "downtime_end", "closed_at"))


def test_transition_invalid_edge_is_422(client, site):
    bid = _post(client, site).get_json()["id"]
    res = client.post(f"{BASE}/{bid}/transition", json={"status": "closed"})
    assert res.status_code == 422
    body = res.get_json()
    assert body["code"] == "ERR_INVALID_TRANSITION"
    assert body["details"]["allowed"] == ["investigating"]


def test_transition_stale_expected_status_is_409(client, site):
    bid = _post(client, site).get_json()["id"]
    client.post(f"{BASE}/{bid}/transition", json={"status": "investigating"})
    res = client.post(
        f"{BASE}/{bid}/transition", json={"status": "investigating", "expected_status": "open"},
    )
    assert res.status_code == 409
    assert res.get_json()["code"] == "ERR_CONFLICT_STATE"


def test_transition_without_status_is_400(client, site):
    bid = _post(client, site).get_json()["id"]
    res = client.post(f"{BASE}/{bid}/transition", json={})
    assert res.status_code == 400


def test_transition_unknown_breakdown_is_404(client):
    res = client.post(f"{BASE}/missing/transition", json={"status": "investigating"})
    assert res.status_code == 404


def test_edit_returns_200(client, site):
    bid = _post(client, site).get_json()["id"]
    res = client.put(f"{BASE}/{bid}", json={"priority": "high", "estimated_fix_time": "PT2H"})
    assert res.status_code == 200
    assert res.get_json()["priority"] == "high"
    assert res.get_json()["estimated_fix_time"] == "PT2H"


def test_edit_empty_body_is_400(client, site):
    bid = _post(client, site).get_json()["id"]
    assert client.put(f"{BASE}/{bid}", json={}).status_code == 400


def test_edit_skipping_stage_is_422(client, site):
    bid = _post(client, site).get_json()["id"]
    assert client.put(f"{BASE}/{bid}", json={"status": "resolved"}).status_code == 422


# ── 3. Roles ─────────────────────────────────────────────────────────────────


def test_report_without_identity_passes_through(client, site):
    assert _post(client, site).status_code == 201


def test_report_with_unknown_profile_is_403(client, site):
    res = _post(client, site, headers={"X-User-Id": "ghost"})
    assert res.status_code == 403
    assert res.get_json()["code"] == "ERR_FORBIDDEN"


def test_every_operator_role_can_report(client, site, technician, admin, manager):
    engineer = Profile(full_name="Field Engineer", email="engineer@netops.test", role="engineer")
    _db.session.add(engineer)
    _db.session.commit()
    for profile in (technician, admin, manager, engineer):
        res = _post(client, site, headers={"X-User-Id": profile.id})
        assert res.status_code == 201, profile.role
