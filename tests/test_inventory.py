"""
Inventory tests: sites, equipment, alerts, profiles and the energy form
state (site → equipment cascade, automatic cost fill).
"""

import pytest

import netops.services.inventory_service as svc
from netops.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from netops.services.inventory_service import EnergyFormState, equipment_for_site


EQUIPMENT_ROWS = [
    {"id": "e1", "site_id": "s1", "name": "BTS"},
    {"id": "e2", "site_id": "s1", "name": "Router"},
    {"id": "e3", "site_id": "s2", "name": "Generator"},
]


# ── 1. Equipment cascade ─────────────────────────────────────────────────────


def test_equipment_for_site_filters_by_site():
    assert [e["id"] for e in equipment_for_site(EQUIPMENT_ROWS, "s1")] == ["e1", "e2"]


def test_equipment_for_site_empty_without_site():
    assert equipment_for_site(EQUIPMENT_ROWS, "") == []
    assert equipment_for_site(EQUIPMENT_ROWS, None) == []


def test_form_site_change_resets_equipment():
    form = EnergyFormState()
    form.select_site("s1")
    form.select_equipment("e2")
    assert form.equipment_id == "e2"

    form.select_site("s2")
    assert form.equipment_id == "none"
    assert [e["id"] for e in form.equipment_choices(EQUIPMENT_ROWS)] == ["e3"]


def test_form_fills_cost_while_blank():
    form = EnergyFormState()
    form.set_consumption("100")
    assert form.cost_amount == "15.00"


def test_form_cost_follows_configured_tariff(app, monkeypatch):
    monkeypatch.setitem(app.config, "ENERGY_TARIFF_PER_KWH", 0.25)
    form = EnergyFormState()
    form.set_consumption("100")
    assert form.cost_amount == "25.00"


def test_form_explicit_tariff_wins():
    form = EnergyFormState(tariff=0.2)
    form.set_consumption("50")
    assert form.cost_amount == "10.00"


def test_form_does_not_overwrite_entered_cost():
    form = EnergyFormState()
    form.set_cost("12.34")
    form.set_consumption("100")
    assert form.cost_amount == "12.34"


def test_form_keeps_first_derived_cost():
    form = EnergyFormState()
    form.set_consumption("100")
    form.set_consumption("200")
    assert form.cost_amount == "15.00"


def test_form_ignores_non_positive_consumption():
    form = EnergyFormState()
    form.set_consumption("0")
    form.set_consumption("abc")
    assert form.cost_amount == ""


def test_form_payload_maps_none_equipment():
    form = EnergyFormState(period_start="2026-09-01", period_end="2026-09-30")
    form.select_site("s1")
    form.set_consumption(10)
    payload = form.payload()
    assert payload["equipment_id"] is None
    assert payload["cost_amount"] == "1.50"
    assert payload["consumption_kwh"] == "10"


# ── 2. Sites & equipment ─────────────────────────────────────────────────────


def test_create_site_and_duplicate_code():
    svc.create_site({"name": "Bizerte", "code": "BIZ-010"})
    with pytest.raises(ConflictError):
        svc.create_site({"name": "Bizerte 2", "code": "BIZ-010"})


def test_create_site_requires_name_and_code():
    with pytest.raises(ValidationError) as exc:
        svc.create_site({"name": ""})
    assert exc.value.details == {"name": "required", "code": "required"}


def test_site_status_filter(site):
    svc.create_site({"name": "Gabes", "code": "GAB-004", "status": "fault"})
    assert [s["code"] for s in svc.list_sites(status="fault")] == ["GAB-004"]


def test_update_site_rejects_unknown_status(site):
    with pytest.raises(ValidationError):
        svc.update_site(site.id, {"status": "exploded"})


def test_delete_site_cascades_equipment(site, equipment):
    svc.delete_site(site.id)
    assert svc.list_equipment() == []


def test_create_equipment_requires_existing_site():
    with pytest.raises(NotFoundError):
        svc.create_equipment({"site_id": "nope", "name": "BTS"})


def test_list_equipment_by_site(site, equipment):
    other = svc.create_site({"name": "Kairouan", "code": "KAI-005"})
    svc.create_equipment({"site_id": other["id"], "name": "Antenna"})
    assert [e["id"] for e in svc.list_equipment(site_id=site.id)] == [equipment.id]


# ── 3. Alerts ────────────────────────────────────────────────────────────────


def test_alert_acknowledge_then_resolve(site):
    alert = svc.create_alert({"title": "Power low", "severity": "critical", "site_id": site.id})
    assert alert["status"] == "active"

    acked = svc.acknowledge_alert(alert["id"])
    assert acked["status"] == "acknowledged"
    assert acked["acknowledged_at"] is not None

    resolved = svc.resolve_alert(alert["id"])
    assert resolved["status"] == "resolved"
    assert resolved["resolved_at"] is not None


def test_resolved_alert_cannot_be_acknowledged():
    alert = svc.create_alert({"title": "Link flap"})
    svc.resolve_alert(alert["id"])
    with pytest.raises(InvalidTransitionError):
        svc.acknowledge_alert(alert["id"])


def test_alert_severity_validated():
    with pytest.raises(ValidationError):
        svc.create_alert({"title": "x", "severity": "meh"})


def test_alert_title_need_not_be_a_string():
    alert = svc.create_alert({"title": 404, "severity": "warning"})
    assert alert["title"] == "404"


def test_list_alerts_filters_and_limit():
    for i in range(3):
        svc.create_alert({"title": f"A{i}", "severity": "critical"})
    svc.create_alert({"title": "info one", "severity": "info"})
    assert len(svc.list_alerts(severity="critical")) == 3
    assert len(svc.list_alerts(limit=2)) == 2
    assert svc.list_alerts(status="resolved") == []


# ── 4. Profiles ──────────────────────────────────────────────────────────────


def test_only_admin_changes_role(technician):
    with pytest.raises(PermissionError):
        svc.update_profile(technician.id, {"role": "manager"}, actor_role="manager")
    with pytest.raises(PermissionError):
        svc.update_profile(technician.id, {"role": "manager"})

    result = svc.update_profile(technician.id, {"role": "manager"}, actor_role="admin")
    assert result["role"] == "manager"


def test_same_role_is_not_a_role_change(technician):
    result = svc.update_profile(
        technician.id, {"role": "technician", "phone": "+216 70 000 000"}, actor_role="manager",
    )
    assert result["phone"] == "+216 70 000 000"


def test_manager_can_edit_other_fields(technician):
    result = svc.update_profile(technician.id, {"full_name": "Amira B."}, actor_role="manager")
    assert result["full_name"] == "Amira B."


def test_unknown_role_rejected(technician):
    with pytest.raises(ValidationError):
        svc.update_profile(technician.id, {"role": "overlord"}, actor_role="admin")


def test_create_profile_duplicate_email():
    svc.create_profile({"full_name": "A", "email": "ops@netops.test"})
    with pytest.raises(ConflictError):
        svc.create_profile({"full_name": "B", "email": "OPS@netops.test"})


def test_create_profile_coerces_non_string_fields():
    profile = svc.create_profile({"full_name": 42, "email": " NOC@netops.test "})
    assert profile["full_name"] == "42"
    assert profile["email"] == "noc@netops.test"
