"""
Alert poller tests: last-issued-wins sequencing, new-critical detection,
best-effort notifiers and the background thread.
"""

import threading

from netops.services.alert_poller import (
    AlertPoller,
    LogNotifier,
    PollResult,
    app_alert_fetch,
    new_critical_alerts,
)
from netops.services.inventory_service import create_alert


def _alert(aid, severity="critical", title=None):
    return {"id": aid, "severity": severity, "title": title or f"Alert {aid}", "sites": None}


class _Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, alert):
        self.calls.append(alert["id"])


# ── 1. New critical detection ────────────────────────────────────────────────


def test_new_critical_ignores_seen_and_non_critical():
    alerts = [_alert("a"), _alert("b", "warning"), _alert("c")]
    assert [a["id"] for a in new_critical_alerts(alerts, {"a"})] == ["c"]
    assert [a["id"] for a in new_critical_alerts(alerts, None)] == ["a", "c"]


# ── 2. Sequencing ────────────────────────────────────────────────────────────


def test_stale_response_is_discarded():
    rec = _Recorder()
    poller = AlertPoller(fetch=list, notifiers=[rec])
    first = poller.issue()
    second = poller.issue()

    assert poller.apply(first, [_alert("old")]) is None
    assert poller.seen_ids == frozenset()
    assert rec.calls == []

    result = poller.apply(second, [_alert("new")])
    assert isinstance(result, PollResult)
    assert [a["id"] for a in result.new_critical] == ["new"]
    assert rec.calls == ["new"]


def test_latest_response_applies_even_when_it_arrives_first():
    poller = AlertPoller(fetch=list)
    first = poller.issue()
    second = poller.issue()
    assert poller.apply(second, [_alert("x")]) is not None
    assert poller.apply(first, [_alert("y")]) is None
    assert poller.seen_ids == frozenset({"x"})


def test_prime_suppresses_initial_notifications():
    rec = _Recorder()
    poller = AlertPoller(fetch=lambda: [_alert("a"), _alert("b")], notifiers=[rec])
    poller.prime([_alert("a")])

    result = poller.poll_once()
    assert [a["id"] for a in result.new_critical] == ["b"]
    assert rec.calls == ["b"]

    again = poller.poll_once()
    assert again.new_critical == []
    assert rec.calls == ["b"]


def test_alert_that_drops_out_and_returns_is_new_again():
    feeds = iter([[_alert("a")], [], [_alert("a")]])
    rec = _Recorder()
    poller = AlertPoller(fetch=lambda: next(feeds), notifiers=[rec])
    for _ in range(3):
        poller.poll_once()
    assert rec.calls == ["a", "a"]


# ── 3. Failure handling ──────────────────────────────────────────────────────


def test_failing_notifier_does_not_block_others():
    def boom(alert):
        raise RuntimeError("smtp down")

    rec = _Recorder()
    poller = AlertPoller(fetch=lambda: [_alert("a")], notifiers=[boom, rec])
    result = poller.poll_once()
    assert [a["id"] for a in result.new_critical] == ["a"]
    assert rec.calls == ["a"]


def test_fetch_error_yields_empty_result():
    def broken():
        raise ConnectionError("db unreachable")

    poller = AlertPoller(fetch=broken)
    result = poller.poll_once()
    assert result.alerts == []
    assert result.new_critical == []


def test_fetch_error_keeps_seen_alerts():
    outcomes = iter([ConnectionError("db unreachable"), [_alert("a")]])

    def flaky():
        outcome = next(outcomes)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    rec = _Recorder()
    poller = AlertPoller(fetch=flaky, notifiers=[rec])
    poller.prime([_alert("a")])

    poller.poll_once()
    assert poller.seen_ids == frozenset({"a"})
    assert poller.poll_once().new_critical == []
    assert rec.calls == []


def test_log_notifier_emits_warning(caplog):
    with caplog.at_level("WARNING", logger="netops.services.alert_poller"):
        LogNotifier()({"id": "a", "title": "Mains failure", "sites": {"name": "Tunis"}})
    assert "Mains failure" in caplog.text


# ── 4. Background thread ─────────────────────────────────────────────────────


def test_start_polls_until_stopped():
    polled = threading.Event()

    def fetch():
        polled.set()
        return []

    poller = AlertPoller(fetch=fetch, interval=0.01)
    poller.start()
    try:
        assert polled.wait(2)
        assert poller.running
    finally:
        poller.stop()
    assert not poller.running


def test_app_fetch_reads_active_alerts(app):
    create_alert({"title": "Fiber alarm", "severity": "critical"})
    fetch = app_alert_fetch(app, limit=5)
    alerts = fetch()
    assert [a["title"] for a in alerts] == ["Fiber alarm"]
