"""
NetOps Console
Alert Poller: one coordinated poll loop per alert feed.

Architecture:
    - AlertPoller owns the seen-id set and a request sequence counter
    - issue() tags every fetch; apply() drops any response whose tag is
      older than the latest issued one (last-issued-wins)
    - Newly seen critical alerts fan out to notifiers, best-effort
    - start()/stop() drive poll_once() on a daemon thread

Usage:
    poller = AlertPoller(fetch=lambda: list_alerts(status="active", limit=10),
                         notifiers=[LogNotifier()], interval=30)
    poller.prime(initial_alerts)
    poller.start()
    ...
    poller.stop()
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable

from netops.services.inventory_service import list_alerts

logger = logging.getLogger(__name__)


@dataclass
class PollResult:
    """Alerts from one applied poll and the critical ones not seen before."""
    alerts: list[dict] = field(default_factory=list)
    new_critical: list[dict] = field(default_factory=list)


def new_critical_alerts(alerts: Iterable[dict], seen_ids) -> list[dict]:
    """Critical alerts whose id is not in ``seen_ids``."""
    seen = set(seen_ids or ())
    return [a for a in alerts if a.get("severity") == "critical" and a.get("id") not in seen]


class LogNotifier:
    """Default notifier: one WARNING per newly seen critical alert."""

    def __call__(self, alert: dict) -> None:
        site = (alert.get("sites") or {}).get("name")
        logger.warning(
            "Critical alert: %s", alert.get("title"),
            extra={"alert_id": alert.get("id"), "site": site},
        )


class AlertPoller:
    """Sequence-tagged alert poller.

    Args:
        fetch: Zero-arg callable returning the current alert dicts.
        notifiers: Callables invoked with each new critical alert.
        interval: Seconds between polls when running in the background.
    """

    def __init__(self, fetch: Callable[[], list[dict]], notifiers=(), interval: float = 30):
        self.fetch = fetch
        self.notifiers = list(notifiers)
        self.interval = interval
        self._seen: set = set()
        self._issued = 0
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    # ── Sequencing ───────────────────────────────────────────────────────

    def issue(self) -> int:
        """Tag a new request; later tags supersede earlier ones."""
        with self._lock:
            self._issued += 1
            return self._issued

    @property
    def seen_ids(self) -> frozenset:
        return frozenset(self._seen)

    def prime(self, alerts: Iterable[dict]) -> None:
        """Seed the seen set from an initial load without notifying."""
        with self._lock:
            self._seen = {a.get("id") for a in alerts}

    def apply(self, seq: int, alerts: list[dict]) -> PollResult | None:
        """Apply the response for request ``seq``.

        Returns None (and changes nothing) when a newer request has been
        issued since.
        """
        with self._lock:
            if seq < self._issued:
                logger.debug("Discarding stale alert poll", extra={"seq": seq, "latest": self._issued})
                return None
            fresh = new_critical_alerts(alerts, self._seen)
            self._seen = {a.get("id") for a in alerts}

        for alert in fresh:
            self._notify(alert)
        return PollResult(alerts=list(alerts), new_critical=fresh)

    def _notify(self, alert: dict) -> None:
        for notifier in self.notifiers:
            try:
                notifier(alert)
            except Exception:
                logger.exception("Alert notifier failed", extra={"alert_id": alert.get("id")})

    # ── Polling ──────────────────────────────────────────────────────────

    def poll_once(self) -> PollResult | None:
        seq = self.issue()
        try:
            alerts = self.fetch()
        except Exception:
            logger.exception("Alert fetch failed", extra={"seq": seq})
            # _seen is left as it was
            return PollResult()
        return self.apply(seq, alerts)

    def _run(self) -> None:
        while not self._stop.is_set():
            self.poll_once()
            self._stop.wait(self.interval)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="alert-poller", daemon=True)
        self._thread.start()
        logger.info("Alert poller started", extra={"interval": self.interval})

    def stop(self, timeout: float | None = 5) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Alert poller stopped")

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())


def app_alert_fetch(app, limit: int | None = None) -> Callable[[], list[dict]]:
    """Fetch callable that reads active alerts inside ``app``'s context."""
    limit = limit or app.config.get("ALERT_FEED_LIMIT", 10)

    def fetch() -> list[dict]:
        with app.app_context():
            return list_alerts(status="active", limit=limit)

    return fetch
