"""Estimated-fix-time codec.

Breakdowns store the estimate as integer minutes.  The API and the edit
forms speak an ISO-8601-style duration string, hours only: ``PT4H``,
``PT1.5H``.  Older rows exported by the dashboard may also carry the
composite ``PT2H30M`` form, which parse_fix_time() accepts as well.

parse_fix_time:   wire string → hours (int when whole), None when malformed
encode_fix_time:  hours → wire string
format_fix_time:  wire string → "2h 30m" for display
"""

from __future__ import annotations

import re

_FIX_TIME_RE = re.compile(r"^PT(?:(\d+(?:\.\d+)?)H)?(?:(\d+)M)?$")


def _normalise(hours: float) -> int | float:
    """Return an int for whole-hour values so PT4H round-trips to 4, not 4.0."""
    hours = round(float(hours), 4)
    return int(hours) if hours.is_integer() else hours


def parse_fix_time(value) -> int | float | None:
    """Parse ``PT<N>H`` (or ``PT<h>H<m>M``) into a number of hours.

    Returns None for empty or malformed input; callers decide whether that
    is an error (form submit) or simply ignored (display).
    """
    if not value or not isinstance(value, str):
        return None
    match = _FIX_TIME_RE.match(value.strip().upper())
    if not match or (match.group(1) is None and match.group(2) is None):
        return None
    hours = float(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    return _normalise(hours + minutes / 60)


def encode_fix_time(hours) -> str:
    """Encode a non-negative number of hours as ``PT<N>H``."""
    hours = float(hours)
    if hours < 0:
        raise ValueError("estimated fix time cannot be negative")
    return f"PT{_normalise(hours)}H"


def hours_to_minutes(hours) -> int:
    return int(round(float(hours) * 60))


def minutes_to_hours(minutes: int) -> int | float:
    return _normalise(minutes / 60)


def format_fix_time(value) -> str:
    """Render a wire duration as ``2h 30m``; malformed strings pass through unchanged."""
    if not value:
        return "N/A"
    hours = parse_fix_time(value)
    if hours is None:
        return str(value)
    total_min = hours_to_minutes(hours)
    h, m = divmod(total_min, 60)
    parts = []
    if h:
        parts.append(f"{h}h")
    if m:
        parts.append(f"{m}m")
    return " ".join(parts) or "0m"
