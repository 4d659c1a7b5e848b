"""
Opening-hours evaluation.

Schedule entries are ``"Closed"``, ``"24/7"`` or comma-separated same-day
ranges such as ``"08:00-14:00, 17:00-23:00"``. Ranges never wrap past
midnight; ``22:00-02:00`` must be stored as two ranges.
"""
from __future__ import annotations

from datetime import datetime

from .models import OpenState, Weekday, WeeklySchedule

CLOSED_ENTRY = "closed"
ALWAYS_OPEN_ENTRY = "24/7"


def _clock_seconds(value: str) -> int | None:
    """Parse ``HH:MM`` into seconds since midnight, or ``None`` if malformed."""
    hour, sep, minute = value.strip().partition(":")
    if not sep:
        return None
    try:
        h, m = int(hour), int(minute)
    except ValueError:
        return None
    if not (0 <= h <= 24 and 0 <= m < 60):
        return None
    return h * 3600 + m * 60


def parse_ranges(entry: str) -> list[tuple[int, int]]:
    """Return the well-formed ``(start, end)`` second ranges of a schedule entry."""
    ranges: list[tuple[int, int]] = []
    for raw in entry.split(","):
        start, sep, end = raw.strip().partition("-")
        if not sep or not start.strip() or not end.strip():
            continue
        start_s = _clock_seconds(start)
        end_s = _clock_seconds(end)
        if start_s is None or end_s is None:
            continue
        ranges.append((start_s, end_s))
    return ranges


def is_open_at(schedule: WeeklySchedule | None, timestamp: datetime) -> OpenState:
    if schedule is None:
        return OpenState.unknown

    entry = schedule.entry(Weekday.of(timestamp)).strip()
    if entry.lower() == CLOSED_ENTRY:
        return OpenState.closed
    if entry == ALWAYS_OPEN_ENTRY:
        return OpenState.open

    now_s = timestamp.hour * 3600 + timestamp.minute * 60 + timestamp.second
    for start_s, end_s in parse_ranges(entry):
        if start_s <= now_s <= end_s:
            return OpenState.open
    return OpenState.closed
