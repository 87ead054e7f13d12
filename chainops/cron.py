"""Cron schedule projection.

Maintenance schedules arrive as 6-field cron strings
(``second minute hour day-of-month month day-of-week``). This module answers
"when does this fire next?" for display purposes.

Only second, minute, hour and day-of-week are evaluated. Day-of-month and
month are accepted but ignored, and a wildcard minute or hour keeps the
current value rather than expanding to every value. The projection matches
what operators have always been shown; it is not a general cron evaluator.

Only plain integers count as concrete values. Ranges (``1-5``), lists
(``1,3``) and steps (``*/5``) are treated like ``*``, not read by their leading
number. Out-of-range values are dropped rather than carried over: a second
above 59 becomes 0 instead of rolling into the next minute, and an
out-of-range minute, hour or weekday behaves like ``*``.

Nothing here raises: malformed input means "unscheduled" (None, or
UNSCHEDULED_SORT_KEY for sort keys).
"""

from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass

from .constants import CRON_FIELD_COUNT, UNSCHEDULED_SORT_KEY
from .utils import utc_now


@dataclass(frozen=True)
class CronFields:
    """Raw tokens of a 6-field cron expression."""

    second: str
    minute: str
    hour: str
    day_of_month: str
    month: str
    day_of_week: str


@dataclass(frozen=True)
class ScheduleProjection:
    """Next run of a schedule relative to a reference time."""

    next_run: dt.datetime
    sort_key: int


def parse_cron(expression: str | None) -> CronFields | None:
    """Split a cron expression into its six fields, or None if malformed."""
    if not expression or not isinstance(expression, str):
        return None
    parts = expression.split()
    if len(parts) != CRON_FIELD_COUNT:
        return None
    return CronFields(*parts)


def _int_field(token: str) -> int | None:
    """Return the integer value of a concrete field, None for '*' or junk."""
    if token.isascii() and token.isdigit():
        return int(token)
    return None


def _as_utc(now: dt.datetime | None) -> dt.datetime:
    if now is None:
        return utc_now()
    if now.tzinfo is None:
        return now.replace(tzinfo=dt.UTC)
    return now.astimezone(dt.UTC)


def _cron_weekday(value: dt.datetime) -> int:
    """Cron weekday numbering: 0=Sunday .. 6=Saturday."""
    return (value.weekday() + 1) % 7


def compute_next_run(schedule: str | None, now: dt.datetime | None = None) -> dt.datetime | None:
    """Return the next time the schedule fires, strictly after ``now``.

    Args:
        schedule: 6-field cron expression
        now: Reference time (naive values are treated as UTC; default: current time)

    Returns:
        Aware UTC datetime, or None when the schedule is missing or malformed
    """
    fields = parse_cron(schedule)
    if fields is None:
        return None

    now = _as_utc(now)

    second = _int_field(fields.second)
    if second is None or second > 59:
        second = 0
    candidate = now.replace(second=second, microsecond=0)

    minute = _int_field(fields.minute)
    if minute is not None and minute <= 59:
        candidate = candidate.replace(minute=minute)

    hour = _int_field(fields.hour)
    if hour is not None and hour <= 23:
        candidate = candidate.replace(hour=hour)

    day_of_week = _int_field(fields.day_of_week)
    if day_of_week is not None and day_of_week <= 7:
        # 0 and 7 are both Sunday
        target = 0 if day_of_week == 7 else day_of_week
        days_ahead = (target - _cron_weekday(candidate)) % 7
        if days_ahead == 0 and candidate <= now:
            days_ahead = 7
        candidate += dt.timedelta(days=days_ahead)
    elif candidate <= now:
        candidate += dt.timedelta(days=1)

    return candidate


def compute_sort_key(schedule: str | None) -> int:
    """Return ``day_of_week * 100 + hour`` for ordering schedules without a clock.

    This is a heuristic: it does not match real next-run ordering across a
    week boundary. Missing or malformed schedules sort last.
    """
    fields = parse_cron(schedule)
    if fields is None:
        return UNSCHEDULED_SORT_KEY
    hour = _int_field(fields.hour) or 0
    day_of_week = _int_field(fields.day_of_week) or 0
    return day_of_week * 100 + hour


def project(schedule: str | None, now: dt.datetime | None = None) -> ScheduleProjection | None:
    """Return next run and sort key together, or None when unscheduled."""
    next_run = compute_next_run(schedule, now)
    if next_run is None:
        return None
    return ScheduleProjection(next_run=next_run, sort_key=compute_sort_key(schedule))


def format_for_display(
    schedule: str | None,
    now: dt.datetime | None = None,
    *,
    tz: dt.tzinfo | None = None,
) -> str | None:
    """Render the next run as '03:00 AM, Monday, 06 Oct' in the viewer's timezone.

    Args:
        schedule: 6-field cron expression
        now: Reference time (default: current time)
        tz: Display timezone (default: the local timezone)
    """
    next_run = compute_next_run(schedule, now)
    if next_run is None:
        return None
    local = next_run.astimezone(tz)
    return f"{local:%I:%M %p}, {local:%A}, {local:%d %b}"


def format_relative(next_run: dt.datetime, now: dt.datetime | None = None) -> str:
    """Return 'in 45m', 'in 5h' or 'in 2d' for an upcoming run."""
    delta_s = (next_run - _as_utc(now)).total_seconds()
    minutes = math.floor(delta_s / 60)
    if minutes < 60:
        return f"in {minutes}m"
    hours = math.floor(delta_s / 3600)
    if hours < 24:
        return f"in {hours}h"
    return f"in {math.floor(delta_s / 86400)}d"
