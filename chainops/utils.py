"""ChainOps utility functions."""

from __future__ import annotations

import datetime as dt
import os
from pathlib import Path

from .constants import CONSOLE_LOG_FILE_NAME, DB_FILE_NAME, STATE_DIR_ENV_VAR, STATE_DIR_NAME


def utc_now() -> dt.datetime:
    """Return the current time as an aware UTC datetime."""
    return dt.datetime.now(dt.UTC)


def utc_now_iso() -> str:
    """Return current UTC time in ISO format without microseconds."""
    return utc_now().replace(microsecond=0).isoformat()


def parse_ts(ts_value: str | None) -> dt.datetime | None:
    """Parse an ISO timestamp, assuming UTC when no offset is given.

    Returns None for empty or unparseable values.
    """
    if not ts_value:
        return None
    try:
        parsed = dt.datetime.fromisoformat(ts_value)
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return parsed


def age_seconds(ts_value: str | None, *, now: dt.datetime | None = None) -> int | None:
    """Return age in seconds for an ISO timestamp."""
    parsed = parse_ts(ts_value)
    if parsed is None:
        return None
    now = now or utc_now()
    return max(int((now - parsed).total_seconds()), 0)


def humanize_duration(seconds_value: int | None, *, min_unit: str = "s") -> str:
    """Return a humanized duration from seconds.

    Args:
        seconds_value: Duration in seconds
        min_unit: Minimum unit to display ("s" for seconds, "m" for minutes).
                  If "m" and value < 60s, shows "<1m" instead of seconds.
    """
    if seconds_value is None:
        return "-"
    seconds_value = max(seconds_value, 0)
    if seconds_value < 60:
        if min_unit == "m":
            return "<1m"
        return f"{seconds_value}s"
    minutes, seconds = divmod(seconds_value, 60)
    if minutes < 60:
        return f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    if hours < 24:
        return f"{hours}h {minutes:02d}m"
    days, hours = divmod(hours, 24)
    return f"{days}d {hours:02d}h"


def format_time_ago(ts_value: str | None, *, now: dt.datetime | None = None) -> str:
    """Return 'Just now', '5m ago', '3h ago', '2d ago' or 'Never'."""
    age = age_seconds(ts_value, now=now)
    if age is None:
        return "Never"
    minutes = age // 60
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def format_block_height(height: int | None) -> str:
    """Format a block height with thousands separators."""
    if height is None:
        return "N/A"
    return f"{height:,}"


BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(size: int | None) -> str:
    """Format a byte count in 1024 steps with at most one decimal: 1536 -> '1.5 KB'."""
    if not size or size < 0:
        return "0 B"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(BYTE_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.1f}".removesuffix(".0")
    return f"{text} {BYTE_UNITS[unit]}"


def format_name(name: str) -> str:
    """Turn 'osmosis-mainnet-1' into 'Osmosis Mainnet 1'."""
    if not name:
        return name
    return " ".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


def state_dir() -> Path:
    """Return the local state directory (~/.chainops unless overridden)."""
    override = os.environ.get(STATE_DIR_ENV_VAR)
    if override:
        return Path(override)
    home = Path(os.path.expanduser("~"))
    return home / STATE_DIR_NAME


def default_db_path() -> Path:
    """Return default path for the preferences database."""
    return state_dir() / DB_FILE_NAME


def default_console_log_path() -> Path:
    """Return default path for the curses console log file."""
    return state_dir() / CONSOLE_LOG_FILE_NAME


def ensure_parent_dir(p: Path) -> None:
    """Create parent directory of path if it doesn't exist."""
    p.parent.mkdir(parents=True, exist_ok=True)
