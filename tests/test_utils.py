"""Tests for chainops/utils.py."""

from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest
from chainops.constants import STATE_DIR_ENV_VAR
from chainops.utils import (
    age_seconds,
    default_console_log_path,
    default_db_path,
    ensure_parent_dir,
    format_block_height,
    format_bytes,
    format_name,
    format_time_ago,
    humanize_duration,
    parse_ts,
    state_dir,
    utc_now_iso,
)

NOW = dt.datetime(2025, 10, 6, 12, 0, 0, tzinfo=dt.UTC)


class TestParseTs:
    """Tests for parse_ts function."""

    def test_offset(self):
        assert parse_ts("2025-10-06T12:00:00+02:00") == dt.datetime(
            2025, 10, 6, 10, 0, tzinfo=dt.UTC
        )

    def test_zulu(self):
        assert parse_ts("2025-10-06T12:00:00Z") == NOW

    def test_naive_assumed_utc(self):
        assert parse_ts("2025-10-06T12:00:00") == NOW

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_invalid(self, value):
        assert parse_ts(value) is None


class TestAgeSeconds:
    """Tests for age_seconds function."""

    def test_age(self):
        assert age_seconds("2025-10-06T11:58:30Z", now=NOW) == 90

    def test_future_clamps_to_zero(self):
        assert age_seconds("2025-10-06T12:05:00Z", now=NOW) == 0

    def test_none(self):
        assert age_seconds(None, now=NOW) is None


class TestFormatTimeAgo:
    """Tests for format_time_ago function."""

    @pytest.mark.parametrize(
        ("ts", "expected"),
        [
            ("2025-10-06T11:59:30Z", "Just now"),
            ("2025-10-06T11:55:00Z", "5m ago"),
            ("2025-10-06T09:00:00Z", "3h ago"),
            ("2025-10-04T12:00:00Z", "2d ago"),
            (None, "Never"),
        ],
    )
    def test_format(self, ts, expected):
        assert format_time_ago(ts, now=NOW) == expected


class TestHumanizeDuration:
    """Tests for humanize_duration function."""

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (None, "-"),
            (45, "45s"),
            (125, "2m"),
            (3 * 3600 + 5 * 60, "3h 05m"),
            (2 * 86400 + 3600, "2d 01h"),
        ],
    )
    def test_format(self, seconds, expected):
        assert humanize_duration(seconds) == expected

    def test_min_unit_minutes(self):
        assert humanize_duration(30, min_unit="m") == "<1m"


class TestFormatters:
    """Tests for small display formatters."""

    def test_block_height(self):
        assert format_block_height(1234567) == "1,234,567"
        assert format_block_height(None) == "N/A"

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (None, "0 B"),
            (0, "0 B"),
            (512, "512 B"),
            (1536, "1.5 KB"),
            (1024**3, "1 GB"),
            (4831838208, "4.5 GB"),
            (3 * 1024**5, "3072 TB"),
        ],
    )
    def test_format_bytes(self, size, expected):
        assert format_bytes(size) == expected

    def test_format_name(self):
        assert format_name("osmosis-mainnet-1") == "Osmosis Mainnet 1"
        assert format_name("") == ""

    def test_utc_now_iso_has_no_microseconds(self):
        assert "." not in utc_now_iso()


class TestStatePaths:
    """Tests for state directory helpers."""

    def test_env_override(self, monkeypatch, tmp_dir: Path):
        monkeypatch.setenv(STATE_DIR_ENV_VAR, str(tmp_dir / "state"))
        assert state_dir() == tmp_dir / "state"
        assert default_db_path() == tmp_dir / "state" / "chainops.db"
        assert default_console_log_path() == tmp_dir / "state" / "console.log"

    def test_default_under_home(self, monkeypatch, tmp_dir: Path):
        monkeypatch.delenv(STATE_DIR_ENV_VAR, raising=False)
        monkeypatch.setenv("HOME", str(tmp_dir))
        assert state_dir() == tmp_dir / ".chainops"

    def test_ensure_parent_dir(self, tmp_dir: Path):
        target = tmp_dir / "a" / "b" / "file.txt"
        ensure_parent_dir(target)
        assert target.parent.is_dir()
