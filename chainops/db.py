"""SQLite storage for console preferences.

Provides one table:
- view_prefs: persisted view configuration (search, filter, sort) per view key

Values are stored as a JSON blob next to an update timestamp, the same
hybrid layout the rest of the local state uses.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from .utils import default_db_path, utc_now_iso

logger = logging.getLogger(__name__)


def get_db_path() -> Path:
    """Return path to SQLite database file.

    Returns:
        Path to ~/.chainops/chainops.db (or under $CHAINOPS_DIR)
    """
    return default_db_path()


def init_db(db_path: Path) -> None:
    """Initialize database schema and enable WAL mode.

    Args:
        db_path: Path to database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS view_prefs (
                key TEXT PRIMARY KEY,
                ts TEXT NOT NULL,
                data JSON NOT NULL
            )
        """)
        conn.commit()
    finally:
        conn.close()


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Get database connection configured for dict-like row access."""
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


def save_pref(conn: sqlite3.Connection, key: str, value: dict[str, Any]) -> None:
    """Insert or replace the stored value for key."""
    data_json = json.dumps(value)
    ts = utc_now_iso()
    conn.execute(
        """
        INSERT INTO view_prefs (key, ts, data)
        VALUES (?, ?, ?)
        ON CONFLICT (key) DO UPDATE SET ts=?, data=?
        """,
        (key, ts, data_json, ts, data_json),
    )
    conn.commit()


def load_pref(conn: sqlite3.Connection, key: str) -> dict[str, Any] | None:
    """Return the stored value for key, or None when absent or unreadable."""
    row = conn.execute("SELECT data FROM view_prefs WHERE key = ?", (key,)).fetchone()
    if row is None:
        return None
    try:
        data = json.loads(row["data"])
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed preference for %s", key)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring malformed preference for %s", key)
        return None
    return data
