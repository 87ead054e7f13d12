"""Status vocabulary for monitored entities.

The backend reports free-form status strings ("Synced", "Catching Up",
"Running (5d 3h)", "Stopped", ...). They are mapped once, when a record is
parsed, to the enums below; everything downstream compares enum members.
Strings that match nothing map to UNKNOWN.
"""

from __future__ import annotations

import re
from enum import Enum

_PAREN_RE = re.compile(r"[()]")
_SPACE_RE = re.compile(r"[\s_]+")


def normalize_status(raw: str | None) -> str:
    """Lowercase, drop parentheses and collapse whitespace/underscores to '-'."""
    if not raw:
        return ""
    cleaned = _PAREN_RE.sub("", raw).strip().lower()
    return _SPACE_RE.sub("-", cleaned)


class NodeStatus(str, Enum):
    SYNCED = "synced"
    CATCHING_UP = "catching-up"
    UNHEALTHY = "unhealthy"
    MAINTENANCE = "maintenance"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: str | None) -> NodeStatus:
        status = normalize_status(raw)
        if status in ("synced", "healthy"):
            return cls.SYNCED
        if "catching" in status:
            return cls.CATCHING_UP
        if status == "unhealthy":
            return cls.UNHEALTHY
        if status == "maintenance":
            return cls.MAINTENANCE
        return cls.UNKNOWN

    @property
    def is_healthy(self) -> bool:
        return self is NodeStatus.SYNCED


class RelayerStatus(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: str | None) -> RelayerStatus:
        # "Running (5d 3h)" carries uptime after the marker
        status = normalize_status(raw)
        if "running" in status:
            return cls.RUNNING
        if "failed" in status:
            return cls.FAILED
        if "stopped" in status:
            return cls.STOPPED
        return cls.UNKNOWN

    @property
    def is_healthy(self) -> bool:
        return self is RelayerStatus.RUNNING


class EtlStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: str | None) -> EtlStatus:
        status = normalize_status(raw)
        if status == "healthy":
            return cls.HEALTHY
        if status == "unhealthy":
            return cls.UNHEALTHY
        return cls.UNKNOWN

    @property
    def is_healthy(self) -> bool:
        return self is EtlStatus.HEALTHY


# Sort priority per entity type; lower sorts first, unknown statuses last
NODE_STATUS_PRIORITY = {
    NodeStatus.UNHEALTHY: 0,
    NodeStatus.MAINTENANCE: 1,
    NodeStatus.CATCHING_UP: 2,
    NodeStatus.SYNCED: 3,
    NodeStatus.UNKNOWN: 4,
}

RELAYER_STATUS_PRIORITY = {
    RelayerStatus.STOPPED: 0,
    RelayerStatus.FAILED: 0,
    RelayerStatus.RUNNING: 1,
    RelayerStatus.UNKNOWN: 2,
}

ETL_STATUS_PRIORITY = {
    EtlStatus.UNHEALTHY: 0,
    EtlStatus.HEALTHY: 1,
    EtlStatus.UNKNOWN: 2,
}
