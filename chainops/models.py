"""Record types consumed from the API and derived by the console.

Health records and configs are built from API JSON via ``from_api`` and are
immutable; a refresh replaces whole collections rather than editing records.
``from_api`` accepts both field spellings the backend has used over time
(e.g. ``last_check`` and ``last_check_time``).
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .status import EtlStatus, NodeStatus, RelayerStatus


def _first(data: dict[str, Any], *keys: str) -> Any:
    """Return the first non-None value among keys."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _opt_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


class EntityCategory(str, Enum):
    NODE = "node"
    RELAYER = "relayer"
    ETL = "etl"


class IssueSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"


@dataclass(frozen=True)
class NodeHealth:
    name: str
    host: str
    status: str
    last_check: str | None = None
    network: str = ""
    block_height: int | None = None
    block_time: str | None = None
    catching_up: bool = False
    moniker: str | None = None
    error_message: str | None = None

    @property
    def state(self) -> NodeStatus:
        return NodeStatus.parse(self.status)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> NodeHealth:
        return cls(
            name=str(_first(data, "node_name", "name") or ""),
            host=str(data.get("server_host") or ""),
            status=str(data.get("status") or ""),
            last_check=_opt_str(_first(data, "last_check", "last_check_time")),
            network=str(data.get("network") or ""),
            block_height=_opt_int(data.get("latest_block_height")),
            block_time=_opt_str(data.get("latest_block_time")),
            catching_up=bool(data.get("catching_up")),
            moniker=_opt_str(data.get("moniker")),
            error_message=_opt_str(data.get("error_message")),
        )


@dataclass(frozen=True)
class RelayerHealth:
    name: str
    host: str
    status: str
    last_check: str | None = None
    uptime: str | None = None

    @property
    def state(self) -> RelayerStatus:
        return RelayerStatus.parse(self.status)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RelayerHealth:
        return cls(
            name=str(_first(data, "name", "hermes_name") or ""),
            host=str(data.get("server_host") or ""),
            status=str(data.get("status") or ""),
            last_check=_opt_str(_first(data, "last_check", "last_check_time")),
            uptime=_opt_str(data.get("uptime")),
        )


@dataclass(frozen=True)
class EtlHealth:
    name: str
    host: str
    status: str
    last_check: str | None = None
    url: str | None = None
    http_status: int | None = None
    response_time_ms: int | None = None
    error_message: str | None = None
    description: str | None = None

    @property
    def state(self) -> EtlStatus:
        return EtlStatus.parse(self.status)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> EtlHealth:
        return cls(
            name=str(data.get("service_name") or ""),
            host=str(data.get("server_host") or ""),
            status=str(data.get("status") or ""),
            last_check=_opt_str(_first(data, "last_check", "last_check_time")),
            url=_opt_str(_first(data, "service_url", "url")),
            http_status=_opt_int(_first(data, "status_code", "http_status")),
            response_time_ms=_opt_int(data.get("response_time_ms")),
            error_message=_opt_str(data.get("error_message")),
            description=_opt_str(data.get("description")),
        )


@dataclass(frozen=True)
class NodeConfig:
    name: str
    host: str = ""
    network: str = ""
    enabled: bool = True
    pruning_enabled: bool = False
    pruning_schedule: str | None = None
    snapshots_enabled: bool = False
    snapshot_schedule: str | None = None
    snapshot_retention_count: int | None = None
    auto_restore_enabled: bool = False
    state_sync_enabled: bool = False
    state_sync_schedule: str | None = None
    state_sync_rpc_sources: tuple[str, ...] = ()

    @classmethod
    def from_api(cls, name: str, data: dict[str, Any]) -> NodeConfig:
        return cls(
            name=name,
            host=str(data.get("server_host") or ""),
            network=str(data.get("network") or ""),
            enabled=_first(data, "enabled", "is_enabled") is not False,
            pruning_enabled=bool(data.get("pruning_enabled")),
            pruning_schedule=_opt_str(_first(data, "pruning_schedule", "pruning_cron")),
            snapshots_enabled=bool(_first(data, "snapshots_enabled", "snapshot_enabled")),
            snapshot_schedule=_opt_str(_first(data, "snapshot_schedule", "snapshot_cron")),
            snapshot_retention_count=_opt_int(data.get("snapshot_retention_count")),
            auto_restore_enabled=bool(data.get("auto_restore_enabled")),
            state_sync_enabled=bool(data.get("state_sync_enabled")),
            state_sync_schedule=_opt_str(data.get("state_sync_schedule")),
            state_sync_rpc_sources=tuple(
                _first(data, "state_sync_rpc_sources", "state_sync_rpc_servers") or ()
            ),
        )


@dataclass(frozen=True)
class HermesConfig:
    name: str
    host: str = ""
    restart_schedule: str | None = None
    dependent_nodes: tuple[str, ...] = ()

    @classmethod
    def from_api(cls, name: str, data: dict[str, Any]) -> HermesConfig:
        return cls(
            name=name,
            host=str(data.get("server_host") or ""),
            restart_schedule=_opt_str(_first(data, "restart_schedule", "restart_cron")),
            dependent_nodes=tuple(data.get("dependent_nodes") or ()),
        )


@dataclass(frozen=True)
class ActiveOperation:
    id: str
    operation_type: str
    target_name: str
    status: str
    started_at: str | None = None
    completed_at: str | None = None
    error_message: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ActiveOperation:
        error_message = _opt_str(data.get("error_message"))
        raw_status = str(data.get("status") or "")
        if raw_status == "in_progress":
            status = "in_progress"
        elif error_message or raw_status == "failed":
            status = "failed"
        else:
            status = "completed"
        return cls(
            id=str(data.get("id") or ""),
            operation_type=str(data.get("operation_type") or ""),
            target_name=str(_first(data, "target_name", "node_name") or ""),
            status=status,
            started_at=_opt_str(_first(data, "started_at", "start_time")),
            completed_at=_opt_str(data.get("completed_at")),
            error_message=error_message,
        )


@dataclass(frozen=True)
class SnapshotStats:
    """Snapshot counts and bytes on disk, for one node or summed over the fleet."""

    total_snapshots: int = 0
    total_size_bytes: int = 0
    by_network: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> SnapshotStats:
        by_network = data.get("by_network")
        return cls(
            total_snapshots=_opt_int(data.get("total_snapshots")) or 0,
            total_size_bytes=_opt_int(data.get("total_size_bytes")) or 0,
            by_network={
                str(network): _opt_int(count) or 0
                for network, count in (by_network.items() if isinstance(by_network, dict) else ())
            },
        )


@dataclass(frozen=True)
class SnapshotInfo:
    node_name: str
    network: str
    filename: str
    snapshot_path: str = ""
    file_size_bytes: int | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> SnapshotInfo:
        return cls(
            node_name=str(data.get("node_name") or ""),
            network=str(data.get("network") or ""),
            filename=str(data.get("filename") or ""),
            snapshot_path=str(data.get("snapshot_path") or ""),
            file_size_bytes=_opt_int(data.get("file_size_bytes")),
        )


@dataclass(frozen=True)
class SnapshotStorage:
    """Fleet-wide snapshot totals and the newest snapshot of each network."""

    stats: SnapshotStats = field(default_factory=SnapshotStats)
    latest: tuple[SnapshotInfo, ...] = ()


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a mutating action call."""

    success: bool
    message: str | None = None
    job_id: str | None = None


@dataclass(frozen=True)
class Issue:
    category: EntityCategory
    entity: str
    host: str
    status: str
    severity: IssueSeverity
    message: str
    details: tuple[str, ...] = ()
    last_check: str | None = None


@dataclass(frozen=True)
class ScheduleEntry:
    entity: str
    operation_type: str
    schedule: str
    next_run: dt.datetime


@dataclass(frozen=True)
class FleetMetrics:
    total_nodes: int = 0
    healthy_nodes: int = 0
    unhealthy_nodes: int = 0
    total_relayers: int = 0
    healthy_relayers: int = 0
    unhealthy_relayers: int = 0
    total_etl: int = 0
    healthy_etl: int = 0
    unhealthy_etl: int = 0
    total_components: int = 0
    healthy_components: int = 0
    health_percentage: int = 0
    active_servers: int = 0


@dataclass(frozen=True)
class FleetSnapshot:
    """Everything one refresh cycle committed, replaced as a unit."""

    node_configs: dict[str, NodeConfig] = field(default_factory=dict)
    hermes_configs: dict[str, HermesConfig] = field(default_factory=dict)
    nodes: tuple[NodeHealth, ...] = ()
    relayers: tuple[RelayerHealth, ...] = ()
    etl: tuple[EtlHealth, ...] = ()
    operations: tuple[ActiveOperation, ...] = ()
    storage: SnapshotStorage = field(default_factory=SnapshotStorage)
    fetched_at: str | None = None
