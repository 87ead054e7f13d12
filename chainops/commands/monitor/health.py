"""Fleet health aggregation and issue classification.

Merges node, relayer and ETL health into:

- fleet-wide metrics (counts, health percentage, distinct servers)
- a severity-ranked list of issues needing attention
- the next scheduled maintenance operations across all nodes

Everything here is a pure function of its inputs (plus ``now`` for
schedule projection and relative times) and never raises on odd data: a
health record without a config just gets less detail.
"""

from __future__ import annotations

import datetime as dt
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from ...constants import DEFAULT_SCHEDULE_LIMIT, NODE_SCHEDULED_OPERATIONS
from ...cron import compute_next_run
from ...models import (
    EntityCategory,
    EtlHealth,
    FleetMetrics,
    FleetSnapshot,
    Issue,
    IssueSeverity,
    NodeConfig,
    NodeHealth,
    RelayerHealth,
    ScheduleEntry,
)
from ...status import EtlStatus, NodeStatus, RelayerStatus
from ...utils import format_block_height, format_time_ago, utc_now

SEVERITY_RANK = {
    IssueSeverity.CRITICAL: 0,
    IssueSeverity.WARNING: 1,
}


@dataclass(frozen=True)
class AggregateResult:
    metrics: FleetMetrics
    issues: tuple[Issue, ...]
    upcoming_schedule: tuple[ScheduleEntry, ...]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (70.5 -> 71)."""
    return math.floor(value + 0.5)


def compute_metrics(
    nodes: Iterable[NodeHealth],
    relayers: Iterable[RelayerHealth],
    etl_services: Iterable[EtlHealth],
) -> FleetMetrics:
    """Count healthy/unhealthy components per category and overall."""
    nodes = list(nodes)
    relayers = list(relayers)
    etl_services = list(etl_services)

    healthy_nodes = sum(1 for n in nodes if n.state.is_healthy)
    unhealthy_nodes = sum(1 for n in nodes if n.state is NodeStatus.UNHEALTHY)
    running_relayers = sum(1 for r in relayers if r.state.is_healthy)
    healthy_etl = sum(1 for e in etl_services if e.state.is_healthy)
    unhealthy_etl = sum(1 for e in etl_services if e.state is EtlStatus.UNHEALTHY)

    total = len(nodes) + len(relayers) + len(etl_services)
    healthy = healthy_nodes + running_relayers + healthy_etl
    percentage = round_half_up(healthy / total * 100) if total > 0 else 0

    # A host running several components counts once
    servers = {n.host for n in nodes} | {r.host for r in relayers} | {e.host for e in etl_services}

    return FleetMetrics(
        total_nodes=len(nodes),
        healthy_nodes=healthy_nodes,
        unhealthy_nodes=unhealthy_nodes,
        total_relayers=len(relayers),
        healthy_relayers=running_relayers,
        unhealthy_relayers=len(relayers) - running_relayers,
        total_etl=len(etl_services),
        healthy_etl=healthy_etl,
        unhealthy_etl=unhealthy_etl,
        total_components=total,
        healthy_components=healthy,
        health_percentage=percentage,
        active_servers=len(servers),
    )


def _status_text(raw: str) -> str:
    text = raw.replace("(", "").replace(")", "").strip().lower()
    return text or "unknown"


def classify_node(
    node: NodeHealth,
    config: NodeConfig | None = None,
    *,
    now: dt.datetime | None = None,
) -> Issue | None:
    """Return an issue for an unhealthy (critical) or maintenance (warning) node."""
    state = node.state
    if state is NodeStatus.UNHEALTHY:
        severity = IssueSeverity.CRITICAL
    elif state is NodeStatus.MAINTENANCE:
        severity = IssueSeverity.WARNING
    else:
        return None

    details: list[str] = []
    if node.block_height is not None:
        details.append(f"Last block: {format_block_height(node.block_height)}")
    if node.catching_up:
        details.append("Node is catching up")
    if node.block_time:
        details.append(f"Block time: {format_time_ago(node.block_time, now=now)}")
    if config is not None and config.auto_restore_enabled:
        details.append("Auto-restore enabled")

    return Issue(
        category=EntityCategory.NODE,
        entity=node.name,
        host=node.host,
        status=node.status,
        severity=severity,
        message=node.error_message or f"{node.name} is {_status_text(node.status)}",
        details=tuple(details),
        last_check=node.last_check,
    )


def classify_relayer(relayer: RelayerHealth) -> Issue | None:
    """Return a critical issue for any relayer that is not running."""
    if relayer.state is RelayerStatus.RUNNING:
        return None

    details: list[str] = []
    if relayer.uptime:
        details.append(f"Last uptime: {relayer.uptime}")
    if relayer.host:
        details.append(f"Server: {relayer.host}")

    return Issue(
        category=EntityCategory.RELAYER,
        entity=relayer.name,
        host=relayer.host,
        status=relayer.status,
        severity=IssueSeverity.CRITICAL,
        message=f"{relayer.name} is {_status_text(relayer.status)}",
        details=tuple(details),
        last_check=relayer.last_check,
    )


def classify_etl(service: EtlHealth) -> Issue | None:
    """Return a critical issue for an unhealthy ETL service."""
    if service.state is not EtlStatus.UNHEALTHY:
        return None

    details: list[str] = []
    if service.http_status is not None:
        details.append(f"HTTP Status: {service.http_status}")
    if service.response_time_ms is not None:
        details.append(f"Response time: {service.response_time_ms}ms")
    if service.url:
        details.append(f"URL: {service.url}")

    return Issue(
        category=EntityCategory.ETL,
        entity=service.name,
        host=service.host,
        status=service.status,
        severity=IssueSeverity.CRITICAL,
        message=service.error_message or f"{service.name} is {_status_text(service.status)}",
        details=tuple(details),
        last_check=service.last_check,
    )


def collect_issues(
    nodes: Iterable[NodeHealth],
    relayers: Iterable[RelayerHealth],
    etl_services: Iterable[EtlHealth],
    node_configs: Mapping[str, NodeConfig] | None = None,
    *,
    now: dt.datetime | None = None,
) -> list[Issue]:
    """Classify every record and order issues critical-first, then by entity name."""
    node_configs = node_configs or {}
    issues: list[Issue] = []
    for node in nodes:
        issue = classify_node(node, node_configs.get(node.name), now=now)
        if issue:
            issues.append(issue)
    for relayer in relayers:
        issue = classify_relayer(relayer)
        if issue:
            issues.append(issue)
    for service in etl_services:
        issue = classify_etl(service)
        if issue:
            issues.append(issue)
    issues.sort(key=lambda i: (SEVERITY_RANK[i.severity], i.entity))
    return issues


def scheduled_operations(config: NodeConfig) -> list[tuple[str, str]]:
    """Return (operation_type, schedule) for each enabled operation with a schedule."""
    operations = []
    for operation_type, enabled_field, schedule_field in NODE_SCHEDULED_OPERATIONS:
        schedule = getattr(config, schedule_field)
        if getattr(config, enabled_field) and schedule:
            operations.append((operation_type, schedule))
    return operations


def _schedule_entries(config: NodeConfig, now: dt.datetime) -> list[ScheduleEntry]:
    entries = []
    for operation_type, schedule in scheduled_operations(config):
        next_run = compute_next_run(schedule, now)
        if next_run is None:
            continue
        entries.append(
            ScheduleEntry(
                entity=config.name,
                operation_type=operation_type,
                schedule=schedule,
                next_run=next_run,
            )
        )
    return entries


def upcoming_schedule(
    node_configs: Mapping[str, NodeConfig],
    *,
    now: dt.datetime | None = None,
    limit: int = DEFAULT_SCHEDULE_LIMIT,
) -> list[ScheduleEntry]:
    """Return the next ``limit`` scheduled operations across all nodes, soonest first."""
    now = now or utc_now()
    entries: list[ScheduleEntry] = []
    for config in node_configs.values():
        entries.extend(_schedule_entries(config, now))
    entries.sort(key=lambda e: e.next_run)
    return entries[: max(limit, 0)]


def next_operation(
    config: NodeConfig | None, *, now: dt.datetime | None = None
) -> ScheduleEntry | None:
    """Return the soonest enabled operation for one node, if any."""
    if config is None:
        return None
    entries = _schedule_entries(config, now or utc_now())
    if not entries:
        return None
    return min(entries, key=lambda e: e.next_run)


def aggregate(
    nodes: Iterable[NodeHealth],
    relayers: Iterable[RelayerHealth],
    etl_services: Iterable[EtlHealth],
    node_configs: Mapping[str, NodeConfig],
    *,
    now: dt.datetime | None = None,
    schedule_limit: int = DEFAULT_SCHEDULE_LIMIT,
) -> AggregateResult:
    """Build metrics, issues and the upcoming schedule in one pass."""
    now = now or utc_now()
    nodes = list(nodes)
    relayers = list(relayers)
    etl_services = list(etl_services)
    return AggregateResult(
        metrics=compute_metrics(nodes, relayers, etl_services),
        issues=tuple(collect_issues(nodes, relayers, etl_services, node_configs, now=now)),
        upcoming_schedule=tuple(upcoming_schedule(node_configs, now=now, limit=schedule_limit)),
    )


def aggregate_snapshot(
    snapshot: FleetSnapshot,
    *,
    now: dt.datetime | None = None,
    schedule_limit: int = DEFAULT_SCHEDULE_LIMIT,
) -> AggregateResult:
    return aggregate(
        snapshot.nodes,
        snapshot.relayers,
        snapshot.etl,
        snapshot.node_configs,
        now=now,
        schedule_limit=schedule_limit,
    )
