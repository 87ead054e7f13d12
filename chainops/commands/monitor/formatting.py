"""Text rendering and layout for the console (no curses dependencies).

Dashboard sections are rendered as StyledLine lists so the same output can
be printed plainly (--once, non-tty) or colored by the curses display.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict, dataclass
from typing import Any

from ...constants import (
    ACTIVITY_DISPLAY_LIMIT,
    ISSUE_DETAILS_DISPLAY_LIMIT,
    OPERATION_LABELS,
)
from ...cron import format_for_display, format_relative
from ...models import (
    ActiveOperation,
    FleetMetrics,
    FleetSnapshot,
    Issue,
    IssueSeverity,
    ScheduleEntry,
    SnapshotStorage,
)
from ...status import NodeStatus
from ...utils import format_block_height, format_bytes, format_time_ago, utc_now
from .filtering import SORT_DESC, NodeRow, ServiceItem, ViewConfig
from .health import AggregateResult, next_operation
from .refresh import RefreshPhase
from .storage import networks_by_count

STYLE_PLAIN = ""
STYLE_TITLE = "title"
STYLE_HEADER = "header"
STYLE_OK = "ok"
STYLE_WARNING = "warning"
STYLE_CRITICAL = "critical"
STYLE_MUTED = "muted"


@dataclass(frozen=True)
class StyledLine:
    text: str
    style: str = STYLE_PLAIN


def plain_lines(lines: Iterable[StyledLine]) -> list[str]:
    return [line.text for line in lines]


def clip_cell(value: str, width: int) -> str:
    """Clip and pad a cell to width using ASCII ellipsis."""
    if width <= 0:
        return ""
    if len(value) <= width:
        return value.ljust(width)
    if width <= 3:
        return value[:width]
    return f"{value[: width - 3]}..."


def operation_label(operation_type: str) -> str:
    return OPERATION_LABELS.get(operation_type, operation_type.replace("_", " ").title())


# Tables

NODE_COLUMNS = ["name", "status", "server", "network", "height", "next", "check"]
NODE_LABELS = {
    "name": "NODE",
    "status": "STATUS",
    "server": "SERVER",
    "network": "NETWORK",
    "height": "HEIGHT",
    "next": "NEXT_OP",
    "check": "CHECKED",
}

SERVICE_COLUMNS = ["kind", "name", "status", "server", "detail", "next", "check"]
SERVICE_LABELS = {
    "kind": "TYPE",
    "name": "SERVICE",
    "status": "STATUS",
    "server": "SERVER",
    "detail": "DETAIL",
    "next": "NEXT_RESTART",
    "check": "CHECKED",
}


def node_row_values(row: NodeRow, *, now: dt.datetime | None = None) -> dict[str, str]:
    """Cell text for one node row."""
    health = row.health
    upcoming = next_operation(row.config, now=now)
    if upcoming is None:
        next_text = "-"
    else:
        label = operation_label(upcoming.operation_type)
        next_text = f"{label} {format_relative(upcoming.next_run, now)}"
    return {
        "name": health.name,
        "status": health.status or "unknown",
        "server": health.host or "-",
        "network": health.network or "-",
        "height": format_block_height(health.block_height),
        "next": next_text,
        "check": format_time_ago(health.last_check, now=now),
    }


def service_row_values(item: ServiceItem, *, now: dt.datetime | None = None) -> dict[str, str]:
    """Cell text for one relayer or ETL row."""
    record = item.record
    detail = "-"
    if item.kind == "hermes":
        uptime = getattr(record, "uptime", None)
        if uptime:
            detail = f"up {uptime}"
    else:
        parts = []
        http_status = getattr(record, "http_status", None)
        response_time = getattr(record, "response_time_ms", None)
        if http_status is not None:
            parts.append(f"HTTP {http_status}")
        if response_time is not None:
            parts.append(f"{response_time}ms")
        if not parts and item.description:
            parts.append(item.description)
        if parts:
            detail = " ".join(parts)
    next_text = None
    if item.config is not None:
        next_text = format_for_display(item.config.restart_schedule, now)
    return {
        "kind": "HERMES" if item.kind == "hermes" else "ETL",
        "name": item.name,
        "status": item.status or "unknown",
        "server": item.host or "-",
        "detail": detail,
        "next": next_text or "-",
        "check": format_time_ago(getattr(record, "last_check", None), now=now),
    }


def node_row_style(row: NodeRow) -> str:
    state = row.state
    if state is NodeStatus.UNHEALTHY:
        return STYLE_CRITICAL
    if state in (NodeStatus.MAINTENANCE, NodeStatus.CATCHING_UP):
        return STYLE_WARNING
    if state is NodeStatus.SYNCED:
        return STYLE_OK
    return STYLE_MUTED


def service_row_style(item: ServiceItem) -> str:
    return {0: STYLE_CRITICAL, 1: STYLE_OK}.get(item.status_priority, STYLE_MUTED)


# Table columns that map to a sort column of the view
SORTABLE_TABLE_COLUMNS = {"name": "name", "status": "status", "server": "server", "next": "next"}


def header_labels(
    labels: dict[str, str], config: ViewConfig | None
) -> dict[str, str]:
    """Mark the active sort column with its direction."""
    labels = dict(labels)
    if config is None:
        return labels
    for column, sort_column in SORTABLE_TABLE_COLUMNS.items():
        if sort_column == config.sort_column and column in labels:
            arrow = "▼" if config.sort_direction == SORT_DESC else "▲"
            labels[column] = f"{labels[column]} {arrow}"
    return labels


def compute_widths(
    rows: Sequence[dict[str, str]], *, columns: list[str], labels: dict[str, str]
) -> dict[str, int]:
    widths = {col: len(labels[col]) for col in columns}
    for values in rows:
        for col in columns:
            widths[col] = max(widths[col], len(values[col]))
    return widths


def render_table(
    rows: Sequence[dict[str, str]],
    *,
    columns: list[str],
    labels: dict[str, str],
    col_sep: str = "  ",
    max_width: int = 0,
) -> tuple[str, list[str]]:
    """Render header + row lines; with max_width > 0 lines are clipped to fit."""
    widths = compute_widths(rows, columns=columns, labels=labels)
    header = col_sep.join(clip_cell(labels[col], widths[col]) for col in columns).rstrip()
    lines = [
        col_sep.join(clip_cell(values[col], widths[col]) for col in columns).rstrip()
        for values in rows
    ]
    if max_width > 0:
        header = header[:max_width]
        lines = [line[:max_width] for line in lines]
    return header, lines


def render_rows(
    records: Sequence[Any],
    *,
    values_fn: Callable[..., dict[str, str]],
    style_fn: Callable[[Any], str],
    columns: list[str],
    labels: dict[str, str],
    config: ViewConfig | None = None,
    now: dt.datetime | None = None,
    max_width: int = 0,
) -> list[StyledLine]:
    """Header plus one styled line per record."""
    values = [values_fn(r, now=now) for r in records]
    header, lines = render_table(
        values, columns=columns, labels=header_labels(labels, config), max_width=max_width
    )
    out = [StyledLine(header, STYLE_HEADER)]
    out.extend(StyledLine(line, style_fn(r)) for line, r in zip(lines, records, strict=True))
    return out


def render_category_tabs(counts: dict[str, int], active: str) -> str:
    """'[all 12]  synced 8  unhealthy 2 ...' with the active tab bracketed."""
    parts = []
    for name, count in counts.items():
        label = f"{name} {count}"
        parts.append(f"[{label}]" if name == active else label)
    return "  ".join(parts)


# Dashboard


def render_metrics(metrics: FleetMetrics) -> list[StyledLine]:
    pct = metrics.health_percentage
    if metrics.total_components == 0:
        overall_style = STYLE_MUTED
    elif pct >= 90:
        overall_style = STYLE_OK
    elif pct >= 70:
        overall_style = STYLE_WARNING
    else:
        overall_style = STYLE_CRITICAL

    def _category(label: str, healthy: int, total: int, unhealthy: int, word: str) -> StyledLine:
        text = f"  {label:<9} {healthy}/{total} {word}"
        if unhealthy:
            text += f"  ({unhealthy} unhealthy)"
        style = STYLE_CRITICAL if unhealthy else STYLE_PLAIN
        return StyledLine(text, style)

    return [
        StyledLine(
            f"FLEET HEALTH {pct}%  "
            f"({metrics.healthy_components}/{metrics.total_components} healthy, "
            f"{metrics.active_servers} servers)",
            overall_style,
        ),
        _category(
            "Nodes", metrics.healthy_nodes, metrics.total_nodes, metrics.unhealthy_nodes, "synced"
        ),
        _category(
            "Relayers",
            metrics.healthy_relayers,
            metrics.total_relayers,
            metrics.unhealthy_relayers,
            "running",
        ),
        _category("ETL", metrics.healthy_etl, metrics.total_etl, metrics.unhealthy_etl, "healthy"),
    ]


def render_issues(
    issues: Sequence[Issue], *, detail_limit: int = ISSUE_DETAILS_DISPLAY_LIMIT
) -> list[StyledLine]:
    """Issue list with at most ``detail_limit`` detail lines per issue."""
    lines = [StyledLine(f"ISSUES ({len(issues)})", STYLE_TITLE)]
    if not issues:
        lines.append(StyledLine("  All systems operational", STYLE_OK))
        return lines
    for issue in issues:
        critical = issue.severity is IssueSeverity.CRITICAL
        tag = "CRIT" if critical else "WARN"
        host = f" @ {issue.host}" if issue.host else ""
        lines.append(
            StyledLine(
                f"  [{tag}] {issue.category.value} {issue.entity}{host}: {issue.message}",
                STYLE_CRITICAL if critical else STYLE_WARNING,
            )
        )
        for detail in issue.details[:detail_limit]:
            lines.append(StyledLine(f"         {detail}", STYLE_MUTED))
    return lines


def render_schedule(
    entries: Sequence[ScheduleEntry],
    *,
    now: dt.datetime | None = None,
    tz: dt.tzinfo | None = None,
) -> list[StyledLine]:
    lines = [StyledLine("UPCOMING OPERATIONS", STYLE_TITLE)]
    if not entries:
        lines.append(StyledLine("  No scheduled operations", STYLE_MUTED))
        return lines
    now = now or utc_now()
    width = max(len(e.entity) for e in entries)
    for entry in entries:
        when = format_for_display(entry.schedule, now, tz=tz) or "-"
        lines.append(
            StyledLine(
                f"  {operation_label(entry.operation_type):<10} {entry.entity:<{width}}  "
                f"{when}  ({format_relative(entry.next_run, now)})"
            )
        )
    return lines


def render_activity(
    operations: Sequence[ActiveOperation],
    *,
    limit: int = ACTIVITY_DISPLAY_LIMIT,
    now: dt.datetime | None = None,
) -> list[StyledLine]:
    lines = [StyledLine("RECENT ACTIVITY", STYLE_TITLE)]
    if not operations:
        lines.append(StyledLine("  No recent operations", STYLE_MUTED))
        return lines
    styles = {"in_progress": STYLE_WARNING, "failed": STYLE_CRITICAL, "completed": STYLE_OK}
    for op in operations[:limit]:
        text = (
            f"  {op.status:<11} {operation_label(op.operation_type):<10} {op.target_name}"
            f"  started {format_time_ago(op.started_at, now=now)}"
        )
        if op.error_message:
            text += f": {op.error_message}"
        lines.append(StyledLine(text, styles.get(op.status, STYLE_PLAIN)))
    return lines


def render_storage(storage: SnapshotStorage) -> list[StyledLine]:
    """Snapshot totals with per-network counts, then the newest snapshot of each network."""
    lines = [StyledLine("SNAPSHOT STORAGE", STYLE_TITLE)]
    stats = storage.stats
    if stats.total_snapshots:
        lines.append(
            StyledLine(
                f"  {stats.total_snapshots} snapshots, "
                f"{format_bytes(stats.total_size_bytes)} total"
            )
        )
        counts = networks_by_count(stats)
        width = max((len(network) for network, _ in counts), default=0)
        for network, count in counts:
            lines.append(StyledLine(f"    {network:<{width}}  {count}", STYLE_MUTED))
    elif not storage.latest:
        lines.append(StyledLine("  No snapshots available", STYLE_MUTED))
        return lines

    if storage.latest:
        lines.append(StyledLine(f"  Latest snapshots ({len(storage.latest)} networks)"))
        width = max(len(info.network) for info in storage.latest)
        for info in storage.latest:
            size = format_bytes(info.file_size_bytes) if info.file_size_bytes else "-"
            lines.append(StyledLine(f"    {info.network:<{width}}  {info.filename}  ({size})"))
    return lines


def render_dashboard(
    snapshot: FleetSnapshot,
    result: AggregateResult,
    *,
    now: dt.datetime | None = None,
    tz: dt.tzinfo | None = None,
) -> list[StyledLine]:
    """Metrics, issues, schedule, snapshot storage and activity, separated by blank lines."""
    now = now or utc_now()
    lines = render_metrics(result.metrics)
    lines.append(StyledLine(""))
    lines.extend(render_issues(result.issues))
    lines.append(StyledLine(""))
    lines.extend(render_schedule(result.upcoming_schedule, now=now, tz=tz))
    lines.append(StyledLine(""))
    lines.extend(render_storage(snapshot.storage))
    lines.append(StyledLine(""))
    lines.extend(render_activity(snapshot.operations, now=now))
    return lines


def format_status_line(
    phase: RefreshPhase,
    *,
    last_success_at: str | None,
    last_error: Exception | None,
    now: dt.datetime | None = None,
) -> str:
    """Refresh state as shown in the console footer."""
    if phase is RefreshPhase.LOADING:
        status = "Loading..."
    elif phase is RefreshPhase.REFRESHING:
        status = "Refreshing..."
    elif last_success_at:
        status = f"Updated {format_time_ago(last_success_at, now=now).lower()}"
    else:
        status = "No data"
    if last_error is not None:
        status += f" | Refresh failed: {last_error}"
    return status


# JSON payloads


def issue_to_dict(issue: Issue) -> dict[str, Any]:
    data = asdict(issue)
    data["category"] = issue.category.value
    data["severity"] = issue.severity.value
    data["details"] = list(issue.details)
    return data


def schedule_entry_to_dict(entry: ScheduleEntry) -> dict[str, Any]:
    return {
        "entity": entry.entity,
        "operation_type": entry.operation_type,
        "schedule": entry.schedule,
        "next_run": entry.next_run.isoformat(),
    }


def dashboard_payload(snapshot: FleetSnapshot, result: AggregateResult) -> dict[str, Any]:
    return {
        "fetched_at": snapshot.fetched_at,
        "metrics": asdict(result.metrics),
        "issues": [issue_to_dict(i) for i in result.issues],
        "upcoming_schedule": [schedule_entry_to_dict(e) for e in result.upcoming_schedule],
        "operations": [asdict(op) for op in snapshot.operations],
        "snapshot_storage": asdict(snapshot.storage),
    }
