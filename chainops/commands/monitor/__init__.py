"""ChainOps fleet console.

This package provides the dashboard/table commands with clear separation of concerns:

- types.py: Shared constants and type definitions
- filtering.py: Search, category filter and sort (pure functions, persisted view configs)
- health.py: Metrics, issue classification and upcoming schedule (pure functions)
- storage.py: Fleet-wide snapshot storage summary (per-node, failures skipped)
- refresh.py: Polling lifecycle and committed snapshot
- formatting.py: Text rendering and layout (no curses dependencies)
- display.py: Curses-based interactive UI
- entry.py: Command entry points and orchestration
"""

from __future__ import annotations

from .display import ConsoleDisplay
from .entry import cmd_dashboard, cmd_issues, cmd_list, cmd_schedule, load_snapshot
from .filtering import (
    NODES_VIEW,
    SERVICES_VIEW,
    ViewConfig,
    ViewSpec,
    apply_view,
    category_counts,
    toggle_sort,
)
from .health import (
    AggregateResult,
    aggregate,
    collect_issues,
    compute_metrics,
    next_operation,
    upcoming_schedule,
)
from .refresh import RefreshOrchestrator, RefreshPhase

__all__ = [
    "NODES_VIEW",
    "SERVICES_VIEW",
    "AggregateResult",
    "ConsoleDisplay",
    "RefreshOrchestrator",
    "RefreshPhase",
    "ViewConfig",
    "ViewSpec",
    "aggregate",
    "apply_view",
    "category_counts",
    "cmd_dashboard",
    "cmd_issues",
    "cmd_list",
    "cmd_schedule",
    "collect_issues",
    "compute_metrics",
    "load_snapshot",
    "next_operation",
    "toggle_sort",
    "upcoming_schedule",
]
