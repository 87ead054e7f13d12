"""Shared types and constants for the console display."""

from __future__ import annotations

from dataclasses import dataclass, field

from .filtering import ViewConfig

TAB_DASHBOARD = "dashboard"
TAB_NODES = "nodes"
TAB_SERVICES = "services"
TABS = (TAB_DASHBOARD, TAB_NODES, TAB_SERVICES)

TAB_LABELS = {
    TAB_DASHBOARD: "1 Dashboard",
    TAB_NODES: "2 Nodes",
    TAB_SERVICES: "3 Services",
}

# xterm focus reporting: enable/disable, and the sequences sent on focus change
FOCUS_REPORTING_ON = "\x1b[?1004h"
FOCUS_REPORTING_OFF = "\x1b[?1004l"
FOCUS_IN_SUFFIX = (ord("["), ord("I"))
FOCUS_OUT_SUFFIX = (ord("["), ord("O"))


@dataclass
class TabState:
    """Per-table view selection and scroll position.

    Attributes:
        config: Search/category/sort selection (persisted)
        offset: First visible row
    """

    config: ViewConfig = field(default_factory=ViewConfig)
    offset: int = 0


CHAINOPS_BANNER = [
    " ┌─┐┬ ┬┌─┐┬┌┐┌┌─┐┌─┐┌─┐ ",
    " │  ├─┤├─┤││││ │├─┘└─┐ ",
    " └─┘┴ ┴┴ ┴┴┘└┘└─┘┴  └─┘ ",
]


def compute_header_layout(left: str, right: str, usable_width: int) -> int:
    """Compute the number of rows needed for the header.

    Args:
        left: Left side text
        right: Right side text
        usable_width: Available screen width

    Returns:
        Number of rows needed (1 or 2)
    """
    if usable_width > 0 and len(left) + 1 + len(right) > usable_width:
        return 2
    return 1


CONSOLE_HELP_TEXT = """\
Keys (press any key to close)

  1 / 2 / 3   Dashboard / Nodes / Services
  Tab         Next tab
  ↑/↓ or j/k  Scroll rows (page by page)
  s           Sort by next column (ascending)
  S           Reverse sort direction
  f           Cycle category filter
  /           Search (Enter to apply, Esc to cancel)
  :ACTION NAME Run an action, e.g. :prune osmosis-1 (Esc to cancel)
  c           Clear search and filter
  r           Refresh now
  ?           This help
  q           Quit

Node status order (ascending sort):
  unhealthy, maintenance, catching up, synced, unknown

Service status order (ascending sort):
  stopped/failed/unhealthy, running/healthy, unknown

Data refreshes on an interval (--interval) and whenever the terminal regains focus.
Failed refreshes keep the last good data and show the error below.
"""
