"""ChainOps command implementations."""

from __future__ import annotations

from .actions import ACTIONS, cmd_action, run_action
from .monitor import cmd_dashboard, cmd_issues, cmd_list, cmd_schedule

__all__ = [
    "ACTIONS",
    "cmd_action",
    "cmd_dashboard",
    "cmd_issues",
    "cmd_list",
    "cmd_schedule",
    "run_action",
]
