"""
ChainOps - operator console for a blockchain infrastructure fleet.

Design goals:
- Read-only by default: the console polls the fleet API and interprets it locally.
- One consistent view: nodes, relayers and ETL services merged into metrics,
  ranked issues and an upcoming-maintenance schedule.
- Explicit actions: every mutating call needs --confirm and triggers a refresh.
"""

from __future__ import annotations

from .cli import main
from .constants import DEFAULT_API_URL
from .exceptions import ApiError, ChainOpsError, UserError

__all__ = [
    "DEFAULT_API_URL",
    "ApiError",
    "ChainOpsError",
    "UserError",
    "main",
]
