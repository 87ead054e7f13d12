"""Type definitions for CLI command arguments."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiArgs:
    """Connection settings shared by every command."""

    api_url: str | None
    timeout: float


@dataclass
class DashboardArgs:
    """Arguments for dashboard command."""

    api: ApiArgs
    once: bool
    json: bool
    limit: int
    interval: float


@dataclass
class ListArgs:
    """Arguments for the nodes and services table commands."""

    api: ApiArgs
    view: str
    search: str | None
    category: str | None
    sort: str | None
    desc: bool
    json: bool
    save: bool


@dataclass
class IssuesArgs:
    """Arguments for issues command."""

    api: ApiArgs
    json: bool


@dataclass
class ScheduleArgs:
    """Arguments for schedule command."""

    api: ApiArgs
    json: bool
    limit: int


@dataclass
class ActionArgs:
    """Arguments for the maintenance action commands."""

    api: ApiArgs
    action: str
    target: str
    json: bool
    confirm: bool
