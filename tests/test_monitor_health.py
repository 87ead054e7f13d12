"""Tests for chainops/commands/monitor/health.py - fleet aggregation."""

from __future__ import annotations

import datetime as dt

import pytest
from chainops.commands.monitor.health import (
    aggregate,
    aggregate_snapshot,
    classify_etl,
    classify_node,
    classify_relayer,
    collect_issues,
    compute_metrics,
    next_operation,
    round_half_up,
    scheduled_operations,
    upcoming_schedule,
)
from chainops.models import EntityCategory, IssueSeverity, NodeConfig
from conftest import make_etl, make_node, make_relayer


def utc(*args) -> dt.datetime:
    return dt.datetime(*args, tzinfo=dt.UTC)


class TestRoundHalfUp:
    """Tests for round_half_up function."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(70.5, 71), (70.49, 70), (0.5, 1), (2.5, 3), (100.0, 100)],
    )
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected


class TestComputeMetrics:
    """Tests for compute_metrics function."""

    def test_fleet_scenario(self, fleet_nodes, fleet_relayers, fleet_etl):
        metrics = compute_metrics(fleet_nodes, fleet_relayers, fleet_etl)
        assert metrics.total_nodes == 10
        assert metrics.healthy_nodes == 7
        assert metrics.unhealthy_nodes == 2
        assert metrics.total_relayers == 3
        assert metrics.healthy_relayers == 2
        assert metrics.unhealthy_relayers == 1
        assert metrics.total_etl == 4
        assert metrics.healthy_etl == 3
        assert metrics.unhealthy_etl == 1
        assert metrics.total_components == 17
        assert metrics.healthy_components == 12
        assert metrics.health_percentage == 71

    def test_active_servers_are_distinct_hosts(self, fleet_nodes, fleet_relayers, fleet_etl):
        metrics = compute_metrics(fleet_nodes, fleet_relayers, fleet_etl)
        # server-0..2, server-a, server-b, relay-1, relay-2, etl-1, etl-2
        assert metrics.active_servers == 9

    def test_shared_host_counts_once(self):
        metrics = compute_metrics(
            [make_node("a", host="box")],
            [make_relayer("h", host="box")],
            [make_etl("e", host="box")],
        )
        assert metrics.active_servers == 1

    def test_empty_fleet_is_zero_percent(self):
        metrics = compute_metrics([], [], [])
        assert metrics.total_components == 0
        assert metrics.health_percentage == 0
        assert metrics.active_servers == 0

    def test_catching_up_is_neither_healthy_nor_unhealthy(self):
        metrics = compute_metrics([make_node("a", status="Catching Up")], [], [])
        assert metrics.healthy_nodes == 0
        assert metrics.unhealthy_nodes == 0
        assert metrics.health_percentage == 0

    def test_all_healthy(self):
        metrics = compute_metrics([make_node("a")], [make_relayer("h")], [make_etl("e")])
        assert metrics.health_percentage == 100


class TestClassify:
    """Tests for the per-entity classifiers."""

    def test_synced_node_is_fine(self):
        assert classify_node(make_node("a")) is None

    def test_catching_up_node_is_not_an_issue(self):
        assert classify_node(make_node("a", status="Catching Up")) is None

    def test_unhealthy_node_uses_error_message(self):
        node = make_node(
            "osmosis-1", status="Unhealthy", block_height=1234567, error_message="RPC down"
        )
        issue = classify_node(node)
        assert issue is not None
        assert issue.severity is IssueSeverity.CRITICAL
        assert issue.category is EntityCategory.NODE
        assert issue.message == "RPC down"
        assert issue.details == ("Last block: 1,234,567",)

    def test_node_details_in_order(self, now):
        node = make_node(
            "osmosis-1",
            status="Unhealthy",
            block_height=10,
            catching_up=True,
            block_time="2025-10-06T11:55:00+00:00",
        )
        config = NodeConfig(name="osmosis-1", auto_restore_enabled=True)
        issue = classify_node(node, config, now=now)
        assert issue is not None
        assert issue.details == (
            "Last block: 10",
            "Node is catching up",
            "Block time: 5m ago",
            "Auto-restore enabled",
        )

    def test_maintenance_node_is_warning(self):
        issue = classify_node(make_node("juno-1", status="Maintenance"))
        assert issue is not None
        assert issue.severity is IssueSeverity.WARNING
        assert issue.message == "juno-1 is maintenance"

    def test_relayer_not_running(self):
        issue = classify_relayer(make_relayer("hermes-c", status="Stopped", uptime="0s"))
        assert issue is not None
        assert issue.severity is IssueSeverity.CRITICAL
        assert issue.message == "hermes-c is stopped"
        assert issue.details == ("Last uptime: 0s", "Server: server-1")

    def test_relayer_unknown_status_is_critical(self):
        issue = classify_relayer(make_relayer("hermes-x", status=""))
        assert issue is not None
        assert issue.message == "hermes-x is unknown"

    def test_running_relayer_with_uptime_is_fine(self):
        assert classify_relayer(make_relayer("hermes-a", status="Running (5d 3h)")) is None

    def test_unhealthy_etl(self):
        issue = classify_etl(
            make_etl("archiver", status="unhealthy", http_status=503, response_time_ms=1200)
        )
        assert issue is not None
        assert issue.category is EntityCategory.ETL
        assert issue.details == ("HTTP Status: 503", "Response time: 1200ms")

    def test_unknown_etl_is_not_an_issue(self):
        assert classify_etl(make_etl("x", status="degraded")) is None


class TestCollectIssues:
    """Tests for collect_issues function."""

    def test_fleet_scenario(self, fleet_nodes, fleet_relayers, fleet_etl, node_configs, now):
        issues = collect_issues(fleet_nodes, fleet_relayers, fleet_etl, node_configs, now=now)
        assert [(i.severity, i.entity) for i in issues] == [
            (IssueSeverity.CRITICAL, "archiver"),
            (IssueSeverity.CRITICAL, "cosmos-hub"),
            (IssueSeverity.CRITICAL, "hermes-c"),
            (IssueSeverity.CRITICAL, "osmosis-1"),
            (IssueSeverity.WARNING, "juno-1"),
        ]

    def test_config_adds_auto_restore_detail(
        self, fleet_nodes, fleet_relayers, fleet_etl, node_configs, now
    ):
        issues = collect_issues(fleet_nodes, fleet_relayers, fleet_etl, node_configs, now=now)
        osmosis = next(i for i in issues if i.entity == "osmosis-1")
        assert osmosis.message == "RPC not responding"
        assert osmosis.details == ("Last block: 1,234,567", "Auto-restore enabled")

    def test_without_configs(self, fleet_nodes, now):
        issues = collect_issues(fleet_nodes, [], [], now=now)
        osmosis = next(i for i in issues if i.entity == "osmosis-1")
        assert "Auto-restore enabled" not in osmosis.details

    def test_healthy_fleet_has_no_issues(self):
        assert collect_issues([make_node("a")], [make_relayer("h")], [make_etl("e")]) == []


class TestSchedule:
    """Tests for upcoming_schedule and next_operation."""

    def test_scheduled_operations_skips_disabled_and_empty(self):
        config = NodeConfig(
            name="n",
            pruning_enabled=True,
            pruning_schedule="0 0 3 * * *",
            snapshots_enabled=True,
            snapshot_schedule=None,
            state_sync_enabled=False,
            state_sync_schedule="0 0 4 * * *",
        )
        assert scheduled_operations(config) == [("pruning", "0 0 3 * * *")]

    def test_upcoming_sorted_soonest_first(self, node_configs, now):
        entries = upcoming_schedule(node_configs, now=now)
        assert [(e.entity, e.operation_type, e.next_run) for e in entries] == [
            ("juno-1", "state_sync", utc(2025, 10, 6, 14, 30)),
            ("osmosis-1", "pruning", utc(2025, 10, 7, 3, 0)),
            ("osmosis-1", "snapshot", utc(2025, 10, 12, 2, 0)),
        ]

    def test_upcoming_limit(self, node_configs, now):
        entries = upcoming_schedule(node_configs, now=now, limit=2)
        assert [e.entity for e in entries] == ["juno-1", "osmosis-1"]

    def test_zero_limit(self, node_configs, now):
        assert upcoming_schedule(node_configs, now=now, limit=0) == []

    def test_malformed_schedule_skipped(self, now):
        configs = {"n": NodeConfig(name="n", pruning_enabled=True, pruning_schedule="bad")}
        assert upcoming_schedule(configs, now=now) == []

    def test_next_operation(self, node_configs, now):
        entry = next_operation(node_configs["osmosis-1"], now=now)
        assert entry is not None
        assert entry.operation_type == "pruning"

    def test_next_operation_none(self, node_configs, now):
        assert next_operation(None, now=now) is None
        assert next_operation(node_configs["node-00"], now=now) is None


class TestAggregate:
    """Tests for aggregate and aggregate_snapshot."""

    def test_aggregate_snapshot(self, fleet_snapshot, now):
        result = aggregate_snapshot(fleet_snapshot, now=now, schedule_limit=6)
        assert result.metrics.health_percentage == 71
        assert len(result.issues) == 5
        assert len(result.upcoming_schedule) == 3

    def test_idempotent_for_fixed_now(self, fleet_snapshot, now):
        assert aggregate_snapshot(fleet_snapshot, now=now) == aggregate_snapshot(
            fleet_snapshot, now=now
        )

    def test_config_for_unknown_node_is_harmless(self, now):
        result = aggregate(
            [make_node("a")],
            [],
            [],
            {
                "ghost": NodeConfig(
                    name="ghost", pruning_enabled=True, pruning_schedule="0 0 3 * * *"
                )
            },
            now=now,
        )
        assert result.issues == ()
        assert [e.entity for e in result.upcoming_schedule] == ["ghost"]

    def test_accepts_generators(self, fleet_nodes, node_configs, now):
        result = aggregate((n for n in fleet_nodes), iter([]), iter([]), node_configs, now=now)
        assert result.metrics.total_nodes == 10
        assert len(result.issues) == 3
