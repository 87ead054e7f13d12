"""Tests for chainops/commands/monitor/storage.py - snapshot storage summary."""

from __future__ import annotations

from chainops.commands.monitor.storage import (
    fetch_node_storage,
    latest_per_network,
    merge_stats,
    networks_by_count,
    summarize_storage,
)
from chainops.exceptions import ApiError
from chainops.models import SnapshotInfo, SnapshotStats


def make_info(network: str, filename: str, node_name: str = "node") -> SnapshotInfo:
    return SnapshotInfo(node_name=node_name, network=network, filename=filename)


class TestMergeStats:
    """Tests for merge_stats function."""

    def test_sums_totals_and_networks(self):
        merged = merge_stats(
            [
                SnapshotStats(total_snapshots=2, total_size_bytes=100, by_network={"osmosis": 2}),
                None,
                SnapshotStats(
                    total_snapshots=3, total_size_bytes=50, by_network={"osmosis": 1, "juno": 2}
                ),
            ]
        )
        assert merged.total_snapshots == 5
        assert merged.total_size_bytes == 150
        assert merged.by_network == {"osmosis": 3, "juno": 2}

    def test_nothing_to_merge(self):
        assert merge_stats([None, None]) == SnapshotStats()


class TestLatestPerNetwork:
    """Tests for latest_per_network function."""

    def test_greatest_filename_wins(self):
        latest = latest_per_network(
            [
                make_info("osmosis", "osmosis-1_20251001.tar.lz4", "osmosis-1"),
                None,
                make_info("osmosis", "osmosis-2_20251003.tar.lz4", "osmosis-2"),
                make_info("juno", "juno-1_20250920.tar.lz4", "juno-1"),
            ]
        )
        assert [(i.network, i.node_name) for i in latest] == [
            ("juno", "juno-1"),
            ("osmosis", "osmosis-2"),
        ]

    def test_empty(self):
        assert latest_per_network([]) == ()


class TestSummarizeStorage:
    """Tests for summarize_storage and networks_by_count."""

    def test_summarize(self, snapshot_stats, snapshot_lists, fleet_snapshot):
        storage = summarize_storage(
            [
                (snapshot_stats["osmosis-1"], snapshot_lists["osmosis-1"][0]),
                (snapshot_stats["juno-1"], snapshot_lists["juno-1"][0]),
                (None, None),
            ]
        )
        assert storage == fleet_snapshot.storage

    def test_summarize_generator_of_nothing(self):
        storage = summarize_storage(entry for entry in [])
        assert storage.stats.total_snapshots == 0
        assert storage.latest == ()

    def test_networks_by_count(self):
        stats = SnapshotStats(by_network={"juno": 2, "akash": 2, "osmosis": 5})
        assert networks_by_count(stats) == [("osmosis", 5), ("akash", 2), ("juno", 2)]


class TestFetchNodeStorage:
    """Tests for fetch_node_storage function."""

    def test_stats_and_newest(self, mock_client, snapshot_stats, snapshot_lists):
        stats, newest = fetch_node_storage(mock_client, "osmosis-1")
        assert stats == snapshot_stats["osmosis-1"]
        assert newest == snapshot_lists["osmosis-1"][0]

    def test_node_without_snapshots(self, mock_client):
        assert fetch_node_storage(mock_client, "node-00") == (None, None)

    def test_failures_are_skipped(self, mock_client, snapshot_lists):
        mock_client.fetch_snapshot_stats.side_effect = ApiError("down", endpoint="/x")
        stats, newest = fetch_node_storage(mock_client, "osmosis-1")
        assert stats is None
        assert newest == snapshot_lists["osmosis-1"][0]

        mock_client.fetch_snapshots.side_effect = ApiError("down", endpoint="/x")
        assert fetch_node_storage(mock_client, "osmosis-1") == (None, None)
