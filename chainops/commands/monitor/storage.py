"""Snapshot storage summary across the fleet.

Stats and snapshot listings are per-node endpoints. A node whose calls fail
is left out of the summary instead of failing the refresh cycle.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ...api import ApiClient
from ...exceptions import ChainOpsError
from ...models import SnapshotInfo, SnapshotStats, SnapshotStorage

logger = logging.getLogger(__name__)

NodeStorage = tuple[SnapshotStats | None, SnapshotInfo | None]


def fetch_node_storage(client: ApiClient, node_name: str) -> NodeStorage:
    """Return the node's snapshot stats and its newest snapshot, either may be None."""
    try:
        stats = client.fetch_snapshot_stats(node_name)
    except ChainOpsError as e:
        logger.debug("Snapshot stats for %s unavailable: %s", node_name, e)
        stats = None
    try:
        snapshots = client.fetch_snapshots(node_name)
    except ChainOpsError as e:
        logger.debug("Snapshot list for %s unavailable: %s", node_name, e)
        snapshots = []
    return stats, (snapshots[0] if snapshots else None)


def merge_stats(stats: Iterable[SnapshotStats | None]) -> SnapshotStats:
    """Sum totals and per-network counts; None entries are skipped."""
    total = 0
    size = 0
    by_network: dict[str, int] = {}
    for item in stats:
        if item is None:
            continue
        total += item.total_snapshots
        size += item.total_size_bytes
        for network, count in item.by_network.items():
            by_network[network] = by_network.get(network, 0) + count
    return SnapshotStats(total_snapshots=total, total_size_bytes=size, by_network=by_network)


def latest_per_network(snapshots: Iterable[SnapshotInfo | None]) -> tuple[SnapshotInfo, ...]:
    """Keep one snapshot per network, the one with the greatest filename, ordered by network.

    Snapshot filenames embed their creation timestamp, so the greatest name
    is the newest.
    """
    latest: dict[str, SnapshotInfo] = {}
    for info in snapshots:
        if info is None:
            continue
        current = latest.get(info.network)
        if current is None or info.filename > current.filename:
            latest[info.network] = info
    return tuple(latest[network] for network in sorted(latest))


def summarize_storage(per_node: Iterable[NodeStorage]) -> SnapshotStorage:
    entries = list(per_node)
    return SnapshotStorage(
        stats=merge_stats(stats for stats, _ in entries),
        latest=latest_per_network(newest for _, newest in entries),
    )


def networks_by_count(stats: SnapshotStats) -> list[tuple[str, int]]:
    """Networks with the most snapshots first; ties by name."""
    return sorted(stats.by_network.items(), key=lambda item: (-item[1], item[0]))
