"""Shared pytest fixtures for ChainOps tests."""

from __future__ import annotations

import datetime as dt
import tempfile
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from chainops.api import ApiClient
from chainops.cli_types import ApiArgs
from chainops.constants import STATE_DIR_ENV_VAR
from chainops.db import init_db
from chainops.models import (
    ActiveOperation,
    EtlHealth,
    FleetSnapshot,
    HermesConfig,
    NodeConfig,
    NodeHealth,
    RelayerHealth,
    SnapshotInfo,
    SnapshotStats,
    SnapshotStorage,
)

# Monday 2025-10-06 12:00 UTC
FIXED_NOW = dt.datetime(2025, 10, 6, 12, 0, 0, tzinfo=dt.UTC)


def make_node(name: str, status: str = "Synced", host: str = "server-1", **kwargs) -> NodeHealth:
    return NodeHealth(name=name, host=host, status=status, **kwargs)


def make_relayer(
    name: str, status: str = "Running", host: str = "server-1", **kwargs
) -> RelayerHealth:
    return RelayerHealth(name=name, host=host, status=status, **kwargs)


def make_etl(name: str, status: str = "healthy", host: str = "server-1", **kwargs) -> EtlHealth:
    return EtlHealth(name=name, host=host, status=status, **kwargs)


@pytest.fixture
def tmp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def state_dir(tmp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the ChainOps state directory at a temporary path."""
    path = tmp_dir / ".chainops"
    monkeypatch.setenv(STATE_DIR_ENV_VAR, str(path))
    return path


@pytest.fixture
def temp_db(tmp_dir: Path) -> Path:
    """Create an initialized temporary preferences database."""
    db_path = tmp_dir / "chainops.db"
    init_db(db_path)
    return db_path


@pytest.fixture
def now() -> dt.datetime:
    return FIXED_NOW


@pytest.fixture
def fleet_nodes() -> list[NodeHealth]:
    """Ten nodes: seven synced, two unhealthy, one in maintenance."""
    nodes = [make_node(f"node-{i:02d}", host=f"server-{i % 3}") for i in range(7)]
    nodes.append(
        make_node(
            "osmosis-1",
            status="Unhealthy",
            host="server-a",
            block_height=1234567,
            error_message="RPC not responding",
        )
    )
    nodes.append(make_node("cosmos-hub", status="Unhealthy", host="server-b", catching_up=True))
    nodes.append(make_node("juno-1", status="Maintenance", host="server-a"))
    return nodes


@pytest.fixture
def fleet_relayers() -> list[RelayerHealth]:
    """Three relayers, one stopped."""
    return [
        make_relayer("hermes-a", status="Running (5d 3h)", host="relay-1"),
        make_relayer("hermes-b", status="Running", host="relay-1"),
        make_relayer("hermes-c", status="Stopped", host="relay-2", uptime="0s"),
    ]


@pytest.fixture
def fleet_etl() -> list[EtlHealth]:
    """Four ETL services, one unhealthy."""
    return [
        make_etl("indexer", host="etl-1", description="Block indexer"),
        make_etl("pricer", host="etl-1"),
        make_etl("exporter", host="etl-2"),
        make_etl(
            "archiver",
            status="unhealthy",
            host="etl-2",
            http_status=503,
            response_time_ms=1200,
            url="http://etl-2:8080/health",
        ),
    ]


@pytest.fixture
def node_configs() -> dict[str, NodeConfig]:
    return {
        "osmosis-1": NodeConfig(
            name="osmosis-1",
            pruning_enabled=True,
            pruning_schedule="0 0 3 * * *",
            snapshots_enabled=True,
            snapshot_schedule="0 0 2 * * 0",
            auto_restore_enabled=True,
        ),
        "juno-1": NodeConfig(
            name="juno-1",
            state_sync_enabled=True,
            state_sync_schedule="0 30 14 * * *",
        ),
        "node-00": NodeConfig(
            name="node-00",
            pruning_enabled=False,
            pruning_schedule="0 0 1 * * *",
        ),
    }


@pytest.fixture
def hermes_configs() -> dict[str, HermesConfig]:
    return {"hermes-a": HermesConfig(name="hermes-a", restart_schedule="0 0 4 * * 1")}


@pytest.fixture
def snapshot_stats() -> dict[str, SnapshotStats]:
    """Per-node snapshot stats; node-00 has none."""
    return {
        "osmosis-1": SnapshotStats(
            total_snapshots=3, total_size_bytes=3 * 1024**3, by_network={"osmosis": 3}
        ),
        "juno-1": SnapshotStats(
            total_snapshots=2, total_size_bytes=3 * 512 * 1024**2, by_network={"juno": 2}
        ),
    }


@pytest.fixture
def snapshot_lists() -> dict[str, list[SnapshotInfo]]:
    """Per-node snapshot listings, newest first."""
    return {
        "osmosis-1": [
            SnapshotInfo(
                node_name="osmosis-1",
                network="osmosis",
                filename="osmosis-1_20251005_020000.tar.lz4",
                snapshot_path="/snapshots/osmosis/osmosis-1_20251005_020000.tar.lz4",
                file_size_bytes=1024**3,
            ),
            SnapshotInfo(
                node_name="osmosis-1",
                network="osmosis",
                filename="osmosis-1_20250928_020000.tar.lz4",
                file_size_bytes=1024**3,
            ),
        ],
        "juno-1": [
            SnapshotInfo(
                node_name="juno-1",
                network="juno",
                filename="juno-1_20251004_020000.tar.lz4",
                snapshot_path="/snapshots/juno/juno-1_20251004_020000.tar.lz4",
            ),
        ],
    }


@pytest.fixture
def fleet_snapshot(
    fleet_nodes,
    fleet_relayers,
    fleet_etl,
    node_configs,
    hermes_configs,
    snapshot_lists,
) -> FleetSnapshot:
    return FleetSnapshot(
        node_configs=node_configs,
        hermes_configs=hermes_configs,
        nodes=tuple(fleet_nodes),
        relayers=tuple(fleet_relayers),
        etl=tuple(fleet_etl),
        operations=(
            ActiveOperation(
                id="op-1",
                operation_type="snapshot",
                target_name="osmosis-1",
                status="in_progress",
                started_at="2025-10-06T11:55:00+00:00",
            ),
        ),
        storage=SnapshotStorage(
            stats=SnapshotStats(
                total_snapshots=5,
                total_size_bytes=4831838208,
                by_network={"osmosis": 3, "juno": 2},
            ),
            latest=(snapshot_lists["juno-1"][0], snapshot_lists["osmosis-1"][0]),
        ),
        fetched_at="2025-10-06T12:00:00+00:00",
    )


@pytest.fixture
def mock_client(fleet_snapshot: FleetSnapshot, snapshot_stats, snapshot_lists) -> MagicMock:
    """ApiClient double whose fetchers return the fleet snapshot's collections."""
    client = MagicMock(spec=ApiClient)
    client.fetch_node_configs.return_value = dict(fleet_snapshot.node_configs)
    client.fetch_hermes_configs.return_value = dict(fleet_snapshot.hermes_configs)
    client.fetch_node_health.return_value = list(fleet_snapshot.nodes)
    client.fetch_relayer_health.return_value = list(fleet_snapshot.relayers)
    client.fetch_etl_health.return_value = list(fleet_snapshot.etl)
    client.fetch_active_operations.return_value = list(fleet_snapshot.operations)
    client.fetch_snapshot_stats.side_effect = snapshot_stats.get
    client.fetch_snapshots.side_effect = lambda name: list(snapshot_lists.get(name, []))
    return client


@pytest.fixture
def api_args() -> ApiArgs:
    return ApiArgs(api_url="http://api.test", timeout=5)
