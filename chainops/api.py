"""Backend REST API client.

Every endpoint answers with the envelope ``{success, data, message?}``.

- ``success: false`` or a payload of the wrong shape degrades to the empty
  default for that source (empty dict or list). It is logged, not raised.
- Transport failures (connection errors, timeouts, non-2xx status, bodies
  that are not JSON) raise ApiError. The refresh orchestrator treats these as
  a failed cycle.
"""

from __future__ import annotations

import logging
import os
from typing import Any
from urllib.parse import quote

import requests

from .constants import API_URL_ENV_VAR, DEFAULT_API_URL, REQUEST_TIMEOUT_S, USER_AGENT
from .exceptions import ApiError
from .models import (
    ActionResult,
    ActiveOperation,
    EtlHealth,
    HermesConfig,
    NodeConfig,
    NodeHealth,
    RelayerHealth,
    SnapshotInfo,
    SnapshotStats,
)

logger = logging.getLogger(__name__)


def resolve_api_url(api_url: str | None = None) -> str:
    """Return the API base URL: explicit value, then $CHAINOPS_API_URL, then default."""
    url = api_url or os.environ.get(API_URL_ENV_VAR) or DEFAULT_API_URL
    return url.rstrip("/")


class ApiClient:
    """Thin client over the backend endpoints the console consumes."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float = REQUEST_TIMEOUT_S,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = resolve_api_url(base_url)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            }
        )

    def close(self) -> None:
        self.session.close()

    def _request(
        self, method: str, path: str, *, params: dict[str, str] | None = None
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self.session.request(method, url, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise ApiError(f"{method} {path} timed out after {self.timeout}s", endpoint=path) from e
        except requests.exceptions.RequestException as e:
            raise ApiError(f"{method} {path} failed: {e}", endpoint=path) from e

        if not response.ok:
            raise ApiError(
                f"{method} {path} returned HTTP {response.status_code}",
                endpoint=path,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ApiError(f"{method} {path} returned invalid JSON", endpoint=path) from e

        if not isinstance(body, dict):
            raise ApiError(f"{method} {path} returned unexpected payload", endpoint=path)
        return body

    def _get_data(self, path: str, *, params: dict[str, str] | None = None) -> Any:
        """GET an endpoint and unwrap the envelope. Returns None when success is false."""
        body = self._request("GET", path, params=params)
        if not body.get("success"):
            logger.debug("%s reported failure: %s", path, body.get("message"))
            return None
        return body.get("data")

    # Config endpoints

    def fetch_node_configs(self) -> dict[str, NodeConfig]:
        data = self._get_data("/api/config/nodes")
        nodes = data.get("nodes") if isinstance(data, dict) else None
        if not isinstance(nodes, dict):
            return {}
        return {
            name: NodeConfig.from_api(name, cfg)
            for name, cfg in nodes.items()
            if isinstance(cfg, dict)
        }

    def fetch_hermes_configs(self) -> dict[str, HermesConfig]:
        data = self._get_data("/api/config/hermes")
        hermes = data.get("hermes") if isinstance(data, dict) else None
        if not isinstance(hermes, dict):
            return {}
        return {
            name: HermesConfig.from_api(name, cfg)
            for name, cfg in hermes.items()
            if isinstance(cfg, dict)
        }

    # Health endpoints

    def fetch_node_health(self, include_disabled: bool = True) -> list[NodeHealth]:
        data = self._get_data(
            "/api/health/nodes", params={"include_disabled": _bool_param(include_disabled)}
        )
        return [NodeHealth.from_api(item) for item in _dict_items(data)]

    def fetch_relayer_health(self) -> list[RelayerHealth]:
        data = self._get_data("/api/health/hermes")
        return [RelayerHealth.from_api(item) for item in _dict_items(data)]

    def fetch_etl_health(self, include_disabled: bool = True) -> list[EtlHealth]:
        data = self._get_data(
            "/api/health/etl", params={"include_disabled": _bool_param(include_disabled)}
        )
        return [EtlHealth.from_api(item) for item in _dict_items(data)]

    def fetch_active_operations(self) -> list[ActiveOperation]:
        """Return in-flight and recent operations; any failure yields an empty list."""
        try:
            data = self._get_data("/api/operations/active")
        except ApiError as e:
            logger.debug("Active operations unavailable: %s", e)
            return []
        operations = data.get("operations") if isinstance(data, dict) else None
        return [ActiveOperation.from_api(item) for item in _dict_items(operations)]

    # Snapshot endpoints

    def fetch_snapshot_stats(self, node_name: str) -> SnapshotStats | None:
        """Return the node's snapshot totals, or None when the backend has none."""
        data = self._get_data(f"/api/snapshots/{_seg(node_name)}/stats")
        if not isinstance(data, dict):
            return None
        return SnapshotStats.from_api(data)

    def fetch_snapshots(self, node_name: str) -> list[SnapshotInfo]:
        """Return the node's snapshots, newest first."""
        data = self._get_data(f"/api/snapshots/{_seg(node_name)}/list")
        return [SnapshotInfo.from_api(item) for item in _dict_items(data)]

    # Actions

    def _action(self, method: str, path: str) -> ActionResult:
        body = self._request(method, path)
        job_id = body.get("job_id")
        return ActionResult(
            success=bool(body.get("success")),
            message=body.get("message"),
            job_id=str(job_id) if job_id is not None else None,
        )

    def prune_node(self, node_name: str) -> ActionResult:
        return self._action("POST", f"/api/maintenance/nodes/{_seg(node_name)}/prune")

    def restart_node(self, node_name: str) -> ActionResult:
        return self._action("POST", f"/api/maintenance/nodes/{_seg(node_name)}/restart")

    def create_snapshot(self, node_name: str) -> ActionResult:
        return self._action("POST", f"/api/snapshots/{_seg(node_name)}/create")

    def restore_snapshot(self, node_name: str) -> ActionResult:
        return self._action("POST", f"/api/snapshots/{_seg(node_name)}/restore")

    def execute_state_sync(self, node_name: str) -> ActionResult:
        return self._action("POST", f"/api/state-sync/{_seg(node_name)}/execute")

    def restart_hermes(self, hermes_name: str) -> ActionResult:
        return self._action("POST", f"/api/maintenance/hermes/{_seg(hermes_name)}/restart")

    def refresh_etl_service(self, service_name: str) -> ActionResult:
        return self._action("GET", f"/api/health/etl/{_seg(service_name)}")


def _bool_param(value: bool) -> str:
    return "true" if value else "false"


def _seg(name: str) -> str:
    """Quote an entity name for use as a single path segment."""
    return quote(name, safe="")


def _dict_items(data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]
