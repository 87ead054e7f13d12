"""Maintenance actions: prune, restart, snapshot, restore, state sync, relayer restart."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from ..api import ApiClient
from ..cli_types import ActionArgs
from ..exceptions import CommandFailureError, UserError
from ..models import ActionResult

if TYPE_CHECKING:
    from .monitor.refresh import RefreshOrchestrator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionSpec:
    """One mutating action and the client method that performs it."""

    name: str
    method: str
    target_kind: str
    label: str


ACTIONS: dict[str, ActionSpec] = {
    spec.name: spec
    for spec in (
        ActionSpec("prune", "prune_node", "node", "Prune node"),
        ActionSpec("restart", "restart_node", "node", "Restart node"),
        ActionSpec("snapshot", "create_snapshot", "node", "Create snapshot"),
        ActionSpec("restore", "restore_snapshot", "node", "Restore from snapshot"),
        ActionSpec("state-sync", "execute_state_sync", "node", "Execute state sync"),
        ActionSpec("hermes-restart", "restart_hermes", "hermes", "Restart relayer"),
        ActionSpec("etl-refresh", "refresh_etl_service", "etl", "Re-check ETL service"),
    )
}


def get_action(name: str) -> ActionSpec:
    spec = ACTIONS.get(name)
    if spec is None:
        raise UserError(f"Unknown action: {name}")
    return spec


def run_action(
    client: ApiClient,
    action: str,
    target: str,
    *,
    orchestrator: RefreshOrchestrator | None = None,
) -> ActionResult:
    """Call the action endpoint, then ask the orchestrator for a refresh.

    The refresh is requested whenever the backend answered, including when it
    reported ``success: false``; transport errors propagate as ApiError.

    Args:
        client: API client
        action: Key in ACTIONS
        target: Entity name the action applies to
        orchestrator: Running orchestrator to refresh afterwards, if any

    Returns:
        The backend's ActionResult
    """
    spec = get_action(action)
    if not target:
        raise UserError(f"{spec.label}: target name is required")

    logger.debug("Running %s on %s", spec.name, target)
    result: ActionResult = getattr(client, spec.method)(target)
    if result.success:
        logger.debug("%s on %s accepted: %s", spec.name, target, result.message)
    else:
        logger.warning("%s on %s rejected: %s", spec.name, target, result.message)

    if orchestrator is not None:
        orchestrator.request_refresh(f"action:{spec.name}")
    return result


def cmd_action(args: ActionArgs, *, client: ApiClient | None = None) -> None:
    """Run a maintenance action from the CLI (dry run unless --confirm)."""
    spec = get_action(args.action)

    if not args.confirm:
        if args.json:
            summary = {
                "dry_run": True,
                "action": spec.name,
                "target": args.target,
                "target_kind": spec.target_kind,
            }
            print(json.dumps(summary, indent=2, sort_keys=True))
        else:
            print("DRY RUN: --confirm not provided; no changes will be made.")
            print(f"Action: {spec.label}")
            print(f"Target: {args.target} ({spec.target_kind})")
            print("Run again with --confirm to apply changes.")
        return

    owns_client = client is None
    if client is None:
        client = ApiClient(args.api.api_url, timeout=args.api.timeout)
    try:
        result = run_action(client, spec.name, args.target)
    finally:
        if owns_client:
            client.close()

    if args.json:
        payload = {"action": spec.name, "target": args.target, **asdict(result)}
        print(json.dumps(payload, indent=2, sort_keys=True))
    elif result.success:
        message = f": {result.message}" if result.message else ""
        print(f"[{args.target}] {spec.label} started{message}")
        if result.job_id:
            print(f"Job: {result.job_id}")
    else:
        print(
            f"[{args.target}] {spec.label} FAILED: {result.message or 'no reason given'}",
            file=sys.stderr,
        )

    if not result.success:
        raise CommandFailureError(rc=1)
