"""Tests for chainops/commands/actions.py - maintenance actions."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from chainops.api import ApiClient
from chainops.cli_types import ActionArgs
from chainops.commands.actions import ACTIONS, cmd_action, get_action, run_action
from chainops.exceptions import ApiError, CommandFailureError, UserError
from chainops.models import ActionResult


def make_args(api_args, action="prune", target="osmosis-1", *, json_output=False, confirm=False):
    return ActionArgs(api=api_args, action=action, target=target, json=json_output, confirm=confirm)


class TestActionTable:
    """Tests for the ACTIONS registry."""

    def test_every_action_maps_to_a_client_method(self):
        for spec in ACTIONS.values():
            assert callable(getattr(ApiClient, spec.method))

    def test_get_action_unknown(self):
        with pytest.raises(UserError, match="Unknown action"):
            get_action("explode")


class TestRunAction:
    """Tests for run_action function."""

    def test_calls_client_and_requests_refresh(self, mock_client):
        mock_client.create_snapshot.return_value = ActionResult(success=True, message="ok")
        orchestrator = MagicMock()

        result = run_action(mock_client, "snapshot", "osmosis-1", orchestrator=orchestrator)

        assert result.success
        mock_client.create_snapshot.assert_called_once_with("osmosis-1")
        orchestrator.request_refresh.assert_called_once_with("action:snapshot")

    def test_rejection_still_refreshes(self, mock_client):
        mock_client.restart_node.return_value = ActionResult(success=False, message="busy")
        orchestrator = MagicMock()

        result = run_action(mock_client, "restart", "osmosis-1", orchestrator=orchestrator)

        assert not result.success
        orchestrator.request_refresh.assert_called_once()

    def test_transport_error_propagates_without_refresh(self, mock_client):
        mock_client.prune_node.side_effect = ApiError("down", endpoint="/x")
        orchestrator = MagicMock()

        with pytest.raises(ApiError):
            run_action(mock_client, "prune", "osmosis-1", orchestrator=orchestrator)
        orchestrator.request_refresh.assert_not_called()

    def test_empty_target(self, mock_client):
        with pytest.raises(UserError, match="target name is required"):
            run_action(mock_client, "prune", "")
        mock_client.prune_node.assert_not_called()

    def test_without_orchestrator(self, mock_client):
        mock_client.refresh_etl_service.return_value = ActionResult(success=True)
        assert run_action(mock_client, "etl-refresh", "archiver").success


class TestCmdAction:
    """Tests for cmd_action function."""

    def test_dry_run(self, api_args, mock_client, capsys):
        cmd_action(make_args(api_args), client=mock_client)

        out = capsys.readouterr().out
        assert "DRY RUN" in out
        assert "Action: Prune node" in out
        assert "Target: osmosis-1 (node)" in out
        mock_client.prune_node.assert_not_called()

    def test_dry_run_json(self, api_args, mock_client, capsys):
        cmd_action(make_args(api_args, "hermes-restart", "hermes-c", json_output=True))

        payload = json.loads(capsys.readouterr().out)
        assert payload == {
            "dry_run": True,
            "action": "hermes-restart",
            "target": "hermes-c",
            "target_kind": "hermes",
        }

    def test_confirm_success(self, api_args, mock_client, capsys):
        mock_client.prune_node.return_value = ActionResult(
            success=True, message="Pruning started", job_id="job-7"
        )

        cmd_action(make_args(api_args, confirm=True), client=mock_client)

        out = capsys.readouterr().out
        assert "[osmosis-1] Prune node started: Pruning started" in out
        assert "Job: job-7" in out
        mock_client.close.assert_not_called()

    def test_confirm_failure(self, api_args, mock_client, capsys):
        mock_client.prune_node.return_value = ActionResult(success=False, message="node busy")

        with pytest.raises(CommandFailureError) as exc_info:
            cmd_action(make_args(api_args, confirm=True), client=mock_client)

        assert exc_info.value.rc == 1
        assert "[osmosis-1] Prune node FAILED: node busy" in capsys.readouterr().err

    def test_confirm_json(self, api_args, mock_client, capsys):
        mock_client.execute_state_sync.return_value = ActionResult(success=True, job_id="j1")

        cmd_action(
            make_args(api_args, "state-sync", "juno-1", json_output=True, confirm=True),
            client=mock_client,
        )

        payload = json.loads(capsys.readouterr().out)
        assert payload == {
            "action": "state-sync",
            "target": "juno-1",
            "success": True,
            "message": None,
            "job_id": "j1",
        }

    def test_owned_client_is_closed(self, api_args, mocker):
        client = MagicMock()
        client.restore_snapshot.return_value = ActionResult(success=True)
        client_cls = mocker.patch("chainops.commands.actions.ApiClient", return_value=client)

        cmd_action(make_args(api_args, "restore", confirm=True))

        client_cls.assert_called_once_with("http://api.test", timeout=5)
        client.restore_snapshot.assert_called_once_with("osmosis-1")
        client.close.assert_called_once()
