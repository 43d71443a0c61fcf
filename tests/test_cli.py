"""
Tests for the gitsyncer CLI — check-config, list-repos, sync-repo, sync-all, clone.

Uses Click's CliRunner to test commands without spawning subprocesses.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest import mock

import pytest
from click.testing import CliRunner

from conftest import requires_git
from gitsyncer.main import cli
from gitsyncer.sync.analyzer import AbandonedBranchReport, BranchInfo
from gitsyncer.sync.errors import MergeConflictError
from gitsyncer.sync.syncer import Syncer


# -- Fixtures -----------------------------------------------------------------

CONFIG = {
    "organizations": [
        {"host": "git@codeberg.org", "name": "snonux"},
        {"host": "git@github.com", "name": "snonux"},
        {"host": "paul@backup.lan:git", "backupLocation": True},
    ],
    "repositories": ["gitsyncer", "dtail", "foostats"],
    "exclude_branches": ["^wip-"],
}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "gitsyncer.json"
    path.write_text(json.dumps(CONFIG))
    return path


def _invoke(runner, config_file, tmp_path, *args):
    return runner.invoke(
        cli,
        [
            "--config", str(config_file),
            "--work-dir", str(tmp_path / "work"),
            "--log-level", "ERROR",
            *args,
        ],
    )


# -- check-config / list-repos -----------------------------------------------

class TestConfigCommands:

    def test_check_config(self, runner, config_file, tmp_path):
        result = _invoke(runner, config_file, tmp_path, "check-config")
        assert result.exit_code == 0, result.output
        assert "Configuration is valid" in result.output
        assert "codeberg_org" in result.output
        assert "backup_lan_git" in result.output
        assert "^wip-" in result.output

    def test_check_config_json(self, runner, config_file, tmp_path):
        result = _invoke(runner, config_file, tmp_path, "check-config", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["valid"] is True
        assert data["work_dir"] == str(tmp_path / "work")
        remotes = [o["remote"] for o in data["organizations"]]
        assert remotes == ["codeberg_org", "github_com", "backup_lan_git"]
        assert data["organizations"][1]["url_template"] == "git@github.com:snonux/<repo>.git"

    def test_invalid_config(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"repositories": ["x"]}))
        result = _invoke(runner, bad, tmp_path, "check-config")
        assert result.exit_code == 1
        assert "no organizations configured" in result.output

    def test_missing_config(self, runner, tmp_path):
        result = _invoke(runner, tmp_path / "missing.json", tmp_path, "list-repos")
        assert result.exit_code == 1
        assert "ERROR" in result.output

    def test_list_repos(self, runner, config_file, tmp_path):
        result = _invoke(runner, config_file, tmp_path, "list-repos")
        assert result.exit_code == 0
        assert result.output.split() == ["gitsyncer", "dtail", "foostats"]


# -- sync-repo / sync-all ----------------------------------------------------

class TestSyncCommands:

    @mock.patch.object(Syncer, "sync_repository", return_value=AbandonedBranchReport())
    def test_sync_repo_success(self, mock_sync, runner, config_file, tmp_path):
        result = _invoke(runner, config_file, tmp_path, "sync-repo", "dtail")
        assert result.exit_code == 0, result.output
        assert "Repository dtail synchronized successfully" in result.output
        assert mock_sync.call_args.args[0] == "dtail"

    @mock.patch.object(Syncer, "sync_repository")
    def test_sync_repo_report(self, mock_sync, runner, config_file, tmp_path):
        when = datetime(2025, 1, 15, tzinfo=timezone.utc)
        mock_sync.return_value = AbandonedBranchReport(
            main_branch_active=True,
            main_branch_last_commit=when,
            abandoned_branches=[BranchInfo("old", when, "github_com", True, "No commits for 200 days")],
        )

        shown = _invoke(runner, config_file, tmp_path, "sync-repo", "dtail")
        hidden = _invoke(runner, config_file, tmp_path, "sync-repo", "dtail", "--no-report")

        assert "Abandoned branches in dtail" in shown.output
        assert "Abandoned branches in dtail" not in hidden.output
        assert hidden.exit_code == 0

    @mock.patch.object(Syncer, "sync_repository")
    def test_sync_repo_failure(self, mock_sync, runner, config_file, tmp_path):
        mock_sync.side_effect = MergeConflictError("github_com", "main").add_context("failed to sync dtail")
        result = _invoke(runner, config_file, tmp_path, "sync-repo", "dtail")
        assert result.exit_code == 1
        assert "Sync failed: failed to sync dtail: merge conflict" in result.output

    @mock.patch.object(Syncer, "set_backup_enabled")
    @mock.patch.object(Syncer, "sync_repository", return_value=None)
    def test_backup_flag(self, mock_sync, mock_backup, runner, config_file, tmp_path):
        _invoke(runner, config_file, tmp_path, "sync-repo", "dtail", "--backup")
        mock_backup.assert_called_once_with(True)

    @mock.patch.object(Syncer, "sync_repository", return_value=None)
    def test_sync_all(self, mock_sync, runner, config_file, tmp_path):
        result = _invoke(runner, config_file, tmp_path, "sync-all")
        assert result.exit_code == 0, result.output
        assert "[3/3] Syncing foostats..." in result.output
        assert "Successfully synced all 3 repositories" in result.output
        # No abandoned branches, so no script
        assert "MANAGEMENT SCRIPT" not in result.output

    @mock.patch.object(Syncer, "sync_repository")
    def test_sync_all_stops_on_first_error(self, mock_sync, runner, config_file, tmp_path):
        mock_sync.side_effect = [None, MergeConflictError("github_com", "main"), None]
        result = _invoke(runner, config_file, tmp_path, "sync-all")
        assert result.exit_code == 1
        assert "Stopping sync due to error." in result.output
        assert mock_sync.call_count == 2

    @mock.patch.object(Syncer, "sync_repository")
    def test_sync_all_continue_on_error(self, mock_sync, runner, config_file, tmp_path):
        mock_sync.side_effect = [None, MergeConflictError("github_com", "main"), None]
        result = _invoke(runner, config_file, tmp_path, "sync-all", "--continue-on-error")
        assert result.exit_code == 1
        assert mock_sync.call_count == 3
        assert "Synced 2/3 repositories; failed: dtail" in result.output

    def test_sync_all_without_repositories(self, runner, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"organizations": CONFIG["organizations"]}))
        result = _invoke(runner, path, tmp_path, "sync-all")
        assert result.exit_code == 1
        assert "No repositories configured" in result.output

    def test_clone_needs_name(self, runner, config_file, tmp_path):
        result = _invoke(runner, config_file, tmp_path, "clone")
        assert result.exit_code == 1
        assert "--all" in result.output

    def test_unusable_work_dir_is_an_error(self, runner, config_file, tmp_path):
        (tmp_path / "work").write_text("taken by a file\n")
        for args in (("sync-repo", "dtail"), ("sync-all",)):
            result = _invoke(runner, config_file, tmp_path, *args)
            assert result.exit_code == 1
            assert "ERROR" in result.output
            assert "failed to create work directory" in result.output
            assert not isinstance(result.exception, OSError)


# -- End to end ---------------------------------------------------------------

@requires_git
class TestEndToEnd:

    def test_sync_repo_against_local_orgs(self, runner, forge, tmp_path):
        forge.seed("proj", "org1", "org2")
        forge.commit("org2", "proj", "b.txt", "b\n")
        path = tmp_path / "local.yaml"
        path.write_text(
            "organizations:\n"
            f"  - host: {forge.host('org1')}\n"
            f"  - host: {forge.host('org2')}\n"
            "repositories: [proj]\n"
        )

        result = _invoke(runner, path, tmp_path, "sync-repo", "proj")

        assert result.exit_code == 0, result.output
        assert forge.tip("org1", "proj") == forge.tip("org2", "proj")
        assert (tmp_path / "work" / "proj" / "b.txt").exists()

    def test_clone_all(self, runner, forge, tmp_path):
        forge.seed("proj", "org1")
        path = tmp_path / "local.json"
        path.write_text(json.dumps({
            "organizations": [{"host": forge.host("org1")}],
            "repositories": ["proj"],
        }))

        first = _invoke(runner, path, tmp_path, "clone", "--all")
        second = _invoke(runner, path, tmp_path, "clone", "proj")

        assert first.exit_code == 0, first.output
        assert "Cloned proj" in first.output
        assert "already exists locally" in second.output
