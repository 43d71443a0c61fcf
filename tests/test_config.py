"""
Tests for gitsyncer.config — models, validation and the loader.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from gitsyncer.config.loader import (
    DEFAULT_WORK_DIR,
    ConfigError,
    build_config,
    find_config_file,
    load_config,
)
from gitsyncer.config.models import Config, Organization


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data))
    return path


BASIC = {
    "organizations": [
        {"host": "git@codeberg.org", "name": "snonux"},
        {"host": "git@github.com", "name": "snonux"},
        {"host": "paul@backup.lan:git", "backupLocation": True},
    ],
    "repositories": ["gitsyncer", "dtail"],
    "exclude_branches": ["^wip-"],
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("GITSYNCER_CONFIG", "GITSYNCER_WORK_DIR", "GITHUB_TOKEN", "CODEBERG_TOKEN"):
        monkeypatch.delenv(name, raising=False)


class TestValidation:

    def test_valid_config_has_no_problems(self):
        assert Config(**BASIC).problems() == []

    def test_no_organizations(self):
        assert "no organizations configured" in Config().problems()

    def test_missing_name_for_forge(self):
        config = Config(organizations=[Organization(host="git@github.com")])
        assert any("missing name" in p for p in config.problems())

    def test_name_optional_for_file_and_ssh(self):
        config = Config(organizations=[
            Organization(host="file:///srv/org1"),
            Organization(host="paul@backup.lan:git"),
        ])
        assert config.problems() == []

    def test_invalid_exclude_pattern(self):
        data = dict(BASIC, exclude_branches=["[unclosed"])
        assert any("invalid exclude_branches pattern" in p for p in Config(**data).problems())

    def test_eligible_organizations(self):
        config = Config(**BASIC)
        assert len(config.eligible_organizations(backup_enabled=False)) == 2
        assert len(config.eligible_organizations(backup_enabled=True)) == 3
        assert config.find_github_org().host == "git@github.com"
        assert config.find_codeberg_org().host == "git@codeberg.org"


class TestBuildConfig:

    def test_defaults_work_dir(self):
        config = build_config(dict(BASIC))
        assert config.work_dir == str(Path(DEFAULT_WORK_DIR).expanduser())

    def test_override_beats_env_and_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GITSYNCER_WORK_DIR", str(tmp_path / "env"))
        data = dict(BASIC, work_dir=str(tmp_path / "file"))
        assert build_config(data, work_dir=str(tmp_path / "cli")).work_dir == str(tmp_path / "cli")
        assert build_config(data).work_dir == str(tmp_path / "env")

    def test_token_from_env(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "gh-secret")
        config = build_config(dict(BASIC))
        github = config.find_github_org()
        assert github.github_token == "gh-secret"
        assert config.find_codeberg_org().codeberg_token is None

    def test_file_token_not_overridden(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env")
        data = {"organizations": [{"host": "git@github.com", "name": "a", "github_token": "file"}]}
        assert build_config(data).organizations[0].github_token == "file"

    def test_invalid_raises_config_error(self):
        with pytest.raises(ConfigError, match="no organizations configured"):
            build_config({"repositories": ["x"]})

    def test_wrong_type_raises_config_error(self):
        with pytest.raises(ConfigError, match="invalid configuration"):
            build_config({"organizations": "nope"})

    def test_colliding_remote_names(self):
        data = {"organizations": [
            {"host": "git@github.com", "name": "a"},
            {"host": "git@github.com", "name": "b"},
        ]}
        with pytest.raises(ConfigError, match="same remote name: github_com"):
            build_config(data)


class TestLoadConfig:

    def test_explicit_json(self, tmp_path):
        path = _write(tmp_path / "gitsyncer.json", BASIC)
        config = load_config(str(path), work_dir=str(tmp_path / "wd"))
        assert config.repositories == ["gitsyncer", "dtail"]
        assert config.organizations[2].backup_location is True

    def test_yaml(self, tmp_path):
        path = tmp_path / "gitsyncer.yaml"
        path.write_text(
            "organizations:\n"
            "  - host: file:///srv/org1\n"
            "  - host: paul@backup.lan:git\n"
            "    backupLocation: true\n"
            "repositories: [one]\n"
        )
        config = load_config(str(path))
        assert config.organizations[1].backup_location is True
        assert config.repositories == ["one"]

    def test_env_var_path(self, tmp_path, monkeypatch):
        path = _write(tmp_path / "custom.json", BASIC)
        monkeypatch.setenv("GITSYNCER_CONFIG", str(path))
        assert find_config_file() == path

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="no configuration file found"):
            load_config(str(tmp_path / "nope.json"))

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="failed to parse"):
            load_config(str(path))

    def test_top_level_list_rejected(self, tmp_path):
        path = _write(tmp_path / "list.json", [1, 2])
        with pytest.raises(ConfigError, match="object at the top level"):
            load_config(str(path))
