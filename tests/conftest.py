"""
Shared fixtures for gitsyncer tests.

Real-git tests build throwaway "organizations" as directories of bare
repositories under tmp_path and point `file://` hosts at them, so a full
sync runs without network access. They are skipped when git is missing.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pytest

from gitsyncer.config.models import Config, Organization


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def git(cwd: Path, *args: str, date: Optional[datetime] = None) -> str:
    """Run git, fail the test on error, return stripped stdout."""
    env = None
    if date is not None:
        stamp = date.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S +0000")
        env = dict(os.environ, GIT_AUTHOR_DATE=stamp, GIT_COMMITTER_DATE=stamp)
    result = subprocess.run(
        ["git", *args], cwd=str(cwd), capture_output=True, text=True, env=env,
    )
    assert result.returncode == 0, f"git {' '.join(args)} failed: {result.stderr}"
    return result.stdout.strip()


def mock_git_result(returncode: int = 0, stdout: str = "", stderr: str = ""):
    """Create a fake subprocess.CompletedProcess."""
    return subprocess.CompletedProcess(
        args=["git"], returncode=returncode, stdout=stdout, stderr=stderr,
    )


@pytest.fixture
def git_env(tmp_path: Path, monkeypatch):
    """Isolate git from the user's global config and pin an identity."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.delenv("GIT_AUTHOR_DATE", raising=False)
    monkeypatch.delenv("GIT_COMMITTER_DATE", raising=False)
    return home


class Forge:
    """A set of file:// organizations holding bare repositories."""

    def __init__(self, root: Path):
        self.root = root
        self.orgs_dir = root / "orgs"
        self.orgs_dir.mkdir(parents=True, exist_ok=True)
        self._clones = 0

    def org_dir(self, org: str) -> Path:
        return self.orgs_dir / org

    def host(self, org: str) -> str:
        return f"file://{self.org_dir(org)}"

    def organization(self, org: str, backup: bool = False) -> Organization:
        return Organization(host=self.host(org), backup_location=backup)

    def bare(self, org: str, repo: str) -> Path:
        path = self.org_dir(org) / f"{repo}.git"
        path.mkdir(parents=True, exist_ok=True)
        git(path, "init", "--bare", "--quiet")
        git(path, "symbolic-ref", "HEAD", "refs/heads/main")
        return path

    def seed(self, repo: str, *orgs: str) -> None:
        """Create `repo` in every org with the same initial commit on main."""
        work = self.root / "seed" / repo
        work.mkdir(parents=True)
        git(work, "init", "--quiet")
        git(work, "symbolic-ref", "HEAD", "refs/heads/main")
        (work / "README.md").write_text("hello\n")
        git(work, "add", "README.md")
        git(work, "commit", "--quiet", "-m", "initial")
        for org in orgs:
            bare = self.bare(org, repo)
            git(work, "push", "--quiet", str(bare), "main")

    def clone(self, org: str, repo: str) -> Path:
        """A scratch clone for making changes directly on an organization."""
        self._clones += 1
        target = self.root / "scratch" / f"{org}-{repo}-{self._clones}"
        target.parent.mkdir(parents=True, exist_ok=True)
        git(self.root, "clone", "--quiet", str(self.org_dir(org) / f"{repo}.git"), str(target))
        return target

    def commit(
        self,
        org: str,
        repo: str,
        filename: str,
        content: str,
        branch: str = "main",
        date: Optional[datetime] = None,
    ) -> str:
        """Commit a file on `branch` of `org` and push it; returns the new hash."""
        work = self.clone(org, repo)
        if branch != "main":
            existing = git(work, "branch", "-r", "--list", f"origin/{branch}")
            if existing:
                git(work, "checkout", "--quiet", branch)
            else:
                git(work, "checkout", "--quiet", "-b", branch)
        (work / filename).write_text(content)
        git(work, "add", filename)
        git(work, "commit", "--quiet", "-m", f"update {filename}", date=date)
        git(work, "push", "--quiet", "origin", branch)
        return git(work, "rev-parse", "HEAD")

    def tip(self, org: str, repo: str, branch: str = "main") -> Optional[str]:
        result = subprocess.run(
            ["git", "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"],
            cwd=str(self.org_dir(org) / f"{repo}.git"),
            capture_output=True,
            text=True,
        )
        return result.stdout.strip() or None


@pytest.fixture
def forge(tmp_path: Path, git_env) -> Forge:
    return Forge(tmp_path)


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "workdir"
    path.mkdir()
    return path


def make_config(*orgs: Organization, repositories=(), exclude_branches=()) -> Config:
    return Config(
        organizations=list(orgs),
        repositories=list(repositories),
        exclude_branches=list(exclude_branches),
    )
