"""
Git helpers — thin wrappers around the git and ssh binaries.

Every call takes the repository path explicitly and runs with `cwd=`
set, so the engine never changes the process working directory. Calls
block without a timeout unless the caller passes one.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def run_git(
    repo: Optional[Path], *args: str, timeout: Optional[int] = None
) -> subprocess.CompletedProcess:
    """Run a git command in the repo directory (or the current one)."""
    cmd = ["git"] + list(args)
    logger.debug(f"[git] {' '.join(cmd)}")
    return subprocess.run(
        cmd,
        cwd=str(repo) if repo is not None else None,
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def git_output(repo: Optional[Path], *args: str) -> Optional[str]:
    """Run a git command and return stripped stdout, or None on failure."""
    result = run_git(repo, *args)
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def git_ok(repo: Optional[Path], *args: str) -> bool:
    """Return True when git exits with status 0."""
    return run_git(repo, *args).returncode == 0


def combined_output(result: subprocess.CompletedProcess) -> str:
    """stdout and stderr joined, the way git mixes them on a terminal."""
    parts = [result.stdout or "", result.stderr or ""]
    return "\n".join(p.strip() for p in parts if p and p.strip())


def run_ssh(user_host: str, command: str) -> subprocess.CompletedProcess:
    """Run a single remote shell command over ssh."""
    logger.debug(f"[ssh] {user_host}: {command}")
    return subprocess.run(
        ["ssh", user_host, command],
        capture_output=True,
        text=True,
    )
