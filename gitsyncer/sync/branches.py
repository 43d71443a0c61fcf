"""
Branch Discovery — Which branches exist, where, and how recent they are.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Collection, Iterable, List, Optional

from .errors import SyncError
from .git import combined_output, git_output, run_git

logger = logging.getLogger(__name__)


def parse_remote_branches(output: str, skip_remotes: Collection[str] = ()) -> List[str]:
    """
    Turn `git branch -r` output into unique branch names.

    `  github_com/main` → `main`. Symbolic refs (`origin/HEAD -> origin/main`)
    and refs of `skip_remotes` are ignored. Order of first appearance is kept.
    """
    seen = {}
    for line in output.splitlines():
        line = line.strip()
        if not line or "->" in line:
            continue
        remote, sep, branch = line.partition("/")
        if not sep or not branch:
            continue
        if remote in skip_remotes:
            continue
        seen.setdefault(branch, None)
    return list(seen)


def list_remote_branches(repo_path: Path, skip_remotes: Collection[str] = ()) -> List[str]:
    """All branch names known through remote-tracking refs."""
    result = run_git(repo_path, "branch", "-r")
    if result.returncode != 0:
        raise SyncError(f"failed to get branches: {combined_output(result)}")
    return parse_remote_branches(result.stdout, skip_remotes)


def remote_branch_exists(repo_path: Path, remote: str, branch: str) -> bool:
    output = git_output(repo_path, "branch", "-r", "--list", f"{remote}/{branch}")
    return bool(output)


def remotes_with_branch(repo_path: Path, remotes: Iterable[str], branch: str) -> List[str]:
    """The subset of `remotes` carrying `branch`, in the given order."""
    return [r for r in remotes if remote_branch_exists(repo_path, r, branch)]


def last_commit_time(repo_path: Path, ref: str) -> Optional[datetime]:
    """Committer timestamp of the tip of `ref`, or None if it cannot be read."""
    output = git_output(repo_path, "log", "-1", "--format=%ct", ref)
    if not output:
        return None
    try:
        return datetime.fromtimestamp(int(output), tz=timezone.utc)
    except ValueError:
        logger.debug(f"[branch] Unparseable commit timestamp for {ref}: {output!r}")
        return None
