"""
Branch Sync — Bring one branch up to date everywhere.

Each branch goes through:

    START → WORKING_TREE_GUARDED → CHECKED_OUT → MERGED → PUSHED

and ends in FAILED if any step raises. The working tree guard stashes
local edits for the duration of the branch and always restores them.

Branches are only ever created or advanced: a merge brings in every
remote's commits, and the merged tip is then pushed back to every remote.
Nothing here deletes or force-pushes.
"""

from __future__ import annotations

import logging
import shlex
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from ..config.models import Organization
from .branches import remote_branch_exists, remotes_with_branch
from .errors import (
    CheckoutError,
    GitErrorKind,
    MergeConflictError,
    MergeError,
    ProvisioningError,
    PushError,
    StashError,
    SyncError,
    WorkingTreeConflictError,
    classify_git_failure,
)
from .git import combined_output, run_git, run_ssh

logger = logging.getLogger(__name__)

STASH_MESSAGE = "gitsyncer-auto-stash"
CONFLICT_MARKERS = ("UU ", "AA ", "DD ")


class BranchSyncState(Enum):
    START = "start"
    WORKING_TREE_GUARDED = "working_tree_guarded"
    CHECKED_OUT = "checked_out"
    MERGED = "merged"
    PUSHED = "pushed"
    FAILED = "failed"


class PushOutcome(Enum):
    PUSHED = "pushed"
    CREATED = "created"
    SKIPPED = "skipped"


@dataclass
class BranchSyncResult:
    """What happened to one branch."""

    branch: str
    state: BranchSyncState = BranchSyncState.START
    merged_from: List[str] = field(default_factory=list)
    pushed_to: List[str] = field(default_factory=list)
    created_on: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    error: Optional[str] = None


# ─── Working tree guard ─────────────────────────────────────


def has_conflict_markers(status: str) -> bool:
    return any(
        line.startswith(marker)
        for line in status.splitlines()
        for marker in CONFLICT_MARKERS
    )


def _stash_depth(repo_path: Path) -> int:
    result = run_git(repo_path, "stash", "list")
    if result.returncode != 0:
        return 0
    return len([line for line in result.stdout.splitlines() if line.strip()])


@contextmanager
def working_tree_guard(repo_path: Path) -> Iterator[bool]:
    """
    Refuse to work on a conflicted tree; stash local edits until exit.

    Yields True when something was stashed. The stash is popped on every
    exit path, success or failure.
    """
    result = run_git(repo_path, "status", "--porcelain", "--untracked-files=no")
    if result.returncode != 0:
        raise StashError(f"failed to read working tree status: {combined_output(result)}")
    status = result.stdout

    if has_conflict_markers(status):
        raise WorkingTreeConflictError(str(repo_path.resolve()))

    stashed = False
    if status.strip():
        logger.info("[branch] Stashing uncommitted changes...")
        depth_before = _stash_depth(repo_path)
        result = run_git(repo_path, "stash", "push", "-m", STASH_MESSAGE)
        if result.returncode != 0:
            raise StashError(f"failed to stash changes: {combined_output(result)}")
        stashed = _stash_depth(repo_path) > depth_before

    try:
        yield stashed
    finally:
        if stashed:
            pop = run_git(repo_path, "stash", "pop")
            if pop.returncode != 0:
                logger.error(
                    f"[branch] Could not restore stashed changes in {repo_path}; "
                    f"they are still in the stash as '{STASH_MESSAGE}': "
                    f"{combined_output(pop)}"
                )


# ─── Checkout / merge ───────────────────────────────────────


def checkout_branch(repo_path: Path, branch: str, remote_order: List[str]) -> None:
    """Check out `branch`, creating it from the first remote that has it."""
    # "--" keeps a branch named like a tracked file from being read as a path
    result = run_git(repo_path, "checkout", branch, "--")
    if result.returncode == 0:
        return
    logger.debug(f"[branch] Initial checkout failed: {combined_output(result)}")

    for remote in remote_order:
        if remote_branch_exists(repo_path, remote, branch):
            created = run_git(repo_path, "checkout", "-b", branch, f"{remote}/{branch}")
            if created.returncode != 0:
                raise CheckoutError(
                    f"failed to create tracking branch {branch} from {remote}: "
                    f"{combined_output(created)}"
                )
            return

    raise CheckoutError(f"branch {branch} not found on any remote")


def merge_from_remote(repo_path: Path, remote: str, branch: str) -> None:
    logger.info(f"[branch] Merging from {remote}/{branch}...", extra={"remote": remote, "branch": branch})

    result = run_git(repo_path, "merge", f"{remote}/{branch}", "--no-edit")
    output = combined_output(result)
    kind = classify_git_failure(result.returncode, output)

    if kind == GitErrorKind.NONE:
        return
    if kind == GitErrorKind.MERGE_CONFLICT:
        raise MergeConflictError(remote, branch)
    raise MergeError(f"failed to merge {remote}/{branch}:\n{output}")


# ─── Push ───────────────────────────────────────────────────


def provision_backup_repository(org: Organization, repo_name: str) -> None:
    """Create `<path>/<repo>.git` as a bare repository on an SSH backup host."""
    user_host, sep, base_path = org.host.partition(":")
    if not sep or not user_host:
        raise ProvisioningError(f"invalid SSH host format: {org.host}")

    repo_dir = f"{base_path}/{repo_name}.git" if base_path else f"{repo_name}.git"
    quoted = shlex.quote(repo_dir)
    logger.info(f"[push] Creating bare repository at {user_host}:{repo_dir}")

    result = run_ssh(user_host, f"mkdir -p {quoted} && cd {quoted} && git init --bare")
    if result.returncode != 0:
        raise ProvisioningError(
            f"failed to create bare repository {user_host}:{repo_dir}: {combined_output(result)}"
        )
    logger.info(f"[push] Successfully created bare repository at {user_host}:{repo_dir}")


def _push(repo_path: Path, remote: str, branch: str, set_upstream: bool):
    args = ["push"]
    if set_upstream:
        args.append("-u")
    args.extend([remote, branch, "--tags"])
    return run_git(repo_path, *args)


def push_branch(
    repo_path: Path,
    repo_name: str,
    remote: str,
    org: Organization,
    branch: str,
    remote_has_branch: bool,
) -> PushOutcome:
    """
    Push `branch` and all tags to one remote.

    A missing repository is skipped for regular organizations and created
    (once) for SSH backup locations.
    """
    ctx = {"remote": remote, "branch": branch}
    result = _push(repo_path, remote, branch, set_upstream=not remote_has_branch)
    output = combined_output(result)
    kind = classify_git_failure(result.returncode, output)

    if kind == GitErrorKind.NONE:
        if not remote_has_branch:
            logger.info(f"[push] Successfully created branch {branch} on {remote}", extra=ctx)
            return PushOutcome.CREATED
        return PushOutcome.PUSHED

    if kind == GitErrorKind.REPOSITORY_MISSING:
        if org.backup_location and org.is_ssh:
            provision_backup_repository(org, repo_name)
            retry = _push(repo_path, remote, branch, set_upstream=True)
            if retry.returncode != 0:
                raise PushError(
                    f"failed to push to {remote} after creating repository:\n{combined_output(retry)}",
                    remote=remote,
                    branch=branch,
                )
            logger.info("[push] Successfully pushed to newly created backup repository", extra=ctx)
            return PushOutcome.CREATED

        logger.warning(
            f"[push] Remote repository {remote} does not exist - must be created manually; skipping",
            extra=ctx,
        )
        return PushOutcome.SKIPPED

    if kind == GitErrorKind.BRANCH_MISSING:
        logger.info(f"[push] Creating new branch on {remote}", extra=ctx)
        retry = _push(repo_path, remote, branch, set_upstream=True)
        if retry.returncode != 0:
            raise PushError(
                f"failed to push to {remote}:\n{combined_output(retry)}",
                remote=remote,
                branch=branch,
            )
        return PushOutcome.CREATED

    raise PushError(f"failed to push to {remote}:\n{output}", remote=remote, branch=branch)


# ─── State machine ──────────────────────────────────────────


class BranchSyncer:
    """
    Syncs branches of one working copy against a fixed set of remotes.

    `remotes` maps remote name → organization for every remote taking part
    in this run (backup locations only when backup mode is on), in
    configuration order.
    """

    def __init__(self, repo_path: Path, repo_name: str, remotes: Dict[str, Organization]):
        self.repo_path = repo_path
        self.repo_name = repo_name
        self.remotes = remotes

    @property
    def merge_candidates(self) -> List[str]:
        """Remotes that may act as merge sources (never backups)."""
        return [name for name, org in self.remotes.items() if not org.backup_location]

    def sync(self, branch: str) -> BranchSyncResult:
        """Run one branch through the state machine. Raises on FAILED."""
        result = BranchSyncResult(branch=branch)
        try:
            with working_tree_guard(self.repo_path):
                result.state = BranchSyncState.WORKING_TREE_GUARDED

                checkout_branch(self.repo_path, branch, list(self.remotes))
                result.state = BranchSyncState.CHECKED_OUT

                sources = remotes_with_branch(self.repo_path, self.merge_candidates, branch)
                if not sources:
                    logger.info(
                        f"[branch] Branch {branch} is local only, will push to all remotes",
                        extra={"branch": branch},
                    )
                for remote in sources:
                    merge_from_remote(self.repo_path, remote, branch)
                    result.merged_from.append(remote)
                result.state = BranchSyncState.MERGED

                self._push_everywhere(branch, result)
                result.state = BranchSyncState.PUSHED
        except SyncError as e:
            result.state = BranchSyncState.FAILED
            result.error = str(e)
            raise

        return result

    def _push_everywhere(self, branch: str, result: BranchSyncResult) -> None:
        for remote, org in self.remotes.items():
            has_branch = remote_branch_exists(self.repo_path, remote, branch)
            verb = "Pushing to" if has_branch else "Creating branch on"
            logger.info(f"[push] {verb} {remote} ({org.host})...", extra={"remote": remote, "branch": branch})

            outcome = push_branch(self.repo_path, self.repo_name, remote, org, branch, has_branch)
            if outcome == PushOutcome.SKIPPED:
                result.skipped.append(remote)
            else:
                result.pushed_to.append(remote)
                if outcome == PushOutcome.CREATED:
                    result.created_on.append(remote)
