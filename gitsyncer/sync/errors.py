"""
Sync Errors — Exception hierarchy and git failure classification.

Git reports most failure modes only as text, so all output inspection is
done in `classify_git_failure()`. Everything else in the engine switches
on the resulting `GitErrorKind`.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Tuple


class GitErrorKind(Enum):
    """What went wrong with a git invocation."""

    NONE = "none"
    MERGE_CONFLICT = "merge_conflict"
    REPOSITORY_MISSING = "repository_missing"
    BRANCH_MISSING = "branch_missing"
    TAG_CONFLICT = "tag_conflict"
    OTHER = "other"


# Checked in order; first match wins
_PATTERNS: List[Tuple[GitErrorKind, Tuple[str, ...]]] = [
    (GitErrorKind.TAG_CONFLICT, ("would clobber existing tag",)),
    (GitErrorKind.MERGE_CONFLICT, ("CONFLICT", "Automatic merge failed")),
    (
        GitErrorKind.REPOSITORY_MISSING,
        (
            "does not appear to be a git repository",
            "Could not read from remote repository",
            "Repository not found",
        ),
    ),
    (GitErrorKind.BRANCH_MISSING, ("error: src refspec",)),
]


def classify_git_failure(returncode: int, output: str) -> GitErrorKind:
    """Map a git exit status and its combined output to an error kind."""
    if returncode == 0:
        return GitErrorKind.NONE

    output = output or ""
    for kind, needles in _PATTERNS:
        if any(needle in output for needle in needles):
            return kind
    return GitErrorKind.OTHER


class SyncError(Exception):
    """
    Base class for every error that aborts a repository sync.

    Callers further up prepend context ("failed to sync branch main")
    with `add_context()` instead of re-wrapping, so the concrete type
    survives to the CLI.
    """

    context: Tuple[str, ...] = ()

    def add_context(self, text: str) -> "SyncError":
        self.context = (text,) + self.context
        return self

    def __str__(self) -> str:
        return ": ".join(self.context + (super().__str__(),))


class BootstrapError(SyncError):
    """The working copy could not be cloned or its remotes configured."""


class FetchError(SyncError):
    """A remote could not be fetched."""

    def __init__(self, message: str, remote: Optional[str] = None):
        super().__init__(message)
        self.remote = remote


class TagConflictError(FetchError):
    """Fetching would move one or more local tags."""

    def __init__(self, remote: str, conflicts: List[Tuple[str, str, str]]):
        self.conflicts = conflicts
        lines = [f"tag conflict detected while fetching from remote: {remote}"]
        for tag, local_hash, remote_hash in conflicts:
            lines.append(f"  - Tag: {tag}")
            lines.append(f"    Local:  {local_hash or 'unknown'}")
            lines.append(f"    Remote: {remote_hash or 'unknown'}")
        lines.append("Decide which tag pointer is correct, then delete the other one.")
        super().__init__("\n".join(lines), remote=remote)


class WorkingTreeConflictError(SyncError):
    """The working copy still has unresolved merge conflicts."""

    def __init__(self, repo_path: str):
        self.repo_path = repo_path
        super().__init__(
            "repository has unresolved merge conflicts\n"
            f"Please resolve conflicts in: {repo_path}\n"
            f"Or delete the directory to start fresh: rm -rf {repo_path}"
        )


class StashError(SyncError):
    """Uncommitted changes could not be stashed."""


class CheckoutError(SyncError):
    """A branch could not be checked out or created."""


class MergeError(SyncError):
    """A merge failed for a reason other than a conflict."""


class MergeConflictError(MergeError):
    """Merging a remote branch produced conflicts."""

    def __init__(self, remote: str, branch: str):
        self.remote = remote
        self.branch = branch
        super().__init__(
            f"merge conflict detected when merging {remote}/{branch}. "
            "Please resolve manually"
        )


class PushError(SyncError):
    """A push failed and could not be skipped or recovered."""

    def __init__(self, message: str, remote: Optional[str] = None, branch: Optional[str] = None):
        super().__init__(message)
        self.remote = remote
        self.branch = branch


class ProvisioningError(PushError):
    """A bare repository could not be created on an SSH backup host."""
