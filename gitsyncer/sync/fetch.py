"""
Fetch Orchestrator — Fetch every registered remote one by one.

Remotes are fetched individually (never `git fetch --all`) so that a
remote whose repository has not been created yet can be skipped while
the others still update. The list of remotes comes from the working copy
itself, not from the configuration.

Backup locations are never fetched: they are write-only mirrors.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from ..config.models import Config
from .errors import FetchError, GitErrorKind, TagConflictError, classify_git_failure
from .git import combined_output, git_output, run_git
from .remotes import remote_name

logger = logging.getLogger(__name__)

_REJECTED_REF = re.compile(r"! \[rejected\]\s+(\S+)")


def list_remotes(repo_path: Path) -> List[str]:
    """Remote names registered in the working copy."""
    result = run_git(repo_path, "remote")
    if result.returncode != 0:
        raise FetchError(f"failed to list remotes: {combined_output(result)}")
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def backup_remote_names(config: Config) -> Set[str]:
    """Remote names of every backup organization, enabled or not."""
    return {remote_name(org) for org in config.organizations if org.backup_location}


def parse_rejected_refs(output: str) -> List[str]:
    """Ref names git refused to update, e.g. `! [rejected] v1.0 -> v1.0 (would clobber existing tag)`."""
    return _REJECTED_REF.findall(output)


def local_tag_hash(repo_path: Path, tag: str) -> Optional[str]:
    return git_output(repo_path, "rev-parse", f"{tag}^{{commit}}")


def remote_tag_hash(repo_path: Path, remote: str, tag: str) -> Optional[str]:
    output = git_output(repo_path, "ls-remote", "--tags", remote, tag)
    if not output:
        return None
    return output.split()[0]


def diagnose_tag_conflict(repo_path: Path, remote: str, output: str) -> TagConflictError:
    """Build an error listing tag → local hash → remote hash for every rejected tag."""
    conflicts: List[Tuple[str, str, str]] = []
    for tag in parse_rejected_refs(output):
        conflicts.append((
            tag,
            local_tag_hash(repo_path, tag) or "",
            remote_tag_hash(repo_path, remote, tag) or "",
        ))
    return TagConflictError(remote, conflicts)


def fetch_remote(repo_path: Path, remote: str) -> bool:
    """
    Fetch a single remote with prune and tags.

    Returns False when the remote repository does not exist yet (skipped).
    Raises TagConflictError or FetchError on anything fatal.
    """
    result = run_git(repo_path, "fetch", remote, "--prune", "--tags")
    output = combined_output(result)
    kind = classify_git_failure(result.returncode, output)

    if kind == GitErrorKind.NONE:
        return True

    if kind == GitErrorKind.TAG_CONFLICT:
        raise diagnose_tag_conflict(repo_path, remote, output)

    if kind == GitErrorKind.REPOSITORY_MISSING:
        logger.warning(
            f"[fetch] Remote repository {remote} does not exist yet",
            extra={"remote": remote},
        )
        return False

    raise FetchError(f"failed to fetch from {remote}:\n{output}", remote=remote)


def fetch_all(repo_path: Path, config: Config, remotes: Optional[Iterable[str]] = None) -> List[str]:
    """
    Fetch every non-backup remote of the working copy.

    Returns the remotes that were fetched successfully. The first fatal
    error aborts the whole fetch phase.
    """
    backups = backup_remote_names(config)
    fetched: List[str] = []

    for remote in remotes if remotes is not None else list_remotes(repo_path):
        if remote in backups:
            logger.debug(f"[fetch] Skipping backup location {remote}")
            continue

        logger.info(f"[fetch] Fetching {remote}", extra={"remote": remote})
        if fetch_remote(repo_path, remote):
            fetched.append(remote)

    return fetched
