"""
Repository Bootstrap — Make sure a working copy exists with all remotes.

A fresh working copy is cloned from the first organization that is not a
backup location; every other organization is then registered as an extra
remote. An existing working copy only gets missing remotes added; remotes
are never removed or renamed after the initial clone.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config.models import Config, Organization
from .errors import BootstrapError
from .git import combined_output, run_git
from .remotes import remote_name

logger = logging.getLogger(__name__)


def first_clone_source(config: Config) -> Organization:
    """The organization a new working copy is cloned from."""
    if not config.organizations:
        raise BootstrapError("no organizations configured")
    for org in config.organizations:
        if not org.backup_location:
            return org
    raise BootstrapError("no non-backup organizations configured to clone from")


def clone_repository(org: Organization, repo_name: str, repo_path: Path) -> None:
    """Clone `repo_name` from `org` into `repo_path`."""
    if org.backup_location:
        raise BootstrapError(f"cannot clone from backup location {org.host}")

    url = org.repo_url(repo_name)
    logger.info(f"[bootstrap] Cloning from {url}...", extra={"repo": repo_name})

    result = run_git(None, "clone", url, str(repo_path))
    if result.returncode != 0:
        raise BootstrapError(
            f"failed to clone repository {repo_name} from {url}: {combined_output(result)}"
        )


def add_remote(repo_path: Path, org: Organization, repo_name: str) -> None:
    """Register `org` as a remote of the working copy."""
    name = remote_name(org)
    url = org.repo_url(repo_name)
    logger.info(f"[bootstrap] Adding remote {name}: {url}", extra={"repo": repo_name})

    result = run_git(repo_path, "remote", "add", name, url)
    if result.returncode != 0:
        raise BootstrapError(f"failed to add remote {name}: {combined_output(result)}")


def _clone_from_first_source(config: Config, repo_path: Path, repo_name: str) -> Organization:
    source = first_clone_source(config)
    clone_repository(source, repo_name, repo_path)

    # origin gets the same name it would have been added under
    source_remote = remote_name(source)
    if source_remote != "origin":
        result = run_git(repo_path, "remote", "rename", "origin", source_remote)
        if result.returncode != 0:
            raise BootstrapError(
                f"failed to rename origin remote: {combined_output(result)}"
            )
    return source


def setup_new_repository(
    config: Config, repo_path: Path, repo_name: str, backup_enabled: bool
) -> None:
    """Clone a new working copy and register the remaining organizations."""
    source = _clone_from_first_source(config, repo_path, repo_name)

    for org in config.organizations:
        if org is source:
            continue
        if org.backup_location and not backup_enabled:
            continue
        add_remote(repo_path, org, repo_name)


def setup_existing_repository(
    config: Config, repo_path: Path, repo_name: str, backup_enabled: bool
) -> None:
    """Add any configured remote that the working copy does not know yet."""
    logger.info(f"[bootstrap] Using existing repository at {repo_path}", extra={"repo": repo_name})

    for org in config.eligible_organizations(backup_enabled):
        name = remote_name(org)
        if run_git(repo_path, "remote", "get-url", name).returncode != 0:
            add_remote(repo_path, org, repo_name)


def setup_repository(
    config: Config, repo_path: Path, repo_name: str, backup_enabled: bool
) -> None:
    """Clone or update `repo_path` so it has one remote per eligible organization."""
    if not repo_path.exists():
        setup_new_repository(config, repo_path, repo_name, backup_enabled)
    else:
        setup_existing_repository(config, repo_path, repo_name, backup_enabled)


def ensure_cloned(config: Config, repo_path: Path, repo_name: str) -> bool:
    """
    Clone the repository if there is no working copy yet.

    Returns True when a clone happened. Only the clone source is registered;
    a full sync adds the other remotes.
    """
    if repo_path.exists():
        logger.info(f"[bootstrap] Repository {repo_name} already exists locally")
        return False

    _clone_from_first_source(config, repo_path, repo_name)
    logger.info(f"[bootstrap] Successfully cloned {repo_name}")
    return True
