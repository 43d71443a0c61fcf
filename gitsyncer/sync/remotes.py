"""
Remote Naming — Map an organization to a stable git remote name.

The name must be identical on every run so an existing working copy
reuses its remotes instead of collecting duplicates.
"""

from __future__ import annotations

from typing import Dict, List

from ..config.models import Organization

_FILE_PREFIX = "file://"


def remote_name(org: Organization) -> str:
    """
    Derive the local remote name for an organization.

        git@github.com          → github_com
        git@codeberg.org        → codeberg_org
        file:///srv/mirror/org1 → org1
        paul@backup.lan:git     → backup_lan_git
    """
    host = org.host

    if host.startswith(_FILE_PREFIX):
        # Last path segment keeps local mirrors readable
        parts = host[len(_FILE_PREFIX):].rstrip("/").split("/")
        return parts[-1]

    if host.startswith("git@"):
        host = host[len("git@"):]
    elif "@" in host.split(":", 1)[0]:
        host = host.split("@", 1)[1]

    for sep in (":", ".", "/"):
        host = host.replace(sep, "_")
    return host


def remotes_by_name(orgs: List[Organization]) -> Dict[str, Organization]:
    """Map remote name → organization, preserving configuration order."""
    return {remote_name(org): org for org in orgs}


def duplicate_remote_names(orgs: List[Organization]) -> List[str]:
    """Remote names that more than one organization maps to."""
    seen: Dict[str, int] = {}
    for org in orgs:
        name = remote_name(org)
        seen[name] = seen.get(name, 0) + 1
    return [name for name, count in seen.items() if count > 1]
