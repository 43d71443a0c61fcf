"""
Config Models — Pydantic schemas for the gitsyncer configuration file.

An organization is one place a repository is mirrored to. Hosts come in
four shapes:

    git@github.com           + name "snonux"  → git@github.com:snonux/<repo>.git
    git@codeberg.org         + name "snonux"  → git@codeberg.org:snonux/<repo>.git
    file:///srv/mirrors/org1 (no name)        → file:///srv/mirrors/org1/<repo>.git
    paul@backup.lan:git      (no name)        → paul@backup.lan:git/<repo>.git

The last shape is a plain SSH location, usually flagged as a backup
location: it is pushed to but never fetched or merged from.
"""

from __future__ import annotations

import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Organization(BaseModel):
    """A single mirror target."""

    model_config = ConfigDict(populate_by_name=True)

    host: str
    name: str = ""
    github_token: Optional[str] = None
    codeberg_token: Optional[str] = None
    backup_location: bool = Field(default=False, alias="backupLocation")

    @property
    def is_github(self) -> bool:
        return self.host == "git@github.com" or "github.com" in self.host

    @property
    def is_codeberg(self) -> bool:
        return self.host == "git@codeberg.org" or "codeberg.org" in self.host

    @property
    def is_file(self) -> bool:
        return self.host.startswith("file://")

    @property
    def is_ssh(self) -> bool:
        """Plain SSH location (not a known forge, not a local path)."""
        if self.is_github or self.is_codeberg or self.is_file:
            return False
        return "@" in self.host or ":" in self.host

    @property
    def git_url(self) -> str:
        if self.is_ssh and not self.name:
            return self.host
        return f"{self.host}:{self.name}"

    def repo_url(self, repo_name: str) -> str:
        """Full clone/push URL for a repository in this organization."""
        if self.is_file or (self.is_ssh and not self.name):
            return f"{self.host}/{repo_name}.git"
        return f"{self.git_url}/{repo_name}.git"

    @property
    def display_name(self) -> str:
        if self.name:
            return f"{self.host}:{self.name}"
        return self.host


class Config(BaseModel):
    """The whole configuration file."""

    model_config = ConfigDict(populate_by_name=True)

    organizations: List[Organization] = Field(default_factory=list)
    repositories: List[str] = Field(default_factory=list)
    exclude_branches: List[str] = Field(default_factory=list)
    work_dir: Optional[str] = None

    def problems(self) -> List[str]:
        """Return human-readable validation problems (empty when valid)."""
        found: List[str] = []

        if not self.organizations:
            found.append("no organizations configured")

        for i, org in enumerate(self.organizations):
            if not org.host:
                found.append(f"organization {i}: missing host")
                continue
            # Name can be empty for file:// URLs or SSH locations
            if not org.name and not org.is_file and not org.is_ssh:
                found.append(f"organization {i} ({org.host}): missing name")

        for pattern in self.exclude_branches:
            try:
                re.compile(pattern)
            except re.error as e:
                found.append(f"invalid exclude_branches pattern '{pattern}': {e}")

        return found

    def non_backup_organizations(self) -> List[Organization]:
        return [org for org in self.organizations if not org.backup_location]

    def eligible_organizations(self, backup_enabled: bool) -> List[Organization]:
        """Organizations that take part in a run, in configuration order."""
        return [
            org for org in self.organizations
            if backup_enabled or not org.backup_location
        ]

    def find_github_org(self) -> Optional[Organization]:
        return next((org for org in self.organizations if org.is_github), None)

    def find_codeberg_org(self) -> Optional[Organization]:
        return next((org for org in self.organizations if org.is_codeberg), None)
