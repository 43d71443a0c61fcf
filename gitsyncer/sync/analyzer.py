"""
Abandoned Branch Analyzer — Find stale branches in active repositories.

A repository whose main branch has not moved for DORMANT_AFTER is treated
as dormant and gets an empty report: every branch in an unmaintained
project would otherwise be flagged. In an active repository, any branch
(other than main/master) whose newest commit on any remote is older than
ABANDONED_AFTER is reported. Excluded branches are analyzed too and
reported separately as "ignored".

Nothing here deletes anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .branches import last_commit_time, remote_branch_exists

logger = logging.getLogger(__name__)

ABANDONED_AFTER = timedelta(days=180)
DORMANT_AFTER = timedelta(days=3 * 365)

MAIN_BRANCHES = ("main", "master")


@dataclass
class BranchInfo:
    """Where a branch lives and when it last moved."""

    name: str
    last_commit: datetime
    source_remote: str
    is_abandoned: bool = False
    abandon_reason: str = ""
    remotes_with_branch: List[str] = field(default_factory=list)


@dataclass
class AbandonedBranchReport:
    """Analysis result for one repository."""

    main_branch_active: bool = False
    main_branch_last_commit: Optional[datetime] = None
    abandoned_branches: List[BranchInfo] = field(default_factory=list)
    abandoned_ignored_branches: List[BranchInfo] = field(default_factory=list)
    total_branches: int = 0
    total_ignored_branches: int = 0

    @property
    def has_abandoned(self) -> bool:
        return bool(self.abandoned_branches or self.abandoned_ignored_branches)

    @property
    def abandoned_count(self) -> int:
        return len(self.abandoned_branches) + len(self.abandoned_ignored_branches)


def find_main_branch(branches: Sequence[str]) -> Optional[str]:
    for candidate in MAIN_BRANCHES:
        if candidate in branches:
            return candidate
    return None


def get_branch_info(repo_path: Path, branch: str, remotes: Iterable[str]) -> Optional[BranchInfo]:
    """
    Newest commit of `branch` across all `remotes` that carry it.

    Falls back to the local branch when no remote has it. Returns None if
    no commit time can be determined at all.
    """
    latest: Optional[datetime] = None
    latest_remote = ""
    carriers: List[str] = []

    for remote in remotes:
        if not remote_branch_exists(repo_path, remote, branch):
            continue
        carriers.append(remote)
        when = last_commit_time(repo_path, f"{remote}/{branch}")
        if when is not None and (latest is None or when > latest):
            latest = when
            latest_remote = remote

    if latest is None:
        latest = last_commit_time(repo_path, branch)
        latest_remote = "local"
        if latest is None:
            return None

    return BranchInfo(
        name=branch,
        last_commit=latest,
        source_remote=latest_remote,
        remotes_with_branch=carriers,
    )


def _classify(
    repo_path: Path,
    branches: Sequence[str],
    remotes: Sequence[str],
    now: datetime,
    abandoned_after: timedelta,
    suffix: str = "",
) -> List[BranchInfo]:
    abandoned: List[BranchInfo] = []
    for branch in branches:
        if branch in MAIN_BRANCHES:
            continue
        info = get_branch_info(repo_path, branch, remotes)
        if info is None:
            logger.debug(f"[analyze] No commit time for {branch}, skipping")
            continue
        age = now - info.last_commit
        if age > abandoned_after:
            info.is_abandoned = True
            info.abandon_reason = f"No commits for {age.days} days{suffix}"
            abandoned.append(info)
    return abandoned


def analyze_abandoned_branches(
    repo_path: Path,
    branches: Sequence[str],
    ignored_branches: Sequence[str],
    remotes: Sequence[str],
    now: Optional[datetime] = None,
    abandoned_after: timedelta = ABANDONED_AFTER,
    dormant_after: timedelta = DORMANT_AFTER,
) -> AbandonedBranchReport:
    """
    Classify stale branches of one repository.

    Args:
        repo_path: Working copy, already fetched and synced
        branches: Branches that took part in the sync
        ignored_branches: Branches excluded by pattern
        remotes: Remote names to look for each branch on
        now: Reference time (defaults to the current UTC time)
    """
    now = now or datetime.now(timezone.utc)
    report = AbandonedBranchReport(
        total_branches=len(branches),
        total_ignored_branches=len(ignored_branches),
    )

    main_branch = find_main_branch(branches)
    if main_branch:
        main_info = get_branch_info(repo_path, main_branch, remotes)
        if main_info is not None:
            report.main_branch_last_commit = main_info.last_commit
            report.main_branch_active = now - main_info.last_commit < dormant_after

    if not report.main_branch_active:
        logger.debug("[analyze] Main branch inactive, skipping abandoned branch analysis")
        return report

    report.abandoned_branches = _classify(repo_path, branches, remotes, now, abandoned_after)
    report.abandoned_ignored_branches = _classify(
        repo_path, ignored_branches, remotes, now, abandoned_after, suffix=" (ignored branch)"
    )
    return report


def format_abandoned_branch_report(report: AbandonedBranchReport, repo_name: str) -> str:
    """Per-repository report; empty for dormant repositories or clean ones."""
    if not report.main_branch_active or not report.has_abandoned:
        return ""

    lines = [f"\n🔍 Abandoned branches in {repo_name}:"]
    if report.main_branch_last_commit:
        lines.append(f"   Main branch last updated: {report.main_branch_last_commit:%Y-%m-%d}")

    if report.abandoned_branches:
        lines.append(
            f"   Found {len(report.abandoned_branches)} abandoned branches "
            "(no commits for 6+ months):\n"
        )
        for b in report.abandoned_branches:
            lines.append(f"   - {b.name} (last commit: {b.last_commit:%Y-%m-%d}, {b.abandon_reason})")

    if report.abandoned_ignored_branches:
        lines.append(
            f"\n   Found {len(report.abandoned_ignored_branches)} abandoned IGNORED branches "
            "(no commits for 6+ months):\n"
        )
        for b in report.abandoned_ignored_branches:
            lines.append(f"   - {b.name} (last commit: {b.last_commit:%Y-%m-%d}, {b.abandon_reason})")

    return "\n".join(lines) + "\n"
