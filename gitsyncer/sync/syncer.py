"""
Syncer — Mirror one repository across every configured organization.

## Usage

    from gitsyncer.sync.syncer import Syncer
    from gitsyncer.sync.reports import ReportCollector

    syncer = Syncer(config, work_dir)
    syncer.set_backup_enabled(True)

    reports = ReportCollector()
    for repo in config.repositories:
        syncer.sync_repository(repo, reports)

    print(syncer.generate_abandoned_branch_summary(reports))
    script = syncer.generate_delete_script(reports)

A sync is: bootstrap the working copy, fetch every non-backup remote,
discover and filter branches, run each included branch through the
branch state machine, then analyze abandoned branches. The first fatal
error stops the repository; branches synced before it stay synced.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..config.models import Config, Organization
from .analyzer import AbandonedBranchReport, analyze_abandoned_branches
from .bootstrap import ensure_cloned, setup_repository
from .branch_filter import BranchFilter, format_exclusion_report
from .branch_sync import BranchSyncer, BranchSyncResult
from .branches import list_remote_branches
from .errors import BootstrapError, SyncError
from .fetch import backup_remote_names, fetch_all
from .remotes import remotes_by_name
from .reports import ReportCollector

logger = logging.getLogger(__name__)


class Syncer:
    """
    Sync engine for a configuration and a work directory.

    Holds no per-repository state: the repository name and the report
    collector are passed into each call, so one instance can be reused.
    """

    def __init__(self, config: Config, work_dir: Union[str, Path]):
        self.config = config
        self.work_dir = Path(work_dir).expanduser()
        self.backup_enabled = False
        self.branch_filter = BranchFilter(config.exclude_branches)
        # Default collector for callers that do not bring their own
        self.reports = ReportCollector()

    def set_backup_enabled(self, enabled: bool) -> None:
        self.backup_enabled = enabled

    def repo_path(self, repo_name: str) -> Path:
        return self.work_dir / repo_name

    def ensure_work_dir(self) -> None:
        try:
            self.work_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BootstrapError(f"failed to create work directory {self.work_dir}: {e}") from e

    def active_remotes(self) -> Dict[str, Organization]:
        """Remote name → organization for this run, in configuration order."""
        return remotes_by_name(self.config.eligible_organizations(self.backup_enabled))

    # ─── Public API ─────────────────────────────────────────

    def sync_repository(
        self, repo_name: str, reports: Optional[ReportCollector] = None
    ) -> Optional[AbandonedBranchReport]:
        """
        Synchronize `repo_name` across all organizations.

        Returns the abandoned branch report (None if the analysis failed).
        Raises a SyncError subclass when the sync itself fails.
        """
        reports = reports if reports is not None else self.reports
        repo_path = self.repo_path(repo_name)
        ctx = {"repo": repo_name}

        try:
            self.ensure_work_dir()
            setup_repository(self.config, repo_path, repo_name, self.backup_enabled)

            logger.info("[sync] Fetching updates from all remotes...", extra=ctx)
            try:
                fetch_all(repo_path, self.config)
            except SyncError as e:
                raise e.add_context("failed to fetch remotes")

            all_branches = self.discover_branches(repo_path)
            branches, excluded = self.branch_filter.partition(all_branches)
            exclusion_report = format_exclusion_report(excluded, self.branch_filter.patterns)
            if exclusion_report:
                logger.info(exclusion_report.strip(), extra=ctx)

            self.sync_all_branches(repo_path, repo_name, branches)
        except SyncError as e:
            raise e.add_context(f"failed to sync {repo_name}")

        report = self._analyze(repo_path, repo_name, branches, excluded)
        if report is not None:
            reports.add(repo_name, report)
            if report.has_abandoned:
                logger.info(
                    f"[analyze] {report.abandoned_count} abandoned branch(es) in {repo_name}",
                    extra=ctx,
                )

        logger.info(f"[sync] Repository {repo_name} synchronized successfully!", extra=ctx)
        return report

    def ensure_repository_cloned(self, repo_name: str) -> bool:
        """Clone without syncing. Returns True when a clone happened."""
        try:
            self.ensure_work_dir()
            return ensure_cloned(self.config, self.repo_path(repo_name), repo_name)
        except SyncError as e:
            raise e.add_context(f"failed to clone {repo_name}")

    def generate_abandoned_branch_summary(self, reports: Optional[ReportCollector] = None) -> str:
        return (reports if reports is not None else self.reports).summary()

    def generate_delete_script(self, reports: Optional[ReportCollector] = None) -> Optional[Path]:
        collector = reports if reports is not None else self.reports
        return collector.write_delete_script(self.work_dir)

    # ─── Steps ──────────────────────────────────────────────

    def discover_branches(self, repo_path: Path) -> List[str]:
        """Every branch on any remote; backup-only branches drop out unless backup is on."""
        skip = () if self.backup_enabled else backup_remote_names(self.config)
        return list_remote_branches(repo_path, skip_remotes=skip)

    def sync_all_branches(
        self, repo_path: Path, repo_name: str, branches: List[str]
    ) -> List[BranchSyncResult]:
        branch_syncer = BranchSyncer(repo_path, repo_name, self.active_remotes())
        results: List[BranchSyncResult] = []

        for branch in branches:
            logger.info(f"[sync] Syncing branch: {branch}", extra={"repo": repo_name, "branch": branch})
            try:
                results.append(branch_syncer.sync(branch))
            except SyncError as e:
                raise e.add_context(f"failed to sync branch {branch}")

        return results

    def _analyze(
        self, repo_path: Path, repo_name: str, branches: List[str], excluded: List[str]
    ) -> Optional[AbandonedBranchReport]:
        try:
            return analyze_abandoned_branches(
                repo_path, branches, excluded, list(self.active_remotes())
            )
        except (SyncError, OSError) as e:
            # Analysis is advisory; the sync already succeeded
            logger.warning(
                f"[analyze] Failed to analyze abandoned branches: {e}",
                extra={"repo": repo_name},
            )
            return None
