"""
Report Collector — Abandoned branch reports for a whole run.

One collector is passed through every `sync_repository()` call of a run.
At the end it renders a text summary and an executable shell script that
deletes the abandoned branches on demand:

    bash delete_abandoned_branches_<ts>.sh --review       # diffs vs main
    bash delete_abandoned_branches_<ts>.sh --review-full  # full diffs
    bash delete_abandoned_branches_<ts>.sh --dry-run      # print commands
    bash delete_abandoned_branches_<ts>.sh                # delete (asks "yes")
"""

from __future__ import annotations

import logging
import shlex
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from .analyzer import AbandonedBranchReport, BranchInfo

logger = logging.getLogger(__name__)

RULE = "=" * 70
BAR = "━" * 68


class ReportCollector:
    """Reports keyed by repository name; a newer report replaces an older one."""

    def __init__(self) -> None:
        self._reports: Dict[str, AbandonedBranchReport] = {}

    def add(self, repo_name: str, report: AbandonedBranchReport) -> None:
        self._reports[repo_name] = report

    def get(self, repo_name: str) -> Optional[AbandonedBranchReport]:
        return self._reports.get(repo_name)

    def __len__(self) -> int:
        return len(self._reports)

    def __contains__(self, repo_name: str) -> bool:
        return repo_name in self._reports

    def with_abandoned(self) -> Iterator[Tuple[str, AbandonedBranchReport]]:
        """(repo, report) pairs that have at least one abandoned branch, sorted by repo."""
        for name in sorted(self._reports):
            report = self._reports[name]
            if report.has_abandoned:
                yield name, report

    def totals(self) -> Tuple[int, int]:
        """(regular, ignored) abandoned branch counts over all repositories."""
        regular = sum(len(r.abandoned_branches) for r in self._reports.values())
        ignored = sum(len(r.abandoned_ignored_branches) for r in self._reports.values())
        return regular, ignored

    # ─── Summary ────────────────────────────────────────────

    def summary(self) -> str:
        regular, ignored = self.totals()
        if regular == 0 and ignored == 0:
            return ""

        repos = list(self.with_abandoned())
        headline = f"Found {regular} abandoned branches"
        if ignored:
            headline += f" + {ignored} ignored branches"
        headline += f" across {len(repos)} repositories"

        lines = ["", RULE, "📊 ABANDONED BRANCHES SUMMARY", RULE, "", headline, ""]

        for repo_name, report in repos:
            lines.append(f"📁 {repo_name} ({report.abandoned_count} branches):")
            if report.abandoned_branches:
                lines.append("   Regular branches:")
                lines.extend(_summary_line(b) for b in report.abandoned_branches)
            if report.abandoned_ignored_branches:
                lines.append("   Ignored branches:")
                lines.extend(_summary_line(b) for b in report.abandoned_ignored_branches)
            lines.append("")

        lines.append("💡 Tip: Consider deleting these branches if they're no longer needed:")
        lines.append("   git push <remote> --delete <branch-name>")
        lines.append(RULE)
        return "\n".join(lines) + "\n"

    # ─── Delete script ──────────────────────────────────────

    def delete_commands(self, repo_name: str) -> str:
        """Plain delete commands for one repository (for copy/paste)."""
        report = self._reports.get(repo_name)
        if report is None or not report.has_abandoned:
            return ""

        lines = [
            f"# Delete commands for abandoned branches in {repo_name}",
            "# Review these commands carefully before running them!",
            "",
        ]
        for title, tag, branches in (
            ("REGULAR BRANCHES", "", report.abandoned_branches),
            ("IGNORED BRANCHES", " [IGNORED]", report.abandoned_ignored_branches),
        ):
            if not branches:
                continue
            lines.append(f"# === {title} ===")
            for b in branches:
                lines.append(f"# Branch: {b.name} (last commit: {b.last_commit:%Y-%m-%d}){tag}")
                if b.remotes_with_branch:
                    lines.append("# Delete from remotes:")
                    lines.extend(_remote_delete(remote, b.name) for remote in b.remotes_with_branch)
                lines.append("# Delete local branch:")
                lines.append(f"git branch -D {shlex.quote(b.name)}")
                lines.append("")
        return "\n".join(lines) + "\n"

    def render_delete_script(self, work_dir: Path, script_name: str, now: datetime) -> str:
        regular, ignored = self.totals()
        total = regular + ignored
        repos = list(self.with_abandoned())

        out: List[str] = [
            "#!/bin/bash",
            "# Gitsyncer - Delete Abandoned Branches Script",
            f"# Generated on: {now:%Y-%m-%d %H:%M:%S}",
            f"# Total branches to delete: {regular} regular + {ignored} ignored = {total} total",
            "#",
            "# ⚠️  WARNING: This script will permanently delete branches!",
            "# Review carefully before executing.",
            "#",
            "# Usage:",
            f"#   bash {script_name}                # Delete branches (with confirmation)",
            f"#   bash {script_name} --dry-run      # Preview what will be deleted",
            f"#   bash {script_name} --review       # Review diffs before deletion",
            f"#   bash {script_name} --review-full  # Review full diffs",
            "",
        ]
        out.extend(_SCRIPT_PRELUDE)
        out.extend([
            "# Main script logic",
            'case "$MODE" in',
            '    "dry-run")',
            '        echo "🔍 DRY RUN MODE - No branches will be deleted"',
            "        echo",
            "        ;;",
            '    "review"|"review-full")',
            '        echo -e "${CYAN}🔍 Gitsyncer - Abandoned Branch Review${NC}"',
            f'        echo -e "${{CYAN}}{BAR[:40]}${{NC}}"',
            f'        echo -e "Found ${{YELLOW}}{total}${{NC}} abandoned branches to review"',
            "        echo",
            "        ;;",
            '    "delete")',
            f'        echo "⚠️  This script will delete {total} abandoned branches across {len(repos)} repositories."',
            '        read -p "Are you sure you want to continue? (yes/no): " confirm',
            '        if [[ "$confirm" != "yes" ]]; then',
            '            echo "Aborted."',
            "            exit 0",
            "        fi",
            "        echo",
            "        ;;",
            "esac",
            "",
        ])

        for repo_name, report in repos:
            repo_dir = shlex.quote(str(work_dir / repo_name))
            out.extend([
                "# ======================================",
                f"# Repository: {repo_name}",
                "# ======================================",
                "echo",
                "echo " + shlex.quote(f"📁 Processing repository: {repo_name}"),
                f'cd {repo_dir} || {{ echo "Failed to change to repository directory"; exit 1; }}',
                "",
                'if [[ "$MODE" == "review" || "$MODE" == "review-full" ]]; then',
                "    main_branch=$(find_main_branch)",
                '    if [[ -z "$main_branch" ]]; then',
                f'        echo -e "${{RED}}⚠️  No main/master branch found in "{shlex.quote(repo_name)}"${{NC}}"',
                "    fi",
                "fi",
                "",
            ])
            if report.abandoned_branches:
                out.append("# Regular abandoned branches")
                for b in report.abandoned_branches:
                    out.extend(_branch_block(b, "regular", "🔸 Deleting branch"))
            if report.abandoned_ignored_branches:
                out.append("# Ignored abandoned branches")
                for b in report.abandoned_ignored_branches:
                    out.extend(_branch_block(b, "ignored", "🔹 Deleting ignored branch"))

        out.extend([
            "echo",
            'echo "✅ Script completed!"',
            'case "$MODE" in',
            '    "dry-run")',
            '        echo "This was a dry run. No branches were deleted."',
            f'        echo "To actually delete branches, run: bash {script_name}"',
            "        ;;",
            '    "review"|"review-full")',
            '        echo "Review completed. No branches were deleted."',
            f'        echo "To delete branches, run: bash {script_name}"',
            "        ;;",
            '    "delete")',
            '        echo "All abandoned branches have been deleted."',
            "        ;;",
            "esac",
        ])
        return "\n".join(out) + "\n"

    def write_delete_script(self, work_dir: Path, now: Optional[datetime] = None) -> Optional[Path]:
        """
        Write the delete script into `work_dir`.

        Returns the script path, or None when no branch is abandoned.
        """
        regular, ignored = self.totals()
        if regular == 0 and ignored == 0:
            return None

        now = now or datetime.now()
        work_dir.mkdir(parents=True, exist_ok=True)
        script_path = work_dir / f"delete_abandoned_branches_{now:%Y%m%d_%H%M%S}.sh"

        script_path.write_text(
            self.render_delete_script(work_dir, script_path.name, now), encoding="utf-8"
        )
        script_path.chmod(0o755)
        logger.info(f"[analyze] Delete script written to {script_path}")
        return script_path


def _summary_line(b: BranchInfo) -> str:
    return f"   - {b.name} (last commit: {b.last_commit:%Y-%m-%d})"


def _remote_delete(remote: str, branch: str) -> str:
    return f"git push {shlex.quote(remote)} --delete {shlex.quote(branch)}"


def _branch_block(b: BranchInfo, kind: str, verb: str) -> List[str]:
    name = shlex.quote(b.name)
    day = f"{b.last_commit:%Y-%m-%d}"
    lines = [
        'if [[ "$MODE" == "review" || "$MODE" == "review-full" ]]; then',
        '    if [[ -n "$main_branch" ]]; then',
        f'        review_branch {name} "$main_branch" "{day}" "{kind}"',
        "    fi",
        "else",
        "    echo " + shlex.quote(f"  {verb}: {b.name} (last commit: {day})"),
    ]
    lines.extend(
        f"    execute_cmd {_remote_delete(remote, b.name)}" for remote in b.remotes_with_branch
    )
    lines.append(f"    execute_cmd git branch -D {name}")
    lines.append("fi")
    lines.append("")
    return lines


_SCRIPT_PRELUDE = [
    "# Parse command line arguments",
    'MODE="delete"',
    'if [[ "$1" == "--dry-run" ]]; then',
    '    MODE="dry-run"',
    'elif [[ "$1" == "--review" ]]; then',
    '    MODE="review"',
    'elif [[ "$1" == "--review-full" ]]; then',
    '    MODE="review-full"',
    "fi",
    "",
    "# Color codes",
    "RED='\\033[0;31m'",
    "GREEN='\\033[0;32m'",
    "YELLOW='\\033[0;33m'",
    "PURPLE='\\033[0;35m'",
    "CYAN='\\033[0;36m'",
    "NC='\\033[0m'",
    "",
    "# Execute a command, or only print it in dry-run mode",
    "execute_cmd() {",
    '    if [[ "$MODE" == "dry-run" ]]; then',
    '        echo "  [DRY RUN] $*"',
    "    else",
    '        echo "  Executing: $*"',
    '        "$@"',
    "    fi",
    "}",
    "",
    "find_main_branch() {",
    "    if git rev-parse --verify main >/dev/null 2>&1; then",
    '        echo "main"',
    "    elif git rev-parse --verify master >/dev/null 2>&1; then",
    '        echo "master"',
    "    else",
    '        echo ""',
    "    fi",
    "}",
    "",
    "review_branch() {",
    '    local branch="$1"',
    '    local main_branch="$2"',
    '    local last_commit="$3"',
    '    local branch_type="$4"',
    "",
    f'    echo -e "${{CYAN}}{BAR}${{NC}}"',
    '    echo -e "${YELLOW}Branch:${NC} $branch ${PURPLE}[$branch_type]${NC}"',
    '    echo -e "${YELLOW}Last commit:${NC} $last_commit"',
    '    echo -e "${YELLOW}Comparing against:${NC} $main_branch"',
    f'    echo -e "${{CYAN}}{BAR}${{NC}}"',
    "",
    '    if ! git rev-parse --verify "$branch" >/dev/null 2>&1; then',
    "        echo -e \"${RED}⚠️  Branch '$branch' not found locally${NC}\"",
    "        return",
    "    fi",
    "",
    '    echo -e "${GREEN}📊 Diff statistics:${NC}"',
    '    git diff --stat "$main_branch"..."$branch"',
    "    echo",
    '    echo -e "${GREEN}📝 Commits in this branch:${NC}"',
    '    git log --oneline --graph "$main_branch".."$branch" | head -20',
    "",
    '    if [[ "$MODE" == "review-full" ]]; then',
    "        echo",
    '        echo -e "${GREEN}🔍 Full diff:${NC}"',
    '        git diff "$main_branch"..."$branch"',
    "    fi",
    "    echo",
    "}",
    "",
]
