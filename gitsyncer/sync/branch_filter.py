"""
Branch Filter — Exclude branches by regular expression.

Patterns are compiled once. Matching uses `re.search`, so a pattern
matches anywhere in the name unless anchored (`^wip-`).
"""

from __future__ import annotations

import re
from typing import Iterable, List, Pattern, Sequence, Tuple


class BranchFilter:
    """Immutable set of compiled exclusion patterns."""

    __slots__ = ("_patterns",)

    def __init__(self, patterns: Iterable[str] = ()):
        compiled: List[Pattern[str]] = []
        for pattern in patterns:
            try:
                compiled.append(re.compile(pattern))
            except re.error as e:
                raise ValueError(f"invalid regex pattern '{pattern}': {e}") from e
        object.__setattr__(self, "_patterns", tuple(compiled))

    def __setattr__(self, name, value):
        raise AttributeError("BranchFilter is immutable")

    @property
    def patterns(self) -> Tuple[str, ...]:
        return tuple(p.pattern for p in self._patterns)

    def should_exclude(self, branch: str) -> bool:
        return any(p.search(branch) for p in self._patterns)

    def filter_branches(self, branches: Sequence[str]) -> List[str]:
        """Branches that are NOT excluded, in input order."""
        return [b for b in branches if not self.should_exclude(b)]

    def excluded_branches(self, branches: Sequence[str]) -> List[str]:
        """Branches that ARE excluded, in input order."""
        return [b for b in branches if self.should_exclude(b)]

    def partition(self, branches: Sequence[str]) -> Tuple[List[str], List[str]]:
        """Split into (included, excluded)."""
        included: List[str] = []
        excluded: List[str] = []
        for branch in branches:
            (excluded if self.should_exclude(branch) else included).append(branch)
        return included, excluded


def format_exclusion_report(excluded: Sequence[str], patterns: Sequence[str]) -> str:
    if not excluded:
        return ""

    lines = [
        f"\n🚫 Excluded {len(excluded)} branches based on patterns:",
        "   Patterns: " + ", ".join(f"'{p}'" for p in patterns),
        "   Excluded branches:",
    ]
    lines.extend(f"   - {branch}" for branch in excluded)
    return "\n".join(lines) + "\n"
