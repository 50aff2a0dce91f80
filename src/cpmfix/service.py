"""Fix service for dispatching issues to fixers and collecting results.

Issues are processed one at a time, in the order given. A failure on one
issue never stops the others.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from cpmfix.config import FixOptions
from cpmfix.fixers.base import FixResult
from cpmfix.fixers.registry import FixerRegistry, get_global_registry
from cpmfix.models import AnalysisIssue, ProjectPackageInfo

logger = logging.getLogger(__name__)


@dataclass
class FixReport:
    """Aggregated results of a fix run.

    Attributes:
        results: Results in the order the issues were processed.
        unhandled: Issues no registered fixer accepted.
    """

    results: list[FixResult] = field(default_factory=list)
    unhandled: list[AnalysisIssue] = field(default_factory=list)

    def add(self, result: FixResult) -> None:
        self.results.append(result)

    @property
    def fixes_applied(self) -> int:
        """Number of results that succeeded and changed at least one file."""
        return sum(1 for r in self.results if r.success and r.changes)

    @property
    def total_file_changes(self) -> int:
        return sum(len(r.changes) for r in self.results)

    @property
    def failed_fixes(self) -> list[FixResult]:
        return [r for r in self.results if not r.success]

    @property
    def has_changes(self) -> bool:
        return self.total_file_changes > 0

    @property
    def warnings(self) -> list[str]:
        return [warning for r in self.results for warning in r.warnings]


class FixService:
    """Applies fixes for a list of issues.

    Attributes:
        registry: Registry used to find the fixer for each issue.
    """

    def __init__(self, registry: FixerRegistry | None = None) -> None:
        self.registry = registry or get_global_registry()

    def apply_fixes(
        self,
        issues: Iterable[AnalysisIssue],
        inventory: ProjectPackageInfo,
        options: FixOptions,
    ) -> FixReport:
        """Apply fixes for all issues.

        Args:
            issues: Issues to fix, in processing order.
            inventory: Every package reference in the solution.
            options: Options for this run.

        Returns:
            FixReport with one result per handled issue.
        """
        report = FixReport()

        for issue in issues:
            fixer = self.registry.get_fixer(issue, options)
            if fixer is None:
                logger.warning(
                    "No fixer available for %s (%s)", issue.package_name, issue.kind.value
                )
                report.unhandled.append(issue)
                continue

            logger.debug("Fixing %s with %s", issue.package_name, fixer.name)
            try:
                result = fixer.fix(issue, inventory)
            except Exception as e:
                logger.exception("Error fixing %s", issue.package_name)
                result = FixResult.failed(f"Exception: {e}")

            if not result.success:
                logger.warning("Failed to fix %s: %s", issue.package_name, result.description)
            report.add(result)

        return report
