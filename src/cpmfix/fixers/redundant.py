"""Fixer for packages referenced more than once in the same project.

Keeps the first PackageReference for the package and removes the rest.
"""

from __future__ import annotations

import logging
from pathlib import Path

from cpmfix.editor import ProjectDocument
from cpmfix.fixers.base import BaseFixer, FileChange, FixResult
from cpmfix.fixers.utils import edit_project_file
from cpmfix.models import AnalysisIssue, IssueKind, ProjectPackageInfo

logger = logging.getLogger(__name__)


class RedundantReferenceFixer(BaseFixer):
    """Remove duplicate references to a package within each affected project.

    Projects are resolved to files through the inventory; a project that
    cannot be resolved, or whose file is gone, is skipped.
    """

    kind = IssueKind.REDUNDANT_REFERENCE
    name = "Redundant Reference Fixer"

    def fix(self, issue: AnalysisIssue, inventory: ProjectPackageInfo) -> FixResult:
        package = issue.package_name
        changes: list[FileChange] = []
        warnings: list[str] = []

        for project_name in issue.affected_projects:
            project_path = inventory.project_path_for(project_name)
            if project_path is None or not Path(project_path).is_file():
                logger.debug("Project %s not found, skipping", project_name)
                continue

            counts: list[int] = []

            def deduplicate(document: ProjectDocument) -> bool:
                entries = document.find_entries(package)
                if len(entries) <= 1:
                    return False
                counts.append(len(entries))
                return document.remove_entries(entries[1:]) > 0

            outcome = edit_project_file(
                project_path, deduplicate, dry_run=self.dry_run, warnings=warnings
            )
            if outcome.changed:
                changes.append(
                    FileChange(
                        file_path=project_path,
                        change_type="Modified",
                        before=f"{counts[0]} references",
                        after="1 reference",
                        content=outcome.content,
                    )
                )

        if not changes:
            return FixResult.no_fix_needed(
                f"No redundant references found for {package}", warnings
            )

        return FixResult.succeeded(
            f"Removed redundant references for {package} in {len(changes)} project(s)",
            changes,
            warnings,
        )
