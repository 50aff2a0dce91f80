"""Fixer for packages referenced under different casings."""

from __future__ import annotations

from collections import Counter

from cpmfix.editor import ProjectDocument
from cpmfix.fixers.base import BaseFixer, FileChange, FixResult
from cpmfix.fixers.utils import edit_project_file, group_by_project
from cpmfix.models import AnalysisIssue, IssueKind, ProjectPackageInfo


class DuplicateCasingFixer(BaseFixer):
    """Standardize the casing of a package name across projects.

    The most common casing wins; ties go to the casing encountered first.
    """

    kind = IssueKind.DUPLICATE_CASING
    name = "Duplicate Package Casing Fixer"

    def fix(self, issue: AnalysisIssue, inventory: ProjectPackageInfo) -> FixResult:
        package = issue.package_name
        references = inventory.references_for(package)
        if not references:
            return FixResult.no_fix_needed(f"No references found for {package}")

        # Counter keeps first-encounter order, max() returns the first maximum
        counts = Counter(ref.package_name for ref in references)
        if len(counts) <= 1:
            return FixResult.no_fix_needed(f"No casing variations for {package}")
        canonical = max(counts, key=lambda casing: counts[casing])

        changes: list[FileChange] = []
        warnings: list[str] = []
        nonstandard = group_by_project(
            ref for ref in references if ref.package_name != canonical
        )

        for project_path in nonstandard:
            old_casings: list[str] = []

            def normalize(document: ProjectDocument) -> bool:
                changed = False
                for entry in document.find_entries(package):
                    current = entry.identity
                    if document.set_identity(entry, canonical) and current is not None:
                        old_casings.append(current)
                        changed = True
                return changed

            outcome = edit_project_file(
                project_path, normalize, dry_run=self.dry_run, warnings=warnings
            )
            if outcome.changed:
                changes.append(
                    FileChange(
                        file_path=project_path,
                        change_type="Modified",
                        before=", ".join(dict.fromkeys(old_casings)),
                        after=canonical,
                        content=outcome.content,
                    )
                )

        if not changes:
            return FixResult.no_fix_needed(
                f"All references already use consistent casing '{canonical}'", warnings
            )

        return FixResult.succeeded(
            f"Standardized {package} casing to '{canonical}' in {len(changes)} project(s)",
            changes,
            warnings,
        )
