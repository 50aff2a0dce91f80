"""Fixer for packages referenced with different versions across projects."""

from __future__ import annotations

from cpmfix.editor import ProjectDocument
from cpmfix.fixers.base import BaseFixer, FileChange, FixResult
from cpmfix.fixers.utils import edit_project_file, group_by_project
from cpmfix.models import AnalysisIssue, IssueKind, ProjectPackageInfo
from cpmfix.versioning import resolve_version


class VersionAlignmentFixer(BaseFixer):
    """Align every reference of a package on one version.

    The target version comes from the configured conflict strategy. Each
    project file holding a reference at another version is rewritten once,
    updating all of its entries for the package.
    """

    kind = IssueKind.VERSION_INCONSISTENCY
    name = "Version Inconsistency Fixer"

    def fix(self, issue: AnalysisIssue, inventory: ProjectPackageInfo) -> FixResult:
        """Standardize the package version across projects.

        Args:
            issue: The version inconsistency issue.
            inventory: Every package reference in the solution.

        Returns:
            FixResult indicating success or failure.
        """
        package = issue.package_name
        # References without a version (e.g. centrally managed) take no part
        references = [ref for ref in inventory.references_for(package) if ref.version]
        if not references:
            return FixResult.no_fix_needed(f"No references found for {package}")

        versions = list(dict.fromkeys(ref.version for ref in references))
        if len(versions) <= 1:
            return FixResult.no_fix_needed(f"No version conflict for {package}")

        target = resolve_version(versions, self.options.conflict_strategy)
        if target is None:
            return FixResult.failed(
                f"Cannot resolve version for {package} with the "
                f"{self.options.conflict_strategy.value} conflict strategy "
                f"(found {', '.join(versions)})"
            )

        changes: list[FileChange] = []
        warnings: list[str] = []
        mismatched = group_by_project(ref for ref in references if ref.version != target)

        for project_path, group in mismatched.items():

            def align(document: ProjectDocument) -> bool:
                changed = False
                for entry in document.find_entries(package):
                    changed = document.set_version(entry, target) or changed
                return changed

            outcome = edit_project_file(
                project_path, align, dry_run=self.dry_run, warnings=warnings
            )
            if outcome.changed:
                old_versions = ", ".join(dict.fromkeys(ref.version for ref in group))
                changes.append(
                    FileChange(
                        file_path=project_path,
                        change_type="Modified",
                        before=f"Version: {old_versions}",
                        after=f"Version: {target}",
                        content=outcome.content,
                    )
                )

        if not changes:
            return FixResult.no_fix_needed(
                f"All references to {package} already at {target}", warnings
            )

        return FixResult.succeeded(
            f"Standardized {package} to version {target} in {len(changes)} project(s)",
            changes,
            warnings,
        )
