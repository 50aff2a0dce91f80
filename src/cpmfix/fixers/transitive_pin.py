"""Fixer for transitive dependency conflicts.

Pins the winning version of a transitively-conflicting package in the
central package-version manifest (Directory.Packages.props).
"""

from __future__ import annotations

from cpmfix.editor import PACKAGE_VERSION, ProjectDocument, edit_file
from cpmfix.fixers.base import BaseFixer, FileChange, FixResult
from cpmfix.models import AnalysisIssue, IssueKind, ProjectPackageInfo
from cpmfix.versioning import resolve_version


class TransitivePinFixer(BaseFixer):
    """Pin a transitive package version in the central manifest.

    Only pins into an existing central package management setup; a missing
    manifest is a failure, never created from scratch. An existing
    PackageVersion entry (Include or Update, any casing) is updated in place;
    otherwise a new entry is appended to the manifest's package group. A
    manifest with no ItemGroup is left as it is.
    """

    kind = IssueKind.TRANSITIVE_CONFLICT
    name = "Transitive Conflict Pinning"

    def fix(self, issue: AnalysisIssue, inventory: ProjectPackageInfo) -> FixResult:
        """Pin the resolved version of the issue's package.

        Args:
            issue: The transitive conflict issue.
            inventory: Every package reference in the solution.

        Returns:
            FixResult indicating success or failure.
        """
        props_path = self.options.props_path
        if not props_path.is_file():
            return FixResult.failed(
                f"{self.options.props_file_name} not found at {props_path}. "
                "Transitive pinning requires an existing central package management setup."
            )

        versions = [
            ref.version for ref in inventory.references_for(issue.package_name) if ref.version
        ]
        if not versions:
            return FixResult.failed(
                f"Could not determine versions for {issue.package_name}"
            )

        version = resolve_version(versions, self.options.conflict_strategy)
        if version is None:
            return FixResult.failed(
                f"Cannot resolve version for {issue.package_name} "
                f"with the {self.options.conflict_strategy.value} conflict strategy"
            )

        previous: list[str] = []
        missing_group = False

        def pin(document: ProjectDocument) -> bool:
            nonlocal missing_group
            entries = document.find_entries(issue.package_name, PACKAGE_VERSION)
            if not entries:
                inserted = document.insert_package_version(issue.package_name, version)
                missing_group = not inserted
                return inserted
            changed = False
            for entry in entries:
                if entry.version is not None:
                    previous.append(entry.version)
                changed = document.set_version(entry, version) or changed
            return changed

        outcome = edit_file(props_path, pin, dry_run=self.dry_run)
        if not outcome.ok:
            return FixResult.failed(
                f"Failed to update {self.options.props_file_name}: {outcome.error}"
            )
        if missing_group:
            return FixResult.no_fix_needed(
                f"No ItemGroup found in {self.options.props_file_name} to pin "
                f"{issue.package_name} into"
            )
        if not outcome.changed:
            return FixResult.no_fix_needed(
                f"{issue.package_name} is already pinned to {version}"
            )

        before = (
            f"{issue.package_name}: {', '.join(dict.fromkeys(previous))}"
            if previous
            else f"{issue.package_name}: not pinned"
        )
        change = FileChange(
            file_path=str(props_path),
            change_type="Modified",
            before=before,
            after=f"Pinned {issue.package_name} to {version}",
            content=outcome.content,
        )
        return FixResult.succeeded(
            f"Pinned {issue.package_name} to version {version} "
            f"in {self.options.props_file_name}",
            [change],
        )
