"""Analyzers that detect fixable issues in a package inventory.

Each analyzer emits issues tagged with a single IssueKind so that dispatch
never depends on the wording of a description.
"""

from __future__ import annotations

from collections.abc import Callable

from cpmfix.fixers.utils import group_by_project
from cpmfix.models import AnalysisIssue, IssueKind, PackageReference, ProjectPackageInfo


def _group_by_package(
    references: list[PackageReference],
) -> dict[str, list[PackageReference]]:
    groups: dict[str, list[PackageReference]] = {}
    for ref in references:
        groups.setdefault(ref.package_name.casefold(), []).append(ref)
    return groups


def _projects(references: list[PackageReference]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(ref.project_name for ref in references))


def find_version_inconsistencies(inventory: ProjectPackageInfo) -> list[AnalysisIssue]:
    """Packages referenced with more than one version across the solution."""
    issues: list[AnalysisIssue] = []
    for group in _group_by_package(list(inventory.references)).values():
        versioned = [ref for ref in group if ref.version]
        versions = list(dict.fromkeys(ref.version for ref in versioned))
        if len(versions) <= 1:
            continue
        details = ", ".join(
            f"{version} ({', '.join(_projects([r for r in versioned if r.version == version]))})"
            for version in versions
        )
        issues.append(
            AnalysisIssue(
                package_name=group[0].package_name,
                kind=IssueKind.VERSION_INCONSISTENCY,
                description=f"Versions: {details}",
                affected_projects=_projects(versioned),
            )
        )
    return issues


def find_duplicate_casings(inventory: ProjectPackageInfo) -> list[AnalysisIssue]:
    """Packages referenced under more than one casing."""
    issues: list[AnalysisIssue] = []
    for group in _group_by_package(list(inventory.references)).values():
        variations = list(dict.fromkeys(ref.package_name for ref in group))
        if len(variations) <= 1:
            continue
        issues.append(
            AnalysisIssue(
                package_name=variations[0],
                kind=IssueKind.DUPLICATE_CASING,
                description=(
                    f"Found {len(variations)} casing variations: {', '.join(variations)}"
                ),
                affected_projects=_projects(group),
            )
        )
    return issues


def find_redundant_references(inventory: ProjectPackageInfo) -> list[AnalysisIssue]:
    """Packages referenced more than once within the same project."""
    issues: list[AnalysisIssue] = []
    for project_refs in group_by_project(inventory.references).values():
        for group in _group_by_package(project_refs).values():
            if len(group) <= 1:
                continue
            versions = list(dict.fromkeys(ref.version for ref in group))
            if len(versions) == 1:
                description = f"Referenced {len(group)} times with version {versions[0]}"
            else:
                description = (
                    f"Referenced {len(group)} times with versions: {', '.join(versions)}"
                )
            issues.append(
                AnalysisIssue(
                    package_name=group[0].package_name,
                    kind=IssueKind.REDUNDANT_REFERENCE,
                    description=description,
                    affected_projects=(group[0].project_name,),
                )
            )
    return issues


ANALYZERS: dict[str, Callable[[ProjectPackageInfo], list[AnalysisIssue]]] = {
    "Version Inconsistencies": find_version_inconsistencies,
    "Duplicate Packages (Casing)": find_duplicate_casings,
    "Redundant References": find_redundant_references,
}


def analyze(inventory: ProjectPackageInfo) -> list[AnalysisIssue]:
    """Run every analyzer over the inventory.

    Returns:
        All issues found, grouped by analyzer in a fixed order.
    """
    issues: list[AnalysisIssue] = []
    for analyzer in ANALYZERS.values():
        issues.extend(analyzer(inventory))
    return issues
