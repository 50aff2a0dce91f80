"""Core data model shared by the analyzer, the fixers and the CLI.

All types here are immutable snapshots created fresh for each run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ConflictStrategy(str, Enum):
    """How competing package versions are reconciled."""

    HIGHEST = "highest"
    LOWEST = "lowest"
    FAIL = "fail"

    @classmethod
    def parse(cls, value: str | ConflictStrategy) -> ConflictStrategy:
        """Parse a strategy name case-insensitively.

        Args:
            value: Strategy name (e.g., "Highest") or an existing member.

        Returns:
            The matching ConflictStrategy.

        Raises:
            ValueError: If the name is not a known strategy.
        """
        if isinstance(value, ConflictStrategy):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ValueError(
                f"Unknown conflict strategy '{value}' (expected one of: {valid})"
            ) from None


class IssueKind(str, Enum):
    """Category of a detected issue, used to dispatch to a fixer."""

    TRANSITIVE_CONFLICT = "transitive_conflict"
    VERSION_INCONSISTENCY = "version_inconsistency"
    DUPLICATE_CASING = "duplicate_casing"
    REDUNDANT_REFERENCE = "redundant_reference"


@dataclass(frozen=True)
class PackageReference:
    """One PackageReference entry inside one project file.

    Attributes:
        package_name: Package identity exactly as written in the file.
        version: Version string ("" when the entry carries none).
        project_path: Path to the project file containing the entry.
        project_name: File name of the project (e.g., "App.csproj").
    """

    package_name: str
    version: str
    project_path: str
    project_name: str


@dataclass(frozen=True)
class ProjectPackageInfo:
    """Ordered inventory of every package reference in a solution."""

    references: tuple[PackageReference, ...] = ()

    @property
    def total_references(self) -> int:
        return len(self.references)

    @property
    def project_count(self) -> int:
        return len({ref.project_path for ref in self.references})

    def references_for(self, package_name: str) -> list[PackageReference]:
        """Return references to a package, matched case-insensitively."""
        key = package_name.casefold()
        return [ref for ref in self.references if ref.package_name.casefold() == key]

    def project_path_for(self, project_name: str) -> str | None:
        """Return the path of the first project with the given name."""
        for ref in self.references:
            if ref.project_name == project_name:
                return ref.project_path
        return None


@dataclass(frozen=True)
class AnalysisIssue:
    """An inconsistency reported by the analyzer.

    Attributes:
        package_name: Package the issue is about.
        kind: Issue category; decides which fixer handles it.
        description: Human-readable explanation.
        affected_projects: Names of the projects involved, in discovery order.
    """

    package_name: str
    kind: IssueKind
    description: str
    affected_projects: tuple[str, ...] = field(default_factory=tuple)
