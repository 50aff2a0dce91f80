"""Base classes for cpmfix fixers.

Provides the fixer contract and the result types that fixers report
their outcome with.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from cpmfix.config import FixOptions
from cpmfix.models import AnalysisIssue, IssueKind, ProjectPackageInfo


@dataclass(frozen=True)
class FileChange:
    """A single file mutation made (or previewed) by a fixer.

    Attributes:
        file_path: Path of the changed file.
        change_type: Kind of change (e.g., "Modified").
        before: Short summary of the state before the change.
        after: Short summary of the state after the change.
        content: Full file content after the change; identical whether or
            not the run was a dry run.
    """

    file_path: str
    change_type: str
    before: str
    after: str
    content: str | None = None


@dataclass
class FixResult:
    """Result of a fixer execution.

    Use the succeeded/no_fix_needed/failed constructors. A failed result
    never carries changes.

    Attributes:
        success: Whether the issue is resolved (or needed no fix).
        description: Human-readable description of what happened.
        changes: File changes, in the order they were applied.
        warnings: Files that could not be edited, with reasons.
    """

    success: bool
    description: str
    changes: list[FileChange] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.success and self.changes:
            raise ValueError("A failed FixResult cannot carry file changes")

    @classmethod
    def succeeded(
        cls,
        description: str,
        changes: list[FileChange],
        warnings: list[str] | None = None,
    ) -> FixResult:
        return cls(True, description, list(changes), list(warnings or []))

    @classmethod
    def no_fix_needed(cls, reason: str, warnings: list[str] | None = None) -> FixResult:
        return cls(True, reason, [], list(warnings or []))

    @classmethod
    def failed(cls, reason: str, warnings: list[str] | None = None) -> FixResult:
        return cls(False, reason, [], list(warnings or []))

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)


class BaseFixer(ABC):
    """Abstract base class for all fixers.

    A fixer resolves one kind of issue. Fixers must be idempotent: running
    one again on already-fixed files reports no_fix_needed.

    Attributes:
        options: Options for this run.
    """

    # The issue kind this fixer handles (must be set by subclasses)
    kind: IssueKind | None = None
    # Display name
    name: str = ""

    def __init__(self, options: FixOptions) -> None:
        """Initialize fixer.

        Args:
            options: Options for this run.
        """
        self.options = options

    @abstractmethod
    def fix(self, issue: AnalysisIssue, inventory: ProjectPackageInfo) -> FixResult:
        """Apply a fix for the given issue.

        Args:
            issue: The issue to resolve.
            inventory: Every package reference in the solution (read-only).

        Returns:
            FixResult containing the outcome and file changes.
        """

    def can_fix(self, issue: AnalysisIssue) -> bool:
        """Check if this fixer can handle the given issue.

        Default implementation matches the issue kind against this fixer's kind.
        """
        return issue.kind == self.kind

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run
