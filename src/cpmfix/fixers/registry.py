"""Fixer registry for dispatching issues to fixers.

The registry keeps fixer classes in registration order; an issue goes to the
first registered fixer whose can_fix() accepts it.
"""

from __future__ import annotations

from cpmfix.config import FixOptions
from cpmfix.fixers.base import BaseFixer, FixResult
from cpmfix.models import AnalysisIssue, IssueKind, ProjectPackageInfo


class FixerRegistry:
    """Registry that maps issues to fixer classes.

    Example:
        >>> registry = FixerRegistry()
        >>> registry.register(VersionAlignmentFixer)
        >>> fixer = registry.get_fixer(issue, options)
        >>> if fixer:
        ...     result = fixer.fix(issue, inventory)
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._fixers: dict[IssueKind, type[BaseFixer]] = {}

    def register(self, fixer_class: type[BaseFixer]) -> None:
        """Register a fixer class by its issue kind.

        Args:
            fixer_class: A BaseFixer subclass to register.

        Raises:
            ValueError: If the fixer has no kind or if a fixer for the same
                kind is already registered.
        """
        kind = fixer_class.kind
        if kind is None:
            raise ValueError(f"Fixer class {fixer_class.__name__} has no kind defined")
        if kind in self._fixers:
            raise ValueError(
                f"Fixer for kind '{kind.value}' already registered: "
                f"{self._fixers[kind].__name__}"
            )
        self._fixers[kind] = fixer_class

    def get_fixer(self, issue: AnalysisIssue, options: FixOptions) -> BaseFixer | None:
        """Get an instantiated fixer able to handle the issue.

        Args:
            issue: The issue to dispatch.
            options: Options for this run.

        Returns:
            The first fixer whose can_fix() accepts the issue, None otherwise.
        """
        for fixer_class in self._fixers.values():
            fixer = fixer_class(options)
            if fixer.can_fix(issue):
                return fixer
        return None

    def list_kinds(self) -> list[IssueKind]:
        """List registered issue kinds in registration order."""
        return list(self._fixers)

    def apply_fix(
        self,
        issue: AnalysisIssue,
        inventory: ProjectPackageInfo,
        options: FixOptions,
    ) -> FixResult:
        """Apply a fix for the given issue using the appropriate fixer.

        Returns:
            FixResult from the fixer, or a failure result if no fixer
            accepts the issue.
        """
        fixer = self.get_fixer(issue, options)
        if fixer is None:
            return FixResult.failed(
                f"No fixer registered for {issue.kind.value} issue on {issue.package_name}"
            )
        return fixer.fix(issue, inventory)


# Global registry instance - populated on first use
_global_registry: FixerRegistry | None = None


def get_global_registry() -> FixerRegistry:
    """Get the global fixer registry, populated with all built-in fixers."""
    global _global_registry
    if _global_registry is None:
        _global_registry = _create_default_registry()
    return _global_registry


def _create_default_registry() -> FixerRegistry:
    """Create and populate the default registry with built-in fixers."""
    # Import here to avoid circular imports
    from cpmfix.fixers.casing import DuplicateCasingFixer
    from cpmfix.fixers.redundant import RedundantReferenceFixer
    from cpmfix.fixers.transitive_pin import TransitivePinFixer
    from cpmfix.fixers.version_alignment import VersionAlignmentFixer

    registry = FixerRegistry()
    registry.register(VersionAlignmentFixer)
    registry.register(DuplicateCasingFixer)
    registry.register(RedundantReferenceFixer)
    registry.register(TransitivePinFixer)
    return registry
