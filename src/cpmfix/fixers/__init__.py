"""Fixer framework for automatically resolving package-reference issues.

Provides fixers that rewrite project files and the central package-version
manifest to resolve issues reported by the analyzer.
"""

from __future__ import annotations

from cpmfix.fixers.base import BaseFixer, FileChange, FixResult
from cpmfix.fixers.casing import DuplicateCasingFixer
from cpmfix.fixers.redundant import RedundantReferenceFixer
from cpmfix.fixers.registry import (
    FixerRegistry,
    get_global_registry,
)
from cpmfix.fixers.transitive_pin import TransitivePinFixer
from cpmfix.fixers.version_alignment import VersionAlignmentFixer

__all__ = [
    # Base types
    "BaseFixer",
    "FileChange",
    "FixResult",
    # Registry
    "FixerRegistry",
    "get_global_registry",
    # Fixers
    "DuplicateCasingFixer",
    "RedundantReferenceFixer",
    "TransitivePinFixer",
    "VersionAlignmentFixer",
]
