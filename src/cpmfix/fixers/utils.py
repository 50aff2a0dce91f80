"""Utility functions for fixers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from cpmfix.editor import EditOutcome, ProjectDocument, edit_file
from cpmfix.models import PackageReference

logger = logging.getLogger(__name__)


def group_by_project(
    references: Iterable[PackageReference],
) -> dict[str, list[PackageReference]]:
    """Group references by project file, in order of first appearance."""
    groups: dict[str, list[PackageReference]] = {}
    for ref in references:
        groups.setdefault(ref.project_path, []).append(ref)
    return groups


def edit_project_file(
    path: str | Path,
    transform: Callable[[ProjectDocument], bool],
    *,
    dry_run: bool,
    warnings: list[str],
) -> EditOutcome:
    """Edit one file, recording a warning instead of failing on errors.

    Args:
        path: File to edit.
        transform: Edit to apply; returns True if it changed anything.
        dry_run: If True, nothing is written.
        warnings: Receives the error message when the file cannot be edited.

    Returns:
        The EditOutcome of the session.
    """
    outcome = edit_file(Path(path), transform, dry_run=dry_run)
    if not outcome.ok:
        logger.warning("Skipping %s: %s", path, outcome.error)
        warnings.append(outcome.error or f"Could not edit {path}")
    return outcome
