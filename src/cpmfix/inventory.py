"""Inventory scan: list the package references of every project in a solution."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from cpmfix.config import DEFAULT_PROJECT_GLOBS
from cpmfix.editor import (
    PACKAGE_REFERENCE,
    DocumentParseError,
    ProjectDocument,
    read_if_exists,
)
from cpmfix.models import PackageReference, ProjectPackageInfo

logger = logging.getLogger(__name__)

# Build output directories never hold source projects
_IGNORED_DIRS = {"bin", "obj", ".git", "node_modules"}


def find_project_files(root: Path, patterns: Iterable[str] = DEFAULT_PROJECT_GLOBS) -> list[Path]:
    """Find project files under root, sorted by path.

    Args:
        root: Solution directory.
        patterns: Glob patterns of project files.

    Returns:
        Sorted list of project file paths.
    """
    found: set[Path] = set()
    for pattern in patterns:
        for path in root.rglob(pattern):
            relative = path.relative_to(root)
            if any(part in _IGNORED_DIRS for part in relative.parts[:-1]):
                continue
            if path.is_file():
                found.add(path)
    return sorted(found)


def read_project_references(path: Path) -> list[PackageReference]:
    """Read the PackageReference entries of one project file.

    Raises:
        DocumentParseError: If the file is not well-formed.
        OSError: If the file cannot be read.
    """
    content = read_if_exists(path)
    if content is None:
        return []
    document = ProjectDocument.parse(content)
    return [
        PackageReference(
            package_name=entry.identity or "",
            version=entry.version or "",
            project_path=str(path),
            project_name=path.name,
        )
        for entry in document.entries
        if entry.tag == PACKAGE_REFERENCE and entry.identity
    ]


def scan_solution(
    root: Path, patterns: Iterable[str] = DEFAULT_PROJECT_GLOBS
) -> ProjectPackageInfo:
    """Build the package inventory of a solution directory.

    Files that cannot be read or parsed are skipped with a warning.

    Args:
        root: Solution directory.
        patterns: Glob patterns of project files.

    Returns:
        ProjectPackageInfo with references in path then document order.
    """
    references: list[PackageReference] = []
    for path in find_project_files(root, patterns):
        try:
            references.extend(read_project_references(path))
        except (DocumentParseError, OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable project %s: %s", path, e)
    return ProjectPackageInfo(tuple(references))
