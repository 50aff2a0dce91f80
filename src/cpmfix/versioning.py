"""Version parsing and conflict resolution.

Versions are compared on their dotted-numeric core only: a leading "v" and
any pre-release suffix (text after the first "-") are ignored. Strings whose
core is not dotted-numeric compare as 0.0.0 so they can never win under the
"highest" strategy.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from packaging.version import InvalidVersion, Version

from cpmfix.models import ConflictStrategy

_NUMERIC_CORE = re.compile(r"^\d+(?:\.\d+)*$")
_ZERO_VERSION = Version("0.0.0")


def parse_version(version_string: str) -> Version:
    """Parse a version string into a comparable Version.

    Args:
        version_string: Raw version (e.g., "1.2.3", "v2.0", "1.0.0-preview").

    Returns:
        The parsed numeric core, or 0.0.0 when it cannot be parsed.
    """
    cleaned = version_string.strip().lstrip("vV")
    cleaned = cleaned.split("-", 1)[0]
    if not _NUMERIC_CORE.match(cleaned):
        return _ZERO_VERSION
    try:
        return Version(cleaned)
    except InvalidVersion:
        return _ZERO_VERSION


def _ordered_candidates(versions: Iterable[str]) -> list[str]:
    """Deduplicate versions, keeping a stable encounter order.

    Unordered collections get a canonical order first so the result does not
    depend on hash iteration order.
    """
    if isinstance(versions, (set, frozenset)):
        versions = sorted(versions)
    return list(dict.fromkeys(versions))


def resolve_version(
    versions: Iterable[str], strategy: ConflictStrategy
) -> str | None:
    """Pick the winning version among competing version strings.

    Args:
        versions: Candidate version strings.
        strategy: Resolution strategy.

    Returns:
        The winning version, or None when the conflict cannot be resolved
        (FAIL strategy or no candidates).
    """
    if strategy is ConflictStrategy.FAIL:
        return None

    candidates = _ordered_candidates(versions)
    if not candidates:
        return None

    # sorted() is stable with reverse=True too, so ties keep encounter order
    reverse = strategy is ConflictStrategy.HIGHEST
    return sorted(candidates, key=parse_version, reverse=reverse)[0]


def detect_conflicts(package_versions: Mapping[str, Iterable[str]]) -> list[str]:
    """List packages that are referenced with more than one version.

    Args:
        package_versions: Mapping of package name to the versions seen for it.

    Returns:
        Package names with conflicting versions, sorted alphabetically.
    """
    return sorted(
        name for name, versions in package_versions.items() if len(set(versions)) > 1
    )
