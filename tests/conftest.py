"""Pytest configuration and fixtures for cpmfix tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from cpmfix.config import FixOptions
from cpmfix.inventory import scan_solution
from cpmfix.models import ConflictStrategy, ProjectPackageInfo

# Set a fixed terminal width to prevent line wrapping issues in CI
# This must be set before any Rich imports
os.environ.setdefault("COLUMNS", "200")
os.environ.setdefault("LINES", "50")
# Disable Rich's terminal detection to ensure consistent output
os.environ.setdefault("TERM", "dumb")

ProjectWriter = Callable[..., Path]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CPMFIX_* variables from the host out of the tests."""
    for var in list(os.environ):
        if var.startswith("CPMFIX_"):
            monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Undo the handler configure_logging() installs so caplog keeps working."""
    yield
    logger = logging.getLogger("cpmfix")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def project_xml(*references: tuple[str, str]) -> str:
    """Build a minimal SDK-style project file with the given references."""
    lines = [
        '<Project Sdk="Microsoft.NET.Sdk">',
        "  <PropertyGroup>",
        "    <TargetFramework>net8.0</TargetFramework>",
        "  </PropertyGroup>",
        "  <ItemGroup>",
    ]
    for name, version in references:
        lines.append(f'    <PackageReference Include="{name}" Version="{version}" />')
    lines.extend(["  </ItemGroup>", "</Project>", ""])
    return "\n".join(lines)


@pytest.fixture
def write_project(tmp_path: Path) -> ProjectWriter:
    """Write a project file under tmp_path/<name>/<name>.csproj."""

    def _write(name: str, *references: tuple[str, str], content: str | None = None) -> Path:
        project_dir = tmp_path / name
        project_dir.mkdir(parents=True, exist_ok=True)
        path = project_dir / f"{name}.csproj"
        path.write_text(content if content is not None else project_xml(*references))
        return path

    return _write


@pytest.fixture
def make_options(tmp_path: Path) -> Callable[..., FixOptions]:
    """Build FixOptions rooted at tmp_path."""

    def _make(
        strategy: ConflictStrategy = ConflictStrategy.HIGHEST, dry_run: bool = False
    ) -> FixOptions:
        return FixOptions(solution_root=tmp_path, conflict_strategy=strategy, dry_run=dry_run)

    return _make


@pytest.fixture
def inventory_of(tmp_path: Path) -> Callable[[], ProjectPackageInfo]:
    """Scan tmp_path into an inventory."""

    def _scan() -> ProjectPackageInfo:
        return scan_solution(tmp_path)

    return _scan
