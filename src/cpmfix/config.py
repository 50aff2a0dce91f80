"""Configuration management for the cpmfix CLI tool.

Handles configuration loading from multiple sources with precedence:
CLI args > environment variables > .cpmfixrc > pyproject.toml > defaults
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from cpmfix.models import ConflictStrategy

# tomllib is only available in Python 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]

DEFAULT_PROPS_FILE_NAME = "Directory.Packages.props"
DEFAULT_PROJECT_GLOBS = ["*.csproj", "*.fsproj", "*.vbproj"]

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class FixOptions:
    """Immutable options passed into every fixer invocation.

    Attributes:
        solution_root: Directory holding the solution and the version manifest.
        conflict_strategy: How competing versions are reconciled.
        keep_version_attributes: Carried through for callers; fixers do not use it.
        dry_run: If True, fixers compute changes but write nothing.
        props_file_name: File name of the central package-version manifest.
    """

    solution_root: Path
    conflict_strategy: ConflictStrategy = ConflictStrategy.HIGHEST
    keep_version_attributes: bool = False
    dry_run: bool = False
    props_file_name: str = DEFAULT_PROPS_FILE_NAME

    @property
    def props_path(self) -> Path:
        return self.solution_root / self.props_file_name


@dataclass
class CpmfixConfig:
    """Configuration for the cpmfix CLI tool.

    Attributes:
        conflict_strategy: "highest", "lowest" or "fail" (default: "highest")
        keep_version_attributes: Keep Version attributes on project entries
            (default: False)
        props_file_name: Central manifest file name
            (default: "Directory.Packages.props")
        project_globs: File patterns identifying project files
    """

    conflict_strategy: str = ConflictStrategy.HIGHEST.value
    keep_version_attributes: bool = False
    props_file_name: str = DEFAULT_PROPS_FILE_NAME
    project_globs: list[str] = field(default_factory=lambda: list(DEFAULT_PROJECT_GLOBS))

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        # Normalizes the spelling too ("Highest" -> "highest")
        self.conflict_strategy = ConflictStrategy.parse(self.conflict_strategy).value

        if isinstance(self.keep_version_attributes, str):
            self.keep_version_attributes = _parse_bool(
                self.keep_version_attributes, "keep_version_attributes"
            )
        if not isinstance(self.keep_version_attributes, bool):
            raise ValueError("keep_version_attributes must be a boolean")

        if not self.props_file_name or not isinstance(self.props_file_name, str):
            raise ValueError("props_file_name must be a non-empty string")
        if not self.props_file_name.endswith(".props"):
            raise ValueError("props_file_name must end with .props")

        if isinstance(self.project_globs, str):
            self.project_globs = [g.strip() for g in self.project_globs.split(",") if g.strip()]
        if not self.project_globs or not all(
            isinstance(g, str) and g for g in self.project_globs
        ):
            raise ValueError("project_globs must be a non-empty list of patterns")

    @property
    def strategy(self) -> ConflictStrategy:
        return ConflictStrategy(self.conflict_strategy)

    def to_fix_options(self, solution_root: Path, *, dry_run: bool = False) -> FixOptions:
        """Build the immutable options handed to fixers.

        Args:
            solution_root: Directory holding the solution.
            dry_run: Whether fixers should only preview changes.

        Returns:
            FixOptions for this run.
        """
        return FixOptions(
            solution_root=solution_root,
            conflict_strategy=self.strategy,
            keep_version_attributes=self.keep_version_attributes,
            dry_run=dry_run,
            props_file_name=self.props_file_name,
        )


def _parse_bool(value: str, name: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (got '{value}')")


def _get_config_field_names() -> set[str]:
    """Get the set of valid configuration field names.

    Returns:
        Set of field names from CpmfixConfig.
    """
    return {f.name for f in fields(CpmfixConfig)}


def find_config_file(filename: str = ".cpmfixrc", start_dir: Path | None = None) -> Path | None:
    """Find a configuration file by traversing up the directory tree.

    Args:
        filename: Name of the config file to find.
        start_dir: Directory to start searching from. Defaults to current directory.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        config_path = current / filename
        if config_path.is_file():
            return config_path

        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    with open(path, "rb") as f:
        result: dict[str, Any] = tomllib.load(f)
        return result


def _load_from_cpmfixrc(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from a .cpmfixrc file.

    Returns:
        Configuration from .cpmfixrc, or empty dict if not found or invalid.
    """
    config_path = find_config_file(".cpmfixrc", start_dir)
    if config_path is None:
        return {}

    try:
        data = _load_toml_file(config_path)
    except (tomllib.TOMLDecodeError, OSError):
        return {}
    valid_fields = _get_config_field_names()
    return {k: v for k, v in data.items() if k in valid_fields}


def _load_from_pyproject(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from the pyproject.toml [tool.cpmfix] section.

    Returns:
        Configuration from pyproject.toml, or empty dict if not found or invalid.
    """
    config_path = find_config_file("pyproject.toml", start_dir)
    if config_path is None:
        return {}

    try:
        data = _load_toml_file(config_path)
    except (tomllib.TOMLDecodeError, OSError):
        return {}
    section = data.get("tool", {}).get("cpmfix", {})
    valid_fields = _get_config_field_names()
    return {k: v for k, v in section.items() if k in valid_fields}


def _load_from_env() -> dict[str, Any]:
    """Load configuration from CPMFIX_* environment variables.

    Returns:
        Dictionary containing configuration from environment variables.
    """
    env_mapping = {
        "CPMFIX_CONFLICT_STRATEGY": "conflict_strategy",
        "CPMFIX_KEEP_VERSION_ATTRIBUTES": "keep_version_attributes",
        "CPMFIX_PROPS_FILE_NAME": "props_file_name",
        "CPMFIX_PROJECT_GLOBS": "project_globs",
    }

    result: dict[str, Any] = {}
    for env_var, config_key in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            result[config_key] = value
    return result


def _merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge configuration dictionaries; later ones take precedence."""
    result: dict[str, Any] = {}
    for config in configs:
        for key, value in config.items():
            if value is not None:
                result[key] = value
    return result


def load_config(
    cli_overrides: dict[str, Any] | None = None,
    start_dir: Path | None = None,
) -> CpmfixConfig:
    """Load configuration with full precedence chain.

    Precedence (highest to lowest):
    1. CLI arguments (cli_overrides)
    2. Environment variables (CPMFIX_*)
    3. .cpmfixrc file
    4. pyproject.toml [tool.cpmfix] section
    5. Default values

    Args:
        cli_overrides: Configuration overrides from CLI arguments.
        start_dir: Directory to start searching for config files.

    Returns:
        Fully resolved CpmfixConfig instance.

    Raises:
        ValueError: If the resulting configuration is invalid.
    """
    valid_fields = _get_config_field_names()
    cli_config = {
        k: v for k, v in (cli_overrides or {}).items() if k in valid_fields and v is not None
    }

    merged = _merge_configs(
        _load_from_pyproject(start_dir),
        _load_from_cpmfixrc(start_dir),
        _load_from_env(),
        cli_config,
    )
    return CpmfixConfig(**merged)
