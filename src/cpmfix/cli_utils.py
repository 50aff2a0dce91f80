"""CLI utility functions for cpmfix.

Provides helper functions for:
- Config wiring: Extracting Typer CLI options and passing to load_config
- Path resolution: Finding the solution root
- Error formatting: Consistent user-friendly error messages with exit codes
- Logging setup: Routing library logs through rich
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler

from cpmfix.config import CpmfixConfig, load_config

# Files whose presence marks a solution root
SOLUTION_MARKERS = ("*.sln", "*.slnx", "Directory.Packages.props")

# Exit code conventions
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # User error (bad input, missing file, failed fixes)
EXIT_SYSTEM_ERROR = 2  # System error (permissions, I/O, etc.)


class SolutionRootNotFoundError(Exception):
    """Raised when no solution root can be found."""

    def __init__(self, start_dir: Path) -> None:
        self.start_dir = start_dir
        super().__init__(
            "Could not find a solution root (no .sln, .slnx or "
            f"Directory.Packages.props found). Searched from: {start_dir}"
        )


# -----------------------------------------------------------------------------
# Error Formatting Helpers
# -----------------------------------------------------------------------------


def error(msg: str, *, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Print an error message and exit with the given exit code.

    Raises:
        typer.Exit: Always raises to exit the program.
    """
    styled_prefix = typer.style("Error:", fg=typer.colors.RED, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)
    raise typer.Exit(code=exit_code)


def warning(msg: str) -> None:
    """Print a warning message to stderr."""
    styled_prefix = typer.style("Warning:", fg=typer.colors.YELLOW, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)


def format_error_details(errors: list[str]) -> str:
    """Format a list of error messages as bullet points."""
    if not errors:
        return ""
    return "\n".join(f"  - {e}" for e in errors)


# -----------------------------------------------------------------------------
# Path Resolution Helper
# -----------------------------------------------------------------------------


def _has_marker(directory: Path) -> bool:
    return any(any(directory.glob(marker)) for marker in SOLUTION_MARKERS)


def find_solution_root(start_dir: Path | None = None) -> Path:
    """Find the solution root by walking up from start_dir.

    A directory is a solution root when it holds a solution file or the
    central package-version manifest.

    Args:
        start_dir: Directory to start searching from. Defaults to cwd.

    Returns:
        Path to the solution root.

    Raises:
        SolutionRootNotFoundError: If no solution root is found.
    """
    current = (start_dir or Path.cwd()).resolve()
    original_start = current

    while True:
        if _has_marker(current):
            return current

        parent = current.parent
        if parent == current:
            raise SolutionRootNotFoundError(original_start)
        current = parent


def resolve_solution_dir(path: str | None) -> Path:
    """Resolve the solution directory argument of a command.

    An explicit path is used as-is; otherwise the root is discovered from cwd.

    Raises:
        typer.Exit: If the path does not exist or no root can be found.
    """
    if path is not None:
        solution_dir = Path(path).resolve()
        if not solution_dir.is_dir():
            error(f"Solution directory does not exist: {solution_dir}")
        return solution_dir
    try:
        return find_solution_root()
    except SolutionRootNotFoundError as e:
        error(str(e))


# -----------------------------------------------------------------------------
# Config Wiring Helper
# -----------------------------------------------------------------------------


def wire_config(
    conflict_strategy: str | None = None,
    keep_version_attributes: bool | None = None,
    props_file_name: str | None = None,
    start_dir: Path | None = None,
) -> CpmfixConfig:
    """Wire CLI options to load_config with appropriate overrides.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    cli_overrides: dict[str, Any] = {
        "conflict_strategy": conflict_strategy,
        "keep_version_attributes": keep_version_attributes,
        "props_file_name": props_file_name,
    }

    try:
        return load_config(cli_overrides=cli_overrides, start_dir=start_dir)
    except ValueError as e:
        error(f"Invalid configuration: {e}", exit_code=EXIT_USER_ERROR)


def configure_logging(verbose: bool = False) -> None:
    """Send cpmfix log records to stderr through rich."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    logger = logging.getLogger("cpmfix")
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


# -----------------------------------------------------------------------------
# Typer Option Factory Functions
# -----------------------------------------------------------------------------
# Typer consumes Option objects when decorating commands, so each command
# needs a fresh instance.


def strategy_option() -> Any:
    """Create a Typer Option for --strategy / -s."""
    return typer.Option(
        None,
        "--strategy",
        "-s",
        help="Conflict resolution strategy: highest, lowest or fail (default: highest).",
        envvar="CPMFIX_CONFLICT_STRATEGY",
    )


def props_file_option() -> Any:
    """Create a Typer Option for --props-file."""
    return typer.Option(
        None,
        "--props-file",
        help="Central package manifest name (default: Directory.Packages.props).",
        envvar="CPMFIX_PROPS_FILE_NAME",
    )
