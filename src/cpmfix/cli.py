"""cpmfix CLI Tool - Main entry point."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from cpmfix import __version__
from cpmfix.analyzers import analyze as analyze_inventory
from cpmfix.cli_utils import (
    EXIT_SUCCESS,
    EXIT_SYSTEM_ERROR,
    EXIT_USER_ERROR,
    configure_logging,
    error,
    format_error_details,
    props_file_option,
    resolve_solution_dir,
    strategy_option,
    warning,
    wire_config,
)
from cpmfix.config import CpmfixConfig
from cpmfix.inventory import scan_solution
from cpmfix.models import AnalysisIssue, ProjectPackageInfo
from cpmfix.service import FixReport, FixService

app = typer.Typer(
    name="cpmfix",
    help="cpmfix - Repair package reference inconsistencies in .NET solutions.",
    add_completion=False,
)

# Rich consoles for output
console = Console()
err_console = Console(stderr=True)


# -----------------------------------------------------------------------------
# Output Helpers
# -----------------------------------------------------------------------------


def _output_success(message: str, quiet: bool = False) -> None:
    """Print a success message."""
    if not quiet:
        console.print(f"[green]Success:[/green] {message}")


def _output_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[red]Error:[/red] {message}")


def _output_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[yellow]Warning:[/yellow] {message}")


def _issue_to_dict(issue: AnalysisIssue) -> dict[str, Any]:
    return {
        "type": issue.kind.value,
        "package": issue.package_name,
        "description": issue.description,
        "affectedProjects": list(issue.affected_projects),
    }


def _scan(solution_dir: Path, config: CpmfixConfig) -> ProjectPackageInfo:
    """Scan the solution, exiting with a system error if it cannot be walked."""
    try:
        return scan_solution(solution_dir, config.project_globs)
    except OSError as e:
        error(f"Cannot scan {solution_dir}: {e}", exit_code=EXIT_SYSTEM_ERROR)


def _report_to_dict(report: FixReport, dry_run: bool) -> dict[str, Any]:
    return {
        "success": not report.failed_fixes,
        "mode": "dry_run" if dry_run else "fix",
        "fixes_applied": report.fixes_applied,
        "file_changes": report.total_file_changes,
        "fixes_failed": len(report.failed_fixes),
        "unhandled": [_issue_to_dict(issue) for issue in report.unhandled],
        "warnings": report.warnings,
        "results": [
            {
                "success": result.success,
                "description": result.description,
                "changes": [
                    {
                        "file": change.file_path,
                        "type": change.change_type,
                        "before": change.before,
                        "after": change.after,
                    }
                    for change in result.changes
                ],
            }
            for result in report.results
        ],
    }


# -----------------------------------------------------------------------------
# Version and Main Callbacks
# -----------------------------------------------------------------------------


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"cpmfix version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """cpmfix - Repair package reference inconsistencies in .NET solutions."""
    pass


# -----------------------------------------------------------------------------
# Analyze Command
# -----------------------------------------------------------------------------


@app.command()
def analyze(
    path: str | None = typer.Argument(
        None,
        help="Solution directory. Defaults to the nearest solution root.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed output.",
    ),
) -> None:
    """List package reference issues in a solution.

    Exit codes:
      0 - No issues found
      1 - Issues found
    """
    configure_logging(verbose)
    solution_dir = resolve_solution_dir(path)
    config = wire_config(start_dir=solution_dir)
    inventory = _scan(solution_dir, config)
    issues = analyze_inventory(inventory)

    if json_output:
        console.print_json(
            json.dumps(
                {
                    "solution": str(solution_dir),
                    "projects": inventory.project_count,
                    "references": inventory.total_references,
                    "issues": [_issue_to_dict(issue) for issue in issues],
                }
            )
        )
    elif not issues:
        _output_success(
            f"No issues found in {inventory.project_count} project(s) "
            f"({inventory.total_references} references)."
        )
    else:
        table = Table(title=f"Package issues ({len(issues)})")
        table.add_column("Type", style="cyan")
        table.add_column("Package", style="bold")
        table.add_column("Description")
        table.add_column("Projects", style="dim")
        for issue in issues:
            table.add_row(
                issue.kind.value,
                issue.package_name,
                issue.description,
                ", ".join(issue.affected_projects),
            )
        console.print(table)

    raise typer.Exit(code=EXIT_USER_ERROR if issues else EXIT_SUCCESS)


# -----------------------------------------------------------------------------
# Fix Command
# -----------------------------------------------------------------------------


@app.command()
def fix(
    path: str | None = typer.Argument(
        None,
        help="Solution directory. Defaults to the nearest solution root.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Show what would be fixed (no changes).",
    ),
    strategy: str | None = strategy_option(),
    keep_version_attributes: bool | None = typer.Option(
        None,
        "--keep-version-attributes/--drop-version-attributes",
        help="Keep Version attributes on project entries.",
    ),
    props_file: str | None = props_file_option(),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed output.",
    ),
) -> None:
    """Fix package reference issues in a solution.

    With --dry-run, shows what would be fixed without writing any file.

    Exit codes:
      0 - All issues fixed or no issues found
      1 - Some issues could not be fixed
    """
    configure_logging(verbose)
    solution_dir = resolve_solution_dir(path)
    config = wire_config(
        conflict_strategy=strategy,
        keep_version_attributes=keep_version_attributes,
        props_file_name=props_file,
        start_dir=solution_dir,
    )
    options = config.to_fix_options(solution_dir, dry_run=dry_run)

    inventory = _scan(solution_dir, config)
    issues = analyze_inventory(inventory)
    report = FixService().apply_fixes(issues, inventory, options)

    if json_output:
        console.print_json(json.dumps(_report_to_dict(report, dry_run)))
    else:
        _print_report(report, issues, dry_run=dry_run)

    raise typer.Exit(code=EXIT_USER_ERROR if report.failed_fixes else EXIT_SUCCESS)


def _print_report(report: FixReport, issues: list[AnalysisIssue], *, dry_run: bool) -> None:
    """Print fix results to the console.

    Args:
        report: The fix report.
        issues: Issues that were processed.
        dry_run: Whether this was a dry run.
    """
    if not issues:
        _output_success("No issues to fix.")
        return

    mode_str = " [dim](dry run)[/dim]" if dry_run else ""
    console.print(f"\n[bold]Found {len(issues)} issue(s) to fix{mode_str}[/bold]\n")

    prefix = "Would fix" if dry_run else "Fixed"
    for result in report.results:
        if not result.success:
            _output_error(result.description)
            continue
        if not result.changes:
            console.print(f"[dim]{result.description}[/dim]")
            continue
        console.print(f"[green]{prefix}:[/green] {result.description}")
        for change in result.changes:
            console.print(f"  {change.change_type}: {Path(change.file_path).name}")
            if change.before and change.after:
                console.print(f"    [red]- {change.before}[/red]")
                console.print(f"    [green]+ {change.after}[/green]")

    for issue in report.unhandled:
        _output_warning(f"No fixer available for: {issue.package_name}")
    if report.warnings:
        warning("Some files were skipped:\n" + format_error_details(report.warnings))

    console.print()
    if report.has_changes:
        action = "Would apply" if dry_run else "Applied"
        _output_success(
            f"{action} {report.fixes_applied} fix(es) affecting "
            f"{report.total_file_changes} file(s)."
        )
        if dry_run:
            console.print("Run without --dry-run to apply these changes.")
    else:
        console.print("No changes were needed.")

    if report.failed_fixes:
        _output_warning(
            f"{len(report.failed_fixes)} issue(s) could not be fixed automatically."
        )
