"""Rich console utilities for protogen.

This module provides a shared Rich Console instance and helper functions
for CLI output, optimized for GitHub Actions and CI environments.
"""

import os
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

if TYPE_CHECKING:
    from ._generation.result import GenerationResult, InvocationOutcome

# Detect GitHub Actions
IS_GITHUB_ACTIONS = os.getenv("GITHUB_ACTIONS") == "true"

# Standard ANSI color names adapt to light and dark terminal themes
custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "step": "bold blue",
        "highlight": "magenta",
    }
)

# Shared console instance
# Force colors ON in GitHub Actions (it supports ANSI colors but Rich may incorrectly disable them)
console = Console(
    theme=custom_theme,
    force_terminal=IS_GITHUB_ACTIONS or None,
    color_system="auto",
)

# Rows shown in the diagnostics table before it is cut short
MAX_DIAGNOSTIC_ROWS = 50


def print_banner(version: str = "unknown") -> None:
    """Print a one-line banner with the package version."""
    version_display = f"v{version}" if version and version[0:1].isdigit() else version
    console.print(f"[step]protogen[/step] [highlight]{version_display}[/highlight] - protoc resolution and invocation")


def print_step_header(step_num: int, title: str) -> None:
    """
    Print a styled step header.

    In GitHub Actions, uses ::group:: for collapsible sections.
    In other environments, uses Rich styling.

    Args:
        step_num: Step number
        title: Step title
    """
    step_title = f"STEP {step_num}: {title}"

    if IS_GITHUB_ACTIONS:
        # GitHub Actions collapsible group
        print(f"::group::{step_title}")
        console.print(f"[bold blue]{step_title}[/bold blue]")
    else:
        console.print()
        console.rule(f"[bold blue]{step_title}[/bold blue]", style="blue")


def print_step_end(step_num: int, success: bool = True) -> None:
    """
    Print step completion status and close GitHub Actions group.

    Args:
        step_num: Step number
        success: Whether the step completed successfully
    """
    if success:
        console.print(f"[success]✓ Step {step_num} completed successfully[/success]")
    else:
        console.print(f"[error]✗ Step {step_num} failed[/error]")

    if IS_GITHUB_ACTIONS:
        print("::endgroup::")
    else:
        console.print()


def gha_warning(message: str, title: Optional[str] = None) -> None:
    """
    Emit a warning that appears in GitHub Actions job summary.

    Args:
        message: Warning message
        title: Optional title for the warning
    """
    if IS_GITHUB_ACTIONS:
        if title:
            print(f"::warning title={title}::{message}")
        else:
            print(f"::warning::{message}")
    else:
        if title:
            console.print(f"[warning]Warning ({title}):[/warning] {escape(message)}")
        else:
            console.print(f"[warning]Warning:[/warning] {escape(message)}")


def gha_error(message: str, title: Optional[str] = None) -> None:
    """
    Emit an error that appears in GitHub Actions job summary.

    Args:
        message: Error message
        title: Optional title for the error
    """
    if IS_GITHUB_ACTIONS:
        if title:
            print(f"::error title={title}::{message}")
        else:
            print(f"::error::{message}")
    else:
        if title:
            console.print(f"[error]Error ({title}):[/error] {escape(message)}")
        else:
            console.print(f"[error]Error:[/error] {escape(message)}")


def print_summary_table(
    title: str,
    data: List[Tuple[str, Any]],
    show_if_empty: bool = False,
) -> None:
    """
    Print a summary table.

    Args:
        title: Table title
        data: List of (label, value) tuples
        show_if_empty: Whether to show the table if all values are 0/empty
    """
    if not show_if_empty:
        data = [(label, value) for label, value in data if value]

    if not data:
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Item", style="cyan")
    table.add_column("Value")

    for label, value in data:
        table.add_row(label, escape(str(value)))

    console.print(table)


def print_diagnostics(outcome: "InvocationOutcome") -> None:
    """
    Print compiler warnings and errors as a table.

    Each diagnostic is also emitted as a GitHub Actions annotation when
    running under Actions.
    """
    diagnostics = outcome.warnings + outcome.errors
    if not diagnostics:
        return

    table = Table(title="protoc Diagnostics", show_header=True, header_style="bold")
    table.add_column("Severity", style="bold")
    table.add_column("Stream", style="dim")
    table.add_column("Message")

    for line in diagnostics[:MAX_DIAGNOSTIC_ROWS]:
        style = "error" if line.severity.value == "error" else "warning"
        table.add_row(f"[{style}]{line.severity.value}[/{style}]", line.stream.value, escape(line.text))

    if len(diagnostics) > MAX_DIAGNOSTIC_ROWS:
        table.add_row("", "", f"... and {len(diagnostics) - MAX_DIAGNOSTIC_ROWS} more")

    console.print(table)

    if IS_GITHUB_ACTIONS:
        for line in diagnostics:
            if line.severity.value == "error":
                print(f"::error title=protoc::{line.text}")
            else:
                print(f"::warning title=protoc::{line.text}")


def print_generation_summary(result: "GenerationResult") -> None:
    """Print what a generation request resolved and produced."""
    outcome = result.outcome
    data: List[Tuple[str, Any]] = [
        ("Source root kind", result.kind.value),
        ("Output directory", result.output_directory),
        ("protoc", result.compiler or ""),
    ]
    data.extend((f"Plugin {plugin_id}", path) for plugin_id, path in result.plugins.items())
    if outcome is not None:
        data.append(("Exit code", str(outcome.exit_code)))
        data.append(("Warnings", len(outcome.warnings)))
        data.append(("Errors", len(outcome.errors)))

    print_summary_table("Generation Summary", data)


def print_final_success(message: str = "Sources generated successfully!") -> None:
    """Print final success message."""
    console.print()
    if IS_GITHUB_ACTIONS:
        console.print(f"[bold green]✓ SUCCESS![/bold green] {message}")
    else:
        console.rule("[bold green]SUCCESS[/bold green]", style="green")
        console.print(f"[bold green]{message}[/bold green]", justify="center")
    console.print()


def print_final_failure(message: str) -> None:
    """Print final failure message."""
    console.print()
    gha_error(message, title="Source Generation Failed")
    if not IS_GITHUB_ACTIONS:
        console.rule("[bold red]FAILED[/bold red]", style="red")
        console.print(f"[bold red]{escape(message)}[/bold red]", justify="center")
    console.print()
