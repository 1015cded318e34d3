"""Rich console utilities for gem-license-source.

Provides a shared Rich Console instance and helpers for printing
dependency records, optimized for both local terminals and CI logs.
"""

import os
from typing import Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from ._bundler.models import DependencyRecord

# Detect CI environments
IS_GITHUB_ACTIONS = os.getenv("GITHUB_ACTIONS") == "true"
IS_CI = os.getenv("CI") == "true" or IS_GITHUB_ACTIONS

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
    }
)

# Force colors ON in GitHub Actions (it supports ANSI colors but Rich may incorrectly disable them)
console = Console(
    theme=custom_theme,
    force_terminal=IS_GITHUB_ACTIONS or None,
    color_system="auto",
)


def records_table(records: Iterable[DependencyRecord], title: Optional[str] = None) -> Table:
    """
    Build a table of dependency records sorted by name.

    Args:
        records: Records to show
        title: Optional table title
    """
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Version", justify="right")
    table.add_column("Summary", overflow="fold")
    table.add_column("Homepage", style="magenta", overflow="fold")

    for record in sorted(records, key=lambda r: (r.name, r.version)):
        table.add_row(record.name, record.version, escape(record.summary or ""), escape(record.homepage or ""))

    return table


def print_records(records: list[DependencyRecord], title: Optional[str] = None) -> None:
    """Print dependency records as a table followed by a count."""
    console.print(records_table(records, title=title))
    console.print(f"[success]✓ {len(records)} dependencies[/success]")


def print_warning(message: str, title: Optional[str] = None) -> None:
    """
    Emit a warning, as a workflow annotation when running in GitHub Actions.

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
            console.print(f"[warning]Warning ({escape(title)}):[/warning] {escape(message)}")
        else:
            console.print(f"[warning]Warning:[/warning] {escape(message)}")


def print_error(message: str, title: Optional[str] = None) -> None:
    """
    Emit an error, as a workflow annotation when running in GitHub Actions.

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
            console.print(f"[error]Error ({escape(title)}):[/error] {escape(message)}")
        else:
            console.print(f"[error]Error:[/error] {escape(message)}")
