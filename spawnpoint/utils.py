"""Shared utility functions for spawnpoint.

Provides logging setup, duration formatting and the
Rich-based console helpers used for every user-facing message.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

VERBOSITY_LEVELS: dict[int, int] = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


def setup_logging(verbose: int = 0) -> logging.Logger:
    """Route the ``spawnpoint`` logger through a Rich handler.

    Args:
        verbose: 0 for warnings only, 1 for info, 2 or more for debug.

    Returns:
        The configured package logger.
    """
    level = VERBOSITY_LEVELS.get(min(verbose, 2), logging.WARNING)
    logger = logging.getLogger("spawnpoint")
    logger.setLevel(level)
    logger.handlers.clear()
    handler = RichHandler(
        console=console,
        show_time=verbose >= 2,
        show_path=verbose >= 2,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False
    return logger


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


def truncate(text: str, limit: int = 500) -> str:
    """Trim *text* to *limit* characters, marking the cut."""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + f"... [{len(text) - limit} more chars]"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


PHASE_COLORS: dict[str, str] = {
    "Pre-Generate": "bright_cyan",
    "Generate": "bright_green",
    "Post-Generate": "bright_cyan",
    "Setup": "bright_yellow",
    "Validation": "bright_magenta",
    "Teardown": "bright_blue",
}


def print_phase_header(name: str) -> None:
    """Print a full-width rule announcing a lifecycle phase."""
    color = PHASE_COLORS.get(name, "white")
    console.print()
    console.print(Rule(f"[bold {color}] {name} [/bold {color}]", style=color))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")


def create_progress(*, transient: bool = True, disable: bool = False) -> Progress:
    """Create a Rich progress bar for counting rendered files.

    Returns:
        A ``Progress`` instance suitable for use as a context manager.
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=transient,
        disable=disable,
    )
