"""Rich console output for splitbuild-cli.

Colored status lines and tables; respects the NO_COLOR environment
variable and the --no-color flag.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.table import Table

# Rich respects NO_COLOR itself; --no-color is handled by set_no_color()
_force_no_color = os.environ.get("NO_COLOR") is not None


def create_console(no_color: bool = False) -> Console:
    """Create a Console with the requested color settings.

    Args:
        no_color: If True, disable colored output. NO_COLOR is also honored.
    """
    disable = no_color or _force_no_color
    return Console(force_terminal=False if disable else None, no_color=disable)


console = create_console()


def success(message: str, **kwargs: Any) -> None:
    """Print a success line with a green checkmark.

    Example:
        >>> success("Built worker.js")
        ✓ Built worker.js
    """
    console.print(f"[green]✓[/green] {message}", **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print an error line with a red X."""
    console.print(f"[red]✗[/red] {message}", **kwargs)


def warning(message: str, **kwargs: Any) -> None:
    """Print a warning line with a yellow triangle."""
    console.print(f"[yellow]⚠[/yellow] {message}", **kwargs)


def info(message: str, **kwargs: Any) -> None:
    """Print a plain informational line."""
    console.print(message, **kwargs)


def print_table(title: str, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
    """Print rows as a table.

    Args:
        title: Table title.
        columns: Column headers.
        rows: One sequence of cell strings per row.

    Example:
        >>> print_table("Units", ["Unit", "Artifact"], [["SERVER_REPL", "server-repl.js"]])
    """
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*row)
    console.print(table)


def set_no_color(no_color: bool) -> None:
    """Replace the module console to enable or disable colors."""
    global console
    console = create_console(no_color=no_color)
