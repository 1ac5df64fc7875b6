"""Rich console output utilities for smartpy-build.

Provides colored success/error messages, the build summary
table, and ConsoleLogger, the default ``log(str)`` sink handed to the
pipeline. Respects the NO_COLOR environment variable.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from smartpy_build.models import BuildResult

# Rich respects NO_COLOR on its own; --no-color is handled by set_no_color()
_force_no_color = os.environ.get("NO_COLOR") is not None


def create_console(no_color: bool = False) -> Console:
    """Create a Rich Console instance with appropriate color settings.

    Args:
        no_color: If True, disable colored output. Also respects NO_COLOR env var.

    Returns:
        Configured Console instance.
    """
    force_terminal = None
    if no_color or _force_no_color:
        force_terminal = False
    return Console(
        force_terminal=force_terminal,
        no_color=no_color or _force_no_color,
    )


console = create_console()


def success(message: str, **kwargs: Any) -> None:
    """Print a success message with green checkmark.

    Example:
        >>> success("Compiled 2 contracts")
        ✓ Compiled 2 contracts
    """
    console.print(f"[green]✓[/green] {escape(message)}", **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print an error message with red X.

    Example:
        >>> error("Compilation of contracts/Token.py failed. See above.")
        ✗ Compilation of contracts/Token.py failed. See above.
    """
    console.print(f"[red]✗[/red] {escape(message)}", **kwargs)


def info(message: str, **kwargs: Any) -> None:
    """Print an informational message."""
    console.print(escape(message), **kwargs)


def print_summary(result: BuildResult, **kwargs: Any) -> None:
    """Print a table of compiled contracts.

    Args:
        result: Build result to summarize.
        **kwargs: Additional arguments passed to console.print().
    """
    table = Table(title=f"Compiled with {result.compiler.version}")
    table.add_column("Contract", style="cyan")
    table.add_column("Source")
    table.add_column("Storage", justify="center")

    for name, record in result.contracts.items():
        has_storage = "yes" if record.initial_storage is not None else "-"
        table.add_row(escape(name), escape(record.source_path), has_storage)

    console.print(table, **kwargs)


def set_no_color(no_color: bool) -> None:
    """Update the global console to enable/disable colors.

    Args:
        no_color: If True, disable colored output.
    """
    global console
    console = create_console(no_color=no_color)


class ConsoleLogger:
    """Logger satisfying the pipeline's ``log(str)`` contract.

    Writes through the module console at call time so that
    ``set_no_color`` takes effect for loggers created earlier.

    Example:
        >>> ConsoleLogger().log("> Compiling ./contracts/Token.py")
        > Compiling ./contracts/Token.py
    """

    def log(self, message: str) -> None:
        """Print one progress line."""
        info(message)
