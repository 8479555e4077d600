"""Rich display functions for the batchstate CLI."""

from typing import List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from batchstate.core.context import ExecutionContext
from batchstate.exceptions import BatchStateError

console = Console()

MAX_VALUE_WIDTH = 60


def _format_value(value: object) -> str:
    text = repr(value)
    if len(text) > MAX_VALUE_WIDTH:
        return text[: MAX_VALUE_WIDTH - 3] + "..."
    return text


def display_checkpoint_list(units: List[str], database: str) -> None:
    """Display the units of work that have a saved checkpoint.

    Args:
        units: Unit of work names
        database: Database the checkpoints were read from
    """
    table = Table(
        title=f"Checkpoints in {database}", show_header=True, header_style="bold blue"
    )
    table.add_column("Unit of work", style="cyan")

    for unit in units:
        table.add_row(unit)

    console.print(table)
    console.print(f"\n📋 {len(units)} checkpoint(s)")


def display_context(unit_of_work: str, context: ExecutionContext) -> None:
    """Display the entries of a restored context as a table.

    Args:
        unit_of_work: Unit of work the context belongs to
        context: The restored context
    """
    table = Table(title=unit_of_work, show_header=True, header_style="bold blue")
    table.add_column("Key", style="cyan")
    table.add_column("Type", style="yellow")
    table.add_column("Value", style="green")

    for key, value in sorted(context.items()):
        table.add_row(key, type(value).__name__, _format_value(value))

    console.print(table)


def display_context_plain(context: ExecutionContext) -> None:
    """Display entries as key=value lines for scripting."""
    for key, value in sorted(context.items()):
        console.print(f"{key}={value!r}", markup=False, highlight=False)


def display_batchstate_error(error: BatchStateError) -> None:
    """Display a batchstate error with its suggestions.

    Args:
        error: The error to display
    """
    console.print(f"❌ [bold red]{error.message}[/bold red]")
    for action in error.suggested_actions:
        console.print(f"💡 [dim]{action}[/dim]")


def display_info_panel(title: str, content: str, style: str = "blue") -> None:
    """Display an information panel.

    Args:
        title: Panel title
        content: Panel content
        style: Rich style for the panel border
    """
    panel = Panel(content, title=title, border_style=style)
    console.print(panel)
