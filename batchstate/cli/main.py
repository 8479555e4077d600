#!/usr/bin/env python3
"""batchstate CLI.

Typer application exposing checkpoint inspection commands with Rich output.
"""

from typing import Optional

import typer
from rich.console import Console

from batchstate.cli.commands.checkpoints import checkpoints_app
from batchstate.cli.display import display_batchstate_error
from batchstate.config import load_settings
from batchstate.exceptions import BatchStateError
from batchstate.logging import configure_logging, get_logger

logger = get_logger(__name__)
console = Console()

app = typer.Typer(
    name="batchstate",
    help="batchstate CLI - inspect execution context checkpoints",
    add_completion=False,
)

app.add_typer(checkpoints_app, name="checkpoints")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose output"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only show warnings and errors"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="YAML settings file used by all commands"
    ),
) -> None:
    """batchstate CLI - inspect execution context checkpoints.

    Examples:
        batchstate checkpoints list --db state.duckdb
        batchstate checkpoints show load_orders --db state.duckdb
        batchstate --config batchstate.yml checkpoints list
    """
    if version:
        from batchstate import __version__

        console.print(f"batchstate CLI v{__version__}")
        raise typer.Exit()

    try:
        settings = load_settings(config_file)
    except BatchStateError as e:
        display_batchstate_error(e)
        raise typer.Exit(1)

    configure_logging(verbose=verbose, quiet=quiet, level=settings.log_level)
    ctx.obj = {"config_file": config_file}

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()


def cli() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    cli()
