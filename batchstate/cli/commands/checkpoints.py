"""Checkpoint inspection commands with Typer integration."""

import os
from dataclasses import replace
from typing import Optional, Tuple

import typer
from rich.console import Console

from batchstate.cli.display import (
    display_batchstate_error,
    display_checkpoint_list,
    display_context,
    display_context_plain,
    display_info_panel,
)
from batchstate.config import BatchStateSettings, load_settings
from batchstate.core.state.checkpoint_manager import CheckpointManager
from batchstate.exceptions import BatchStateError, ConfigurationError
from batchstate.logging import get_logger

logger = get_logger(__name__)
console = Console()

checkpoints_app = typer.Typer(
    name="checkpoints",
    help="Inspect persisted execution contexts",
)

DB_OPTION_HELP = "DuckDB database holding checkpoints (overrides settings)"
CONFIG_OPTION_HELP = "YAML settings file (defaults to the global --config)"


def _open_manager(
    ctx: typer.Context, database: Optional[str], config_file: Optional[str]
) -> Tuple[CheckpointManager, BatchStateSettings]:
    if config_file is None and ctx.obj:
        config_file = ctx.obj.get("config_file")

    settings = load_settings(config_file)
    if database:
        settings = replace(settings, state_database=database)

    # Inspection must not create an empty database as a side effect
    path = settings.state_database
    if path != ":memory:" and not os.path.exists(path):
        raise ConfigurationError(
            f"Checkpoint database not found: {path}",
            context={"state_database": path},
            suggested_actions=[
                "Check the --db option or the state_database setting",
            ],
        )

    manager = CheckpointManager(settings.build_backend(), settings.build_serializer())
    return manager, settings


@checkpoints_app.command("list")
def list_checkpoints(
    ctx: typer.Context,
    database: Optional[str] = typer.Option(None, "--db", help=DB_OPTION_HELP),
    prefix: Optional[str] = typer.Option(
        None, "--prefix", "-p", help="Only list units of work with this prefix"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help=CONFIG_OPTION_HELP
    ),
) -> None:
    """List units of work that have a saved execution context."""
    try:
        manager, settings = _open_manager(ctx, database, config_file)
    except BatchStateError as e:
        display_batchstate_error(e)
        raise typer.Exit(1)

    try:
        units = manager.list_checkpoints(prefix)
        if not units:
            console.print("❌ [yellow]No checkpoints found[/yellow]")
            return
        display_checkpoint_list(units, settings.state_database)
        logger.debug(f"Listed {len(units)} checkpoints")
    except BatchStateError as e:
        display_batchstate_error(e)
        raise typer.Exit(1)
    finally:
        manager.close()


@checkpoints_app.command("show")
def show_checkpoint(
    ctx: typer.Context,
    unit_of_work: str = typer.Argument(..., help="Unit of work to show"),
    database: Optional[str] = typer.Option(None, "--db", help=DB_OPTION_HELP),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help=CONFIG_OPTION_HELP
    ),
    plain: bool = typer.Option(
        False, "--plain", help="Use plain text output (for scripting)"
    ),
) -> None:
    """Show the entries of a saved execution context."""
    try:
        manager, _ = _open_manager(ctx, database, config_file)
    except BatchStateError as e:
        display_batchstate_error(e)
        raise typer.Exit(1)

    try:
        if unit_of_work not in manager.list_checkpoints(unit_of_work):
            console.print(
                f"❌ [yellow]No checkpoint found for '{unit_of_work}'[/yellow]"
            )
            raise typer.Exit(1)

        context = manager.restore(unit_of_work)
        if plain:
            display_context_plain(context)
        elif context.is_empty():
            display_info_panel(unit_of_work, "Execution context is empty")
        else:
            display_context(unit_of_work, context)
    except BatchStateError as e:
        display_batchstate_error(e)
        raise typer.Exit(1)
    finally:
        manager.close()


@checkpoints_app.command("delete")
def delete_checkpoint(
    ctx: typer.Context,
    unit_of_work: str = typer.Argument(..., help="Unit of work to delete"),
    database: Optional[str] = typer.Option(None, "--db", help=DB_OPTION_HELP),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help=CONFIG_OPTION_HELP
    ),
) -> None:
    """Delete the saved execution context of a unit of work."""
    try:
        manager, _ = _open_manager(ctx, database, config_file)
    except BatchStateError as e:
        display_batchstate_error(e)
        raise typer.Exit(1)

    try:
        if not manager.delete(unit_of_work):
            console.print(
                f"❌ [yellow]No checkpoint found for '{unit_of_work}'[/yellow]"
            )
            raise typer.Exit(1)
        console.print(f"✅ [green]Deleted checkpoint for '{unit_of_work}'[/green]")
    except BatchStateError as e:
        display_batchstate_error(e)
        raise typer.Exit(1)
    finally:
        manager.close()
