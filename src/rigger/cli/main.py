"""Main CLI entry point for Rigger."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from rigger import __version__
from rigger.cli import config, suite

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
)

console = Console()

app = typer.Typer(
    name="rigger",
    help="Parallel UI/API/DB scenario runner with per-worker resource lifecycle",
    add_completion=True,
    no_args_is_help=True,
)

# Register subcommands
app.add_typer(suite.app, name="suite", help="Suite execution commands")
app.add_typer(config.app, name="config", help="Configuration management")


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        console.print(f"Rigger version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
        exists=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """Rigger - run tagged UI, API and database scenarios in parallel."""
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@app.command("route")
def route(
    ctx: typer.Context,
    tags: List[str] = typer.Argument(..., help="Scenario tags (e.g. @ui @db @qa)"),
):
    """Show which resources and profile a tag set selects."""
    from rigger.config.loader import load_config
    from rigger.core.errors import ConfigurationError
    from rigger.core.router import TagRouter

    try:
        cfg = load_config(ctx.obj.get("config_file") if ctx.obj else None)
        router = TagRouter.from_config(cfg.routing, cfg.environment)
        decision = router.resolve(tags)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    table = Table(show_header=False, box=None)
    table.add_column("Label", style="dim")
    table.add_column("Value")
    table.add_row(
        "Resources",
        ", ".join(k.value for k in decision.ordered_kinds) or "(none)",
    )
    table.add_row("Profile", decision.profile)
    table.add_row("Data source", decision.data_source or "(none)")
    console.print(table)


if __name__ == "__main__":
    app()
