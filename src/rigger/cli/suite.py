"""Suite CLI commands."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from rigger.core.errors import ConfigurationError

console = Console()
app = typer.Typer(no_args_is_help=True)


def _ensure_import_path() -> None:
    """Make scenario modules in the current project importable."""
    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)


def _load_suite(file: Path, tag: Optional[str] = None, name: Optional[str] = None):
    from rigger.core.suite import SuiteParser

    try:
        suite = SuiteParser().parse(file)
    except ConfigurationError as e:
        console.print(f"[red]Error parsing suite:[/red] {e}")
        raise typer.Exit(1)
    return suite.filter(tag=tag, name=name)


@app.command("list")
def list_scenarios(
    file: Path = typer.Argument(..., help="Path to suite YAML file", exists=True),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Only scenarios with this tag"),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="Only scenarios whose name contains this text"
    ),
):
    """List scenarios in a suite."""
    suite = _load_suite(file, tag=tag, name=name)

    table = Table(title=f"Suite: {suite.name}")
    table.add_column("Scenario")
    table.add_column("Tags", style="cyan")
    table.add_column("Run", style="dim")
    for entry in suite.entries:
        table.add_row(entry.name, " ".join(entry.tags), entry.run)
    console.print(table)
    console.print(f"[dim]Total: {len(suite.entries)} scenarios[/dim]")


@app.command("validate")
def validate_suite(
    file: Path = typer.Argument(..., help="Path to suite YAML file", exists=True),
):
    """Validate a suite file and its scenario references."""
    from rigger.core.suite import SuiteParser

    _ensure_import_path()
    suite = _load_suite(file)
    is_valid, errors, warnings = SuiteParser().validate(suite)

    if errors:
        console.print("[red]Validation Errors:[/red]")
        for error in errors:
            console.print(f"  [red]✗[/red] {error}")

    if warnings:
        console.print("[yellow]Warnings:[/yellow]")
        for warning in warnings:
            console.print(f"  [yellow]![/yellow] {warning}")

    if is_valid:
        console.print("[green]✓ Suite is valid[/green]")
    else:
        raise typer.Exit(1)


@app.command("run")
def run_suite(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Path to suite YAML file", exists=True),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-j", min=1, help="Number of parallel workers"
    ),
    env: Optional[str] = typer.Option(
        None, "--env", "-e", help="Default environment profile"
    ),
    max_retries: Optional[int] = typer.Option(
        None, "--max-retries", min=0, help="Retries for a failed scenario (0 disables)"
    ),
    retry_delay: Optional[float] = typer.Option(
        None, "--retry-delay", min=0.0, help="Seconds to wait before a retry"
    ),
    tag: Optional[str] = typer.Option(
        None, "--tag", "-t", help="Only run scenarios with this tag"
    ),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="Only run scenarios whose name contains this text"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Results JSON path"
    ),
    output_json: bool = typer.Option(
        False, "--json", help="Print outcomes as JSON"
    ),
):
    """Run every scenario in a suite."""
    from rigger.config.loader import load_config
    from rigger.core.models import ScenarioStatus
    from rigger.core.reporting import JsonReportSink
    from rigger.core.runner import SuiteRunner
    from rigger.core.suite import load_cases
    from rigger.resources import build_factories

    _ensure_import_path()
    suite = _load_suite(file, tag=tag, name=name)

    try:
        config = load_config(ctx.obj.get("config_file") if ctx.obj else None)
        if env:
            config.environment = env.lower()
        if max_retries is not None:
            config.retry.max_attempts = max_retries
        if retry_delay is not None:
            config.retry.delay = retry_delay
        cases = load_cases(suite)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    results_path = output or Path(config.output.directory) / config.output.results_file
    sink = JsonReportSink(results_path)
    runner = SuiteRunner(config, build_factories(config), sink=sink, workers=workers)

    console.print(f"\n[bold blue]Running suite:[/bold blue] {suite.name} ({len(cases)} scenarios)")
    outcomes = runner.run(cases)

    if output_json:
        console.print_json(json.dumps([o.to_dict() for o in outcomes], ensure_ascii=False))
    else:
        _print_outcomes(outcomes)

    summary = sink.summary()
    console.print()
    console.print("━" * 50)
    console.print(
        f"  Total: {summary['total']}  "
        f"Passed: [green]{summary['passed']}[/green]  "
        f"Failed: [red]{summary['failed']}[/red]  "
        f"Skipped: [yellow]{summary['skipped']}[/yellow]"
    )
    console.print(f"  Results: {results_path}")

    if any(o.status == ScenarioStatus.FAILED for o in outcomes):
        raise typer.Exit(1)


def _print_outcomes(outcomes) -> None:
    """Print outcome table."""
    from rigger.core.models import ScenarioStatus

    colors = {
        ScenarioStatus.PASSED: "green",
        ScenarioStatus.FAILED: "red",
        ScenarioStatus.SKIPPED: "yellow",
    }

    table = Table()
    table.add_column("Scenario")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Worker", style="dim")
    table.add_column("Details", style="dim")
    for outcome in outcomes:
        color = colors[outcome.status]
        details = outcome.error or ""
        if outcome.artifacts:
            details = f"{details} 📸 {len(outcome.artifacts)}".strip()
        table.add_row(
            outcome.scenario_name,
            f"[{color}]{outcome.status.value.upper()}[/{color}]",
            str(outcome.attempts),
            outcome.worker_id or "",
            details,
        )
    console.print(table)
