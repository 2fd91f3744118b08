"""Config CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
import yaml

from rigger.config.loader import load_config
from rigger.config.schema import RiggerConfig
from rigger.core.errors import ConfigurationError

console = Console()
app = typer.Typer(no_args_is_help=True)


def _config_file(ctx: typer.Context) -> Optional[Path]:
    root = ctx.find_root()
    return root.obj.get("config_file") if root.obj else None


@app.command("init")
def config_init(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file path"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite existing config"
    ),
):
    """Create a new .rigger.yaml configuration file."""
    if output is None:
        output = Path.cwd() / ".rigger.yaml"

    if output.exists() and not force:
        console.print(f"[yellow]Warning:[/yellow] {output} already exists. Use --force to overwrite.")
        raise typer.Exit(1)

    config = RiggerConfig.get_default()
    output.write_text(_generate_config_yaml(config), encoding="utf-8")
    console.print(f"[green]✓[/green] Created: {output}")


def _generate_config_yaml(config: RiggerConfig) -> str:
    """Generate YAML config with helpful comments."""
    return f"""# Rigger Configuration

version: 1

# Profile used when a scenario carries no environment tag
# (RIGGER_ENV overrides this)
environment: {config.environment}

# Environment profiles, selected by @qa / @uat / @stage / @prod tags
profiles:
  qa:
    ui_base_url: null
    api_base_url: null
    # Token endpoint; leave empty for anonymous API contexts
    auth_url: null
    username: ${{QA_USERNAME}}
    password: ${{QA_PASSWORD}}
    # SQLAlchemy URL, e.g. postgresql+psycopg2://host:5432/app
    db_url: null

# UI sessions (Playwright)
browser:
  name: {config.browser.name}
  headless: {str(config.browser.headless).lower()}
  timeout_ms: {config.browser.timeout_ms}
  navigation_timeout_ms: {config.browser.navigation_timeout_ms}
  viewport_width: {config.browser.viewport_width}
  viewport_height: {config.browser.viewport_height}

# API contexts
api:
  timeout: {config.api.timeout}

# Database connections
database:
  connect_timeout: {config.database.connect_timeout}
  autocommit: {str(config.database.autocommit).lower()}

# Retries after a failed attempt (0 disables retrying)
retry:
  max_attempts: {config.retry.max_attempts}
  delay: {config.retry.delay}
  backoff: {config.retry.backoff}

execution:
  workers: {config.execution.workers}

# Results and failure screenshots
output:
  directory: "{config.output.directory}"
  screenshot_dir: "{config.output.screenshot_dir}"
  results_file: "{config.output.results_file}"
"""


@app.command("show")
def config_show(
    ctx: typer.Context,
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Output format (yaml, table)"
    ),
):
    """Display current configuration."""
    try:
        config = load_config(_config_file(ctx))
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    if format == "yaml":
        data = config.model_dump(mode="json")
        # Never echo credentials
        for profile in data.get("profiles", {}).values():
            for key in ("password", "db_password"):
                if profile.get(key):
                    profile[key] = "***"
        yaml_str = yaml.dump(data, default_flow_style=False, allow_unicode=True)
        syntax = Syntax(yaml_str, "yaml", theme="monokai")
        console.print(syntax)

    elif format == "table":
        table = Table(title="Rigger Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Environment", config.environment)
        table.add_row("Profiles", ", ".join(sorted(config.profiles)))
        table.add_row("Browser", config.browser.name)
        table.add_row("Headless", str(config.browser.headless))
        table.add_row("Workers", str(config.execution.workers))
        table.add_row("Max Retries", str(config.retry.max_attempts))
        table.add_row("Retry Delay", f"{config.retry.delay}s")
        table.add_row("Output Directory", config.output.directory)

        console.print(table)

    else:
        console.print(f"[red]Unknown format:[/red] {format}")
        raise typer.Exit(1)


@app.command("validate")
def config_validate(ctx: typer.Context):
    """Validate configuration file."""
    try:
        config = load_config(_config_file(ctx))
        config.get_profile(config.environment)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        raise typer.Exit(1)

    console.print("[green]✓[/green] Configuration is valid")
    console.print(f"  Environment: {config.environment}")
    for name, profile in sorted(config.profiles.items()):
        kinds = [
            label
            for label, value in (
                ("ui", profile.ui_base_url),
                ("api", profile.api_base_url),
                ("db", profile.db_url),
            )
            if value
        ]
        console.print(f"  Profile {name}: {', '.join(kinds) or '(no endpoints)'}")
