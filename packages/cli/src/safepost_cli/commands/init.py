"""init command: interactive setup wizard.

Writes .safepost.yml once so every later command picks up the provider,
plan and store without flags.
"""

from __future__ import annotations

from pathlib import Path

import click
import yaml
from rich.console import Console

from safepost_core.plans import MONTHLY_CHECK_LIMITS, plan_display_name

console = Console()

CONFIG_FILE = ".safepost.yml"


@click.command("init")
@click.option("--user-id", default=None, help="User id to scope checks and quota by. Defaults to your login name.")
def init_cmd(user_id: str | None):
    """Set up safepost in the current directory.

    Creates .safepost.yml with your AI provider, plan and history store.
    """
    console.print("\n[bold cyan]safepost init[/bold cyan]: setup wizard\n")

    # --- Choose provider ---
    provider = click.prompt(
        "AI provider",
        type=click.Choice(["anthropic", "openai"]),
        default="anthropic",
    )
    api_key_env = "ANTHROPIC_API_KEY" if provider == "anthropic" else "OPENAI_API_KEY"

    # --- Choose plan ---
    plan = click.prompt(
        "Plan",
        type=click.Choice(list(MONTHLY_CHECK_LIMITS)),
        default="starter",
    )

    # --- Choose store backend ---
    console.print("\nCheck history store:")
    console.print("  [bold]memory[/bold]  no persistence; history and usage reset every run")
    console.print("  [bold]sqlite[/bold]  local SQLite file (recommended)")
    store_type = click.prompt(
        "Store backend",
        type=click.Choice(["memory", "sqlite"]),
        default="sqlite",
    )

    config: dict = {"model": provider, "plan": plan, "store": store_type}
    if user_id:
        config["user_id"] = user_id

    if store_type == "sqlite":
        db_path = click.prompt("SQLite database path", default=".safepost.db")
        if db_path != ".safepost.db":
            config["store_path"] = db_path
        console.print(f"[green]SQLite store configured at {db_path}[/green]")

    # --- Write .safepost.yml ---
    _write_config(config)
    console.print(f"[green]Created {CONFIG_FILE}[/green] for {plan_display_name(plan)}")

    console.print(f"\n[yellow]Remember to export [bold]{api_key_env}[/bold] before running a check.[/yellow]")
    console.print("\n[bold green]Setup complete![/bold green]")
    console.print('Run a check with: [bold]safepost check "Your post text"[/bold]')


def _write_config(config: dict) -> None:
    """Write or update .safepost.yml, preserving any existing keys."""
    path = Path(CONFIG_FILE)
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
