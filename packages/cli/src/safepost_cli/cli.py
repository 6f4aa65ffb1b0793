"""CLI entry point for safepost.

Commands:
  check    run an Ahpra/TGA compliance check on a post
  history  list past checks for the current user
  show     display one past check and make it the current result
  delete   remove a past check
  last     show the result kept from the previous check
  reset    clear the kept result
  usage    show this month's quota consumption
  stats    aggregate verdicts across the visible history
  init     interactive setup wizard
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from safepost_cli.commands.check import check_cmd
from safepost_cli.commands.delete import delete_cmd
from safepost_cli.commands.history import history_cmd
from safepost_cli.commands.init import init_cmd
from safepost_cli.commands.last import last_cmd, reset_cmd
from safepost_cli.commands.show import show_cmd
from safepost_cli.commands.stats import stats_cmd
from safepost_cli.commands.usage import usage_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .safepost.yml settings.

    Store selection:
      store: sqlite → SQLiteStore (store_path, default .safepost.db)
      (default)     → MemoryStore (nothing survives the process)
    """
    from safepost_store.memory import MemoryStore

    store_type = config.get("store", "memory")

    if store_type == "sqlite":
        from safepost_store.sqlite import SQLiteStore

        db_path = config.get("store_path", ".safepost.db")
        return SQLiteStore(db_path=db_path)

    if store_type != "memory":
        console.print(f"[yellow]Unknown store '{store_type}'. Falling back to in-memory store.[/yellow]")
    return MemoryStore()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=verbose)],
    )


def _version() -> str:
    try:
        return importlib.metadata.version("safepost")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0"


@click.group()
@click.version_option(version=_version(), prog_name="safepost")
@click.option(
    "--config",
    "config_path",
    default=".safepost.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="SAFEPOST_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Ahpra advertising compliance checks for healthcare social media posts."""
    from safepost_core.config import load_config
    from safepost_cli.identity import resolve_user_id

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)
    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.obj["user_id"] = resolve_user_id(config)
    ctx.call_on_close(store.close)


main.add_command(check_cmd)
main.add_command(history_cmd)
main.add_command(show_cmd)
main.add_command(delete_cmd)
main.add_command(last_cmd)
main.add_command(reset_cmd)
main.add_command(usage_cmd)
main.add_command(stats_cmd)
main.add_command(init_cmd)
