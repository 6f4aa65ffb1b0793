"""usage command: this month's quota consumption."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console

from safepost_cli.factory import build_checker
from safepost_cli.render import usage_line

console = Console()


@click.command("usage")
@click.option("--refresh", is_flag=True, help="Bypass the local cache and read from the store.")
@click.pass_context
def usage_cmd(ctx, refresh: bool):
    """Show how many checks you have used and have left this month."""
    checker = build_checker(ctx.obj["config"], ctx.obj["store"], ctx.obj["user_id"])
    asyncio.run(checker.refresh() if refresh else checker.load())

    usage = checker.usage
    console.print(usage_line(checker.plan, usage))
    if usage.is_at_limit:
        console.print(
            f"[red]Monthly limit reached.[/red] Upgrade your plan or wait until "
            f"{usage.reset_date.isoformat()} for your allowance to reset."
        )
