"""delete command: remove a past check."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console

from safepost_cli.factory import build_checker, require_store
from safepost_cli.render import usage_line

console = Console()


async def _delete(checker, check_id: str) -> bool:
    await checker.load()
    return await checker.delete_check(check_id)


@click.command("delete")
@click.argument("check_id")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def delete_cmd(ctx, check_id: str, yes: bool):
    """Delete one of your past checks.

    A deleted check no longer counts toward this month's allowance.
    """
    store = require_store(ctx)
    if not yes:
        click.confirm(f"Delete check {check_id}?", abort=True)

    checker = build_checker(ctx.obj["config"], store, ctx.obj["user_id"])
    if not asyncio.run(_delete(checker, check_id)):
        console.print(f"[red]No check {check_id} found.[/red]")
        ctx.exit(1)

    console.print(f"[green]Deleted check {check_id}.[/green]")
    console.print(f"[dim]{usage_line(checker.plan, checker.usage)}[/dim]")
