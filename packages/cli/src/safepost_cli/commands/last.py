"""last / reset commands: the result kept between invocations."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console

from safepost_cli.factory import build_checker
from safepost_cli.render import print_result
from safepost_core.reconciler import CheckerStep

console = Console()


@click.command("last")
@click.pass_context
def last_cmd(ctx):
    """Show the result of your most recent check again."""
    checker = build_checker(ctx.obj["config"], ctx.obj["store"], ctx.obj["user_id"])
    asyncio.run(checker.load())

    if checker.step is not CheckerStep.COMPLETE:
        console.print("[yellow]No saved result. Run `safepost check` first.[/yellow]")
        return
    print_result(console, checker.result, checker.last_content)


@click.command("reset")
@click.pass_context
def reset_cmd(ctx):
    """Forget the saved result so the next session starts fresh."""
    checker = build_checker(ctx.obj["config"], ctx.obj["store"], ctx.obj["user_id"])
    checker.reset_checker()
    console.print("[green]Cleared the saved result.[/green]")
