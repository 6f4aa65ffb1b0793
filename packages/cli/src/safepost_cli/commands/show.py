"""show command: display one past check."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console

from safepost_cli.factory import build_checker, require_store
from safepost_cli.render import RECORD_STATUS_STYLE, print_result
from safepost_core.errors import AnalysisError

console = Console()


@click.command("show")
@click.argument("check_id")
@click.pass_context
def show_cmd(ctx, check_id: str):
    """Show the full result of a past check.

    The check becomes the current result, so `safepost last` shows it too.
    """
    store = require_store(ctx)
    checker = build_checker(ctx.obj["config"], store, ctx.obj["user_id"])

    record = asyncio.run(checker.get_check(check_id))
    if record is None:
        console.print(f"[red]No check {check_id} found.[/red]")
        ctx.exit(1)

    try:
        result = checker.open_check(record)
    except AnalysisError as e:
        console.print(f"[red]{e}[/red]")
        ctx.exit(1)

    style = RECORD_STATUS_STYLE.get(record.overall_status, "white")
    console.print(
        f"[bold]Check {record.id}[/bold]  {record.created_at[:19].replace('T', ' ')}  "
        f"[{style}]{record.overall_status}[/{style}]  score {record.compliance_score}  "
        f"[dim]{record.content_type} / {record.platform}[/dim]"
    )
    print_result(console, result, record.content_text)
