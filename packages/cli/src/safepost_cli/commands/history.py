"""history command: list past checks for the current user."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console
from rich.table import Table

from safepost_cli.factory import build_checker, require_store
from safepost_cli.render import RECORD_STATUS_STYLE
from safepost_core.plans import plan_tier_label

console = Console()


@click.command("history")
@click.option("--limit", type=int, default=None, help="Show at most this many checks.")
@click.option("--refresh", is_flag=True, help="Bypass the local cache and read from the store.")
@click.pass_context
def history_cmd(ctx, limit: int | None, refresh: bool):
    """Show your most recent compliance checks, newest first.

    How far back you can see depends on your plan. Reads from the configured
    store; run `safepost init` to set one up if you haven't already.
    """
    store = require_store(ctx)
    checker = build_checker(ctx.obj["config"], store, ctx.obj["user_id"])
    asyncio.run(checker.refresh() if refresh else checker.load())

    records = checker.history
    if not records:
        console.print("[yellow]No compliance checks found.[/yellow]")
        return
    if limit is not None:
        records = records[:limit]

    table = Table(title=f"Compliance checks for {checker.user_id}", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold", no_wrap=True)
    table.add_column("Checked At", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Score", justify="right")
    table.add_column("Platform")
    # Keeps some post text visible in an 80-column terminal.
    table.add_column("Content", min_width=16, max_width=50, overflow="fold")

    for r in records:
        style = RECORD_STATUS_STYLE.get(r.overall_status, "white")
        table.add_row(
            r.id,
            r.created_at[:16].replace("T", " "),
            f"[{style}]{r.overall_status}[/{style}]",
            str(r.compliance_score),
            r.platform,
            r.content_text[:50].replace("\n", " "),
        )

    console.print(table)
    depth = checker.history_limit
    if depth is not None:
        console.print(f"[dim]{plan_tier_label(checker.plan)} plan shows your {depth} most recent checks.[/dim]")
