"""stats command: aggregate verdicts across your visible history."""

from __future__ import annotations

import asyncio
from collections import Counter

import click
from rich.console import Console
from rich.table import Table

from safepost_cli.factory import build_checker, require_store
from safepost_cli.render import RECORD_STATUS_STYLE
from safepost_core.models import Severity
from safepost_store.models import OVERALL_STATUSES

console = Console()


@click.command("stats")
@click.option("--top", default=5, show_default=True, help="Number of guideline references to show.")
@click.pass_context
def stats_cmd(ctx, top: int):
    """Show aggregated compliance statistics for your recent checks.

    Reports the verdict distribution, average score and the guidelines your
    posts breach most often, which is where rewording effort pays off first.
    """
    store = require_store(ctx)
    checker = build_checker(ctx.obj["config"], store, ctx.obj["user_id"])
    asyncio.run(checker.load())

    records = checker.history
    if not records:
        console.print("[yellow]No compliance checks found.[/yellow]")
        return

    status_counter: Counter[str] = Counter(r.overall_status for r in records)
    severity_counter: Counter[str] = Counter()
    guideline_counter: Counter[str] = Counter()

    for record in records:
        for issue in record.result_json.get("issues") or []:
            if not isinstance(issue, dict):
                continue
            severity_counter[Severity.normalize(issue.get("severity")).value] += 1
            reference = issue.get("guidelineReference")
            if reference:
                guideline_counter[reference] += 1

    total = len(records)
    avg_score = sum(r.compliance_score for r in records) / total

    # --- Summary ---
    console.print(f"\n[bold]Compliance stats for [cyan]{checker.user_id}[/cyan][/bold]")
    console.print(f"  Checks:         {total}")
    console.print(f"  Average score:  {avg_score:.1f}")
    console.print(f"  Total issues:   {sum(severity_counter.values())}")

    # --- Verdict breakdown ---
    status_table = Table(title="Verdicts", show_header=True)
    status_table.add_column("Status", style="bold")
    status_table.add_column("Count", justify="right")
    status_table.add_column("% of checks", justify="right")
    for status in OVERALL_STATUSES:
        count = status_counter.get(status, 0)
        style = RECORD_STATUS_STYLE[status]
        status_table.add_row(f"[{style}]{status}[/{style}]", str(count), f"{count / total * 100:.1f}%")
    console.print(status_table)

    # --- Severity breakdown ---
    if severity_counter:
        sev_table = Table(title="Issue Severity", show_header=True)
        sev_table.add_column("Severity", style="bold")
        sev_table.add_column("Count", justify="right")
        for sev, style in (("Critical", "red"), ("Warning", "yellow"), ("Info", "blue")):
            sev_table.add_row(f"[{style}]{sev}[/{style}]", str(severity_counter.get(sev, 0)))
        console.print(sev_table)

    # --- Most cited guidelines ---
    if guideline_counter:
        guideline_table = Table(title=f"Top {top} Guidelines Breached", show_header=True)
        guideline_table.add_column("Guideline")
        guideline_table.add_column("Issues", justify="right")
        for reference, count in guideline_counter.most_common(top):
            guideline_table.add_row(reference, str(count))
        console.print(guideline_table)
