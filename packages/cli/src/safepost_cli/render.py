"""Terminal rendering shared by the CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from safepost_core.models import ComplianceStatus, Severity
from safepost_core.plans import plan_display_name

if TYPE_CHECKING:
    from safepost_core.models import AnalysisResult, RewrittenPost
    from safepost_core.usage import UsageInfo

_STATUS_STYLE = {
    ComplianceStatus.COMPLIANT: ("green", "Compliant"),
    ComplianceStatus.NON_COMPLIANT: ("red", "Non-compliant"),
    ComplianceStatus.WARNING: ("yellow", "Requires review"),
    ComplianceStatus.NOT_HEALTHCARE: ("dim", "Not healthcare content"),
}

_SEVERITY_STYLE = {
    Severity.CRITICAL: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}

RECORD_STATUS_STYLE = {
    "compliant": "green",
    "non_compliant": "red",
    "requires_review": "yellow",
}


def print_result(console: Console, result: AnalysisResult, content: str = "") -> None:
    style, label = _STATUS_STYLE[result.status]
    console.print(Panel(result.summary or label, title=f"[bold {style}]{label}[/bold {style}]", border_style=style))
    if content:
        console.print(f"[dim]Checked content:[/dim] {content[:200]}")

    if result.issues:
        table = Table(title=f"{len(result.issues)} issue(s)", show_header=True, header_style="bold cyan")
        table.add_column("Severity", width=10)
        table.add_column("Guideline", max_width=30)
        table.add_column("Finding", max_width=40)
        table.add_column("Recommendation", max_width=40)
        for issue in result.issues:
            sev_style = _SEVERITY_STYLE[issue.severity]
            table.add_row(
                f"[{sev_style}]{issue.severity.value}[/{sev_style}]",
                issue.guideline_reference,
                issue.finding,
                issue.recommendation,
            )
        console.print(table)

    if result.overall_verdict:
        console.print(f"\n[bold]Verdict:[/bold] {result.overall_verdict}")


def print_rewrites(console: Console, rewrites: list[RewrittenPost]) -> None:
    if not rewrites:
        console.print("[yellow]No rewrite suggestions were returned.[/yellow]")
        return
    for i, rewrite in enumerate(rewrites, start=1):
        console.print(Panel(rewrite.content, title=f"[bold]{i}. {rewrite.option_title}[/bold]", border_style="cyan"))
        if rewrite.explanation:
            console.print(f"[dim]{rewrite.explanation}[/dim]")


def usage_line(plan: str, usage: UsageInfo) -> str:
    name = plan_display_name(plan)
    if usage.is_unlimited:
        return f"{name}: {usage.checks_used_this_month} checks this month (unlimited)"
    return (
        f"{name}: {usage.checks_used_this_month}/{usage.plan_limit} checks used this month, "
        f"{usage.checks_remaining} remaining (resets {usage.reset_date.isoformat()})"
    )
