"""insights commands: AI observations about recent pull requests."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()

_SEVERITY_STYLE = {"info": "blue", "warning": "yellow", "error": "red"}


def _insight_table(insights) -> Table:
    table = Table(title="Insights", show_header=True, header_style="bold cyan")
    table.add_column("Severity", width=8)
    table.add_column("Type")
    table.add_column("Title", style="bold", max_width=40)
    table.add_column("Description", max_width=60)
    table.add_column("Created", width=20)
    for insight in insights:
        style = _SEVERITY_STYLE.get(insight.severity, "white")
        table.add_row(
            f"[{style}]{insight.severity}[/{style}]",
            insight.type,
            insight.title,
            insight.description,
            insight.created_at[:19].replace("T", " "),
        )
    return table


@click.group("insights")
def insights_group():
    """List and refresh AI insights."""


@insights_group.command("list")
@click.option("--repo", "repository_id", default=None, help="Only show insights for this repository ID.")
@click.pass_context
def list_cmd(ctx, repository_id: str | None):
    """Show the ten most recent insights."""
    insights = ctx.obj["service"].list_insights(repository_id)
    if not insights:
        console.print("[yellow]No insights yet. Run `prinsight insights refresh --repo ID`.[/yellow]")
        return
    console.print(_insight_table(insights))


@insights_group.command("refresh")
@click.option("--repo", "repository_id", required=True, help="Repository ID to analyze.")
@click.pass_context
def refresh_cmd(ctx, repository_id: str):
    """Ask the LLM for fresh insights about a repository's pull requests."""
    with console.status("Analyzing pull requests..."):
        insights = ctx.obj["service"].refresh_insights(repository_id)
    if not insights:
        console.print("[yellow]No pull requests to analyze.[/yellow]")
        return
    console.print(_insight_table(insights))
