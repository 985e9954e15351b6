"""stats command: dashboard counters."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("stats")
@click.pass_context
def stats_cmd(ctx):
    """Show open PRs, generated reports, connected repositories and QA test scenarios."""
    stats = ctx.obj["service"].statistics()

    table = Table(title="PR Insight Statistics", show_header=True)
    table.add_column("Metric", style="bold")
    table.add_column("Count", justify="right")
    table.add_row("Active pull requests", str(stats.active_prs))
    table.add_row("Reports generated", str(stats.reports_generated))
    table.add_row("Connected repositories", str(stats.connected_repos))
    table.add_row("Test scenarios generated", str(stats.test_scenarios_generated))
    console.print(table)
