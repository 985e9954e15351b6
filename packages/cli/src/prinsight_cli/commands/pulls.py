"""pr commands: pull requests across all connected repositories."""

from __future__ import annotations

import click
from rich.console import Console

from prinsight_cli.commands.repo import pull_request_table

console = Console()


@click.group("pr")
def pr_group():
    """Browse synced pull requests."""


@pr_group.command("list")
@click.option("--limit", default=20, show_default=True, help="Maximum number of pull requests to show.")
@click.pass_context
def list_cmd(ctx, limit: int):
    """List the most recently updated pull requests across repositories."""
    pulls = ctx.obj["service"].recent_pull_requests(limit)
    if not pulls:
        console.print("[yellow]No pull requests synced yet.[/yellow]")
        return
    console.print(pull_request_table("Recent Pull Requests", pulls))
