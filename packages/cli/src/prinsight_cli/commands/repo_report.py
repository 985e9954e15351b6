"""repo-report commands: repository-wide reports."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from prinsight_core.prompts import REPOSITORY_REPORT_AUDIENCES

console = Console()


@click.group("repo-report")
def repo_report_group():
    """Generate and list repository-wide reports."""


@repo_report_group.command("generate")
@click.argument("repository_id")
@click.option(
    "--type",
    "report_type",
    type=click.Choice(list(REPOSITORY_REPORT_AUDIENCES)),
    required=True,
    help="Report type.",
)
@click.option("--template", "template_id", default=None, help="Template ID overriding the built-in prompt.")
@click.pass_context
def generate_cmd(ctx, repository_id: str, report_type: str, template_id: str | None):
    """Summarize a repository's ten most recent pull requests for one audience."""
    with console.status(f"Generating {report_type} report..."):
        report = ctx.obj["service"].generate_repository_report(repository_id, report_type, template_id)
    console.print(f"[green]Generated[/green] [bold]{report.title}[/bold] ({report.id}) → {report.pdf_path}")


@repo_report_group.command("list")
@click.option("--repo", "repository_id", default=None, help="Only show reports for this repository ID.")
@click.pass_context
def list_cmd(ctx, repository_id: str | None):
    """List repository reports, newest first."""
    reports = ctx.obj["service"].list_repository_reports(repository_id)
    if not reports:
        console.print("[yellow]No repository reports generated yet.[/yellow]")
        return

    table = Table(title="Repository Reports", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Type", style="bold")
    table.add_column("Title", max_width=40)
    table.add_column("File")
    table.add_column("Generated", width=20)
    for report in reports:
        table.add_row(
            report.id,
            report.report_type,
            report.title[:40],
            report.pdf_path or "",
            report.generated_at[:19].replace("T", " "),
        )
    console.print(table)
