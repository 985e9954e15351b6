"""report commands: per-PR audience reports."""

from __future__ import annotations

import shutil
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from prinsight_core.prompts import AUDIENCES

console = Console()


@click.group("report")
def report_group():
    """Generate and retrieve audience reports for a pull request."""


@report_group.command("generate")
@click.argument("pull_request_id")
@click.option(
    "--audience",
    type=click.Choice([*AUDIENCES, "all"]),
    required=True,
    help="Report audience, or 'all' for one report per audience.",
)
@click.option("--template", "template_id", default=None, help="Template ID overriding the built-in prompt.")
@click.pass_context
def generate_cmd(ctx, pull_request_id: str, audience: str, template_id: str | None):
    """Generate a report with the configured LLM and render it to PDF.

    \b
    Required environment variables (per --model in .prinsight.yml):
      GEMINI_API_KEY       model: gemini (default)
      ANTHROPIC_API_KEY    model: anthropic
      OPENAI_API_KEY       model: openai
    """
    service = ctx.obj["service"]
    if audience == "all":
        if template_id:
            raise click.UsageError("--template cannot be combined with --audience all.")
        with console.status("Generating reports for every audience..."):
            reports = service.generate_all_reports(pull_request_id)
    else:
        with console.status(f"Generating {audience} report..."):
            reports = [service.generate_report(pull_request_id, audience, template_id)]

    for report in reports:
        console.print(
            f"[green]Generated[/green] [bold]{report.audience_type}[/bold] report {report.id} → {report.pdf_path}"
        )


@report_group.command("list")
@click.argument("pull_request_id")
@click.pass_context
def list_cmd(ctx, pull_request_id: str):
    """List the reports generated for a pull request, newest first."""
    reports = ctx.obj["service"].list_reports(pull_request_id)
    if not reports:
        console.print("[yellow]No reports generated for this pull request.[/yellow]")
        return

    table = Table(title="Reports", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Audience", style="bold")
    table.add_column("Title", max_width=40)
    table.add_column("File")
    table.add_column("Generated", width=20)
    for report in reports:
        table.add_row(
            report.id,
            report.audience_type,
            str(report.content.get("title", ""))[:40],
            report.pdf_path or "",
            report.generated_at[:19].replace("T", " "),
        )
    console.print(table)


@report_group.command("download")
@click.argument("report_id")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Copy the file here.")
@click.pass_context
def download_cmd(ctx, report_id: str, output: str | None):
    """Fetch a report's PDF, regenerating it from stored content when missing.

    Falls back to the HTML file when the PDF cannot be produced.
    """
    path = ctx.obj["service"].download_report(report_id)
    if output:
        target = Path(output)
        shutil.copyfile(path, target)
        path = target
    if path.suffix != ".pdf":
        console.print("[yellow]PDF unavailable; serving the HTML version instead.[/yellow]")
    console.print(str(path))


@report_group.command("preview")
@click.argument("report_id")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Write the HTML here.")
@click.pass_context
def preview_cmd(ctx, report_id: str, output: str | None):
    """Render a report's stored content as HTML without calling the LLM."""
    html = ctx.obj["service"].preview_report(report_id)
    if output:
        Path(output).write_text(html, encoding="utf-8")
        console.print(f"Wrote preview to {output}")
        return
    click.echo(html)
