"""template commands: audience prompt templates."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from prinsight_core.prompts import AUDIENCES, TEMPLATE_PROMPT_KEY

console = Console()


def _read_prompt(prompt: str | None, prompt_file) -> str | None:
    if prompt and prompt_file:
        raise click.UsageError("Pass either --prompt or --prompt-file, not both.")
    if prompt_file:
        return prompt_file.read()
    return prompt


@click.group("template")
def template_group():
    """Manage report templates."""


@template_group.command("list")
@click.option("--audience", type=click.Choice(AUDIENCES), default=None, help="Only show one audience.")
@click.pass_context
def list_cmd(ctx, audience: str | None):
    """List templates."""
    templates = ctx.obj["service"].list_templates(audience)
    if not templates:
        console.print("[yellow]No templates found.[/yellow]")
        return

    table = Table(title="Templates", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Audience")
    table.add_column("Default", justify="center")
    table.add_column("Description", max_width=50)
    for template in templates:
        table.add_row(
            template.id,
            template.name,
            template.audience_type,
            "[green]yes[/green]" if template.is_default else "",
            template.description or "",
        )
    console.print(table)


@template_group.command("add")
@click.option("--name", required=True, help="Template name.")
@click.option("--audience", type=click.Choice(AUDIENCES), required=True, help="Audience the template is for.")
@click.option("--prompt", default=None, help="System prompt text.")
@click.option("--prompt-file", type=click.File("r"), default=None, help="Read the system prompt from a file.")
@click.option("--description", default=None, help="Short description.")
@click.pass_context
def add_cmd(ctx, name: str, audience: str, prompt: str | None, prompt_file, description: str | None):
    """Create a template whose prompt replaces the built-in one for its audience."""
    system_prompt = _read_prompt(prompt, prompt_file)
    if not system_prompt:
        raise click.UsageError("A template needs --prompt or --prompt-file.")
    template = ctx.obj["service"].create_template(name, audience, system_prompt, description)
    console.print(f"[green]Created[/green] template [bold]{template.name}[/bold] ({template.id})")


@template_group.command("edit")
@click.argument("template_id")
@click.option("--name", default=None, help="New name.")
@click.option("--description", default=None, help="New description.")
@click.option("--prompt", default=None, help="New system prompt text.")
@click.option("--prompt-file", type=click.File("r"), default=None, help="Read the new system prompt from a file.")
@click.pass_context
def edit_cmd(ctx, template_id: str, name: str | None, description: str | None, prompt: str | None, prompt_file):
    """Update a template's name, description or prompt."""
    service = ctx.obj["service"]
    updates = {}
    if name is not None:
        updates["name"] = name
    if description is not None:
        updates["description"] = description
    system_prompt = _read_prompt(prompt, prompt_file)
    if system_prompt is not None:
        content = dict(service.get_template(template_id).template_content)
        content[TEMPLATE_PROMPT_KEY] = system_prompt
        updates["template_content"] = content
    if not updates:
        raise click.UsageError("Nothing to update. Pass --name, --description, --prompt or --prompt-file.")

    template = service.update_template(template_id, **updates)
    console.print(f"[green]Updated[/green] template [bold]{template.name}[/bold]")


@template_group.command("duplicate")
@click.argument("template_id")
@click.pass_context
def duplicate_cmd(ctx, template_id: str):
    """Copy a template (defaults included) into a new, editable template."""
    template = ctx.obj["service"].duplicate_template(template_id)
    console.print(f"[green]Created[/green] template [bold]{template.name}[/bold] ({template.id})")


@template_group.command("delete")
@click.argument("template_id")
@click.pass_context
def delete_cmd(ctx, template_id: str):
    """Delete a template. Default templates cannot be deleted."""
    ctx.obj["service"].delete_template(template_id)
    console.print("[green]Deleted[/green] template.")
