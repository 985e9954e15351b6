"""repo commands: connect, list, sync and remove repositories."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()

_STATUS_STYLE = {"open": "green", "merged": "magenta", "closed": "red"}


@click.group("repo")
def repo_group():
    """Manage connected GitHub repositories."""


@repo_group.command("add")
@click.option("--name", required=True, help="Display name for the repository.")
@click.option("--full-name", "full_name", required=True, help="GitHub repository in owner/name format.")
@click.option(
    "--token",
    default="",
    help="GitHub token for this repository. Empty falls back to GITHUB_TOKEN or the gh CLI; "
    "'demo' uses built-in sample data.",
)
@click.option("--branch", "default_branch", default="main", show_default=True, help="Default branch.")
@click.option("--auto-generate/--no-auto-generate", default=True, show_default=True, help="Auto-generate reports.")
@click.pass_context
def add_cmd(ctx, name: str, full_name: str, token: str, default_branch: str, auto_generate: bool):
    """Connect a repository and sync its most recent pull requests."""
    service = ctx.obj["service"]
    repository = service.connect_repository(
        name=name,
        full_name=full_name,
        github_token=token,
        default_branch=default_branch,
        auto_generate=auto_generate,
    )
    synced = len(service.list_pull_requests(repository.id))
    console.print(f"[green]Connected[/green] [bold]{repository.full_name}[/bold] ({repository.id})")
    console.print(f"  Pull requests synced: {synced}")


@repo_group.command("list")
@click.pass_context
def list_cmd(ctx):
    """List connected repositories."""
    repositories = ctx.obj["service"].list_repositories()
    if not repositories:
        console.print("[yellow]No repositories connected. Use `prinsight repo add` first.[/yellow]")
        return

    table = Table(title="Repositories", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Full name")
    table.add_column("Branch")
    table.add_column("Auto", justify="center")
    table.add_column("Connected", width=20)
    for repo in repositories:
        data = repo.to_public_dict()
        table.add_row(
            data["id"],
            data["name"],
            data["full_name"],
            data["default_branch"],
            "yes" if data["auto_generate"] else "no",
            data["created_at"][:19].replace("T", " "),
        )
    console.print(table)


@repo_group.command("remove")
@click.argument("repository_id")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def remove_cmd(ctx, repository_id: str, yes: bool):
    """Remove a repository together with its pull requests, reports and insights."""
    service = ctx.obj["service"]
    repository = service.get_repository(repository_id)
    if not yes:
        click.confirm(f"Remove {repository.full_name} and all of its reports?", abort=True)
    service.delete_repository(repository_id)
    console.print(f"[green]Removed[/green] {repository.full_name}")


@repo_group.command("sync")
@click.argument("repository_id", required=False)
@click.option("--all", "sync_all", is_flag=True, help="Sync every connected repository.")
@click.pass_context
def sync_cmd(ctx, repository_id: str | None, sync_all: bool):
    """Fetch the most recent pull requests from GitHub."""
    service = ctx.obj["service"]
    if sync_all == bool(repository_id):
        raise click.UsageError("Pass either a repository ID or --all.")

    if sync_all:
        for full_name, count in service.sync_all_repositories().items():
            console.print(f"  [bold]{full_name}[/bold]: {count} pull request(s)")
        return

    count = service.sync_repository(repository_id)
    console.print(f"Synced {count} pull request(s).")


@repo_group.command("prs")
@click.argument("repository_id")
@click.pass_context
def prs_cmd(ctx, repository_id: str):
    """List the synced pull requests of one repository."""
    pulls = ctx.obj["service"].list_pull_requests(repository_id)
    if not pulls:
        console.print("[yellow]No pull requests synced for this repository.[/yellow]")
        return
    console.print(pull_request_table("Pull Requests", pulls))


def pull_request_table(title: str, pulls) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("PR", style="bold", width=6)
    table.add_column("Title", max_width=40)
    table.add_column("Author")
    table.add_column("Status", width=8)
    table.add_column("Review", width=10)
    table.add_column("Updated", width=20)
    for pr in pulls:
        style = _STATUS_STYLE.get(pr.status, "white")
        table.add_row(
            pr.id,
            f"#{pr.number}",
            pr.title[:40],
            pr.author_name,
            f"[{style}]{pr.status}[/{style}]",
            pr.review_status or "",
            pr.updated_at[:19].replace("T", " "),
        )
    return table
