"""CLI entry point for prinsight.

Command groups:
  repo         connect, list, sync and remove GitHub repositories
  pr           list recently synced pull requests
  report       generate, list, download and preview per-PR audience reports
  repo-report  generate and list repository-wide reports
  template     manage audience prompt templates
  insights     AI insights about recent pull requests
  stats        dashboard counters
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from prinsight_cli.commands.insights import insights_group
from prinsight_cli.commands.pulls import pr_group
from prinsight_cli.commands.repo import repo_group
from prinsight_cli.commands.repo_report import repo_report_group
from prinsight_cli.commands.report import report_group
from prinsight_cli.commands.stats import stats_cmd
from prinsight_cli.commands.template import template_group
from prinsight_core.errors import PRInsightError, ValidationError

console = Console()


class PRInsightGroup(click.Group):
    """Turns pipeline errors into click errors so they exit with a message, not a traceback."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except ValidationError as e:
            raise click.UsageError(e.message, ctx=ctx) from e
        except PRInsightError as e:
            raise click.ClickException(f"{e.message} (status {e.status_code})") from e


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _build_store(config: dict):
    """Instantiate the SQLite store at ``store_path``.

    This factory lives in cli.py so neither prinsight_core nor prinsight_store
    know about the CLI config format.
    """
    from prinsight_store.sqlite import SQLiteStore

    return SQLiteStore(db_path=config.get("store_path", ".prinsight.db"))


def _build_provider_factory(config: dict):
    """Return a callable that builds the configured LLM provider on first use.

    Commands that never call the model (listing, preview, stats) therefore
    work without an API key.
    """
    from prinsight_core.config import API_KEY_ENV, api_key_for
    from prinsight_core.generator import get_provider

    def factory():
        try:
            api_key = api_key_for(config)
        except ValueError as e:
            raise click.UsageError(str(e)) from e
        if not api_key:
            raise click.UsageError(f"{API_KEY_ENV[config['model']]} environment variable is not set.")
        return get_provider(config)

    return factory


def _build_service(config: dict, store):
    from prinsight_cli.service import ReportService
    from prinsight_core.render.renderer import ReportRenderer

    renderer = ReportRenderer(
        reports_dir=config.get("reports_dir", "reports"),
        browser_executable=config.get("browser_executable"),
        timeout_ms=config.get("render_timeout_ms", 30000),
    )
    return ReportService(
        store,
        _build_provider_factory(config),
        renderer,
        fallback_token=config.get("github_token"),
        sync_limit=config.get("sync_limit", 50),
        max_patch_chars=config.get("max_patch_chars"),
    )


@click.group(cls=PRInsightGroup)
@click.version_option(
    version=importlib.metadata.version("prinsight"),
    prog_name="prinsight",
)
@click.option(
    "--config",
    "config_path",
    default=".prinsight.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRINSIGHT_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Audience-specific PR reports (PM, QA, client) generated with an LLM."""
    from prinsight_core.config import load_config
    from prinsight_cli.auth import resolve_github_token

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)

    # Resolve the fallback token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    store = _build_store(config)
    ctx.call_on_close(store.close)
    ctx.obj["config"] = config
    ctx.obj["store"] = store
    ctx.obj["service"] = _build_service(config, store)


main.add_command(repo_group)
main.add_command(pr_group)
main.add_command(report_group)
main.add_command(repo_report_group)
main.add_command(template_group)
main.add_command(insights_group)
main.add_command(stats_cmd)
