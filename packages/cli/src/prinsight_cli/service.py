"""Report pipeline orchestration.

ReportService is the layer the original HTTP route handlers occupied: it
validates requests, then runs each pipeline strictly in sequence
(fetch → prompt → generate → persist → render → persist path) against
explicitly injected collaborators. It owns the mapping between prinsight_core
results and prinsight_store entities, so neither package knows about the
other.

Bulk operations (all audiences, all repositories) are plain loops of
independent calls: a failure stops the loop but earlier iterations stay
committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from prinsight_core.errors import NotFoundError, PRInsightError, RenderError, ValidationError
from prinsight_core.generator import generate_insights, generate_report
from prinsight_core.gh.client import github_client_for
from prinsight_core.models import PRSummary, PullRequestInfo, ReportContent, RepositoryAggregate
from prinsight_core.prompts import (
    AUDIENCES,
    REPOSITORY_REPORT_AUDIENCES,
    TEMPLATE_PROMPT_KEY,
    build_pr_prompt,
    build_repository_prompt,
    builtin_system_prompt,
)
from prinsight_core.providers.base import BaseProvider
from prinsight_core.render.renderer import ReportRenderer
from prinsight_store.base import BaseStore
from prinsight_store.models import (
    Insight,
    PullRequest,
    Report,
    ReportTemplate,
    Repository,
    RepositoryReport,
    Statistics,
)

logger = logging.getLogger(__name__)

_DEFAULT_TEMPLATE_NAMES = {
    "pm": ("Project Manager Report", "Business impact, delivery risk and stakeholder communication."),
    "qa": ("QA Test Plan", "Test strategy with concrete test scenarios."),
    "client": ("Client Update", "Business value and user impact in non-technical terms."),
}

_TEMPLATE_FIELDS = {"name", "description", "audience_type", "template_content"}


@dataclass
class _StoredReport:
    """A PR-scope or repository-scope report, with the tag its files are named by."""

    entity: Report | RepositoryReport
    kind: str

    @property
    def is_repository_report(self) -> bool:
        return isinstance(self.entity, RepositoryReport)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _validate_audience(audience: str) -> None:
    if audience not in AUDIENCES:
        raise ValidationError(f"Invalid audience type {audience!r}. Choose one of: {', '.join(AUDIENCES)}.")


class ReportService:
    def __init__(
        self,
        store: BaseStore,
        provider_factory: Callable[[], BaseProvider],
        renderer: ReportRenderer,
        fallback_token: str | None = None,
        client_factory: Callable = github_client_for,
        sync_limit: int = 50,
        max_patch_chars: int | None = None,
    ):
        self.store = store
        self.renderer = renderer
        self.fallback_token = fallback_token
        self.sync_limit = sync_limit
        self.max_patch_chars = max_patch_chars
        self._provider_factory = provider_factory
        self._provider: BaseProvider | None = None
        self._client_factory = client_factory
        self.seed_default_templates()

    @property
    def provider(self) -> BaseProvider:
        # Built on first use so read-only commands never need an API key.
        if self._provider is None:
            self._provider = self._provider_factory()
        return self._provider

    def _client_for(self, token: str | None, full_name: str):
        return self._client_factory(token, full_name, fallback_token=self.fallback_token)

    # ------------------------------------------------------------------ #
    # Repositories and sync                                                #
    # ------------------------------------------------------------------ #

    def connect_repository(
        self,
        name: str,
        full_name: str,
        github_token: str = "",
        default_branch: str = "main",
        auto_generate: bool = True,
    ) -> Repository:
        """Validate access, persist the repository and run an initial PR sync.

        A failing initial sync is logged and ignored; the repository is still
        returned.
        """
        if not name or not full_name or "/" not in full_name:
            raise ValidationError("A repository needs a name and a full name in owner/name form.")
        if self.store.get_repository_by_full_name(full_name) is not None:
            raise ValidationError(f"Repository {full_name} is already connected.")

        client = self._client_for(github_token, full_name)
        if not client.validate_access(full_name):
            raise ValidationError("Invalid GitHub token or repository access")

        repository = self.store.create_repository(
            Repository(
                name=name,
                full_name=full_name,
                github_token=github_token,
                default_branch=default_branch,
                auto_generate=auto_generate,
            )
        )
        try:
            self._sync(repository, client)
        except PRInsightError as e:
            logger.warning("Initial PR sync for %s failed: %s", full_name, e)
        return repository

    def list_repositories(self) -> list[Repository]:
        return self.store.list_repositories()

    def get_repository(self, repository_id: str) -> Repository:
        repository = self.store.get_repository(repository_id)
        if repository is None:
            raise NotFoundError("Repository not found")
        return repository

    def delete_repository(self, repository_id: str) -> None:
        if not self.store.delete_repository(repository_id):
            raise NotFoundError("Repository not found")

    def sync_repository(self, repository_id: str) -> int:
        repository = self.get_repository(repository_id)
        return self._sync(repository, self._client_for(repository.github_token, repository.full_name))

    def sync_all_repositories(self) -> dict[str, int]:
        synced = {}
        for repository in self.store.list_repositories():
            synced[repository.full_name] = self.sync_repository(repository.id)
        return synced

    def _sync(self, repository: Repository, client) -> int:
        """Upsert the host's most recent PRs, keyed by their external id."""
        pulls: list[PullRequestInfo] = client.list_pull_requests(repository.full_name, limit=self.sync_limit)
        for info in pulls:
            fields = {
                "repository_id": repository.id,
                "number": info.number,
                "title": info.title,
                "author_name": info.author,
                "author_avatar": info.author_avatar,
                "status": info.status,
                "review_status": info.review_status,
                "created_at": _iso(info.created_at),
                "updated_at": _iso(info.updated_at),
                "merged_at": _iso(info.merged_at),
                "github_id": info.github_id,
            }
            existing = self.store.get_pull_request_by_github_id(info.github_id)
            if existing is not None:
                self.store.update_pull_request(existing.id, **fields)
            else:
                self.store.create_pull_request(PullRequest(**fields))
        logger.info("Synced %d pull request(s) for %s", len(pulls), repository.full_name)
        return len(pulls)

    # ------------------------------------------------------------------ #
    # Pull requests                                                        #
    # ------------------------------------------------------------------ #

    def recent_pull_requests(self, limit: int = 20) -> list[PullRequest]:
        return self.store.recent_pull_requests(limit)

    def list_pull_requests(self, repository_id: str) -> list[PullRequest]:
        self.get_repository(repository_id)
        return self.store.list_pull_requests(repository_id)

    def get_pull_request(self, pull_request_id: str) -> PullRequest:
        pull_request = self.store.get_pull_request(pull_request_id)
        if pull_request is None:
            raise NotFoundError("Pull request not found")
        return pull_request

    # ------------------------------------------------------------------ #
    # PR-scope reports                                                     #
    # ------------------------------------------------------------------ #

    def generate_report(self, pull_request_id: str, audience: str, template_id: str | None = None) -> Report:
        """Generate, persist and render one audience report for a pull request.

        Request validation (audience, ids, template audience) happens before
        any upstream call. If rendering fails after content generation, the
        report keeps its content and points at whatever file was written.
        """
        _validate_audience(audience)
        pull_request = self.get_pull_request(pull_request_id)
        repository = self.get_repository(pull_request.repository_id)
        template = self._template_for(template_id, audience)

        client = self._client_for(repository.github_token, repository.full_name)
        details = client.fetch_details(repository.full_name, pull_request.number)
        self.store.update_pull_request(pull_request.id, changes=details.changes_dict())

        prompt = build_pr_prompt(
            details,
            audience,
            template.template_content if template else None,
            max_patch_chars=self.max_patch_chars,
        )
        content = generate_report(self.provider, prompt.system_prompt, prompt.user_prompt)

        report = self.store.create_report(
            Report(pull_request_id=pull_request.id, audience_type=audience, content=content.to_dict())
        )
        path = self._render(report.id, content, audience, report.generated_at)
        logger.info("Generated %s report %s for %s#%d", audience, report.id, repository.full_name, pull_request.number)
        return self.store.update_report(report.id, pdf_path=str(path)) or report

    def generate_all_reports(self, pull_request_id: str) -> list[Report]:
        return [self.generate_report(pull_request_id, audience) for audience in AUDIENCES]

    def list_reports(self, pull_request_id: str) -> list[Report]:
        self.get_pull_request(pull_request_id)
        return self.store.list_reports(pull_request_id)

    # ------------------------------------------------------------------ #
    # Repository-scope reports                                             #
    # ------------------------------------------------------------------ #

    def generate_repository_report(
        self, repository_id: str, report_type: str, template_id: str | None = None
    ) -> RepositoryReport:
        audience = REPOSITORY_REPORT_AUDIENCES.get(report_type)
        if audience is None:
            raise ValidationError(
                f"Invalid report type {report_type!r}. Choose one of: {', '.join(REPOSITORY_REPORT_AUDIENCES)}."
            )
        repository = self.get_repository(repository_id)
        template = self._template_for(template_id, audience)

        aggregate = RepositoryAggregate(
            name=repository.name,
            full_name=repository.full_name,
            pull_requests=[_summary(pr) for pr in self.store.list_pull_requests(repository.id)],
        )
        prompt = build_repository_prompt(aggregate, audience, template.template_content if template else None)
        content = generate_report(self.provider, prompt.system_prompt, prompt.user_prompt)

        report = self.store.create_repository_report(
            RepositoryReport(
                repository_id=repository.id,
                report_type=report_type,
                title=content.title,
                content=content.to_dict(),
                template_id=template.id if template else None,
            )
        )
        path = self._render(report.id, content, report_type, report.generated_at)
        return self.store.update_repository_report(report.id, pdf_path=str(path)) or report

    def list_repository_reports(self, repository_id: str | None = None) -> list[RepositoryReport]:
        if repository_id is not None:
            self.get_repository(repository_id)
        return self.store.list_repository_reports(repository_id)

    # ------------------------------------------------------------------ #
    # Rendering, download and preview                                      #
    # ------------------------------------------------------------------ #

    def _render(self, report_id: str, content: ReportContent, kind: str, generated_at: str | None) -> Path:
        """Write HTML then PDF; fall back to the HTML file when rasterization fails."""
        rendered = self.renderer.write_html(report_id, content, kind, _parse_time(generated_at))
        try:
            return self.renderer.write_pdf(rendered)
        except RenderError as e:
            logger.warning("PDF generation for report %s failed, serving HTML instead: %s", report_id, e)
            return rendered.html_path

    def _find_report(self, report_id: str) -> _StoredReport:
        report = self.store.get_report(report_id)
        if report is not None:
            return _StoredReport(report, report.audience_type)
        repository_report = self.store.get_repository_report(report_id)
        if repository_report is not None:
            return _StoredReport(repository_report, repository_report.report_type)
        raise NotFoundError("Report not found")

    def download_report(self, report_id: str) -> Path:
        """Return the file to serve for a report.

        A stored PDF is served as is. A missing or legacy (HTML) artifact is
        regenerated from the stored content first; if the PDF still cannot be
        produced the freshly written HTML is served.
        """
        stored = self._find_report(report_id)
        entity = stored.entity
        if entity.pdf_path:
            current = Path(entity.pdf_path)
            if current.suffix == ".pdf" and current.exists():
                return current

        content = ReportContent.from_dict(entity.content)
        path = self._render(entity.id, content, stored.kind, entity.generated_at)
        if stored.is_repository_report:
            self.store.update_repository_report(entity.id, pdf_path=str(path))
        else:
            self.store.update_report(entity.id, pdf_path=str(path))
        return path

    def preview_report(self, report_id: str) -> str:
        """Re-render a report's stored content as HTML without calling the LLM."""
        stored = self._find_report(report_id)
        content = ReportContent.from_dict(stored.entity.content)
        return self.renderer.render_html(content, stored.kind, _parse_time(stored.entity.generated_at))

    # ------------------------------------------------------------------ #
    # Templates                                                            #
    # ------------------------------------------------------------------ #

    def seed_default_templates(self) -> None:
        """Create one default template per audience if none exist yet."""
        if self.store.default_templates():
            return
        for audience in AUDIENCES:
            name, description = _DEFAULT_TEMPLATE_NAMES[audience]
            self.store.create_template(
                ReportTemplate(
                    name=name,
                    description=description,
                    audience_type=audience,
                    template_content={TEMPLATE_PROMPT_KEY: builtin_system_prompt(audience)},
                    is_default=True,
                )
            )

    def _template_for(self, template_id: str | None, audience: str) -> ReportTemplate | None:
        if template_id is None:
            return None
        template = self.get_template(template_id)
        if template.audience_type != audience:
            raise ValidationError(
                f"Template {template.name!r} is for audience {template.audience_type!r}, not {audience!r}."
            )
        return template

    def list_templates(self, audience: str | None = None) -> list[ReportTemplate]:
        if audience is not None:
            _validate_audience(audience)
        return self.store.list_templates(audience)

    def get_template(self, template_id: str) -> ReportTemplate:
        template = self.store.get_template(template_id)
        if template is None:
            raise NotFoundError("Template not found")
        return template

    def create_template(
        self, name: str, audience: str, system_prompt: str, description: str | None = None
    ) -> ReportTemplate:
        if not name:
            raise ValidationError("A template needs a name.")
        _validate_audience(audience)
        return self.store.create_template(
            ReportTemplate(
                name=name,
                description=description,
                audience_type=audience,
                template_content={TEMPLATE_PROMPT_KEY: system_prompt},
            )
        )

    def update_template(self, template_id: str, **updates) -> ReportTemplate:
        unknown = set(updates) - _TEMPLATE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update template field(s): {', '.join(sorted(unknown))}")
        if "audience_type" in updates:
            _validate_audience(updates["audience_type"])
        self.get_template(template_id)
        return self.store.update_template(template_id, **updates)

    def duplicate_template(self, template_id: str) -> ReportTemplate:
        source = self.get_template(template_id)
        return self.store.create_template(
            ReportTemplate(
                name=f"{source.name} (Copy)",
                description=source.description,
                audience_type=source.audience_type,
                template_content=dict(source.template_content),
                is_default=False,
            )
        )

    def delete_template(self, template_id: str) -> None:
        template = self.get_template(template_id)
        if template.is_default:
            raise ValidationError("Default templates cannot be deleted.")
        self.store.delete_template(template_id)

    # ------------------------------------------------------------------ #
    # Insights and statistics                                              #
    # ------------------------------------------------------------------ #

    def refresh_insights(self, repository_id: str) -> list[Insight]:
        repository = self.get_repository(repository_id)
        summaries = [_summary(pr) for pr in self.store.list_pull_requests(repository.id)]
        for data in generate_insights(self.provider, summaries):
            self.store.create_insight(
                Insight(
                    repository_id=repository.id,
                    type=data.type,
                    title=data.title,
                    description=data.description,
                    severity=data.severity,
                )
            )
        return self.store.recent_insights(repository.id)

    def list_insights(self, repository_id: str | None = None) -> list[Insight]:
        return self.store.recent_insights(repository_id)

    def statistics(self) -> Statistics:
        return self.store.statistics()


def _summary(pr: PullRequest) -> PRSummary:
    return PRSummary(
        number=pr.number,
        title=pr.title,
        author=pr.author_name,
        status=pr.status,
        review_status=pr.review_status,
        created_at=_parse_time(pr.created_at),
        updated_at=_parse_time(pr.updated_at),
        merged_at=_parse_time(pr.merged_at),
        changed_files=(pr.changes or {}).get("changed_files"),
    )
