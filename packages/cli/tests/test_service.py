"""Tests for the report pipeline service.

Runs against a real SQLiteStore in tmp_path, the demo GitHub client and a
fake LLM provider; only the headless browser is patched out.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from prinsight_cli.service import ReportService
from prinsight_core.errors import (
    BrowserLaunchError,
    MalformedResponseError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from prinsight_core.generator import INSIGHTS_SCHEMA
from prinsight_core.gh.client import DemoGitHubClient, github_client_for
from prinsight_core.providers.base import BaseProvider
from prinsight_core.render.renderer import ReportRenderer
from prinsight_store.sqlite import SQLiteStore

QA_SCENARIOS = [f"Scenario {i}" for i in range(1, 9)]


class FakeProvider(BaseProvider):
    """Answers like a well-behaved model: QA prompts get test scenarios."""

    def __init__(self, raw: str | None = None):
        self.raw = raw
        self.calls = []

    def _call_api(self, system_prompt: str, user_prompt: str, schema: dict) -> str:
        self.calls.append((system_prompt, user_prompt, schema))
        if self.raw is not None:
            return self.raw
        if schema is INSIGHTS_SCHEMA:
            return json.dumps(
                {
                    "insights": [
                        {"type": "testing", "title": "Tests", "description": "Add tests.", "severity": "warning"},
                        {"type": "flow", "title": "Flow", "description": "Good pace.", "severity": "bogus"},
                    ]
                }
            )
        report = {
            "title": "Login Flow Report",
            "summary": "Adds password checks to login.",
            "sections": [{"title": "Impact", "content": "Safer logins.", "items": ["Password verification"]}],
            "recommendations": ["Add rate limiting"],
        }
        if "QUALITY ASSURANCE" in system_prompt:
            report["testScenarios"] = QA_SCENARIOS
        return json.dumps(report)


def _fake_pdf(html_path, pdf_path, **kwargs):
    Path(pdf_path).write_bytes(b"%PDF-1.4 fake")
    return pdf_path


@pytest.fixture
def pdf(mocker):
    return mocker.patch("prinsight_core.render.renderer.html_to_pdf", side_effect=_fake_pdf)


@pytest.fixture
def store(tmp_path):
    store = SQLiteStore(db_path=str(tmp_path / "test.db"))
    yield store
    store.close()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def service(store, provider, tmp_path, pdf):
    return ReportService(store, lambda: provider, ReportRenderer(reports_dir=tmp_path / "reports"))


@pytest.fixture
def demo_repo(service):
    return service.connect_repository("web", "acme/web", "demo")


@pytest.fixture
def demo_pr(service, demo_repo):
    return next(pr for pr in service.list_pull_requests(demo_repo.id) if pr.number == 101)


# ---------------------------------------------------------------------------
# Repositories and sync
# ---------------------------------------------------------------------------


class TestRepositories:
    def test_demo_connect_makes_no_outbound_calls(self, mocker, service):
        mock_get = mocker.patch("prinsight_core.gh.pull_request.requests.get")
        mock_github = mocker.patch("prinsight_core.gh.pull_request.Github")

        repo = service.connect_repository("web", "acme/web", "demo")

        mock_get.assert_not_called()
        mock_github.assert_not_called()
        pulls = service.list_pull_requests(repo.id)
        assert len(pulls) >= 2
        assert len({p.github_id for p in pulls}) == len(pulls)

    def test_duplicate_full_name_rejected(self, service, demo_repo):
        with pytest.raises(ValidationError, match="already connected"):
            service.connect_repository("web again", "acme/web", "demo")

    def test_malformed_full_name_rejected(self, service):
        with pytest.raises(ValidationError):
            service.connect_repository("web", "acme-web", "demo")

    def test_invalid_access_rejected_and_nothing_stored(self, store, provider, tmp_path, pdf):
        client = MagicMock()
        client.validate_access.return_value = False
        service = ReportService(
            store, lambda: provider, ReportRenderer(tmp_path), client_factory=lambda *a, **kw: client
        )

        with pytest.raises(ValidationError, match="Invalid GitHub token"):
            service.connect_repository("web", "acme/web", "ghp_bad")
        assert store.list_repositories() == []

    def test_initial_sync_failure_is_tolerated(self, store, provider, tmp_path, pdf):
        client = MagicMock()
        client.validate_access.return_value = True
        client.list_pull_requests.side_effect = UpstreamError("GitHub is down")
        service = ReportService(
            store, lambda: provider, ReportRenderer(tmp_path), client_factory=lambda *a, **kw: client
        )

        repo = service.connect_repository("web", "acme/web", "ghp_ok")

        assert store.get_repository(repo.id) is not None
        assert service.list_pull_requests(repo.id) == []

    def test_initial_sync_network_failure_is_tolerated(self, mocker, service, store):
        github = mocker.patch("prinsight_core.gh.pull_request.Github")
        github.return_value.get_repo.return_value.get_pulls.side_effect = requests.ConnectionError("connection reset")

        repo = service.connect_repository("web", "acme/web", "ghp_real")

        assert store.get_repository(repo.id).full_name == "acme/web"
        assert service.list_pull_requests(repo.id) == []

    def test_sync_network_failure_is_upstream_error(self, mocker, service):
        github = mocker.patch("prinsight_core.gh.pull_request.Github")
        repo = service.connect_repository("web", "acme/web", "ghp_real")
        github.return_value.get_repo.return_value.get_pulls.side_effect = requests.Timeout("read timed out")

        with pytest.raises(UpstreamError):
            service.sync_repository(repo.id)

    def test_resync_does_not_duplicate(self, service, demo_repo):
        before = len(service.list_pull_requests(demo_repo.id))
        assert service.sync_repository(demo_repo.id) == before
        assert len(service.list_pull_requests(demo_repo.id)) == before

    def test_sync_all(self, service, demo_repo):
        service.connect_repository("api", "acme/api", "test")
        synced = service.sync_all_repositories()
        assert set(synced) == {"acme/web", "acme/api"}
        assert len(service.recent_pull_requests()) == 6

    def test_sync_preserves_cached_changes(self, service, demo_pr):
        service.generate_report(demo_pr.id, "pm")
        service.sync_repository(demo_pr.repository_id)
        assert service.get_pull_request(demo_pr.id).changes["changed_files"] == 2

    def test_client_receives_fallback_token(self, store, provider, tmp_path, pdf):
        factory = MagicMock(side_effect=github_client_for)
        service = ReportService(
            store,
            lambda: provider,
            ReportRenderer(tmp_path),
            fallback_token="ghp_env",
            client_factory=factory,
        )
        service.connect_repository("demo", "acme/demo-app", "")
        factory.assert_called_with("", "acme/demo-app", fallback_token="ghp_env")

    def test_delete_unknown_repository(self, service):
        with pytest.raises(NotFoundError):
            service.delete_repository("missing")


# ---------------------------------------------------------------------------
# PR-scope reports
# ---------------------------------------------------------------------------


class TestGenerateReport:
    def test_qa_report_end_to_end(self, service, demo_pr, provider, tmp_path):
        report = service.generate_report(demo_pr.id, "qa")

        assert report.audience_type == "qa"
        assert report.content["sections"]
        assert report.content["testScenarios"] == QA_SCENARIOS
        assert report.pdf_path == str(tmp_path / "reports" / f"{report.id}-qa.pdf")
        assert Path(report.pdf_path).exists()
        assert (tmp_path / "reports" / f"{report.id}-qa.html").exists()
        assert len(provider.calls) == 1

    def test_prompt_contains_demo_diff(self, service, demo_pr, provider):
        service.generate_report(demo_pr.id, "pm")
        system_prompt, user_prompt, _ = provider.calls[0]
        assert "PROJECT MANAGEMENT" in system_prompt
        assert "app/auth/login.py (modified)" in user_prompt
        assert "verify_password" in user_prompt

    def test_changes_cached_on_pull_request(self, service, demo_pr):
        service.generate_report(demo_pr.id, "client")
        changes = service.get_pull_request(demo_pr.id).changes
        assert changes["changed_files"] == 2
        assert changes["additions"] == 24

    def test_invalid_audience(self, service, demo_pr, provider):
        with pytest.raises(ValidationError):
            service.generate_report(demo_pr.id, "cto")
        assert provider.calls == []

    def test_unknown_pull_request(self, service):
        with pytest.raises(NotFoundError):
            service.generate_report("missing", "pm")

    def test_template_audience_mismatch_rejected_before_any_call(self, mocker, service, demo_pr, provider):
        qa_template = service.list_templates("qa")[0]
        fetch = mocker.patch.object(DemoGitHubClient, "fetch_details")

        with pytest.raises(ValidationError, match="audience"):
            service.generate_report(demo_pr.id, "pm", qa_template.id)

        fetch.assert_not_called()
        assert provider.calls == []
        assert service.list_reports(demo_pr.id) == []

    def test_unknown_template(self, service, demo_pr):
        with pytest.raises(NotFoundError):
            service.generate_report(demo_pr.id, "pm", "missing")

    def test_template_prompt_used_verbatim(self, service, demo_pr, provider):
        template = service.create_template("Haiku", "pm", "Summarize as a haiku.")
        service.generate_report(demo_pr.id, "pm", template.id)
        assert provider.calls[0][0] == "Summarize as a haiku."

    def test_pdf_failure_falls_back_to_html(self, service, demo_pr, pdf, tmp_path):
        pdf.side_effect = BrowserLaunchError("no chromium")

        report = service.generate_report(demo_pr.id, "qa")

        assert report.pdf_path == str(tmp_path / "reports" / f"{report.id}-qa.html")
        assert Path(report.pdf_path).exists()
        assert service.store.get_report(report.id).pdf_path.endswith(".html")

    def test_malformed_response_persists_nothing(self, store, tmp_path, pdf, demo_pr):
        bad = FakeProvider(raw='{"title": "only a title"}')
        service = ReportService(store, lambda: bad, ReportRenderer(tmp_path))

        with pytest.raises(MalformedResponseError):
            service.generate_report(demo_pr.id, "pm")
        assert service.list_reports(demo_pr.id) == []

    def test_generate_all_audiences(self, service, demo_pr):
        reports = service.generate_all_reports(demo_pr.id)
        assert [r.audience_type for r in reports] == ["pm", "qa", "client"]
        assert len(service.list_reports(demo_pr.id)) == 3

    def test_generate_all_stops_at_first_failure(self, service, demo_pr, provider):
        calls = {"n": 0}
        original = provider._call_api

        def flaky(system_prompt, user_prompt, schema):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("quota exceeded")
            return original(system_prompt, user_prompt, schema)

        provider._call_api = flaky

        with pytest.raises(UpstreamError):
            service.generate_all_reports(demo_pr.id)
        assert [r.audience_type for r in service.list_reports(demo_pr.id)] == ["pm"]

    def test_provider_built_lazily(self, store, tmp_path, pdf, demo_pr):
        factory = MagicMock(return_value=FakeProvider())
        service = ReportService(store, factory, ReportRenderer(tmp_path))
        service.list_reports(demo_pr.id)
        factory.assert_not_called()
        service.generate_report(demo_pr.id, "pm")
        service.generate_report(demo_pr.id, "qa")
        factory.assert_called_once()


# ---------------------------------------------------------------------------
# Repository-scope reports
# ---------------------------------------------------------------------------


class TestRepositoryReports:
    def test_type_maps_to_audience_prompt(self, service, demo_repo, provider, tmp_path):
        report = service.generate_repository_report(demo_repo.id, "qa_overview")

        system_prompt, user_prompt, _ = provider.calls[0]
        assert "QUALITY ASSURANCE" in system_prompt
        assert "- Full Name: acme/web" in user_prompt
        assert "- Total Pull Requests: 3" in user_prompt
        assert report.title == "Login Flow Report"
        assert report.pdf_path.endswith(f"{report.id}-qa_overview.pdf")

    def test_unknown_type(self, service, demo_repo):
        with pytest.raises(ValidationError):
            service.generate_repository_report(demo_repo.id, "weekly")

    def test_template_recorded(self, service, demo_repo):
        template = service.list_templates("client")[0]
        report = service.generate_repository_report(demo_repo.id, "client_overview", template.id)
        assert report.template_id == template.id

    def test_template_must_match_mapped_audience(self, service, demo_repo, provider):
        pm_template = service.list_templates("pm")[0]
        with pytest.raises(ValidationError):
            service.generate_repository_report(demo_repo.id, "qa_overview", pm_template.id)
        assert provider.calls == []

    def test_list_filtered_by_repository(self, service, demo_repo):
        other = service.connect_repository("api", "acme/api", "demo")
        service.generate_repository_report(demo_repo.id, "mvp_summary")
        service.generate_repository_report(other.id, "mvp_summary")
        assert len(service.list_repository_reports(demo_repo.id)) == 1
        assert len(service.list_repository_reports()) == 2


# ---------------------------------------------------------------------------
# Download and preview
# ---------------------------------------------------------------------------


class TestDownloadAndPreview:
    def test_existing_pdf_served_without_rerender(self, service, demo_pr, pdf):
        report = service.generate_report(demo_pr.id, "pm")
        pdf.reset_mock()

        path = service.download_report(report.id)

        assert str(path) == report.pdf_path
        pdf.assert_not_called()

    def test_missing_path_regenerated_from_content(self, service, demo_pr, provider):
        report = service.generate_report(demo_pr.id, "qa")
        service.store.update_report(report.id, pdf_path=None)

        path = service.download_report(report.id)

        assert path.name == f"{report.id}-qa.pdf"
        assert path.exists()
        assert service.store.get_report(report.id).pdf_path == str(path)
        assert len(provider.calls) == 1

    def test_legacy_html_path_regenerated(self, service, demo_pr, pdf):
        pdf.side_effect = BrowserLaunchError("no chromium")
        report = service.generate_report(demo_pr.id, "client")
        assert report.pdf_path.endswith(".html")
        pdf.side_effect = _fake_pdf

        path = service.download_report(report.id)

        assert path.suffix == ".pdf"
        assert path.name == f"{report.id}-client.pdf"

    def test_deleted_file_regenerated(self, service, demo_pr):
        report = service.generate_report(demo_pr.id, "pm")
        Path(report.pdf_path).unlink()

        path = service.download_report(report.id)

        assert path.exists()

    def test_regeneration_falls_back_to_html(self, service, demo_pr, pdf):
        report = service.generate_report(demo_pr.id, "pm")
        service.store.update_report(report.id, pdf_path=None)
        pdf.side_effect = BrowserLaunchError("no chromium")

        path = service.download_report(report.id)

        assert path.suffix == ".html"
        assert path.exists()

    def test_repository_report_download(self, service, demo_repo):
        report = service.generate_repository_report(demo_repo.id, "mvp_summary")
        service.store.update_repository_report(report.id, pdf_path=None)

        path = service.download_report(report.id)

        assert path.name == f"{report.id}-mvp_summary.pdf"
        assert service.store.get_repository_report(report.id).pdf_path == str(path)

    def test_unknown_report(self, service):
        with pytest.raises(NotFoundError):
            service.download_report("missing")
        with pytest.raises(NotFoundError):
            service.preview_report("missing")

    def test_preview_is_idempotent_and_offline(self, service, demo_pr, provider):
        report = service.generate_report(demo_pr.id, "qa")

        first = service.preview_report(report.id)
        second = service.preview_report(report.id)

        assert first == second
        assert "Report for Quality Assurance" in first
        assert "Scenario 8" in first
        assert len(provider.calls) == 1

    def test_preview_matches_written_html(self, service, demo_pr, tmp_path):
        report = service.generate_report(demo_pr.id, "pm")
        written = (tmp_path / "reports" / f"{report.id}-pm.html").read_text(encoding="utf-8")
        assert service.preview_report(report.id) == written


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TestTemplates:
    def test_defaults_seeded_once(self, store, provider, tmp_path):
        ReportService(store, lambda: provider, ReportRenderer(tmp_path))
        ReportService(store, lambda: provider, ReportRenderer(tmp_path))
        defaults = store.default_templates()
        assert sorted(t.audience_type for t in defaults) == ["client", "pm", "qa"]

    def test_seeded_prompt_is_builtin(self, service):
        qa = service.list_templates("qa")[0]
        assert "testScenarios" in qa.template_content["systemPrompt"]

    def test_create_and_update(self, service):
        template = service.create_template("Terse", "client", "Be brief.", "Short updates")
        updated = service.update_template(template.id, name="Terser")
        assert updated.name == "Terser"
        assert updated.template_content == {"systemPrompt": "Be brief."}

    def test_create_invalid_audience(self, service):
        with pytest.raises(ValidationError):
            service.create_template("X", "cto", "prompt")

    def test_update_rejects_unknown_fields(self, service):
        template = service.create_template("Terse", "client", "Be brief.")
        with pytest.raises(ValidationError):
            service.update_template(template.id, is_default=True)

    def test_duplicate(self, service):
        default = service.list_templates("pm")[0]
        copy = service.duplicate_template(default.id)
        assert copy.name == f"{default.name} (Copy)"
        assert copy.is_default is False
        assert copy.id != default.id
        assert copy.template_content == default.template_content

    def test_default_cannot_be_deleted(self, service):
        default = service.list_templates("qa")[0]
        with pytest.raises(ValidationError):
            service.delete_template(default.id)
        assert service.get_template(default.id) is not None

    def test_delete_custom(self, service):
        template = service.create_template("Temp", "qa", "p")
        service.delete_template(template.id)
        with pytest.raises(NotFoundError):
            service.get_template(template.id)


# ---------------------------------------------------------------------------
# Insights and statistics
# ---------------------------------------------------------------------------


class TestInsightsAndStatistics:
    def test_refresh_persists_insights(self, service, demo_repo, provider):
        insights = service.refresh_insights(demo_repo.id)

        assert {i.title for i in insights} == {"Tests", "Flow"}
        assert {i.severity for i in insights} == {"warning", "info"}
        assert provider.calls[0][2] is INSIGHTS_SCHEMA
        assert len(service.list_insights(demo_repo.id)) == 2

    def test_refresh_without_pull_requests(self, store, provider, tmp_path, pdf):
        client = MagicMock()
        client.validate_access.return_value = True
        client.list_pull_requests.return_value = []
        service = ReportService(
            store, lambda: provider, ReportRenderer(tmp_path), client_factory=lambda *a, **kw: client
        )
        repo = service.connect_repository("web", "acme/web", "ghp_ok")

        assert service.refresh_insights(repo.id) == []
        assert provider.calls == []

    def test_statistics(self, service, demo_pr):
        service.generate_report(demo_pr.id, "qa")
        service.generate_report(demo_pr.id, "pm")

        stats = service.statistics()

        assert stats.connected_repos == 1
        assert stats.active_prs == 2
        assert stats.reports_generated == 2
        assert stats.test_scenarios_generated == len(QA_SCENARIOS)
