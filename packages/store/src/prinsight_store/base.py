"""Abstract store interface.

The service layer depends on BaseStore, not on a concrete backend, so tests
and alternative backends can be swapped in without touching pipeline code.
Every ``get_*`` returns None for an unknown id and every ``update_*`` returns
the updated entity (or None); fields not named in an update are returned
unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prinsight_store.models import (
        Insight,
        PullRequest,
        Report,
        ReportTemplate,
        Repository,
        RepositoryReport,
        Statistics,
    )


class BaseStore(ABC):
    # Repositories

    @abstractmethod
    def list_repositories(self) -> list[Repository]: ...

    @abstractmethod
    def get_repository(self, repository_id: str) -> Repository | None: ...

    @abstractmethod
    def get_repository_by_full_name(self, full_name: str) -> Repository | None: ...

    @abstractmethod
    def create_repository(self, repository: Repository) -> Repository: ...

    @abstractmethod
    def update_repository(self, repository_id: str, **updates) -> Repository | None: ...

    @abstractmethod
    def delete_repository(self, repository_id: str) -> bool:
        """Delete a repository together with its PRs, reports and insights."""

    # Pull requests

    @abstractmethod
    def list_pull_requests(self, repository_id: str) -> list[PullRequest]:
        """PRs of one repository, most recently updated first."""

    @abstractmethod
    def recent_pull_requests(self, limit: int = 20) -> list[PullRequest]: ...

    @abstractmethod
    def get_pull_request(self, pull_request_id: str) -> PullRequest | None: ...

    @abstractmethod
    def get_pull_request_by_github_id(self, github_id: int) -> PullRequest | None: ...

    @abstractmethod
    def create_pull_request(self, pull_request: PullRequest) -> PullRequest: ...

    @abstractmethod
    def update_pull_request(self, pull_request_id: str, **updates) -> PullRequest | None: ...

    # Reports

    @abstractmethod
    def list_reports(self, pull_request_id: str) -> list[Report]: ...

    @abstractmethod
    def get_report(self, report_id: str) -> Report | None: ...

    @abstractmethod
    def create_report(self, report: Report) -> Report: ...

    @abstractmethod
    def update_report(self, report_id: str, **updates) -> Report | None: ...

    # Repository reports

    @abstractmethod
    def list_repository_reports(self, repository_id: str | None = None) -> list[RepositoryReport]: ...

    @abstractmethod
    def get_repository_report(self, report_id: str) -> RepositoryReport | None: ...

    @abstractmethod
    def create_repository_report(self, report: RepositoryReport) -> RepositoryReport: ...

    @abstractmethod
    def update_repository_report(self, report_id: str, **updates) -> RepositoryReport | None: ...

    # Templates

    @abstractmethod
    def list_templates(self, audience_type: str | None = None) -> list[ReportTemplate]: ...

    @abstractmethod
    def get_template(self, template_id: str) -> ReportTemplate | None: ...

    @abstractmethod
    def create_template(self, template: ReportTemplate) -> ReportTemplate: ...

    @abstractmethod
    def update_template(self, template_id: str, **updates) -> ReportTemplate | None: ...

    @abstractmethod
    def delete_template(self, template_id: str) -> bool: ...

    @abstractmethod
    def default_templates(self) -> list[ReportTemplate]: ...

    # Insights (append-only)

    @abstractmethod
    def create_insight(self, insight: Insight) -> Insight: ...

    @abstractmethod
    def recent_insights(self, repository_id: str | None = None, limit: int = 10) -> list[Insight]: ...

    @abstractmethod
    def statistics(self) -> Statistics: ...

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """
