"""Data passed between pipeline stages.

Decoupled from prinsight_store: the service layer maps these to and from the
persisted entities, so prinsight_core has no knowledge of persistence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from prinsight_core.errors import MalformedResponseError


@dataclass
class FileChange:
    """A single changed file in a pull request."""

    filename: str
    status: str  # "added" | "modified" | "removed" | "renamed" | ...
    additions: int = 0
    deletions: int = 0
    patch: str | None = None


@dataclass
class PullRequestInfo:
    """Pull request metadata as reported by the source-control host."""

    github_id: int
    number: int
    title: str
    author: str
    state: str  # "open" | "closed" as reported by the host
    created_at: datetime
    updated_at: datetime
    merged_at: datetime | None = None
    author_avatar: str | None = None

    @property
    def status(self) -> str:
        """Lifecycle status: open, closed or merged."""
        if self.merged_at is not None:
            return "merged"
        return self.state

    @property
    def review_status(self) -> str:
        if self.merged_at is not None:
            return "merged"
        if self.state == "closed":
            return "closed"
        return "pending"


@dataclass
class PRDetails(PullRequestInfo):
    """Pull request metadata plus its per-file changes and raw unified diff."""

    files: list[FileChange] = field(default_factory=list)
    diff: str = ""

    @property
    def additions(self) -> int:
        return sum(f.additions for f in self.files)

    @property
    def deletions(self) -> int:
        return sum(f.deletions for f in self.files)

    @property
    def changed_files(self) -> int:
        return len(self.files)

    def changes_dict(self) -> dict:
        """The changes payload cached on the stored pull request."""
        return {
            "additions": self.additions,
            "deletions": self.deletions,
            "changed_files": self.changed_files,
            "files": [
                {
                    "filename": f.filename,
                    "status": f.status,
                    "additions": f.additions,
                    "deletions": f.deletions,
                    "patch": f.patch,
                }
                for f in self.files
            ],
            "diff": self.diff,
        }


@dataclass
class PRSummary:
    """A stored pull request, as seen by repository-scope prompts and insights."""

    number: int
    title: str
    author: str
    status: str
    updated_at: datetime
    created_at: datetime | None = None
    merged_at: datetime | None = None
    review_status: str | None = None
    changed_files: int | None = None


@dataclass
class RepositoryAggregate:
    """Input to repository-scope prompts."""

    name: str
    full_name: str
    pull_requests: list[PRSummary] = field(default_factory=list)

    @property
    def total_prs(self) -> int:
        return len(self.pull_requests)

    def count_status(self, status: str) -> int:
        return sum(1 for pr in self.pull_requests if pr.status == status)

    @property
    def contributors(self) -> int:
        return len({pr.author for pr in self.pull_requests})

    @property
    def last_activity(self) -> datetime | None:
        if not self.pull_requests:
            return None
        return max(pr.updated_at for pr in self.pull_requests)


@dataclass
class ReportSection:
    title: str
    content: str
    items: list[str] | None = None


@dataclass
class ReportContent:
    """Structured report returned by the LLM.

    ``to_dict``/``from_dict`` use the wire field names of the output schema
    (``testScenarios``), which is also the shape persisted by the store.
    """

    title: str
    summary: str
    sections: list[ReportSection] = field(default_factory=list)
    recommendations: list[str] | None = None
    test_scenarios: list[str] | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "title": self.title,
            "summary": self.summary,
            "sections": [],
        }
        for section in self.sections:
            entry: dict = {"title": section.title, "content": section.content}
            if section.items is not None:
                entry["items"] = list(section.items)
            data["sections"].append(entry)
        if self.recommendations is not None:
            data["recommendations"] = list(self.recommendations)
        if self.test_scenarios is not None:
            data["testScenarios"] = list(self.test_scenarios)
        return data

    @classmethod
    def from_dict(cls, data) -> ReportContent:
        """Validate a decoded JSON object and build a ReportContent.

        Raises MalformedResponseError when a required field is absent or has
        the wrong type.
        """
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Expected a JSON object, got {type(data).__name__}")
        for key in ("title", "summary"):
            if not isinstance(data.get(key), str):
                raise MalformedResponseError(f"Missing or invalid required field: {key!r}")
        raw_sections = data.get("sections")
        if not isinstance(raw_sections, list):
            raise MalformedResponseError("Missing or invalid required field: 'sections'")

        sections = []
        for idx, raw in enumerate(raw_sections):
            if not isinstance(raw, dict):
                raise MalformedResponseError(f"sections[{idx}] is not an object")
            for key in ("title", "content"):
                if not isinstance(raw.get(key), str):
                    raise MalformedResponseError(f"sections[{idx}] is missing required field {key!r}")
            sections.append(
                ReportSection(
                    title=raw["title"],
                    content=raw["content"],
                    items=_string_list(raw.get("items"), f"sections[{idx}].items"),
                )
            )

        return cls(
            title=data["title"],
            summary=data["summary"],
            sections=sections,
            recommendations=_string_list(data.get("recommendations"), "recommendations"),
            test_scenarios=_string_list(data.get("testScenarios"), "testScenarios"),
        )


@dataclass
class InsightData:
    """One AI-generated observation about repository health."""

    type: str
    title: str
    description: str
    severity: str  # "info" | "warning" | "error"


def _string_list(value, name: str) -> list[str] | None:
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MalformedResponseError(f"{name} must be a list of strings")
    return list(value)
