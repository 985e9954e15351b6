"""Persisted entities.

Decoupled from prinsight_core so the store layer can be used independently
and prinsight_core has no knowledge of persistence concerns. Timestamps are
ISO-8601 UTC strings; JSON payloads (PR changes, report content, template
content) are plain dicts.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Repository:
    name: str
    full_name: str  # "owner/name"
    # Write-only: never part of public output.
    github_token: str = field(default="", repr=False)
    default_branch: str = "main"
    auto_generate: bool = True
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "full_name": self.full_name,
            "default_branch": self.default_branch,
            "auto_generate": self.auto_generate,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class PullRequest:
    repository_id: str
    number: int
    title: str
    author_name: str
    status: str  # "open" | "closed" | "merged"
    created_at: str
    updated_at: str
    github_id: int  # host-assigned; the de-duplication key
    author_avatar: str | None = None
    review_status: str | None = None  # "pending" | "approved" | "changes_requested" | "merged" | "closed"
    merged_at: str | None = None
    changes: dict | None = None
    id: str = field(default_factory=new_id)


@dataclass
class ReportTemplate:
    name: str
    audience_type: str  # "pm" | "qa" | "client"
    template_content: dict = field(default_factory=dict)
    description: str | None = None
    is_default: bool = False
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)


@dataclass
class Report:
    """A PR-scoped report. Immutable once generated except for ``pdf_path``."""

    pull_request_id: str
    audience_type: str
    content: dict
    pdf_path: str | None = None
    id: str = field(default_factory=new_id)
    generated_at: str = field(default_factory=utcnow)


@dataclass
class RepositoryReport:
    repository_id: str
    report_type: str  # "mvp_summary" | "client_overview" | "qa_overview"
    title: str
    content: dict
    pdf_path: str | None = None
    template_id: str | None = None
    id: str = field(default_factory=new_id)
    generated_at: str = field(default_factory=utcnow)


@dataclass
class Insight:
    repository_id: str
    type: str
    title: str
    description: str
    severity: str  # "info" | "warning" | "error"
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utcnow)


@dataclass
class Statistics:
    active_prs: int = 0
    reports_generated: int = 0
    connected_repos: int = 0
    test_scenarios_generated: int = 0
