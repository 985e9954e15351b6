"""SQLiteStore: local file-based store for a single-tenant deployment.

Schema: one table per entity. Dict payloads (PR changes, report content,
template content) are stored as JSON text. Foreign keys document ownership;
deleting a repository removes its dependent rows explicitly.

Each row is written only by the request that owns it, so nothing beyond
SQLite's per-statement atomicity is relied on.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict, fields, replace
from typing import TypeVar

from prinsight_store.base import BaseStore
from prinsight_store.models import (
    Insight,
    PullRequest,
    Report,
    ReportTemplate,
    Repository,
    RepositoryReport,
    Statistics,
    utcnow,
)

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS repositories (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    full_name       TEXT NOT NULL UNIQUE,
    github_token    TEXT NOT NULL DEFAULT '',
    default_branch  TEXT DEFAULT 'main',
    auto_generate   INTEGER DEFAULT 1,
    created_at      TEXT,
    updated_at      TEXT
);
CREATE TABLE IF NOT EXISTS pull_requests (
    id              TEXT PRIMARY KEY,
    repository_id   TEXT NOT NULL REFERENCES repositories (id),
    number          INTEGER NOT NULL,
    title           TEXT NOT NULL,
    author_name     TEXT NOT NULL,
    author_avatar   TEXT,
    status          TEXT NOT NULL,
    review_status   TEXT,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    merged_at       TEXT,
    changes         TEXT,
    github_id       INTEGER NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS reports (
    id              TEXT PRIMARY KEY,
    pull_request_id TEXT NOT NULL REFERENCES pull_requests (id),
    audience_type   TEXT NOT NULL,
    content         TEXT NOT NULL,
    pdf_path        TEXT,
    generated_at    TEXT
);
CREATE TABLE IF NOT EXISTS report_templates (
    id               TEXT PRIMARY KEY,
    name             TEXT NOT NULL,
    description      TEXT,
    audience_type    TEXT NOT NULL,
    template_content TEXT NOT NULL,
    is_default       INTEGER DEFAULT 0,
    created_at       TEXT,
    updated_at       TEXT
);
CREATE TABLE IF NOT EXISTS repository_reports (
    id              TEXT PRIMARY KEY,
    repository_id   TEXT NOT NULL REFERENCES repositories (id),
    report_type     TEXT NOT NULL,
    title           TEXT NOT NULL,
    content         TEXT NOT NULL,
    pdf_path        TEXT,
    template_id     TEXT,
    generated_at    TEXT
);
CREATE TABLE IF NOT EXISTS insights (
    id              TEXT PRIMARY KEY,
    repository_id   TEXT NOT NULL REFERENCES repositories (id),
    type            TEXT NOT NULL,
    title           TEXT NOT NULL,
    description     TEXT NOT NULL,
    severity        TEXT NOT NULL,
    created_at      TEXT
);
CREATE INDEX IF NOT EXISTS idx_prs_repo        ON pull_requests (repository_id);
CREATE INDEX IF NOT EXISTS idx_reports_pr      ON reports (pull_request_id);
CREATE INDEX IF NOT EXISTS idx_repo_reports    ON repository_reports (repository_id);
CREATE INDEX IF NOT EXISTS idx_insights_repo   ON insights (repository_id);
"""

_JSON_COLUMNS = {"changes", "content", "template_content"}
_BOOL_COLUMNS = {"auto_generate", "is_default"}


class SQLiteStore(BaseStore):
    """Stores every entity in a local SQLite database file.

    The database file path defaults to `.prinsight.db` in the current working
    directory. Configure via .prinsight.yml: `store_path: /path/to/prinsight.db`.
    """

    def __init__(self, db_path: str = ".prinsight.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    # ------------------------------------------------------------------ #
    # Generic row mapping                                                  #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _to_row(entity) -> dict:
        row = asdict(entity)
        for key in _JSON_COLUMNS & row.keys():
            if row[key] is not None:
                row[key] = json.dumps(row[key])
        for key in _BOOL_COLUMNS & row.keys():
            row[key] = int(bool(row[key]))
        return row

    @staticmethod
    def _from_row(cls: type[T], row: sqlite3.Row) -> T:
        values = {}
        for f in fields(cls):
            value = row[f.name]
            if f.name in _JSON_COLUMNS and value is not None:
                value = json.loads(value)
            elif f.name in _BOOL_COLUMNS:
                value = bool(value)
            values[f.name] = value
        return cls(**values)

    def _insert(self, table: str, entity: T) -> T:
        row = self._to_row(entity)
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        self._conn.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", tuple(row.values()))
        self._conn.commit()
        return entity

    def _select(self, table: str, cls: type[T], where: str = "", params: tuple = (), order: str = "") -> list[T]:
        sql = f"SELECT * FROM {table}"
        if where:
            sql += f" WHERE {where}"
        if order:
            sql += f" ORDER BY {order}"
        return [self._from_row(cls, r) for r in self._conn.execute(sql, params).fetchall()]

    def _get(self, table: str, cls: type[T], entity_id: str) -> T | None:
        rows = self._select(table, cls, "id=?", (entity_id,))
        return rows[0] if rows else None

    def _update(self, table: str, cls: type[T], entity_id: str, updates: dict) -> T | None:
        current = self._get(table, cls, entity_id)
        if current is None:
            return None
        updates = {k: v for k, v in updates.items() if k != "id"}
        updated = replace(current, **updates)  # raises TypeError on unknown fields
        row = self._to_row(updated)
        changed = {k: row[k] for k in updates}
        if changed:
            assignments = ", ".join(f"{k}=?" for k in changed)
            self._conn.execute(
                f"UPDATE {table} SET {assignments} WHERE id=?",
                (*changed.values(), entity_id),
            )
            self._conn.commit()
        return updated

    def _delete(self, table: str, entity_id: str) -> bool:
        cursor = self._conn.execute(f"DELETE FROM {table} WHERE id=?", (entity_id,))
        self._conn.commit()
        return cursor.rowcount > 0

    # ------------------------------------------------------------------ #
    # Repositories                                                         #
    # ------------------------------------------------------------------ #

    def list_repositories(self) -> list[Repository]:
        return self._select("repositories", Repository, order="created_at DESC, rowid DESC")

    def get_repository(self, repository_id: str) -> Repository | None:
        return self._get("repositories", Repository, repository_id)

    def get_repository_by_full_name(self, full_name: str) -> Repository | None:
        rows = self._select("repositories", Repository, "full_name=?", (full_name,))
        return rows[0] if rows else None

    def create_repository(self, repository: Repository) -> Repository:
        return self._insert("repositories", repository)

    def update_repository(self, repository_id: str, **updates) -> Repository | None:
        return self._update("repositories", Repository, repository_id, {**updates, "updated_at": utcnow()})

    def delete_repository(self, repository_id: str) -> bool:
        with self._conn:
            self._conn.execute(
                "DELETE FROM reports WHERE pull_request_id IN (SELECT id FROM pull_requests WHERE repository_id=?)",
                (repository_id,),
            )
            for table in ("pull_requests", "repository_reports", "insights"):
                self._conn.execute(f"DELETE FROM {table} WHERE repository_id=?", (repository_id,))
            cursor = self._conn.execute("DELETE FROM repositories WHERE id=?", (repository_id,))
        return cursor.rowcount > 0

    # ------------------------------------------------------------------ #
    # Pull requests                                                        #
    # ------------------------------------------------------------------ #

    def list_pull_requests(self, repository_id: str) -> list[PullRequest]:
        return self._select(
            "pull_requests", PullRequest, "repository_id=?", (repository_id,), order="updated_at DESC, rowid DESC"
        )

    def recent_pull_requests(self, limit: int = 20) -> list[PullRequest]:
        return self._select("pull_requests", PullRequest, order=f"updated_at DESC, rowid DESC LIMIT {int(limit)}")

    def get_pull_request(self, pull_request_id: str) -> PullRequest | None:
        return self._get("pull_requests", PullRequest, pull_request_id)

    def get_pull_request_by_github_id(self, github_id: int) -> PullRequest | None:
        rows = self._select("pull_requests", PullRequest, "github_id=?", (github_id,))
        return rows[0] if rows else None

    def create_pull_request(self, pull_request: PullRequest) -> PullRequest:
        return self._insert("pull_requests", pull_request)

    def update_pull_request(self, pull_request_id: str, **updates) -> PullRequest | None:
        return self._update("pull_requests", PullRequest, pull_request_id, updates)

    # ------------------------------------------------------------------ #
    # Reports                                                              #
    # ------------------------------------------------------------------ #

    def list_reports(self, pull_request_id: str) -> list[Report]:
        return self._select(
            "reports", Report, "pull_request_id=?", (pull_request_id,), order="generated_at DESC, rowid DESC"
        )

    def get_report(self, report_id: str) -> Report | None:
        return self._get("reports", Report, report_id)

    def create_report(self, report: Report) -> Report:
        return self._insert("reports", report)

    def update_report(self, report_id: str, **updates) -> Report | None:
        return self._update("reports", Report, report_id, updates)

    # ------------------------------------------------------------------ #
    # Repository reports                                                   #
    # ------------------------------------------------------------------ #

    def list_repository_reports(self, repository_id: str | None = None) -> list[RepositoryReport]:
        if repository_id is not None:
            return self._select(
                "repository_reports",
                RepositoryReport,
                "repository_id=?",
                (repository_id,),
                order="generated_at DESC, rowid DESC",
            )
        return self._select("repository_reports", RepositoryReport, order="generated_at DESC, rowid DESC")

    def get_repository_report(self, report_id: str) -> RepositoryReport | None:
        return self._get("repository_reports", RepositoryReport, report_id)

    def create_repository_report(self, report: RepositoryReport) -> RepositoryReport:
        return self._insert("repository_reports", report)

    def update_repository_report(self, report_id: str, **updates) -> RepositoryReport | None:
        return self._update("repository_reports", RepositoryReport, report_id, updates)

    # ------------------------------------------------------------------ #
    # Templates                                                            #
    # ------------------------------------------------------------------ #

    def list_templates(self, audience_type: str | None = None) -> list[ReportTemplate]:
        if audience_type is not None:
            return self._select(
                "report_templates",
                ReportTemplate,
                "audience_type=?",
                (audience_type,),
                order="created_at DESC, rowid DESC",
            )
        return self._select("report_templates", ReportTemplate, order="created_at DESC, rowid DESC")

    def get_template(self, template_id: str) -> ReportTemplate | None:
        return self._get("report_templates", ReportTemplate, template_id)

    def create_template(self, template: ReportTemplate) -> ReportTemplate:
        return self._insert("report_templates", template)

    def update_template(self, template_id: str, **updates) -> ReportTemplate | None:
        return self._update("report_templates", ReportTemplate, template_id, {**updates, "updated_at": utcnow()})

    def delete_template(self, template_id: str) -> bool:
        return self._delete("report_templates", template_id)

    def default_templates(self) -> list[ReportTemplate]:
        return self._select("report_templates", ReportTemplate, "is_default=1", order="audience_type")

    # ------------------------------------------------------------------ #
    # Insights                                                             #
    # ------------------------------------------------------------------ #

    def create_insight(self, insight: Insight) -> Insight:
        return self._insert("insights", insight)

    def recent_insights(self, repository_id: str | None = None, limit: int = 10) -> list[Insight]:
        order = f"created_at DESC, rowid DESC LIMIT {int(limit)}"
        if repository_id is not None:
            return self._select("insights", Insight, "repository_id=?", (repository_id,), order=order)
        return self._select("insights", Insight, order=order)

    # ------------------------------------------------------------------ #
    # Statistics                                                           #
    # ------------------------------------------------------------------ #

    def _count(self, sql: str, params: tuple = ()) -> int:
        return self._conn.execute(sql, params).fetchone()[0]

    def statistics(self) -> Statistics:
        scenarios = 0
        rows = self._conn.execute(
            "SELECT content FROM reports WHERE audience_type='qa' "
            "UNION ALL SELECT content FROM repository_reports WHERE report_type='qa_overview'"
        ).fetchall()
        for row in rows:
            content = json.loads(row["content"] or "{}")
            scenarios += len(content.get("testScenarios") or [])
        return Statistics(
            active_prs=self._count("SELECT COUNT(*) FROM pull_requests WHERE status='open'"),
            reports_generated=self._count("SELECT COUNT(*) FROM reports")
            + self._count("SELECT COUNT(*) FROM repository_reports"),
            connected_repos=self._count("SELECT COUNT(*) FROM repositories"),
            test_scenarios_generated=scenarios,
        )

    def close(self) -> None:
        self._conn.close()
