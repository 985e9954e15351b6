"""Source-control clients used by the report pipeline.

A repository is bound to exactly one client when the service needs to talk to
its host: ``GitHubClient`` for real tokens, ``DemoGitHubClient`` for the demo
sentinels. The choice is made once by ``github_client_for`` so nothing
downstream checks for magic token values.
"""

from __future__ import annotations

import zlib
from datetime import datetime, timedelta, timezone

from prinsight_core.errors import ValidationError
from prinsight_core.gh import pull_request
from prinsight_core.models import FileChange, PRDetails, PullRequestInfo

DEMO_TOKENS = frozenset({"demo", "test"})


class GitHubClient:
    def __init__(self, token: str):
        self.token = token

    def validate_access(self, repo_name: str) -> bool:
        return pull_request.validate_access(self.token, repo_name)

    def list_pull_requests(self, repo_name: str, limit: int = 50) -> list[PullRequestInfo]:
        return pull_request.list_pull_requests(self.token, repo_name, limit=limit)

    def fetch_details(self, repo_name: str, pr_number: int) -> PRDetails:
        return pull_request.fetch_pr_details(self.token, repo_name, pr_number)


# (number, title, author, state, merged?)
_DEMO_PULLS = [
    (101, "Add user authentication flow", "alice-dev", "open", False),
    (102, "Fix pagination in search results", "bob-codes", "closed", True),
    (103, "Refactor payment service error handling", "carol-eng", "open", False),
]

_DEMO_LOGIN_PATCH = """@@ -1,8 +1,21 @@
 from app.db import get_user
+from app.security import verify_password, issue_session

-def login(username, password):
-    user = get_user(username)
-    return user is not None
+
+def login(username: str, password: str):
+    user = get_user(username)
+    if user is None:
+        return None
+    if not verify_password(password, user.password_hash):
+        return None
+    return issue_session(user)"""

_DEMO_TEST_PATCH = """@@ -0,0 +1,14 @@
+from app.auth.login import login
+
+
+def test_login_rejects_unknown_user(db):
+    assert login("nobody", "secret") is None
+
+
+def test_login_rejects_wrong_password(db, user):
+    assert login(user.username, "wrong") is None
+
+
+def test_login_issues_session(db, user):
+    session = login(user.username, "correct-horse")
+    assert session.user_id == user.id"""


class DemoGitHubClient:
    """Serves synthetic pull requests without any network access."""

    _BASE_TIME = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)

    def validate_access(self, repo_name: str) -> bool:
        return True

    def list_pull_requests(self, repo_name: str, limit: int = 50) -> list[PullRequestInfo]:
        # Offset ids by a hash of the repo name so demo PRs never collide across repositories.
        id_base = zlib.crc32(repo_name.encode("utf-8")) * 1000
        pulls = []
        for idx, (number, title, author, state, merged) in enumerate(_DEMO_PULLS):
            created = self._BASE_TIME + timedelta(days=idx)
            pulls.append(
                PullRequestInfo(
                    github_id=id_base + number,
                    number=number,
                    title=title,
                    author=author,
                    author_avatar=f"https://avatars.githubusercontent.com/{author}",
                    state=state,
                    created_at=created,
                    updated_at=created + timedelta(hours=6),
                    merged_at=created + timedelta(hours=6) if merged else None,
                )
            )
        return pulls[:limit]

    def fetch_details(self, repo_name: str, pr_number: int) -> PRDetails:
        pulls = {pr.number: pr for pr in self.list_pull_requests(repo_name)}
        info = pulls.get(pr_number) or PullRequestInfo(
            github_id=pr_number,
            number=pr_number,
            title=f"Demo pull request #{pr_number}",
            author="demo-user",
            state="open",
            created_at=self._BASE_TIME,
            updated_at=self._BASE_TIME,
        )
        files = [
            FileChange("app/auth/login.py", "modified", additions=10, deletions=3, patch=_DEMO_LOGIN_PATCH),
            FileChange("tests/test_login.py", "added", additions=14, deletions=0, patch=_DEMO_TEST_PATCH),
        ]
        diff = "\n".join(
            f"diff --git a/{f.filename} b/{f.filename}\n--- a/{f.filename}\n+++ b/{f.filename}\n{f.patch}"
            for f in files
        )
        return PRDetails(**vars(info), files=files, diff=diff)


def is_demo(token: str | None, repo_name: str) -> bool:
    if token and token.strip().lower() in DEMO_TOKENS:
        return True
    return not token and "demo" in repo_name.lower()


def github_client_for(token: str | None, repo_name: str, fallback_token: str | None = None):
    """Pick the client for a repository.

    An empty stored token falls back to ``fallback_token`` (GITHUB_TOKEN or the
    gh CLI session) unless the repository is a demo repository.
    """
    if is_demo(token, repo_name):
        return DemoGitHubClient()
    resolved = token or fallback_token
    if not resolved:
        raise ValidationError(
            f"No GitHub token available for {repo_name}. Store one on the repository or set GITHUB_TOKEN."
        )
    return GitHubClient(resolved)
