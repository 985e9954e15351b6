"""Thin PyGithub wrappers for reading pull requests.

Every host failure is translated into the prinsight error taxonomy and
re-raised immediately; nothing here retries.
"""

from __future__ import annotations

import logging

import requests
from github import Auth, Github, GithubException

from prinsight_core.errors import AuthError, NotFoundError, PRInsightError, UpstreamError
from prinsight_core.models import FileChange, PRDetails, PullRequestInfo

logger = logging.getLogger(__name__)

_API_URL = "https://api.github.com"
_DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"
_USER_AGENT = "PR-Insight-App"
# Matches PyGithub's own default so the diff download behaves like the other calls.
_TIMEOUT = 15


def _client(token: str) -> Github:
    return Github(auth=Auth.Token(token), retry=None, user_agent=_USER_AGENT)


def error_for_status(status: int | None, what: str) -> PRInsightError:
    if status in (401, 403):
        return AuthError(f"GitHub rejected the token while fetching {what} (HTTP {status})")
    if status == 404:
        return NotFoundError(f"{what} not found on GitHub")
    return UpstreamError(f"GitHub API error while fetching {what} (HTTP {status})")


def get_repo(repo_name: str, token: str, lazy: bool = False):
    return _client(token).get_repo(repo_name, lazy=lazy)


def validate_access(token: str, repo_name: str) -> bool:
    """Return True if the token can read the repository."""
    try:
        get_repo(repo_name, token)
    except GithubException as e:
        logger.warning("Repository validation failed for %s: HTTP %s", repo_name, e.status)
        return False
    except requests.RequestException as e:
        logger.warning("Repository validation failed for %s: %s", repo_name, e)
        return False
    return True


def _to_info(pr) -> PullRequestInfo:
    user = pr.user
    return PullRequestInfo(
        github_id=pr.id,
        number=pr.number,
        title=pr.title or "",
        author=user.login if user else "unknown",
        author_avatar=user.avatar_url if user else None,
        state=pr.state,
        created_at=pr.created_at,
        updated_at=pr.updated_at,
        merged_at=pr.merged_at,
    )


def list_pull_requests(token: str, repo_name: str, limit: int = 50) -> list[PullRequestInfo]:
    """Return up to ``limit`` pull requests in any state, most recently updated first."""
    try:
        repo = get_repo(repo_name, token, lazy=True)
        pulls = repo.get_pulls(state="all", sort="updated", direction="desc")
        return [_to_info(pr) for pr in pulls[:limit]]
    except GithubException as e:
        logger.error("Listing pull requests for %s failed: HTTP %s", repo_name, e.status)
        raise error_for_status(e.status, f"pull requests of {repo_name}") from e
    except requests.RequestException as e:
        logger.error("Listing pull requests for %s failed: %s", repo_name, e)
        raise UpstreamError(f"Could not reach GitHub while listing pull requests of {repo_name}: {e}") from e


def get_raw_diff(token: str, repo_name: str, pr_number: int) -> str:
    """Download the unified diff of a pull request."""
    try:
        response = requests.get(
            f"{_API_URL}/repos/{repo_name}/pulls/{pr_number}",
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": _DIFF_MEDIA_TYPE,
                "User-Agent": _USER_AGENT,
            },
            timeout=_TIMEOUT,
        )
    except requests.RequestException as e:
        raise UpstreamError(f"Could not download diff of {repo_name}#{pr_number}: {e}") from e
    if not response.ok:
        logger.error("Diff download for %s#%d failed: HTTP %s", repo_name, pr_number, response.status_code)
        raise error_for_status(response.status_code, f"diff of {repo_name}#{pr_number}")
    return response.text


def fetch_pr_details(token: str, repo_name: str, pr_number: int) -> PRDetails:
    """Fetch PR metadata, its changed-file list and the raw unified diff.

    Three dependent host calls; per-file addition/deletion counts are summed by
    PRDetails into PR-level totals.
    """
    what = f"{repo_name}#{pr_number}"
    try:
        repo = get_repo(repo_name, token, lazy=True)
        pr = repo.get_pull(pr_number)
        files = [
            FileChange(
                filename=f.filename,
                status=f.status,
                additions=f.additions,
                deletions=f.deletions,
                patch=f.patch,
            )
            for f in pr.get_files()
        ]
    except GithubException as e:
        logger.error("Fetching %s failed: HTTP %s", what, e.status)
        raise error_for_status(e.status, what) from e
    except requests.RequestException as e:
        logger.error("Fetching %s failed: %s", what, e)
        raise UpstreamError(f"Could not reach GitHub while fetching {what}: {e}") from e

    diff = get_raw_diff(token, repo_name, pr_number)
    info = _to_info(pr)
    return PRDetails(**vars(info), files=files, diff=diff)
