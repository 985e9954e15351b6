"""Fallback GitHub token resolution.

A repository normally carries its own token. When the stored token is empty,
the service falls back to a process-wide token resolved here, in order:
  1. GITHUB_TOKEN environment variable
  2. `gh auth token` (GitHub CLI session, after `gh auth login`)
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def resolve_github_token() -> str | None:
    """Return the fallback GitHub token or None if no source is available.

    Never raises: a missing fallback only matters for repositories stored
    without a token, and the service reports that case itself.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None

    if result.returncode == 0 and result.stdout.strip():
        logger.debug("Resolved fallback GitHub token via gh CLI session.")
        return result.stdout.strip()
    return None
