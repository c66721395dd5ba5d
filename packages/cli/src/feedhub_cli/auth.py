"""GitHub token resolution for the issue tracker mirror.

Resolution order (stops at first success):
  1. GITHUB_TOKEN environment variable (servers, CI, explicit override)
  2. `gh auth token` (GitHub CLI session on a developer machine)

No token is not an error: the tracker adapter then reports every project as
"not linked" and feedhub keeps working purely locally.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

_GH_TIMEOUT = 5  # seconds


def _gh_cli_token() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=_GH_TIMEOUT,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token() -> str | None:
    """Return a GitHub token or None. Never raises."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    token = _gh_cli_token()
    if token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    else:
        logger.debug("No GitHub token available; issue mirroring is disabled.")
    return token
