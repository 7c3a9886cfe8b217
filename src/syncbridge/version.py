"""
Version management for SyncBridge.
"""

import os
import subprocess
from typing import List, Optional

# Base version - update this for major releases
BASE_VERSION = "0.3.0"


def _git(args: List[str]) -> Optional[str]:
    """Run a git command from the repository root; None when git is unavailable or fails."""
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            cwd=os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
        )
    except OSError:
        return None
    if result.returncode == 0:
        return result.stdout.strip() or None
    return None


def get_git_commit_sha() -> Optional[str]:
    return _git(["rev-parse", "--short", "HEAD"])


def get_git_tag() -> Optional[str]:
    return _git(["describe", "--tags", "--exact-match"])


def get_version() -> str:
    """
    Get the current version.

    - If there's a git tag, use that (without a leading 'v')
    - Otherwise use base version + git commit SHA
    - Fallback to base version
    """
    git_tag = get_git_tag()
    if git_tag:
        return git_tag[1:] if git_tag.startswith("v") else git_tag

    commit_sha = get_git_commit_sha()
    if commit_sha:
        return f"{BASE_VERSION}-{commit_sha}"

    return BASE_VERSION


__version__ = get_version()
