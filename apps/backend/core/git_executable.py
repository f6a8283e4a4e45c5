#!/usr/bin/env python3
"""
Git Executable Finder
=====================

Utility to find the git executable and run git commands with a bounded
timeout. Every shelf primitive goes through run_git().
"""

import os
import shutil
import subprocess
from pathlib import Path

from core.config import get_git_timeout

_cached_git_path: str | None = None

# Variables that redirect git away from the repository in cwd.
_REPO_REDIRECT_VARS = (
    "GIT_DIR",
    "GIT_WORK_TREE",
    "GIT_INDEX_FILE",
    "GIT_OBJECT_DIRECTORY",
    "GIT_ALTERNATE_OBJECT_DIRECTORIES",
)


def invalidate_git_cache() -> None:
    """Invalidate the cached git executable path.

    Useful when GIT_PATH has changed or git was reinstalled.
    """
    global _cached_git_path
    _cached_git_path = None


def get_git_executable() -> str | None:
    """Find the git executable.

    Priority order:
    1. GIT_PATH env var
    2. shutil.which("git")

    Caches the result after the first successful find.
    """
    global _cached_git_path

    if _cached_git_path is not None and os.path.isfile(_cached_git_path):
        return _cached_git_path

    env_path = os.environ.get("GIT_PATH")
    if env_path and os.path.isfile(env_path):
        _cached_git_path = env_path
    else:
        _cached_git_path = shutil.which("git")
    return _cached_git_path


def get_isolated_git_env() -> dict[str, str]:
    """Return a copy of the environment without repository redirect variables."""
    env = os.environ.copy()
    for key in _REPO_REDIRECT_VARS:
        env.pop(key, None)
    return env


def run_git(
    args: list[str],
    cwd: str | Path | None = None,
    timeout: float | None = None,
    input_data: str | None = None,
) -> subprocess.CompletedProcess:
    """Run a git command and return the result.

    Args:
        args: Git command arguments (without 'git' prefix)
        cwd: Working directory for the command
        timeout: Command timeout in seconds (default: GITMASTER_GIT_TIMEOUT or 60)
        input_data: Optional string data to pass to stdin

    Returns:
        CompletedProcess with command results. On timeout or a missing git
        binary, returns a CompletedProcess with returncode=-1 and the reason
        in stderr.
    """
    if timeout is None:
        timeout = get_git_timeout()

    git = get_git_executable()
    if not git:
        return subprocess.CompletedProcess(
            args=["git"] + args,
            returncode=-1,
            stdout="",
            stderr="Git command not found. Is Git installed and in your PATH?",
        )
    try:
        return subprocess.run(
            [git] + args,
            cwd=str(cwd) if cwd is not None else None,
            input=input_data,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            env=get_isolated_git_env(),
        )
    except subprocess.TimeoutExpired:
        return subprocess.CompletedProcess(
            args=[git] + args,
            returncode=-1,
            stdout="",
            stderr=f"Git command timed out after {timeout} seconds: git {' '.join(args)}",
        )
    except FileNotFoundError:
        return subprocess.CompletedProcess(
            args=[git] + args,
            returncode=-1,
            stdout="",
            stderr="Git executable not found. Is Git installed and in your PATH?",
        )
