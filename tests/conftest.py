#!/usr/bin/env python3
"""
Pytest Configuration and Shared Fixtures
========================================

Provides temporary git repositories for shelf tests.
"""

import os
import shutil
import subprocess
import sys
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

# Add apps/backend directory to path for imports
_backend_dir = Path(__file__).parent.parent / "apps" / "backend"
if str(_backend_dir) not in sys.path:
    sys.path.insert(0, str(_backend_dir))

# Add tests directory to path for shelf_fakes
_tests_dir = Path(__file__).parent
if str(_tests_dir) not in sys.path:
    sys.path.insert(0, str(_tests_dir))

from shelf_fakes import git  # noqa: E402


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory that's cleaned up after the test."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def temp_git_repo(temp_dir: Path) -> Generator[Path, None, None]:
    """Create a temporary git repository on branch 'main' with one commit.

    Git environment variables that point at another repository (set by
    hooks when tests run inside a worktree) are cleared for the duration.
    """
    orig_env = {}

    git_vars_to_clear = [
        "GIT_DIR",
        "GIT_WORK_TREE",
        "GIT_INDEX_FILE",
        "GIT_OBJECT_DIRECTORY",
        "GIT_ALTERNATE_OBJECT_DIRECTORIES",
    ]
    for key in git_vars_to_clear:
        orig_env[key] = os.environ.get(key)
        if key in os.environ:
            del os.environ[key]

    # Stop git from discovering a parent .git directory
    orig_env["GIT_CEILING_DIRECTORIES"] = os.environ.get("GIT_CEILING_DIRECTORIES")
    os.environ["GIT_CEILING_DIRECTORIES"] = str(temp_dir.parent)

    try:
        subprocess.run(["git", "init"], cwd=temp_dir, capture_output=True, check=True)
        subprocess.run(
            ["git", "config", "user.email", "test@example.com"],
            cwd=temp_dir,
            capture_output=True,
        )
        subprocess.run(
            ["git", "config", "user.name", "Test User"],
            cwd=temp_dir,
            capture_output=True,
        )

        for name in ("README.md", "a.txt", "b.txt", "c.txt"):
            (temp_dir / name).write_text(f"# {name}\n", encoding="utf-8")
        subprocess.run(["git", "add", "."], cwd=temp_dir, capture_output=True)
        subprocess.run(
            ["git", "commit", "-m", "Initial commit"], cwd=temp_dir, capture_output=True
        )

        # Ensure branch is named 'main' (some git configs default to 'master')
        subprocess.run(
            ["git", "branch", "-M", "main"], cwd=temp_dir, capture_output=True
        )

        yield temp_dir
    finally:
        for key, value in orig_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value


@pytest.fixture
def make_shelf(temp_git_repo: Path):
    """Fixture to create shelves in the test repo.

    Usage:
        def test_something(make_shelf):
            make_shelf("label", files={"a.txt": "changed"})
    """

    def _make_shelf(
        label: str,
        files: dict[str, str] | None = None,
        untracked: dict[str, str] | None = None,
    ):
        for file_path, content in (files or {}).items():
            (temp_git_repo / file_path).write_text(content, encoding="utf-8")
        for file_path, content in (untracked or {}).items():
            (temp_git_repo / file_path).write_text(content, encoding="utf-8")

        args = ["stash", "push"]
        if untracked:
            args.append("-u")
        git(temp_git_repo, *args, "-m", label)

    return _make_shelf


@pytest.fixture
def stage_files(temp_git_repo: Path):
    """Fixture to create and stage files in the test repo."""

    def _stage_files(files: dict[str, str]):
        for file_path, content in files.items():
            full_path = temp_git_repo / file_path
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_text(content, encoding="utf-8")
        subprocess.run(["git", "add", "."], cwd=temp_git_repo, capture_output=True)

    return _stage_files
