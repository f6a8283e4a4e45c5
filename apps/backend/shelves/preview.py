"""
Working Tree Preview
====================

Read-only summaries of uncommitted changes, used for confirmation prompts
and to pick the layer flags for a save.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable
from pathlib import Path

from core.debug import debug_detailed
from core.git_executable import run_git

from .errors import GitCommandError
from .git_output import parse_name_list, parse_numstat, parse_porcelain_entries
from .models import PreviewSummary

logger = logging.getLogger(__name__)
MODULE = "shelves.preview"


def mixed_paths(staged: Iterable[str], unstaged: Iterable[str]) -> set[str]:
    """Paths that have both staged and unstaged changes."""
    return set(staged) & set(unstaged)


class PreviewCalculator:
    """Computes staged/unstaged/untracked change summaries for a repository."""

    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir)

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        result = run_git(args, cwd=self.project_dir)
        if result.returncode != 0:
            raise GitCommandError(
                args, result.returncode, result.stdout or "", result.stderr or ""
            )
        return result

    def compute_preview(self, include_untracked: bool = False) -> PreviewSummary:
        """Summarize the working tree.

        Args:
            include_untracked: Also list untracked (non-ignored) files

        Raises:
            GitCommandError: a read failed; callers must not treat that as
                "no changes"
        """
        staged = parse_numstat(
            self._run(["diff", "--cached", "--numstat", "-z", "--no-renames"]).stdout
        )
        unstaged = parse_numstat(
            self._run(["diff", "--numstat", "-z", "--no-renames"]).stdout
        )

        untracked: list[str] = []
        if include_untracked:
            untracked = parse_name_list(
                self._run(["ls-files", "--others", "--exclude-standard", "-z"]).stdout
            )

        summary = PreviewSummary(staged=staged, unstaged=unstaged, untracked=untracked)
        debug_detailed(
            MODULE,
            "Computed preview",
            staged=len(staged),
            unstaged=len(unstaged),
            untracked=len(untracked),
        )
        return summary

    def staged_and_unstaged_paths(self) -> tuple[set[str], set[str]]:
        staged = parse_name_list(
            self._run(["diff", "--cached", "--name-only", "-z"]).stdout
        )
        unstaged = parse_name_list(self._run(["diff", "--name-only", "-z"]).stdout)
        return set(staged), set(unstaged)

    def detect_mixed_changes(self) -> bool:
        """Check if any path has both staged and unstaged changes.

        git stash push --staged cannot shelve such paths cleanly.
        """
        staged, unstaged = self.staged_and_unstaged_paths()
        return bool(mixed_paths(staged, unstaged))

    def _status_codes(self) -> list[str]:
        status = self._run(["status", "--porcelain", "-z"])
        return [code for code, _path, _orig in parse_porcelain_entries(status.stdout)]

    def has_changes(self) -> bool:
        return bool(self._status_codes())

    def has_untracked_files(self) -> bool:
        return "??" in self._status_codes()

    def has_tracked_changes(self) -> bool:
        return any(code != "??" for code in self._status_codes())

    def has_staged_changes(self) -> bool:
        # --quiet exits 1 when the index differs from HEAD
        result = run_git(["diff", "--cached", "--quiet"], cwd=self.project_dir)
        if result.returncode not in (0, 1):
            raise GitCommandError(
                ["diff", "--cached", "--quiet"],
                result.returncode,
                result.stdout or "",
                result.stderr or "",
            )
        return result.returncode == 1


def format_preview(
    summary: PreviewSummary,
    show_staged: bool = True,
    show_unstaged: bool = True,
    show_untracked: bool = True,
) -> str:
    """Render a preview for a confirmation prompt."""
    lines: list[str] = []
    total_files = 0
    total_additions = 0
    total_deletions = 0

    if show_staged and summary.staged:
        lines.append("Staged:")
        for entry in summary.staged:
            lines.append(f"   ✓ {entry.path} (+{entry.additions} -{entry.deletions})")
            total_files += 1
            total_additions += entry.additions
            total_deletions += entry.deletions
        lines.append("")

    if show_unstaged and summary.unstaged:
        lines.append("Unstaged:")
        for entry in summary.unstaged:
            lines.append(f"   • {entry.path} (+{entry.additions} -{entry.deletions})")
            total_files += 1
            total_additions += entry.additions
            total_deletions += entry.deletions
        lines.append("")

    if show_untracked and summary.untracked:
        lines.append("Untracked:")
        for path in summary.untracked:
            lines.append(f"   + {path}")
            total_files += 1
        lines.append("")

    if total_files > 0:
        lines.append(
            f"Total: {total_files} file(s), +{total_additions} -{total_deletions}"
        )

    return "\n".join(lines)
