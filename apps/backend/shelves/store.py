"""
Git Stash Store
===============

Thin wrapper over the git stash primitives. No business logic lives here:
each method maps to one git invocation (save_untracked_only is the only
composite), raises on failure, and leaves sequencing to the caller.

Primitives:
- save: git stash push
- apply: git stash apply --index
- discard: git stash drop
- apply_and_discard: git stash pop --index
- list: git stash list (always a fresh read, never cached)
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from core.debug import debug, debug_error, debug_verbose
from core.git_executable import run_git

from .conflicts import classify
from .errors import ConflictError, FailureKind, GitCommandError, NoChangesError
from .git_output import (
    FIELD_SEP,
    parse_commit_date,
    parse_dropped_sha,
    parse_numstat,
    parse_porcelain_entries,
    parse_porcelain_paths,
    parse_stash_selector,
    parse_stash_subject,
)
from .models import ShelfFile, Snapshot
from .positions import stash_ref

logger = logging.getLogger(__name__)
MODULE = "shelves.store"

_NO_CHANGES_MARKERS = ("no local changes to save", "no staged changes")


class GitStashStore:
    """
    Stash primitives for one repository.

    Example:
        store = GitStashStore(Path("/path/to/repo"))
        store.save("wip: parser", include_untracked=True)
        for snapshot in store.list():
            print(snapshot.ref, snapshot.label)
    """

    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir)

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        """Run git in the repository, raising GitCommandError on failure."""
        debug_verbose(MODULE, "git", args=args)
        result = run_git(args, cwd=self.project_dir)
        if result.returncode != 0:
            debug_error(
                MODULE,
                "git command failed",
                args=args,
                returncode=result.returncode,
                stderr=(result.stderr or "")[:200],
            )
            raise GitCommandError(
                args, result.returncode, result.stdout or "", result.stderr or ""
            )
        return result

    def _raise_classified(self, error: GitCommandError) -> None:
        if classify(error) is FailureKind.CONFLICT:
            raise ConflictError(
                "Your local changes would be overwritten. "
                "Commit or shelve them first, then try again.\n"
                f"{error.stderr.strip()}"
            ) from error
        raise error

    # ==================== Primitives ====================

    def save(
        self,
        label: str,
        include_untracked: bool = False,
        keep_staged_in_working_tree: bool = False,
        staged_only: bool = False,
        paths: Sequence[str] | None = None,
        exclude_paths: Sequence[str] | None = None,
    ) -> None:
        """Insert a new shelf at position 0.

        Args:
            label: Shelf message
            include_untracked: Also capture untracked files (-u)
            keep_staged_in_working_tree: Leave staged changes in place (--keep-index)
            staged_only: Capture only the index (--staged, git 2.35+); ignores
                the two flags above since git cannot combine them
            paths: Restrict the shelf to these paths
            exclude_paths: Leave these paths in the working tree; everything
                else (or everything under `paths`) is shelved

        Raises:
            NoChangesError: nothing matched the requested layer
            GitCommandError: git failed
        """
        args = ["stash", "push"]
        if staged_only:
            args.append("--staged")
        else:
            if include_untracked:
                args.append("-u")
            if keep_staged_in_working_tree:
                args.append("--keep-index")
        args.extend(["-m", label])
        pathspec = list(paths or [])
        if exclude_paths:
            if not pathspec:
                pathspec.append(":(top)")
            pathspec.extend(f":(exclude,literal){p}" for p in exclude_paths)
        if pathspec:
            args.append("--")
            args.extend(pathspec)

        result = self._run(args)

        output = f"{result.stdout}\n{result.stderr}".lower()
        if any(marker in output for marker in _NO_CHANGES_MARKERS):
            raise NoChangesError(f"No changes to shelve for '{label}'")
        logger.info(f"Saved shelf '{label}' at stash@{{0}}")

    def apply(self, position: int) -> None:
        """Copy a shelf onto the working tree without removing it.

        Raises:
            ConflictError: a target path has a conflicting local modification
            GitCommandError: any other failure
        """
        ref = stash_ref(position)
        try:
            self._run(["stash", "apply", "--index", ref])
        except GitCommandError as e:
            self._raise_classified(e)
        logger.info(f"Applied {ref}")

    def discard(self, position: int) -> str | None:
        """Remove a shelf without touching the working tree.

        Returns:
            The dropped stash commit id, when git reports it

        Raises:
            GitCommandError: position out of range or git failed
        """
        ref = stash_ref(position)
        result = self._run(["stash", "drop", ref])
        sha = parse_dropped_sha(result.stdout or "")
        logger.info(f"Dropped {ref}" + (f" ({sha})" if sha else ""))
        return sha

    def apply_and_discard(self, position: int) -> None:
        """Apply a shelf and remove it in one git primitive (stash pop).

        On conflict git keeps the entry, so nothing is discarded.
        """
        ref = stash_ref(position)
        try:
            self._run(["stash", "pop", "--index", ref])
        except GitCommandError as e:
            self._raise_classified(e)
        logger.info(f"Popped {ref}")

    def list(self) -> list[Snapshot]:
        """Read the stash stack, ordered by position ascending."""
        result = self._run(
            ["stash", "list", f"--format=%gd{FIELD_SEP}%ci{FIELD_SEP}%s"]
        )
        snapshots = []
        for line in result.stdout.split("\n"):
            if not line.strip():
                continue
            parts = line.split(FIELD_SEP, 2)
            if len(parts) < 3:
                continue
            position = parse_stash_selector(parts[0])
            if position is None:
                continue
            branch, label = parse_stash_subject(parts[2])

            tracked = self._tracked_files(position)
            untracked = self._untracked_layer_files(position)
            files = tracked + (untracked or [])

            snapshots.append(
                Snapshot(
                    position=position,
                    label=label,
                    origin_branch=branch,
                    file_count=len(files),
                    additions=sum(f.additions for f in files),
                    deletions=sum(f.deletions for f in files),
                    created_at=parse_commit_date(parts[1]),
                    has_untracked_layer=untracked is not None,
                )
            )

        snapshots.sort(key=lambda s: s.position)
        debug(MODULE, "Listed shelves", count=len(snapshots))
        return snapshots

    # ==================== Reads ====================

    def _tracked_files(self, position: int) -> list[ShelfFile]:
        result = self._run(
            ["stash", "show", "--numstat", "-z", "--no-renames", stash_ref(position)]
        )
        return [
            ShelfFile(e.path, "M", e.additions, e.deletions)
            for e in parse_numstat(result.stdout)
        ]

    def _has_untracked_parent(self, position: int) -> bool:
        """Check for the untracked layer commit (third parent of the shelf).

        rev-parse exits 1 when the commit does not exist; anything else is a
        failed read and raises.
        """
        args = ["rev-parse", "--verify", "--quiet", f"{stash_ref(position)}^3"]
        result = run_git(args, cwd=self.project_dir)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise GitCommandError(
            args, result.returncode, result.stdout or "", result.stderr or ""
        )

    def _untracked_layer_files(self, position: int) -> list[ShelfFile] | None:
        """Files of the untracked layer, or None if the shelf has none."""
        if not self._has_untracked_parent(position):
            return None
        result = self._run(
            [
                "show",
                "--numstat",
                "-z",
                "--no-renames",
                "--format=",
                f"{stash_ref(position)}^3",
            ]
        )
        return [
            ShelfFile(e.path, "A", e.additions, e.deletions)
            for e in parse_numstat(result.stdout)
        ]

    def files(self, position: int) -> list[ShelfFile]:
        """List the files stored in a shelf, tracked layer first."""
        return self._tracked_files(position) + (
            self._untracked_layer_files(position) or []
        )

    def has_untracked_layer(self, position: int) -> bool:
        """Check if a shelf captured untracked files."""
        return self._has_untracked_parent(position)

    def find_by_label(self, label: str) -> Snapshot | None:
        """Find the most recent shelf with this label."""
        for snapshot in self.list():
            if snapshot.label == label:
                return snapshot
        return None

    def check_conflicts(self, position: int) -> list[str]:
        """Paths in a shelf that also have uncommitted changes right now."""
        shelf_paths = {f.path for f in self.files(position)}
        result = self._run(["status", "--porcelain", "-z"])
        current = parse_porcelain_paths(result.stdout)
        return sorted(shelf_paths & current)

    # ==================== Composites ====================

    def save_untracked_only(self, label: str) -> None:
        """Shelve only untracked files, leaving tracked changes in place.

        With tracked changes present this takes three primitives: park the
        tracked changes, shelve everything with -u, then pop the parked
        entry (now at position 1) back.
        """
        status = self._run(["status", "--porcelain", "-z"])
        codes = [code for code, _path, _orig in parse_porcelain_entries(status.stdout)]
        if "??" not in codes:
            raise NoChangesError("No untracked files to shelve")

        has_tracked = any(code != "??" for code in codes)
        if not has_tracked:
            self.save(label, include_untracked=True)
            return

        self.save("temp-tracked")
        self.save(label, include_untracked=True)
        self.apply_and_discard(1)
