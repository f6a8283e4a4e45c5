"""
Shelf Error Taxonomy
====================

Every failure surfaced by the shelf store and the reconciliation engine is a
ShelfError with a machine-checkable kind and, for saga failures, the step
number that failed.

- NoChangesError: nothing to shelve; no stash mutation was attempted
- ConflictError: applying would overwrite local modifications; prior stack
  topology was restored (fully or best-effort), safe to retry by hand
- FatalError: unexpected primitive failure unrelated to overwrite conflicts
- CleanupFailureError: a failure whose compensating action also failed;
  the stash stack may be inconsistent
- GitCommandError: raw non-zero exit from a git primitive, before
  classification
"""

from __future__ import annotations

from enum import Enum


class FailureKind(Enum):
    NO_CHANGES = "no_changes"
    CONFLICT = "conflict"
    FATAL = "fatal"
    CLEANUP_FAILURE = "cleanup_failure"


class ShelfError(Exception):
    """Base error for shelf operations."""

    kind = FailureKind.FATAL

    def __init__(self, message: str, step: int | None = None):
        super().__init__(message)
        self.message = message
        self.step = int(step) if step is not None else None

    def __str__(self) -> str:
        if self.step is not None:
            return f"[step {self.step}] {self.message}"
        return self.message


class NoChangesError(ShelfError):
    """There are no uncommitted changes matching the requested layer."""

    kind = FailureKind.NO_CHANGES


class ConflictError(ShelfError):
    """Applying a shelf would overwrite local modifications."""

    kind = FailureKind.CONFLICT


class FatalError(ShelfError):
    """A primitive failed for a reason other than an overwrite conflict."""

    kind = FailureKind.FATAL


class GitCommandError(ShelfError):
    """A git command exited non-zero."""

    kind = FailureKind.FATAL

    def __init__(
        self,
        args: list[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ):
        self.git_args = list(args)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = (stderr or stdout or "<no output>").strip()
        super().__init__(f"git {' '.join(args)} failed ({returncode}): {detail}")

    @property
    def output(self) -> str:
        """Combined stdout and stderr, for signature matching."""
        return f"{self.stdout}\n{self.stderr}"


class CleanupFailureError(ShelfError):
    """A primary failure whose compensation also failed.

    Both outcomes are kept so neither message is lost.
    """

    kind = FailureKind.CLEANUP_FAILURE

    def __init__(self, primary: ShelfError, cleanup_outcome: Exception | str):
        self.primary = primary
        self.cleanup_outcome = cleanup_outcome
        super().__init__(
            f"{primary} (cleanup also failed: {cleanup_outcome}). "
            "The stash list may be inconsistent; inspect it with 'git stash list'.",
            step=primary.step,
        )

    def __str__(self) -> str:
        return self.message
