"""
Shelf Data Models
=================

Typed records parsed from git stash and diff output.

A Snapshot's position is a live index into the stash stack. It stays valid
only until the next save, discard or apply-and-discard; never hold one
across a stack mutation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .positions import stash_ref


@dataclass(frozen=True)
class Snapshot:
    """One entry of the stash stack."""

    position: int
    label: str
    origin_branch: str
    file_count: int = 0
    additions: int = 0
    deletions: int = 0
    created_at: datetime | None = None
    has_untracked_layer: bool = False

    @property
    def ref(self) -> str:
        return stash_ref(self.position)


@dataclass(frozen=True)
class ChangeEntry:
    """Line stats for one changed path."""

    path: str
    additions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class ShelfFile:
    """A file stored in a shelf. Status "A" marks the untracked layer."""

    path: str
    status: str
    additions: int = 0
    deletions: int = 0


@dataclass
class PreviewSummary:
    """Staged, unstaged and untracked changes in the working tree."""

    staged: list[ChangeEntry] = field(default_factory=list)
    unstaged: list[ChangeEntry] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.staged or self.unstaged or self.untracked)

    @property
    def has_untracked(self) -> bool:
        return bool(self.untracked)

    @property
    def file_count(self) -> int:
        return len(self.staged) + len(self.unstaged) + len(self.untracked)

    @property
    def total_additions(self) -> int:
        return sum(e.additions for e in self.staged) + sum(
            e.additions for e in self.unstaged
        )

    @property
    def total_deletions(self) -> int:
        return sum(e.deletions for e in self.staged) + sum(
            e.deletions for e in self.unstaged
        )

    @property
    def staged_paths(self) -> set[str]:
        return {e.path for e in self.staged}

    @property
    def unstaged_paths(self) -> set[str]:
        return {e.path for e in self.unstaged}
