"""
Shelf Listing Models
====================

Structured, JSON-serialisable view of the shelf stack for tools and the
`list --json` command.

Usage:
    listing = list_shelves(GitStashStore(repo), max_shelves=10)
    print(listing.model_dump_json(indent=2))
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .store import GitStashStore

MAX_SHELVES_LIMIT = 200
MAX_FILES_PER_SHELF_LIMIT = 5000


class ShelfFileEntry(BaseModel):
    """A file stored in a shelf."""

    path: str
    status: str = Field(description="M for tracked changes, A for untracked files")
    additions: int = 0
    deletions: int = 0


class ShelfSummary(BaseModel):
    """One shelf and (a bounded slice of) its files."""

    index: str = Field(description="Stash reference, e.g. stash@{0}")
    position: int = Field(ge=0)
    name: str
    branch: str
    file_count: int = Field(ge=0)
    additions: int = 0
    deletions: int = 0
    created_at: str | None = None
    has_untracked: bool = False
    files: list[ShelfFileEntry] = Field(default_factory=list)


class ShelfListing(BaseModel):
    shelves: list[ShelfSummary] = Field(default_factory=list)
    total: int = Field(ge=0, description="Number of shelves before truncation")


def _clamp(n: int, low: int, high: int) -> int:
    return max(low, min(high, n))


def list_shelves(
    store: GitStashStore,
    max_shelves: int = 50,
    max_files_per_shelf: int = 500,
) -> ShelfListing:
    """Build a listing of the newest shelves with their files.

    Limits are clamped to [1, 200] shelves and [1, 5000] files per shelf.
    """
    max_shelves = _clamp(max_shelves, 1, MAX_SHELVES_LIMIT)
    max_files_per_shelf = _clamp(max_files_per_shelf, 1, MAX_FILES_PER_SHELF_LIMIT)

    snapshots = store.list()
    shelves = []
    for snapshot in snapshots[:max_shelves]:
        files = store.files(snapshot.position)
        shelves.append(
            ShelfSummary(
                index=snapshot.ref,
                position=snapshot.position,
                name=snapshot.label,
                branch=snapshot.origin_branch,
                file_count=snapshot.file_count,
                additions=snapshot.additions,
                deletions=snapshot.deletions,
                created_at=(
                    snapshot.created_at.isoformat() if snapshot.created_at else None
                ),
                has_untracked=snapshot.has_untracked_layer,
                files=[
                    ShelfFileEntry(
                        path=f.path,
                        status=f.status,
                        additions=f.additions,
                        deletions=f.deletions,
                    )
                    for f in files[:max_files_per_shelf]
                ],
            )
        )

    return ShelfListing(shelves=shelves, total=len(snapshots))
