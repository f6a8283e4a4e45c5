"""
Shelves Package
===============

Shelf (git stash) management: the stash primitives, working-tree previews,
position arithmetic, conflict classification, and the engine that merges
current changes into an existing shelf.
"""

from .conflicts import classify
from .errors import (
    CleanupFailureError,
    ConflictError,
    FailureKind,
    FatalError,
    GitCommandError,
    NoChangesError,
    ShelfError,
)
from .listing import ShelfListing, list_shelves
from .models import ChangeEntry, PreviewSummary, ShelfFile, Snapshot
from .positions import shift, stash_ref
from .preview import PreviewCalculator, format_preview, mixed_paths
from .reconcile import TEMP_LABEL, ReconciliationEngine, SagaStep
from .store import GitStashStore

__all__ = [
    # Models
    "Snapshot",
    "ChangeEntry",
    "ShelfFile",
    "PreviewSummary",
    # Errors
    "FailureKind",
    "ShelfError",
    "NoChangesError",
    "ConflictError",
    "FatalError",
    "GitCommandError",
    "CleanupFailureError",
    # Components
    "GitStashStore",
    "PreviewCalculator",
    "ReconciliationEngine",
    "SagaStep",
    "TEMP_LABEL",
    # Functions
    "classify",
    "shift",
    "stash_ref",
    "format_preview",
    "mixed_paths",
    "list_shelves",
    "ShelfListing",
]
