"""
Shelf Reconciliation
====================

Merges the current uncommitted changes into an existing shelf.

git has no primitive for "add these changes to stash@{N}", and the stash
primitives are individually non-transactional with ordinal addressing that
shifts on every insert and removal. The engine composes them as a saga in
which every step has an explicit compensating action:

    1. save RECONCILE_TEMP          fail -> nothing changed
    2. shifted = target + 1         (pure)
    3. apply stash@{shifted}        fail -> pop temp back
    4. drop stash@{shifted}         fail -> pop temp back (best effort)
    5. pop stash@{0}                fail -> drop temp by label (best effort)
    6. save combined label          fail -> changes stay in the working tree

Failures raise NoChangesError, ConflictError, FatalError, or
CleanupFailureError when a compensating action also failed. Nothing is
retried. The refresh callback fires once per call, whatever the outcome.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import IntEnum
from typing import Protocol

from core.debug import debug, debug_error, debug_section, debug_success, debug_warning

from .conflicts import classify
from .errors import (
    CleanupFailureError,
    ConflictError,
    FailureKind,
    FatalError,
    NoChangesError,
    ShelfError,
)
from .models import PreviewSummary, Snapshot
from .positions import shift, stash_ref

logger = logging.getLogger(__name__)
MODULE = "shelves.reconcile"

TEMP_LABEL = "RECONCILE_TEMP"

# Step 1 inserts exactly one entry above the target.
TEMP_INSERTIONS = 1


class SagaStep(IntEnum):
    PRECONDITION = 0
    SAVE_TEMP = 1
    SHIFT_TARGET = 2
    APPLY_TARGET = 3
    DISCARD_TARGET = 4
    RESTORE_TEMP = 5
    SAVE_COMBINED = 6


class SnapshotStore(Protocol):
    def save(
        self,
        label: str,
        include_untracked: bool = False,
        keep_staged_in_working_tree: bool = False,
        staged_only: bool = False,
        paths: Sequence[str] | None = None,
        exclude_paths: Sequence[str] | None = None,
    ) -> None: ...

    def apply(self, position: int) -> None: ...

    def discard(self, position: int) -> str | None: ...

    def apply_and_discard(self, position: int) -> None: ...

    def list(self) -> list[Snapshot]: ...

    def find_by_label(self, label: str) -> Snapshot | None: ...


class PreviewSource(Protocol):
    def compute_preview(self, include_untracked: bool = False) -> PreviewSummary: ...


class RefreshCallback(Protocol):
    """Notified once per terminal outcome; stack topology may have changed."""

    def __call__(self) -> None: ...


def _matches(path: str, selected: Sequence[str]) -> bool:
    for sel in selected:
        sel = sel.rstrip("/")
        if path == sel or path.startswith(sel + "/"):
            return True
    return False


def restrict_preview(preview: PreviewSummary, paths: Sequence[str]) -> PreviewSummary:
    """Keep only the entries under the selected paths."""
    return PreviewSummary(
        staged=[e for e in preview.staged if _matches(e.path, paths)],
        unstaged=[e for e in preview.unstaged if _matches(e.path, paths)],
        untracked=[p for p in preview.untracked if _matches(p, paths)],
    )


def unselected_paths(preview: PreviewSummary, paths: Sequence[str]) -> list[str]:
    """Changed paths that fall outside the selection."""
    changed = {e.path for e in preview.staged} | {e.path for e in preview.unstaged}
    changed.update(preview.untracked)
    return sorted(p for p in changed if not _matches(p, paths))


class ReconciliationEngine:
    """
    Runs the merge-into-shelf saga against a SnapshotStore.

    Example:
        engine = ReconciliationEngine(
            GitStashStore(repo), PreviewCalculator(repo), on_refresh=view.refresh
        )
        engine.merge_working_changes_into_snapshot(2, "feature work")
    """

    def __init__(
        self,
        store: SnapshotStore,
        preview: PreviewSource,
        on_refresh: RefreshCallback | Callable[[], None] | None = None,
    ):
        self.store = store
        self.preview = preview
        self.on_refresh = on_refresh

    def merge_working_changes_into_snapshot(
        self,
        target_position: int,
        combined_label: str,
        paths: Sequence[str] | None = None,
    ) -> None:
        """
        Add the current uncommitted changes to the shelf at target_position.

        On success the target is replaced by a shelf named combined_label at
        position 0 holding the union of its content and the working-tree
        changes; the stack size is unchanged.

        Args:
            target_position: Position of the shelf to merge into, read from a
                fresh list immediately before the call
            combined_label: Label for the resulting shelf
            paths: Only move these paths into the shelf; other working-tree
                changes stay where they are

        Raises:
            ValueError: invalid arguments (raised before any git call)
            NoChangesError: no uncommitted changes; zero stash calls issued
            ConflictError: an overwrite conflict; see the message for state
            FatalError: an unexpected primitive failure
            CleanupFailureError: a failure whose compensation also failed
        """
        if target_position < 0:
            raise ValueError(f"target_position must be non-negative: {target_position}")
        if not combined_label or not combined_label.strip():
            raise ValueError("combined_label must be a non-empty string")

        debug_section(MODULE, f"MERGE INTO {stash_ref(target_position)}")
        try:
            self._run_saga(target_position, combined_label, paths)
        finally:
            self._notify_refresh()

    # ==================== Saga ====================

    def _run_saga(
        self,
        target_position: int,
        combined_label: str,
        paths: Sequence[str] | None,
    ) -> None:
        full_preview = self._check_precondition()
        preview = restrict_preview(full_preview, paths) if paths else full_preview
        if preview.is_empty:
            raise NoChangesError("No changes to add to the shelf")
        target = self._read_target(target_position)

        # Unselected changes stay in the working tree through both saves. They
        # cannot overlap the target: step 3 would refuse to overwrite them.
        excluded = unselected_paths(full_preview, paths) if paths else []

        include_untracked = target.has_untracked_layer or preview.has_untracked
        debug(
            MODULE,
            "Merge plan",
            target=target.label,
            include_untracked=include_untracked,
            selected_paths=list(paths) if paths else None,
            excluded=len(excluded),
        )

        # Step 1: park the current changes on top of the stack
        logger.info(f"Step 1: shelving current changes as {TEMP_LABEL}")
        try:
            self.store.save(
                TEMP_LABEL,
                include_untracked=preview.has_untracked,
                exclude_paths=excluded or None,
            )
        except ShelfError as e:
            raise FatalError(
                f"Could not shelve current changes: {e}. Nothing was changed.",
                step=SagaStep.SAVE_TEMP,
            ) from e

        # Steps 2-3: the temp entry pushed the target down by one
        position = shift(target_position, TEMP_INSERTIONS)
        logger.info(f"Step 3: applying {stash_ref(position)} ('{target.label}')")
        try:
            self.store.apply(position)
        except ShelfError as e:
            if classify(e) is FailureKind.CONFLICT:
                primary: ShelfError = ConflictError(
                    f"Applying '{target.label}' would overwrite local changes. "
                    "Your changes were restored and the shelf is untouched; "
                    "resolve the conflicting files and try again.",
                    step=SagaStep.APPLY_TARGET,
                )
            else:
                primary = FatalError(
                    f"Could not apply '{target.label}': {e}. "
                    "Your changes were restored and the shelf is untouched.",
                    step=SagaStep.APPLY_TARGET,
                )
            self._compensate(primary, e, self._restore_temp)

        # Step 4: target content is in the working tree now
        position = shift(target_position, TEMP_INSERTIONS)
        logger.info(f"Step 4: dropping {stash_ref(position)}")
        try:
            self.store.discard(position)
        except ShelfError as e:
            primary = FatalError(
                f"Could not remove '{target.label}' after applying it: {e}. "
                "No combined shelf was created.",
                step=SagaStep.DISCARD_TARGET,
            )
            self._compensate(primary, e, self._restore_temp)

        # Step 5: merge the parked changes back on top
        logger.info(f"Step 5: restoring {TEMP_LABEL} from stash@{{0}}")
        try:
            self.store.apply_and_discard(0)
        except ShelfError as e:
            self._handle_restore_failure(target, e)

        # Step 6: shelve the union
        logger.info(f"Step 6: shelving combined changes as '{combined_label}'")
        try:
            self.store.save(
                combined_label,
                include_untracked=include_untracked,
                exclude_paths=excluded or None,
            )
        except ShelfError as e:
            raise FatalError(
                f"Could not create shelf '{combined_label}': {e}. "
                "The combined changes are in your working tree; shelve them manually.",
                step=SagaStep.SAVE_COMBINED,
            ) from e

        debug_success(MODULE, "Merged into shelf", label=combined_label)
        logger.info(f"Added current changes to shelf '{combined_label}'")

    def _check_precondition(self) -> PreviewSummary:
        try:
            return self.preview.compute_preview(include_untracked=True)
        except ShelfError as e:
            raise FatalError(
                f"Could not read working tree changes: {e}",
                step=SagaStep.PRECONDITION,
            ) from e

    def _read_target(self, target_position: int) -> Snapshot:
        try:
            snapshots = self.store.list()
        except ShelfError as e:
            raise FatalError(
                f"Could not read shelves: {e}", step=SagaStep.PRECONDITION
            ) from e

        for snapshot in snapshots:
            if snapshot.position == target_position:
                return snapshot
        raise FatalError(
            f"No shelf at {stash_ref(target_position)} "
            f"({len(snapshots)} shelf(s) exist). Refresh and try again.",
            step=SagaStep.PRECONDITION,
        )

    # ==================== Compensation ====================

    def _restore_temp(self) -> None:
        self.store.apply_and_discard(0)

    def _compensate(
        self,
        primary: ShelfError,
        cause: Exception,
        action: Callable[[], None],
    ) -> None:
        """Run a compensating action, then raise the primary failure.

        If the compensation fails too, raise CleanupFailureError carrying
        both outcomes.
        """
        debug_warning(MODULE, "Compensating", step=primary.step, reason=str(cause))
        try:
            action()
        except ShelfError as cleanup_error:
            debug_error(MODULE, "Compensation failed", error=str(cleanup_error))
            logger.error(
                f"Step {primary.step} failed and cleanup also failed: {cleanup_error}"
            )
            raise CleanupFailureError(primary, cleanup_error) from cause
        logger.warning(f"Step {primary.step} failed, prior state restored: {cause}")
        raise primary from cause

    def _handle_restore_failure(self, target: Snapshot, cause: ShelfError) -> None:
        """Step 5 failed: the target is gone and the temp entry is stuck.

        The target's content lives only in the working tree at this point.
        The temp entry is dropped by label; its commit id goes into the
        error so it can still be recovered with `git stash apply <sha>`.
        """
        base = (
            f"Your changes conflict with '{target.label}'. Its content is now "
            "in your working tree, but no combined shelf was created."
        )
        try:
            temp = self.store.find_by_label(TEMP_LABEL)
            dropped_sha = None
            if temp is None:
                debug_warning(MODULE, "Temp shelf not found during cleanup")
            else:
                dropped_sha = self.store.discard(temp.position)
        except ShelfError as cleanup_error:
            primary = ConflictError(base, step=SagaStep.RESTORE_TEMP)
            logger.error(f"Could not drop {TEMP_LABEL}: {cleanup_error}")
            raise CleanupFailureError(primary, cleanup_error) from cause

        recovery = (
            f" The parked changes were dropped as {dropped_sha}; "
            f"recover them with 'git stash apply {dropped_sha}'."
            if dropped_sha
            else ""
        )
        logger.warning(f"Step 5 failed: {cause}.{recovery}")
        raise ConflictError(
            base + recovery + " Resolve the conflicts manually.",
            step=SagaStep.RESTORE_TEMP,
        ) from cause

    def _notify_refresh(self) -> None:
        if self.on_refresh is None:
            return
        try:
            self.on_refresh()
        except Exception as e:
            logger.warning(f"Refresh callback failed: {e}")
