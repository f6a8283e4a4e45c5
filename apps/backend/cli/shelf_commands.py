"""
Shelf Commands
==============

CLI handlers for shelf (stash) operations. Each handler obtains user
confirmation, calls the shelf components, prints the outcome, and returns a
process exit code.
"""

import logging
from pathlib import Path

from shelves import (
    CleanupFailureError,
    ConflictError,
    GitStashStore,
    NoChangesError,
    PreviewCalculator,
    ReconciliationEngine,
    ShelfError,
    format_preview,
    list_shelves,
    mixed_paths,
)

from .utils import confirm

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_CHANGES = 2


def print_shelves(store: GitStashStore) -> None:
    """Print the shelf stack. Used as the refresh signal after mutations."""
    snapshots = store.list()
    if not snapshots:
        print("No shelves.")
        return
    for snapshot in snapshots:
        untracked = " +untracked" if snapshot.has_untracked_layer else ""
        print(
            f"{snapshot.ref:<12} {snapshot.label}  "
            f"({snapshot.file_count} files, +{snapshot.additions} "
            f"-{snapshot.deletions}, {snapshot.origin_branch}{untracked})"
        )


def handle_list_command(project_dir: Path, as_json: bool = False) -> int:
    store = GitStashStore(project_dir)
    if as_json:
        print(list_shelves(store).model_dump_json(indent=2))
    else:
        print_shelves(store)
    return EXIT_OK


def handle_preview_command(project_dir: Path, include_untracked: bool = False) -> int:
    summary = PreviewCalculator(project_dir).compute_preview(include_untracked)
    if summary.is_empty:
        print("No changes.")
        return EXIT_NO_CHANGES
    print(format_preview(summary))
    return EXIT_OK


def handle_create_command(
    project_dir: Path,
    label: str,
    include_untracked: bool = False,
    keep_staged: bool = False,
    staged_only: bool = False,
    untracked_only: bool = False,
    assume_yes: bool = False,
) -> int:
    """Create a new shelf from the current changes."""
    store = GitStashStore(project_dir)
    calculator = PreviewCalculator(project_dir)
    summary = calculator.compute_preview(include_untracked=True)

    if staged_only:
        if not calculator.has_staged_changes():
            print("No staged changes to shelve.")
            return EXIT_NO_CHANGES
        mixed = mixed_paths(summary.staged_paths, summary.unstaged_paths)
        if mixed:
            print("Cannot shelve only staged changes.")
            print("These files have BOTH staged and unstaged changes:")
            for path in sorted(mixed):
                print(f"  • {path}")
            print("Use --keep-staged instead to shelve everything but keep staged changes.")
            return EXIT_ERROR
        text = format_preview(summary, show_unstaged=False, show_untracked=False)
    elif untracked_only:
        if not summary.untracked:
            print("No untracked files to shelve.")
            return EXIT_NO_CHANGES
        text = format_preview(summary, show_staged=False, show_unstaged=False)
    else:
        if summary.is_empty:
            print("No changes to shelve.")
            return EXIT_NO_CHANGES
        text = format_preview(summary, show_untracked=include_untracked)

    print(text)
    if not confirm(f"Create shelf '{label}'?", assume_yes):
        return EXIT_OK

    try:
        if untracked_only:
            store.save_untracked_only(label)
        else:
            store.save(
                label,
                include_untracked=include_untracked,
                keep_staged_in_working_tree=keep_staged,
                staged_only=staged_only,
            )
    except NoChangesError as e:
        print(str(e))
        return EXIT_NO_CHANGES
    except ShelfError as e:
        message = str(e)
        if "--staged" in message and "unknown option" in message:
            message = "Git 2.35+ is required to shelve only staged changes"
        print(f"Failed to create shelf: {message}")
        return EXIT_ERROR

    print(f"Shelf '{label}' created.")
    print_shelves(store)
    return EXIT_OK


def _warn_if_dirty(
    project_dir: Path,
    store: GitStashStore,
    position: int,
    verb: str,
    assume_yes: bool,
) -> bool:
    if not PreviewCalculator(project_dir).has_changes():
        return True
    overlapping = store.check_conflicts(position)
    print(f"You have uncommitted changes. {verb} this shelf may cause conflicts.")
    for path in overlapping:
        print(f"  ! {path}")
    return confirm(f"{verb} anyway?", assume_yes)


def handle_apply_command(project_dir: Path, position: int, assume_yes: bool = False) -> int:
    store = GitStashStore(project_dir)
    if not _warn_if_dirty(project_dir, store, position, "Applying", assume_yes):
        return EXIT_OK
    try:
        store.apply(position)
    except ConflictError:
        print(
            "Cannot apply shelf: your local changes would be overwritten. "
            "Commit or shelve your current changes first."
        )
        return EXIT_ERROR
    except ShelfError as e:
        print(f"Failed to apply shelf: {e}")
        return EXIT_ERROR
    print(f"Applied stash@{{{position}}}.")
    return EXIT_OK


def handle_pop_command(project_dir: Path, position: int, assume_yes: bool = False) -> int:
    store = GitStashStore(project_dir)
    if not _warn_if_dirty(project_dir, store, position, "Popping", assume_yes):
        return EXIT_OK
    try:
        store.apply_and_discard(position)
    except ConflictError:
        print(
            "Cannot pop shelf: your local changes would be overwritten. "
            "Commit or shelve your current changes first."
        )
        return EXIT_ERROR
    except ShelfError as e:
        print(f"Failed to pop shelf: {e}")
        return EXIT_ERROR
    finally:
        print_shelves(store)
    print(f"Popped stash@{{{position}}}.")
    return EXIT_OK


def handle_drop_command(project_dir: Path, position: int, assume_yes: bool = False) -> int:
    store = GitStashStore(project_dir)
    if not confirm(f"Delete shelf stash@{{{position}}}?", assume_yes):
        return EXIT_OK
    try:
        store.discard(position)
    except ShelfError as e:
        print(f"Failed to delete shelf: {e}")
        return EXIT_ERROR
    print_shelves(store)
    return EXIT_OK


def handle_merge_command(
    project_dir: Path,
    position: int,
    label: str | None = None,
    paths: list[str] | None = None,
    assume_yes: bool = False,
) -> int:
    """Add the current changes (or just `paths`) to an existing shelf."""
    store = GitStashStore(project_dir)
    target = next((s for s in store.list() if s.position == position), None)
    if target is None:
        print(f"No shelf at stash@{{{position}}}.")
        return EXIT_ERROR

    combined_label = label or target.label
    what = f"{len(paths)} path(s)" if paths else "your current changes"
    print(
        f"Add {what} to '{target.label}'?\n"
        "This will:\n"
        "1. Shelve your changes temporarily\n"
        "2. Apply and remove the existing shelf\n"
        "3. Restore your changes on top\n"
        f"4. Create shelf '{combined_label}' with the combined changes"
    )
    if not confirm("Add changes?", assume_yes):
        return EXIT_OK

    engine = ReconciliationEngine(
        store, PreviewCalculator(project_dir), on_refresh=lambda: print_shelves(store)
    )
    try:
        engine.merge_working_changes_into_snapshot(position, combined_label, paths=paths)
    except NoChangesError:
        print("No changes to add to the shelf.")
        return EXIT_NO_CHANGES
    except CleanupFailureError as e:
        logger.error(f"Merge into shelf left inconsistent state: {e}")
        print("Failed to merge into shelf, and cleanup failed:")
        print(f"  {e.primary}")
        print(f"  cleanup: {e.cleanup_outcome}")
        return EXIT_ERROR
    except ConflictError as e:
        print(f"Conflict: {e}")
        return EXIT_ERROR
    except ShelfError as e:
        print(f"Failed to merge into shelf: {e}")
        return EXIT_ERROR

    print(f"Added changes to shelf '{combined_label}'.")
    return EXIT_OK
