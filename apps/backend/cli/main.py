#!/usr/bin/env python3
"""
GitMaster Shelves CLI
=====================

Usage:
    gitmaster-shelves list [--json]
    gitmaster-shelves preview [-u]
    gitmaster-shelves create -m LABEL [-u] [--keep-staged | --staged-only | --untracked-only]
    gitmaster-shelves apply N
    gitmaster-shelves pop N
    gitmaster-shelves drop N
    gitmaster-shelves merge N [--label LABEL] [--path PATH ...] [-- PATH ...]

Shelves are git stash entries; N is the stash position (stash@{N}).
"""

import argparse
import logging
import sys
from pathlib import Path

from core.debug import debug_info
from shelves import ShelfError

from .shelf_commands import (
    EXIT_ERROR,
    handle_apply_command,
    handle_create_command,
    handle_drop_command,
    handle_list_command,
    handle_merge_command,
    handle_pop_command,
    handle_preview_command,
)
from .utils import get_project_dir, setup_environment

logger = logging.getLogger(__name__)


def _position(value: str) -> int:
    try:
        position = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a stash position: {value!r}")
    if position < 0:
        raise argparse.ArgumentTypeError("stash position must be >= 0")
    return position


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="gitmaster-shelves",
        description="Manage git shelves (stashes), including merging changes into an existing shelf",
    )
    parser.add_argument(
        "--project-dir",
        type=Path,
        default=None,
        help="Repository directory (default: current directory)",
    )
    parser.add_argument(
        "-y", "--yes", action="store_true", help="Skip confirmation prompts"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    list_parser = sub.add_parser("list", help="List shelves")
    list_parser.add_argument("--json", action="store_true", help="Output JSON")

    preview_parser = sub.add_parser("preview", help="Show what would be shelved")
    preview_parser.add_argument(
        "-u", "--include-untracked", action="store_true", help="Include untracked files"
    )

    create_parser = sub.add_parser("create", help="Create a shelf")
    create_parser.add_argument("-m", "--message", required=True, help="Shelf name")
    create_parser.add_argument(
        "-u", "--include-untracked", action="store_true", help="Include untracked files"
    )
    mode = create_parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--keep-staged",
        action="store_true",
        help="Shelve everything but keep staged changes in the working tree",
    )
    mode.add_argument(
        "--staged-only", action="store_true", help="Shelve only staged changes"
    )
    mode.add_argument(
        "--untracked-only", action="store_true", help="Shelve only untracked files"
    )

    for name, help_text in (
        ("apply", "Apply a shelf and keep it"),
        ("pop", "Apply a shelf and remove it"),
        ("drop", "Delete a shelf without applying it"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("position", type=_position)

    merge_parser = sub.add_parser(
        "merge", help="Add current changes to an existing shelf"
    )
    merge_parser.add_argument("position", type=_position)
    merge_parser.add_argument(
        "--label", default=None, help="Name for the combined shelf (default: keep)"
    )
    merge_parser.add_argument(
        "-p",
        "--path",
        dest="paths",
        action="append",
        default=None,
        help="Only add this path; repeatable. Paths may also follow -- "
        "(default: all changes)",
    )

    if argv is None:
        argv = sys.argv[1:]
    # Everything after "--" is a merge path, even if it looks like an option
    trailing: list[str] = []
    if "--" in argv:
        split = argv.index("--")
        argv, trailing = argv[:split], argv[split + 1 :]

    args = parser.parse_args(argv)
    if trailing:
        if args.command != "merge":
            parser.error(f"unexpected arguments after '--': {' '.join(trailing)}")
        args.paths = (args.paths or []) + trailing
    return args


def _run_cli(args: argparse.Namespace) -> int:
    # .env may set GIT_PATH; load it before the first git call
    setup_environment()
    project_dir = get_project_dir(args.project_dir)
    setup_environment(project_dir)
    debug_info("cli.main", "Running command", command=args.command, project_dir=str(project_dir))

    if args.command == "list":
        return handle_list_command(project_dir, as_json=args.json)
    if args.command == "preview":
        return handle_preview_command(project_dir, args.include_untracked)
    if args.command == "create":
        return handle_create_command(
            project_dir,
            args.message,
            include_untracked=args.include_untracked,
            keep_staged=args.keep_staged,
            staged_only=args.staged_only,
            untracked_only=args.untracked_only,
            assume_yes=args.yes,
        )
    if args.command == "apply":
        return handle_apply_command(project_dir, args.position, args.yes)
    if args.command == "pop":
        return handle_pop_command(project_dir, args.position, args.yes)
    if args.command == "drop":
        return handle_drop_command(project_dir, args.position, args.yes)
    if args.command == "merge":
        return handle_merge_command(
            project_dir,
            args.position,
            label=args.label,
            paths=args.paths or None,
            assume_yes=args.yes,
        )
    raise AssertionError(f"unhandled command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return _run_cli(args)
    except ShelfError as e:
        logger.debug("Shelf command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
