"""
Git Output Parsing
==================

Helpers for turning git's plumbing output into typed records.
"""

from __future__ import annotations

import re
from datetime import datetime

from .models import ChangeEntry

# Field separator for --format strings (ASCII unit separator). Labels may
# contain "|" so a printable separator is not safe.
FIELD_SEP = "\x1f"

_STASH_SUBJECT_RE = re.compile(r"^(?:WIP on|On)\s+(\S+?):\s+(.*)$", re.DOTALL)
_STASH_SELECTOR_RE = re.compile(r"^stash@\{(\d+)\}$")
_DROPPED_SHA_RE = re.compile(r"\(([0-9a-f]{7,40})\)")


def parse_numstat(stdout: str) -> list[ChangeEntry]:
    """Parse `--numstat -z` output.

    Records are NUL-terminated "<adds>\\t<dels>\\t<path>". A rename arrives
    as "<adds>\\t<dels>\\t" followed by the old and new paths as two more
    records; the new path is kept. Binary files report "-" for both counts
    and are recorded as 0/0.
    """
    entries = []
    tokens = iter(stdout.split("\0"))
    for token in tokens:
        token = token.lstrip("\n")
        if not token:
            continue
        parts = token.split("\t", 2)
        if len(parts) < 3:
            continue
        path = parts[2]
        if not path:
            next(tokens, None)
            path = next(tokens, "")
            if not path:
                continue
        entries.append(
            ChangeEntry(
                path=path,
                additions=_parse_count(parts[0]),
                deletions=_parse_count(parts[1]),
            )
        )
    return entries


def _parse_count(value: str) -> int:
    if value == "-":
        return 0
    try:
        return int(value)
    except ValueError:
        return 0


def parse_name_list(stdout: str) -> list[str]:
    """Parse NUL-separated path output (--name-only -z, ls-files -z)."""
    return [path for path in stdout.split("\0") if path]


def parse_porcelain_entries(stdout: str) -> list[tuple[str, str, str | None]]:
    """Parse `git status --porcelain -z` into (status, path, orig_path).

    Records are "XY path". Renames and copies are followed by one extra
    record holding the original path.
    """
    entries = []
    tokens = iter(stdout.split("\0"))
    for token in tokens:
        if len(token) < 4:
            continue
        status, path = token[:2], token[3:]
        orig = None
        if "R" in status or "C" in status:
            orig = next(tokens, None) or None
        entries.append((status, path, orig))
    return entries


def parse_porcelain_paths(stdout: str) -> set[str]:
    """Collect changed paths from `git status --porcelain -z`.

    Both sides of a rename count as changed.
    """
    paths = set()
    for _status, path, orig in parse_porcelain_entries(stdout):
        paths.add(path)
        if orig:
            paths.add(orig)
    return paths


def parse_stash_subject(subject: str) -> tuple[str, str]:
    """Split a stash subject into (origin_branch, label).

    "On main: my label" -> ("main", "my label")
    "WIP on main: abc123 commit subject" -> ("main", "abc123 commit subject")
    Anything else -> ("unknown", subject)
    """
    match = _STASH_SUBJECT_RE.match(subject)
    if not match:
        return "unknown", subject
    return match.group(1), match.group(2)


def parse_stash_selector(selector: str) -> int | None:
    """Parse "stash@{N}" into N."""
    match = _STASH_SELECTOR_RE.match(selector.strip())
    if not match:
        return None
    return int(match.group(1))


def parse_commit_date(value: str) -> datetime | None:
    """Parse git's %ci format ("2024-05-01 13:45:10 +0200")."""
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d %H:%M:%S %z")
    except ValueError:
        return None


def parse_dropped_sha(stdout: str) -> str | None:
    """Extract the commit id from "Dropped stash@{0} (<sha>)"."""
    match = _DROPPED_SHA_RE.search(stdout)
    return match.group(1) if match else None
