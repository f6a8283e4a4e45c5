"""
Conflict Classification
=======================

Decides whether a failed apply is an overwrite conflict the user can
resolve by hand, or an unexpected fatal error.
"""

from __future__ import annotations

from .errors import ConflictError, FailureKind, GitCommandError

# Substrings git prints when applying would clobber local modifications.
OVERWRITE_SIGNATURES = (
    "would be overwritten",
    "already exists, no checkout",
    "could not restore untracked files",
)


def is_overwrite_conflict(text: str) -> bool:
    """Check if git output carries an overwrite signature."""
    text_lower = text.lower()
    return any(signature in text_lower for signature in OVERWRITE_SIGNATURES)


def classify(raw_error: Exception | str) -> FailureKind:
    """Classify a raw failure as CONFLICT or FATAL.

    Args:
        raw_error: The exception raised by a primitive, or its message text

    Returns:
        FailureKind.CONFLICT for overwrite failures, FailureKind.FATAL for
        everything else (including timeouts)
    """
    if isinstance(raw_error, ConflictError):
        return FailureKind.CONFLICT

    if isinstance(raw_error, GitCommandError):
        text = raw_error.output
    else:
        text = str(raw_error)

    if "timed out" in text.lower():
        return FailureKind.FATAL
    if is_overwrite_conflict(text):
        return FailureKind.CONFLICT
    return FailureKind.FATAL
