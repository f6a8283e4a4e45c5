"""
Stash Position Arithmetic
=========================

Positions in the stash stack are ordinal, not stable identities. Every save
inserts at position 0 and pushes existing entries down by one, so a
position captured before an insertion must be shifted before it is used
again.

Call shift() immediately before the primitive that consumes the position.
Never keep a shifted value across a call that may itself insert or remove
an entry.
"""

STASH_REF_FORMAT = "stash@{{{}}}"


def shift(original_position: int, insertions_since_capture: int) -> int:
    """Map a captured position to its current position.

    >>> shift(2, 1)
    3
    """
    return original_position + insertions_since_capture


def stash_ref(position: int) -> str:
    """Render a position as a git stash reference.

    >>> stash_ref(0)
    'stash@{0}'
    """
    return STASH_REF_FORMAT.format(position)
