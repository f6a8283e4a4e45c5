"""
Runtime Configuration
=====================

Environment-driven settings. Values may come from the process environment
or from a .env file loaded by the CLI at startup.
"""

import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT = 60  # seconds, per git invocation
GIT_TIMEOUT_ENV = "GITMASTER_GIT_TIMEOUT"


def get_git_timeout() -> float:
    """Get the per-command git timeout in seconds.

    Reads GITMASTER_GIT_TIMEOUT. Missing, non-numeric or non-positive
    values fall back to DEFAULT_GIT_TIMEOUT.
    """
    raw = os.environ.get(GIT_TIMEOUT_ENV, "").strip()
    if not raw:
        return DEFAULT_GIT_TIMEOUT

    try:
        value = float(raw)
    except ValueError:
        logger.warning(
            f"Invalid {GIT_TIMEOUT_ENV}={raw!r}, using default {DEFAULT_GIT_TIMEOUT}s"
        )
        return DEFAULT_GIT_TIMEOUT

    if value <= 0:
        logger.warning(
            f"{GIT_TIMEOUT_ENV} must be positive, using default {DEFAULT_GIT_TIMEOUT}s"
        )
        return DEFAULT_GIT_TIMEOUT
    return value


def is_truthy(value: str | None) -> bool:
    """Interpret an environment flag value."""
    return (value or "").strip().lower() in ("1", "true", "yes", "on")
