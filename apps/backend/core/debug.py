"""
Debug Logging Utilities
=======================

Opt-in diagnostic output for tracing git operations.

Enable via environment variables:
    DEBUG=true          Enable debug output
    DEBUG_LEVEL=1|2|3   1 = basic, 2 = detailed, 3 = verbose (default 1)

Output goes to stderr so stdout stays machine-readable.

Usage:
    from core.debug import debug, debug_error

    debug("shelves.reconcile", "Applying target", position=3)
    debug_error("shelves.store", "stash drop failed", stderr=result.stderr)
"""

import os
import sys
from datetime import datetime

from core.config import is_truthy

_COLORS = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "bold": "\033[1m",
}


def is_debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    return is_truthy(os.environ.get("DEBUG"))


def get_debug_level() -> int:
    """Get the debug verbosity level (1-3)."""
    try:
        level = int(os.environ.get("DEBUG_LEVEL", "1"))
    except ValueError:
        return 1
    return max(1, min(3, level))


def _color(name: str) -> str:
    if not sys.stderr.isatty():
        return ""
    return _COLORS[name]


def _format_kwargs(kwargs: dict) -> str:
    if not kwargs:
        return ""
    parts = [f"{key}={value!r}" for key, value in kwargs.items()]
    return " " + " ".join(parts)


def _write(color: str, tag: str, module: str, message: str, kwargs: dict) -> None:
    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = (
        f"{_color('dim')}{timestamp}{_color('reset')} "
        f"{_color(color)}[{tag}]{_color('reset')} "
        f"{_color('bold')}{module}{_color('reset')}: {message}"
        f"{_format_kwargs(kwargs)}"
    )
    try:
        print(line, file=sys.stderr, flush=True)
    except (OSError, UnicodeEncodeError):
        pass  # stderr closed or not encodable


def debug(module: str, message: str, **kwargs) -> None:
    """Basic debug message (level 1+)."""
    if is_debug_enabled():
        _write("cyan", "DEBUG", module, message, kwargs)


def debug_detailed(module: str, message: str, **kwargs) -> None:
    """Detailed debug message (level 2+)."""
    if is_debug_enabled() and get_debug_level() >= 2:
        _write("cyan", "DEBUG", module, message, kwargs)


def debug_verbose(module: str, message: str, **kwargs) -> None:
    """Verbose debug message (level 3)."""
    if is_debug_enabled() and get_debug_level() >= 3:
        _write("dim", "TRACE", module, message, kwargs)


def debug_info(module: str, message: str, **kwargs) -> None:
    if is_debug_enabled():
        _write("cyan", "INFO", module, message, kwargs)


def debug_success(module: str, message: str, **kwargs) -> None:
    if is_debug_enabled():
        _write("green", "OK", module, message, kwargs)


def debug_warning(module: str, message: str, **kwargs) -> None:
    if is_debug_enabled():
        _write("yellow", "WARN", module, message, kwargs)


def debug_error(module: str, message: str, **kwargs) -> None:
    if is_debug_enabled():
        _write("red", "ERROR", module, message, kwargs)


def debug_section(module: str, title: str) -> None:
    """Print a section separator."""
    if is_debug_enabled():
        _write("bold", "====", module, f"{title} {'=' * max(0, 60 - len(title))}", {})
