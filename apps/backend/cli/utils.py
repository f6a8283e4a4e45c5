"""
CLI Utilities
=============

Environment setup and small interaction helpers shared by the CLI commands.
"""

import logging
import sys
from pathlib import Path

from core.git_executable import invalidate_git_cache, run_git

logger = logging.getLogger(__name__)


def import_dotenv():
    """
    Import and return load_dotenv with helpful error message if not installed.

    Returns:
        The load_dotenv function

    Raises:
        SystemExit: If dotenv cannot be imported, with helpful instructions.
    """
    try:
        from dotenv import load_dotenv

        return load_dotenv
    except ImportError:
        sys.exit(
            "Error: Required Python package 'python-dotenv' is not installed.\n"
            "\n"
            "This usually means you're not using the virtual environment.\n"
            "\n"
            "To fix this:\n"
            "1. Activate your virtual environment and reinstall:\n"
            "   pip install -e .\n"
            "\n"
            "2. Or install directly:\n"
            "   pip install python-dotenv\n"
            "\n"
            f"Current Python: {sys.executable}\n"
        )


def setup_environment(project_dir: Path | None = None) -> list[Path]:
    """Load .env files from the working directory and the repository root.

    Existing environment variables take precedence.

    Returns:
        The .env files that were loaded
    """
    load_dotenv = import_dotenv()
    candidates = [Path.cwd() / ".env"]
    if project_dir is not None:
        candidates.append(Path(project_dir) / ".env")

    loaded = []
    for env_file in dict.fromkeys(c.resolve() for c in candidates):
        if env_file.is_file():
            load_dotenv(env_file)
            loaded.append(env_file)
            logger.debug(f"Loaded environment from {env_file}")
    if loaded:
        # A loaded GIT_PATH must win over an executable found earlier
        invalidate_git_cache()
    return loaded


def get_project_dir(provided_dir: Path | None = None) -> Path:
    """Resolve the repository root for the given (or current) directory.

    Raises:
        SystemExit: If the directory is not inside a git repository.
    """
    start = Path(provided_dir).resolve() if provided_dir else Path.cwd()
    result = run_git(["rev-parse", "--show-toplevel"], cwd=start)
    if result.returncode != 0 or not result.stdout.strip():
        sys.exit(f"Error: Not in a git repository: {start}")
    return Path(result.stdout.strip())


def confirm(prompt: str, assume_yes: bool = False) -> bool:
    """Ask a yes/no question on the terminal. EOF counts as no."""
    if assume_yes:
        return True
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")
