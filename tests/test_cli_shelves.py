#!/usr/bin/env python3
"""
Tests for the shelf CLI
=======================

Covers argument parsing and the command handlers against a real
temporary repository. Prompts are bypassed with assume_yes or by patching
input().
"""

import json
import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "apps" / "backend"))

from cli.main import main, parse_args
from cli.shelf_commands import (
    EXIT_ERROR,
    EXIT_NO_CHANGES,
    EXIT_OK,
    handle_create_command,
    handle_drop_command,
    handle_list_command,
    handle_merge_command,
    handle_pop_command,
    handle_preview_command,
)
from cli.utils import confirm, setup_environment
from core.git_executable import get_git_executable, invalidate_git_cache
from shelf_fakes import git
from shelves import GitStashStore


def labels(repo: Path) -> list[str]:
    return [s.label for s in GitStashStore(repo).list()]


class TestParseArgs:
    def test_merge_with_label_and_paths(self):
        args = parse_args(
            ["merge", "2", "--label", "combined", "--path", "a.txt", "--", "src/"]
        )

        assert args.command == "merge"
        assert args.position == 2
        assert args.label == "combined"
        assert args.paths == ["a.txt", "src/"]

    def test_merge_defaults(self):
        args = parse_args(["-y", "merge", "0"])

        assert args.yes
        assert args.label is None
        assert args.paths is None

    def test_paths_after_separator_may_look_like_options(self):
        args = parse_args(["merge", "0", "--", "--label", "-p"])

        assert args.label is None
        assert args.paths == ["--label", "-p"]

    def test_repeated_path_option(self):
        args = parse_args(["merge", "1", "-p", "a.txt", "--path", "docs/"])

        assert args.paths == ["a.txt", "docs/"]

    def test_separator_only_allowed_for_merge(self):
        with pytest.raises(SystemExit):
            parse_args(["apply", "0", "--", "a.txt"])

    @pytest.mark.parametrize("position", ["-1", "two"])
    def test_invalid_position(self, position):
        with pytest.raises(SystemExit):
            parse_args(["apply", position])

    def test_create_modes_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["create", "-m", "x", "--staged-only", "--untracked-only"])

    def test_create_requires_message(self):
        with pytest.raises(SystemExit):
            parse_args(["create"])


class TestConfirm:
    def test_assume_yes_skips_prompt(self):
        with patch("builtins.input") as mock_input:
            assert confirm("Go?", assume_yes=True)
        mock_input.assert_not_called()

    @pytest.mark.parametrize("answer,expected", [("y", True), ("YES", True), ("", False), ("n", False)])
    def test_answers(self, answer, expected):
        with patch("builtins.input", return_value=answer):
            assert confirm("Go?") is expected

    def test_eof_is_no(self):
        with patch("builtins.input", side_effect=EOFError):
            assert not confirm("Go?")


class TestListAndPreview:
    def test_list_empty(self, temp_git_repo, capsys):
        assert handle_list_command(temp_git_repo) == EXIT_OK
        assert "No shelves." in capsys.readouterr().out

    def test_list_json(self, temp_git_repo, make_shelf, capsys):
        make_shelf("A", files={"a.txt": "changed\n"})

        assert handle_list_command(temp_git_repo, as_json=True) == EXIT_OK

        data = json.loads(capsys.readouterr().out)
        assert data["total"] == 1
        assert data["shelves"][0]["name"] == "A"
        assert data["shelves"][0]["index"] == "stash@{0}"

    def test_preview(self, temp_git_repo, capsys):
        (temp_git_repo / "a.txt").write_text("changed\n", encoding="utf-8")

        assert handle_preview_command(temp_git_repo) == EXIT_OK
        assert "Unstaged:" in capsys.readouterr().out

    def test_preview_clean(self, temp_git_repo, capsys):
        assert handle_preview_command(temp_git_repo) == EXIT_NO_CHANGES


class TestCreate:
    def test_create(self, temp_git_repo, capsys):
        (temp_git_repo / "a.txt").write_text("changed\n", encoding="utf-8")

        result = handle_create_command(temp_git_repo, "wip", assume_yes=True)

        assert result == EXIT_OK
        assert labels(temp_git_repo) == ["wip"]
        assert "Shelf 'wip' created." in capsys.readouterr().out

    def test_create_declined(self, temp_git_repo):
        (temp_git_repo / "a.txt").write_text("changed\n", encoding="utf-8")

        with patch("builtins.input", return_value="n"):
            result = handle_create_command(temp_git_repo, "wip")

        assert result == EXIT_OK
        assert labels(temp_git_repo) == []

    def test_create_clean_tree(self, temp_git_repo):
        assert handle_create_command(temp_git_repo, "wip", assume_yes=True) == EXIT_NO_CHANGES

    def test_staged_only_refuses_mixed_files(self, temp_git_repo, capsys):
        (temp_git_repo / "a.txt").write_text("staged\n", encoding="utf-8")
        git(temp_git_repo, "add", "a.txt")
        (temp_git_repo / "a.txt").write_text("staged\nunstaged\n", encoding="utf-8")

        result = handle_create_command(
            temp_git_repo, "staged", staged_only=True, assume_yes=True
        )

        assert result == EXIT_ERROR
        assert "a.txt" in capsys.readouterr().out
        assert labels(temp_git_repo) == []

    def test_staged_only_without_staged_changes(self, temp_git_repo):
        (temp_git_repo / "a.txt").write_text("unstaged\n", encoding="utf-8")

        result = handle_create_command(
            temp_git_repo, "staged", staged_only=True, assume_yes=True
        )

        assert result == EXIT_NO_CHANGES

    def test_untracked_only(self, temp_git_repo):
        (temp_git_repo / "a.txt").write_text("tracked\n", encoding="utf-8")
        (temp_git_repo / "new.txt").write_text("new\n", encoding="utf-8")

        result = handle_create_command(
            temp_git_repo, "untracked", untracked_only=True, assume_yes=True
        )

        assert result == EXIT_OK
        assert labels(temp_git_repo) == ["untracked"]
        assert (temp_git_repo / "a.txt").read_text(encoding="utf-8") == "tracked\n"

    def test_untracked_only_without_untracked_files(self, temp_git_repo):
        (temp_git_repo / "a.txt").write_text("tracked\n", encoding="utf-8")

        result = handle_create_command(
            temp_git_repo, "untracked", untracked_only=True, assume_yes=True
        )

        assert result == EXIT_NO_CHANGES


class TestPopAndDrop:
    def test_pop_conflict_keeps_shelf(self, temp_git_repo, make_shelf, capsys):
        make_shelf("A", files={"a.txt": "shelved\n"})
        (temp_git_repo / "a.txt").write_text("local\n", encoding="utf-8")

        result = handle_pop_command(temp_git_repo, 0, assume_yes=True)

        out = capsys.readouterr().out
        assert result == EXIT_ERROR
        assert "! a.txt" in out
        assert "would be overwritten" in out
        assert labels(temp_git_repo) == ["A"]

    def test_pop(self, temp_git_repo, make_shelf):
        make_shelf("A", files={"a.txt": "shelved\n"})

        assert handle_pop_command(temp_git_repo, 0, assume_yes=True) == EXIT_OK
        assert labels(temp_git_repo) == []
        assert (temp_git_repo / "a.txt").read_text(encoding="utf-8") == "shelved\n"

    def test_drop(self, temp_git_repo, make_shelf, capsys):
        make_shelf("A", files={"a.txt": "shelved\n"})

        assert handle_drop_command(temp_git_repo, 0, assume_yes=True) == EXIT_OK
        assert labels(temp_git_repo) == []
        assert "No shelves." in capsys.readouterr().out

    def test_drop_missing(self, temp_git_repo):
        assert handle_drop_command(temp_git_repo, 3, assume_yes=True) == EXIT_ERROR


class TestMerge:
    def test_merge(self, temp_git_repo, make_shelf, stage_files, capsys):
        make_shelf("A", files={"a.txt": "shelved\n"})
        stage_files({"x.txt": "x\n"})

        result = handle_merge_command(temp_git_repo, 0, assume_yes=True)

        out = capsys.readouterr().out
        assert result == EXIT_OK
        assert "Added changes to shelf 'A'." in out
        # Refreshed listing printed by the engine's callback
        assert "stash@{0}" in out
        assert labels(temp_git_repo) == ["A"]

    def test_merge_with_new_label(self, temp_git_repo, make_shelf):
        make_shelf("A", files={"a.txt": "shelved\n"})
        (temp_git_repo / "b.txt").write_text("changed\n", encoding="utf-8")

        result = handle_merge_command(temp_git_repo, 0, label="A+B", assume_yes=True)

        assert result == EXIT_OK
        assert labels(temp_git_repo) == ["A+B"]

    def test_merge_without_changes(self, temp_git_repo, make_shelf):
        make_shelf("A", files={"a.txt": "shelved\n"})

        result = handle_merge_command(temp_git_repo, 0, assume_yes=True)

        assert result == EXIT_NO_CHANGES
        assert labels(temp_git_repo) == ["A"]

    def test_merge_missing_shelf(self, temp_git_repo):
        (temp_git_repo / "a.txt").write_text("changed\n", encoding="utf-8")

        assert handle_merge_command(temp_git_repo, 0, assume_yes=True) == EXIT_ERROR

    def test_merge_declined(self, temp_git_repo, make_shelf):
        make_shelf("A", files={"a.txt": "shelved\n"})
        (temp_git_repo / "b.txt").write_text("changed\n", encoding="utf-8")

        with patch("builtins.input", return_value="n"):
            result = handle_merge_command(temp_git_repo, 0)

        assert result == EXIT_OK
        assert (temp_git_repo / "b.txt").read_text(encoding="utf-8") == "changed\n"
        assert len(GitStashStore(temp_git_repo).files(0)) == 1

    def test_merge_conflict(self, temp_git_repo, make_shelf, capsys):
        make_shelf("A", files={"a.txt": "shelved\n"})
        (temp_git_repo / "a.txt").write_text("local\n", encoding="utf-8")

        result = handle_merge_command(temp_git_repo, 0, assume_yes=True)

        assert result == EXIT_ERROR
        assert "Conflict:" in capsys.readouterr().out


class TestMain:
    def test_main_list(self, temp_git_repo, make_shelf, capsys):
        make_shelf("A", files={"a.txt": "shelved\n"})

        assert main(["--project-dir", str(temp_git_repo), "list"]) == EXIT_OK
        assert "A" in capsys.readouterr().out

    def test_main_merge(self, temp_git_repo, make_shelf):
        make_shelf("A", files={"a.txt": "shelved\n"})
        (temp_git_repo / "b.txt").write_text("changed\n", encoding="utf-8")

        result = main(["--project-dir", str(temp_git_repo), "-y", "merge", "0", "--", "b.txt"])

        assert result == EXIT_OK
        assert {f.path for f in GitStashStore(temp_git_repo).files(0)} == {"a.txt", "b.txt"}


@pytest.fixture
def clean_git_path():
    """Undo any GIT_PATH a test loads from a .env file."""
    original = os.environ.pop("GIT_PATH", None)
    invalidate_git_cache()
    yield
    if original is None:
        os.environ.pop("GIT_PATH", None)
    else:
        os.environ["GIT_PATH"] = original
    invalidate_git_cache()


class TestEnvironmentFile:
    def test_git_path_from_env_file_replaces_cached_git(
        self, tmp_path, monkeypatch, clean_git_path
    ):
        path_git = tmp_path / "path-git"
        path_git.write_text("", encoding="utf-8")
        env_git = tmp_path / "env-git"
        env_git.write_text("", encoding="utf-8")
        (tmp_path / ".env").write_text(f"GIT_PATH={env_git}\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        with patch("core.git_executable.shutil.which", return_value=str(path_git)):
            assert get_git_executable() == str(path_git)

        loaded = setup_environment(tmp_path)

        assert loaded == [(tmp_path / ".env").resolve()]
        assert get_git_executable() == str(env_git)

    @pytest.mark.skipif(sys.platform == "win32", reason="uses a shell wrapper")
    def test_main_runs_git_from_env_file(
        self, temp_git_repo, tmp_path, monkeypatch, clean_git_path, make_shelf, capsys
    ):
        log = tmp_path / "calls.log"
        wrapper = tmp_path / "git-wrapper"
        wrapper.write_text(
            f'#!/bin/sh\necho "$@" >> "{log}"\nexec git "$@"\n', encoding="utf-8"
        )
        wrapper.chmod(0o755)
        make_shelf("A", files={"a.txt": "shelved\n"})
        (temp_git_repo / ".env").write_text(f"GIT_PATH={wrapper}\n", encoding="utf-8")
        monkeypatch.chdir(temp_git_repo)
        assert get_git_executable() != str(wrapper)

        assert main(["list"]) == EXIT_OK

        assert "A" in capsys.readouterr().out
        calls = log.read_text(encoding="utf-8").splitlines()
        assert calls[0] == "rev-parse --show-toplevel"
