"""Unit tests for GitClient error handling (no git binary needed)"""

import subprocess
from unittest.mock import MagicMock

import pytest

from docsync.services.git_client import GitClient, RevisionControlError, RevisionControlTimeout


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestGitClient:
    """Test timeout and failure mapping"""

    def test_timeout_is_reported(self):
        runner = MagicMock(side_effect=subprocess.TimeoutExpired(cmd="git", timeout=5))
        git = GitClient("/repo", timeout=5, runner=runner)

        with pytest.raises(RevisionControlTimeout) as exc_info:
            git.head_revision()

        assert isinstance(exc_info.value, RevisionControlError)
        assert runner.call_args.kwargs["timeout"] == 5

    def test_non_zero_exit(self):
        git = GitClient("/repo", runner=MagicMock(return_value=completed(128, stderr="fatal: bad")))

        with pytest.raises(RevisionControlError) as exc_info:
            git.head_revision()

        assert exc_info.value.returncode == 128
        assert exc_info.value.stderr == "fatal: bad"

    def test_missing_binary(self):
        git = GitClient("/repo", runner=MagicMock(side_effect=FileNotFoundError("git")))

        with pytest.raises(RevisionControlError):
            git.head_revision()

    def test_is_ancestor_exit_codes(self):
        runner = MagicMock(side_effect=[completed(0), completed(1), completed(128, stderr="bad")])
        git = GitClient("/repo", runner=runner)

        assert git.is_ancestor("a", "b") is True
        assert git.is_ancestor("b", "a") is False
        with pytest.raises(RevisionControlError):
            git.is_ancestor("x", "y")

    def test_changed_paths_parses_nul_output(self):
        output = "M\0src/a.go\0A\0src/b.go\0D\0old.go\0"
        git = GitClient("/repo", runner=MagicMock(return_value=completed(stdout=output)))

        assert git.changed_paths("a", "b") == [
            ("M", "src/a.go"),
            ("A", "src/b.go"),
            ("D", "old.go"),
        ]

    def test_show_missing_path_returns_none(self):
        git = GitClient("/repo", runner=MagicMock(return_value=completed(128)))

        assert git.show("HEAD", "missing.go") is None
