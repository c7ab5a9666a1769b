"""Shared fixtures: throwaway git repositories"""

import os
import subprocess
import textwrap
from collections.abc import Mapping
from pathlib import Path

import pytest

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test Author",
    "GIT_AUTHOR_EMAIL": "author@example.com",
    "GIT_COMMITTER_NAME": "Test Author",
    "GIT_COMMITTER_EMAIL": "author@example.com",
    "GIT_CONFIG_GLOBAL": os.devnull,
    "GIT_CONFIG_NOSYSTEM": "1",
}


class GitRepo:
    """Write files into a temporary repository and commit them"""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.git("init", "--quiet", "--initial-branch", "main")
        self.git("config", "commit.gpgsign", "false")

    def git(self, *args: str) -> str:
        completed = subprocess.run(
            ["git", *args],
            cwd=self.root,
            env={**os.environ, **GIT_ENV},
            capture_output=True,
            text=True,
            check=True,
        )
        return completed.stdout.strip()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries (dedented) into the working tree"""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")

    def remove(self, *paths: str) -> None:
        for relative in paths:
            (self.root / relative).unlink()

    def commit(self, message: str = "change") -> str:
        """Stage everything and commit; returns the new revision"""
        self.git("add", "-A")
        self.git("commit", "--quiet", "--allow-empty", "-m", message)
        return self.git("rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path, monkeypatch):
    """Empty source repository with an isolated git identity"""
    for key, value in GIT_ENV.items():
        monkeypatch.setenv(key, value)
    return GitRepo(tmp_path / "repo")


@pytest.fixture
def site_repo(tmp_path, monkeypatch):
    """Documentation site repository with one commit on main"""
    for key, value in GIT_ENV.items():
        monkeypatch.setenv(key, value)
    repo = GitRepo(tmp_path / "site")
    repo.write({"README.md": "# Site\n", "docs/intro.md": "# Intro\n"})
    repo.commit("initial site")
    return repo
