"""Revision-control queries and updates via the git CLI"""

import logging
import os
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from docsync.config import config

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


class RevisionControlError(Exception):
    """Raised when a git command fails"""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ):
        self.message = message
        self.cause = cause
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class RevisionControlTimeout(RevisionControlError):
    """Raised when a git command exceeds its timeout (retryable)"""

    pass


class GitClient:
    """Run git commands against one working tree, each bounded by a timeout"""

    def __init__(
        self,
        repo_path: str | Path,
        timeout: float | None = None,
        runner: Runner | None = None,
    ):
        """
        Initialize git client

        Args:
            repo_path: Working tree root
            timeout: Seconds allowed per git invocation (defaults to config)
            runner: Optional subprocess.run replacement (for tests)
        """
        self.repo_path = Path(repo_path)
        self.timeout = timeout or config.git_timeout_seconds
        self._runner = runner or subprocess.run

    def run(
        self,
        args: Sequence[str],
        *,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess:
        """
        Execute one git command

        Raises:
            RevisionControlTimeout: If the command exceeds the timeout
            RevisionControlError: If check is set and the command exits non-zero
        """
        cmd = [config.git_executable, *args]
        try:
            completed = self._runner(
                cmd,
                cwd=str(self.repo_path),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                env=env,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            logger.error(f"git {args[0]} timed out after {self.timeout}s")
            raise RevisionControlTimeout(
                f"git {' '.join(args)} timed out after {self.timeout}s", e
            ) from e
        except OSError as e:
            raise RevisionControlError(f"Failed to run git: {e}", e) from e

        if check and completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            raise RevisionControlError(
                f"git {' '.join(args)} failed ({completed.returncode}): {stderr}",
                returncode=completed.returncode,
                stderr=stderr,
            )
        return completed

    def output(self, args: Sequence[str]) -> str:
        return self.run(args).stdout

    # ------------------------------------------------------------------
    # Queries

    def head_revision(self) -> str:
        return self.output(["rev-parse", "HEAD"]).strip()

    def revision_exists(self, revision: str) -> bool:
        completed = self.run(["cat-file", "-e", f"{revision}^{{commit}}"], check=False)
        return completed.returncode == 0

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        completed = self.run(["merge-base", "--is-ancestor", ancestor, descendant], check=False)
        if completed.returncode in (0, 1):
            return completed.returncode == 0
        raise RevisionControlError(
            f"git merge-base failed ({completed.returncode}): {completed.stderr.strip()}",
            returncode=completed.returncode,
            stderr=completed.stderr,
        )

    def list_files(self, revision: str) -> list[str]:
        """Tracked file paths at revision"""
        out = self.output(["ls-tree", "-r", "--name-only", "-z", revision])
        return [path for path in out.split("\0") if path]

    def changed_paths(self, from_revision: str, to_revision: str) -> list[tuple[str, str]]:
        """(status letter, path) pairs between two revisions; renames split into D + A"""
        out = self.output(
            ["diff", "--name-status", "--no-renames", "-z", from_revision, to_revision]
        )
        fields = [f for f in out.split("\0") if f]
        pairs = []
        for status, path in zip(fields[0::2], fields[1::2], strict=False):
            pairs.append((status[:1], path))
        return pairs

    def diff(self, from_revision: str | None, to_revision: str, path: str) -> str:
        """Unified diff of one path (against the empty tree when from_revision is None)"""
        base = from_revision or self.empty_tree()
        return self.output(["diff", "--no-color", base, to_revision, "--", path])

    def show(self, revision: str, path: str) -> str | None:
        completed = self.run(["show", f"{revision}:{path}"], check=False)
        if completed.returncode != 0:
            return None
        return completed.stdout

    def empty_tree(self) -> str:
        return self.output(["hash-object", "-t", "tree", os.devnull]).strip()

    def short_revision(self, revision: str) -> str:
        return self.output(["rev-parse", "--short", revision]).strip()

    # ------------------------------------------------------------------
    # Working tree updates (used by the sync target checkout)

    def clone(self, url: str, destination: Path, branch: str) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        self.run(["clone", "--branch", branch, url, str(destination)])

    def fetch(self, remote: str, branch: str) -> None:
        self.run(["fetch", remote, branch])

    def checkout_new_branch(self, branch: str, start_point: str) -> None:
        self.run(["checkout", "-B", branch, start_point])

    def discard_changes(self) -> None:
        """Drop uncommitted edits and untracked files left by an interrupted sync"""
        self.run(["reset", "--hard", "--quiet"])
        self.run(["clean", "-fdq"])

    def has_changes(self) -> bool:
        return bool(self.output(["status", "--porcelain"]).strip())

    def commit_all(self, message: str) -> bool:
        """Stage everything and commit; returns False when there is nothing to commit"""
        self.run(["add", "-A"])
        if not self.has_changes():
            return False

        env = os.environ.copy()
        env.setdefault("GIT_AUTHOR_NAME", "docsync")
        env.setdefault("GIT_AUTHOR_EMAIL", "docsync@localhost")
        env.setdefault("GIT_COMMITTER_NAME", env["GIT_AUTHOR_NAME"])
        env.setdefault("GIT_COMMITTER_EMAIL", env["GIT_AUTHOR_EMAIL"])
        self.run(["commit", "-m", message], env=env)
        return True

    def push(self, remote: str, branch: str) -> None:
        self.run(["push", "--force-with-lease", "-u", remote, branch])
