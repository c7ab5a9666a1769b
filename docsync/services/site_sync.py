"""Mirror the documentation tree into a Docusaurus site repository"""

import asyncio
import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from docsync.config import config
from docsync.models.artifact import INDEX_STEM
from docsync.models.configuration import SyncTarget
from docsync.services.artifact_renderer import render_front_matter, split_front_matter
from docsync.services.documentation_repository import DocumentationRepository
from docsync.services.git_client import GitClient, RevisionControlError
from docsync.services.github_client import GitHubApiError, GitHubClient, parse_github_remote
from docsync.utils.atomic import atomic_write_text, remove_file

logger = logging.getLogger(__name__)

CATEGORY_FILE = "_category_.json"

# Links into a directory index must follow the rename to index.md
_INDEX_LINK = re.compile(r"(?<=[(/])" + re.escape(INDEX_STEM) + r"\.md(?=[)#])")

_TOP_LEVEL_POSITIONS = {"overview": 1, "architecture": 2}


class SyncPushFailed(Exception):
    """Raised when the sync target cannot be updated; documentation state is unaffected"""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Sync failed: {cause}")


@dataclass
class SyncResult:
    """Outcome of one sync"""

    branch: str
    committed: bool = False
    pull_request_url: str | None = None
    synced_artifacts: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


class SiteSync:
    """Copy artifacts into a site checkout, then commit, push and open a pull request"""

    def __init__(
        self,
        repository: DocumentationRepository,
        target: SyncTarget,
        workdir: str | Path | None = None,
        git_factory: Callable[[Path], GitClient] = GitClient,
        github_client: GitHubClient | None = None,
    ):
        """
        Initialize site sync

        Args:
            repository: Generated documentation tree (source of the copy)
            target: Site repository description from the project configuration
            workdir: Local checkout of the site (defaults to config.sync_workdir,
                relative paths resolved against the project root)
            git_factory: Builds a GitClient for a working tree path
            github_client: Client used to open pull requests on GitHub remotes
        """
        self.repository = repository
        self.target = target
        workdir = Path(workdir or config.sync_workdir)
        if not workdir.is_absolute():
            workdir = repository.project_root / workdir
        self.workdir = workdir
        self.git_factory = git_factory
        self.github_client = github_client

    @property
    def destination(self) -> Path:
        return self.workdir / self.target.destination_path

    def sync(self, revision: str, previously_synced: list[str] | None = None) -> SyncResult:
        """
        Mirror the documentation tree at revision into the site repository

        Args:
            revision: Source revision the documentation tree reflects
            previously_synced: Destination-relative paths written by the last sync

        Returns:
            SyncResult: Branch, commit/PR outcome and the paths now mirrored

        Raises:
            SyncPushFailed: On any checkout, push or pull request failure
        """
        branch = f"{config.sync_branch_prefix}/{revision[:12]}"
        try:
            git = self._prepare_checkout(branch)
            result = SyncResult(branch=branch)
            result.synced_artifacts = self._copy_tree()
            result.removed = self._remove_stale(previously_synced or [], result.synced_artifacts)

            result.committed = git.commit_all(f"docs: sync API documentation at {revision[:12]}")
            if not result.committed:
                logger.info("Sync target already up to date; nothing to push")
                return result

            git.push("origin", branch)
            logger.info(f"Pushed {branch} to {self.target.repository_url}")
            result.pull_request_url = self._open_pull_request(branch, revision)
            return result
        except (RevisionControlError, GitHubApiError, OSError) as e:
            logger.error(f"Sync to {self.target.repository_url} failed: {e}")
            raise SyncPushFailed(e) from e

    # ------------------------------------------------------------------
    # Internals

    def _prepare_checkout(self, branch: str) -> GitClient:
        if (self.workdir / ".git").exists():
            git = self.git_factory(self.workdir)
            git.discard_changes()
            git.fetch("origin", self.target.branch)
        else:
            logger.info(f"Cloning {self.target.repository_url} into {self.workdir}")
            self.workdir.parent.mkdir(parents=True, exist_ok=True)
            self.git_factory(self.workdir.parent).clone(
                self.target.repository_url, self.workdir, self.target.branch
            )
            git = self.git_factory(self.workdir)
        git.checkout_new_branch(branch, f"origin/{self.target.branch}")
        return git

    def _copy_tree(self) -> list[str]:
        written: list[str] = []
        directories: set[str] = set()
        for path in sorted(self.repository.root.rglob("*.md")):
            if not path.is_file():
                continue
            relative = path.relative_to(self.repository.root)
            if relative.stem == INDEX_STEM:
                relative = relative.with_name("index.md")
            content = self._to_site_document(path.read_text(encoding="utf-8"), relative)
            atomic_write_text(self.destination / relative, content)
            written.append(relative.as_posix())

            parent = relative.parent
            while parent != Path("."):
                directories.add(parent.as_posix())
                parent = parent.parent

        for category in self._write_categories(directories):
            written.append(category)
        return sorted(written)

    def _to_site_document(self, text: str, relative: Path) -> str:
        front_matter, body = split_front_matter(text)
        doc_id = relative.stem
        title = str(front_matter.get("title") or doc_id)
        site_front_matter = {"id": doc_id, "title": title, "sidebar_label": title}

        position = front_matter.get("order")
        if relative.parent == Path("."):
            position = _TOP_LEVEL_POSITIONS.get(doc_id, position)
        elif doc_id == "index":
            position = 0
        if position is not None:
            site_front_matter["sidebar_position"] = position

        body = _INDEX_LINK.sub("index.md", body)
        return render_front_matter(site_front_matter) + body

    def _write_categories(self, directories: set[str]) -> list[str]:
        written = []
        root_category = {"label": self.target.sidebar_label, "position": 1, "collapsed": False}
        self._write_json(CATEGORY_FILE, root_category)
        written.append(CATEGORY_FILE)

        siblings: dict[str, list[str]] = {}
        for directory in directories:
            parent, _, _ = directory.rpartition("/")
            siblings.setdefault(parent, []).append(directory)

        for parent, names in siblings.items():
            # Overview and architecture occupy the first top-level positions
            start = len(_TOP_LEVEL_POSITIONS) + 1 if not parent else 1
            for position, directory in enumerate(sorted(names), start=start):
                label = directory.rpartition("/")[2].replace("_", " ").capitalize()
                relative = f"{directory}/{CATEGORY_FILE}"
                self._write_json(
                    relative, {"label": label, "position": position, "collapsed": True}
                )
                written.append(relative)
        return written

    def _write_json(self, relative: str, data: dict) -> None:
        atomic_write_text(self.destination / relative, json.dumps(data, indent=2) + "\n")

    def _remove_stale(self, previously_synced: list[str], current: list[str]) -> list[str]:
        stale = sorted(set(previously_synced) - set(current))
        for relative in stale:
            path = self.destination / relative
            if remove_file(path):
                logger.info(f"Removed stale synced file {relative}")
            self._prune_empty_parents(path.parent)
        return stale

    def _prune_empty_parents(self, directory: Path) -> None:
        while (
            directory != self.destination
            and directory.is_dir()
            and not any(directory.iterdir())
        ):
            directory.rmdir()
            directory = directory.parent

    def _open_pull_request(self, branch: str, revision: str) -> str | None:
        remote = parse_github_remote(self.target.repository_url)
        if remote is None:
            logger.info("Sync target is not a GitHub repository; skipping pull request")
            return None

        client = self.github_client or GitHubClient()
        if not client.authenticated:
            logger.info("No GitHub token configured; skipping pull request")
            return None

        owner, repo = remote
        return asyncio.run(self._create_pull_request(client, owner, repo, branch, revision))

    async def _create_pull_request(
        self, client: GitHubClient, owner: str, repo: str, branch: str, revision: str
    ) -> str:
        try:
            return await client.create_pull_request(
                owner,
                repo,
                head=branch,
                base=self.target.branch,
                title=f"docs: sync API documentation ({revision[:12]})",
                body=(
                    f"Generated documentation for source revision `{revision}`, "
                    f"mirrored into `{self.target.destination_path}`."
                ),
            )
        finally:
            await client.close()
