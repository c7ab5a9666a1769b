"""Change set resolution between two revisions"""

import logging
from collections.abc import Sequence

from docsync.models.change import ChangeKind, FileChange
from docsync.services.git_client import GitClient
from docsync.utils.globs import is_excluded

logger = logging.getLogger(__name__)

_STATUS_KINDS = {
    "A": ChangeKind.ADDED,
    "M": ChangeKind.MODIFIED,
    "T": ChangeKind.MODIFIED,
    "D": ChangeKind.REMOVED,
}


class RevisionUnreachable(Exception):
    """Raised when the starting revision is unknown or no longer an ancestor"""

    def __init__(self, revision: str, reason: str):
        self.revision = revision
        self.reason = reason
        super().__init__(f"Revision {revision} is unreachable: {reason}")


class ChangeSetResolver:
    """Compute the filtered, path-ordered file changes between two revisions"""

    def __init__(self, git: GitClient):
        self.git = git

    def resolve(
        self,
        from_revision: str | None,
        to_revision: str,
        exclude_patterns: Sequence[str],
    ) -> list[FileChange]:
        """
        Resolve file changes between two revisions

        Args:
            from_revision: Last processed revision, or None for a full scan
            to_revision: Target revision
            exclude_patterns: Globs; a path matching any of them yields no change

        Returns:
            FileChange entries sorted by path ascending

        Raises:
            RevisionUnreachable: If from_revision is unknown or not an ancestor of
                to_revision (history rewritten)
        """
        if from_revision is None:
            return self.resolve_full(to_revision, exclude_patterns)

        if not self.git.revision_exists(from_revision):
            raise RevisionUnreachable(from_revision, "revision not found")
        if not self.git.is_ancestor(from_revision, to_revision):
            raise RevisionUnreachable(from_revision, f"not an ancestor of {to_revision}")

        changes = []
        skipped = 0
        for status, path in self.git.changed_paths(from_revision, to_revision):
            kind = _STATUS_KINDS.get(status)
            if kind is None:
                logger.debug(f"Ignoring status {status} for {path}")
                continue
            if is_excluded(path, exclude_patterns):
                skipped += 1
                continue
            changes.append(self._build_change(path, kind, from_revision, to_revision))

        changes.sort(key=lambda change: change.path)
        logger.info(
            f"Resolved {len(changes)} changed files between "
            f"{from_revision[:12]} and {to_revision[:12]} ({skipped} excluded)"
        )
        return changes

    def resolve_full(self, to_revision: str, exclude_patterns: Sequence[str]) -> list[FileChange]:
        """Treat every tracked, non-excluded file at to_revision as added"""
        paths = sorted(
            path
            for path in self.git.list_files(to_revision)
            if not is_excluded(path, exclude_patterns)
        )
        changes = [
            self._build_change(path, ChangeKind.ADDED, None, to_revision) for path in paths
        ]
        logger.info(f"Full scan at {to_revision[:12]}: {len(changes)} files")
        return changes

    def _build_change(
        self,
        path: str,
        kind: ChangeKind,
        from_revision: str | None,
        to_revision: str,
    ) -> FileChange:
        old_content = None
        new_content = None
        if kind != ChangeKind.ADDED and from_revision is not None:
            old_content = self.git.show(from_revision, path)
        if kind != ChangeKind.REMOVED:
            new_content = self.git.show(to_revision, path)

        return FileChange(
            path=path,
            change_kind=kind,
            unified_diff=self.git.diff(from_revision, to_revision, path),
            old_content=old_content,
            new_content=new_content,
        )
