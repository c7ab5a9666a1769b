"""Planning of artifact operations from a change set"""

import logging
from collections.abc import Sequence

from docsync.models.artifact import (
    ArtifactOperation,
    OperationKind,
    SourceItem,
    Visibility,
    index_id_for,
)
from docsync.models.change import FileChange
from docsync.models.configuration import Configuration, DeletionPolicy
from docsync.services.artifact_registry import ArtifactRegistry
from docsync.services.extractors import ExtractionError, SourceExtractor, get_extractor

logger = logging.getLogger(__name__)


class DocumentPlanner:
    """Map file changes to ordered, deterministic artifact operations

    plan() is a pure function of (changes, registry): the same inputs always
    produce the same operation sequence.
    """

    def __init__(self, configuration: Configuration, extractor: SourceExtractor | None = None):
        """
        Initialize planner

        Args:
            configuration: Project configuration (read-only)
            extractor: Source extractor (defaults to the one registered for the stack)
        """
        self.configuration = configuration
        self.extractor = extractor or get_extractor(configuration.stack)
        if self.extractor is None:
            logger.warning(
                f"No source extractor for stack '{configuration.stack.value}'; "
                "item artifacts will not be generated"
            )

    def plan(
        self,
        changes: Sequence[FileChange],
        registry: ArtifactRegistry,
        revision: str | None = None,
    ) -> list[ArtifactOperation]:
        """
        Plan operations for a change set

        Args:
            changes: File changes (any order; processed by path)
            registry: Artifacts present in the documentation tree before this run
            revision: Target revision of the run. Artifacts deprecated at this
                revision are not yet committed and are never deleted by it.

        Returns:
            Item operations in path / qualified-name order, followed by one
            index update per directory whose listing changed
        """
        operations: list[ArtifactOperation] = []
        for change in sorted(changes, key=lambda c: c.path):
            operations.extend(self._plan_file(change, registry, revision))

        operations.extend(self._index_updates(operations))
        logger.info(f"Planned {len(operations)} operations for {len(changes)} changed files")
        return operations

    def plan_prune(
        self,
        current_items: dict[str, SourceItem],
        registry: ArtifactRegistry,
        revision: str | None = None,
    ) -> list[ArtifactOperation]:
        """
        Plan the explicit confirmation pass over artifacts with no source item

        Orphans deprecated by an earlier run are deleted; active orphans are
        retired according to the deletion policy.
        """
        operations = []
        for record in registry:
            if record.artifact_id in current_items:
                continue
            source_ref = f"{record.source_path or '?'}#{record.qualified_name or record.title}"
            operations.append(
                ArtifactOperation(
                    artifact_id=record.artifact_id,
                    op=self._removal_op(record.artifact_id, registry, revision),
                    source_ref=source_ref,
                )
            )

        operations.extend(self._index_updates(operations))
        logger.info(f"Planned {len(operations)} prune operations")
        return operations

    def collect_items(self, changes: Sequence[FileChange]) -> dict[str, SourceItem]:
        """Documented items at the target revision, keyed by artifact id"""
        items: dict[str, SourceItem] = {}
        for change in sorted(changes, key=lambda c: c.path):
            if not self._supports(change.path) or change.new_content is None:
                continue
            try:
                items.update(self._extract(change.new_content, change.path))
            except ExtractionError as e:
                logger.warning(f"Skipping {change.path}: {e.message}")
        return items

    # ------------------------------------------------------------------
    # Internals

    def _supports(self, path: str) -> bool:
        return self.extractor is not None and self.extractor.supports(path)

    def _extract(self, content: str, path: str) -> dict[str, SourceItem]:
        items = self.extractor.list_public_items(content, path)
        if not self.configuration.include_private:
            items = [item for item in items if item.visibility == Visibility.PUBLIC]
        return {item.artifact_id: item for item in items}

    def _plan_file(
        self, change: FileChange, registry: ArtifactRegistry, revision: str | None
    ) -> list[ArtifactOperation]:
        if not self._supports(change.path):
            return []

        try:
            new_items = self._extract(change.new_content, change.path) if change.new_content else {}
        except ExtractionError as e:
            # Planning from an unparseable file would retire every item it declares
            logger.warning(f"Skipping {change.path}: {e.message}")
            return []

        old_items: dict[str, SourceItem] = {}
        if change.old_content:
            try:
                old_items = self._extract(change.old_content, change.path)
            except ExtractionError as e:
                logger.warning(f"Previous content of {change.path} unparseable: {e.message}")

        operations = []
        for artifact_id in sorted(old_items.keys() | new_items.keys()):
            operation = self._plan_item(
                artifact_id,
                old_items.get(artifact_id),
                new_items.get(artifact_id),
                registry,
                revision,
            )
            if operation is not None:
                operations.append(operation)
        return operations

    def _plan_item(
        self,
        artifact_id: str,
        old: SourceItem | None,
        new: SourceItem | None,
        registry: ArtifactRegistry,
        revision: str | None,
    ) -> ArtifactOperation | None:
        item = new or old
        source_ref = f"{item.source_path}#{item.qualified_name}"
        known = artifact_id in registry

        if new is None:
            if not known:
                logger.debug(f"Removed item {source_ref} had no artifact")
                return None
            op = self._removal_op(artifact_id, registry, revision)
            return ArtifactOperation(artifact_id=artifact_id, op=op, source_ref=source_ref)

        if not known:
            return ArtifactOperation(
                artifact_id=artifact_id, op=OperationKind.CREATE, source_ref=source_ref, item=new
            )

        newly_deprecated = new.deprecated and not registry.is_deprecated(artifact_id)
        if newly_deprecated:
            return ArtifactOperation(
                artifact_id=artifact_id,
                op=OperationKind.DEPRECATE,
                source_ref=source_ref,
                item=new,
            )

        changed = (
            old is None
            or old.documented_fields() != new.documented_fields()
            or registry.is_deprecated(artifact_id) != new.deprecated
        )
        if changed:
            return ArtifactOperation(
                artifact_id=artifact_id, op=OperationKind.UPDATE, source_ref=source_ref, item=new
            )
        return None

    def _removal_op(
        self, artifact_id: str, registry: ArtifactRegistry, revision: str | None
    ) -> OperationKind:
        if self.configuration.deletion_policy == DeletionPolicy.HARD:
            return OperationKind.DELETE
        if registry.deprecated_before(artifact_id, revision):
            return OperationKind.DELETE
        return OperationKind.DEPRECATE

    def _index_updates(self, operations: list[ArtifactOperation]) -> list[ArtifactOperation]:
        index_ids = sorted(
            {
                index_id_for(operation.artifact_id)
                for operation in operations
                if operation.op in (OperationKind.CREATE, OperationKind.DELETE)
            }
        )
        return [
            ArtifactOperation(
                artifact_id=index_id,
                op=OperationKind.UPDATE,
                source_ref=index_id.rpartition("/")[0],
            )
            for index_id in index_ids
        ]
