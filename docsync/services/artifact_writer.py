"""Application of planned operations to the documentation tree"""

import logging
from collections.abc import Sequence

import yaml

from docsync.models.artifact import (
    INDEX_STEM,
    ApplyResult,
    ArtifactOperation,
    ArtifactStatus,
    OperationKind,
    index_id_for,
)
from docsync.models.configuration import Configuration
from docsync.services.artifact_registry import ArtifactRegistry
from docsync.services.artifact_renderer import ArtifactRenderer
from docsync.services.doc_parser import DocParser
from docsync.services.documentation_repository import DocumentationRepository
from docsync.utils.atomic import atomic_write_text, remove_file

logger = logging.getLogger(__name__)


class ArtifactWriteFailed(Exception):
    """Raised when an operation cannot be applied to the documentation tree"""

    def __init__(self, operation: ArtifactOperation, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Failed to apply {operation.describe()}: {cause}")


class ArtifactWriter:
    """Apply operations strictly in order, each as an atomic file replacement"""

    def __init__(
        self,
        repository: DocumentationRepository,
        configuration: Configuration,
        parser: DocParser | None = None,
        revision: str | None = None,
    ):
        """
        Initialize writer

        Args:
            repository: Documentation tree to write
            configuration: Project configuration
            parser: Front matter parser
            revision: Target revision of the run, stamped on new deprecations
        """
        self.repository = repository
        self.revision = revision
        self.configuration = configuration
        self.parser = parser or DocParser()
        self.renderer = ArtifactRenderer(configuration)
        self.last_error: Exception | None = None

    def apply(
        self,
        operations: Sequence[ArtifactOperation],
        registry: ArtifactRegistry | None = None,
    ) -> ApplyResult:
        """
        Apply operations in sequence order

        Every individual apply is idempotent: re-applying an operation whose
        content is already on disk writes nothing.

        Args:
            operations: Planned operations (index updates after their triggers)
            registry: Registry the operations were planned against (scanned if None)

        Returns:
            ApplyResult: Applied operations, plus the first failure if any. Nothing
            after a failed operation is attempted.
        """
        self.repository.ensure_exists()
        registry = registry if registry is not None else ArtifactRegistry.scan(
            self.repository, self.parser
        )
        projected = registry.projected(operations)
        result = ApplyResult()
        self.last_error = None

        for operation in operations:
            try:
                self._apply_one(operation, registry, projected)
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.error(f"Failed to apply {operation.describe()}: {e}")
                self.last_error = e
                result.failed = operation
                result.error = str(e)
                return result
            result.applied.append(operation)

        logger.info(f"Applied {len(result.applied)} operations")
        return result

    def apply_or_raise(
        self,
        operations: Sequence[ArtifactOperation],
        registry: ArtifactRegistry | None = None,
    ) -> ApplyResult:
        """
        apply(), raising on the first failure

        Raises:
            ArtifactWriteFailed: Carrying the failed operation and the original error
        """
        result = self.apply(operations, registry)
        if result.failed is not None:
            raise ArtifactWriteFailed(result.failed, self.last_error) from self.last_error
        return result

    def refresh_top_level(self) -> ArtifactRegistry:
        """Regenerate overview.md, architecture.md and every directory index from disk"""
        registry = ArtifactRegistry.scan(self.repository, self.parser)
        directories = set(registry.directories())
        directories.update(
            path.parent.relative_to(self.repository.root).as_posix()
            for path in self.repository.artifact_files()
            if path.stem == INDEX_STEM
        )
        for directory_id in sorted(directories):
            self._write_index(f"{directory_id}/{INDEX_STEM}")
        atomic_write_text(self.repository.overview_file, self.renderer.render_overview(registry))
        atomic_write_text(
            self.repository.architecture_file, self.renderer.render_architecture(registry)
        )
        self._warn_dangling_links(registry)
        return registry

    # ------------------------------------------------------------------
    # Internals

    def _apply_one(
        self,
        operation: ArtifactOperation,
        registry: ArtifactRegistry,
        projected: ArtifactRegistry,
    ) -> None:
        if operation.is_index:
            self._write_index(operation.artifact_id)
            return

        path = self.repository.artifact_path(operation.artifact_id)
        if operation.op == OperationKind.DELETE:
            remove_file(path)
            # Drop the entry from the owning index even if no index update follows
            self._write_index(index_id_for(operation.artifact_id))
            logger.info(f"Deleted {operation.artifact_id}")
            return

        if operation.item is not None:
            existing = registry.get(operation.artifact_id)
            deprecated_at = self.revision
            if existing is not None and existing.status == ArtifactStatus.DEPRECATED:
                deprecated_at = existing.deprecated_at or self.revision
            content = self.renderer.render_item(
                operation.artifact_id,
                operation.item,
                projected,
                deprecated=operation.op == OperationKind.DEPRECATE,
                order=existing.order if existing else None,
                deprecated_at=deprecated_at,
            )
        elif operation.op == OperationKind.DEPRECATE:
            if not path.exists():
                logger.warning(f"Cannot deprecate missing artifact {operation.artifact_id}")
                return
            content = self.renderer.render_deprecated(
                path.read_text(encoding="utf-8"), self.revision
            )
        else:
            raise ValueError(f"{operation.describe()} has no item content")

        if atomic_write_text(path, content):
            logger.info(f"{operation.op.value.capitalize()}d {operation.artifact_id}")

    def _write_index(self, index_id: str) -> None:
        directory_id = index_id.rpartition("/")[0]
        if not (self.repository.root / directory_id).exists():
            return

        # Built from what is on disk, so rebuilding is always safe
        records = ArtifactRegistry.scan_directory(self.repository, directory_id, self.parser)
        atomic_write_text(
            self.repository.index_path(directory_id),
            self.renderer.render_index(directory_id, records),
        )

    def _warn_dangling_links(self, registry: ArtifactRegistry) -> None:
        for record in registry:
            for reference in record.related:
                if registry.resolve(reference) is None:
                    logger.warning(f"Unresolved related item in {record.artifact_id}: {reference}")

        for path in self.repository.artifact_files():
            for link in self.parser.parse(path).links:
                target = link.partition("#")[0]
                if not target or "://" in target:
                    continue
                if not (path.parent / target).exists():
                    logger.warning(f"Dangling link in {path.name}: {link}")
