"""Registry of artifacts present in the documentation tree"""

import logging
from collections.abc import Iterable, Iterator

from pydantic import ValidationError

from docsync.models.artifact import (
    INDEX_STEM,
    ArtifactCategory,
    ArtifactOperation,
    ArtifactRecord,
    ArtifactStatus,
    OperationKind,
    Visibility,
    artifact_id_stem,
)
from docsync.services.doc_parser import DocParser
from docsync.services.documentation_repository import DocumentationRepository

logger = logging.getLogger(__name__)


def _revision_or_none(value) -> str | None:
    return None if value is None else str(value)


class ArtifactRegistry:
    """Artifact records keyed by id, recovered from artifact front matter"""

    def __init__(self, records: Iterable[ArtifactRecord] = ()):
        self._records: dict[str, ArtifactRecord] = {r.artifact_id: r for r in records}

    @classmethod
    def scan(
        cls, repository: DocumentationRepository, parser: DocParser | None = None
    ) -> "ArtifactRegistry":
        """Build the registry from every item artifact under the visibility subtrees"""
        parser = parser or DocParser()
        records = []
        for path in repository.artifact_files():
            if path.stem == INDEX_STEM:
                continue
            artifact_id = repository.artifact_id_for_path(path)
            record = cls._record_from_file(artifact_id, parser.parse(path).front_matter)
            if record is not None:
                records.append(record)

        registry = cls(records)
        logger.debug(f"Registry scanned: {len(registry)} artifacts")
        return registry

    @classmethod
    def scan_directory(
        cls,
        repository: DocumentationRepository,
        directory_id: str,
        parser: DocParser | None = None,
    ) -> list[ArtifactRecord]:
        """Records for the item artifacts directly inside one directory"""
        parser = parser or DocParser()
        directory = repository.root / directory_id
        records = []
        for path in sorted(directory.glob("*.md")):
            if path.stem == INDEX_STEM or not path.is_file():
                continue
            artifact_id = repository.artifact_id_for_path(path)
            record = cls._record_from_file(artifact_id, parser.parse(path).front_matter)
            if record is not None:
                records.append(record)
        return records

    @staticmethod
    def _record_from_file(artifact_id: str, front_matter: dict) -> ArtifactRecord | None:
        try:
            visibility = front_matter.get("visibility")
            return ArtifactRecord(
                artifact_id=artifact_id,
                category=ArtifactCategory(front_matter.get("category", "feature")),
                visibility=Visibility(visibility) if visibility else None,
                status=ArtifactStatus(front_matter.get("status", "active")),
                title=str(front_matter.get("title") or artifact_id_stem(artifact_id)),
                qualified_name=front_matter.get("qualified_name"),
                source_path=front_matter.get("source"),
                order=front_matter.get("order"),
                related=list(front_matter.get("related") or []),
                deprecated_at=_revision_or_none(front_matter.get("deprecated_at")),
            )
        except (ValueError, ValidationError) as e:
            logger.warning(f"Ignoring artifact {artifact_id} with invalid front matter: {e}")
            return None

    def __contains__(self, artifact_id: str) -> bool:
        return artifact_id in self._records

    def __iter__(self) -> Iterator[ArtifactRecord]:
        return iter(sorted(self._records.values(), key=lambda r: r.artifact_id))

    def __len__(self) -> int:
        return len(self._records)

    def get(self, artifact_id: str) -> ArtifactRecord | None:
        return self._records.get(artifact_id)

    def is_deprecated(self, artifact_id: str) -> bool:
        record = self._records.get(artifact_id)
        return record is not None and record.status == ArtifactStatus.DEPRECATED

    def deprecated_before(self, artifact_id: str, revision: str | None) -> bool:
        """
        Whether the artifact was deprecated by a run targeting another revision

        A deprecation stamped with revision itself may come from an earlier,
        failed attempt at the same run; it does not count as committed.
        """
        if not self.is_deprecated(artifact_id):
            return False
        deprecated_at = self._records[artifact_id].deprecated_at
        return revision is None or deprecated_at != revision

    def in_directory(self, directory_id: str) -> list[ArtifactRecord]:
        prefix = f"{directory_id}/"
        return [
            r
            for r in self
            if r.artifact_id.startswith(prefix) and "/" not in r.artifact_id[len(prefix) :]
        ]

    def directories(self) -> list[str]:
        return sorted({r.artifact_id.rpartition("/")[0] for r in self})

    def resolve(self, reference: str) -> ArtifactRecord | None:
        """Find the artifact for a qualified (or unambiguous short) name"""
        exact = [r for r in self if r.qualified_name == reference]
        if exact:
            return exact[0]
        suffix = f".{reference}"
        candidates = [r for r in self if r.qualified_name and r.qualified_name.endswith(suffix)]
        if len(candidates) == 1:
            return candidates[0]
        return None

    def projected(self, operations: Iterable[ArtifactOperation]) -> "ArtifactRegistry":
        """Registry as it will be after operations are applied"""
        records = dict(self._records)
        for operation in operations:
            if operation.is_index:
                continue
            if operation.op == OperationKind.DELETE:
                records.pop(operation.artifact_id, None)
            elif operation.item is not None:
                item = operation.item
                existing = records.get(operation.artifact_id)
                deprecated = operation.op == OperationKind.DEPRECATE or item.deprecated
                records[operation.artifact_id] = ArtifactRecord(
                    artifact_id=operation.artifact_id,
                    category=item.category,
                    visibility=item.visibility,
                    status=ArtifactStatus.DEPRECATED if deprecated else ArtifactStatus.ACTIVE,
                    title=item.name,
                    qualified_name=item.qualified_name,
                    source_path=item.source_path,
                    order=existing.order if existing else None,
                    related=list(item.related),
                )
            elif operation.op == OperationKind.DEPRECATE and operation.artifact_id in records:
                records[operation.artifact_id] = records[operation.artifact_id].model_copy(
                    update={"status": ArtifactStatus.DEPRECATED}
                )
        return ArtifactRegistry(records.values())
