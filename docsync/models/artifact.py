"""Documentation artifact models and identifier helpers"""

import re
from enum import Enum

from pydantic import BaseModel, Field

INDEX_STEM = "_index"

_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class ItemKind(str, Enum):
    """Kind of documented source item"""

    FUNCTION = "function"
    TYPE = "type"
    ERROR = "error"


class Visibility(str, Enum):
    """Destination subtree of an artifact"""

    PUBLIC = "public"
    PRIVATE = "private"


class ArtifactCategory(str, Enum):
    """Category of a generated documentation file"""

    OVERVIEW = "overview"
    ARCHITECTURE = "architecture"
    FUNCTION = "function"
    TYPE = "type"
    ERROR = "error"
    FEATURE = "feature"
    INDEX = "index"


class ArtifactStatus(str, Enum):
    """Lifecycle status of an artifact"""

    ACTIVE = "active"
    DEPRECATED = "deprecated"


class OperationKind(str, Enum):
    """Operation applied to an artifact"""

    CREATE = "create"
    UPDATE = "update"
    DEPRECATE = "deprecate"
    DELETE = "delete"


class Parameter(BaseModel):
    """A declared parameter of a function item"""

    name: str = Field(min_length=1)
    annotation: str | None = Field(default=None, description="Declared type, if any")
    default: str | None = Field(default=None, description="Default value source text")


class SourceItem(BaseModel):
    """A documented symbol extracted from a source file"""

    qualified_name: str = Field(min_length=1, description="Fully-qualified symbol name")
    name: str = Field(min_length=1, description="Short symbol name")
    kind: ItemKind = Field(description="Function, type or error")
    signature: str = Field(description="Declaration line(s) as written in source")
    doc: str = Field(default="", description="Doc comment / docstring text")
    visibility: Visibility = Field(default=Visibility.PUBLIC)
    deprecated: bool = Field(default=False, description="Flagged deprecated in source")
    parameters: list[Parameter] = Field(default_factory=list)
    returns: str | None = Field(default=None, description="Declared return type")
    raises: list[str] = Field(default_factory=list, description="Errors the item documents")
    examples: list[str] = Field(default_factory=list, description="Usage examples from the doc")
    related: list[str] = Field(
        default_factory=list, description="Qualified names of related items"
    )
    source_path: str = Field(description="Repository-relative path of the declaring file")
    line: int = Field(default=1, ge=1, description="1-based declaration line")

    @property
    def category(self) -> ArtifactCategory:
        return ArtifactCategory(self.kind.value)

    @property
    def artifact_id(self) -> str:
        return artifact_id_for(self.visibility, self.category, self.qualified_name)

    def documented_fields(self) -> tuple:
        """Fields whose change requires the artifact to be re-rendered"""
        return (
            self.signature,
            self.doc,
            tuple(p.model_dump_json() for p in self.parameters),
            self.returns,
            tuple(self.raises),
            tuple(self.examples),
            tuple(self.related),
            self.source_path,
        )


class ArtifactRecord(BaseModel):
    """Registry entry for an artifact present in the documentation tree"""

    artifact_id: str = Field(description="Relative artifact path without the .md suffix")
    category: ArtifactCategory
    visibility: Visibility | None = Field(default=None)
    status: ArtifactStatus = Field(default=ArtifactStatus.ACTIVE)
    title: str = Field(description="Display title")
    qualified_name: str | None = Field(default=None)
    source_path: str | None = Field(default=None)
    order: int | None = Field(default=None, description="Explicit ordering hint for indexes")
    related: list[str] = Field(default_factory=list)
    deprecated_at: str | None = Field(
        default=None, description="Target revision of the run that deprecated the artifact"
    )


class ArtifactOperation(BaseModel):
    """A single planned change to the documentation tree"""

    artifact_id: str = Field(description="Target artifact")
    op: OperationKind
    source_ref: str = Field(description="Source path and qualified name that triggered the op")
    item: SourceItem | None = Field(
        default=None, description="Current item content for create/update operations"
    )

    @property
    def is_index(self) -> bool:
        return artifact_id_stem(self.artifact_id) == INDEX_STEM

    def describe(self) -> str:
        return f"{self.op.value}({self.artifact_id})"


class ApplyResult(BaseModel):
    """Outcome of applying an operation sequence"""

    applied: list[ArtifactOperation] = Field(default_factory=list)
    failed: ArtifactOperation | None = Field(default=None)
    error: str | None = Field(default=None)

    @property
    def success(self) -> bool:
        return self.failed is None


def category_directory(category: ArtifactCategory) -> str:
    """Directory name holding artifacts of a category (function -> functions)"""
    return f"{category.value}s"


def slugify(qualified_name: str) -> str:
    """Deterministic, filesystem-safe id fragment for a qualified name"""
    slug = _UNSAFE_ID_CHARS.sub("-", qualified_name.replace("/", ".")).strip("-.")
    return slug or "unnamed"


def artifact_id_for(
    visibility: Visibility, category: ArtifactCategory, qualified_name: str
) -> str:
    return f"{visibility.value}/{category_directory(category)}/{slugify(qualified_name)}"


def artifact_id_stem(artifact_id: str) -> str:
    return artifact_id.rsplit("/", 1)[-1]


def index_id_for(artifact_id: str) -> str:
    """Id of the index artifact owning the directory of artifact_id"""
    parent, _, _ = artifact_id.rpartition("/")
    return f"{parent}/{INDEX_STEM}" if parent else INDEX_STEM
