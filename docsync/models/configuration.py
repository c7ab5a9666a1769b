"""Models for the persisted project configuration (documentation/config.json)"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Stack(str, Enum):
    """Primary language ecosystem of the documented project"""

    GO = "go"
    RUST = "rust"
    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    PYTHON = "python"
    JAVA = "java"
    KOTLIN = "kotlin"
    CSHARP = "csharp"
    RUBY = "ruby"
    PHP = "php"
    SWIFT = "swift"
    UNKNOWN = "unknown"


class DeletionPolicy(str, Enum):
    """How removed source items are retired from the documentation tree"""

    SOFT = "soft"
    HARD = "hard"


SOURCE_EXCLUDE_PATTERNS = [
    "**/*.test.*",
    "**/*_test.*",
    "**/test_*.py",
    "tests/**",
    "**/node_modules/**",
    "**/vendor/**",
]


def default_exclude_patterns(documentation_dir: str = "documentation") -> list[str]:
    """Source exclusions plus the generated documentation directory"""
    directory = documentation_dir.strip("/")
    return [f"{directory}/**", *SOURCE_EXCLUDE_PATTERNS]


DEFAULT_EXCLUDE_PATTERNS = default_exclude_patterns()


class SyncTarget(BaseModel):
    """External documentation site repository mirrored from the generated tree"""

    model_config = ConfigDict(populate_by_name=True)

    repository_url: str = Field(
        alias="repositoryUrl", min_length=1, description="Clone URL of the site repository"
    )
    branch: str = Field(default="main", min_length=1, description="Base branch of the site")
    destination_path: str = Field(
        alias="destinationPath",
        default="docs/api",
        description="Directory inside the site repository that receives the artifacts",
    )
    sidebar_label: str = Field(
        alias="sidebarLabel", default="API Reference", description="Label of the root category"
    )

    @field_validator("destination_path")
    @classmethod
    def validate_destination_path(cls, v: str) -> str:
        """Reject absolute or escaping destination paths"""
        normalized = v.strip().strip("/")
        if not normalized or ".." in normalized.split("/"):
            raise ValueError(f"Invalid destination path: {v!r}")
        return normalized


class Configuration(BaseModel):
    """Project configuration, created once at bootstrap"""

    model_config = ConfigDict(populate_by_name=True)

    stack: Stack = Field(description="Detected or user-supplied ecosystem")
    exclude_patterns: list[str] = Field(
        alias="excludePatterns",
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS),
        description="Glob patterns for source paths that are never documented",
    )
    include_inline_examples: bool = Field(
        alias="includeInlineExamples",
        default=True,
        description="Render usage examples extracted from doc comments",
    )
    include_architecture_diagrams: bool = Field(
        alias="includeArchitectureDiagrams",
        default=False,
        description="Render a mermaid module diagram in architecture.md",
    )
    include_private: bool = Field(
        alias="includePrivate",
        default=False,
        description="Document private items under the private/ subtree",
    )
    deletion_policy: DeletionPolicy = Field(
        alias="deletionPolicy",
        default=DeletionPolicy.SOFT,
        description="Deprecate removed items first (soft) or delete them immediately (hard)",
    )
    sync_target: SyncTarget | None = Field(
        alias="syncTarget", default=None, description="Optional documentation site to mirror into"
    )

    @property
    def sync_enabled(self) -> bool:
        """Whether the sync subsystem is active"""
        return self.sync_target is not None
