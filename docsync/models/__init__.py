"""Data models for documentation runs"""

from docsync.models.artifact import (
    ApplyResult,
    ArtifactCategory,
    ArtifactOperation,
    ArtifactRecord,
    ArtifactStatus,
    ItemKind,
    OperationKind,
    Parameter,
    SourceItem,
    Visibility,
)
from docsync.models.change import ChangeKind, FileChange
from docsync.models.configuration import Configuration, DeletionPolicy, Stack, SyncTarget
from docsync.models.run_result import RunResult, StatusReport
from docsync.models.run_state import RunState

__all__ = [
    "ApplyResult",
    "ArtifactCategory",
    "ArtifactOperation",
    "ArtifactRecord",
    "ArtifactStatus",
    "ItemKind",
    "OperationKind",
    "Parameter",
    "SourceItem",
    "Visibility",
    "ChangeKind",
    "FileChange",
    "Configuration",
    "DeletionPolicy",
    "Stack",
    "SyncTarget",
    "RunResult",
    "StatusReport",
    "RunState",
]
