"""Change set models produced by the change set resolver"""

from enum import Enum

from pydantic import BaseModel, Field


class ChangeKind(str, Enum):
    """How a file differs between two revisions"""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


class FileChange(BaseModel):
    """A single file-level delta between two revisions"""

    path: str = Field(min_length=1, description="Repository-relative POSIX path")
    change_kind: ChangeKind = Field(description="Kind of change")
    unified_diff: str = Field(default="", description="Unified diff for this path")
    old_content: str | None = Field(
        default=None, description="File content at the starting revision (None if added)"
    )
    new_content: str | None = Field(
        default=None, description="File content at the target revision (None if removed)"
    )
