"""Models for run outcomes and status reports"""

from datetime import datetime

from pydantic import BaseModel, Field


class RunResult(BaseModel):
    """Result of a documentation run"""

    success: bool = Field(description="Whether the run completed and advanced state")
    start_time: datetime = Field(description="When the run started")
    end_time: datetime = Field(description="When the run ended")
    duration_seconds: float = Field(description="Duration in seconds")
    from_revision: str | None = Field(default=None, description="Starting revision")
    to_revision: str | None = Field(default=None, description="Target revision")
    full_rescan: bool = Field(default=False, description="Whether every file was treated as added")
    files_changed: int = Field(default=0, ge=0, description="Number of FileChange entries")
    operations_planned: int = Field(default=0, ge=0)
    operations_applied: int = Field(default=0, ge=0)
    synced: bool = Field(default=False, description="Whether the sync phase pushed a branch")
    pull_request_url: str | None = Field(default=None)
    error: str | None = Field(default=None, description="Error message if failed")


class StatusReport(BaseModel):
    """Snapshot of the documentation tree relative to the source repository"""

    initialized: bool = Field(description="Whether config.json exists")
    stack: str | None = Field(default=None, description="Configured stack")
    last_processed_revision: str | None = Field(default=None)
    last_run_timestamp: datetime | None = Field(default=None)
    head_revision: str | None = Field(default=None, description="Current source revision")
    pending_files: int | None = Field(
        default=None, description="Non-excluded files changed since the last processed revision"
    )
    artifacts: int = Field(default=0, ge=0, description="Item artifacts in the tree")
    deprecated_artifacts: int = Field(default=0, ge=0)
    sync_enabled: bool = Field(default=False)
    last_synced_revision: str | None = Field(default=None)
    run_in_progress: bool = Field(default=False, description="Whether the run lock is held")
