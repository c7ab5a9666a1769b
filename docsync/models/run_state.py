"""Model for the persisted run state (documentation/.docstate)"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RunState(BaseModel):
    """High-water mark of documented source, saved after every successful run"""

    model_config = ConfigDict(populate_by_name=True)

    last_processed_revision: str = Field(
        alias="lastProcessedRevision",
        min_length=1,
        description="Revision whose source is fully reflected in the documentation tree",
    )
    last_run_timestamp: datetime = Field(
        alias="lastRunTimestamp", description="When the last run completed"
    )
    synced_artifacts: list[str] | None = Field(
        alias="syncedArtifacts",
        default=None,
        description="Relative artifact paths last pushed to the sync target",
    )
    last_synced_revision: str | None = Field(
        alias="lastSyncedRevision",
        default=None,
        description="Revision last mirrored to the sync target",
    )
