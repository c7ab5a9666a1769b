"""Persistence of the run state (documentation/.docstate)"""

import json
import logging
from datetime import UTC, datetime

from pydantic import ValidationError

from docsync.models.run_state import RunState
from docsync.services.documentation_repository import DocumentationRepository
from docsync.utils.atomic import atomic_write_text

logger = logging.getLogger(__name__)


class StateError(Exception):
    """Raised when the run state file cannot be read or parsed"""

    def __init__(self, message: str, cause: Exception | None = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class StateStore:
    """Load and atomically save the run state

    Independent of ConfigStore: configuration may exist while the state is
    missing, which signals bootstrap (or recovery) mode to the caller.
    """

    def __init__(self, repository: DocumentationRepository):
        self.repository = repository

    def load(self) -> RunState | None:
        """
        Load run state from disk

        Returns:
            RunState, or None if no run has completed yet

        Raises:
            StateError: If the file exists but is not valid state JSON
        """
        state_file = self.repository.state_file
        if not state_file.exists():
            return None

        try:
            data = json.loads(state_file.read_text(encoding="utf-8"))
            return RunState.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise StateError(f"Invalid run state in {state_file}: {e}", e) from e

    def save(self, state: RunState) -> None:
        """Fully replace the stored run state (write-temp-then-rename)"""
        payload = state.model_dump_json(by_alias=True, indent=2) + "\n"
        atomic_write_text(self.repository.state_file, payload)
        logger.info(f"Run state saved at revision {state.last_processed_revision}")

    def advance(self, previous: RunState | None, revision: str) -> RunState:
        """Build and save the state for a completed run at revision"""
        state = RunState(
            last_processed_revision=revision,
            last_run_timestamp=datetime.now(UTC),
            synced_artifacts=previous.synced_artifacts if previous else None,
            last_synced_revision=previous.last_synced_revision if previous else None,
        )
        self.save(state)
        return state
