"""Orchestrates documentation runs, prune passes, sync and scheduled watching"""

import logging
from collections.abc import Callable
from datetime import datetime

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from docsync.models.configuration import (
    Configuration,
    Stack,
    SyncTarget,
    default_exclude_patterns,
)
from docsync.models.run_result import RunResult, StatusReport
from docsync.models.run_state import RunState
from docsync.services.artifact_registry import ArtifactRegistry
from docsync.services.artifact_writer import ArtifactWriter
from docsync.services.change_resolver import ChangeSetResolver, RevisionUnreachable
from docsync.services.config_store import ConfigError, ConfigStore
from docsync.services.doc_parser import DocParser
from docsync.services.document_planner import DocumentPlanner
from docsync.services.documentation_repository import DocumentationRepository
from docsync.services.extractors import SourceExtractor
from docsync.services.git_client import GitClient, RevisionControlError
from docsync.services.run_lock import RunAlreadyInProgress, RunLock
from docsync.services.site_sync import SiteSync, SyncPushFailed, SyncResult
from docsync.services.stack_detector import StackDetector
from docsync.services.state_store import StateError, StateStore
from docsync.services.telemetry import TelemetryService
from docsync.utils.atomic import cleanup_stale_temp_files
from docsync.utils.globs import is_excluded

logger = logging.getLogger(__name__)

WATCH_JOB_ID = "docsync_run"


class RunOrchestrator:
    """Drive one documentation tree through bootstrap, runs, prune and sync"""

    def __init__(
        self,
        repository: DocumentationRepository | None = None,
        git: GitClient | None = None,
        extractor: SourceExtractor | None = None,
        site_sync_factory: Callable[[SyncTarget], SiteSync] | None = None,
        telemetry: TelemetryService | None = None,
    ):
        """
        Initialize run orchestrator

        Args:
            repository: Documentation tree handle (defaults to config paths)
            git: Revision control client for the source repository
            extractor: Override the stack's source extractor
            site_sync_factory: Builds the SiteSync for a sync target
            telemetry: Optional telemetry service for run outcomes
        """
        self.repository = repository or DocumentationRepository()
        self.git = git or GitClient(self.repository.project_root)
        self.extractor = extractor
        self.site_sync_factory = site_sync_factory or (
            lambda target: SiteSync(self.repository, target)
        )
        self.telemetry = telemetry
        self.config_store = ConfigStore(self.repository)
        self.state_store = StateStore(self.repository)
        self.resolver = ChangeSetResolver(self.git)
        self.parser = DocParser()
        self.scheduler: BaseScheduler | None = None

    # ------------------------------------------------------------------
    # Bootstrap

    def bootstrap(
        self, stack: Stack | None = None, sync_target: SyncTarget | None = None
    ) -> Configuration:
        """
        Create the project configuration (once)

        Args:
            stack: Explicit stack; detected from marker files when None
            sync_target: Optional documentation site to mirror into

        Returns:
            Configuration: The persisted configuration

        Raises:
            ConfigError: If a configuration already exists
            StackUndetected: If stack is None and no marker file matches
        """
        if self.config_store.exists():
            raise ConfigError(f"Already initialized: {self.repository.config_file}")

        stack = stack or StackDetector().detect(self.repository.project_root)
        configuration = Configuration(
            stack=stack,
            sync_target=sync_target,
            exclude_patterns=default_exclude_patterns(self.repository.relative_root),
        )
        self.repository.ensure_exists()
        self.config_store.save(configuration)
        logger.info(f"Bootstrapped documentation for stack '{stack.value}'")
        return configuration

    # ------------------------------------------------------------------
    # Runs

    def run(self) -> RunResult:
        """
        Execute one incremental run

        Process:
        1. Acquire the run lock and clear temp files from interrupted writes
        2. Load configuration (bootstrapping it on first use) and run state
        3. Resolve changes since the last processed revision (full rescan when
           there is none or it is unreachable)
        4. Plan and apply operations; the first failure aborts the run
        5. Regenerate overview.md / architecture.md and commit the new state
        6. Mirror to the sync target, if configured

        Returns:
            RunResult: Result of the run

        Raises:
            RunAlreadyInProgress: If another run holds the lock
            ArtifactWriteFailed: If an operation fails (state not advanced)
            RevisionControlError: If git fails or times out (state not advanced)
        """
        start_time = datetime.now()
        with RunLock(self.repository.lock_file):
            cleanup_stale_temp_files(self.repository.root)
            configuration = self.config_store.load()
            if configuration is None:
                logger.info("No configuration found; bootstrapping")
                configuration = self.bootstrap()
            state = self.state_store.load()

            to_revision = self.git.head_revision()
            from_revision = state.last_processed_revision if state else None
            full_rescan = from_revision is None
            try:
                changes = self.resolver.resolve(
                    from_revision, to_revision, configuration.exclude_patterns
                )
            except RevisionUnreachable as e:
                logger.warning(f"{e}; falling back to a full rescan")
                full_rescan = True
                changes = self.resolver.resolve_full(to_revision, configuration.exclude_patterns)

            registry = ArtifactRegistry.scan(self.repository, self.parser)
            operations = DocumentPlanner(configuration, self.extractor).plan(
                changes, registry, to_revision
            )
            writer = ArtifactWriter(self.repository, configuration, self.parser, to_revision)
            applied = writer.apply_or_raise(operations, registry)
            writer.refresh_top_level()

            # Single commit point: nothing above this line advances the state
            state = self.state_store.advance(state, to_revision)

            result = RunResult(
                success=True,
                start_time=start_time,
                end_time=start_time,
                duration_seconds=0.0,
                from_revision=from_revision,
                to_revision=to_revision,
                full_rescan=full_rescan,
                files_changed=len(changes),
                operations_planned=len(operations),
                operations_applied=len(applied.applied),
            )

            if configuration.sync_enabled:
                try:
                    _, sync_result = self._sync(configuration, state)
                    result.synced = sync_result.committed
                    result.pull_request_url = sync_result.pull_request_url
                except SyncPushFailed as e:
                    # Documentation state is already committed and stays that way
                    result.error = str(e)

        return self._finish(result)

    def run_once(self) -> RunResult:
        """
        run(), reporting failures in the result instead of raising

        Used by the CLI and the scheduler; never raises.
        """
        start_time = datetime.now()
        try:
            result = self.run()
            error = None
        except RunAlreadyInProgress as e:
            logger.warning(f"Skipping run: {e}")
            result, error = self._failed(start_time, e), e
        except Exception as e:
            logger.error(f"Run failed with exception: {e}", exc_info=True)
            result, error = self._failed(start_time, e), e

        if self.telemetry is not None:
            self.telemetry.log_run("run", result, error)
        return result

    def prune(self) -> RunResult:
        """
        Retire artifacts whose source item no longer exists

        Compares the registry against every item at the last processed
        revision (HEAD before the first run). Orphans deprecated at an earlier
        revision are deleted; active orphans follow the deletion policy. State
        is not advanced.

        Raises:
            ConfigError: If the project is not initialized
            RunAlreadyInProgress: If another run holds the lock
            ArtifactWriteFailed: If an operation fails
        """
        start_time = datetime.now()
        with RunLock(self.repository.lock_file):
            configuration = self._require_configuration()
            state = self.state_store.load()
            revision = state.last_processed_revision if state else self.git.head_revision()

            changes = self.resolver.resolve_full(revision, configuration.exclude_patterns)
            planner = DocumentPlanner(configuration, self.extractor)
            registry = ArtifactRegistry.scan(self.repository, self.parser)
            operations = planner.plan_prune(planner.collect_items(changes), registry, revision)

            writer = ArtifactWriter(self.repository, configuration, self.parser, revision)
            applied = writer.apply_or_raise(operations, registry)
            writer.refresh_top_level()

        return self._finish(
            RunResult(
                success=True,
                start_time=start_time,
                end_time=start_time,
                duration_seconds=0.0,
                to_revision=revision,
                full_rescan=True,
                files_changed=len(changes),
                operations_planned=len(operations),
                operations_applied=len(applied.applied),
            )
        )

    def sync(self) -> RunResult:
        """
        Mirror the current documentation tree without running the planner

        Raises:
            ConfigError: If the project is not initialized or has no sync target
            StateError: If no run has completed yet
            SyncPushFailed: If the sync target cannot be updated
        """
        start_time = datetime.now()
        with RunLock(self.repository.lock_file):
            configuration = self._require_configuration()
            if not configuration.sync_enabled:
                raise ConfigError("No syncTarget configured; sync is disabled")
            state = self.state_store.load()
            if state is None:
                raise StateError("No completed run to sync; run `docsync run` first")

            _, sync_result = self._sync(configuration, state)

        return self._finish(
            RunResult(
                success=True,
                start_time=start_time,
                end_time=start_time,
                duration_seconds=0.0,
                from_revision=state.last_synced_revision,
                to_revision=state.last_processed_revision,
                synced=sync_result.committed,
                pull_request_url=sync_result.pull_request_url,
            )
        )

    def status(self) -> StatusReport:
        """Report configuration, state and pending work without taking the lock"""
        configuration = self.config_store.load()
        state = self.state_store.load()
        registry = ArtifactRegistry.scan(self.repository, self.parser)
        report = StatusReport(
            initialized=configuration is not None,
            stack=configuration.stack.value if configuration else None,
            last_processed_revision=state.last_processed_revision if state else None,
            last_run_timestamp=state.last_run_timestamp if state else None,
            artifacts=len(registry),
            deprecated_artifacts=sum(1 for r in registry if registry.is_deprecated(r.artifact_id)),
            sync_enabled=bool(configuration and configuration.sync_enabled),
            last_synced_revision=state.last_synced_revision if state else None,
            run_in_progress=self.repository.lock_file.exists(),
        )

        try:
            report.head_revision = self.git.head_revision()
            if state is not None and self.git.revision_exists(state.last_processed_revision):
                patterns = configuration.exclude_patterns if configuration else []
                report.pending_files = sum(
                    1
                    for _, path in self.git.changed_paths(
                        state.last_processed_revision, report.head_revision
                    )
                    if not is_excluded(path, patterns)
                )
        except RevisionControlError as e:
            logger.warning(f"Could not query source revisions: {e.message}")
        return report

    # ------------------------------------------------------------------
    # Scheduling

    def configure_scheduler(
        self,
        scheduler: BaseScheduler,
        interval_minutes: int,
        max_concurrent_jobs: int = 1,
    ) -> None:
        """
        Schedule run_once() at a fixed interval

        Args:
            scheduler: Initialized (not necessarily started) scheduler
            interval_minutes: Minutes between runs
            max_concurrent_jobs: Maximum overlapping runs (the run lock still applies)
        """
        self.scheduler = scheduler
        trigger = IntervalTrigger(minutes=interval_minutes, start_date=datetime.now())
        self.scheduler.add_job(
            self.run_once,
            trigger=trigger,
            id=WATCH_JOB_ID,
            name="Documentation run",
            max_instances=max_concurrent_jobs,
            replace_existing=True,
            next_run_time=datetime.now(),
        )
        logger.info(f"Scheduled documentation runs every {interval_minutes} minutes")

    def stop_scheduler(self) -> None:
        """Remove the scheduled run job"""
        if self.scheduler:
            try:
                self.scheduler.remove_job(WATCH_JOB_ID)
                logger.info("Stopped documentation run scheduler")
            except JobLookupError:
                logger.warning("Run job not found during shutdown")

    # ------------------------------------------------------------------
    # Internals

    def _require_configuration(self) -> Configuration:
        configuration = self.config_store.load()
        if configuration is None:
            raise ConfigError(
                f"Not initialized: {self.repository.config_file} is missing "
                "(run `docsync init`)"
            )
        return configuration

    def _sync(
        self, configuration: Configuration, state: RunState
    ) -> tuple[RunState, SyncResult]:
        site_sync = self.site_sync_factory(configuration.sync_target)
        sync_result = site_sync.sync(state.last_processed_revision, state.synced_artifacts)
        state = state.model_copy(
            update={
                "synced_artifacts": sync_result.synced_artifacts,
                "last_synced_revision": state.last_processed_revision,
            }
        )
        self.state_store.save(state)
        return state, sync_result

    def _finish(self, result: RunResult) -> RunResult:
        result.end_time = datetime.now()
        result.duration_seconds = (result.end_time - result.start_time).total_seconds()
        logger.info(
            f"Completed in {result.duration_seconds:.2f}s: "
            f"{result.operations_applied}/{result.operations_planned} operations applied"
        )
        return result

    def _failed(self, start_time: datetime, error: Exception) -> RunResult:
        end_time = datetime.now()
        return RunResult(
            success=False,
            start_time=start_time,
            end_time=end_time,
            duration_seconds=(end_time - start_time).total_seconds(),
            error=str(error),
        )
