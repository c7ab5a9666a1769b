"""Command line interface for documentation runs"""

import argparse
import logging
import sys
import time
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv

from docsync.config import config
from docsync.models.configuration import Stack, SyncTarget
from docsync.models.run_result import RunResult
from docsync.services.artifact_writer import ArtifactWriteFailed
from docsync.services.config_store import ConfigError
from docsync.services.documentation_repository import DocumentationRepository
from docsync.services.git_client import RevisionControlError
from docsync.services.run_lock import RunAlreadyInProgress
from docsync.services.run_orchestrator import RunOrchestrator
from docsync.services.site_sync import SyncPushFailed
from docsync.services.stack_detector import StackUndetected
from docsync.services.state_store import StateError
from docsync.services.telemetry import get_telemetry_service

logger = logging.getLogger(__name__)

# Failures reported with a one-line message; anything else gets a traceback
EXPECTED_ERRORS = (
    ArtifactWriteFailed,
    ConfigError,
    RevisionControlError,
    RunAlreadyInProgress,
    StackUndetected,
    StateError,
    SyncPushFailed,
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for CLI (stdout)"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsync",
        description="Keep a generated documentation tree in step with its source repository",
    )
    parser.add_argument(
        "--project-root",
        default=None,
        help="Source repository root (default: DOCSYNC_PROJECT_ROOT or .)",
    )
    parser.add_argument(
        "--documentation-dir", default=None, help="Documentation directory relative to the root"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    init = subparsers.add_parser("init", help="Detect the stack and write config.json")
    init.add_argument(
        "--stack",
        choices=[stack.value for stack in Stack if stack != Stack.UNKNOWN],
        help="Skip detection and use this stack",
    )
    init.add_argument("--sync-repo", help="Documentation site repository URL")
    init.add_argument("--sync-branch", default="main", help="Base branch of the site repository")
    init.add_argument("--sync-path", default="docs/api", help="Destination path inside the site")
    init.add_argument("--sidebar-label", default="API Reference", help="Sidebar label of the root")

    subparsers.add_parser("run", help="Document changes since the last processed revision")
    subparsers.add_parser("prune", help="Retire artifacts whose source item no longer exists")
    subparsers.add_parser("sync", help="Mirror the documentation tree to the sync target")
    subparsers.add_parser("status", help="Show configuration, state and pending changes")

    watch = subparsers.add_parser("watch", help="Run periodically until interrupted")
    watch.add_argument(
        "--interval",
        type=int,
        default=None,
        help=f"Minutes between runs (default: {config.watch_interval_minutes})",
    )
    return parser


def _report(result: RunResult) -> int:
    if not result.success:
        logger.error(f"Failed: {result.error}")
        return 1
    if result.to_revision:
        scope = "full rescan" if result.full_rescan else f"from {(result.from_revision or '')[:12]}"
        logger.info(f"Documentation at {result.to_revision[:12]} ({scope})")
    logger.info(
        f"{result.files_changed} files, {result.operations_applied} operations applied "
        f"in {result.duration_seconds:.2f}s"
    )
    if result.pull_request_url:
        logger.info(f"Pull request: {result.pull_request_url}")
    if result.error:
        logger.warning(result.error)
    return 0


def _print_status(orchestrator: RunOrchestrator) -> int:
    report = orchestrator.status()
    if not report.initialized:
        print(f"Not initialized ({orchestrator.repository.config_file} missing)")
        return 1

    print(f"Stack:                   {report.stack}")
    print(f"Last processed revision: {report.last_processed_revision or '(none)'}")
    print(f"Last run:                {report.last_run_timestamp or '(never)'}")
    print(f"Source HEAD:             {report.head_revision or '(unknown)'}")
    pending = "unknown" if report.pending_files is None else report.pending_files
    print(f"Pending changed files:   {pending}")
    print(f"Artifacts:               {report.artifacts} ({report.deprecated_artifacts} deprecated)")
    if report.sync_enabled:
        print(f"Last synced revision:    {report.last_synced_revision or '(never)'}")
    if report.run_in_progress:
        print("A run is in progress")
    return 0


def _watch(orchestrator: RunOrchestrator, interval: int) -> int:
    scheduler = BackgroundScheduler()
    orchestrator.configure_scheduler(scheduler, interval_minutes=interval)
    scheduler.start()
    logger.info("Watching for changes; press Ctrl+C to stop")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Stopping watch")
    finally:
        orchestrator.stop_scheduler()
        scheduler.shutdown(wait=True)
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the docsync CLI

    Returns:
        int: Exit code (0 for success, 1 for failure)
    """
    if Path(".env").exists():
        load_dotenv()

    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    repository = DocumentationRepository(args.project_root, args.documentation_dir)
    telemetry = get_telemetry_service()
    orchestrator = RunOrchestrator(repository=repository, telemetry=telemetry)

    try:
        if args.command == "init":
            sync_target = None
            if args.sync_repo:
                sync_target = SyncTarget(
                    repository_url=args.sync_repo,
                    branch=args.sync_branch,
                    destination_path=args.sync_path,
                    sidebar_label=args.sidebar_label,
                )
            stack = Stack(args.stack) if args.stack else None
            configuration = orchestrator.bootstrap(stack=stack, sync_target=sync_target)
            logger.info(f"Wrote {repository.config_file} (stack: {configuration.stack.value})")
            return 0
        if args.command == "run":
            # run_once() reports telemetry itself
            return _report(orchestrator.run_once())
        if args.command == "status":
            return _print_status(orchestrator)
        if args.command == "watch":
            return _watch(orchestrator, args.interval or config.watch_interval_minutes)

        result = orchestrator.prune() if args.command == "prune" else orchestrator.sync()
        telemetry.log_run(args.command, result)
        return _report(result)
    except EXPECTED_ERRORS as e:
        logger.error(f"{args.command} failed: {e}")
        telemetry.log_run(args.command, error=e)
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        telemetry.log_run(args.command, error=e)
        return 1
    finally:
        telemetry.shutdown()


if __name__ == "__main__":
    sys.exit(main())
