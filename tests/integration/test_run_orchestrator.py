"""Integration tests for RunOrchestrator driving a real git repository"""

import json
from datetime import UTC, datetime
from unittest.mock import patch

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from docsync.models.configuration import Stack
from docsync.models.run_state import RunState
from docsync.services.artifact_registry import ArtifactRegistry
from docsync.services.artifact_writer import ArtifactWriteFailed, ArtifactWriter
from docsync.services.config_store import ConfigError
from docsync.services.document_planner import DocumentPlanner
from docsync.services.documentation_repository import DocumentationRepository
from docsync.services.git_client import GitClient
from docsync.services.run_lock import RunAlreadyInProgress, RunLock
from docsync.services.run_orchestrator import WATCH_JOB_ID, RunOrchestrator
from docsync.services.stack_detector import StackUndetected
from docsync.services.state_store import StateStore
from docsync.utils.globs import is_excluded

CALC_V1 = """
package calc

// Bar multiplies a and b.
func Bar(a, b int) int {
\treturn a * b
}

// Baz divides a by b.
func Baz(a, b int) int {
\treturn a / b
}
"""

CALC_V2 = """
package calc

// Bar multiplies two integers.
func Bar(a, b int) int {
\treturn a * b
}

// Baz divides a by b.
func Baz(a, b int) int {
\treturn a / b
}

// Foo adds a and b.
// See also: Bar
func Foo(a, b int) int {
\treturn a + b
}
"""

# Baz removed, Foo added
CALC_V3 = CALC_V2.replace(
    "// Baz divides a by b.\nfunc Baz(a, b int) int {\n\treturn a / b\n}\n\n", ""
)


def snapshot(repository: DocumentationRepository) -> dict[str, str]:
    return {
        p.relative_to(repository.root).as_posix(): p.read_text()
        for p in sorted(repository.root.rglob("*.md"))
    }


@pytest.fixture
def go_project(git_repo):
    git_repo.write({"go.mod": "module example.com/calc\n\ngo 1.22\n", "calc/calc.go": CALC_V1})
    git_repo.commit("initial")
    return git_repo


@pytest.fixture
def repository(go_project):
    return DocumentationRepository(project_root=go_project.root, documentation_dir="documentation")


@pytest.fixture
def orchestrator(go_project, repository):
    return RunOrchestrator(repository=repository, git=GitClient(go_project.root))


class TestBootstrap:
    """Test configuration bootstrap"""

    def test_go_mod_bootstraps_go_stack(self, repository, orchestrator):
        configuration = orchestrator.bootstrap()

        assert configuration.stack == Stack.GO
        assert json.loads(repository.config_file.read_text())["stack"] == "go"

    def test_bootstrap_only_once(self, orchestrator):
        orchestrator.bootstrap()

        with pytest.raises(ConfigError):
            orchestrator.bootstrap(stack=Stack.PYTHON)

    def test_undetected_stack(self, git_repo):
        git_repo.write({"README.md": "# nothing\n"})
        git_repo.commit()
        orchestrator = RunOrchestrator(
            repository=DocumentationRepository(project_root=git_repo.root),
            git=GitClient(git_repo.root),
        )

        with pytest.raises(StackUndetected):
            orchestrator.bootstrap()

        assert orchestrator.bootstrap(stack=Stack.GO).stack == Stack.GO

    def test_exclude_patterns_follow_documentation_dir(self, go_project):
        repository = DocumentationRepository(
            project_root=go_project.root, documentation_dir="docs/generated"
        )
        orchestrator = RunOrchestrator(repository=repository, git=GitClient(go_project.root))

        configuration = orchestrator.bootstrap()

        patterns = json.loads(repository.config_file.read_text())["excludePatterns"]
        assert patterns == configuration.exclude_patterns
        assert patterns[0] == "docs/generated/**"
        assert "documentation/**" not in patterns
        assert is_excluded("docs/generated/public/functions/calc.Bar.md", patterns)


class TestRun:
    """Test incremental runs"""

    def test_first_run_documents_everything(self, go_project, repository, orchestrator):
        result = orchestrator.run()

        assert result.success
        assert result.full_rescan is True
        assert result.from_revision is None
        assert result.to_revision == go_project.git("rev-parse", "HEAD")
        files = snapshot(repository)
        assert set(files) == {
            "architecture.md",
            "overview.md",
            "public/functions/_index.md",
            "public/functions/calc.Bar.md",
            "public/functions/calc.Baz.md",
        }
        state = StateStore(repository).load()
        assert state.last_processed_revision == result.to_revision

    def test_second_run_creates_and_updates(self, go_project, repository, orchestrator):
        orchestrator.run()
        go_project.write({"calc/calc.go": CALC_V2})
        head = go_project.commit("add Foo")

        result = orchestrator.run()

        assert result.full_rescan is False
        assert result.files_changed == 1
        assert result.operations_planned == 3
        assert "multiplies two integers" in snapshot(repository)["public/functions/calc.Bar.md"]
        foo = snapshot(repository)["public/functions/calc.Foo.md"]
        assert "[Bar](calc.Bar.md)" in foo
        assert "calc.Foo.md" in snapshot(repository)["public/functions/_index.md"]
        assert StateStore(repository).load().last_processed_revision == head

    def test_rerun_at_same_revision_changes_nothing(self, go_project, repository, orchestrator):
        orchestrator.run()
        first = snapshot(repository)

        result = orchestrator.run()

        assert result.operations_planned == 0
        assert snapshot(repository) == first

    def test_full_rescan_is_idempotent(self, go_project, repository, orchestrator):
        orchestrator.run()
        first = snapshot(repository)
        repository.state_file.unlink()

        result = orchestrator.run()

        assert result.full_rescan is True
        assert snapshot(repository) == first

    def test_soft_delete_then_delete(self, go_project, repository, orchestrator):
        orchestrator.run()
        go_project.write({"calc/calc.go": CALC_V1.split("// Baz")[0]})
        go_project.commit("remove Baz")

        orchestrator.run()

        baz = repository.artifact_path("public/functions/calc.Baz")
        assert baz.exists()
        assert "status: deprecated" in baz.read_text()

        go_project.write({"calc/calc.go": CALC_V2.split("// Baz")[0]})
        go_project.commit("reword Bar")
        orchestrator.run()

        # Baz has no further removal signal; prune confirms it
        assert baz.exists()
        result = orchestrator.prune()

        assert result.operations_planned == 2  # delete Baz, update index
        assert not baz.exists()
        assert "calc.Baz.md" not in repository.index_path("public/functions").read_text()
        bar = repository.artifact_path("public/functions/calc.Bar")
        assert "status: active" in bar.read_text()

    def test_unreachable_revision_falls_back_to_full_rescan(
        self, go_project, repository, orchestrator
    ):
        orchestrator.run()
        StateStore(repository).save(
            RunState(
                last_processed_revision="f" * 40,
                last_run_timestamp=datetime.now(UTC),
            )
        )

        result = orchestrator.run()

        assert result.success
        assert result.full_rescan is True
        assert result.files_changed == 2  # go.mod and calc/calc.go
        assert StateStore(repository).load().last_processed_revision == result.to_revision

    def test_write_failure_does_not_advance_state(self, go_project, repository, orchestrator):
        first = orchestrator.run()
        go_project.write({"calc/calc.go": CALC_V2})
        go_project.commit("add Foo")

        with patch.object(ArtifactWriter, "_apply_one", side_effect=OSError("disk full")):
            with pytest.raises(ArtifactWriteFailed):
                orchestrator.run()

        assert StateStore(repository).load().last_processed_revision == first.to_revision
        assert not repository.artifact_path("public/functions/calc.Foo").exists()
        assert not repository.lock_file.exists()

    def test_state_saved_only_after_apply(self, go_project, repository, orchestrator):
        with patch.object(StateStore, "save") as save:
            with patch.object(ArtifactWriter, "_apply_one", side_effect=OSError("disk full")):
                result = orchestrator.run_once()

        assert result.success is False
        assert "disk full" in result.error
        save.assert_not_called()

    def test_run_fails_fast_when_locked(self, repository, orchestrator):
        with RunLock(repository.lock_file):
            with pytest.raises(RunAlreadyInProgress):
                orchestrator.run()

            result = orchestrator.run_once()

        assert result.success is False
        assert StateStore(repository).load() is None

    def test_private_items_excluded_from_registry(self, go_project, repository, orchestrator):
        go_project.write({"calc/internal.go": "package calc\n\nfunc helper() {}\n"})
        go_project.commit("private helper")

        orchestrator.run()

        registry = ArtifactRegistry.scan(repository)
        assert "private/functions/calc.helper" not in registry
        assert len(registry) == 2


class TestRetry:
    """Test that a failed run can be retried with the same result"""

    @pytest.fixture
    def baz_removed(self, go_project, orchestrator):
        orchestrator.run()
        go_project.write({"calc/calc.go": CALC_V3})
        return go_project.commit("drop Baz, add Foo")

    def test_retry_after_partial_failure_keeps_soft_delete(
        self, repository, orchestrator, baz_removed
    ):
        real_apply_one = ArtifactWriter._apply_one

        def fail_on_index(writer, operation, registry, projected):
            if operation.is_index:
                raise OSError("disk full")
            return real_apply_one(writer, operation, registry, projected)

        with patch.object(ArtifactWriter, "_apply_one", autospec=True, side_effect=fail_on_index):
            with pytest.raises(ArtifactWriteFailed):
                orchestrator.run()

        baz = repository.artifact_path("public/functions/calc.Baz")
        assert f"deprecated_at: {baz_removed}" in baz.read_text()

        result = orchestrator.run()

        assert result.success
        assert baz.exists()
        assert "status: deprecated" in baz.read_text()
        assert "calc.Foo.md" in repository.index_path("public/functions").read_text()
        assert StateStore(repository).load().last_processed_revision == baz_removed

    def test_replanning_same_change_set_is_idempotent(
        self, go_project, repository, orchestrator, baz_removed
    ):
        configuration = orchestrator.config_store.load()
        first_revision = go_project.git("rev-parse", "HEAD~1")
        changes = orchestrator.resolver.resolve(
            first_revision, baz_removed, configuration.exclude_patterns
        )
        planner = DocumentPlanner(configuration)

        snapshots, plans = [], []
        for _ in range(2):
            registry = ArtifactRegistry.scan(repository)
            operations = planner.plan(changes, registry, baz_removed)
            writer = ArtifactWriter(repository, configuration, revision=baz_removed)
            writer.apply_or_raise(operations, registry)
            writer.refresh_top_level()
            plans.append([operation.describe() for operation in operations])
            snapshots.append(snapshot(repository))

        assert "deprecate(public/functions/calc.Baz)" in plans[0]
        assert "deprecate(public/functions/calc.Baz)" in plans[1]
        assert not any(p.startswith(("delete", "create")) for p in plans[1])
        assert snapshots[0] == snapshots[1]

    def test_deprecation_from_earlier_revision_is_deleted(
        self, go_project, repository, orchestrator, baz_removed
    ):
        orchestrator.run()
        go_project.write({"go.mod": "module example.com/calc\n\ngo 1.23\n"})
        go_project.commit("bump go")
        orchestrator.run()

        result = orchestrator.prune()

        assert result.operations_planned == 2
        assert not repository.artifact_path("public/functions/calc.Baz").exists()

    def test_prune_keeps_deprecation_from_latest_revision(
        self, repository, orchestrator, baz_removed
    ):
        orchestrator.run()

        orchestrator.prune()

        baz = repository.artifact_path("public/functions/calc.Baz")
        assert "status: deprecated" in baz.read_text()


class TestStatus:
    """Test status reporting"""

    def test_status_before_and_after_run(self, go_project, repository, orchestrator):
        report = orchestrator.status()
        assert report.initialized is False
        assert report.pending_files is None

        orchestrator.run()
        go_project.write({"calc/calc.go": CALC_V2, "calc/calc_test.go": "package calc\n"})
        go_project.commit("more")

        report = orchestrator.status()
        assert report.initialized is True
        assert report.stack == "go"
        assert report.artifacts == 2
        assert report.pending_files == 1
        assert report.run_in_progress is False


class TestScheduler:
    """Test watch scheduling (scheduler never started)"""

    def test_configure_and_stop(self, orchestrator):
        scheduler = BackgroundScheduler()

        orchestrator.configure_scheduler(scheduler, interval_minutes=15)

        job = scheduler.get_job(WATCH_JOB_ID)
        assert job is not None
        assert job.max_instances == 1
        assert job.trigger.interval.total_seconds() == 15 * 60

        orchestrator.stop_scheduler()
        assert scheduler.get_job(WATCH_JOB_ID) is None

    def test_stop_without_job_is_harmless(self, orchestrator):
        scheduler = BackgroundScheduler()
        orchestrator.configure_scheduler(scheduler, interval_minutes=5)
        scheduler.remove_job(WATCH_JOB_ID)

        orchestrator.stop_scheduler()
