"""Unit tests for the docsync command line"""

import json
from unittest.mock import MagicMock, patch

import pytest

from docsync.cli import build_parser, main


@pytest.fixture
def telemetry():
    with patch("docsync.cli.get_telemetry_service") as factory:
        factory.return_value = MagicMock()
        yield factory.return_value


@pytest.fixture
def go_repo(git_repo):
    git_repo.write(
        {
            "go.mod": "module example.com/calc\n",
            "calc/calc.go": (
                "package calc\n\n// Add adds.\nfunc Add(a, b int) int {\n\treturn a + b\n}\n"
            ),
        }
    )
    git_repo.commit()
    return git_repo


class TestParser:
    """Test argument parsing"""

    def test_init_options(self):
        args = build_parser().parse_args(
            ["--project-root", "/src", "init", "--stack", "go", "--sync-repo", "git@x:y/z.git"]
        )

        assert args.project_root == "/src"
        assert args.stack == "go"
        assert args.sync_path == "docs/api"

    def test_unknown_stack_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["init", "--stack", "unknown"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMain:
    """Test command dispatch and exit codes"""

    def test_init_writes_configuration(self, tmp_path, telemetry):
        code = main(["--project-root", str(tmp_path), "init", "--stack", "python"])

        assert code == 0
        data = json.loads((tmp_path / "documentation" / "config.json").read_text())
        assert data["stack"] == "python"
        telemetry.shutdown.assert_called_once()

    def test_init_with_sync_target(self, tmp_path, telemetry):
        code = main(
            [
                "--project-root",
                str(tmp_path),
                "init",
                "--stack",
                "go",
                "--sync-repo",
                "https://github.com/acme/site.git",
                "--sync-path",
                "docs/reference",
            ]
        )

        assert code == 0
        data = json.loads((tmp_path / "documentation" / "config.json").read_text())
        assert data["syncTarget"]["repositoryUrl"] == "https://github.com/acme/site.git"
        assert data["syncTarget"]["destinationPath"] == "docs/reference"

    def test_second_init_fails(self, tmp_path, telemetry):
        main(["--project-root", str(tmp_path), "init", "--stack", "go"])

        assert main(["--project-root", str(tmp_path), "init", "--stack", "go"]) == 1
        assert telemetry.log_run.call_args.args[0] == "init"

    def test_init_without_markers_fails(self, tmp_path, telemetry):
        assert main(["--project-root", str(tmp_path), "init"]) == 1

    def test_run_then_status(self, go_repo, telemetry, capsys):
        assert main(["--project-root", str(go_repo.root), "run"]) == 0
        assert (go_repo.root / "documentation" / "public" / "functions" / "calc.Add.md").exists()
        assert telemetry.log_run.call_args.args[0] == "run"

        assert main(["--project-root", str(go_repo.root), "status"]) == 0
        output = capsys.readouterr().out
        assert "Stack:                   go" in output
        assert go_repo.git("rev-parse", "HEAD") in output

    def test_status_uninitialized(self, tmp_path, telemetry, capsys):
        assert main(["--project-root", str(tmp_path), "status"]) == 1
        assert "Not initialized" in capsys.readouterr().out

    def test_run_outside_repository_fails(self, tmp_path, telemetry):
        main(["--project-root", str(tmp_path), "init", "--stack", "go"])

        assert main(["--project-root", str(tmp_path), "run"]) == 1

    def test_prune_requires_init(self, tmp_path, telemetry):
        assert main(["--project-root", str(tmp_path), "prune"]) == 1
        assert telemetry.log_run.call_args.args[0] == "prune"
