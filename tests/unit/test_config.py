"""Unit tests for configuration"""

import pytest
from pydantic import ValidationError

from docsync.config import AppConfig
from docsync.models.configuration import (
    DEFAULT_EXCLUDE_PATTERNS,
    Configuration,
    DeletionPolicy,
    Stack,
    SyncTarget,
)


def test_config_defaults():
    """Test that configuration uses correct defaults"""
    config = AppConfig()

    assert config.documentation_dir == "documentation"
    assert config.config_filename == "config.json"
    assert config.state_filename == ".docstate"
    assert config.git_timeout_seconds == 60.0
    assert config.sync_branch_prefix == "docsync"
    assert config.otel_logging_enabled is False


def test_environment_variable_precedence(monkeypatch):
    """Test that DOCSYNC_ environment variables override defaults"""
    monkeypatch.setenv("DOCSYNC_DOCUMENTATION_DIR", "docs-out")
    monkeypatch.setenv("DOCSYNC_GIT_TIMEOUT_SECONDS", "5")
    monkeypatch.setenv("DOCSYNC_WATCH_INTERVAL_MINUTES", "10")

    config = AppConfig()

    assert config.documentation_dir == "docs-out"
    assert config.git_timeout_seconds == 5.0
    assert config.watch_interval_minutes == 10


def test_invalid_timeout_rejected(monkeypatch):
    """Test that out-of-range settings fail validation"""
    monkeypatch.setenv("DOCSYNC_GIT_TIMEOUT_SECONDS", "0")

    with pytest.raises(ValidationError):
        AppConfig()


class TestProjectConfiguration:
    """Test the persisted config.json model"""

    def test_defaults(self):
        configuration = Configuration(stack=Stack.GO)

        assert configuration.exclude_patterns == DEFAULT_EXCLUDE_PATTERNS
        assert configuration.include_inline_examples is True
        assert configuration.include_architecture_diagrams is False
        assert configuration.deletion_policy == DeletionPolicy.SOFT
        assert configuration.sync_enabled is False

    def test_camel_case_aliases(self):
        configuration = Configuration.model_validate(
            {
                "stack": "python",
                "excludePatterns": ["vendor/**"],
                "includeInlineExamples": False,
                "deletionPolicy": "hard",
                "syncTarget": {"repositoryUrl": "https://github.com/acme/site.git"},
            }
        )

        assert configuration.stack == Stack.PYTHON
        assert configuration.exclude_patterns == ["vendor/**"]
        assert configuration.include_inline_examples is False
        assert configuration.deletion_policy == DeletionPolicy.HARD
        assert configuration.sync_enabled is True
        assert configuration.sync_target.branch == "main"
        assert configuration.sync_target.destination_path == "docs/api"

        dumped = configuration.model_dump(by_alias=True)
        assert "excludePatterns" in dumped
        assert dumped["syncTarget"]["sidebarLabel"] == "API Reference"

    def test_destination_path_normalized(self):
        target = SyncTarget(
            repository_url="git@example.com:site.git", destination_path="/docs/ref/"
        )

        assert target.destination_path == "docs/ref"

    @pytest.mark.parametrize("path", ["", "/", "../outside", "docs/../../x"])
    def test_destination_path_rejected(self, path):
        with pytest.raises(ValidationError):
            SyncTarget(repository_url="git@example.com:site.git", destination_path=path)

    def test_unknown_stack_rejected(self):
        with pytest.raises(ValidationError):
            Configuration.model_validate({"stack": "cobol"})
