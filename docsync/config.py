"""Centralized configuration using Pydantic BaseSettings"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """Process-level settings with environment variable support (DOCSYNC_ prefix)"""

    # Project layout
    project_root: str = Field(default=".", description="Root of the source repository")
    documentation_dir: str = Field(
        default="documentation",
        description="Documentation tree directory, relative to project_root",
    )
    config_filename: str = Field(default="config.json", description="Configuration file name")
    state_filename: str = Field(default=".docstate", description="Run state file name")
    lock_filename: str = Field(default=".docsync.lock", description="Advisory run lock file name")

    # Revision control
    git_executable: str = Field(default="git", description="git binary used for revision queries")
    git_timeout_seconds: float = Field(
        default=60.0, gt=0, le=3600, description="Timeout for a single git invocation"
    )

    # Sync target
    sync_workdir: str = Field(
        default="./.cache/docsync-site",
        description="Local checkout directory for the documentation site repository",
    )
    sync_branch_prefix: str = Field(
        default="docsync", description="Prefix for branches pushed to the sync target"
    )
    github_token: str | None = Field(
        default=None, description="GitHub token for opening pull requests (or GITHUB_TOKEN)"
    )
    github_api_url: str = Field(default="https://api.github.com", description="GitHub API base URL")
    github_timeout_seconds: float = Field(
        default=30.0, gt=0, le=300, description="HTTP timeout for GitHub API calls"
    )

    # Scheduling
    watch_interval_minutes: int = Field(
        default=30, ge=1, le=1440, description="Interval between scheduled runs in watch mode"
    )

    # OpenTelemetry
    otel_logging_enabled: bool = Field(
        default=False, description="Export run outcomes as OpenTelemetry log records"
    )
    otel_tracing_enabled: bool = Field(
        default=False, description="Enable OpenTelemetry tracing for HTTP requests"
    )
    otel_endpoint: str = Field(
        default="http://localhost:4318",
        description="OpenTelemetry collector endpoint (HTTP/protobuf)",
    )
    otel_service_name: str = Field(default="docsync", description="Service name for OpenTelemetry")
    otel_service_version: str = Field(
        default="1.0.0", description="Service version for OpenTelemetry"
    )

    model_config = SettingsConfigDict(
        env_prefix="DOCSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global config instance
config = AppConfig()
