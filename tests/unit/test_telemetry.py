"""Unit tests for telemetry service"""

from datetime import datetime
from unittest.mock import MagicMock, patch

from docsync.models.run_result import RunResult
from docsync.services.telemetry import TelemetryService


def run_result(success=True, error=None):
    now = datetime.now()
    return RunResult(
        success=success,
        start_time=now,
        end_time=now,
        duration_seconds=1.5,
        from_revision="a" * 40,
        to_revision="b" * 40,
        files_changed=3,
        operations_planned=4,
        operations_applied=4 if success else 1,
        error=error,
    )


def configure(mock_config, logging_enabled=True, tracing_enabled=False):
    mock_config.otel_logging_enabled = logging_enabled
    mock_config.otel_tracing_enabled = tracing_enabled
    mock_config.otel_endpoint = "http://localhost:4318"
    mock_config.otel_service_name = "test-service"
    mock_config.otel_service_version = "1.0.0"


class TestTelemetryService:
    """Test telemetry service initialization and logging"""

    @patch("docsync.services.telemetry.config")
    def test_telemetry_service_disabled(self, mock_config):
        """Test that telemetry can be disabled"""
        configure(mock_config, logging_enabled=False)

        service = TelemetryService()

        assert service.logging_enabled is False
        assert service.tracing_enabled is False
        assert service.otel_logger is None

    @patch("docsync.services.telemetry.config")
    @patch("docsync.services.telemetry.set_logger_provider")
    def test_telemetry_service_enabled(self, mock_set_logger_provider, mock_config):
        """Test that telemetry initializes when enabled"""
        configure(mock_config)

        service = TelemetryService()

        assert service.logging_enabled is True
        assert service.logger_provider is not None
        mock_set_logger_provider.assert_called_once()

    @patch("docsync.services.telemetry.config")
    @patch("docsync.services.telemetry.trace.set_tracer_provider")
    def test_telemetry_tracing_enabled(self, mock_set_tracer_provider, mock_config):
        """Test that tracing initializes when enabled"""
        configure(mock_config, logging_enabled=False, tracing_enabled=True)

        service = TelemetryService()

        assert service.tracing_enabled is True
        assert service.tracer_provider is not None

    @patch("docsync.services.telemetry.config")
    def test_log_run_when_disabled(self, mock_config):
        """Test that logging does nothing when disabled"""
        configure(mock_config, logging_enabled=False)

        TelemetryService().log_run("run", run_result())

    @patch("docsync.services.telemetry.config")
    @patch("docsync.services.telemetry.set_logger_provider")
    def test_log_successful_run(self, mock_set_logger_provider, mock_config):
        """Test logging a successful run"""
        configure(mock_config)
        service = TelemetryService()
        service.otel_logger = MagicMock()

        service.log_run("run", run_result())

        kwargs = service.otel_logger.emit.call_args.kwargs
        assert kwargs["attributes"]["docsync.command"] == "run"
        assert kwargs["attributes"]["run.success"] is True
        assert kwargs["attributes"]["run.operations_applied"] == 4
        assert "SUCCESS" in kwargs["body"]
        assert f"revisions={'a' * 12}..{'b' * 12}" in kwargs["body"]

    @patch("docsync.services.telemetry.config")
    @patch("docsync.services.telemetry.set_logger_provider")
    def test_log_failed_command(self, mock_set_logger_provider, mock_config):
        """Test logging a failure with a long error message"""
        configure(mock_config)
        service = TelemetryService()
        service.otel_logger = MagicMock()

        service.log_run("prune", error=ValueError("x" * 600))

        kwargs = service.otel_logger.emit.call_args.kwargs
        assert kwargs["attributes"]["run.success"] is False
        assert kwargs["attributes"]["error.type"] == "ValueError"
        assert kwargs["attributes"]["error.message"].endswith("...")
        assert "FAILED" in kwargs["body"]

    @patch("docsync.services.telemetry.config")
    @patch("docsync.services.telemetry.set_logger_provider")
    def test_emit_errors_are_swallowed(self, mock_set_logger_provider, mock_config):
        """Test that telemetry failures never break a run"""
        configure(mock_config)
        service = TelemetryService()
        service.otel_logger = MagicMock()
        service.otel_logger.emit.side_effect = RuntimeError("collector down")

        service.log_run("run", run_result(success=False, error="boom"))
