"""OpenTelemetry logging and tracing service for run outcomes"""

import logging
from datetime import UTC, datetime

from opentelemetry import trace
from opentelemetry._logs import SeverityNumber, set_logger_provider
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from docsync.config import config
from docsync.models.run_result import RunResult

logger = logging.getLogger(__name__)


class TelemetryService:
    """Export run outcomes as OpenTelemetry log records and trace GitHub calls"""

    def __init__(self):
        self.logging_enabled = config.otel_logging_enabled
        self.tracing_enabled = config.otel_tracing_enabled
        self.logger_provider = None
        self.tracer_provider = None
        self.otel_logger = None

        if self.logging_enabled:
            try:
                self._initialize_logging()
            except Exception as e:
                logger.warning(f"Failed to initialize OTel logging: {e}. Logging disabled.")
                self.logging_enabled = False

        if self.tracing_enabled:
            try:
                self._initialize_tracing()
            except Exception as e:
                logger.warning(f"Failed to initialize OTel tracing: {e}. Tracing disabled.")
                self.tracing_enabled = False

    def _resource(self) -> Resource:
        return Resource(
            attributes={
                SERVICE_NAME: config.otel_service_name,
                SERVICE_VERSION: config.otel_service_version,
            }
        )

    def _initialize_logging(self) -> None:
        """Initialize OpenTelemetry logging with OTLP log exporter"""
        self.logger_provider = LoggerProvider(resource=self._resource())

        log_endpoint = config.otel_endpoint
        if not log_endpoint.endswith("/v1/logs"):
            log_endpoint = f"{log_endpoint.rstrip('/')}/v1/logs"

        self.logger_provider.add_log_record_processor(
            BatchLogRecordProcessor(OTLPLogExporter(endpoint=log_endpoint))
        )
        set_logger_provider(self.logger_provider)
        self.otel_logger = self.logger_provider.get_logger(__name__)

        logger.info(f"OpenTelemetry logging initialized with endpoint: {log_endpoint}")

    def _initialize_tracing(self) -> None:
        """Initialize OpenTelemetry tracing with OTLP trace exporter"""
        self.tracer_provider = TracerProvider(resource=self._resource())

        trace_endpoint = config.otel_endpoint
        if not trace_endpoint.endswith("/v1/traces"):
            trace_endpoint = f"{trace_endpoint.rstrip('/')}/v1/traces"

        self.tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=trace_endpoint))
        )
        trace.set_tracer_provider(self.tracer_provider)

        logger.info(f"OpenTelemetry tracing initialized with endpoint: {trace_endpoint}")

    def log_run(
        self,
        command: str,
        result: RunResult | None = None,
        error: Exception | None = None,
    ) -> None:
        """
        Log the outcome of a CLI command to OpenTelemetry

        Args:
            command: CLI command name (run, prune, sync, ...)
            result: Run result, when the command produced one
            error: The error, if the command failed
        """
        if not self.logging_enabled or not self.otel_logger:
            return

        try:
            success = error is None and (result is None or result.success)

            # Attributes stay low cardinality; revisions go in the body
            attributes: dict[str, str | int | float | bool] = {
                "docsync.command": command,
                "run.success": success,
            }
            if result is not None:
                attributes["run.duration_seconds"] = float(result.duration_seconds)
                attributes["run.full_rescan"] = result.full_rescan
                attributes["run.files_changed"] = result.files_changed
                attributes["run.operations_planned"] = result.operations_planned
                attributes["run.operations_applied"] = result.operations_applied
                attributes["run.synced"] = result.synced

            error_text = str(error) if error else (result.error if result else None)
            if error is not None:
                attributes["error.type"] = type(error).__name__
            if error_text:
                if len(error_text) > 500:
                    error_text = error_text[:500] + "..."
                attributes["error.message"] = error_text

            body_parts = [f"[{command}]", "SUCCESS" if success else "FAILED"]
            if result is not None and result.to_revision:
                from_revision = (result.from_revision or "none")[:12]
                body_parts.append(f"revisions={from_revision}..{result.to_revision[:12]}")
                body_parts.append(f"operations={result.operations_applied}")
            if error is not None:
                body_parts.append(f"error={type(error).__name__}")

            severity = logging.INFO if success else logging.ERROR
            self.otel_logger.emit(
                body=" ".join(body_parts),
                severity_number=SeverityNumber(self._severity_to_number(severity)),
                attributes=attributes,
                timestamp=int(datetime.now(UTC).timestamp() * 1e9),
            )

        except Exception as e:
            # Telemetry failures never fail a run
            logger.warning(f"Failed to log telemetry: {e}")

    def shutdown(self) -> None:
        """Flush pending records before the process exits"""
        if self.logger_provider is not None:
            self.logger_provider.shutdown()
        if self.tracer_provider is not None:
            self.tracer_provider.shutdown()

    def _severity_to_number(self, level: int) -> int:
        """Convert Python logging level to OpenTelemetry severity number"""
        if level >= logging.CRITICAL:
            return 21  # FATAL
        elif level >= logging.ERROR:
            return 17  # ERROR
        elif level >= logging.WARNING:
            return 13  # WARN
        elif level >= logging.INFO:
            return 9  # INFO
        else:
            return 5  # DEBUG


_telemetry_service: TelemetryService | None = None
_instrumentation_initialized = False


def _ensure_instrumentation_initialized() -> None:
    """Instrument httpx before any GitHub client is created"""
    global _instrumentation_initialized
    if not _instrumentation_initialized and config.otel_tracing_enabled:
        try:
            HTTPXClientInstrumentor().instrument()
            _instrumentation_initialized = True
            logger.info("HTTP request tracing instrumentation initialized")
        except Exception as e:
            logger.warning(f"Failed to initialize HTTP tracing instrumentation: {e}")


def get_telemetry_service() -> TelemetryService:
    """Get or create the global telemetry service instance"""
    global _telemetry_service
    _ensure_instrumentation_initialized()
    if _telemetry_service is None:
        _telemetry_service = TelemetryService()
    return _telemetry_service
