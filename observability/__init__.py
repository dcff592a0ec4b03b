"""
Scriptura - Observability Package

Distributed tracing and structured logging for the Scriptura service.

Components:
- tracing: OpenTelemetry distributed tracing with OTLP export
- logging: Structlog integration with trace context propagation

Usage:
    from observability import setup_observability, get_logger

    # Initialize at application startup
    setup_observability(service_name="scriptura")

    logger = get_logger(__name__)
"""
from pathlib import Path
from typing import Optional

from .tracing import (
    setup_tracing,
    get_tracer,
    create_span,
    span_decorator,
    instrument_fastapi,
    TracingConfig,
    shutdown_tracing,
)
from .logging import (
    setup_logging,
    get_logger,
    LoggingConfig,
    LogContext,
    bind_context,
    clear_context,
    shutdown_logging,
)

__all__ = [
    # Tracing
    "setup_tracing",
    "get_tracer",
    "create_span",
    "span_decorator",
    "instrument_fastapi",
    "TracingConfig",
    "shutdown_tracing",
    # Logging
    "setup_logging",
    "get_logger",
    "LoggingConfig",
    "LogContext",
    "bind_context",
    "clear_context",
    "shutdown_logging",
    # Combined setup
    "setup_observability",
    "shutdown_observability",
]

__version__ = "1.0.0"


def setup_observability(
    service_name: str = "scriptura",
    otlp_endpoint: str = "http://localhost:4317",
    tracing_enabled: bool = False,
    sample_rate: float = 1.0,
    log_level: str = "INFO",
    json_logs: bool = True,
    environment: str = "development",
    service_version: str = "1.0.0",
    log_file: Optional[Path] = None,
) -> None:
    """
    Initialize logging and, when enabled, tracing.

    Args:
        service_name: Name of the service for telemetry
        otlp_endpoint: OTLP collector endpoint (gRPC)
        tracing_enabled: Export spans to the collector
        sample_rate: Trace sampling rate (0.0-1.0)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Render logs as JSON rather than console lines
        environment: Deployment environment (development, staging, production)
        service_version: Version reported on every span
        log_file: Also write JSON logs to this rotating file

    Example:
        >>> from observability import setup_observability
        >>> setup_observability(
        ...     service_name="scriptura",
        ...     tracing_enabled=True,
        ...     sample_rate=0.1  # 10% sampling in production
        ... )
    """
    setup_logging(LoggingConfig(
        service_name=service_name,
        level=log_level,
        enable_trace_context=True,
        json_format=json_logs,
        environment=environment,
        log_to_file=log_file is not None,
        log_file_path=log_file or Path("./logs/scriptura.log"),
    ))

    setup_tracing(TracingConfig(
        service_name=service_name,
        service_version=service_version,
        otlp_endpoint=otlp_endpoint,
        enabled=tracing_enabled,
        sample_rate=sample_rate,
        environment=environment,
    ))


def shutdown_observability() -> None:
    """
    Flush telemetry and close log handlers.

    Call this during application shutdown.
    """
    shutdown_tracing()
    shutdown_logging()
