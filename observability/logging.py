"""
Scriptura - Structured Logging with Trace Context

Integrates structlog with OpenTelemetry trace context so every log line
can be correlated with the request trace it belongs to.

The engine and storage modules log through plain stdlib loggers
(``logging.getLogger("scriptura.engine.parser")``); the API and CLI use
structlog. Both go through one structlog ``ProcessorFormatter``, so
context bound with ``LogContext`` or ``bind_context`` (request id, CLI
command, import source) and the current trace ids appear on every line.

Usage:
    from observability.logging import setup_logging, get_logger, LogContext

    setup_logging(LoggingConfig(level="INFO", json_format=True))

    logger = get_logger(__name__)
    with LogContext(command="lookup", reference="jn 3:16"):
        logger.info("Reference resolved", book="JHN")
"""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from opentelemetry import trace
from structlog.types import EventDict, Processor, WrappedLogger

# Global state
_configured: bool = False

# Libraries whose INFO chatter drowns out ours
_QUIET_LOGGERS = ("httpx", "httpcore", "opentelemetry", "asyncio", "aiosqlite", "sqlalchemy.engine")


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    service_name: str = "scriptura"
    level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    json_format: bool = field(
        default_factory=lambda: os.getenv("LOG_FORMAT", "json").lower() == "json"
    )
    enable_trace_context: bool = True
    log_to_console: bool = True
    log_to_file: bool = field(
        default_factory=lambda: os.getenv("LOG_TO_FILE", "false").lower() == "true"
    )
    log_file_path: Path = field(
        default_factory=lambda: Path(os.getenv("LOG_FILE", "./logs/scriptura.log"))
    )
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "development")
    )


def _current_trace_ids() -> Dict[str, str]:
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        if ctx.is_valid:
            return {
                "trace_id": format(ctx.trace_id, "032x"),
                "span_id": format(ctx.span_id, "016x"),
            }
    return {}


def add_trace_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor adding trace_id and span_id of the current span."""
    event_dict.update(_current_trace_ids())
    return event_dict


def add_service_context(service_name: str, environment: str) -> Processor:
    """Processor stamping every event with the service name and environment."""

    def processor(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["service"] = service_name
        event_dict["environment"] = environment
        return event_dict

    return processor


def format_exception(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Render a ScriptureError (or any exception) passed as ``error=`` as a dict."""
    error = event_dict.get("error")
    if isinstance(error, BaseException):
        to_dict = getattr(error, "to_dict", None)
        event_dict["error"] = to_dict() if callable(to_dict) else {
            "type": type(error).__name__,
            "message": str(error),
        }
    return event_dict


def shared_processors(config: LoggingConfig) -> List[Processor]:
    """Processors run for structlog events and stdlib records alike."""
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_context(config.service_name, config.environment),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if config.enable_trace_context:
        processors.append(add_trace_context)
    processors.extend([
        format_exception,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ])
    return processors


def _formatter(config: LoggingConfig, json_format: bool) -> structlog.stdlib.ProcessorFormatter:
    renderer: Processor = (
        structlog.processors.JSONRenderer(default=str)
        if json_format
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors(config),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def setup_logging(config: Optional[LoggingConfig] = None, force: bool = False) -> None:
    """
    Configure structlog and route stdlib logging through the same renderer.

    Idempotent unless ``force`` is set.

    Example:
        >>> setup_logging(LoggingConfig(level="DEBUG", json_format=False))
    """
    global _configured

    if _configured and not force:
        return

    config = config or LoggingConfig()
    level = getattr(logging, config.level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors(config),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: List[logging.Handler] = []
    if config.log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(_formatter(config, config.json_format))
        handlers.append(console_handler)

    if config.log_to_file:
        config.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
        )
        file_handler.setFormatter(_formatter(config, json_format=True))
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setLevel(level)
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger instance, configuring defaults on first use.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Search served", kind="text", results=12)
    """
    if not _configured:
        setup_logging()

    return structlog.get_logger(name)


def shutdown_logging() -> None:
    """Flush and close handlers."""
    global _configured

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.flush()
        handler.close()

    _configured = False


class LogContext:
    """
    Bind key/value pairs to every log line emitted inside the block.

    Keys bound before entering keep their outer value after exit.

    Example:
        >>> with LogContext(command="import-verses", source="kjv.jsonl"):
        ...     logger.info("Import started")
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs
        self._tokens: Dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)


def bind_context(**kwargs: Any) -> None:
    """Bind contextual variables to all subsequent log messages."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound contextual variables."""
    structlog.contextvars.clear_contextvars()
