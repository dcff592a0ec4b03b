"""
Scriptura - Distributed Tracing with OpenTelemetry

Spans around search, assembly and storage calls, exported over OTLP when
tracing is enabled. With tracing disabled (the default) every helper here
still works against OpenTelemetry's no-op tracer.

Usage:
    from observability.tracing import setup_tracing, create_span, span_decorator

    setup_tracing(TracingConfig(service_name="scriptura", enabled=True))

    with create_span("search.query", attributes={"search.limit": 50}) as span:
        ...

    @span_decorator("db.fetch_verses")
    async def fetch_verses(...):
        ...
"""
from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, ParamSpec

from opentelemetry import trace
from opentelemetry.propagate import set_global_textmap
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.propagators.b3 import B3MultiFormat
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.sdk.trace.sampling import (
    ParentBased,
    TraceIdRatioBased,
    ALWAYS_ON,
    ALWAYS_OFF,
)
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.trace import Status, StatusCode, SpanKind

# Type variables for decorators
P = ParamSpec("P")
T = TypeVar("T")

logger = logging.getLogger("scriptura.observability.tracing")

# Global state
_tracer_provider: Optional[TracerProvider] = None


@dataclass
class TracingConfig:
    """Configuration for OpenTelemetry tracing."""

    service_name: str = "scriptura"
    service_version: str = "1.0.0"
    otlp_endpoint: str = field(
        default_factory=lambda: os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
    )
    enabled: bool = field(
        default_factory=lambda: os.getenv("OTEL_TRACING_ENABLED", "false").lower() == "true"
    )
    sample_rate: float = field(
        default_factory=lambda: float(os.getenv("OTEL_SAMPLE_RATE", "1.0"))
    )
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "development")
    )
    console_export: bool = field(
        default_factory=lambda: os.getenv("OTEL_CONSOLE_EXPORT", "false").lower() == "true"
    )
    batch_export: bool = True
    max_queue_size: int = 2048
    schedule_delay_millis: int = 5000
    max_export_batch_size: int = 512
    export_timeout_millis: int = 30000


def setup_tracing(config: Optional[TracingConfig] = None) -> Optional[TracerProvider]:
    """
    Install an SDK tracer provider with OTLP export.

    Returns None and leaves the global no-op tracer in place when tracing
    is disabled. Idempotent.
    """
    global _tracer_provider

    if _tracer_provider is not None:
        return _tracer_provider

    config = config or TracingConfig()
    if not config.enabled:
        logger.debug("Tracing disabled")
        return None

    resource = Resource.create({
        SERVICE_NAME: config.service_name,
        SERVICE_VERSION: config.service_version,
        "deployment.environment": config.environment,
        "service.namespace": "scriptura",
    })

    if config.sample_rate <= 0.0:
        sampler = ALWAYS_OFF
    elif config.sample_rate >= 1.0:
        sampler = ALWAYS_ON
    else:
        sampler = ParentBased(root=TraceIdRatioBased(config.sample_rate))

    provider = TracerProvider(resource=resource, sampler=sampler)

    otlp_exporter = OTLPSpanExporter(endpoint=config.otlp_endpoint, insecure=True)
    if config.batch_export:
        provider.add_span_processor(BatchSpanProcessor(
            otlp_exporter,
            max_queue_size=config.max_queue_size,
            schedule_delay_millis=config.schedule_delay_millis,
            max_export_batch_size=config.max_export_batch_size,
            export_timeout_millis=config.export_timeout_millis,
        ))
    else:
        provider.add_span_processor(SimpleSpanProcessor(otlp_exporter))

    if config.console_export:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)

    # W3C TraceContext + B3 for compatibility
    set_global_textmap(CompositePropagator([TraceContextTextMapPropagator(), B3MultiFormat()]))

    _tracer_provider = provider
    logger.info(f"Tracing enabled, exporting to {config.otlp_endpoint}")
    return provider


def get_tracer(name: str, version: str = "1.0.0") -> trace.Tracer:
    """Tracer from the global provider (no-op until tracing is set up)."""
    return trace.get_tracer(name, version)


def shutdown_tracing() -> None:
    """Flush pending spans and drop the provider. Call at application shutdown."""
    global _tracer_provider
    if _tracer_provider is not None:
        _tracer_provider.shutdown()
    _tracer_provider = None


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Optional[Dict[str, Any]] = None,
    tracer_name: str = "scriptura",
) -> Iterator[trace.Span]:
    """
    Context manager for creating spans with automatic error handling.

    Example:
        >>> with create_span("assembler.assemble", attributes={"translation": "KJV"}) as span:
        ...     span.set_attribute("verses", 3)
    """
    tracer = get_tracer(tracer_name)
    with tracer.start_as_current_span(name, kind=kind) as span:
        if attributes:
            for key, value in attributes.items():
                _set_safe_attribute(span, key, value)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


def span_decorator(
    name: Optional[str] = None,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Optional[Dict[str, Any]] = None,
    record_args: bool = False,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Decorator for automatic span creation around functions.

    Example:
        >>> @span_decorator("db.search_index", record_args=True)
        ... async def search_index(self, terms, phrase, translation=None, limit=50):
        ...     ...
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        span_name = name or func.__qualname__

        @functools.wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            with create_span(span_name, kind=kind, attributes=attributes,
                             tracer_name=func.__module__) as span:
                if record_args:
                    _record_function_args(span, func, args, kwargs)
                return await func(*args, **kwargs)

        @functools.wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            with create_span(span_name, kind=kind, attributes=attributes,
                             tracer_name=func.__module__) as span:
                if record_args:
                    _record_function_args(span, func, args, kwargs)
                return func(*args, **kwargs)

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper

    return decorator


def _record_function_args(span: trace.Span, func: Callable, args: tuple, kwargs: dict) -> None:
    """Record function arguments (except self) as span attributes."""
    params = list(inspect.signature(func).parameters.keys())

    for param, value in zip(params, args):
        if param != "self":
            _set_safe_attribute(span, f"arg.{param}", value)

    for key, value in kwargs.items():
        _set_safe_attribute(span, f"arg.{key}", value)


def _set_safe_attribute(span: trace.Span, key: str, value: Any) -> None:
    """Set span attribute with type coercion for safety."""
    if value is None:
        return

    if isinstance(value, (str, int, float, bool)):
        span.set_attribute(key, value)
    elif isinstance(value, (list, tuple)):
        span.set_attribute(key, [str(v)[:100] for v in value[:10]])
    else:
        span.set_attribute(key, str(value)[:200])


def instrument_fastapi(app) -> None:
    """Auto-instrument a FastAPI application; health checks are not traced."""
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
