"""
Scriptura - Unified Error Handling

Provides the error hierarchy shared by the reference engine, the storage
layer and the outer surfaces.

Features:
- Hierarchical exception classes with context preservation
- Error severity levels for prioritized handling
- HTTP status per error class, rendered by the API exception handler
- OpenTelemetry integration for error tracing

Engine operations do not raise these: they return them inside a
``core.types.Result``. Callers at the edge ``unwrap()`` the result.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
)

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode


class ErrorSeverity(Enum):
    """Error severity levels for prioritized handling."""

    DEBUG = "debug"      # Non-critical, informational
    INFO = "info"        # Bad user input, handled normally
    WARNING = "warning"  # Potential problem, degraded operation
    ERROR = "error"      # Significant failure, operation failed
    CRITICAL = "critical"  # System-level failure, requires immediate attention
    FATAL = "fatal"      # Unrecoverable, system shutdown required


_SPAN_ERROR_SEVERITIES = {ErrorSeverity.ERROR, ErrorSeverity.CRITICAL, ErrorSeverity.FATAL}


@dataclass
class ErrorContext:
    """Structured context for error debugging and tracing."""

    operation: str
    component: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    input_text: Optional[str] = None
    book_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary for serialization."""
        return {
            "operation": self.operation,
            "component": self.component,
            "timestamp": self.timestamp.isoformat(),
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "input_text": self.input_text,
            "book_id": self.book_id,
            "metadata": self.metadata,
            "stack_trace": self.stack_trace,
        }

    @classmethod
    def from_current_span(
        cls,
        operation: str,
        component: str,
        **kwargs: Any
    ) -> "ErrorContext":
        """Create context from current OpenTelemetry span."""
        span = trace.get_current_span()
        trace_id = None
        span_id = None

        if span and span.is_recording():
            ctx = span.get_span_context()
            if ctx.is_valid:
                trace_id = format(ctx.trace_id, "032x")
                span_id = format(ctx.span_id, "016x")

        return cls(
            operation=operation,
            component=component,
            trace_id=trace_id,
            span_id=span_id,
            stack_trace=traceback.format_exc() if kwargs.pop("with_stack", False) else None,
            **kwargs
        )


class ScriptureError(Exception):
    """
    Base exception for all Scriptura errors.

    Provides:
    - Structured error context
    - Severity level
    - HTTP status for the route layer
    - Chained exception support
    - OpenTelemetry span recording
    """

    default_severity: ErrorSeverity = ErrorSeverity.ERROR
    error_code: str = "SCRIPTURE_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
        suggestions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        self.severity = severity or self.default_severity
        self.cause = cause
        self.recoverable = recoverable
        self.suggestions = suggestions or []
        self.timestamp = datetime.now(timezone.utc)

        # Record to current span if available
        self._record_to_span()

    def _record_to_span(self) -> None:
        """Record exception to current OpenTelemetry span."""
        span = trace.get_current_span()
        if span and span.is_recording():
            if self.severity in _SPAN_ERROR_SEVERITIES:
                span.set_status(Status(StatusCode.ERROR, self.message))
            span.record_exception(self)
            span.set_attribute("error.code", self.error_code)
            span.set_attribute("error.severity", self.severity.value)
            span.set_attribute("error.recoverable", self.recoverable)
            if self.context:
                span.set_attribute("error.component", self.context.component)
                span.set_attribute("error.operation", self.context.operation)

    def details(self) -> Dict[str, Any]:
        """Error-specific fields included in ``to_dict``."""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "status": self.http_status,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "suggestions": self.suggestions,
            "details": self.details(),
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict() if self.context else None,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.context:
            parts.append(f" (component: {self.context.component})")
        if self.cause:
            parts.append(f" [caused by: {self.cause}]")
        return "".join(parts)

    def with_context(self, **kwargs: Any) -> "ScriptureError":
        """Add additional context to the error."""
        if self.context:
            self.context.metadata.update(kwargs)
        else:
            self.context = ErrorContext(
                operation="unknown",
                component="unknown",
                metadata=kwargs
            )
        return self


# =============================================================================
# REFERENCE ERRORS - returned by the parser and resolver
# =============================================================================


class MalformedReference(ScriptureError):
    """Input that cannot be read as a scripture reference."""

    error_code = "MALFORMED_REFERENCE"
    default_severity = ErrorSeverity.INFO
    http_status = 400

    def __init__(
        self,
        message: str,
        offending: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.offending = offending

    def details(self) -> Dict[str, Any]:
        return {"offending": self.offending}


class UnknownBook(MalformedReference):
    """The book part of the input matches no book of the canon."""

    error_code = "UNKNOWN_BOOK"


class IncompleteReference(ScriptureError):
    """A book was named but no chapter or verse was given."""

    error_code = "INCOMPLETE_REFERENCE"
    default_severity = ErrorSeverity.INFO
    http_status = 400

    def __init__(
        self,
        message: str,
        books: Sequence[str] = (),
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.books: Tuple[str, ...] = tuple(books)

    def details(self) -> Dict[str, Any]:
        return {"books": list(self.books)}


class AmbiguousReference(ScriptureError):
    """
    Several books are equally good readings of the input.

    ``candidates`` holds one citation (tuple of references) per book, in
    confidence then canonical order. ``labels`` holds their display form.
    """

    error_code = "AMBIGUOUS_REFERENCE"
    default_severity = ErrorSeverity.INFO
    http_status = 300

    def __init__(
        self,
        message: str,
        candidates: Sequence[Tuple[Any, ...]] = (),
        labels: Sequence[str] = (),
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.candidates = tuple(candidates)
        self.labels = list(labels)

    def details(self) -> Dict[str, Any]:
        return {"candidates": self.labels}


class OutOfRange(ScriptureError):
    """A chapter or verse number beyond what the book has."""

    error_code = "OUT_OF_RANGE"
    default_severity = ErrorSeverity.INFO
    http_status = 404

    def __init__(
        self,
        message: str,
        field_name: str = "chapter",
        value: int = 0,
        maximum: int = 0,
        book_id: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field_name = field_name
        self.value = value
        self.maximum = maximum
        self.book_id = book_id

    def details(self) -> Dict[str, Any]:
        return {
            "book": self.book_id,
            "field": self.field_name,
            "value": self.value,
            "max": self.maximum,
        }


# =============================================================================
# CONTENT AND INFRASTRUCTURE ERRORS
# =============================================================================


class ContentUnavailable(ScriptureError):
    """The reference is valid but storage has no text for some verses."""

    error_code = "CONTENT_UNAVAILABLE"
    default_severity = ErrorSeverity.WARNING
    http_status = 503

    def __init__(
        self,
        message: str,
        missing: Sequence[Tuple[str, int, int]] = (),
        translation: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, recoverable=True, **kwargs)
        self.missing = list(missing)
        self.translation = translation

    def details(self) -> Dict[str, Any]:
        return {
            "translation": self.translation,
            "missing": [f"{book}.{chapter}.{verse}" for book, chapter, verse in self.missing],
        }


class CanonConfigError(ScriptureError):
    """Invalid canon table. Raised at load time and fatal at startup."""

    error_code = "CANON_CONFIG_ERROR"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.key = key

    def details(self) -> Dict[str, Any]:
        return {"key": self.key}


class StorageError(ScriptureError):
    """Verse storage I/O failure. Raised by stores, never returned."""

    error_code = "STORAGE_ERROR"
    default_severity = ErrorSeverity.ERROR
    http_status = 503

    def __init__(
        self,
        message: str,
        database: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.database = database
        self.operation_name = operation

    def details(self) -> Dict[str, Any]:
        return {"database": self.database, "operation": self.operation_name}
