"""
Scriptura - Centralized Type Definitions

Provides type aliases, TypedDicts and the Result type used for
consistent typing throughout the system.

Usage:
    from core.types import BookId, Result

    def resolve(text: str) -> Result[Tuple[Reference, ...]]:
        ...
"""
from __future__ import annotations

import re
from typing import (
    Any,
    Callable,
    Generic,
    Literal,
    Optional,
    Sequence,
    TypedDict,
    TypeVar,
)

# =============================================================================
# TYPE ALIASES - Simple type shortcuts
# =============================================================================

# Book identification
BookId = str  # USFM code (e.g., "GEN", "JHN", "1JN")
TranslationTag = str  # Upper-case tag (e.g., "KJV")

TestamentLiteral = Literal["OT", "NT"]
SearchKindLiteral = Literal["reference", "text"]

# Generic result types
T = TypeVar("T")
R = TypeVar("R")


# =============================================================================
# TYPED DICTS - Structured dictionary types
# =============================================================================


class BookEntryDict(TypedDict, total=False):
    """Canon table row as loaded from JSON."""
    id: BookId
    name: str
    slug: str
    testament: TestamentLiteral
    aliases: Sequence[str]
    verse_counts: Sequence[int]


class VerseRowDict(TypedDict):
    """One verse as read by the importer."""
    book: str
    chapter: int
    verse: int
    text: str
    translation: TranslationTag


# =============================================================================
# RESULT TYPES - Success/error containers
# =============================================================================


class Result(Generic[T]):
    """
    Explicit success/error result type.

    Usage:
        result = resolve("john 3:16", canon)
        if result.is_success:
            print(result.value)
        else:
            print(result.exception)
    """

    def __init__(
        self,
        value: Optional[T] = None,
        error: Optional[str] = None,
        exception: Optional[Exception] = None,
    ):
        self._value = value
        self._error = error
        self._exception = exception

    @property
    def is_success(self) -> bool:
        return self._error is None and self._exception is None

    @property
    def is_failure(self) -> bool:
        return not self.is_success

    @property
    def value(self) -> T:
        if self.is_failure:
            raise ValueError(f"Cannot get value from failed result: {self._error}")
        return self._value  # type: ignore

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def exception(self) -> Optional[Exception]:
        return self._exception

    def unwrap(self) -> T:
        """Get value or raise exception."""
        if self._exception:
            raise self._exception
        if self._error:
            raise ValueError(self._error)
        return self._value  # type: ignore

    def unwrap_or(self, default: T) -> T:
        """Get value or return default."""
        if self.is_failure:
            return default
        return self._value  # type: ignore

    def map(self, fn: Callable[[T], R]) -> "Result[R]":
        """Transform value if successful."""
        if self.is_failure:
            return Result(error=self._error, exception=self._exception)
        return Result(value=fn(self._value))  # type: ignore

    def __repr__(self) -> str:
        if self.is_success:
            return f"Result.success({self._value!r})"
        return f"Result.failure({self._exception or self._error!r})"

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        """Create successful result."""
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "Result[T]":
        """Create failed result with error message."""
        return cls(error=error)

    @classmethod
    def from_exception(cls, exception: Exception) -> "Result[T]":
        """Create failed result from exception."""
        return cls(error=str(exception), exception=exception)


# =============================================================================
# TYPE GUARDS - Runtime type checking helpers
# =============================================================================

_BOOK_ID_RE = re.compile(r"^[1-3]?[A-Z]{2,3}$")
_TRANSLATION_RE = re.compile(r"^[A-Za-z]{2,10}$")


def is_book_id(value: Any) -> bool:
    """Check if value looks like a USFM book code."""
    return isinstance(value, str) and len(value) == 3 and bool(_BOOK_ID_RE.match(value))


def is_translation_tag(value: Any) -> bool:
    """Check if value is a plausible translation tag."""
    return isinstance(value, str) and bool(_TRANSLATION_RE.match(value))

