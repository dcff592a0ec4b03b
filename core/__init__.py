"""
Scriptura - Core Module

Provides foundational components for the entire system:
- Unified error handling (reference errors, storage errors)
- Type definitions and the Result container

Everything here is free of dependencies on other Scriptura packages, so
the canon, engine, storage and surfaces can all import from it.

Usage:
    from core import Result, MalformedReference, ScriptureError
"""

from core.errors import (
    ScriptureError,
    MalformedReference,
    UnknownBook,
    IncompleteReference,
    AmbiguousReference,
    OutOfRange,
    ContentUnavailable,
    CanonConfigError,
    StorageError,
    ErrorContext,
    ErrorSeverity,
)
from core.types import (
    # Type aliases
    BookId,
    TranslationTag,
    TestamentLiteral,
    SearchKindLiteral,
    # TypedDicts
    BookEntryDict,
    VerseRowDict,
    # Result type
    Result,
    # Type guards
    is_book_id,
    is_translation_tag,
)

__all__ = [
    # Errors
    "ScriptureError",
    "MalformedReference",
    "UnknownBook",
    "IncompleteReference",
    "AmbiguousReference",
    "OutOfRange",
    "ContentUnavailable",
    "CanonConfigError",
    "StorageError",
    "ErrorContext",
    "ErrorSeverity",
    # Types
    "BookId",
    "TranslationTag",
    "TestamentLiteral",
    "SearchKindLiteral",
    "BookEntryDict",
    "VerseRowDict",
    "Result",
    "is_book_id",
    "is_translation_tag",
]
