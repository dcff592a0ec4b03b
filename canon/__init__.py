"""
Scriptura - Canon

Book catalog, alias matching and reference value types.

Usage:
    from canon import load_canon, Reference, VerseRange

    canon = load_canon()
    canon.lookup_book("1 Jn").name  # "1 John"
"""

from canon.model import (
    Book,
    Canon,
    MatchKind,
    load_canon,
    normalize_key,
    slugify,
)
from canon.reference import Citation, Reference, VerseRange

__all__ = [
    "Book",
    "Canon",
    "MatchKind",
    "load_canon",
    "normalize_key",
    "slugify",
    "Citation",
    "Reference",
    "VerseRange",
]
