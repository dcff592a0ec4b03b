"""
Scriptura - Engine data types

Parse candidates, search results and the passage display model.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from canon.model import Book, Canon, MatchKind
from canon.reference import Citation, Reference
from core.types import SearchKindLiteral


@dataclass(frozen=True)
class ParseCandidate:
    """
    One reading of the input, for one book.

    ``references`` holds one unresolved reference per location segment in
    input order and is empty for a book-only reading.
    """

    book: str
    references: Citation
    matched: str
    kind: MatchKind
    location: str = ""
    translation: Optional[str] = None

    @property
    def is_book_only(self) -> bool:
        return not self.references


# =============================================================================
# SEARCH RESULTS
# =============================================================================


@dataclass(frozen=True)
class ReferenceMatch:
    """The query itself resolved to this reference."""

    reference: Reference
    relevance: float = 1.0
    kind: SearchKindLiteral = "reference"

    def to_dict(self, canon: Optional[Canon] = None) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "reference": self.reference.format(canon),
            "path": self.reference.url_path(canon),
            "relevance": self.relevance,
        }


@dataclass(frozen=True)
class TextMatch:
    """A verse whose text matched the query terms."""

    reference: Reference
    snippet: str
    relevance: float
    kind: SearchKindLiteral = "text"

    def to_dict(self, canon: Optional[Canon] = None) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "reference": self.reference.format(canon),
            "path": self.reference.url_path(canon),
            "snippet": self.snippet,
            "relevance": self.relevance,
        }


SearchResult = Union[ReferenceMatch, TextMatch]


# =============================================================================
# DISPLAY MODEL
# =============================================================================


@dataclass
class ChapterView:
    """The verses of one reference, with chapter navigation."""

    book: Book
    chapter: int
    reference: Reference
    translation: str
    verses: List[Tuple[int, str]] = field(default_factory=list)
    previous: Optional[Reference] = None
    next: Optional[Reference] = None

    @property
    def text(self) -> str:
        return " ".join(text for _, text in self.verses)


@dataclass
class PassageView:
    """
    Display model handed to presentation.

    A citation of several references yields several chapter views. The
    top-level book, chapter and navigation mirror the first one.
    """

    translation: str
    chapters: List[ChapterView] = field(default_factory=list)

    @property
    def references(self) -> Citation:
        return tuple(c.reference for c in self.chapters)

    @property
    def book(self) -> Book:
        return self.chapters[0].book

    @property
    def chapter(self) -> int:
        return self.chapters[0].chapter

    @property
    def reference(self) -> Reference:
        return self.chapters[0].reference

    @property
    def verses(self) -> List[Tuple[int, str]]:
        return [line for view in self.chapters for line in view.verses]

    @property
    def previous(self) -> Optional[Reference]:
        return self.chapters[0].previous

    @property
    def next(self) -> Optional[Reference]:
        return self.chapters[-1].next
