"""
Scriptura - Reference value types

A Reference points at a chapter, a verse or a verse range of one book.
References are frozen and hashable so citations can be compared and
deduplicated freely.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from canon.model import Canon


@dataclass(frozen=True)
class VerseRange:
    """Inclusive 1-based verse range. A single verse has start == end."""

    start: int
    end: int

    def __post_init__(self):
        if self.start < 1 or self.end < self.start:
            raise ValueError(f"Invalid verse range {self.start}-{self.end}")

    @classmethod
    def single(cls, verse: int) -> "VerseRange":
        return cls(verse, verse)

    @property
    def is_single(self) -> bool:
        return self.start == self.end

    def __contains__(self, verse: object) -> bool:
        return isinstance(verse, int) and self.start <= verse <= self.end

    def __len__(self) -> int:
        return self.end - self.start + 1

    def label(self) -> str:
        if self.is_single:
            return str(self.start)
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class Reference:
    """
    A location in scripture.

    Exactly one of three shapes:
      - chapter only (verses is None)
      - a single verse (verses.start == verses.end)
      - a verse range within one chapter

    ``book`` is the USFM code of the book. ``translation`` is an upper-case
    tag or None for the configured default.
    """

    book: str
    chapter: int
    verses: Optional[VerseRange] = None
    translation: Optional[str] = None

    @property
    def is_chapter(self) -> bool:
        return self.verses is None

    @property
    def is_single_verse(self) -> bool:
        return self.verses is not None and self.verses.is_single

    @property
    def is_range(self) -> bool:
        return self.verses is not None and not self.verses.is_single

    def with_translation(self, translation: Optional[str]) -> "Reference":
        return replace(self, translation=translation.upper() if translation else None)

    def location(self, single_chapter: bool = False) -> str:
        """Chapter and verse part of the canonical form, e.g. ``3:16-18``."""
        if self.verses is None:
            return "" if single_chapter else str(self.chapter)
        return f"{self.chapter}:{self.verses.label()}"

    def format(self, canon: Optional["Canon"] = None) -> str:
        """Canonical display string, e.g. ``John 3:16-18`` or ``Psalms 23``."""
        if canon is None:
            from canon.model import load_canon
            canon = load_canon()
        book = canon.get(self.book)
        if book is None:
            raise KeyError(f"Unknown book {self.book!r}")
        parts = [book.name]
        location = self.location(book.single_chapter)
        if location:
            parts.append(location)
        if self.translation:
            parts.append(self.translation)
        return " ".join(parts)

    def url_path(self, canon: Optional["Canon"] = None) -> str:
        """URL form, e.g. ``john+3:16-18``. Translation is not part of it."""
        if canon is None:
            from canon.model import load_canon
            canon = load_canon()
        book = canon.get(self.book)
        if book is None:
            raise KeyError(f"Unknown book {self.book!r}")
        location = self.location(book.single_chapter)
        return f"{book.slug}+{location}" if location else book.slug

    @property
    def path(self) -> str:
        return self.url_path()

    def __str__(self) -> str:
        location = self.location()
        return f"{self.book} {location}"


Citation = Tuple[Reference, ...]
