"""
Scriptura - Canon Model

The immutable catalog of books: names, aliases, ordering and chapter/verse
extents. Built once per process by ``load_canon()`` and shared read-only.
"""
from __future__ import annotations

import json
import logging
import re
import unicodedata
from dataclasses import dataclass
from enum import IntEnum
from functools import lru_cache
from pathlib import Path
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from rapidfuzz.distance import OSA

from canon.books import BOOKS, OLD_TESTAMENT_SIZE
from canon.reference import Reference
from core.errors import CanonConfigError
from core.types import BookEntryDict, TestamentLiteral

logger = logging.getLogger("scriptura.canon")

# Fuzzy matching only considers alias keys at least this long
FUZZY_MIN_KEY_LENGTH = 4
FUZZY_MAX_DISTANCE = 1

_ROMAN_PREFIX = re.compile(r"^(iii|ii|i)\s+")
_ROMAN_VALUES = {"i": "1", "ii": "2", "iii": "3"}


class MatchKind(IntEnum):
    """How a book name matched. Higher is more confident."""

    FUZZY = 1
    PREFIX = 2
    EXACT = 3


def normalize_key(text: str) -> str:
    """
    Fold a book name or alias into its lookup key.

    Lower-cases, strips diacritics, turns a leading roman numeral
    (``i``/``ii``/``iii`` followed by a space) into a digit and drops
    everything that is not a letter or digit.

    >>> normalize_key(" II  Kings. ")
    '2kings'
    """
    text = unicodedata.normalize("NFKD", text.strip().lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _ROMAN_PREFIX.sub(lambda m: _ROMAN_VALUES[m.group(1)], text)
    return "".join(ch for ch in text if ch.isalnum())


def slugify(name: str) -> str:
    text = unicodedata.normalize("NFKD", name.lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return re.sub(r"[^a-z0-9]+", "-", text).strip("-")


@dataclass(frozen=True)
class Book:
    """Metadata for a book of the canon."""

    id: str
    name: str
    slug: str
    order: int
    testament: TestamentLiteral
    aliases: Tuple[str, ...]
    verse_counts: Tuple[int, ...]

    @property
    def chapter_count(self) -> int:
        return len(self.verse_counts)

    @property
    def single_chapter(self) -> bool:
        return len(self.verse_counts) == 1

    @property
    def total_verses(self) -> int:
        return sum(self.verse_counts)

    def verse_count(self, chapter: int) -> int:
        if 1 <= chapter <= len(self.verse_counts):
            return self.verse_counts[chapter - 1]
        return 0

    def keys(self) -> Tuple[str, ...]:
        """All normalized lookup keys for this book, deduplicated."""
        seen: Dict[str, None] = {}
        for raw in (self.name, self.id, self.slug, *self.aliases):
            key = normalize_key(raw)
            if key:
                seen.setdefault(key, None)
        return tuple(seen)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "order": self.order,
            "testament": self.testament,
            "chapters": self.chapter_count,
            "verse_counts": list(self.verse_counts),
            "single_chapter": self.single_chapter,
        }


class Canon:
    """
    Ordered, read-only catalog of books with alias lookup.

    Every alias (plus name, code and slug) is flattened into one key to
    book mapping at construction. A key claimed by two books is a
    configuration error.
    """

    def __init__(self, books: Sequence[Book]):
        if not books:
            raise CanonConfigError("Canon has no books")

        self._books: Tuple[Book, ...] = tuple(books)
        self._by_id: Dict[str, Book] = {}
        self._by_key: Dict[str, Book] = {}
        self._position: Dict[str, int] = {}

        for book in self._books:
            if book.id in self._by_id:
                raise CanonConfigError(f"Duplicate book id {book.id!r}", key=book.id)
            if not book.verse_counts:
                raise CanonConfigError(f"Book {book.id} has no chapters", key=book.id)
            if any(count < 1 for count in book.verse_counts):
                raise CanonConfigError(
                    f"Book {book.id} has a chapter without verses", key=book.id
                )
            self._by_id[book.id] = book
            self._position[book.id] = len(self._position)

            for key in book.keys():
                owner = self._by_key.get(key)
                if owner is not None and owner.id != book.id:
                    raise CanonConfigError(
                        f"Alias {key!r} claimed by both {owner.id} and {book.id}",
                        key=key,
                    )
                self._by_key[key] = book

        # Keys grouped per book in canonical order, used by prefix/fuzzy tiers
        self._keys_in_order: Tuple[Tuple[Book, Tuple[str, ...]], ...] = tuple(
            (book, tuple(k for k, b in self._by_key.items() if b is book))
            for book in self._books
        )

    @classmethod
    def from_entries(cls, entries: Iterable[BookEntryDict]) -> "Canon":
        """Build a canon from table rows (see ``canon.books``)."""
        books = []
        for position, entry in enumerate(entries, start=1):
            try:
                book_id = str(entry["id"]).upper()
                name = str(entry["name"])
                verse_counts = tuple(int(n) for n in entry["verse_counts"])
            except (KeyError, TypeError, ValueError) as e:
                raise CanonConfigError(
                    f"Invalid canon entry at position {position}: {e}", cause=e
                ) from e
            testament = entry.get("testament") or ("OT" if position <= OLD_TESTAMENT_SIZE else "NT")
            if testament not in ("OT", "NT"):
                raise CanonConfigError(
                    f"Invalid testament {testament!r} for {book_id}, expected OT or NT"
                )
            books.append(Book(
                id=book_id,
                name=name,
                slug=entry.get("slug") or slugify(name),
                order=position,
                testament=testament,
                aliases=tuple(entry.get("aliases") or ()),
                verse_counts=verse_counts,
            ))
        return cls(books)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "Canon":
        """Load a canon table from a JSON list of book entries."""
        path = Path(path)
        try:
            entries = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CanonConfigError(f"Cannot read canon file {path}: {e}", cause=e) from e
        if not isinstance(entries, list):
            raise CanonConfigError(f"Canon file {path} must contain a list of books")
        return cls.from_entries(entries)

    # -------------------------------------------------------------------------
    # Catalog access
    # -------------------------------------------------------------------------

    @property
    def books(self) -> Tuple[Book, ...]:
        return self._books

    def __len__(self) -> int:
        return len(self._books)

    def __iter__(self) -> Iterator[Book]:
        return iter(self._books)

    def __contains__(self, book_id: object) -> bool:
        return book_id in self._by_id

    def get(self, book_id: str) -> Optional[Book]:
        return self._by_id.get(book_id)

    def ordinal(self, book_id: str) -> int:
        """1-based position of the book, 0 when unknown."""
        book = self._by_id.get(book_id)
        return book.order if book else 0

    def chapter_count(self, book_id: str) -> int:
        book = self._by_id.get(book_id)
        return book.chapter_count if book else 0

    def verse_count(self, book_id: str, chapter: int) -> int:
        book = self._by_id.get(book_id)
        return book.verse_count(chapter) if book else 0

    def sort_key(self, ref: Reference) -> Tuple[int, int, int, int]:
        """Canonical book/chapter/verse ordering key."""
        start = ref.verses.start if ref.verses else 0
        end = ref.verses.end if ref.verses else 0
        return (self.ordinal(ref.book), ref.chapter, start, end)

    # -------------------------------------------------------------------------
    # Name matching
    # -------------------------------------------------------------------------

    def lookup_book(self, name_or_alias: str) -> Optional[Book]:
        """Exact lookup by name, code, slug or alias."""
        key = normalize_key(name_or_alias)
        if not key:
            return None
        return self._by_key.get(key)

    def match_books(self, text: str) -> List[Tuple[Book, MatchKind]]:
        """
        All books the text could name, best tier first.

        Exact matches come first, then books with an alias the text is a
        prefix of, each tier in canonical order. Fuzzy matches (one edit
        away from a key of at least four characters) are only consulted
        when both other tiers are empty.
        """
        key = normalize_key(text)
        if not key:
            return []

        matches: List[Tuple[Book, MatchKind]] = []
        exact = self._by_key.get(key)
        if exact is not None:
            matches.append((exact, MatchKind.EXACT))

        for book, keys in self._keys_in_order:
            if book is exact:
                continue
            if any(k.startswith(key) for k in keys):
                matches.append((book, MatchKind.PREFIX))

        if matches:
            return matches

        for book, keys in self._keys_in_order:
            if any(
                len(k) >= FUZZY_MIN_KEY_LENGTH
                and abs(len(k) - len(key)) <= FUZZY_MAX_DISTANCE
                and OSA.distance(key, k, score_cutoff=FUZZY_MAX_DISTANCE) <= FUZZY_MAX_DISTANCE
                for k in keys
            ):
                matches.append((book, MatchKind.FUZZY))
        return matches

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def previous_chapter(self, ref: Reference) -> Optional[Reference]:
        """Chapter before ``ref``, crossing into the previous book."""
        book = self._by_id.get(ref.book)
        if book is None:
            return None
        if ref.chapter > 1:
            return Reference(book.id, min(ref.chapter - 1, book.chapter_count),
                             translation=ref.translation)
        position = self._position[book.id]
        if position == 0:
            return None
        prev_book = self._books[position - 1]
        return Reference(prev_book.id, prev_book.chapter_count, translation=ref.translation)

    def next_chapter(self, ref: Reference) -> Optional[Reference]:
        """Chapter after ``ref``, crossing into the next book."""
        book = self._by_id.get(ref.book)
        if book is None:
            return None
        if ref.chapter < book.chapter_count:
            return Reference(book.id, ref.chapter + 1, translation=ref.translation)
        position = self._position[book.id]
        if position == len(self._books) - 1:
            return None
        return Reference(self._books[position + 1].id, 1, translation=ref.translation)


@lru_cache(maxsize=None)
def _load(path: Optional[str]) -> Canon:
    if path:
        canon = Canon.from_json(path)
        logger.info(f"Loaded canon from {path} ({len(canon)} books)")
    else:
        canon = Canon.from_entries(BOOKS)
        logger.debug(f"Loaded bundled canon ({len(canon)} books)")
    return canon


def load_canon(path: Optional[Union[str, Path]] = None) -> Canon:
    """
    Process-wide canon, built once.

    Uses ``path`` when given, else ``CANON_PATH`` from configuration, else
    the bundled KJV table. Raises CanonConfigError for an invalid table.
    """
    if path is None:
        from config import get_config
        path = get_config().canon.path
    return _load(str(path) if path else None)
