"""
Scriptura - Verse storage interface

The engine reads verse text only through ``VerseStore``. Two
implementations ship: ``InMemoryVerseStore`` here, for tests and small
corpora, and ``SqlVerseStore`` in ``db.sql``.

Implementations raise ``StorageError`` on I/O failure. Missing text is not
an error at this layer: it is simply absent from what is returned.
"""
from collections import defaultdict
from typing import (
    Dict,
    Iterable,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)

from canon.model import Canon, load_canon
from canon.reference import Reference, VerseRange
from core.types import VerseRowDict
from engine.scoring import score_text

# (reference, verse text, relevance)
IndexHit = Tuple[Reference, str, float]


@runtime_checkable
class VerseStore(Protocol):
    """Read access to verse text."""

    async def fetch_verse(
        self, book: str, chapter: int, verse: int, translation: str
    ) -> Optional[str]:
        """Text of one verse, or None when not stored."""
        ...

    async def fetch_verses(
        self,
        book: str,
        chapter: int,
        start: int = 1,
        end: Optional[int] = None,
        translation: str = "KJV",
    ) -> Dict[int, str]:
        """Stored verses of ``chapter`` within [start, end]; end None means to the last."""
        ...

    async def search_index(
        self,
        terms: Sequence[str],
        phrase: str,
        translation: Optional[str] = None,
        limit: int = 50,
    ) -> List[IndexHit]:
        """Best scoring verses, by relevance then canonical order, at most ``limit``."""
        ...

    async def translations(self) -> List[str]:
        """Translation tags with stored text."""
        ...

    async def close(self) -> None:
        ...


def rank_hits(hits: Iterable[IndexHit], canon: Canon, limit: int) -> List[IndexHit]:
    """Sort hits by relevance desc then canonical order and cap them."""
    ordered = sorted(hits, key=lambda hit: (-hit[2], canon.sort_key(hit[0])))
    return ordered[:max(limit, 0)]


class InMemoryVerseStore:
    """
    Dictionary-backed verse store.

    Scoring goes through ``engine.scoring`` so results match the SQL store
    for the same data.
    """

    def __init__(self, canon: Optional[Canon] = None):
        self.canon = canon or load_canon()
        # translation -> (book, chapter) -> verse -> text
        self._verses: Dict[str, Dict[Tuple[str, int], Dict[int, str]]] = defaultdict(
            lambda: defaultdict(dict)
        )

    def add_verse(
        self, book: str, chapter: int, verse: int, text: str, translation: str = "KJV"
    ) -> None:
        self._verses[translation.upper()][(book, chapter)][verse] = text

    def add_verses(self, rows: Iterable[VerseRowDict]) -> int:
        """Add rows of book/chapter/verse/text/translation; returns how many."""
        count = 0
        for row in rows:
            self.add_verse(
                row["book"], int(row["chapter"]), int(row["verse"]), row["text"], row["translation"]
            )
            count += 1
        return count

    def __len__(self) -> int:
        return sum(
            len(verses)
            for chapters in self._verses.values()
            for verses in chapters.values()
        )

    async def fetch_verse(
        self, book: str, chapter: int, verse: int, translation: str
    ) -> Optional[str]:
        chapters = self._verses.get(translation.upper())
        if not chapters:
            return None
        return chapters.get((book, chapter), {}).get(verse)

    async def fetch_verses(
        self,
        book: str,
        chapter: int,
        start: int = 1,
        end: Optional[int] = None,
        translation: str = "KJV",
    ) -> Dict[int, str]:
        chapters = self._verses.get(translation.upper())
        if not chapters:
            return {}
        verses = chapters.get((book, chapter), {})
        return {
            number: text
            for number, text in sorted(verses.items())
            if number >= start and (end is None or number <= end)
        }

    async def search_index(
        self,
        terms: Sequence[str],
        phrase: str,
        translation: Optional[str] = None,
        limit: int = 50,
    ) -> List[IndexHit]:
        if not terms:
            return []
        wanted = [translation.upper()] if translation else sorted(self._verses)

        hits: List[IndexHit] = []
        for tag in wanted:
            for (book, chapter), verses in self._verses.get(tag, {}).items():
                for number, text in verses.items():
                    score = score_text(text, terms, phrase)
                    if score > 0:
                        ref = Reference(book, chapter, VerseRange.single(number), tag)
                        hits.append((ref, text, score))
        return rank_hits(hits, self.canon, limit)

    async def translations(self) -> List[str]:
        return sorted(tag for tag, chapters in self._verses.items() if chapters)

    async def close(self) -> None:
        return None
