"""
Scriptura - Content and linked-data assembly

Fetches verse text for resolved references into a ``PassageView`` and
renders views as JSON-LD documents. Markup is someone else's job.
"""
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple, Union

from canon.model import Book, Canon
from canon.reference import Citation, Reference, VerseRange
from config import LinkedDataConfig
from core.errors import ContentUnavailable, MalformedReference
from core.types import Result
from engine.resolver import validate_reference
from engine.types import ChapterView, PassageView
from observability.tracing import create_span

if TYPE_CHECKING:
    from db.store import VerseStore

logger = logging.getLogger("scriptura.engine.assembler")

SCRIPTURE_NS = "https://scriptura.example.org/ns#"

JSON_LD_CONTEXT: Dict[str, Any] = {
    "@vocab": "https://schema.org/",
    "bible": SCRIPTURE_NS,
    "Verse": "bible:Verse",
    "Passage": "bible:Passage",
    "book": "bible:book",
    "bookCode": "bible:bookCode",
    "chapter": {"@id": "bible:chapter", "@type": "http://www.w3.org/2001/XMLSchema#integer"},
    "verse": {"@id": "bible:verse", "@type": "http://www.w3.org/2001/XMLSchema#integer"},
    "verseRange": "bible:verseRange",
    "translation": "bible:translation",
    "text": "https://schema.org/text",
    "hasPart": {"@id": "https://schema.org/hasPart", "@container": "@list"},
}


class Assembler:
    """
    Builds display models and JSON-LD for resolved references.

    Missing verse text is ContentUnavailable, never OutOfRange: the
    reference exists, storage just does not have it.
    """

    def __init__(
        self,
        canon: Canon,
        store: "VerseStore",
        config: Optional[LinkedDataConfig] = None,
    ):
        self.canon = canon
        self.store = store
        self.config = config or LinkedDataConfig()

    def translation_for(self, references: Sequence[Reference], translation: Optional[str] = None) -> str:
        for tag in (translation, *(ref.translation for ref in references)):
            if tag:
                return tag.upper()
        return self.config.default_translation

    async def assemble(
        self,
        references: Sequence[Reference],
        translation: Optional[str] = None,
    ) -> Result[PassageView]:
        """Fetch text for every reference; any missing verse fails the whole view."""
        if not references:
            return Result.from_exception(MalformedReference("No references to assemble"))

        tag = self.translation_for(references, translation)
        view = PassageView(translation=tag)
        missing: List[Tuple[str, int, int]] = []

        with create_span("assembler.assemble", attributes={"references": len(references), "translation": tag}):
            for ref in references:
                checked = validate_reference(ref, self.canon)
                if checked.is_failure:
                    return Result(error=checked.error, exception=checked.exception)

                book = self.canon.get(ref.book)
                start, end = _expected_span(ref, book)
                verses = await self.store.fetch_verses(ref.book, ref.chapter, start, end, tag)
                missing.extend(
                    (ref.book, ref.chapter, n) for n in range(start, end + 1) if n not in verses
                )

                chapter_ref = Reference(ref.book, ref.chapter)
                view.chapters.append(ChapterView(
                    book=book,
                    chapter=ref.chapter,
                    reference=ref.with_translation(tag),
                    translation=tag,
                    verses=[(n, verses[n]) for n in range(start, end + 1) if n in verses],
                    previous=self.canon.previous_chapter(chapter_ref),
                    next=self.canon.next_chapter(chapter_ref),
                ))

        if missing:
            logger.warning(f"{len(missing)} verse(s) missing from {tag} text")
            shown = ", ".join(f"{b} {c}:{v}" for b, c, v in missing[:5])
            more = f" and {len(missing) - 5} more" if len(missing) > 5 else ""
            return Result.from_exception(ContentUnavailable(
                f"No {tag} text stored for {shown}{more}",
                missing=missing,
                translation=tag,
            ))
        return Result.success(view)

    # -------------------------------------------------------------------------
    # Linked data
    # -------------------------------------------------------------------------

    def reference_uri(
        self,
        ref: Union[Reference, Citation],
        translation: Optional[str] = None,
    ) -> str:
        """
        ``{base}/{translation}/{slug}/{chapter}[/{start}[-{end}]]``

        A citation of several references joins their locations with ``;``
        under one translation segment, e.g. ``{base}/kjv/psalms/23;psalms/24``.
        """
        refs = ref if isinstance(ref, tuple) else (ref,)
        if not refs:
            raise ValueError("No reference to build a URI for")
        tag = (translation or refs[0].translation or self.config.default_translation).lower()
        return f"{self.config.base_uri}/{tag}/" + ";".join(self._location_path(r) for r in refs)

    def _location_path(self, ref: Reference) -> str:
        book = self.canon.get(ref.book)
        if book is None:
            raise KeyError(f"Unknown book {ref.book!r}")
        path = f"{book.slug}/{ref.chapter}"
        if ref.verses is not None:
            path += f"/{ref.verses.label()}"
        return path

    def to_json_ld(self, view: PassageView) -> Dict[str, Any]:
        """JSON-LD document for a view. Pure and deterministic."""
        entities = [self._chapter_entity(chapter, view.translation) for chapter in view.chapters]
        if len(entities) == 1:
            return {"@context": JSON_LD_CONTEXT, **entities[0]}
        return {
            "@context": JSON_LD_CONTEXT,
            "@id": self.reference_uri(view.references, view.translation),
            "@type": "Passage",
            "translation": view.translation,
            "text": " ".join(entity["text"] for entity in entities if entity["text"]),
            "hasPart": entities,
        }

    def _chapter_entity(self, chapter: ChapterView, translation: str) -> Dict[str, Any]:
        ref = chapter.reference
        book: Book = chapter.book
        entity: Dict[str, Any] = {
            "@id": self.reference_uri(ref, translation),
            "@type": "Verse" if ref.is_single_verse else "Passage",
            "book": book.name,
            "bookCode": book.id,
            "chapter": ref.chapter,
        }
        if ref.is_single_verse:
            entity["verse"] = ref.verses.start
        elif ref.is_range:
            entity["verseRange"] = ref.verses.label()
        entity["text"] = chapter.text
        entity["translation"] = translation
        if not ref.is_single_verse:
            entity["hasPart"] = [
                {
                    "@id": self.reference_uri(
                        Reference(book.id, ref.chapter, VerseRange.single(number)), translation
                    ),
                    "@type": "Verse",
                    "verse": number,
                    "text": text,
                }
                for number, text in chapter.verses
            ]
        return entity


def _expected_span(ref: Reference, book: Book) -> Tuple[int, int]:
    if ref.verses is None:
        return 1, book.verse_count(ref.chapter)
    return ref.verses.start, ref.verses.end
