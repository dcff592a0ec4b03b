"""
Scriptura - Reference Parser

Turns free-form input ("Jn 3:16", "1 cor 13:4-7", "ps 23;24", "jude5",
"john+3.16 kjv") into parse candidates: one per book the input could name,
each carrying the unresolved references of its location part.

Location grammar:
    locations := group (';' group)*
    group     := chapter [':' items]
    items     := item (',' item)*
    item      := verse ['-' verse]

For single-chapter books a group without ':' lists verses of chapter 1.
Nothing here consults chapter or verse counts; that is the resolver's job.
"""
import logging
import re
from typing import Collection, FrozenSet, List, Optional, Tuple

from canon.model import Book, Canon, MatchKind
from canon.reference import Reference, VerseRange
from config import DEFAULT_TRANSLATIONS
from core.errors import IncompleteReference, MalformedReference, UnknownBook
from core.types import Result, is_translation_tag
from engine.types import ParseCandidate

logger = logging.getLogger("scriptura.engine.parser")

_DASHES = re.compile("[‐-―−﹘﹣－]")
_DIGIT_DOT = re.compile(r"(?<=\d)\.(?=\d)")
_LETTER_DASH = re.compile(r"(?<=[^\W\d_])-|-(?=[^\W\d_])")
_SEPARATOR_SPACE = re.compile(r"\s*([:;,\-])\s*")
_WHITESPACE = re.compile(r"\s+")

_REFERENCE = re.compile(
    r"^(?P<book>(?:[1-3]\s*)?[^\W\d_]+(?:\s+[^\W\d_]+)*)"
    r"(?:\s*(?P<location>\d[\d\s:;,\-]*?))?"
    r"(?:\s+(?P<tag>[^\W\d_]+))?\s*$"
)


def normalize_input(text: str) -> str:
    """
    Canonicalize punctuation and spacing, keeping letter case.

    Unicode dashes become '-', '+' and '_' become spaces, a '.' between
    digits becomes ':' and any other '.' a space. A '-' touching a letter
    (as in URL slugs like ``1-john``) is a space too.
    """
    text = _DASHES.sub("-", text)
    text = text.replace("+", " ").replace("_", " ")
    text = _DIGIT_DOT.sub(":", text)
    text = text.replace(".", " ")
    text = _LETTER_DASH.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def parse(
    text: str,
    canon: Canon,
    allow_book_only: bool = False,
    translations: Optional[Collection[str]] = None,
) -> Result[List[ParseCandidate]]:
    """
    Parse ``text`` into candidates ordered by confidence, then canon order.

    Fails with UnknownBook when no book matches, MalformedReference for bad
    location syntax or a trailing word that is not one of ``translations``
    (DEFAULT_TRANSLATIONS when None), and IncompleteReference when only a
    book is named. A single-chapter book alone is always a complete reference.
    """
    known = frozenset(tag.upper() for tag in (DEFAULT_TRANSLATIONS if translations is None else translations))
    try:
        candidates = _parse(text, canon, allow_book_only, known)
    except (MalformedReference, IncompleteReference) as e:
        logger.debug(f"Rejected {text!r}: {e.message}")
        return Result.from_exception(e)
    logger.debug(f"Parsed {text!r} into {len(candidates)} candidate(s)")
    return Result.success(candidates)


def _parse(
    text: str,
    canon: Canon,
    allow_book_only: bool,
    known: FrozenSet[str],
) -> List[ParseCandidate]:
    normalized = normalize_input(text)
    if not normalized:
        raise MalformedReference("Empty reference", offending=text)

    match = _REFERENCE.match(normalized)
    if match is None:
        raise MalformedReference(f"Cannot read {text.strip()!r} as a reference", offending=text)

    book_text, location, tag = match.group("book", "location", "tag")
    if location is None:
        book_text, tag = _split_translation_tag(book_text, canon, known)

    matches = canon.match_books(book_text)
    if not matches:
        raise UnknownBook(
            f"No book named {book_text!r}",
            offending=book_text,
            suggestions=["Use a book name or abbreviation such as 'John' or '1 Cor'"],
        )

    translation = tag.upper() if tag else None
    if translation is not None and translation not in known:
        raise MalformedReference(
            f"Unknown translation {tag!r} after {book_text!r}",
            offending=tag,
            suggestions=[f"Known translations: {', '.join(sorted(known))}"],
        )
    if location is None:
        return _book_only(book_text, matches, translation, allow_book_only)

    candidates: List[ParseCandidate] = []
    first_error: Optional[MalformedReference] = None
    for book, kind in matches:
        try:
            references = _parse_location(location, book, translation)
        except MalformedReference as e:
            first_error = first_error or e
            continue
        candidates.append(ParseCandidate(
            book=book.id,
            references=references,
            matched=book_text,
            kind=kind,
            location=location.strip(),
            translation=translation,
        ))

    if not candidates:
        raise first_error  # type: ignore[misc]
    return candidates


def _split_translation_tag(
    book_text: str,
    canon: Canon,
    known: FrozenSet[str],
) -> Tuple[str, Optional[str]]:
    """Peel a known translation tag off a location-less input."""
    head, _, last = book_text.rpartition(" ")
    if not head or not is_translation_tag(last) or last.upper() not in known:
        return book_text, None
    if canon.match_books(book_text) or not canon.match_books(head):
        return book_text, None
    return head, last


def _book_only(
    book_text: str,
    matches: List[Tuple[Book, MatchKind]],
    translation: Optional[str],
    allow_book_only: bool,
) -> List[ParseCandidate]:
    if not allow_book_only and not any(book.single_chapter for book, _ in matches):
        raise IncompleteReference(
            f"{book_text!r} names a book but no chapter",
            books=[book.id for book, _ in matches],
            suggestions=[f"Add a chapter, e.g. '{matches[0][0].name} 1'"],
        )
    return [
        ParseCandidate(
            book=book.id,
            references=(),
            matched=book_text,
            kind=kind,
            translation=translation,
        )
        for book, kind in matches
    ]


# =============================================================================
# LOCATION GRAMMAR
# =============================================================================


def _parse_location(
    location: str,
    book: Book,
    translation: Optional[str],
) -> Tuple[Reference, ...]:
    compact = _SEPARATOR_SPACE.sub(r"\1", location.strip())
    if not compact:
        raise MalformedReference("Missing chapter", offending=location)
    if any(ch.isspace() for ch in compact):
        raise MalformedReference(
            f"Unexpected space in {location.strip()!r}", offending=location.strip()
        )

    references: List[Reference] = []
    for group in compact.split(";"):
        if not group:
            raise MalformedReference("Empty location between ';'", offending=compact)

        if ":" in group:
            chapter_text, _, items = group.partition(":")
            if ":" in items:
                raise MalformedReference(
                    f"Ranges across chapters are not supported: {group!r}", offending=group
                )
            if "-" in chapter_text or "," in chapter_text:
                raise MalformedReference(
                    f"Chapter ranges are not supported: {group!r}", offending=group
                )
            chapter = _number(chapter_text, group)
            references.extend(
                Reference(book.id, chapter, verses, translation)
                for verses in _parse_items(items)
            )
        elif book.single_chapter:
            references.extend(
                Reference(book.id, 1, verses, translation)
                for verses in _parse_items(group)
            )
        else:
            if "-" in group or "," in group:
                raise MalformedReference(
                    f"Chapter ranges are not supported: {group!r}",
                    offending=group,
                    suggestions=["Separate chapters with ';', e.g. 'Psalms 23;24'"],
                )
            references.append(Reference(book.id, _number(group, group), None, translation))

    return tuple(references)


def _parse_items(items: str) -> List[VerseRange]:
    ranges = []
    for item in items.split(","):
        if "-" in item:
            start_text, _, end_text = item.partition("-")
            if "-" in end_text:
                raise MalformedReference(f"Malformed verse range {item!r}", offending=item)
            start = _number(start_text, item)
            end = _number(end_text, item)
            if end < start:
                raise MalformedReference(
                    f"Range {item!r} ends before it starts", offending=item
                )
            ranges.append(VerseRange(start, end))
        else:
            ranges.append(VerseRange.single(_number(item, item)))
    return ranges


def _number(text: str, context: str) -> int:
    if not text:
        raise MalformedReference(f"Missing number in {context!r}", offending=context)
    if not text.isdecimal():
        raise MalformedReference(f"{text!r} is not a number", offending=context)
    value = int(text)
    if value == 0:
        raise MalformedReference(
            f"Chapters and verses start at 1, got 0 in {context!r}", offending=context
        )
    return value
