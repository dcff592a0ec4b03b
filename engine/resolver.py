"""
Scriptura - Reference Resolver

Validates parse candidates against the canon and picks the canonical
reading. Also the inverse: formatting a reference back into text that
resolves to it again.
"""
import logging
from typing import Collection, List, Optional, Sequence, Tuple

from canon.model import Book, Canon
from canon.reference import Citation, Reference
from core.errors import (
    AmbiguousReference,
    IncompleteReference,
    MalformedReference,
    OutOfRange,
    UnknownBook,
)
from core.types import Result
from engine.parser import parse
from engine.types import ParseCandidate

logger = logging.getLogger("scriptura.engine.resolver")


def validate_reference(ref: Reference, canon: Canon) -> Result[Reference]:
    """Check a single reference against chapter and verse counts."""
    book = canon.get(ref.book)
    if book is None:
        return Result.from_exception(UnknownBook(f"No book with id {ref.book!r}", offending=ref.book))

    if ref.chapter < 1 or ref.chapter > book.chapter_count:
        return Result.from_exception(OutOfRange(
            f"{book.name} has {book.chapter_count} chapter(s), not {ref.chapter}",
            field_name="chapter",
            value=ref.chapter,
            maximum=book.chapter_count,
            book_id=book.id,
        ))

    if ref.verses is not None:
        count = book.verse_count(ref.chapter)
        if ref.verses.end > count:
            return Result.from_exception(OutOfRange(
                f"{book.name} {ref.chapter} has {count} verses, not {ref.verses.end}",
                field_name="verse",
                value=ref.verses.end,
                maximum=count,
                book_id=book.id,
            ))
    return Result.success(ref)


def _validate_candidate(candidate: ParseCandidate, canon: Canon) -> Result[Citation]:
    book = canon.get(candidate.book)
    if book is None:
        return Result.from_exception(
            UnknownBook(f"No book with id {candidate.book!r}", offending=candidate.matched)
        )

    if candidate.is_book_only:
        if book.single_chapter:
            return Result.success((Reference(book.id, 1, None, candidate.translation),))
        return Result.from_exception(IncompleteReference(
            f"{book.name} has {book.chapter_count} chapters; name one",
            books=[book.id],
        ))

    for ref in candidate.references:
        checked = validate_reference(ref, canon)
        if checked.is_failure:
            return Result(error=checked.error, exception=checked.exception)
    return Result.success(candidate.references)


def resolve_candidates(
    candidates: Sequence[ParseCandidate],
    canon: Canon,
) -> Result[Citation]:
    """
    Pick the canonical citation among parse candidates.

    Candidates must be ordered by confidence then canon order, as the
    parser returns them. The best tier among those that validate wins if
    it holds one book; several books there is an AmbiguousReference.
    When nothing validates, the first candidate's error is returned.
    """
    if not candidates:
        return Result.from_exception(MalformedReference("Nothing to resolve"))

    outcomes = [(candidate, _validate_candidate(candidate, canon)) for candidate in candidates]
    valid = [(candidate, result.value) for candidate, result in outcomes if result.is_success]

    if not valid:
        logger.debug(f"No candidate validated for {candidates[0].matched!r}")
        return outcomes[0][1]

    best = max(candidate.kind for candidate, _ in valid)
    top = [citation for candidate, citation in valid if candidate.kind == best]
    if len(top) == 1:
        return Result.success(top[0])

    labels = [format_citation(citation, canon) for _, citation in valid]
    logger.debug(f"Ambiguous {candidates[0].matched!r}: {labels}")
    return Result.from_exception(AmbiguousReference(
        f"{candidates[0].matched!r} could mean {', '.join(labels)}",
        candidates=[citation for _, citation in valid],
        labels=labels,
    ))


def resolve(
    text: str,
    canon: Canon,
    allow_book_only: bool = False,
    translations: Optional[Collection[str]] = None,
) -> Result[Citation]:
    """Parse and resolve ``text`` in one step."""
    parsed = parse(text, canon, allow_book_only=allow_book_only, translations=translations)
    if parsed.is_failure:
        return Result(error=parsed.error, exception=parsed.exception)
    return resolve_candidates(parsed.value, canon)


def resolve_book(text: str, canon: Canon) -> Result[Book]:
    """
    Resolve a bare book name, as used by the book listing route.

    A location part must still be well formed, but its chapter and verse
    numbers are not checked against the canon. Several equally good books
    give an AmbiguousReference.
    """
    parsed = parse(text, canon, allow_book_only=True)
    if parsed.is_failure:
        return Result(error=parsed.error, exception=parsed.exception)

    candidates = parsed.value
    best = candidates[0].kind
    top: List[Book] = []
    for candidate in candidates:
        book = canon.get(candidate.book)
        if candidate.kind == best and book is not None and book not in top:
            top.append(book)
    if len(top) == 1:
        return Result.success(top[0])
    return Result.from_exception(AmbiguousReference(
        f"{candidates[0].matched!r} could mean {', '.join(b.name for b in top)}",
        candidates=[(Reference(b.id, 1),) for b in top],
        labels=[b.name for b in top],
    ))


def format_reference(ref: Reference, canon: Canon) -> str:
    """Canonical text form; ``resolve`` of it yields ``(ref,)`` again."""
    return ref.format(canon)


def format_citation(citation: Tuple[Reference, ...], canon: Canon) -> str:
    return "; ".join(format_reference(ref, canon) for ref in citation)
