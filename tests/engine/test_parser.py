"""
Tests for engine/parser.py - free-form reference parsing.

Covers:
- Input normalization
- Location grammar (chapter, verse, range, lists, ';' groups)
- Single-chapter books
- Translation tags
- Rejections: malformed, unknown book, incomplete
"""
import pytest

from canon import MatchKind, Reference, VerseRange
from core.errors import IncompleteReference, MalformedReference, UnknownBook
from engine.parser import normalize_input, parse


def only(result):
    """The single candidate of a successful parse."""
    assert result.is_success, result.error
    assert len(result.value) >= 1
    return result.value[0]


# =============================================================================
# Normalization
# =============================================================================

class TestNormalizeInput:
    """Tests for normalize_input."""

    @pytest.mark.parametrize("raw,expected", [
        ("John 3:16", "John 3:16"),
        ("  john   3 : 16  ", "john 3 : 16"),
        ("john+3:16", "john 3:16"),
        ("1_john_1:9", "1 john 1:9"),
        ("john 3.16", "john 3:16"),
        ("Jn. 3:16", "Jn 3:16"),
        ("john 3:16–18", "john 3:16-18"),
        ("1-john+1:9", "1 john 1:9"),
        ("song-of-solomon+2:1", "song of solomon 2:1"),
    ])
    def test_normalize(self, raw, expected):
        """Punctuation variants collapse to one form."""
        assert normalize_input(raw) == expected


# =============================================================================
# Location grammar
# =============================================================================

class TestLocations:
    """Tests for the location grammar."""

    def test_chapter_verse(self, canon):
        candidate = only(parse("John 3:16", canon))
        assert candidate.book == "JHN"
        assert candidate.kind == MatchKind.EXACT
        assert candidate.references == (Reference("JHN", 3, VerseRange.single(16)),)
        assert candidate.matched == "John"
        assert candidate.location == "3:16"

    def test_range(self, canon):
        candidate = only(parse("jn 3:16-18", canon))
        assert candidate.references == (Reference("JHN", 3, VerseRange(16, 18)),)

    def test_chapter_only(self, canon):
        candidate = only(parse("ps 23", canon))
        assert candidate.references == (Reference("PSA", 23),)

    def test_verse_list(self, canon):
        """Comma separated verses become separate references."""
        candidate = only(parse("john 3:16,18", canon))
        assert candidate.references == (
            Reference("JHN", 3, VerseRange.single(16)),
            Reference("JHN", 3, VerseRange.single(18)),
        )

    def test_semicolon_groups(self, canon):
        """';' separates chapter groups, kept in input order."""
        candidate = only(parse("ps 23;24", canon))
        assert candidate.references == (Reference("PSA", 23), Reference("PSA", 24))

    def test_mixed_groups(self, canon):
        candidate = only(parse("john 3:16; 4:1-2", canon))
        assert candidate.references == (
            Reference("JHN", 3, VerseRange.single(16)),
            Reference("JHN", 4, VerseRange(1, 2)),
        )

    def test_spaces_around_separators(self, canon):
        candidate = only(parse("john 3 : 16 - 18", canon))
        assert candidate.references == (Reference("JHN", 3, VerseRange(16, 18)),)

    def test_dotted_location(self, canon):
        candidate = only(parse("john.3.16", canon))
        assert candidate.references == (Reference("JHN", 3, VerseRange.single(16)),)

    def test_url_form(self, canon):
        candidate = only(parse("1-john+1:9", canon))
        assert candidate.book == "1JN"
        assert candidate.references == (Reference("1JN", 1, VerseRange.single(9)),)

    def test_numbered_book_variants(self, canon):
        """Digits or roman numerals, with or without a space."""
        for text in ("1 John 1:9", "1John 1:9", "I John 1:9", "i jn 1:9"):
            assert only(parse(text, canon)).book == "1JN", text

    def test_multi_word_book(self, canon):
        candidate = only(parse("Song of Solomon 2:1", canon))
        assert candidate.book == "SNG"

    def test_parser_does_not_check_counts(self, canon):
        """Out-of-range numbers parse; the resolver rejects them."""
        candidate = only(parse("john 99:1", canon))
        assert candidate.references == (Reference("JHN", 99, VerseRange.single(1)),)


class TestSingleChapterBooks:
    """Single-chapter books take bare verse numbers."""

    @pytest.mark.parametrize("text,verses", [
        ("jude 5", (VerseRange.single(5),)),
        ("jude5", (VerseRange.single(5),)),
        ("jude 5-7", (VerseRange(5, 7),)),
        ("jude 5,7", (VerseRange.single(5), VerseRange.single(7))),
    ])
    def test_bare_numbers_are_verses(self, canon, text, verses):
        candidate = only(parse(text, canon))
        assert candidate.book == "JUD"
        assert candidate.references == tuple(Reference("JUD", 1, v) for v in verses)

    def test_explicit_chapter_honored(self, canon):
        candidate = only(parse("jude 1:5", canon))
        assert candidate.references == (Reference("JUD", 1, VerseRange.single(5)),)

    def test_book_alone_is_complete(self, canon):
        """A single-chapter book alone needs no location."""
        candidate = only(parse("Obadiah", canon))
        assert candidate.is_book_only
        assert candidate.references == ()


class TestTranslationTag:
    """A trailing known translation tag is peeled off the reference."""

    def test_tag_after_location(self, canon):
        candidate = only(parse("john 3:16 kjv", canon))
        assert candidate.translation == "KJV"
        assert candidate.references == (Reference("JHN", 3, VerseRange.single(16), "KJV"),)

    def test_tag_after_book_only(self, canon):
        candidate = only(parse("jude kjv", canon))
        assert candidate.book == "JUD"
        assert candidate.translation == "KJV"

    def test_book_words_are_not_tags(self, canon):
        """A multi-word book name keeps its last word."""
        candidate = only(parse("song of solomon", canon, allow_book_only=True))
        assert candidate.book == "SNG"
        assert candidate.translation is None

    @pytest.mark.parametrize("text", ["psalm 23 shepherd", "john 3:16 love", "jude 5 amen"])
    def test_unknown_word_after_location(self, canon, text):
        """A trailing word that names no translation makes the input malformed."""
        result = parse(text, canon)
        assert type(result.exception) is MalformedReference
        assert result.exception.offending == text.rsplit(" ", 1)[1]
        assert "KJV" in result.exception.suggestions[0]

    def test_unknown_word_after_book_only(self, canon):
        """Without a location the word stays part of the book name."""
        assert isinstance(parse("jude shepherd", canon).exception, UnknownBook)

    def test_custom_translations(self, canon):
        candidate = only(parse("john 3:16 lsg", canon, translations=["KJV", "lsg"]))
        assert candidate.translation == "LSG"
        assert parse("john 3:16 asv", canon, translations=["KJV"]).is_failure


# =============================================================================
# Rejections
# =============================================================================

class TestRejections:
    """Inputs the parser refuses."""

    @pytest.mark.parametrize("text", [
        "john 3:18-16",     # range end before start
        "john 0:1",         # zero chapter
        "john 3:0",         # zero verse
        "john 3:",          # missing verse
        "john 3:16-4:2",    # cross-chapter range
        "psalms 23-24",     # chapter range
        "john 3:16-",       # missing range end
        "john 3 16",        # space inside location
    ])
    def test_malformed(self, canon, text):
        result = parse(text, canon)
        assert result.is_failure
        assert isinstance(result.exception, MalformedReference)
        assert not isinstance(result.exception, UnknownBook)

    def test_offending_substring(self, canon):
        result = parse("john 3:18-16", canon)
        assert result.exception.offending == "18-16"

    @pytest.mark.parametrize("text", ["", "   ", "3:16", "::", "!!!"])
    def test_not_a_reference(self, canon, text):
        result = parse(text, canon)
        assert result.is_failure
        assert isinstance(result.exception, MalformedReference)

    def test_unknown_book(self, canon):
        result = parse("Hezekiah 3:16", canon)
        assert result.is_failure
        assert isinstance(result.exception, UnknownBook)
        assert result.exception.offending == "Hezekiah"
        assert result.exception.http_status == 400

    def test_incomplete(self, canon):
        """A multi-chapter book alone is incomplete."""
        result = parse("John", canon)
        assert result.is_failure
        assert isinstance(result.exception, IncompleteReference)
        assert result.exception.books == ("JHN",)

    def test_book_only_allowed(self, canon):
        result = parse("John", canon, allow_book_only=True)
        assert result.is_success
        assert result.value[0].is_book_only


class TestCandidates:
    """Several readings of one book name."""

    def test_ambiguous_prefix_yields_every_book(self, canon):
        result = parse("ju 1:1", canon)
        assert [c.book for c in result.value] == ["JDG", "JUD"]
        assert {c.kind for c in result.value} == {MatchKind.PREFIX}

    def test_location_must_fit_book_shape(self, canon):
        """Candidates whose location cannot parse for their book are dropped."""
        result = parse("ju 3-4", canon)
        assert [c.book for c in result.value] == ["JUD"]
        assert result.value[0].references == (Reference("JUD", 1, VerseRange(3, 4)),)

    def test_exact_before_prefix(self, canon):
        result = parse("jn 1:1", canon)
        assert result.value[0].book == "JHN"
        assert result.value[0].kind == MatchKind.EXACT
