"""
Tests for canon/ - book catalog, alias matching and reference value types.

Covers:
- Bundled canon shape and ordering
- Key normalization and alias lookup
- Exact / prefix / fuzzy match tiers
- Construction errors
- Chapter navigation
- Reference formatting and URL paths
"""
import json

import pytest

from canon import Canon, MatchKind, Reference, VerseRange, normalize_key, slugify
from canon.books import BOOKS
from core.errors import CanonConfigError


# =============================================================================
# Bundled canon
# =============================================================================

class TestBundledCanon:
    """Tests for the bundled KJV table."""

    def test_has_sixty_six_books(self, canon):
        """The Protestant canon has 66 books."""
        assert len(canon) == 66
        assert canon.books[0].id == "GEN"
        assert canon.books[-1].id == "REV"

    def test_testaments(self, canon):
        """First 39 books are the Old Testament."""
        testaments = [book.testament for book in canon.books]
        assert testaments.count("OT") == 39
        assert testaments.count("NT") == 27
        assert canon.get("MAL").testament == "OT"
        assert canon.get("MAT").testament == "NT"

    def test_ordinals_are_positions(self, canon):
        """Ordinals are 1-based positions; unknown books are 0."""
        assert canon.ordinal("GEN") == 1
        assert canon.ordinal("JHN") == 43
        assert canon.ordinal("REV") == 66
        assert canon.ordinal("XYZ") == 0

    def test_counts(self, canon):
        """Chapter and verse counts follow KJV versification."""
        assert canon.chapter_count("PSA") == 150
        assert canon.verse_count("PSA", 119) == 176
        assert canon.verse_count("JHN", 3) == 36

    def test_counts_never_raise(self, canon):
        """Unknown books and chapters count as zero."""
        assert canon.chapter_count("XYZ") == 0
        assert canon.verse_count("XYZ", 1) == 0
        assert canon.verse_count("JHN", 22) == 0
        assert canon.verse_count("JHN", 0) == 0

    def test_single_chapter_books(self, canon):
        """Obadiah, Philemon, 2 John, 3 John and Jude have one chapter."""
        single = {book.id for book in canon.books if book.single_chapter}
        assert single == {"OBA", "PHM", "2JN", "3JN", "JUD"}

    def test_slugs(self, canon):
        """Slugs are URI safe."""
        assert canon.get("1JN").slug == "1-john"
        assert canon.get("SNG").slug == "song-of-solomon"

    def test_book_to_dict(self, canon):
        """Book serializes its metadata."""
        data = canon.get("JUD").to_dict()
        assert data["id"] == "JUD"
        assert data["chapters"] == 1
        assert data["single_chapter"] is True

    def test_membership(self, canon):
        assert "JHN" in canon
        assert "XYZ" not in canon
        assert canon.get("XYZ") is None


# =============================================================================
# Normalization and lookup
# =============================================================================

class TestNormalization:
    """Tests for normalize_key and friends."""

    @pytest.mark.parametrize("raw,expected", [
        ("John", "john"),
        ("  1 John ", "1john"),
        ("I John", "1john"),
        ("ii kings", "2kings"),
        ("III John", "3john"),
        ("Song of Solomon", "songofsolomon"),
        ("Gén.", "gen"),
        ("", ""),
    ])
    def test_normalize_key(self, raw, expected):
        """Case, spacing, punctuation and diacritics fold away."""
        assert normalize_key(raw) == expected

    def test_roman_numeral_needs_space(self):
        """Only a separate leading numeral is converted."""
        assert normalize_key("isaiah") == "isaiah"

    def test_slugify(self):
        assert slugify("1 John") == "1-john"
        assert slugify("Song of Solomon") == "song-of-solomon"


class TestLookup:
    """Tests for Canon.lookup_book."""

    @pytest.mark.parametrize("name,book_id", [
        ("John", "JHN"),
        ("jn", "JHN"),
        ("JHN", "JHN"),
        ("1 jn", "1JN"),
        ("1 John", "1JN"),
        ("I John", "1JN"),
        ("1-john", "1JN"),
        ("song of songs", "SNG"),
        ("Ps", "PSA"),
        ("Psalm", "PSA"),
        ("  PSALMS  ", "PSA"),
        ("Revelations", "REV"),
    ])
    def test_lookup(self, canon, name, book_id):
        """Exact lookup by name, code, slug or alias."""
        book = canon.lookup_book(name)
        assert (book.id if book else None) == book_id

    def test_lookup_unknown(self, canon):
        assert canon.lookup_book("Hezekiah") is None
        assert canon.lookup_book("") is None
        assert canon.lookup_book("...") is None


# =============================================================================
# Match tiers
# =============================================================================

class TestMatchBooks:
    """Tests for Canon.match_books."""

    def test_exact_first(self, canon):
        """An exact key comes first, prefix matches follow."""
        matches = canon.match_books("jn")
        assert matches[0][0].id == "JHN"
        assert matches[0][1] == MatchKind.EXACT
        assert all(kind == MatchKind.PREFIX for _, kind in matches[1:])

    def test_prefix_in_canonical_order(self, canon):
        """Prefix matches are listed in canon order."""
        matches = canon.match_books("ju")
        assert [book.id for book, _ in matches] == ["JDG", "JUD"]
        assert {kind for _, kind in matches} == {MatchKind.PREFIX}

    def test_one_entry_per_book(self, canon):
        """A book matched by several keys appears once."""
        matches = canon.match_books("ps")
        ids = [book.id for book, _ in matches]
        assert ids.count("PSA") == 1

    def test_fuzzy_only_when_nothing_else(self, canon):
        """One edit away from a long enough key is a fuzzy match."""
        matches = canon.match_books("genisis")
        assert [(book.id, kind) for book, kind in matches] == [("GEN", MatchKind.FUZZY)]

    def test_fuzzy_transposition(self, canon):
        """Two swapped neighbouring letters count as one edit."""
        matches = canon.match_books("jhon")
        assert [(book.id, kind) for book, kind in matches] == [("JHN", MatchKind.FUZZY)]

    @pytest.mark.parametrize("text", ["genasys", "jhonn", "lukeee"])
    def test_fuzzy_two_edits_rejected(self, canon, text):
        assert canon.match_books(text) == []

    def test_fuzzy_ignores_short_keys(self, canon):
        """Keys under four characters are never fuzzy matched."""
        assert canon.match_books("qz") == []

    def test_no_match(self, canon):
        assert canon.match_books("hezekiah") == []
        assert canon.match_books("") == []


# =============================================================================
# Construction
# =============================================================================

class TestConstruction:
    """Tests for canon validation at load time."""

    def _entry(self, book_id, name, aliases=(), verse_counts=(10,)):
        return {"id": book_id, "name": name, "aliases": list(aliases), "verse_counts": list(verse_counts)}

    def test_from_entries(self):
        canon = Canon.from_entries([
            self._entry("AAA", "Alpha", ["al"], (3, 4)),
            self._entry("BBB", "Beta"),
        ])
        assert len(canon) == 2
        assert canon.get("AAA").order == 1
        assert canon.get("BBB").slug == "beta"
        assert canon.lookup_book("al").id == "AAA"

    def test_duplicate_alias_rejected(self):
        """An alias claimed by two books is a configuration error."""
        with pytest.raises(CanonConfigError) as exc_info:
            Canon.from_entries([
                self._entry("AAA", "Alpha", ["shared"]),
                self._entry("BBB", "Beta", ["Shared"]),
            ])
        assert exc_info.value.key == "shared"

    def test_duplicate_id_rejected(self):
        with pytest.raises(CanonConfigError):
            Canon.from_entries([self._entry("AAA", "Alpha"), self._entry("AAA", "Beta")])

    def test_testament_defaults_by_position(self):
        canon = Canon.from_entries([self._entry("AAA", "Alpha")])
        assert canon.get("AAA").testament == "OT"
        assert Canon.from_entries(BOOKS).get("MAT").testament == "NT"

    def test_unknown_testament_rejected(self):
        entry = dict(self._entry("AAA", "Alpha"), testament="Apocrypha")
        with pytest.raises(CanonConfigError, match="Apocrypha"):
            Canon.from_entries([entry])

    def test_empty_verse_counts_rejected(self):
        with pytest.raises(CanonConfigError):
            Canon.from_entries([self._entry("AAA", "Alpha", verse_counts=())])

    def test_zero_verse_chapter_rejected(self):
        with pytest.raises(CanonConfigError):
            Canon.from_entries([self._entry("AAA", "Alpha", verse_counts=(3, 0))])

    def test_missing_field_rejected(self):
        with pytest.raises(CanonConfigError):
            Canon.from_entries([{"id": "AAA", "name": "Alpha"}])

    def test_empty_canon_rejected(self):
        with pytest.raises(CanonConfigError):
            Canon.from_entries([])

    def test_bundled_table_has_no_conflicts(self):
        """The bundled table builds cleanly."""
        assert len(Canon.from_entries(BOOKS)) == 66

    def test_from_json(self, tmp_path):
        path = tmp_path / "canon.json"
        path.write_text(json.dumps([self._entry("AAA", "Alpha", verse_counts=(2,))]))
        canon = Canon.from_json(path)
        assert canon.get("AAA").single_chapter

    def test_from_json_not_a_list(self, tmp_path):
        path = tmp_path / "canon.json"
        path.write_text(json.dumps({"books": []}))
        with pytest.raises(CanonConfigError):
            Canon.from_json(path)

    def test_from_json_missing_file(self, tmp_path):
        with pytest.raises(CanonConfigError):
            Canon.from_json(tmp_path / "missing.json")


# =============================================================================
# Navigation
# =============================================================================

class TestNavigation:
    """Tests for previous/next chapter."""

    def test_within_book(self, canon):
        ref = Reference("JHN", 3)
        assert canon.previous_chapter(ref) == Reference("JHN", 2)
        assert canon.next_chapter(ref) == Reference("JHN", 4)

    def test_across_books(self, canon):
        """Navigation crosses book boundaries."""
        assert canon.next_chapter(Reference("MAL", 4)) == Reference("MAT", 1)
        assert canon.previous_chapter(Reference("MAT", 1)) == Reference("MAL", 4)
        assert canon.previous_chapter(Reference("JUD", 1)) == Reference("3JN", 1)
        assert canon.next_chapter(Reference("JUD", 1)) == Reference("REV", 1)

    def test_ends_of_canon(self, canon):
        assert canon.previous_chapter(Reference("GEN", 1)) is None
        assert canon.next_chapter(Reference("REV", 22)) is None

    def test_keeps_translation(self, canon):
        assert canon.next_chapter(Reference("JHN", 3, translation="KJV")).translation == "KJV"


# =============================================================================
# Reference value type
# =============================================================================

class TestReference:
    """Tests for Reference and VerseRange."""

    def test_verse_range_validation(self):
        with pytest.raises(ValueError):
            VerseRange(0, 1)
        with pytest.raises(ValueError):
            VerseRange(5, 4)

    def test_verse_range(self):
        verses = VerseRange(16, 18)
        assert len(verses) == 3
        assert 17 in verses
        assert 19 not in verses
        assert verses.label() == "16-18"
        assert VerseRange.single(5).label() == "5"

    def test_shapes(self):
        """Exactly one of chapter, single verse or range."""
        chapter = Reference("PSA", 23)
        verse = Reference("JHN", 3, VerseRange.single(16))
        span = Reference("JHN", 3, VerseRange(16, 18))
        assert (chapter.is_chapter, chapter.is_single_verse, chapter.is_range) == (True, False, False)
        assert (verse.is_chapter, verse.is_single_verse, verse.is_range) == (False, True, False)
        assert (span.is_chapter, span.is_single_verse, span.is_range) == (False, False, True)

    @pytest.mark.parametrize("ref,text", [
        (Reference("JHN", 3, VerseRange(16, 18)), "John 3:16-18"),
        (Reference("JHN", 3, VerseRange.single(16)), "John 3:16"),
        (Reference("PSA", 23), "Psalms 23"),
        (Reference("JUD", 1, VerseRange.single(5)), "Jude 1:5"),
        (Reference("JUD", 1), "Jude"),
        (Reference("1JN", 1, VerseRange.single(9), "KJV"), "1 John 1:9 KJV"),
    ])
    def test_format(self, canon, ref, text):
        """Canonical display strings."""
        assert ref.format(canon) == text

    def test_format_unknown_book(self, canon):
        with pytest.raises(KeyError):
            Reference("XYZ", 1).format(canon)

    @pytest.mark.parametrize("ref,path", [
        (Reference("JHN", 3, VerseRange(16, 18)), "john+3:16-18"),
        (Reference("1JN", 1, VerseRange.single(9)), "1-john+1:9"),
        (Reference("PSA", 23), "psalms+23"),
        (Reference("JUD", 1), "jude"),
    ])
    def test_url_path(self, canon, ref, path):
        """URL form uses the slug and never the translation."""
        assert ref.url_path(canon) == path
        assert ref.with_translation("kjv").url_path(canon) == path

    def test_hashable(self):
        """Equal references deduplicate."""
        refs = {Reference("JHN", 3, VerseRange.single(16)), Reference("JHN", 3, VerseRange(16, 16))}
        assert len(refs) == 1

    def test_with_translation(self):
        ref = Reference("JHN", 3).with_translation("esv")
        assert ref.translation == "ESV"
        assert ref.with_translation(None).translation is None
