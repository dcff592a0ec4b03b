"""
Tests for db/loader.py - verse file import.
"""
import json

import pytest

from db.loader import LoadReport, load_verse_file, normalize_row


class TestNormalizeRow:
    """Tests for normalize_row."""

    def test_canonical_row(self, canon):
        row = normalize_row(
            {"book": "1 Jn", "chapter": "1", "verse": 9, "text": " If we confess ", "translation": "web"},
            canon,
        )
        assert row == {"book": "1JN", "chapter": 1, "verse": 9, "text": "If we confess", "translation": "WEB"}

    def test_default_translation(self, canon):
        row = normalize_row({"book": "GEN", "chapter": 1, "verse": 1, "text": "In the beginning"}, canon, "asv")
        assert row["translation"] == "ASV"

    @pytest.mark.parametrize("raw,reason", [
        (["GEN", 1, 1], "record is not an object"),
        ({"chapter": 1, "verse": 1, "text": "x"}, "missing book"),
        ({"book": "Hezekiah", "chapter": 1, "verse": 1, "text": "x"}, "unknown book 'Hezekiah'"),
        ({"book": "GEN", "chapter": "one", "verse": 1, "text": "x"}, "chapter and verse must be integers"),
        ({"book": "GEN", "chapter": 1, "text": "x"}, "chapter and verse must be integers"),
        ({"book": "GEN", "chapter": 51, "verse": 1, "text": "x"}, "Genesis has no chapter 51"),
        ({"book": "GEN", "chapter": 1, "verse": 32, "text": "x"}, "Genesis 1 has no verse 32"),
        ({"book": "GEN", "chapter": 1, "verse": 1, "text": "  "}, "missing text"),
    ])
    def test_rejections(self, canon, raw, reason):
        assert normalize_row(raw, canon) == reason

    def test_fuzzy_book_names_rejected(self, canon):
        """Import never guesses: misspelled books are skipped."""
        row = normalize_row({"book": "Genisis", "chapter": 1, "verse": 1, "text": "x"}, canon)
        assert row == "unknown book 'Genisis'"


class TestLoadVerseFile:
    """Tests for load_verse_file."""

    def test_json_lines(self, canon, verse_file):
        report = load_verse_file(verse_file, canon)
        assert report.loaded == 3
        assert report.skipped == 3
        assert [(r["book"], r["chapter"], r["verse"]) for r in report.rows] == [
            ("JHN", 3, 16), ("JHN", 3, 17), ("PSA", 23, 1),
        ]
        assert {r["translation"] for r in report.rows} == {"KJV"}
        assert report.problems[0] == "line 4: unknown book 'Hezekiah'"
        assert report.problems[1] == "line 5: John has no chapter 22"
        assert report.problems[2].startswith("line 6: invalid JSON")

    def test_json_document(self, canon, tmp_path):
        path = tmp_path / "verses.json"
        path.write_text(json.dumps({"verses": [
            {"book": "Jude", "chapter": 1, "verse": 2, "text": "Mercy unto you"},
            {"book": "Jude", "chapter": 2, "verse": 1, "text": "No such chapter"},
        ]}), encoding="utf-8")

        report = load_verse_file(path, canon, "KJV")
        assert report.loaded == 1
        assert report.rows[0]["book"] == "JUD"
        assert report.problems == ["line 2: Jude has no chapter 2"]

    def test_json_list(self, canon, tmp_path):
        path = tmp_path / "verses.json"
        path.write_text(json.dumps([
            {"book": "Ps", "chapter": 23, "verse": 1, "text": "The LORD is my shepherd"},
        ]), encoding="utf-8")
        assert load_verse_file(path, canon).loaded == 1

    def test_csv(self, canon, tmp_path):
        path = tmp_path / "verses.csv"
        path.write_text(
            "book,chapter,verse,text,translation\n"
            "John,3,16,\"For God so loved the world, that he gave\",KJV\n"
            "John,3,x,Broken,KJV\n",
            encoding="utf-8",
        )
        report = load_verse_file(path, canon)
        assert report.loaded == 1
        assert report.rows[0]["text"] == "For God so loved the world, that he gave"
        assert report.problems == ["line 3: chapter and verse must be integers"]

    def test_unsupported_suffix(self, canon, tmp_path):
        path = tmp_path / "verses.txt"
        path.write_text("John 3:16 For God so loved", encoding="utf-8")
        with pytest.raises(ValueError):
            load_verse_file(path, canon)

    def test_missing_file(self, canon, tmp_path):
        with pytest.raises(OSError):
            load_verse_file(tmp_path / "absent.jsonl", canon)


class TestLoadReport:
    """Tests for LoadReport."""

    def test_problem_list_is_capped(self):
        report = LoadReport(source="big.jsonl")
        for line in range(1, 31):
            report.skip(line, "bad")
        assert report.skipped == 30
        assert len(report.problems) == 20
        assert report.loaded == 0
