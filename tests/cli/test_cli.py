"""
Tests for cli/main.py - Typer commands against a temporary SQLite database.
"""
import json

import pytest
from typer.testing import CliRunner

from cli.main import app

runner = CliRunner()


@pytest.fixture
def imported_db(database_url, verse_file):
    """Database URL with the sample verse file imported."""
    result = runner.invoke(app, ["import-verses", str(verse_file), "--database", database_url])
    assert result.exit_code == 0, result.output
    return database_url


class TestBooks:
    """Tests for the books command."""

    def test_all_books(self):
        result = runner.invoke(app, ["books"])
        assert result.exit_code == 0
        assert "Genesis" in result.output
        assert "66 books" in result.output

    def test_testament_filter(self):
        result = runner.invoke(app, ["books", "--testament", "nt"])
        assert result.exit_code == 0
        assert "27 books" in result.output
        assert "Genesis" not in result.output


class TestDatabaseCommands:
    """Tests for init-db and import-verses."""

    def test_init_db(self, database_url):
        result = runner.invoke(app, ["init-db", "--database", database_url])
        assert result.exit_code == 0, result.output
        assert "books" in result.output
        assert "66" in result.output

    def test_import(self, database_url, verse_file):
        result = runner.invoke(app, ["import-verses", str(verse_file), "-d", database_url])
        assert result.exit_code == 0, result.output
        assert "Imported 3 verses from verses.jsonl" in result.output
        assert "Skipped 3 row(s)" in result.output
        assert "unknown book 'Hezekiah'" in result.output

    def test_import_logs_carry_command_context(self, database_url, verse_file):
        result = runner.invoke(app, ["-v", "import-verses", str(verse_file), "-d", database_url])
        assert result.exit_code == 0, result.output
        log_line = next(line for line in result.output.splitlines() if "Verses imported" in line)
        assert "command=import-verses" in log_line
        assert "source=verses.jsonl" in log_line
        assert "stored=3" in log_line

    def test_import_missing_file(self, database_url, tmp_path):
        result = runner.invoke(app, ["import-verses", str(tmp_path / "absent.jsonl"), "-d", database_url])
        assert result.exit_code == 1
        assert "Input file not found" in result.output

    def test_import_unsupported_file(self, database_url, tmp_path):
        path = tmp_path / "verses.txt"
        path.write_text("John 3:16", encoding="utf-8")
        result = runner.invoke(app, ["import-verses", str(path), "-d", database_url])
        assert result.exit_code == 1
        assert "Unsupported verse file" in result.output


class TestLookup:
    """Tests for the lookup command."""

    def test_panel(self, imported_db):
        result = runner.invoke(app, ["lookup", "ps 23:1", "-d", imported_db])
        assert result.exit_code == 0, result.output
        assert "The LORD is my shepherd" in result.output
        assert "Psalms 23:1" in result.output

    def test_json_ld(self, imported_db):
        result = runner.invoke(app, ["lookup", "jn 3.16-17", "--json-ld", "-d", imported_db])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["@type"] == "Passage"
        assert data["@id"].endswith("/kjv/john/3/16-17")
        assert [part["verse"] for part in data["hasPart"]] == [16, 17]

    def test_missing_text(self, imported_db):
        result = runner.invoke(app, ["lookup", "john 3:18", "-d", imported_db])
        assert result.exit_code == 1
        assert "No KJV text stored" in result.output

    def test_ambiguous(self, imported_db):
        result = runner.invoke(app, ["lookup", "ju 1:1", "-d", imported_db])
        assert result.exit_code == 1
        assert "Judges 1:1" in result.output
        assert "Jude 1:1" in result.output

    def test_translation_tag(self, imported_db):
        result = runner.invoke(app, ["lookup", "ps 23:1 kjv", "-d", imported_db])
        assert result.exit_code == 0, result.output
        assert "The LORD is my shepherd" in result.output

    def test_unknown_trailing_word(self):
        result = runner.invoke(app, ["lookup", "ps 23:1 shepherd"])
        assert result.exit_code == 1
        assert "shepherd" in result.output

    @pytest.mark.parametrize("reference", ["xyz 1:1", "john 22:1", "john 3:18-16", "john"])
    def test_invalid_reference(self, reference):
        """Rejected before any database access."""
        result = runner.invoke(app, ["lookup", reference])
        assert result.exit_code == 1


class TestSearch:
    """Tests for the search command."""

    def test_text_json(self, imported_db):
        result = runner.invoke(app, ["search", "loved the world", "--output", "json", "-d", imported_db])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [hit["reference"] for hit in data] == ["John 3:16 KJV", "John 3:17 KJV"]
        assert [hit["relevance"] for hit in data] == [6.0, 3.0]

    def test_reference_json(self, imported_db):
        result = runner.invoke(app, ["search", "jn 3:16", "-o", "json", "-d", imported_db])
        data = json.loads(result.output)
        assert data == [{"kind": "reference", "reference": "John 3:16", "path": "john+3:16", "relevance": 1.0}]

    def test_trailing_word_searches_text(self, imported_db):
        result = runner.invoke(app, ["search", "psalm 23 shepherd", "-o", "json", "-d", imported_db])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [(hit["kind"], hit["reference"]) for hit in data] == [("text", "Psalms 23:1 KJV")]

    def test_table(self, imported_db):
        result = runner.invoke(app, ["search", "loved the world", "-n", "1", "-d", imported_db])
        assert result.exit_code == 0, result.output
        assert "John 3:16 KJV" in result.output
        assert "1 result(s)" in result.output

    def test_no_results(self, imported_db):
        result = runner.invoke(app, ["search", "xylophone quartz", "-d", imported_db])
        assert result.exit_code == 0
        assert "No results" in result.output
