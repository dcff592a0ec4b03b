"""
Scriptura - Verse file loader

Reads verse text from JSON-lines, JSON or CSV files into rows ready for
``SqlVerseStore.batch_upsert_verses`` or ``InMemoryVerseStore.add_verses``.

Every row names a book (canon id, name or any alias), a chapter, a verse,
the text and optionally a translation. Rows that cannot be placed in the
canon are skipped and counted, never guessed at.
"""
import csv
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional, Union

from canon.model import Canon
from core.types import VerseRowDict

logger = logging.getLogger("scriptura.db.loader")

JSON_LINES_SUFFIXES = {".jsonl", ".ndjson"}
SUPPORTED_SUFFIXES = JSON_LINES_SUFFIXES | {".json", ".csv"}


@dataclass
class LoadReport:
    """Outcome of reading one verse file."""

    source: str
    rows: List[VerseRowDict] = field(default_factory=list)
    skipped: int = 0
    problems: List[str] = field(default_factory=list)

    @property
    def loaded(self) -> int:
        return len(self.rows)

    def skip(self, line: int, reason: str) -> None:
        self.skipped += 1
        # Keep the report small for large files
        if len(self.problems) < 20:
            self.problems.append(f"line {line}: {reason}")


def load_verse_file(
    path: Union[str, Path],
    canon: Canon,
    default_translation: str = "KJV",
) -> LoadReport:
    """
    Read and normalize every row of a verse file.

    Raises:
        ValueError: for an unsupported file type
        OSError: when the file cannot be read
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ValueError(
            f"Unsupported verse file {path.name!r}; expected one of {', '.join(sorted(SUPPORTED_SUFFIXES))}"
        )

    report = LoadReport(source=str(path))
    for line, raw in _read_records(path, suffix, report):
        row = normalize_row(raw, canon, default_translation)
        if isinstance(row, str):
            report.skip(line, row)
        else:
            report.rows.append(row)

    if report.skipped:
        logger.warning(f"Skipped {report.skipped} row(s) of {path.name}")
    logger.info(f"Read {report.loaded} verse(s) from {path.name}")
    return report


def _read_records(path: Path, suffix: str, report: LoadReport) -> Iterator[tuple]:
    with open(path, "r", encoding="utf-8", newline="") as f:
        if suffix == ".csv":
            # Header is line 1
            for line, record in enumerate(csv.DictReader(f), start=2):
                yield line, record
        elif suffix in JSON_LINES_SUFFIXES:
            for line, text in enumerate(f, start=1):
                if not text.strip():
                    continue
                try:
                    yield line, json.loads(text)
                except json.JSONDecodeError as e:
                    report.skip(line, f"invalid JSON ({e.msg})")
        else:
            data = json.load(f)
            records = data.get("verses", []) if isinstance(data, dict) else data
            for index, record in enumerate(records, start=1):
                yield index, record


def normalize_row(
    raw: Any,
    canon: Canon,
    default_translation: str = "KJV",
) -> Union[VerseRowDict, str]:
    """
    Normalize one record, or return why it was rejected.

    Books resolve by exact id, name or alias only. Chapter and verse must
    exist in the canon.
    """
    if not isinstance(raw, Mapping):
        return "record is not an object"

    book_name = _field(raw, "book")
    if not book_name:
        return "missing book"
    book = canon.lookup_book(book_name)
    if book is None:
        return f"unknown book {book_name!r}"

    try:
        chapter = int(_field(raw, "chapter") or "")
        verse = int(_field(raw, "verse") or "")
    except ValueError:
        return "chapter and verse must be integers"

    if not 1 <= chapter <= book.chapter_count:
        return f"{book.name} has no chapter {chapter}"
    if not 1 <= verse <= book.verse_count(chapter):
        return f"{book.name} {chapter} has no verse {verse}"

    text = _field(raw, "text")
    if not text:
        return "missing text"

    translation = (_field(raw, "translation") or default_translation).upper()
    return VerseRowDict(
        book=book.id,
        chapter=chapter,
        verse=verse,
        text=text,
        translation=translation,
    )


def _field(raw: Mapping[str, Any], name: str) -> Optional[str]:
    value = raw.get(name)
    if value is None:
        return None
    return str(value).strip()
