"""
Scriptura - Database Layer

Verse storage behind the ``VerseStore`` protocol the engine reads from.

- models: SQLAlchemy ORM tables (books, translations, verses)
- store: the protocol, ranking helper and an in-memory implementation
- sql: async SQLAlchemy implementation (SQLite via aiosqlite by default)
- loader: JSON-lines / JSON / CSV verse file reader for imports

Usage:
    from db import SqlVerseStore, load_verse_file

    store = SqlVerseStore("sqlite+aiosqlite:///./data/scriptura.db")
    await store.create_tables()
    report = load_verse_file("kjv.jsonl", canon)
    await store.batch_upsert_verses(report.rows)
"""

from db.models import Base, Book, Translation, Verse
from db.store import IndexHit, InMemoryVerseStore, VerseStore, rank_hits
from db.sql import SqlVerseStore
from db.loader import LoadReport, load_verse_file, normalize_row

__all__ = [
    # Models
    "Base",
    "Book",
    "Translation",
    "Verse",
    # Stores
    "IndexHit",
    "VerseStore",
    "InMemoryVerseStore",
    "SqlVerseStore",
    "rank_hits",
    # Import
    "LoadReport",
    "load_verse_file",
    "normalize_row",
]
