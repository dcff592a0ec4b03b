"""
Scriptura - Test Configuration

Pytest fixtures and configuration for all tests.
"""
import json
from pathlib import Path
from typing import Dict, List

import pytest
import pytest_asyncio

from canon import Canon, load_canon
from config import LinkedDataConfig, SearchConfig
from db.sql import SqlVerseStore
from db.store import InMemoryVerseStore
from engine.assembler import Assembler
from engine.search import SearchEngine

BASE_URI = "https://scriptura.test/bible"

JOHN_3 = {
    16: "For God so loved the world, that he gave his only begotten Son, that whosoever "
        "believeth in him should not perish, but have everlasting life.",
    17: "For God sent not his Son into the world to condemn the world; but that the world "
        "through him might be saved.",
    18: "He that believeth on him is not condemned: but he that believeth not is condemned "
        "already, because he hath not believed in the name of the only begotten Son of God.",
}

GENESIS_1 = {
    1: "In the beginning God created the heaven and the earth.",
    2: "And the earth was without form, and void; and darkness was upon the face of the deep. "
       "And the Spirit of God moved upon the face of the waters.",
    3: "And God said, Let there be light: and there was light.",
}

PSALM_23 = {
    1: "The LORD is my shepherd; I shall not want.",
    2: "He maketh me to lie down in green pastures: he leadeth me beside the still waters.",
    3: "He restoreth my soul: he leadeth me in the paths of righteousness for his name's sake.",
    4: "Yea, though I walk through the valley of the shadow of death, I will fear no evil: "
       "for thou art with me; thy rod and thy staff they comfort me.",
    5: "Thou preparest a table before me in the presence of mine enemies: thou anointest my "
       "head with oil; my cup runneth over.",
    6: "Surely goodness and mercy shall follow me all the days of my life: and I will dwell "
       "in the house of the LORD for ever.",
}

# Jude is only partly stored, so whole-chapter lookups come up short
JUDE_1 = {
    1: "Jude, the servant of Jesus Christ, and brother of James, to them that are sanctified "
       "by God the Father, and preserved in Jesus Christ, and called:",
    2: "Mercy unto you, and peace, and love, be multiplied.",
    3: "Beloved, when I gave all diligence to write unto you of the common salvation, it was "
       "needful for me to write unto you, and exhort you that ye should earnestly contend for "
       "the faith which was once delivered unto the saints.",
}


def _rows(book: str, chapter: int, verses: Dict[int, str], translation: str = "KJV") -> List[dict]:
    return [
        {"book": book, "chapter": chapter, "verse": number, "text": text, "translation": translation}
        for number, text in verses.items()
    ]


SAMPLE_ROWS = (
    _rows("GEN", 1, GENESIS_1)
    + _rows("PSA", 23, PSALM_23)
    + _rows("JHN", 3, JOHN_3)
    + _rows("JUD", 1, JUDE_1)
)


@pytest.fixture(scope="session")
def canon() -> Canon:
    """The bundled canon."""
    return load_canon()


@pytest.fixture
def sample_rows() -> List[dict]:
    """Verse rows for Genesis 1:1-3, Psalm 23, John 3:16-18 and Jude 1:1-3."""
    return [dict(row) for row in SAMPLE_ROWS]


@pytest.fixture
def memory_store(canon, sample_rows) -> InMemoryVerseStore:
    """In-memory store holding the sample rows."""
    store = InMemoryVerseStore(canon)
    store.add_verses(sample_rows)
    return store


@pytest.fixture
def search_config() -> SearchConfig:
    return SearchConfig(result_limit=50, max_result_limit=500, drop_stop_words=True, snippet_length=160)


@pytest.fixture
def linked_data_config() -> LinkedDataConfig:
    return LinkedDataConfig(base_uri=BASE_URI, default_translation="KJV")


@pytest.fixture
def search_engine(canon, memory_store, search_config) -> SearchEngine:
    return SearchEngine(canon, memory_store, search_config)


@pytest.fixture
def assembler(canon, memory_store, linked_data_config) -> Assembler:
    return Assembler(canon, memory_store, linked_data_config)


@pytest.fixture
def database_url(tmp_path) -> str:
    """SQLite URL in a per-test temporary directory."""
    return f"sqlite+aiosqlite:///{tmp_path / 'db' / 'scriptura.db'}"


@pytest_asyncio.fixture
async def sql_store(canon, database_url, sample_rows):
    """SQL store with tables created and the sample rows imported."""
    store = SqlVerseStore(database_url, canon=canon)
    await store.create_tables()
    await store.batch_upsert_verses(sample_rows)
    yield store
    await store.close()


@pytest.fixture
def verse_file(tmp_path) -> Path:
    """JSON-lines verse file with one good row per book name style and some bad rows."""
    path = tmp_path / "verses.jsonl"
    lines = [
        {"book": "John", "chapter": 3, "verse": 16, "text": JOHN_3[16], "translation": "kjv"},
        {"book": "JHN", "chapter": 3, "verse": 17, "text": JOHN_3[17]},
        {"book": "Ps", "chapter": 23, "verse": 1, "text": PSALM_23[1], "translation": "KJV"},
        {"book": "Hezekiah", "chapter": 1, "verse": 1, "text": "Not a book."},
        {"book": "John", "chapter": 22, "verse": 1, "text": "No such chapter."},
    ]
    with open(path, "w", encoding="utf-8") as f:
        for line in lines:
            f.write(json.dumps(line) + "\n")
        f.write("{not json\n")
    return path


# Markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "db: marks database tests")
    config.addinivalue_line("markers", "property: marks property-based tests using Hypothesis")
