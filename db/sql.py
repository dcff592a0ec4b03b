"""
Scriptura - SQL verse store with async support

Provides async verse storage using SQLAlchemy 2.0. SQLite through
aiosqlite is the default; any async SQLAlchemy URL works.
"""
from typing import AsyncGenerator, Optional, List, Dict, Any, Iterable, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker
)
from sqlalchemy import select, func, or_, text

from canon.model import Canon, load_canon
from canon.reference import Reference, VerseRange
from core.errors import StorageError
from core.types import VerseRowDict
from db.models import Base, Book, Translation, Verse
from db.store import IndexHit, rank_hits
from engine.scoring import score_text
from observability.tracing import span_decorator


logger = logging.getLogger("scriptura.db.sql")


class SqlVerseStore:
    """
    Async SQL verse store.

    Features:
    - Automatic session management with rollback on failure
    - Batch upserts for imports
    - Text search prefiltered in SQL, scored in Python
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        canon: Optional[Canon] = None,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        echo: bool = False
    ):
        if database_url is None:
            from config import get_config
            database_url = get_config().database.url
        self.database_url = database_url
        self.canon = canon or load_canon()
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.echo = echo

        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None
        self._book_ids: Dict[str, int] = {}

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    async def initialize(self) -> None:
        """
        Initialize database engine and session factory.

        SQLite gets its parent directory created and no pool settings;
        server databases get a pre-pinged, recycled pool.
        """
        engine_kwargs: Dict[str, Any] = {"echo": self.echo}
        if self.is_sqlite:
            self._ensure_sqlite_directory()
        else:
            engine_kwargs.update(
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_pre_ping=True,
                pool_recycle=1800,  # Recycle connections every 30 minutes
                pool_timeout=self.pool_timeout,
            )

        self._engine = create_async_engine(self.database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        logger.info(f"Verse store initialized ({self.database_url.split('@')[-1]})")

    def _ensure_sqlite_directory(self) -> None:
        _, _, location = self.database_url.partition(":///")
        if location and location != ":memory:":
            Path(location).parent.mkdir(parents=True, exist_ok=True)

    async def close(self) -> None:
        """Close database connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Verse store connections closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session; SQL failures surface as StorageError."""
        if not self._session_factory:
            await self.initialize()

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(
                    f"Database operation failed: {e}",
                    database=self.database_url.split("@")[-1],
                    cause=e,
                ) from e
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create all database tables and mirror the canon into ``books``."""
        if not self._engine:
            await self.initialize()
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot create tables: {e}", operation="create_tables", cause=e) from e
        logger.info("Database tables created")
        await self.sync_books()

    # Book operations
    async def sync_books(self) -> int:
        """Insert or update one ``books`` row per canon book."""
        async with self.session() as session:
            existing = await session.execute(select(Book))
            rows = {book.code: book for book in existing.scalars().all()}

            for book in self.canon.books:
                values = {
                    "code": book.id,
                    "name": book.name,
                    "slug": book.slug,
                    "testament": book.testament,
                    "order_num": book.order,
                    "chapter_count": book.chapter_count,
                    "verse_count": book.total_verses,
                }
                row = rows.get(book.id)
                if row:
                    for key, value in values.items():
                        setattr(row, key, value)
                else:
                    session.add(Book(**values))
            await session.flush()

        self._book_ids = {}
        return len(self.canon)

    async def _book_id_map(self, session: AsyncSession) -> Dict[str, int]:
        if not self._book_ids:
            result = await session.execute(select(Book.code, Book.id))
            self._book_ids = {code: book_id for code, book_id in result.all()}
        return self._book_ids

    # Translation operations
    async def upsert_translation(self, code: str, name: Optional[str] = None) -> None:
        async with self.session() as session:
            translation = await session.get(Translation, code.upper())
            if translation is None:
                session.add(Translation(code=code.upper(), name=name))
            elif name:
                translation.name = name

    async def translations(self) -> List[str]:
        async with self.session() as session:
            result = await session.execute(
                select(Verse.translation).distinct().order_by(Verse.translation)
            )
            return list(result.scalars().all())

    # Verse operations
    async def batch_upsert_verses(self, rows: Iterable[VerseRowDict]) -> int:
        """
        Batch upsert verses for efficiency.

        Rows name books by canon id. Processed in batches of 500 with one
        bulk SELECT per batch.
        """
        rows = list(rows)
        if not rows:
            return 0

        for code in sorted({row["translation"].upper() for row in rows}):
            await self.upsert_translation(code)

        count = 0
        batch_size = 500

        async with self.session() as session:
            book_ids = await self._book_id_map(session)

            for batch_start in range(0, len(rows), batch_size):
                batch = rows[batch_start:batch_start + batch_size]
                keyed = {
                    (row["translation"].upper(), f"{row['book']}.{row['chapter']}.{row['verse']}"): row
                    for row in batch
                }

                existing_result = await session.execute(
                    select(Verse).where(Verse.reference.in_(sorted({ref for _, ref in keyed})))
                )
                existing = {
                    (v.translation, v.reference): v for v in existing_result.scalars().all()
                }

                for key, row in keyed.items():
                    book_id = book_ids.get(row["book"])
                    if book_id is None:
                        raise StorageError(
                            f"Book {row['book']!r} is not in the books table; run create_tables first",
                            operation="batch_upsert_verses",
                        )
                    verse = existing.get(key)
                    if verse:
                        verse.text = row["text"]
                    else:
                        session.add(Verse(
                            reference=key[1],
                            translation=key[0],
                            book_id=book_id,
                            chapter=int(row["chapter"]),
                            verse_num=int(row["verse"]),
                            text=row["text"],
                        ))
                    count += 1

                # Flush after each batch to manage memory
                await session.flush()
                logger.info(f"Processed {count} verses")

        return count

    async def fetch_verse(
        self, book: str, chapter: int, verse: int, translation: str
    ) -> Optional[str]:
        verses = await self.fetch_verses(book, chapter, verse, verse, translation)
        return verses.get(verse)

    @span_decorator("db.fetch_verses", record_args=True)
    async def fetch_verses(
        self,
        book: str,
        chapter: int,
        start: int = 1,
        end: Optional[int] = None,
        translation: str = "KJV",
    ) -> Dict[int, str]:
        query = (
            select(Verse.verse_num, Verse.text)
            .join(Book, Verse.book_id == Book.id)
            .where(
                Book.code == book,
                Verse.chapter == chapter,
                Verse.translation == translation.upper(),
                Verse.verse_num >= start,
            )
            .order_by(Verse.verse_num)
        )
        if end is not None:
            query = query.where(Verse.verse_num <= end)

        async with self.session() as session:
            result = await session.execute(query)
            return {number: body for number, body in result.all()}

    @span_decorator("db.search_index")
    async def search_index(
        self,
        terms: Sequence[str],
        phrase: str,
        translation: Optional[str] = None,
        limit: int = 50,
    ) -> List[IndexHit]:
        if not terms:
            return []

        lowered = func.lower(Verse.text)
        query = (
            select(Book.code, Verse.chapter, Verse.verse_num, Verse.translation, Verse.text)
            .join(Book, Verse.book_id == Book.id)
            .where(or_(*(lowered.contains(term, autoescape=True) for term in terms)))
        )
        if translation:
            query = query.where(Verse.translation == translation.upper())

        async with self.session() as session:
            result = await session.execute(query)
            rows = result.all()

        hits: List[IndexHit] = []
        for code, chapter, number, tag, body in rows:
            score = score_text(body, terms, phrase)
            if score > 0:
                hits.append((Reference(code, chapter, VerseRange.single(number), tag), body, score))
        return rank_hits(hits, self.canon, limit)

    # Statistics
    async def get_statistics(self) -> Dict[str, int]:
        """Row counts per table in one UNION ALL query."""
        async with self.session() as session:
            query = text("""
                SELECT 'books' as table_name, COUNT(*) as cnt FROM books
                UNION ALL
                SELECT 'translations', COUNT(*) FROM translations
                UNION ALL
                SELECT 'verses', COUNT(*) FROM verses
            """)

            result = await session.execute(query)
            return {row[0]: row[1] for row in result.fetchall()}
