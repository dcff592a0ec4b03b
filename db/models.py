"""
Scriptura - SQLAlchemy ORM Models

Database models for book metadata and verse text per translation.
"""
from datetime import datetime
from typing import Optional
from sqlalchemy import (
    Integer, String, Text, DateTime,
    ForeignKey, Index, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Book(Base):
    """Book row mirroring the canon, used for ordering and joins."""
    __tablename__ = "books"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(3), unique=True, index=True)  # GEN, EXO, MAT
    name: Mapped[str] = mapped_column(String(50))
    slug: Mapped[str] = mapped_column(String(50), unique=True)
    testament: Mapped[str] = mapped_column(String(3), index=True)  # OT, NT
    order_num: Mapped[int] = mapped_column(Integer, index=True)
    chapter_count: Mapped[int] = mapped_column()
    verse_count: Mapped[int] = mapped_column()

    def __repr__(self) -> str:
        return f"<Book {self.code}: {self.name}>"


class Translation(Base):
    """A translation with stored verse text."""
    __tablename__ = "translations"

    code: Mapped[str] = mapped_column(String(10), primary_key=True)  # KJV
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    def __repr__(self) -> str:
        return f"<Translation {self.code}>"


class Verse(Base):
    """Verse text of one translation."""
    __tablename__ = "verses"

    id: Mapped[int] = mapped_column(primary_key=True)
    reference: Mapped[str] = mapped_column(String(20), index=True)  # GEN.1.1
    translation: Mapped[str] = mapped_column(
        ForeignKey("translations.code", ondelete="CASCADE"), index=True
    )
    book_id: Mapped[int] = mapped_column(ForeignKey("books.id", ondelete="CASCADE"), index=True)
    chapter: Mapped[int] = mapped_column()
    verse_num: Mapped[int] = mapped_column()
    text: Mapped[str] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    book: Mapped["Book"] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("translation", "book_id", "chapter", "verse_num", name="uq_verse_location"),
        Index("ix_verses_chapter_lookup", "translation", "book_id", "chapter"),
    )

    def __repr__(self) -> str:
        return f"<Verse {self.translation} {self.reference}>"
