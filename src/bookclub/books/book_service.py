"""Book catalog and discussion question administration."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.db.models import BOOK_STATUSES, Book, DiscussionQuestion
from bookclub.errors import ValidationFailed
from bookclub.reading.progress_service import get_book

logger = logging.getLogger(__name__)


async def list_books(db: AsyncSession, status: str | None = None) -> list[Book]:
    """Books ordered by reading month (newest first, unscheduled last), then title."""
    stmt = select(Book).execution_options(populate_existing=True)
    if status is not None:
        if status not in BOOK_STATUSES:
            raise ValidationFailed(f"Unknown book status: {status}")
        stmt = stmt.where(Book.status == status)
    stmt = stmt.order_by(Book.read_month.desc().nulls_last(), Book.title, Book.id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_book(
    db: AsyncSession,
    *,
    title: str,
    author: str,
    description: str | None = None,
    cover_image: str | None = None,
    page_count: int | None = None,
    status: str = "DRAFT",
    read_month: datetime | None = None,
) -> Book:
    """Add a book to the catalog. Commits."""
    if status not in BOOK_STATUSES:
        raise ValidationFailed(f"Unknown book status: {status}")
    book = Book(
        title=title.strip(),
        author=author.strip(),
        description=description,
        cover_image=cover_image,
        page_count=page_count,
        status=status,
        read_month=read_month,
    )
    db.add(book)
    await db.commit()
    logger.info("Book %d created: %s", book.id, book.title)
    return book


async def add_question(db: AsyncSession, book_id: int, question: str, breakpoint: int) -> DiscussionQuestion:
    """Attach a discussion question unlocked at ``breakpoint`` percent. Commits."""
    if isinstance(breakpoint, bool) or not isinstance(breakpoint, int) or not 1 <= breakpoint <= 100:
        raise ValidationFailed("Breakpoint must be an integer between 1 and 100")
    text = question.strip()
    if not text:
        raise ValidationFailed("Question cannot be empty")
    await get_book(db, book_id)

    entry = DiscussionQuestion(book_id=book_id, question=text, breakpoint=breakpoint)
    db.add(entry)
    await db.commit()
    return entry
