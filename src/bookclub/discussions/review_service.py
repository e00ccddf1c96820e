"""Book reviews. Only members who finished a book may review it."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.clock import utcnow
from bookclub.db.models import ReadingProgress, Review
from bookclub.db.upsert import upsert_insert
from bookclub.errors import BookNotFinishedError, ReviewNotFoundError, ValidationFailed
from bookclub.reading.progress_service import get_book

logger = logging.getLogger(__name__)


async def list_reviews(db: AsyncSession, book_id: int) -> dict:
    """Reviews newest first, with the average rating (0 when there are none)."""
    await get_book(db, book_id)
    result = await db.execute(
        select(Review)
        .where(Review.book_id == book_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .execution_options(populate_existing=True)
    )
    reviews = list(result.scalars().all())
    average = sum(r.rating for r in reviews) / len(reviews) if reviews else 0.0
    return {"reviews": reviews, "average_rating": average, "total_reviews": len(reviews)}


async def upsert_review(
    db: AsyncSession,
    user_id: int,
    book_id: int,
    rating: int,
    review: str | None = None,
) -> Review:
    """Create or replace the caller's review of a finished book. Commits."""
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationFailed("Rating must be an integer between 1 and 5")
    await get_book(db, book_id)

    finished = await db.execute(
        select(ReadingProgress.is_finished).where(
            ReadingProgress.user_id == user_id,
            ReadingProgress.book_id == book_id,
        )
    )
    if not finished.scalar_one_or_none():
        raise BookNotFinishedError

    stmt = upsert_insert(db, Review).values(
        user_id=user_id, book_id=book_id, rating=rating, review=review, created_at=utcnow()
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "book_id"],
        set_={"rating": stmt.excluded.rating, "review": stmt.excluded.review},
    ).returning(Review.id)
    review_id = (await db.execute(stmt)).scalar_one()
    await db.commit()
    logger.info("Review %d saved for book %d by user %d", review_id, book_id, user_id)

    result = await db.execute(
        select(Review).where(Review.id == review_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def delete_review(db: AsyncSession, user_id: int, book_id: int) -> None:
    """Remove the caller's review of the book. Commits."""
    result = await db.execute(select(Review).where(Review.user_id == user_id, Review.book_id == book_id))
    review = result.scalar_one_or_none()
    if review is None:
        raise ReviewNotFoundError
    await db.delete(review)
    await db.commit()
