"""Reading progress and progress-gated discussion unlocking.

A discussion question is unlocked for a reader once their progress on the
book reaches the question's breakpoint. Progress only ever moves forward:
a smaller submitted value leaves the stored value untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.clock import utcnow
from bookclub.db.models import Book, DiscussionQuestion, ReadingProgress
from bookclub.db.upsert import upsert_insert
from bookclub.errors import BookNotFoundError, InvalidProgressError

logger = logging.getLogger(__name__)

FINISHED_AT = 100


def validate_progress(value: object) -> int:
    """Accept only a real integer in [0, 100]."""
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= FINISHED_AT:
        raise InvalidProgressError
    return value


def unlocked_breakpoints(progress: int, breakpoints: Iterable[int]) -> list[int]:
    """Breakpoints reached at ``progress``, in input order."""
    return [b for b in breakpoints if b <= progress]


def newly_unlocked(old_progress: int, new_progress: int, breakpoints: Iterable[int]) -> list[int]:
    """Breakpoints reached at ``new_progress`` but not at ``old_progress``."""
    breakpoints = list(breakpoints)
    before = set(unlocked_breakpoints(old_progress, breakpoints))
    return [b for b in unlocked_breakpoints(new_progress, breakpoints) if b not in before]


def unlocked_question_ids(progress: int, questions: Sequence[tuple[int, int]]) -> list[int]:
    """Ids of ``(id, breakpoint)`` questions reached at ``progress``."""
    return [question_id for question_id, breakpoint in questions if breakpoint <= progress]


def newly_unlocked_ids(old_progress: int, new_progress: int, questions: Sequence[tuple[int, int]]) -> list[int]:
    """Questions unlocked at ``new_progress`` that were still locked at ``old_progress``."""
    before = set(unlocked_question_ids(old_progress, questions))
    return [qid for qid in unlocked_question_ids(new_progress, questions) if qid not in before]


async def get_book(db: AsyncSession, book_id: int) -> Book:
    result = await db.execute(select(Book).where(Book.id == book_id))
    book = result.scalar_one_or_none()
    if book is None:
        raise BookNotFoundError
    return book


async def get_book_questions(db: AsyncSession, book_id: int) -> list[tuple[int, int]]:
    """``(id, breakpoint)`` for every question of the book, ordered by breakpoint."""
    result = await db.execute(
        select(DiscussionQuestion.id, DiscussionQuestion.breakpoint)
        .where(DiscussionQuestion.book_id == book_id)
        .order_by(DiscussionQuestion.breakpoint, DiscussionQuestion.id)
    )
    return [(row.id, row.breakpoint) for row in result]


async def get_stored_progress(db: AsyncSession, user_id: int, book_id: int, *, for_update: bool = False) -> int:
    """Stored progress for the pair, 0 when the member never recorded any."""
    stmt = select(ReadingProgress.progress).where(
        ReadingProgress.user_id == user_id,
        ReadingProgress.book_id == book_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none() or 0


async def update_progress(db: AsyncSession, user_id: int, book_id: int, progress: object) -> dict:
    """Record ``progress`` for the pair, keeping the greater of stored and submitted. Commits.

    The pair's row is created first (progress 0, no-op when it exists) and
    then locked, so the old value read here is the one this update replaces
    even when two first writes race. The stored value only moves through a
    "set to the greater of" UPDATE.
    """
    submitted = validate_progress(progress)
    await get_book(db, book_id)
    now = utcnow()

    await db.execute(
        upsert_insert(db, ReadingProgress)
        .values(user_id=user_id, book_id=book_id, progress=0, is_finished=False, updated_at=now)
        .on_conflict_do_nothing(index_elements=["user_id", "book_id"])
    )
    old_progress = await get_stored_progress(db, user_id, book_id, for_update=True)

    greater = case(
        (ReadingProgress.progress >= submitted, ReadingProgress.progress),
        else_=submitted,
    )
    stmt = (
        update(ReadingProgress)
        .where(ReadingProgress.user_id == user_id, ReadingProgress.book_id == book_id)
        .values(progress=greater, is_finished=greater >= FINISHED_AT, updated_at=now)
        .returning(ReadingProgress.progress, ReadingProgress.is_finished)
        .execution_options(synchronize_session=False)
    )
    row = (await db.execute(stmt)).one()
    await db.commit()

    effective = row.progress
    questions = await get_book_questions(db, book_id)
    fresh = newly_unlocked_ids(old_progress, effective, questions)
    if effective != old_progress:
        logger.info(
            "Progress for user %d on book %d: %d -> %d (%d newly unlocked)",
            user_id, book_id, old_progress, effective, len(fresh),
        )

    return {
        "book_id": book_id,
        "progress": effective,
        "is_finished": bool(row.is_finished),
        "unlocked_discussion_ids": unlocked_question_ids(effective, questions),
        "newly_unlocked_ids": fresh,
    }


async def get_progress(db: AsyncSession, user_id: int, book_id: int) -> dict:
    """Current progress for the pair and the questions it unlocks."""
    await get_book(db, book_id)
    progress = await get_stored_progress(db, user_id, book_id)
    questions = await get_book_questions(db, book_id)
    return {
        "book_id": book_id,
        "progress": progress,
        "is_finished": progress >= FINISHED_AT,
        "unlocked_discussion_ids": unlocked_question_ids(progress, questions),
    }


async def list_user_progress(db: AsyncSession, user_id: int) -> list[dict]:
    """Every book the member has started, most recently updated first."""
    result = await db.execute(
        select(ReadingProgress, Book)
        .join(Book, ReadingProgress.book_id == Book.id)
        .where(ReadingProgress.user_id == user_id)
        .order_by(ReadingProgress.updated_at.desc(), ReadingProgress.id.desc())
        .execution_options(populate_existing=True)
    )
    return [
        {
            "book_id": row.Book.id,
            "title": row.Book.title,
            "author": row.Book.author,
            "progress": row.ReadingProgress.progress,
            "is_finished": row.ReadingProgress.is_finished,
            "updated_at": row.ReadingProgress.updated_at,
        }
        for row in result
    ]
