"""Discussion questions and threaded comments, gated by reading progress."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.db.models import Comment, DiscussionQuestion
from bookclub.errors import (
    CommentNotFoundError,
    DiscussionLockedError,
    DiscussionNotFoundError,
    ValidationFailed,
)
from bookclub.reading.progress_service import get_book, get_stored_progress

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 5000


async def list_questions(db: AsyncSession, user_id: int, book_id: int) -> list[dict]:
    """Every question of the book, flagged with whether the caller has unlocked it."""
    await get_book(db, book_id)
    progress = await get_stored_progress(db, user_id, book_id)

    comment_counts = (
        select(Comment.question_id, func.count().label("comment_count"))
        .group_by(Comment.question_id)
        .subquery()
    )
    result = await db.execute(
        select(DiscussionQuestion, func.coalesce(comment_counts.c.comment_count, 0))
        .outerjoin(comment_counts, comment_counts.c.question_id == DiscussionQuestion.id)
        .where(DiscussionQuestion.book_id == book_id)
        .order_by(DiscussionQuestion.breakpoint, DiscussionQuestion.id)
    )
    return [
        {
            "id": question.id,
            "book_id": question.book_id,
            "question": question.question,
            "breakpoint": question.breakpoint,
            "is_unlocked": question.breakpoint <= progress,
            "comment_count": count,
        }
        for question, count in result.all()
    ]


async def get_question(db: AsyncSession, question_id: int) -> DiscussionQuestion:
    result = await db.execute(select(DiscussionQuestion).where(DiscussionQuestion.id == question_id))
    question = result.scalar_one_or_none()
    if question is None:
        raise DiscussionNotFoundError
    return question


async def get_unlocked_question(db: AsyncSession, user_id: int, question_id: int) -> DiscussionQuestion:
    """Load the question, refusing it while the caller's progress is short of its breakpoint."""
    question = await get_question(db, question_id)
    progress = await get_stored_progress(db, user_id, question.book_id)
    if progress < question.breakpoint:
        raise DiscussionLockedError
    return question


def build_thread(comments: list[Comment]) -> list[dict]:
    """Nest replies under their parents. ``comments`` must be oldest first."""
    nodes: dict[int, dict] = {}
    roots: list[dict] = []
    for comment in comments:
        nodes[comment.id] = {
            "id": comment.id,
            "content": comment.content,
            "parent_id": comment.parent_id,
            "created_at": comment.created_at,
            "user": {
                "id": comment.user.id,
                "name": comment.user.name,
                "username": comment.user.username,
                "image": comment.user.image,
            },
            "replies": [],
        }
    for comment in comments:
        node = nodes[comment.id]
        parent = nodes.get(comment.parent_id) if comment.parent_id is not None else None
        if parent is None:
            roots.append(node)
        else:
            parent["replies"].append(node)
    return roots


async def list_comments(db: AsyncSession, user_id: int, question_id: int) -> list[dict]:
    """Threaded comments of an unlocked question, oldest first at every level."""
    question = await get_unlocked_question(db, user_id, question_id)
    result = await db.execute(
        select(Comment)
        .where(Comment.question_id == question.id)
        .order_by(Comment.created_at, Comment.id)
    )
    return build_thread(list(result.scalars().all()))


async def get_comment(db: AsyncSession, comment_id: int) -> Comment:
    result = await db.execute(select(Comment).where(Comment.id == comment_id))
    comment = result.scalar_one_or_none()
    if comment is None:
        raise CommentNotFoundError
    return comment


async def post_comment(
    db: AsyncSession,
    user_id: int,
    question_id: int,
    content: str,
    parent_id: int | None = None,
) -> Comment:
    """Add a comment (or a reply when ``parent_id`` is set) to an unlocked question. Commits."""
    text = content.strip()
    if not text:
        raise ValidationFailed("Comment cannot be empty")
    if len(text) > MAX_COMMENT_LENGTH:
        raise ValidationFailed(f"Comment cannot exceed {MAX_COMMENT_LENGTH} characters")

    question = await get_unlocked_question(db, user_id, question_id)

    if parent_id is not None:
        parent = await get_comment(db, parent_id)
        if parent.question_id != question.id:
            raise ValidationFailed("Parent comment belongs to a different discussion")

    comment = Comment(
        content=text,
        user_id=user_id,
        book_id=question.book_id,
        question_id=question.id,
        parent_id=parent_id,
    )
    db.add(comment)
    await db.commit()
    logger.info("Comment %d posted on question %d by user %d", comment.id, question.id, user_id)

    # Reload through the joined author relationship
    return await get_comment(db, comment.id)
