"""Reaction toggling on comments and reviews."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.db.models import REACTION_TYPES, Comment, Reaction, Review
from bookclub.errors import CommentNotFoundError, ConflictError, ReviewNotFoundError, ValidationFailed


def validate_target(comment_id: int | None, review_id: int | None) -> None:
    """Exactly one of comment or review must be targeted."""
    if comment_id is None and review_id is None:
        raise ValidationFailed("Either comment_id or review_id is required")
    if comment_id is not None and review_id is not None:
        raise ValidationFailed("Cannot react to both a comment and a review")


def _target_filter(comment_id: int | None, review_id: int | None) -> list:
    if comment_id is not None:
        return [Reaction.comment_id == comment_id, Reaction.review_id.is_(None)]
    return [Reaction.review_id == review_id, Reaction.comment_id.is_(None)]


async def _ensure_target_exists(db: AsyncSession, comment_id: int | None, review_id: int | None) -> None:
    if comment_id is not None:
        found = await db.execute(select(Comment.id).where(Comment.id == comment_id))
        if found.scalar_one_or_none() is None:
            raise CommentNotFoundError
    else:
        found = await db.execute(select(Review.id).where(Review.id == review_id))
        if found.scalar_one_or_none() is None:
            raise ReviewNotFoundError


async def toggle_reaction(
    db: AsyncSession,
    user_id: int,
    reaction_type: str,
    *,
    comment_id: int | None = None,
    review_id: int | None = None,
) -> dict:
    """Add the reaction, or remove it if the caller already left the same one. Commits.

    Returns ``{"added": bool, "reaction_id": int | None}``.
    """
    if reaction_type not in REACTION_TYPES:
        raise ValidationFailed("Invalid reaction type")
    validate_target(comment_id, review_id)
    await _ensure_target_exists(db, comment_id, review_id)

    result = await db.execute(
        select(Reaction).where(
            Reaction.user_id == user_id,
            Reaction.type == reaction_type,
            *_target_filter(comment_id, review_id),
        )
    )
    existing = result.scalars().first()
    if existing is not None:
        await db.delete(existing)
        await db.commit()
        return {"added": False, "reaction_id": None}

    reaction = Reaction(user_id=user_id, comment_id=comment_id, review_id=review_id, type=reaction_type)
    db.add(reaction)
    try:
        await db.commit()
    except IntegrityError as e:
        # The same reaction from a concurrent request committed first
        await db.rollback()
        raise ConflictError from e
    return {"added": True, "reaction_id": reaction.id}


async def count_reactions(
    db: AsyncSession,
    *,
    comment_id: int | None = None,
    review_id: int | None = None,
) -> dict[str, int]:
    """Reaction counts per type for one target; every type is present."""
    validate_target(comment_id, review_id)
    result = await db.execute(
        select(Reaction.type, func.count())
        .where(*_target_filter(comment_id, review_id))
        .group_by(Reaction.type)
    )
    counts = dict.fromkeys(REACTION_TYPES, 0)
    for reaction_type, count in result.all():
        counts[reaction_type] = count
    return counts
