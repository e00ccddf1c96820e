"""Badge evaluation, one-time awards, and pinning.

Rules are a static table of (badge type, counter, threshold). Counters are
recomputed from the underlying rows on every evaluation; nothing here trusts
an incremental tally. The UNIQUE(user_id, badge_id) constraint is the
idempotency guard: an award is an ``INSERT ... ON CONFLICT DO NOTHING``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.clock import as_utc, utcnow
from bookclub.config import get_settings
from bookclub.db.models import Badge, Comment, Reaction, ReadingProgress, Review, User, UserBadge
from bookclub.db.upsert import upsert_insert
from bookclub.errors import BadgeNotFoundError, ConflictError, UserNotFoundError

logger = logging.getLogger(__name__)

# (badge type, counter name, threshold)
BADGE_RULES: list[tuple[str, str, int]] = [
    ("FIRST_BOOK", "books_started", 1),
    ("FIVE_BOOKS", "books_started", 5),
    ("TEN_BOOKS", "books_started", 10),
    ("BOOKWORM", "books_started", 25),
    ("AVID_READER", "books_started", 50),
    ("FIRST_REVIEW", "reviews", 1),
    ("TOP_REVIEWER", "reviews", 10),
    ("DISCUSSION_STARTER", "comments", 1),
    ("ACTIVE_PARTICIPANT", "comments", 25),
    ("COMMUNITY_LEADER", "comments", 100),
    ("HELPFUL_MEMBER", "helpful_received", 10),
    ("INSIGHTFUL_CONTRIBUTOR", "insightful_received", 10),
    ("EARLY_ADOPTER", "early_adopter", 1),
    ("STREAK_STARTER", "current_streak", 4),
    ("DEDICATED_READER", "current_streak", 12),
    ("READING_CHAMPION", "current_streak", 52),
]


def evaluate_rules(counters: dict[str, int], already_awarded: set[str]) -> list[str]:
    """Badge types whose threshold is met and that the user does not hold yet, in rule order."""
    return [
        badge_type
        for badge_type, counter, threshold in BADGE_RULES
        if badge_type not in already_awarded and counters.get(counter, 0) >= threshold
    ]


def joined_before(created_at: datetime | None, cutoff: datetime | None) -> bool:
    """EARLY_ADOPTER predicate. False when no cutoff is configured."""
    if cutoff is None or created_at is None:
        return False
    return as_utc(created_at) < as_utc(cutoff)


async def _count(db: AsyncSession, stmt) -> int:  # noqa: ANN001
    result = await db.execute(stmt)
    return int(result.scalar_one())


async def _reactions_received(db: AsyncSession, user_id: int, reaction_type: str) -> int:
    """Reactions of ``reaction_type`` on any comment or review written by ``user_id``."""
    own_comments = select(Comment.id).where(Comment.user_id == user_id)
    own_reviews = select(Review.id).where(Review.user_id == user_id)
    return await _count(
        db,
        select(func.count())
        .select_from(Reaction)
        .where(
            Reaction.type == reaction_type,
            or_(Reaction.comment_id.in_(own_comments), Reaction.review_id.in_(own_reviews)),
        ),
    )


async def collect_counters(db: AsyncSession, user: User) -> dict[str, int]:
    """Fresh aggregate counts for every rule counter."""
    settings = get_settings()
    return {
        "books_started": await _count(
            db, select(func.count()).select_from(ReadingProgress).where(ReadingProgress.user_id == user.id)
        ),
        "books_finished": await _count(
            db,
            select(func.count())
            .select_from(ReadingProgress)
            .where(ReadingProgress.user_id == user.id, ReadingProgress.is_finished.is_(True)),
        ),
        "reviews": await _count(db, select(func.count()).select_from(Review).where(Review.user_id == user.id)),
        "comments": await _count(db, select(func.count()).select_from(Comment).where(Comment.user_id == user.id)),
        "helpful_received": await _reactions_received(db, user.id, "HELPFUL"),
        "insightful_received": await _reactions_received(db, user.id, "INSIGHTFUL"),
        # Persisted value from the streak tracker, not recomputed here
        "current_streak": user.current_streak,
        "early_adopter": int(joined_before(user.created_at, settings.early_adopter_cutoff)),
    }


async def get_awarded_types(db: AsyncSession, user_id: int) -> set[str]:
    """Badge types the user already holds."""
    result = await db.execute(
        select(Badge.type).join(UserBadge, UserBadge.badge_id == Badge.id).where(UserBadge.user_id == user_id)
    )
    return set(result.scalars())


async def get_badge_by_type(db: AsyncSession, badge_type: str) -> Badge | None:
    """Fetch a catalog entry by type."""
    result = await db.execute(select(Badge).where(Badge.type == badge_type))
    return result.scalar_one_or_none()


async def award_badge(db: AsyncSession, user_id: int, badge_type: str) -> bool:
    """Insert the award row. Returns True only if this call created it. Does not commit."""
    badge = await get_badge_by_type(db, badge_type)
    if badge is None:
        logger.warning("Badge not in catalog: %s", badge_type)
        return False

    stmt = (
        upsert_insert(db, UserBadge)
        .values(user_id=user_id, badge_id=badge.id, awarded_at=utcnow(), is_pinned=False)
        .on_conflict_do_nothing(index_elements=["user_id", "badge_id"])
        .returning(UserBadge.id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none() is not None


async def check_and_award(db: AsyncSession, redis: object, user_id: int) -> dict:
    """Evaluate every rule for ``user_id`` and award what is newly earned. Commits.

    Returns ``{"new_badges": [badge types awarded by this call]}``.
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError

    already_awarded = await get_awarded_types(db, user_id)
    counters = await collect_counters(db, user)

    new_badges: list[str] = []
    for badge_type in evaluate_rules(counters, already_awarded):
        if await award_badge(db, user_id, badge_type):
            new_badges.append(badge_type)

    await db.commit()

    for badge_type in new_badges:
        logger.info("Badge awarded: %s to user %d", badge_type, user_id)
        await _emit_badge_earned(redis, user_id, badge_type)

    return {"new_badges": new_badges}


async def list_user_badges(db: AsyncSession, user_id: int) -> list[UserBadge]:
    """Awarded badges, newest first."""
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.user_id == user_id)
        .order_by(UserBadge.awarded_at.desc(), UserBadge.id.desc())
    )
    return list(result.scalars().all())


async def _get_owned_badge(db: AsyncSession, user_id: int, user_badge_id: int) -> UserBadge:
    result = await db.execute(select(UserBadge).where(UserBadge.id == user_badge_id))
    user_badge = result.scalar_one_or_none()
    if user_badge is None or user_badge.user_id != user_id:
        raise BadgeNotFoundError
    return user_badge


async def pin_badge(db: AsyncSession, user_id: int, user_badge_id: int) -> UserBadge:
    """Pin one awarded badge and unpin every other badge of the user, in one transaction."""
    user_badge = await _get_owned_badge(db, user_id, user_badge_id)

    try:
        await db.execute(
            update(UserBadge)
            .where(
                UserBadge.user_id == user_id,
                UserBadge.is_pinned.is_(True),
                UserBadge.id != user_badge_id,
            )
            .values(is_pinned=False)
        )
        await db.execute(update(UserBadge).where(UserBadge.id == user_badge_id).values(is_pinned=True))
        await db.commit()
    except IntegrityError as e:
        # Another pin for the same user committed first
        await db.rollback()
        raise ConflictError from e

    await db.refresh(user_badge)
    return user_badge


async def unpin_badge(db: AsyncSession, user_id: int, user_badge_id: int) -> UserBadge:
    """Unpin an awarded badge (no-op if it was not pinned)."""
    user_badge = await _get_owned_badge(db, user_id, user_badge_id)
    user_badge.is_pinned = False
    await db.commit()
    return user_badge


async def _emit_badge_earned(redis: object, user_id: int, badge_type: str) -> None:
    """Best-effort push to the realtime channel; awards are already committed."""
    if redis is None:
        return
    try:
        await redis.publish(  # type: ignore[attr-defined]
            "pubsub:badge_earned",
            json.dumps({"user_id": user_id, "badge_type": badge_type}),
        )
    except Exception:  # noqa: BLE001
        logger.warning("Failed to publish badge_earned notification", exc_info=True)
