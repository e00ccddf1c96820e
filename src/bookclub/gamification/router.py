"""Gamification API endpoints: badges, pinning, streak, stats."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.auth.dependencies import get_current_user
from bookclub.database import get_session
from bookclub.db.models import Badge, User, UserBadge
from bookclub.gamification.badge_service import (
    check_and_award,
    collect_counters,
    list_user_badges,
    pin_badge,
    unpin_badge,
)
from bookclub.gamification.schemas import (
    AllBadgesResponse,
    BadgeDefinitionResponse,
    EarnedBadgeResponse,
    StreakResponse,
    UserBadgesResponse,
    UserStatsResponse,
)
from bookclub.gamification.streak_service import get_streak
from bookclub.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


def _earned(user_badge: UserBadge) -> EarnedBadgeResponse:
    badge = user_badge.badge
    return EarnedBadgeResponse(
        id=user_badge.id,
        badge_type=badge.type,
        name=badge.name,
        description=badge.description,
        icon=badge.icon,
        color=badge.color,
        tier=badge.tier,
        awarded_at=user_badge.awarded_at,
        is_pinned=user_badge.is_pinned,
    )


# ── Public endpoints ──


@router.get("/badges", response_model=AllBadgesResponse)
async def list_badges(db: AsyncSession = Depends(get_session)):
    """Badge catalog with how many members earned each."""
    result = await db.execute(select(Badge).order_by(Badge.tier, Badge.id))
    badges = result.scalars().all()

    counts_result = await db.execute(
        select(UserBadge.badge_id, func.count()).group_by(UserBadge.badge_id)
    )
    counts = dict(counts_result.all())

    items = [
        BadgeDefinitionResponse(
            id=b.id,
            badge_type=b.type,
            name=b.name,
            description=b.description,
            icon=b.icon,
            color=b.color,
            tier=b.tier,
            total_earned=counts.get(b.id, 0),
        )
        for b in badges
    ]
    return AllBadgesResponse(badges=items, total_count=len(items))


# ── Authenticated endpoints ──


@router.get("/users/me/badges", response_model=UserBadgesResponse)
async def my_badges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Evaluate badge rules, then return everything the caller holds."""
    awarded = await check_and_award(db, get_optional_redis(), user.id)
    earned = await list_user_badges(db, user.id)
    total_available = (await db.execute(select(func.count()).select_from(Badge))).scalar_one()
    return UserBadgesResponse(
        badges=[_earned(ub) for ub in earned],
        new_badges=awarded["new_badges"],
        total_earned=len(earned),
        total_available=total_available,
    )


@router.post("/users/me/badges/{user_badge_id}/pin", response_model=EarnedBadgeResponse)
async def pin(
    user_badge_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Pin one badge to the profile; any other pinned badge is unpinned."""
    return _earned(await pin_badge(db, user.id, user_badge_id))


@router.delete("/users/me/badges/{user_badge_id}/pin", response_model=EarnedBadgeResponse)
async def unpin(
    user_badge_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return _earned(await unpin_badge(db, user.id, user_badge_id))


@router.get("/users/me/streak", response_model=StreakResponse)
async def my_streak(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return StreakResponse(**await get_streak(db, user.id))


@router.get("/users/me/stats", response_model=UserStatsResponse)
async def my_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Reading and community counters, as used by badge rules."""
    counters = await collect_counters(db, user)
    badges_earned = (
        await db.execute(select(func.count()).select_from(UserBadge).where(UserBadge.user_id == user.id))
    ).scalar_one()
    return UserStatsResponse(
        books_started=counters["books_started"],
        books_finished=counters["books_finished"],
        reviews=counters["reviews"],
        comments=counters["comments"],
        helpful_received=counters["helpful_received"],
        insightful_received=counters["insightful_received"],
        current_streak=user.current_streak,
        longest_streak=user.longest_streak,
        badges_earned=badges_earned,
    )
