"""Hooks run after a qualifying member action (comment, reaction, review, progress)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.gamification.badge_service import check_and_award
from bookclub.gamification.streak_service import update_streak


async def record_activity(
    db: AsyncSession,
    redis: object,
    user_id: int,
    *,
    check_badges: bool = True,
    now: datetime | None = None,
) -> dict:
    """Advance the weekly streak, then evaluate badges against the new streak.

    The triggering action is committed before this runs, so a failure here
    never undoes it.
    """
    streak = await update_streak(db, user_id, now)
    new_badges: list[str] = []
    if check_badges:
        new_badges = (await check_and_award(db, redis, user_id))["new_badges"]
    return {"streak": streak, "new_badges": new_badges}
