"""Weekly activity streaks.

A member is "active" in an ISO week when they comment, react, review or
update reading progress. Consecutive active weeks grow ``current_streak``;
any gap resets it to 1. ``longest_streak`` never decreases.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.db.models import User
from bookclub.errors import UserNotFoundError

logger = logging.getLogger(__name__)


def get_week_iso(dt: datetime) -> str:
    """Get ISO week string e.g. '2024-W42'. Uses %G-W%V (ISO year + ISO week)."""
    return dt.strftime("%G-W%V")


def get_current_week_iso(now: datetime | None = None) -> str:
    """Get the ISO week string for the current week."""
    if now is None:
        now = datetime.now(timezone.utc)
    return get_week_iso(now)


def parse_week_iso(week_iso: str) -> tuple[int, int]:
    """Split '2024-W42' into (2024, 42)."""
    year, _, week = week_iso.partition("-W")
    if not week:
        msg = f"Not an ISO week identifier: {week_iso!r}"
        raise ValueError(msg)
    return int(year), int(week)


def are_consecutive_weeks(earlier: str, later: str) -> bool:
    """True if ``later`` is the ISO week right after ``earlier``.

    Across a year boundary, any week >= 52 followed by week 1 of the next
    year counts as consecutive; the year's real week count is not checked.
    """
    year1, week1 = parse_week_iso(earlier)
    year2, week2 = parse_week_iso(later)

    if year1 == year2:
        return week2 == week1 + 1

    if year2 == year1 + 1 and week2 == 1:
        return week1 >= 52

    return False


def next_streak(
    current_streak: int,
    longest_streak: int,
    last_active_week: str | None,
    current_week: str,
) -> dict | None:
    """Apply one activity in ``current_week`` to a streak.

    Returns None when the member was already active this week (no change),
    otherwise the new ``current_streak``, ``longest_streak`` and
    ``last_active_week``.
    """
    if last_active_week == current_week:
        return None

    if last_active_week is not None and are_consecutive_weeks(last_active_week, current_week):
        new_current = current_streak + 1
    else:
        # First activity ever, a gap, or a week earlier than the stored one
        new_current = 1

    return {
        "current_streak": new_current,
        "longest_streak": max(longest_streak, new_current),
        "last_active_week": current_week,
    }


async def update_streak(db: AsyncSession, user_id: int, now: datetime | None = None) -> dict:
    """Record one qualifying activity for ``user_id``.

    The user row is locked for the read-modify-write, and the three streak
    fields are written together. Commits.

    Returns ``{current_streak, longest_streak, is_new_week}``.
    """
    result = await db.execute(
        select(User).where(User.id == user_id).with_for_update().execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError

    current_week = get_current_week_iso(now)
    update = next_streak(user.current_streak, user.longest_streak, user.last_active_week, current_week)
    if update is None:
        await db.commit()  # release the row lock
        return {
            "current_streak": user.current_streak,
            "longest_streak": user.longest_streak,
            "is_new_week": False,
        }

    if update["current_streak"] == 1 and user.current_streak > 1:
        logger.info("Streak reset for user %d after %d weeks", user_id, user.current_streak)

    user.current_streak = update["current_streak"]
    user.longest_streak = update["longest_streak"]
    user.last_active_week = update["last_active_week"]
    await db.commit()

    return {
        "current_streak": user.current_streak,
        "longest_streak": user.longest_streak,
        "is_new_week": True,
    }


async def get_streak(db: AsyncSession, user_id: int, now: datetime | None = None) -> dict:
    """Read-only streak view. ``is_active`` means the streak can still grow this week."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError

    current_week = get_current_week_iso(now)
    is_active = False
    if user.last_active_week:
        is_active = user.last_active_week == current_week or are_consecutive_weeks(
            user.last_active_week, current_week
        )

    return {
        "current_streak": user.current_streak,
        "longest_streak": user.longest_streak,
        "last_active_week": user.last_active_week,
        "is_active": is_active,
    }
