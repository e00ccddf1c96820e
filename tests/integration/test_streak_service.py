"""Integration tests for streak_service: persisted weekly streaks."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.db.models import User
from bookclub.errors import UserNotFoundError
from bookclub.gamification.streak_service import get_streak, update_streak

W10 = datetime(2024, 3, 6, 12, 0, tzinfo=timezone.utc)   # 2024-W10
W10_LATER = datetime(2024, 3, 10, 23, 0, tzinfo=timezone.utc)
W11 = datetime(2024, 3, 13, 9, 0, tzinfo=timezone.utc)   # 2024-W11
W13 = datetime(2024, 3, 27, 9, 0, tzinfo=timezone.utc)   # 2024-W13


class TestUpdateStreak:
    """Applying activity to the stored streak."""

    @pytest.mark.asyncio
    async def test_first_activity(self, db_session: AsyncSession, user):
        result = await update_streak(db_session, user.id, W10)
        assert result == {"current_streak": 1, "longest_streak": 1, "is_new_week": True}

    @pytest.mark.asyncio
    async def test_same_week_is_noop(self, db_session: AsyncSession, user):
        await update_streak(db_session, user.id, W10)
        result = await update_streak(db_session, user.id, W10_LATER)
        assert result == {"current_streak": 1, "longest_streak": 1, "is_new_week": False}

    @pytest.mark.asyncio
    async def test_week_sequence_with_gap(self, db_session: AsyncSession, user):
        await update_streak(db_session, user.id, W10)
        second = await update_streak(db_session, user.id, W11)
        assert second["current_streak"] == 2
        assert second["longest_streak"] == 2

        third = await update_streak(db_session, user.id, W13)
        assert third["current_streak"] == 1
        assert third["longest_streak"] == 2

        row = await db_session.execute(
            select(User.current_streak, User.longest_streak, User.last_active_week).where(User.id == user.id)
        )
        assert tuple(row.one()) == (1, 2, "2024-W13")

    @pytest.mark.asyncio
    async def test_across_year_boundary(self, db_session: AsyncSession, user):
        await update_streak(db_session, user.id, datetime(2024, 12, 24, tzinfo=timezone.utc))  # 2024-W52
        result = await update_streak(db_session, user.id, datetime(2024, 12, 31, tzinfo=timezone.utc))  # 2025-W01
        assert result["current_streak"] == 2

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session: AsyncSession):
        with pytest.raises(UserNotFoundError):
            await update_streak(db_session, 123456, W10)


class TestGetStreak:
    """Read-only view."""

    @pytest.mark.asyncio
    async def test_never_active(self, db_session: AsyncSession, user):
        result = await get_streak(db_session, user.id, W10)
        assert result == {
            "current_streak": 0,
            "longest_streak": 0,
            "last_active_week": None,
            "is_active": False,
        }

    @pytest.mark.asyncio
    async def test_active_this_week(self, db_session: AsyncSession, user):
        await update_streak(db_session, user.id, W10)
        assert (await get_streak(db_session, user.id, W10_LATER))["is_active"] is True

    @pytest.mark.asyncio
    async def test_still_extendable_next_week(self, db_session: AsyncSession, user):
        await update_streak(db_session, user.id, W10)
        assert (await get_streak(db_session, user.id, W11))["is_active"] is True

    @pytest.mark.asyncio
    async def test_lapsed(self, db_session: AsyncSession, user):
        await update_streak(db_session, user.id, W10)
        result = await get_streak(db_session, user.id, W13)
        assert result["is_active"] is False
        assert result["current_streak"] == 1
