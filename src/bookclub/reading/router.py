"""Reading progress endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.auth.dependencies import get_current_user
from bookclub.database import get_session
from bookclub.db.models import User
from bookclub.gamification.activity import record_activity
from bookclub.reading.progress_service import get_progress, list_user_progress, update_progress
from bookclub.reading.schemas import (
    ProgressResponse,
    ProgressUpdateRequest,
    ProgressUpdateResponse,
    UserBookProgress,
    UserProgressResponse,
)
from bookclub.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1", tags=["Reading"])


@router.get("/books/{book_id}/progress", response_model=ProgressResponse)
async def read_progress(
    book_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProgressResponse:
    return ProgressResponse(**await get_progress(db, user.id, book_id))


@router.post("/books/{book_id}/progress", response_model=ProgressUpdateResponse)
async def write_progress(
    book_id: int,
    body: ProgressUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProgressUpdateResponse:
    """Record reading progress. A lower value than the stored one is ignored."""
    result = await update_progress(db, user.id, book_id, body.progress)
    activity = await record_activity(db, get_optional_redis(), user.id)
    return ProgressUpdateResponse(**result, new_badges=activity["new_badges"])


@router.get("/users/me/progress", response_model=UserProgressResponse)
async def my_progress(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserProgressResponse:
    rows = await list_user_progress(db, user.id)
    return UserProgressResponse(books=[UserBookProgress(**row) for row in rows])
