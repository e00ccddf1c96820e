"""Poll endpoints: listing, voting, and admin create/close."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.auth.dependencies import get_current_admin, get_current_user
from bookclub.database import get_session
from bookclub.db.models import User
from bookclub.polls.poll_service import (
    cast_vote,
    close_poll,
    create_poll,
    get_poll,
    list_polls,
    remove_vote,
)
from bookclub.polls.schemas import (
    PollCloseResponse,
    PollCreateRequest,
    PollListResponse,
    PollResponse,
    VoteRequest,
    VoteResponse,
)

router = APIRouter(prefix="/api/v1/polls", tags=["Polls"])


@router.get("", response_model=PollListResponse)
async def polls(
    active: bool = Query(False, description="Only polls that have not been closed"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PollListResponse:
    items = await list_polls(db, user.id, active_only=active)
    return PollListResponse(polls=[PollResponse(**p) for p in items])


@router.post("", response_model=PollResponse, status_code=201)
async def new_poll(
    body: PollCreateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> PollResponse:
    poll = await create_poll(db, **body.model_dump())
    return PollResponse(**poll)


@router.get("/{poll_id}", response_model=PollResponse)
async def poll_detail(
    poll_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PollResponse:
    return PollResponse(**await get_poll(db, poll_id, user.id))


@router.post("/{poll_id}/vote", response_model=VoteResponse)
async def vote(
    poll_id: int,
    body: VoteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> VoteResponse:
    """Cast or move the caller's vote. 409 ``vote_conflict`` means retry."""
    return VoteResponse(**await cast_vote(db, user.id, poll_id, body.book_id))


@router.delete("/{poll_id}/vote", status_code=204)
async def unvote(
    poll_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await remove_vote(db, user.id, poll_id)
    return Response(status_code=204)


@router.post("/{poll_id}/close", response_model=PollCloseResponse)
async def close(
    poll_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> PollCloseResponse:
    result = await close_poll(db, poll_id)
    return PollCloseResponse(**result)
