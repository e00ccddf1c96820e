"""Pydantic models for poll endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CandidateResponse(BaseModel):
    id: int
    book_id: int
    title: str
    author: str
    cover_image: str | None = None
    vote_count: int
    rank: int | None = None


class PollResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    start_date: datetime
    end_date: datetime
    for_month: datetime
    is_active: bool
    is_open: bool
    total_votes: int = 0
    user_vote_book_id: int | None = None
    candidates: list[CandidateResponse] = []


class PollListResponse(BaseModel):
    polls: list[PollResponse]


class PollCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=256)
    description: str | None = None
    start_date: datetime
    end_date: datetime
    for_month: datetime
    book_ids: list[int] = Field(min_length=2)


class VoteRequest(BaseModel):
    book_id: int


class VoteResponse(BaseModel):
    poll_id: int
    book_id: int
    previous_book_id: int | None = None


class PollCloseResponse(BaseModel):
    poll: PollResponse
    winner: CandidateResponse | None = None
