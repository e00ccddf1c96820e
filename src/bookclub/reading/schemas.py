"""Pydantic models for reading progress endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ProgressUpdateRequest(BaseModel):
    progress: int = Field(ge=0, le=100, strict=True)


class ProgressResponse(BaseModel):
    book_id: int
    progress: int
    is_finished: bool
    unlocked_discussion_ids: list[int] = []


class ProgressUpdateResponse(ProgressResponse):
    newly_unlocked_ids: list[int] = []
    new_badges: list[str] = []


class UserBookProgress(BaseModel):
    book_id: int
    title: str
    author: str
    progress: int
    is_finished: bool
    updated_at: datetime


class UserProgressResponse(BaseModel):
    books: list[UserBookProgress]
