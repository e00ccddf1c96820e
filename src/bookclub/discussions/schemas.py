"""Pydantic models for discussion, review and reaction endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# --- Discussions ---


class QuestionResponse(BaseModel):
    id: int
    book_id: int
    question: str
    breakpoint: int
    is_unlocked: bool = True
    comment_count: int = 0


class BookQuestionsResponse(BaseModel):
    book_id: int
    questions: list[QuestionResponse]


class CommentAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None = None
    username: str | None = None
    image: str | None = None


class CommentResponse(BaseModel):
    id: int
    content: str
    parent_id: int | None = None
    created_at: datetime
    user: CommentAuthor
    replies: list[CommentResponse] = []


class CommentsResponse(BaseModel):
    question_id: int
    comments: list[CommentResponse]


class CommentCreateRequest(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    parent_id: int | None = None


class CommentCreateResponse(CommentResponse):
    new_badges: list[str] = []


# --- Reviews ---


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    book_id: int
    rating: int
    review: str | None = None
    created_at: datetime
    user: CommentAuthor


class BookReviewsResponse(BaseModel):
    reviews: list[ReviewResponse]
    average_rating: float
    total_reviews: int


class ReviewUpsertRequest(BaseModel):
    rating: int = Field(ge=1, le=5, strict=True)
    review: str | None = Field(default=None, max_length=10000)


class ReviewUpsertResponse(ReviewResponse):
    new_badges: list[str] = []


# --- Reactions ---


class ReactionToggleRequest(BaseModel):
    type: str
    comment_id: int | None = None
    review_id: int | None = None


class ReactionToggleResponse(BaseModel):
    added: bool
    reaction_id: int | None = None
    new_badges: list[str] = []


class ReactionCountsResponse(BaseModel):
    counts: dict[str, int]
