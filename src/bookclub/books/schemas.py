"""Pydantic models for book endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    author: str
    description: str | None = None
    cover_image: str | None = None
    page_count: int | None = None
    status: str
    read_month: datetime | None = None


class BookListResponse(BaseModel):
    books: list[BookResponse]


class BookCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=256)
    author: str = Field(min_length=1, max_length=256)
    description: str | None = None
    cover_image: str | None = None
    page_count: int | None = Field(default=None, ge=1)
    status: str = "DRAFT"
    read_month: datetime | None = None


class QuestionCreateRequest(BaseModel):
    question: str = Field(min_length=1)
    breakpoint: int = Field(ge=1, le=100, strict=True)


class QuestionCreatedResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    book_id: int
    question: str
    breakpoint: int
