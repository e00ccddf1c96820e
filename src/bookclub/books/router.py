"""Book catalog endpoints; creation is admin only."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.auth.dependencies import get_current_admin
from bookclub.books.book_service import add_question, create_book, list_books
from bookclub.books.schemas import (
    BookCreateRequest,
    BookListResponse,
    BookResponse,
    QuestionCreatedResponse,
    QuestionCreateRequest,
)
from bookclub.database import get_session
from bookclub.db.models import User
from bookclub.reading.progress_service import get_book

router = APIRouter(prefix="/api/v1/books", tags=["Books"])


@router.get("", response_model=BookListResponse)
async def books(
    status: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> BookListResponse:
    items = await list_books(db, status)
    return BookListResponse(books=[BookResponse.model_validate(b) for b in items])


@router.get("/{book_id}", response_model=BookResponse)
async def book_detail(book_id: int, db: AsyncSession = Depends(get_session)) -> BookResponse:
    return BookResponse.model_validate(await get_book(db, book_id))


@router.post("", response_model=BookResponse, status_code=201)
async def new_book(
    body: BookCreateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> BookResponse:
    book = await create_book(db, **body.model_dump())
    return BookResponse.model_validate(book)


@router.post("/{book_id}/discussions", response_model=QuestionCreatedResponse, status_code=201)
async def new_question(
    book_id: int,
    body: QuestionCreateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> QuestionCreatedResponse:
    entry = await add_question(db, book_id, body.question, body.breakpoint)
    return QuestionCreatedResponse.model_validate(entry)
