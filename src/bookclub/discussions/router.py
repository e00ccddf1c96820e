"""Discussion, review and reaction endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.auth.dependencies import get_current_user
from bookclub.database import get_session
from bookclub.db.models import User
from bookclub.discussions.discussion_service import (
    build_thread,
    get_unlocked_question,
    list_comments,
    list_questions,
    post_comment,
)
from bookclub.discussions.reaction_service import count_reactions, toggle_reaction
from bookclub.discussions.review_service import delete_review, list_reviews, upsert_review
from bookclub.discussions.schemas import (
    BookQuestionsResponse,
    BookReviewsResponse,
    CommentCreateRequest,
    CommentCreateResponse,
    CommentsResponse,
    QuestionResponse,
    ReactionCountsResponse,
    ReactionToggleRequest,
    ReactionToggleResponse,
    ReviewResponse,
    ReviewUpsertRequest,
    ReviewUpsertResponse,
)
from bookclub.gamification.activity import record_activity
from bookclub.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1", tags=["Discussions"])


# ── Discussions ──


@router.get("/books/{book_id}/discussions", response_model=BookQuestionsResponse)
async def book_discussions(
    book_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BookQuestionsResponse:
    questions = await list_questions(db, user.id, book_id)
    return BookQuestionsResponse(book_id=book_id, questions=[QuestionResponse(**q) for q in questions])


@router.get("/discussions/{question_id}", response_model=QuestionResponse)
async def discussion_detail(
    question_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> QuestionResponse:
    question = await get_unlocked_question(db, user.id, question_id)
    return QuestionResponse(
        id=question.id,
        book_id=question.book_id,
        question=question.question,
        breakpoint=question.breakpoint,
    )


@router.get("/discussions/{question_id}/comments", response_model=CommentsResponse)
async def discussion_comments(
    question_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CommentsResponse:
    comments = await list_comments(db, user.id, question_id)
    return CommentsResponse(question_id=question_id, comments=comments)


@router.post("/discussions/{question_id}/comments", response_model=CommentCreateResponse, status_code=201)
async def create_comment(
    question_id: int,
    body: CommentCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CommentCreateResponse:
    """Post a comment or reply. Refused until the caller has read up to the question."""
    comment = await post_comment(db, user.id, question_id, body.content, body.parent_id)
    activity = await record_activity(db, get_optional_redis(), user.id)
    return CommentCreateResponse(**build_thread([comment])[0], new_badges=activity["new_badges"])


# ── Reviews ──


@router.get("/books/{book_id}/reviews", response_model=BookReviewsResponse)
async def book_reviews(book_id: int, db: AsyncSession = Depends(get_session)) -> BookReviewsResponse:
    data = await list_reviews(db, book_id)
    return BookReviewsResponse(
        reviews=[ReviewResponse.model_validate(r) for r in data["reviews"]],
        average_rating=data["average_rating"],
        total_reviews=data["total_reviews"],
    )


@router.post("/books/{book_id}/reviews", response_model=ReviewUpsertResponse)
async def save_review(
    book_id: int,
    body: ReviewUpsertRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ReviewUpsertResponse:
    review = await upsert_review(db, user.id, book_id, body.rating, body.review)
    activity = await record_activity(db, get_optional_redis(), user.id)
    return ReviewUpsertResponse(
        **ReviewResponse.model_validate(review).model_dump(),
        new_badges=activity["new_badges"],
    )


@router.delete("/books/{book_id}/reviews", status_code=204)
async def remove_review(
    book_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await delete_review(db, user.id, book_id)
    return Response(status_code=204)


# ── Reactions ──


@router.post("/reactions", response_model=ReactionToggleResponse)
async def react(
    body: ReactionToggleRequest,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ReactionToggleResponse:
    """Toggle a reaction. Only adding one counts as activity."""
    result = await toggle_reaction(
        db, user.id, body.type, comment_id=body.comment_id, review_id=body.review_id
    )
    new_badges: list[str] = []
    if result["added"]:
        response.status_code = 201
        activity = await record_activity(db, get_optional_redis(), user.id)
        new_badges = activity["new_badges"]
    return ReactionToggleResponse(**result, new_badges=new_badges)


@router.get("/reactions", response_model=ReactionCountsResponse)
async def reaction_counts(
    comment_id: int | None = Query(None),
    review_id: int | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> ReactionCountsResponse:
    counts = await count_reactions(db, comment_id=comment_id, review_id=review_id)
    return ReactionCountsResponse(counts=counts)
