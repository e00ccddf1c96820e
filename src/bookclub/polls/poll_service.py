"""Monthly book polls: creation, voting ledger, and closing.

Ledger invariant: for every candidate, ``vote_count`` equals the number of
vote rows pointing at it. Counters only move through
``SET vote_count = vote_count +/- 1`` statements inside the same
transaction that writes the vote row, so concurrent casts never lose an
increment. Casting and removing take a shared lock on the poll row; closing
takes an exclusive one, so no vote lands on a poll that is being closed.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.clock import as_utc, utcnow
from bookclub.db.models import Book, Poll, PollCandidate, Vote
from bookclub.errors import (
    BookNotFoundError,
    NotACandidateError,
    PollClosedError,
    PollNotFoundError,
    PollNotOpenError,
    ValidationFailed,
    VoteConflictError,
    VoteNotFoundError,
)
from bookclub.polls.ranking import rank_candidates

logger = logging.getLogger(__name__)


def is_open(poll: Poll, now: datetime) -> bool:
    """Open for voting: active and ``start_date <= now <= end_date``."""
    return poll.is_active and as_utc(poll.start_date) <= now <= as_utc(poll.end_date)


def _candidate_dict(candidate: PollCandidate) -> dict:
    return {
        "id": candidate.id,
        "book_id": candidate.book_id,
        "title": candidate.book.title,
        "author": candidate.book.author,
        "cover_image": candidate.book.cover_image,
        "vote_count": candidate.vote_count,
        "rank": candidate.rank,
    }


async def _load_candidates(db: AsyncSession, poll_ids: list[int]) -> dict[int, list[PollCandidate]]:
    """Candidates per poll, most votes first, ties in creation order."""
    grouped: dict[int, list[PollCandidate]] = {pid: [] for pid in poll_ids}
    if not poll_ids:
        return grouped
    result = await db.execute(
        select(PollCandidate)
        .where(PollCandidate.poll_id.in_(poll_ids))
        .order_by(PollCandidate.vote_count.desc(), PollCandidate.id)
        .execution_options(populate_existing=True)
    )
    for candidate in result.scalars():
        grouped[candidate.poll_id].append(candidate)
    return grouped


async def _poll_dicts(db: AsyncSession, polls: list[Poll], user_id: int | None) -> list[dict]:
    poll_ids = [p.id for p in polls]
    candidates = await _load_candidates(db, poll_ids)

    totals: dict[int, int] = {}
    my_votes: dict[int, int] = {}
    if poll_ids:
        result = await db.execute(
            select(Vote.poll_id, func.count()).where(Vote.poll_id.in_(poll_ids)).group_by(Vote.poll_id)
        )
        totals = dict(result.all())
        if user_id is not None:
            result = await db.execute(
                select(Vote.poll_id, Vote.book_id).where(Vote.poll_id.in_(poll_ids), Vote.user_id == user_id)
            )
            my_votes = dict(result.all())

    now = utcnow()
    return [
        {
            "id": poll.id,
            "title": poll.title,
            "description": poll.description,
            "start_date": poll.start_date,
            "end_date": poll.end_date,
            "for_month": poll.for_month,
            "is_active": poll.is_active,
            "is_open": is_open(poll, now),
            "total_votes": totals.get(poll.id, 0),
            "user_vote_book_id": my_votes.get(poll.id),
            "candidates": [_candidate_dict(c) for c in candidates[poll.id]],
        }
        for poll in polls
    ]


async def create_poll(
    db: AsyncSession,
    *,
    title: str,
    start_date: datetime,
    end_date: datetime,
    for_month: datetime,
    book_ids: list[int],
    description: str | None = None,
) -> dict:
    """Create a poll over at least two distinct existing books. Commits.

    Candidate books move to ``POLL_CANDIDATE``.
    """
    unique_ids = list(dict.fromkeys(book_ids))
    if len(unique_ids) < 2:
        raise ValidationFailed("A poll needs at least 2 distinct books")
    if as_utc(end_date) <= as_utc(start_date):
        raise ValidationFailed("end_date must be after start_date")

    result = await db.execute(select(Book).where(Book.id.in_(unique_ids)))
    books = {b.id: b for b in result.scalars()}
    missing = [bid for bid in unique_ids if bid not in books]
    if missing:
        raise BookNotFoundError(f"Book not found: {missing[0]}")

    poll = Poll(
        title=title,
        description=description,
        start_date=start_date,
        end_date=end_date,
        for_month=for_month,
        is_active=True,
    )
    db.add(poll)
    await db.flush()
    for book_id in unique_ids:
        db.add(PollCandidate(poll_id=poll.id, book_id=book_id, vote_count=0))
        books[book_id].status = "POLL_CANDIDATE"
    await db.commit()

    logger.info("Poll %d created with %d candidates", poll.id, len(unique_ids))
    return (await _poll_dicts(db, [poll], None))[0]


async def list_polls(db: AsyncSession, user_id: int | None = None, *, active_only: bool = False) -> list[dict]:
    """Polls newest first, each with ranked candidates and the caller's own vote."""
    stmt = select(Poll).order_by(Poll.start_date.desc(), Poll.id.desc())
    if active_only:
        stmt = stmt.where(Poll.is_active.is_(True))
    result = await db.execute(stmt.execution_options(populate_existing=True))
    return await _poll_dicts(db, list(result.scalars().all()), user_id)


async def get_poll(db: AsyncSession, poll_id: int, user_id: int | None = None) -> dict:
    result = await db.execute(
        select(Poll).where(Poll.id == poll_id).execution_options(populate_existing=True)
    )
    poll = result.scalar_one_or_none()
    if poll is None:
        raise PollNotFoundError
    return (await _poll_dicts(db, [poll], user_id))[0]


async def _lock_poll(db: AsyncSession, poll_id: int, *, shared: bool) -> Poll:
    result = await db.execute(
        select(Poll)
        .where(Poll.id == poll_id)
        .with_for_update(read=shared)
        .execution_options(populate_existing=True)
    )
    poll = result.scalar_one_or_none()
    if poll is None:
        raise PollNotFoundError
    return poll


async def _lock_vote(db: AsyncSession, user_id: int, poll_id: int) -> Vote | None:
    result = await db.execute(
        select(Vote)
        .where(Vote.user_id == user_id, Vote.poll_id == poll_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _adjust_count(db: AsyncSession, poll_id: int, book_id: int, delta: int) -> None:
    await db.execute(
        update(PollCandidate)
        .where(PollCandidate.poll_id == poll_id, PollCandidate.book_id == book_id)
        .values(vote_count=PollCandidate.vote_count + delta)
        .execution_options(synchronize_session=False)
    )


async def cast_vote(
    db: AsyncSession,
    user_id: int,
    poll_id: int,
    book_id: int,
    now: datetime | None = None,
) -> dict:
    """Cast or move the caller's single vote in a poll. Commits.

    Re-voting for the same book is a no-op. Moving a vote decrements the old
    candidate and increments the new one in the same transaction.
    """
    now = now or utcnow()
    poll = await _lock_poll(db, poll_id, shared=True)
    if not is_open(poll, now):
        await db.rollback()
        raise PollNotOpenError

    candidate = await db.execute(
        select(PollCandidate.id).where(PollCandidate.poll_id == poll_id, PollCandidate.book_id == book_id)
    )
    if candidate.scalar_one_or_none() is None:
        await db.rollback()
        raise NotACandidateError

    previous_book_id: int | None = None
    try:
        vote = await _lock_vote(db, user_id, poll_id)
        if vote is None:
            db.add(Vote(user_id=user_id, poll_id=poll_id, book_id=book_id, created_at=now, updated_at=now))
            await db.flush()
            await _adjust_count(db, poll_id, book_id, 1)
        elif vote.book_id != book_id:
            previous_book_id = vote.book_id
            await _adjust_count(db, poll_id, previous_book_id, -1)
            vote.book_id = book_id
            vote.updated_at = now
            await db.flush()
            await _adjust_count(db, poll_id, book_id, 1)
        await db.commit()
    except IntegrityError as e:
        # A concurrent first vote by the same user committed first
        await db.rollback()
        raise VoteConflictError from e

    if previous_book_id is not None:
        logger.info("User %d moved vote in poll %d: book %d -> %d", user_id, poll_id, previous_book_id, book_id)
    return {"poll_id": poll_id, "book_id": book_id, "previous_book_id": previous_book_id}


async def remove_vote(db: AsyncSession, user_id: int, poll_id: int, now: datetime | None = None) -> None:
    """Withdraw the caller's vote while the poll is open. Commits."""
    now = now or utcnow()
    poll = await _lock_poll(db, poll_id, shared=True)
    if not is_open(poll, now):
        await db.rollback()
        raise PollNotOpenError

    vote = await _lock_vote(db, user_id, poll_id)
    if vote is None:
        await db.rollback()
        raise VoteNotFoundError

    book_id = vote.book_id
    await db.delete(vote)
    await db.flush()
    await _adjust_count(db, poll_id, book_id, -1)
    await db.commit()


async def close_poll(db: AsyncSession, poll_id: int) -> dict:
    """Close an active poll, rank its candidates and schedule the winner. Commits.

    Winner book becomes ``SCHEDULED`` for the poll's month; every other
    candidate book goes back to ``DRAFT``. Returns ``{"poll", "winner"}``
    where ``winner`` is None for a poll without candidates.
    """
    poll = await _lock_poll(db, poll_id, shared=False)
    if not poll.is_active:
        await db.rollback()
        raise PollClosedError

    candidates = (await _load_candidates(db, [poll_id]))[poll_id]
    by_id = {c.id: c for c in candidates}
    ranked = rank_candidates([{"id": c.id, "book_id": c.book_id, "vote_count": c.vote_count} for c in candidates])

    for entry in ranked:
        by_id[entry["id"]].rank = entry["rank"]
    poll.is_active = False

    winner = by_id[ranked[0]["id"]] if ranked else None
    for entry in ranked:
        book = by_id[entry["id"]].book
        if winner is not None and book.id == winner.book_id:
            book.status = "SCHEDULED"
            book.read_month = poll.for_month
        else:
            book.status = "DRAFT"
    await db.commit()

    if winner is not None:
        logger.info(
            "Poll %d closed: winner book %d with %d votes", poll_id, winner.book_id, winner.vote_count
        )
    else:
        logger.info("Poll %d closed without candidates", poll_id)

    return {
        "poll": (await _poll_dicts(db, [poll], None))[0],
        "winner": _candidate_dict(winner) if winner is not None else None,
    }
