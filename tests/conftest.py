"""Shared test fixtures.

Every test gets a fresh in-memory SQLite database with the schema built from
the models and the badge catalog seeded. Redis is disabled.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone

os.environ["BOOKCLUB_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["BOOKCLUB_REDIS_URL"] = ""
os.environ["BOOKCLUB_JWT_SECRET"] = "test-secret-not-for-production"
os.environ["BOOKCLUB_LOG_FORMAT"] = "console"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from bookclub.auth.jwt import create_access_token  # noqa: E402
from bookclub.config import get_settings  # noqa: E402
from bookclub.database import close_db, get_session  # noqa: E402
from bookclub.db.models import Book, DiscussionQuestion, Poll, PollCandidate, User  # noqa: E402
from bookclub.main import bootstrap_storage, create_app  # noqa: E402

get_settings.cache_clear()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh database; a direct session for setup and assertions."""
    settings = get_settings()
    await bootstrap_storage(settings.database_url, create_tables=True)
    async for session in get_session():
        yield session
        break
    await close_db()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, sharing the db_session database."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# --- Factories ---


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    counter = {"n": 0}

    async def _make(*, is_admin: bool = False, created_at: datetime | None = None) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=f"reader{n}@example.com",
            name=f"Reader {n}",
            username=f"reader{n}",
            is_admin=is_admin,
        )
        if created_at is not None:
            user.created_at = created_at
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def user(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user()


@pytest_asyncio.fixture
async def admin(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user(is_admin=True)


@pytest_asyncio.fixture
async def make_book(db_session: AsyncSession) -> Callable[..., Awaitable[Book]]:
    async def _make(title: str = "The Left Hand of Darkness", breakpoints: tuple[int, ...] = ()) -> Book:
        book = Book(title=title, author="Ursula K. Le Guin", status="CURRENT")
        db_session.add(book)
        await db_session.flush()
        for bp in breakpoints:
            db_session.add(DiscussionQuestion(book_id=book.id, question=f"Thoughts at {bp}%?", breakpoint=bp))
        await db_session.commit()
        return book

    return _make


@pytest_asyncio.fixture
async def book(make_book: Callable[..., Awaitable[Book]]) -> Book:
    """A book with discussion questions at 25%, 50% and 100%."""
    return await make_book(breakpoints=(25, 50, 100))


@pytest_asyncio.fixture
async def make_poll(
    db_session: AsyncSession, make_book: Callable[..., Awaitable[Book]]
) -> Callable[..., Awaitable[tuple[Poll, list[Book]]]]:
    async def _make(n_books: int = 3, *, is_open: bool = True) -> tuple[Poll, list[Book]]:
        books = [await make_book(title=f"Candidate {i}") for i in range(n_books)]
        now = datetime.now(timezone.utc)
        if is_open:
            start, end = now - timedelta(days=1), now + timedelta(days=6)
        else:
            start, end = now + timedelta(days=1), now + timedelta(days=8)
        poll = Poll(
            title="Next month",
            start_date=start,
            end_date=end,
            for_month=datetime(2026, 11, 1, tzinfo=timezone.utc),
            is_active=True,
        )
        db_session.add(poll)
        await db_session.flush()
        for b in books:
            db_session.add(PollCandidate(poll_id=poll.id, book_id=b.id, vote_count=0))
            b.status = "POLL_CANDIDATE"
        await db_session.commit()
        return poll, books

    return _make


def auth_headers(user: User) -> dict[str, str]:
    """Bearer header for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user.id, is_admin=user.is_admin)}"}


@pytest.fixture
def headers_for() -> Callable[[User], dict[str, str]]:
    return auth_headers
