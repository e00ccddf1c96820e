"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bookclub.books.router import router as books_router
from bookclub.config import get_settings
from bookclub.database import close_db, create_all, get_session, init_db
from bookclub.discussions.router import router as discussions_router
from bookclub.gamification.router import router as gamification_router
from bookclub.gamification.seed import seed_badges
from bookclub.health.router import router as health_router
from bookclub.middleware import setup_middleware
from bookclub.polls.router import router as polls_router
from bookclub.reading.router import router as reading_router
from bookclub.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


async def bootstrap_storage(database_url: str, *, create_tables: bool) -> None:
    """Open the engine, optionally build the schema, and seed the badge catalog."""
    await init_db(database_url)
    if create_tables:
        await create_all()

    # Seed badge definitions (idempotent)
    async for db in get_session():
        await seed_badges(db)
        break


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    create_tables = settings.create_tables_on_startup or settings.database_url.startswith("sqlite")
    await bootstrap_storage(settings.database_url, create_tables=create_tables)

    if settings.redis_url:
        await init_redis(settings.redis_url)
    else:
        logger.info("Redis disabled: rate limiting and badge notifications are off")

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Book Club API",
        description="Backend API for the book club: reading progress, discussions, polls, badges",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(books_router)
    app.include_router(reading_router)
    app.include_router(discussions_router)
    app.include_router(polls_router)
    app.include_router(gamification_router)

    return app


app = create_app()
