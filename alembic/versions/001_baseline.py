"""Baseline: book club schema.

Creates users, books, reading progress, discussions, reviews, reactions,
polls and the badge tables. Mirrors bookclub.db.models.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-17
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            email VARCHAR(320) UNIQUE NOT NULL,
            name VARCHAR(128),
            username VARCHAR(32) UNIQUE,
            image TEXT,
            is_admin BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_active_week VARCHAR(8)
        )
    """)

    # --- Books ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS books (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(256) NOT NULL,
            author VARCHAR(256) NOT NULL,
            description TEXT,
            cover_image TEXT,
            page_count INTEGER,
            status VARCHAR(16) NOT NULL DEFAULT 'DRAFT',
            read_month TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_books_status ON books(status)")

    # --- Reading progress ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS reading_progress (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            book_id BIGINT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
            progress INTEGER NOT NULL DEFAULT 0,
            is_finished BOOLEAN NOT NULL DEFAULT false,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT reading_progress_user_id_book_id_key UNIQUE (user_id, book_id),
            CONSTRAINT reading_progress_range CHECK (progress >= 0 AND progress <= 100)
        )
    """)

    # --- Discussions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS discussion_questions (
            id BIGSERIAL PRIMARY KEY,
            book_id BIGINT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
            question TEXT NOT NULL,
            breakpoint INTEGER NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT discussion_questions_breakpoint_range CHECK (breakpoint >= 1 AND breakpoint <= 100)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_discussion_questions_book
        ON discussion_questions(book_id, breakpoint)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS comments (
            id BIGSERIAL PRIMARY KEY,
            content TEXT NOT NULL,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            book_id BIGINT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
            question_id BIGINT NOT NULL REFERENCES discussion_questions(id) ON DELETE CASCADE,
            parent_id BIGINT REFERENCES comments(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_comments_question ON comments(question_id, created_at)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_comments_user ON comments(user_id)")

    # --- Reviews & reactions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS reviews (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            book_id BIGINT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
            rating INTEGER NOT NULL,
            review TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT reviews_user_id_book_id_key UNIQUE (user_id, book_id),
            CONSTRAINT reviews_rating_range CHECK (rating >= 1 AND rating <= 5)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS reactions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            comment_id BIGINT REFERENCES comments(id) ON DELETE CASCADE,
            review_id BIGINT REFERENCES reviews(id) ON DELETE CASCADE,
            type VARCHAR(16) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT reactions_single_target CHECK ((comment_id IS NULL) <> (review_id IS NULL))
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_reactions_comment ON reactions(comment_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_reactions_review ON reactions(review_id)")
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS reactions_one_per_comment_type
        ON reactions(user_id, comment_id, type) WHERE comment_id IS NOT NULL
    """)
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS reactions_one_per_review_type
        ON reactions(user_id, review_id, type) WHERE review_id IS NOT NULL
    """)

    # --- Polls ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS polls (
            id BIGSERIAL PRIMARY KEY,
            title VARCHAR(256) NOT NULL,
            description TEXT,
            start_date TIMESTAMPTZ NOT NULL,
            end_date TIMESTAMPTZ NOT NULL,
            for_month TIMESTAMPTZ NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS poll_candidates (
            id BIGSERIAL PRIMARY KEY,
            poll_id BIGINT NOT NULL REFERENCES polls(id) ON DELETE CASCADE,
            book_id BIGINT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
            vote_count INTEGER NOT NULL DEFAULT 0,
            rank INTEGER,
            CONSTRAINT poll_candidates_poll_id_book_id_key UNIQUE (poll_id, book_id),
            CONSTRAINT poll_candidates_vote_count_nonnegative CHECK (vote_count >= 0)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS votes (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            poll_id BIGINT NOT NULL REFERENCES polls(id) ON DELETE CASCADE,
            book_id BIGINT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT votes_user_id_poll_id_key UNIQUE (user_id, poll_id)
        )
    """)

    # --- Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id SERIAL PRIMARY KEY,
            type VARCHAR(32) UNIQUE NOT NULL,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(16) NOT NULL,
            color VARCHAR(16) NOT NULL,
            tier INTEGER NOT NULL
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id INTEGER NOT NULL REFERENCES badges(id),
            awarded_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            is_pinned BOOLEAN NOT NULL DEFAULT false,
            CONSTRAINT user_badges_user_id_badge_id_key UNIQUE (user_id, badge_id)
        )
    """)
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS user_badges_one_pinned_per_user
        ON user_badges(user_id) WHERE is_pinned
    """)


def downgrade() -> None:
    for table in [
        "user_badges",
        "badges",
        "votes",
        "poll_candidates",
        "polls",
        "reactions",
        "reviews",
        "comments",
        "discussion_questions",
        "reading_progress",
        "books",
        "users",
    ]:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
