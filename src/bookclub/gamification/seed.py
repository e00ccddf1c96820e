"""Badge catalog seed data: display fields only; award rules live in badge_service."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from bookclub.db.models import Badge
from bookclub.db.upsert import upsert_insert

logger = logging.getLogger(__name__)

BADGE_SEED_DATA: list[dict] = [
    # Reading milestones
    {"type": "FIRST_BOOK", "name": "First Steps", "description": "Started your first book",
     "icon": "\U0001f4d6", "color": "#94a3b8", "tier": 1},
    {"type": "FIVE_BOOKS", "name": "Book Explorer", "description": "Started 5 books",
     "icon": "\U0001f4da", "color": "#60a5fa", "tier": 2},
    {"type": "TEN_BOOKS", "name": "Dedicated Reader", "description": "Started 10 books",
     "icon": "\U0001f4d7", "color": "#34d399", "tier": 2},
    {"type": "BOOKWORM", "name": "Bookworm", "description": "Started 25 books",
     "icon": "\U0001f41b", "color": "#fbbf24", "tier": 3},
    {"type": "AVID_READER", "name": "Avid Reader", "description": "Started 50 books",
     "icon": "\U0001f3c6", "color": "#f59e0b", "tier": 4},
    # Review milestones
    {"type": "FIRST_REVIEW", "name": "First Impressions", "description": "Wrote your first review",
     "icon": "⭐", "color": "#94a3b8", "tier": 1},
    {"type": "TOP_REVIEWER", "name": "Top Reviewer", "description": "Wrote 10 reviews",
     "icon": "\U0001f31f", "color": "#fbbf24", "tier": 3},
    # Discussion milestones
    {"type": "DISCUSSION_STARTER", "name": "Discussion Starter", "description": "Posted your first comment",
     "icon": "\U0001f4ac", "color": "#94a3b8", "tier": 1},
    {"type": "ACTIVE_PARTICIPANT", "name": "Active Participant", "description": "Posted 25 comments",
     "icon": "\U0001f4ad", "color": "#60a5fa", "tier": 2},
    {"type": "COMMUNITY_LEADER", "name": "Community Leader", "description": "Posted 100 comments",
     "icon": "\U0001f451", "color": "#f59e0b", "tier": 4},
    # Reaction milestones
    {"type": "HELPFUL_MEMBER", "name": "Helpful Member", "description": "Received 10 helpful reactions",
     "icon": "\U0001f91d", "color": "#34d399", "tier": 2},
    {"type": "INSIGHTFUL_CONTRIBUTOR", "name": "Insightful Contributor",
     "description": "Received 10 insightful reactions", "icon": "\U0001f4a1", "color": "#fbbf24", "tier": 3},
    # Special
    {"type": "EARLY_ADOPTER", "name": "Early Adopter", "description": "Joined during the first month",
     "icon": "\U0001f680", "color": "#a78bfa", "tier": 4},
    # Weekly streaks
    {"type": "STREAK_STARTER", "name": "Streak Starter", "description": "Active for 4 consecutive weeks",
     "icon": "\U0001f525", "color": "#94a3b8", "tier": 1},
    {"type": "DEDICATED_READER", "name": "Dedicated Reader", "description": "Active for 12 consecutive weeks",
     "icon": "\U0001f525", "color": "#f97316", "tier": 3},
    {"type": "READING_CHAMPION", "name": "Reading Champion", "description": "Active for 52 consecutive weeks",
     "icon": "\U0001f3c5", "color": "#dc2626", "tier": 4},
]


async def seed_badges(db: AsyncSession) -> int:
    """Upsert every catalog entry by ``type``. Returns number of badges seeded."""
    seeded = 0
    for badge_data in BADGE_SEED_DATA:
        stmt = upsert_insert(db, Badge).values(**badge_data)
        stmt = stmt.on_conflict_do_update(
            index_elements=["type"],
            set_={
                "name": stmt.excluded.name,
                "description": stmt.excluded.description,
                "icon": stmt.excluded.icon,
                "color": stmt.excluded.color,
                "tier": stmt.excluded.tier,
            },
        )
        await db.execute(stmt)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d badge definitions", seeded)
    return seeded
