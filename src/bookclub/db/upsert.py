"""Dialect-aware INSERT ... ON CONFLICT constructor.

PostgreSQL and SQLite share the ``on_conflict_do_update`` /
``on_conflict_do_nothing`` API, so services pick the right ``insert`` from
the session's bind and build one statement for both.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def upsert_insert(db: AsyncSession, model: Any):  # noqa: ANN401
    """Return an ON CONFLICT capable ``insert(model)`` for the session's database."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)
