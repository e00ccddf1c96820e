"""Deterministic poll ranking.

Candidates are ranked by vote count DESC, then by candidate creation order
(ascending candidate id), so equal counts always resolve the same way.
"""

from __future__ import annotations

from typing import Any


def rank_candidates(candidates: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Rank poll candidates.

    Input: list of dicts with at least:
        - id: int (candidate id, creation order)
        - vote_count: int

    Output: new list, sorted, each dict copied and augmented with a
    1-indexed ``rank``. Tied candidates still get consecutive,
    distinct ranks, ordered by candidate id.
    """
    ordered = sorted(candidates, key=lambda c: (-c.get("vote_count", 0), c["id"]))
    return [{**c, "rank": i} for i, c in enumerate(ordered, start=1)]


def pick_winner(candidates: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Rank-1 candidate, or None for a poll without candidates."""
    ranked = rank_candidates(candidates)
    return ranked[0] if ranked else None
