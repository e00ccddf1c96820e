"""Pydantic response models for gamification endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


# --- Badge ---


class BadgeDefinitionResponse(BaseModel):
    id: int
    badge_type: str
    name: str
    description: str
    icon: str
    color: str
    tier: int
    total_earned: int = 0


class AllBadgesResponse(BaseModel):
    badges: list[BadgeDefinitionResponse]
    total_count: int


class EarnedBadgeResponse(BaseModel):
    id: int
    badge_type: str
    name: str
    description: str
    icon: str
    color: str
    tier: int
    awarded_at: datetime
    is_pinned: bool


class UserBadgesResponse(BaseModel):
    badges: list[EarnedBadgeResponse]
    new_badges: list[str] = []
    total_earned: int
    total_available: int


# --- Streak ---


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_active_week: str | None = None
    is_active: bool


# --- Summary ---


class UserStatsResponse(BaseModel):
    books_started: int
    books_finished: int
    reviews: int
    comments: int
    helpful_received: int
    insightful_received: int
    current_streak: int
    longest_streak: int
    badges_earned: int
