"""
backend/models/stats.py
Per-user ledger counters and the public profile that carries rating.
"""

import hashlib
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StatCounter(str, Enum):
    """Ledger counters a LedgerEffect can move."""

    GOALS_CREATED_THIS_MONTH = "goals_created_this_month"
    ACTIVE_GOALS_NOW = "active_goals_now"
    COMPLETED_GOALS = "completed_goals"
    CLOSED_TASKS = "closed_tasks"
    BLOG_POSTS = "blog_posts"
    RATING = "rating"  # lives on the profile, not on UserStats


class UserStats(BaseModel):
    user_id: str
    goals_created_this_month: int = Field(default=0, ge=0)
    active_goals_now: int = Field(default=0, ge=0)
    completed_goals: int = Field(default=0, ge=0)
    closed_tasks: int = Field(default=0, ge=0)
    blog_posts: int = Field(default=0, ge=0)
    last_month_reset: date


class Profile(BaseModel):
    user_id: str
    display_name: str
    avatar: Optional[str] = None
    rating: int = 0
    created_at: datetime

    @staticmethod
    def normalized_display_name(user_id: str, display_name: Optional[str] = None) -> str:
        if display_name and display_name.strip():
            return display_name.strip()
        # Deterministic fallback handle
        h = hashlib.sha1(user_id.encode("utf-8")).hexdigest()
        return f"@u_{h[-6:]}"


class LedgerEffect(BaseModel):
    """One counter delta for one user, produced by a lifecycle transition."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    counter: StatCounter
    delta: int


class StatsView(BaseModel):
    model_config = ConfigDict(frozen=True)

    goals_created_this_month: int
    active_goals_now: int
    completed_goals: int
    closed_tasks: int
    blog_posts: int
    rating: int


class ProfileSummary(BaseModel):
    """Search result row for invite lookups."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    display_name: str
    avatar: Optional[str] = None
    rating: int = 0


class UpdateProfileRequest(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=64)
    avatar: Optional[str] = None
