"""Goal models."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any, Literal

from pydantic import Field

from goals.types.base import ApiModel

GoalCategory = Literal["fitness", "nutrition", "wellness", "custom"]
GoalType = Literal["habit", "milestone", "challenge"]
GoalStatus = Literal["not_started", "in_progress", "completed", "failed", "abandoned"]
GoalPriority = Literal["low", "medium", "high"]
GoalFrequency = Literal["daily", "weekly", "monthly", "once"]


def utc_today() -> date:
    """Return the current UTC calendar date."""
    return datetime.now(UTC).date()


class Milestone(ApiModel):
    """Named checkpoint owned by a single goal."""

    id: str
    title: str
    target_value: float | None = None
    completed: bool = False
    completed_date: datetime | None = None


class GoalInput(ApiModel):
    """Goal fields a caller supplies on creation."""

    title: str
    description: str = ""
    category: GoalCategory
    type: GoalType
    target_value: float | None = None
    current_value: float | None = 0
    unit: str | None = None
    start_date: date = Field(default_factory=utc_today)
    target_date: date | None = None
    completed_date: datetime | None = None
    status: GoalStatus | None = None
    priority: GoalPriority = "medium"
    frequency: GoalFrequency | None = None
    reminder_enabled: bool = False
    reminder_time: str | None = None
    reminder_days: list[str] | None = None
    tags: list[str] = Field(default_factory=list)
    related_goals: list[str] = Field(default_factory=list)
    milestones: list[Milestone] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class Goal(GoalInput):
    """Stored goal as returned by the engine."""

    id: str
    user_id: str
    status: GoalStatus = "not_started"
    progress: int = Field(default=0, ge=0, le=100)
    streak_current: int = Field(default=0, ge=0)
    streak_longest: int = Field(default=0, ge=0)
    version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GoalPatch(ApiModel):
    """Partial update; only fields present in ``model_fields_set`` are written."""

    title: str | None = None
    description: str | None = None
    category: GoalCategory | None = None
    type: GoalType | None = None
    target_value: float | None = None
    current_value: float | None = None
    unit: str | None = None
    start_date: date | None = None
    target_date: date | None = None
    completed_date: datetime | None = None
    status: GoalStatus | None = None
    priority: GoalPriority | None = None
    frequency: GoalFrequency | None = None
    reminder_enabled: bool | None = None
    reminder_time: str | None = None
    reminder_days: list[str] | None = None
    tags: list[str] | None = None
    related_goals: list[str] | None = None
    milestones: list[Milestone] | None = None
    progress: int | None = Field(default=None, ge=0, le=100)
    streak_current: int | None = Field(default=None, ge=0)
    streak_longest: int | None = Field(default=None, ge=0)
    metadata: dict[str, Any] | None = None

    def supplied(self, name: str) -> bool:
        """True when the caller set ``name``, even to None."""
        return name in self.model_fields_set


class GoalFilters(ApiModel):
    """Listing filters, combined with AND."""

    category: GoalCategory | None = None
    status: GoalStatus | None = None
    priority: GoalPriority | None = None
    search: str | None = None
