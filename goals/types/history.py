"""Progress history models."""

from __future__ import annotations

from datetime import datetime

from goals.types.base import ApiModel


class GoalProgressHistoryEntry(ApiModel):
    """Immutable audit record of one tracked progress delta."""

    id: int
    user_id: str
    goal_id: str
    value: float
    note: str | None = None
    correlation_id: str | None = None
    created_at: datetime
