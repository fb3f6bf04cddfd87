"""Goal template models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from goals.types.base import ApiModel
from goals.types.goal import GoalCategory, GoalFrequency, GoalType

Difficulty = Literal["beginner", "intermediate", "advanced"]


class TemplateMilestone(ApiModel):
    """Milestone blueprint; gains an id and completion state on instantiation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str
    target_value: float | None = None


class GoalTemplate(ApiModel):
    """Read-only catalog blueprint for a goal."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    title: str
    description: str = ""
    category: GoalCategory
    type: GoalType
    difficulty: Difficulty = "beginner"
    tags: list[str] = Field(default_factory=list)
    default_target_value: float | None = None
    unit: str | None = None
    default_duration: int | None = Field(default=None, ge=0)
    suggested_frequency: GoalFrequency | None = None
    default_milestones: list[TemplateMilestone] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
