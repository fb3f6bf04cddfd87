"""User profile models read for template personalization."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from goals.types.base import ApiModel

FITNESS_LEVELS = ("beginner", "intermediate", "advanced")


class TrainingPreferences(ApiModel):
    """Training goals and experience level."""

    training_goals: list[str] = Field(default_factory=list)
    training_experience: str = "beginner"

    @field_validator("training_goals", mode="before")
    @classmethod
    def _null_goals(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("training_experience", mode="before")
    @classmethod
    def _null_experience(cls, value: Any) -> Any:
        return "beginner" if value is None else value


class UserPreferences(ApiModel):
    """Preference bag; only training preferences are read here."""

    training_preferences: TrainingPreferences = Field(default_factory=TrainingPreferences)

    @field_validator("training_preferences", mode="before")
    @classmethod
    def _null_training(cls, value: Any) -> Any:
        return {} if value is None else value


class UserProfile(ApiModel):
    """Profile of a single user."""

    user_id: str
    preferences: UserPreferences = Field(default_factory=UserPreferences)

    @property
    def fitness_level(self) -> str:
        level = self.preferences.training_preferences.training_experience
        return level if level in FITNESS_LEVELS else "beginner"
