"""Typed goal payload models."""

from goals.types.goal import (
    Goal,
    GoalFilters,
    GoalInput,
    GoalPatch,
    Milestone,
)
from goals.types.history import GoalProgressHistoryEntry
from goals.types.profile import TrainingPreferences, UserPreferences, UserProfile
from goals.types.template import GoalTemplate, TemplateMilestone

__all__ = [
    "Goal",
    "GoalFilters",
    "GoalInput",
    "GoalPatch",
    "Milestone",
    "GoalProgressHistoryEntry",
    "GoalTemplate",
    "TemplateMilestone",
    "TrainingPreferences",
    "UserPreferences",
    "UserProfile",
]
