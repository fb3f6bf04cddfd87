"""Mapping between stored records and goal models.

Records use the flattened storage column names (``metadata_json`` for the
metadata bag). Nested milestone and template-milestone lists are stored in
their camelCase API shape so that rows written by other clients of the same
tables stay readable.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from goals.types import (
    Goal,
    GoalInput,
    GoalPatch,
    GoalProgressHistoryEntry,
    GoalTemplate,
    Milestone,
    TemplateMilestone,
)

METADATA_COLUMN = "metadata_json"


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def dump_milestones(milestones: list[Milestone] | list[TemplateMilestone]) -> list[dict[str, Any]]:
    return [m.model_dump(mode="json", by_alias=True, exclude_none=True) for m in milestones]


def goal_input_to_record(user_id: str, goal: GoalInput, progress: int) -> dict[str, Any]:
    """Build the insert record for a new goal."""
    data = goal.model_dump(exclude={"milestones", "metadata"})
    data.update(
        user_id=user_id,
        current_value=goal.current_value or 0,
        status=goal.status or "not_started",
        milestones=dump_milestones(goal.milestones),
        progress=progress,
        streak_current=0,
        streak_longest=0,
    )
    data[METADATA_COLUMN] = dict(goal.metadata)
    return data


def patch_to_record(patch: GoalPatch) -> dict[str, Any]:
    """Only the fields the caller supplied, renamed to storage columns."""
    data = patch.model_dump(exclude_unset=True, exclude={"milestones", "metadata"})
    if patch.supplied("milestones"):
        data["milestones"] = dump_milestones(patch.milestones or [])
    if patch.supplied("metadata"):
        data[METADATA_COLUMN] = dict(patch.metadata or {})
    return data


def goal_from_record(record: dict[str, Any]) -> Goal:
    data = dict(record)
    data["metadata"] = data.pop(METADATA_COLUMN, None) or {}
    data["tags"] = data.get("tags") or []
    data["related_goals"] = data.get("related_goals") or []
    data["milestones"] = data.get("milestones") or []
    for name in ("completed_date", "created_at", "updated_at"):
        data[name] = as_utc(data.get(name))
    return Goal.model_validate(data)


def template_from_record(record: dict[str, Any]) -> GoalTemplate:
    data = dict(record)
    data["metadata"] = data.pop(METADATA_COLUMN, None) or {}
    data["tags"] = data.get("tags") or []
    data["default_milestones"] = data.get("default_milestones") or []
    return GoalTemplate.model_validate(data)


def template_to_record(template: GoalTemplate) -> dict[str, Any]:
    data = template.model_dump(exclude={"default_milestones", "metadata"})
    data["default_milestones"] = dump_milestones(template.default_milestones)
    data[METADATA_COLUMN] = dict(template.metadata)
    return data


def history_from_record(record: dict[str, Any]) -> GoalProgressHistoryEntry:
    data = dict(record)
    data["created_at"] = as_utc(data.get("created_at"))
    return GoalProgressHistoryEntry.model_validate(data)
