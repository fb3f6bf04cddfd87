"""Goal template catalog, personalization and instantiation."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import timedelta
from pathlib import Path

import yaml

from goals.mapping import template_from_record, template_to_record
from goals.stores.record_store import RecordStore
from goals.types import GoalInput, GoalPatch, GoalTemplate, Milestone, UserProfile
from goals.types.goal import utc_today

logger = logging.getLogger("ge.templates")

TEMPLATES_TABLE = "goal_templates"
TEMPLATE_ID_KEY = "templateId"

# Difficulties a user of each level may be offered.
DIFFICULTY_ACCESS: dict[str, tuple[str, ...]] = {
    "beginner": ("beginner",),
    "intermediate": ("beginner", "intermediate"),
    "advanced": ("beginner", "intermediate", "advanced"),
}


def load_templates_file(path: Path) -> list[GoalTemplate]:
    """Parse a YAML list of templates; a missing file yields no templates."""
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or []
    if isinstance(data, dict):
        data = data.get("templates", [])
    if not isinstance(data, list):
        raise ValueError(f"Template catalog must contain a list: {path}")
    return [GoalTemplate.model_validate(item) for item in data]


class TemplateCatalog:
    """Read-only access to the ``goal_templates`` table."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def list_templates(self) -> list[GoalTemplate]:
        rows = self.store.select(TEMPLATES_TABLE, None, order_by=[("id", False)])
        return [template_from_record(row) for row in rows]

    def get_template(self, template_id: str) -> GoalTemplate | None:
        row = self.store.select_one(TEMPLATES_TABLE, None, template_id)
        return template_from_record(row) if row is not None else None

    def seed(self, templates: Iterable[GoalTemplate]) -> int:
        """Insert templates whose ids are not yet stored. Returns the number inserted."""
        existing = {row["id"] for row in self.store.select(TEMPLATES_TABLE, None)}
        inserted = 0
        for template in templates:
            if template.id in existing:
                continue
            self.store.insert(TEMPLATES_TABLE, template_to_record(template))
            existing.add(template.id)
            inserted += 1
        if inserted:
            logger.info("Seeded %d goal templates", inserted)
        return inserted


def personalize_templates(templates: list[GoalTemplate], profile: UserProfile) -> list[GoalTemplate]:
    """Filter templates to the user's training goals and level, most relevant first."""
    training_goals = set(profile.preferences.training_preferences.training_goals)
    allowed = DIFFICULTY_ACCESS[profile.fitness_level]

    relevant = []
    for template in templates:
        if template.category == "fitness" and training_goals:
            if not any(tag in training_goals for tag in template.tags):
                continue
        if template.difficulty not in allowed:
            continue
        relevant.append(template)

    return sorted(
        relevant,
        key=lambda t: sum(1 for tag in t.tags if tag in training_goals),
        reverse=True,
    )


def instantiate_template(template: GoalTemplate, customizations: GoalPatch | None = None) -> GoalInput:
    """Build a new goal from ``template``; supplied customizations win over template defaults."""
    custom = customizations or GoalPatch()

    def pick(name: str, fallback: object) -> object:
        value = getattr(custom, name)
        return value if custom.supplied(name) and value is not None else fallback

    start_date = pick("start_date", utc_today())
    target_date = custom.target_date
    if target_date is None and template.default_duration:
        target_date = start_date + timedelta(days=template.default_duration)

    if custom.supplied("milestones") and custom.milestones is not None:
        milestones = list(custom.milestones)
    else:
        milestones = [
            Milestone(id=uuid.uuid4().hex, title=m.title, target_value=m.target_value)
            for m in template.default_milestones
        ]

    metadata = {**template.metadata, **(custom.metadata or {}), TEMPLATE_ID_KEY: template.id}

    return GoalInput(
        title=pick("title", template.title),
        description=pick("description", template.description),
        category=pick("category", template.category),
        type=pick("type", template.type),
        target_value=custom.target_value if custom.supplied("target_value") else template.default_target_value,
        current_value=pick("current_value", 0),
        unit=pick("unit", template.unit),
        start_date=start_date,
        target_date=target_date,
        status=pick("status", "not_started"),
        priority=pick("priority", "medium"),
        frequency=pick("frequency", template.suggested_frequency),
        reminder_enabled=pick("reminder_enabled", True),
        reminder_time=custom.reminder_time,
        reminder_days=custom.reminder_days,
        tags=pick("tags", list(template.tags)),
        related_goals=pick("related_goals", []),
        milestones=milestones,
        metadata=metadata,
    )
