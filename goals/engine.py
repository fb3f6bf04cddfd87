"""Goal engine: lifecycle, progress tracking, milestones and templates."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from pydantic import ValidationError

from goals.mapping import (
    goal_from_record,
    goal_input_to_record,
    history_from_record,
    patch_to_record,
)
from goals.profiles import ProfileProvider
from goals.progress import compute_progress, initial_progress
from goals.schemas import utc_now
from goals.stores.record_store import PersistenceError, RecordStore, StaleRecordError
from goals.templates import TemplateCatalog, instantiate_template, personalize_templates
from goals.types import (
    Goal,
    GoalFilters,
    GoalInput,
    GoalPatch,
    GoalProgressHistoryEntry,
    GoalTemplate,
)
from governance.audit_logger import AuditLogger

logger = logging.getLogger("ge.engine")

GOALS_TABLE = "user_goals"
HISTORY_TABLE = "goal_progress_history"

PRIORITY_RANK = {"high": 2, "medium": 1, "low": 0}
SEARCH_FIELDS = ("title", "description")


class GoalEngine:
    """Owns the lifecycle of users' goals over a RecordStore.

    Every operation absorbs persistence failures at this boundary: they are
    logged and surfaced as ``None``, ``[]`` or ``False``.
    """

    def __init__(
        self,
        store: RecordStore,
        profiles: ProfileProvider,
        catalog: TemplateCatalog,
        audit_logger: AuditLogger | None = None,
        max_track_retries: int = 3,
        history_limit: int = 10,
    ) -> None:
        self.store = store
        self.profiles = profiles
        self.catalog = catalog
        self.audit_logger = audit_logger
        self.max_track_retries = max(1, max_track_retries)
        self.history_limit = history_limit

    # ── Goals ────────────────────────────────────────────────────────

    def get_goals(self, user_id: str, filters: GoalFilters | None = None) -> list[Goal]:
        """List the user's goals matching all filters, highest priority and newest first."""
        filters = filters or GoalFilters()
        equality = filters.model_dump(exclude_none=True, exclude={"search"})
        try:
            rows = self.store.select(
                GOALS_TABLE,
                user_id,
                filters=equality,
                order_by=[("start_date", True)],
                search=filters.search or None,
                search_fields=SEARCH_FIELDS,
            )
            goals = [goal_from_record(row) for row in rows]
        except (PersistenceError, ValidationError) as exc:
            logger.error("Failed to fetch goals for user %s: %s", user_id, exc)
            return []
        # Stable sort keeps the start_date ordering within a priority.
        goals.sort(key=lambda g: PRIORITY_RANK.get(g.priority, 0), reverse=True)
        return goals

    def _fetch_goal(self, user_id: str, goal_id: str) -> Goal | None:
        row = self.store.select_one(GOALS_TABLE, user_id, goal_id)
        return goal_from_record(row) if row is not None else None

    def get_goal(self, user_id: str, goal_id: str) -> Goal | None:
        """Return the goal if it exists and belongs to the user."""
        try:
            return self._fetch_goal(user_id, goal_id)
        except (PersistenceError, ValidationError) as exc:
            logger.error("Failed to fetch goal %s for user %s: %s", goal_id, user_id, exc)
            return None

    def create_goal(self, user_id: str, goal: GoalInput) -> Goal | None:
        """Persist a new goal with derived initial progress."""
        record = goal_input_to_record(
            user_id, goal, progress=initial_progress(goal.current_value, goal.target_value)
        )
        try:
            stored = self.store.insert(GOALS_TABLE, record)
            created = goal_from_record(stored)
        except (PersistenceError, ValidationError) as exc:
            logger.error("Failed to create goal for user %s: %s", user_id, exc)
            return None
        logger.info("Created goal %s for user %s", created.id, user_id)
        return created

    def update_goal(self, user_id: str, goal_id: str, updates: GoalPatch) -> Goal | None:
        """Apply a partial update, re-deriving progress and completion where needed."""
        try:
            return self._write_update(user_id, goal_id, updates)
        except (PersistenceError, ValidationError) as exc:
            logger.error("Failed to update goal %s for user %s: %s", goal_id, user_id, exc)
            return None

    def _write_update(
        self,
        user_id: str,
        goal_id: str,
        updates: GoalPatch,
        existing: Goal | None = None,
        expected_version: int | None = None,
    ) -> Goal | None:
        fields = patch_to_record(updates)

        values_changed = updates.supplied("current_value") or updates.supplied("target_value")
        if values_changed and not updates.supplied("progress"):
            current = existing or self._fetch_goal(user_id, goal_id)
            if current is not None:
                current_value = updates.current_value if updates.supplied("current_value") else current.current_value
                target_value = updates.target_value if updates.supplied("target_value") else current.target_value
                derived = compute_progress(current_value, target_value)
                if derived is not None:
                    fields["progress"] = derived

        if fields.get("progress") == 100 and updates.status != "completed":
            fields["status"] = "completed"
            fields["completed_date"] = utc_now()

        row = self.store.update(GOALS_TABLE, user_id, goal_id, fields, expected_version=expected_version)
        if row is None:
            logger.warning("Goal %s not found for user %s", goal_id, user_id)
            return None
        return goal_from_record(row)

    def delete_goal(self, user_id: str, goal_id: str) -> bool:
        """Delete one goal; False when nothing was deleted."""
        try:
            deleted = self.store.delete(GOALS_TABLE, user_id, goal_id)
        except PersistenceError as exc:
            logger.error("Failed to delete goal %s for user %s: %s", goal_id, user_id, exc)
            return False
        if not deleted:
            logger.warning("Goal %s not found for user %s", goal_id, user_id)
        return deleted

    # ── Progress ─────────────────────────────────────────────────────

    def track_goal_progress(
        self,
        user_id: str,
        goal_id: str,
        value: float,
        note: str | None = None,
    ) -> Goal | None:
        """Add ``value`` to the goal's current value and log it to the progress history.

        The goal write is a version compare-and-swap retried on conflict. The
        history append is a separate write made whether or not the goal write
        succeeded; both carry the same correlation id.
        """
        correlation_id = uuid.uuid4().hex
        updated: Goal | None = None
        outcome = "failed"

        for attempt in range(1, self.max_track_retries + 1):
            try:
                goal = self._fetch_goal(user_id, goal_id)
            except (PersistenceError, ValidationError) as exc:
                logger.error("Failed to load goal %s for progress tracking: %s", goal_id, exc)
                return None
            if goal is None:
                logger.warning("Goal %s not found for user %s", goal_id, user_id)
                return None

            new_current = (goal.current_value or 0) + value
            new_progress = goal.progress
            derived = compute_progress(new_current, goal.target_value)
            if derived is not None:
                new_progress = derived

            status = goal.status
            completed_date = goal.completed_date
            if new_progress >= 100 and goal.status != "completed":
                status = "completed"
                completed_date = utc_now()

            patch = GoalPatch(
                current_value=new_current,
                progress=new_progress,
                status=status,
                completed_date=completed_date,
            )
            try:
                updated = self._write_update(
                    user_id, goal_id, patch, existing=goal, expected_version=goal.version
                )
                outcome = "updated" if updated is not None else "not_found"
                break
            except StaleRecordError:
                logger.info(
                    "Goal %s changed concurrently, retrying progress update (attempt %d/%d)",
                    goal_id,
                    attempt,
                    self.max_track_retries,
                )
            except (PersistenceError, ValidationError) as exc:
                logger.error("Failed to update progress of goal %s: %s", goal_id, exc)
                break
        else:
            outcome = "conflict"
            logger.error(
                "Gave up updating goal %s after %d concurrent modifications",
                goal_id,
                self.max_track_retries,
            )

        self._audit("goal_progress_update", user_id, goal_id, correlation_id, outcome, {"value": value})
        self._append_history(user_id, goal_id, value, note, correlation_id)
        return updated

    def _append_history(
        self,
        user_id: str,
        goal_id: str,
        value: float,
        note: str | None,
        correlation_id: str,
    ) -> None:
        record: dict[str, Any] = {
            "user_id": user_id,
            "goal_id": goal_id,
            "value": value,
            "note": note,
            "correlation_id": correlation_id,
            "created_at": utc_now(),
        }
        try:
            stored = self.store.insert(HISTORY_TABLE, record)
        except PersistenceError as exc:
            logger.error(
                "Failed to append progress history for goal %s (correlation %s): %s",
                goal_id,
                correlation_id,
                exc,
            )
            self._audit("goal_progress_history", user_id, goal_id, correlation_id, "failed", {"value": value})
            return
        self._audit(
            "goal_progress_history",
            user_id,
            goal_id,
            correlation_id,
            "appended",
            {"value": value, "history_id": stored.get("id")},
        )

    def _audit(
        self,
        action: str,
        user_id: str,
        goal_id: str,
        correlation_id: str,
        outcome: str,
        details: dict[str, Any],
    ) -> None:
        if self.audit_logger is not None:
            self.audit_logger.log(action, user_id, goal_id, correlation_id, outcome, details)

    def get_goal_progress_history(
        self,
        user_id: str,
        goal_id: str,
        limit: int | None = None,
    ) -> list[GoalProgressHistoryEntry]:
        """Most recent history entries for a goal, newest first."""
        try:
            rows = self.store.select(
                HISTORY_TABLE,
                user_id,
                filters={"goal_id": goal_id},
                order_by=[("created_at", True), ("id", True)],
                limit=self.history_limit if limit is None else limit,
            )
            return [history_from_record(row) for row in rows]
        except (PersistenceError, ValidationError) as exc:
            logger.error("Failed to fetch progress history of goal %s: %s", goal_id, exc)
            return []

    # ── Milestones & streaks ─────────────────────────────────────────

    def update_goal_milestone(
        self,
        user_id: str,
        goal_id: str,
        milestone_id: str,
        completed: bool,
    ) -> Goal | None:
        """Mark one milestone (in)complete. Goal progress and status are not touched."""
        goal = self.get_goal(user_id, goal_id)
        if goal is None or not goal.milestones:
            logger.warning("Goal %s not found or has no milestones", goal_id)
            return None
        if not any(m.id == milestone_id for m in goal.milestones):
            logger.warning("Milestone %s not found on goal %s", milestone_id, goal_id)
            return None

        now = utc_now()
        milestones = []
        for milestone in goal.milestones:
            if milestone.id == milestone_id:
                if completed:
                    completed_date = milestone.completed_date if milestone.completed else now
                else:
                    completed_date = None
                milestone = milestone.model_copy(
                    update={"completed": completed, "completed_date": completed_date}
                )
            milestones.append(milestone)
        return self.update_goal(user_id, goal_id, GoalPatch(milestones=milestones))

    def update_goal_streak(self, user_id: str, goal_id: str, streak_current: int) -> Goal | None:
        """Set the current streak; the longest streak only ever grows."""
        if streak_current < 0:
            raise ValueError("streak_current must be >= 0")
        goal = self.get_goal(user_id, goal_id)
        if goal is None:
            logger.warning("Goal %s not found for user %s", goal_id, user_id)
            return None
        return self.update_goal(
            user_id,
            goal_id,
            GoalPatch(
                streak_current=streak_current,
                streak_longest=max(goal.streak_longest, streak_current),
            ),
        )

    # ── Templates ────────────────────────────────────────────────────

    def list_goal_templates(self) -> list[GoalTemplate]:
        try:
            return self.catalog.list_templates()
        except (PersistenceError, ValidationError) as exc:
            logger.error("Failed to load goal templates: %s", exc)
            return []

    def get_recommended_goal_templates(self, user_id: str) -> list[GoalTemplate]:
        """Templates matching the user's training goals and level."""
        profile = self.profiles.get_profile(user_id)
        if profile is None:
            logger.warning("No profile for user %s; cannot recommend templates", user_id)
            return []
        try:
            templates = self.catalog.list_templates()
        except (PersistenceError, ValidationError) as exc:
            logger.error("Failed to load goal templates: %s", exc)
            return []
        return personalize_templates(templates, profile)

    def create_goal_from_template(
        self,
        user_id: str,
        template_id: str,
        customizations: GoalPatch | None = None,
    ) -> Goal | None:
        """Instantiate a catalog template as a new goal for the user."""
        try:
            template = self.catalog.get_template(template_id)
        except (PersistenceError, ValidationError) as exc:
            logger.error("Failed to load goal template %s: %s", template_id, exc)
            return None
        if template is None:
            logger.warning("Goal template %s not found", template_id)
            return None
        try:
            goal_input = instantiate_template(template, customizations)
        except ValidationError as exc:
            logger.error("Template %s produced an invalid goal: %s", template_id, exc)
            return None
        return self.create_goal(user_id, goal_input)
