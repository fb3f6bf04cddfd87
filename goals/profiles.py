"""Profile collaborator: read-only training preferences per user."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from goals.stores.record_store import PersistenceError, RecordStore
from goals.types import TrainingPreferences, UserPreferences, UserProfile

logger = logging.getLogger("ge.profiles")

PROFILES_TABLE = "user_profiles"


class ProfileProvider:
    """Loads user profiles from the ``user_profiles`` table."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def _record(self, user_id: str) -> dict | None:
        rows = self.store.select(PROFILES_TABLE, user_id, limit=1)
        return rows[0] if rows else None

    def get_profile(self, user_id: str) -> UserProfile | None:
        """Return the user's profile, or None if absent or unreadable."""
        try:
            record = self._record(user_id)
        except PersistenceError as exc:
            logger.error("Failed to load profile for user %s: %s", user_id, exc)
            return None
        if record is None:
            return None
        try:
            return UserProfile(
                user_id=user_id,
                preferences=UserPreferences.model_validate(record.get("preferences") or {}),
            )
        except ValidationError as exc:
            logger.error("Stored profile for user %s is malformed: %s", user_id, exc)
            return None

    def save_profile(
        self,
        user_id: str,
        training_goals: list[str],
        training_experience: str = "beginner",
    ) -> UserProfile | None:
        """Create or replace the user's training preferences."""
        preferences = UserPreferences(
            training_preferences=TrainingPreferences(
                training_goals=list(training_goals),
                training_experience=training_experience,
            )
        )
        payload = preferences.model_dump(mode="json", by_alias=True)
        try:
            record = self._record(user_id)
            if record is None:
                self.store.insert(PROFILES_TABLE, {"user_id": user_id, "preferences": payload})
            else:
                self.store.update(PROFILES_TABLE, user_id, record["id"], {"preferences": payload})
        except PersistenceError as exc:
            logger.error("Failed to save profile for user %s: %s", user_id, exc)
            return None
        return UserProfile(user_id=user_id, preferences=preferences)
