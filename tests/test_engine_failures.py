"""Engine behaviour when the backing store fails."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pytest

from goals.engine import GoalEngine
from goals.profiles import ProfileProvider
from goals.stores.record_store import PersistenceError, RecordStore, SQLRecordStore
from goals.stores.sql_store import SQLStore
from goals.templates import TemplateCatalog
from goals.types import GoalInput, GoalPatch


class BrokenStore(RecordStore):
    """Every operation fails."""

    def select(self, table: str, user_id: str | None, **kwargs: Any) -> list[dict[str, Any]]:
        raise PersistenceError("store offline")

    def select_one(self, table: str, user_id: str | None, record_id: Any) -> dict[str, Any] | None:
        raise PersistenceError("store offline")

    def insert(self, table: str, record: Any) -> dict[str, Any]:
        raise PersistenceError("store offline")

    def update(self, table: str, user_id: str | None, record_id: Any, fields: Any, expected_version: int | None = None) -> Any:
        raise PersistenceError("store offline")

    def delete(self, table: str, user_id: str | None, record_id: Any) -> bool:
        raise PersistenceError("store offline")


class HistoryOfflineStore(SQLRecordStore):
    """Goal writes succeed; history inserts fail."""

    def insert(self, table: str, record: Any) -> dict[str, Any]:
        if table == "goal_progress_history":
            raise PersistenceError("history offline")
        return super().insert(table, record)


def build_engine(store: RecordStore) -> GoalEngine:
    return GoalEngine(store=store, profiles=ProfileProvider(store), catalog=TemplateCatalog(store))


def test_failures_surface_as_empty_results(caplog: pytest.LogCaptureFixture) -> None:
    engine = build_engine(BrokenStore())
    goal = GoalInput(title="Stretch", category="wellness", type="habit")

    with caplog.at_level(logging.ERROR, logger="ge"):
        assert engine.get_goals("u") == []
        assert engine.get_goal("u", "g") is None
        assert engine.create_goal("u", goal) is None
        assert engine.update_goal("u", "g", GoalPatch(title="x")) is None
        assert engine.delete_goal("u", "g") is False
        assert engine.track_goal_progress("u", "g", 1) is None
        assert engine.get_goal_progress_history("u", "g") == []
        assert engine.update_goal_milestone("u", "g", "m", True) is None
        assert engine.update_goal_streak("u", "g", 1) is None
        assert engine.list_goal_templates() == []
        assert engine.get_recommended_goal_templates("u") == []
        assert engine.create_goal_from_template("u", "t") is None

    assert any("store offline" in record.getMessage() for record in caplog.records)


def test_goal_update_stands_when_history_append_fails(tmp_path: Path) -> None:
    sql_store = SQLStore(db_path=tmp_path / "goals.db")
    sql_store.create_all()
    engine = build_engine(HistoryOfflineStore(sql_store))
    goal = engine.create_goal("u", GoalInput(title="Pushups", category="fitness", type="challenge", target_value=100))
    assert goal is not None

    updated = engine.track_goal_progress("u", goal.id, 25)

    assert updated is not None
    assert updated.current_value == 25
    assert updated.progress == 25
    assert engine.get_goal_progress_history("u", goal.id) == []


def test_not_found_is_logged_as_warning(caplog: pytest.LogCaptureFixture, tmp_path: Path) -> None:
    sql_store = SQLStore(db_path=tmp_path / "goals.db")
    sql_store.create_all()
    engine = build_engine(SQLRecordStore(sql_store))

    with caplog.at_level(logging.WARNING, logger="ge"):
        assert engine.update_goal("u", "missing", GoalPatch(title="x")) is None

    warnings = [r for r in caplog.records if r.name == "ge.engine"]
    assert warnings and all(r.levelno == logging.WARNING for r in warnings)
