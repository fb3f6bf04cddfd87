"""Progress tracking and history tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from goals.engine import GoalEngine
from goals.profiles import ProfileProvider
from goals.stores.record_store import RecordStore, SQLRecordStore, StaleRecordError
from goals.stores.sql_store import SQLStore
from goals.templates import TemplateCatalog
from goals.types import GoalInput
from governance.audit_logger import AuditLogger


def build_engine(tmp_path: Path, store: RecordStore | None = None, audit: bool = False) -> GoalEngine:
    if store is None:
        sql_store = SQLStore(db_path=tmp_path / "goals.db")
        sql_store.create_all()
        store = SQLRecordStore(sql_store)
    return GoalEngine(
        store=store,
        profiles=ProfileProvider(store),
        catalog=TemplateCatalog(store),
        audit_logger=AuditLogger(tmp_path / "audit.jsonl") if audit else None,
    )


def sql_record_store(tmp_path: Path) -> SQLRecordStore:
    sql_store = SQLStore(db_path=tmp_path / "goals.db")
    sql_store.create_all()
    return SQLRecordStore(sql_store)


def ten_reps() -> GoalInput:
    return GoalInput(title="Ten workouts", category="fitness", type="challenge", target_value=10)


def test_tracking_to_target_completes_goal(tmp_path: Path) -> None:
    engine = build_engine(tmp_path)
    goal = engine.create_goal("u", ten_reps())
    assert goal is not None
    assert goal.progress == 0
    assert goal.status == "not_started"

    first = engine.track_goal_progress("u", goal.id, 4)
    assert first is not None
    assert first.current_value == 4
    assert first.progress == 40

    second = engine.track_goal_progress("u", goal.id, 6)
    assert second is not None
    assert second.current_value == 10
    assert second.progress == 100
    assert second.status == "completed"
    assert second.completed_date is not None

    history = engine.get_goal_progress_history("u", goal.id)
    assert [entry.value for entry in history] == [6, 4]


def test_deltas_accumulate_including_negative_corrections(tmp_path: Path) -> None:
    engine = build_engine(tmp_path)
    goal = engine.create_goal("u", ten_reps())
    assert goal is not None

    engine.track_goal_progress("u", goal.id, 3)
    engine.track_goal_progress("u", goal.id, 2.5)
    corrected = engine.track_goal_progress("u", goal.id, -1.5)

    assert corrected is not None
    assert corrected.current_value == 4
    assert corrected.progress == 40
    assert corrected.status == "not_started"


def test_progress_clamped_when_overshooting_or_going_negative(tmp_path: Path) -> None:
    engine = build_engine(tmp_path)
    goal = engine.create_goal("u", ten_reps())
    assert goal is not None

    below = engine.track_goal_progress("u", goal.id, -5)
    assert below is not None
    assert below.current_value == -5
    assert below.progress == 0

    above = engine.track_goal_progress("u", goal.id, 50)
    assert above is not None
    assert above.progress == 100
    assert above.status == "completed"


def test_completed_date_is_kept_once_completed(tmp_path: Path) -> None:
    engine = build_engine(tmp_path)
    goal = engine.create_goal("u", ten_reps())
    assert goal is not None

    done = engine.track_goal_progress("u", goal.id, 10)
    again = engine.track_goal_progress("u", goal.id, 2)

    assert done is not None and again is not None
    assert again.status == "completed"
    assert again.completed_date == done.completed_date


def test_progress_without_target_keeps_previous_progress(tmp_path: Path) -> None:
    engine = build_engine(tmp_path)
    goal = engine.create_goal("u", GoalInput(title="Journal", category="wellness", type="habit"))
    assert goal is not None

    tracked = engine.track_goal_progress("u", goal.id, 1)

    assert tracked is not None
    assert tracked.current_value == 1
    assert tracked.progress == 0
    assert tracked.status == "not_started"


def test_history_is_append_only_and_newest_first(tmp_path: Path) -> None:
    engine = build_engine(tmp_path)
    goal = engine.create_goal("u", ten_reps())
    assert goal is not None

    calls = [(1, "warm-up"), (2, None), (0.5, "short session")]
    for value, note in calls:
        engine.track_goal_progress("u", goal.id, value, note=note)

    history = engine.get_goal_progress_history("u", goal.id, limit=3)

    assert [(entry.value, entry.note) for entry in history] == list(reversed(calls))
    assert all(entry.goal_id == goal.id and entry.user_id == "u" for entry in history)
    assert engine.get_goal_progress_history("u", goal.id, limit=2)[0].note == "short session"
    assert len(engine.get_goal_progress_history("u", goal.id, limit=2)) == 2
    assert engine.get_goal_progress_history("other", goal.id) == []


def test_tracking_missing_goal_writes_nothing(tmp_path: Path) -> None:
    engine = build_engine(tmp_path)

    assert engine.track_goal_progress("u", "missing", 5) is None
    assert engine.get_goal_progress_history("u", "missing") == []


def test_history_entry_and_goal_write_share_correlation_id(tmp_path: Path) -> None:
    engine = build_engine(tmp_path, audit=True)
    goal = engine.create_goal("u", ten_reps())
    assert goal is not None

    engine.track_goal_progress("u", goal.id, 3, note="tempo run")

    entry = engine.get_goal_progress_history("u", goal.id)[0]
    assert entry.correlation_id
    assert engine.audit_logger is not None
    events = engine.audit_logger.read(correlation_id=entry.correlation_id)
    assert [e["action"] for e in events] == ["goal_progress_update", "goal_progress_history"]
    assert [e["outcome"] for e in events] == ["updated", "appended"]


class RacingStore(SQLRecordStore):
    """Applies a competing write just before the first versioned update."""

    def __init__(self, inner: SQLRecordStore, competing_delta: float) -> None:
        super().__init__(inner.sql_store)
        self.competing_delta = competing_delta
        self.raced = False

    def update(self, table: str, user_id: str | None, record_id: Any, fields: Any, expected_version: int | None = None) -> Any:
        if expected_version is not None and not self.raced:
            self.raced = True
            current = super().select_one(table, user_id, record_id)
            assert current is not None
            super().update(
                table,
                user_id,
                record_id,
                {"current_value": current["current_value"] + self.competing_delta},
            )
        return super().update(table, user_id, record_id, fields, expected_version=expected_version)


def test_concurrent_delta_is_not_lost(tmp_path: Path) -> None:
    store = RacingStore(sql_record_store(tmp_path), competing_delta=2)
    engine = build_engine(tmp_path, store=store)
    goal = engine.create_goal("u", ten_reps())
    assert goal is not None

    updated = engine.track_goal_progress("u", goal.id, 3)

    assert store.raced is True
    assert updated is not None
    assert updated.current_value == 5
    assert updated.progress == 50


class AlwaysStaleStore(SQLRecordStore):
    def __init__(self, inner: SQLRecordStore) -> None:
        super().__init__(inner.sql_store)
        self.attempts = 0

    def update(self, table: str, user_id: str | None, record_id: Any, fields: Any, expected_version: int | None = None) -> Any:
        if expected_version is not None:
            self.attempts += 1
            raise StaleRecordError("always stale")
        return super().update(table, user_id, record_id, fields)


def test_gives_up_after_retries_but_still_records_history(tmp_path: Path) -> None:
    store = AlwaysStaleStore(sql_record_store(tmp_path))
    engine = build_engine(tmp_path, store=store)
    goal = engine.create_goal("u", ten_reps())
    assert goal is not None

    assert engine.track_goal_progress("u", goal.id, 4) is None

    assert store.attempts == engine.max_track_retries
    stored = engine.get_goal("u", goal.id)
    assert stored is not None and stored.current_value == 0
    history = engine.get_goal_progress_history("u", goal.id)
    assert [entry.value for entry in history] == [4]
