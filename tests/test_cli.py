"""CLI smoke tests against a throwaway runtime root."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from ui.cli.cli import app

CATALOG = """
- id: easy-run
  title: Easy runs
  category: fitness
  type: habit
  difficulty: beginner
  tags: [cardio]
  defaultTargetValue: 12
  unit: runs
  defaultDuration: 28
  defaultMilestones:
    - title: First four
      targetValue: 4
- id: heavy-lift
  title: Heavy lifting
  category: fitness
  type: challenge
  difficulty: advanced
  tags: [strength]
"""

runner = CliRunner()


@pytest.fixture
def root(tmp_path: Path) -> Path:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "default.yaml").write_text("logging:\n  level: WARNING\n", encoding="utf-8")
    (config_dir / "goal_templates.yaml").write_text(CATALOG, encoding="utf-8")
    return tmp_path


def invoke(root: Path, *args: str) -> Any:
    result = runner.invoke(app, ["--root", str(root), *args])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_goal_lifecycle(root: Path) -> None:
    created = invoke(
        root, "goals", "add", "Ten runs", "-u", "u", "--category", "fitness", "--type", "challenge", "--target", "10"
    )
    goal_id = created["id"]
    assert created["progress"] == 0

    tracked = invoke(root, "goals", "track", goal_id, "4", "-u", "u", "--note", "park loop")
    assert tracked["currentValue"] == 4
    assert tracked["progress"] == 40

    history = invoke(root, "goals", "history", goal_id, "-u", "u")
    assert [(h["value"], h["note"]) for h in history] == [(4, "park loop")]

    updated = invoke(root, "goals", "update", goal_id, "-u", "u", "--current", "10")
    assert updated["status"] == "completed"

    listed = invoke(root, "goals", "list", "-u", "u", "--status", "completed")
    assert [g["id"] for g in listed] == [goal_id]

    result = runner.invoke(app, ["--root", str(root), "goals", "delete", goal_id, "-u", "u"])
    assert result.exit_code == 0
    assert invoke(root, "goals", "list", "-u", "u") == []
    assert (root / "logs" / "goal_audit.jsonl").exists()


def test_missing_goal_exits_with_error(root: Path) -> None:
    result = runner.invoke(app, ["--root", str(root), "goals", "show", "missing", "-u", "u"])
    assert result.exit_code == 1


def test_invalid_input_exits_with_validation_error(root: Path) -> None:
    result = runner.invoke(app, ["--root", str(root), "goals", "add", "Bad", "-u", "u", "--category", "hobby"])
    assert result.exit_code == 2


def test_templates_and_profile(root: Path) -> None:
    listed = invoke(root, "templates", "list")
    assert [t["id"] for t in listed] == ["easy-run", "heavy-lift"]

    assert invoke(root, "templates", "recommend", "-u", "u") == []
    profile = invoke(root, "profile", "set", "-u", "u", "--goal", "cardio", "--goal", "strength")
    assert profile["preferences"]["trainingPreferences"]["trainingGoals"] == ["cardio", "strength"]

    recommended = invoke(root, "templates", "recommend", "-u", "u")
    assert [t["id"] for t in recommended] == ["easy-run"]

    goal = invoke(root, "templates", "use", "easy-run", "-u", "u", "--priority", "high")
    assert goal["priority"] == "high"
    assert goal["metadata"]["templateId"] == "easy-run"
    milestone_id = goal["milestones"][0]["id"]

    done = invoke(root, "goals", "milestone", goal["id"], milestone_id, "-u", "u")
    assert done["milestones"][0]["completed"] is True

    streak = invoke(root, "goals", "streak", goal["id"], "3", "-u", "u")
    assert (streak["streakCurrent"], streak["streakLongest"]) == (3, 3)


def test_config_show_merges_defaults(root: Path) -> None:
    config = invoke(root, "config", "show")
    assert config["logging"]["level"] == "WARNING"
    assert config["engine"]["max_track_retries"] == 3
