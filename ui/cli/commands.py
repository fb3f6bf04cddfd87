"""Typer command handlers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NoReturn

import typer
from pydantic import BaseModel, ValidationError

from core.orchestrator import Orchestrator, RuntimeBundle
from goals.types import GoalFilters, GoalInput, GoalPatch

_root: Path | None = None


def set_root(root: Path | None) -> None:
    global _root
    _root = root


def _runtime() -> RuntimeBundle:
    return Orchestrator(root=_root).build()


def _emit(payload: object) -> None:
    typer.echo(json.dumps(_json_safe(payload), indent=2))


def _fail(message: str) -> NoReturn:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


def _build(model: type[BaseModel], **fields: Any) -> Any:
    try:
        return model(**fields)
    except ValidationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc


def goals_add(
    user: str,
    title: str,
    category: str,
    goal_type: str,
    description: str,
    target: float | None,
    current: float,
    unit: str | None,
    priority: str,
    tags: list[str],
) -> None:
    """Create a goal."""
    goal_input = _build(
        GoalInput,
        title=title,
        category=category,
        type=goal_type,
        description=description,
        target_value=target,
        current_value=current,
        unit=unit,
        priority=priority,
        tags=tags,
    )
    goal = _runtime().engine.create_goal(user, goal_input)
    if goal is None:
        _fail("Could not create goal.")
    _emit(goal)


def goals_list(
    user: str,
    category: str | None,
    status: str | None,
    priority: str | None,
    search: str | None,
) -> None:
    """List goals."""
    filters = _build(GoalFilters, category=category, status=status, priority=priority, search=search)
    _emit(_runtime().engine.get_goals(user, filters))


def goals_show(user: str, goal_id: str) -> None:
    """Show one goal."""
    goal = _runtime().engine.get_goal(user, goal_id)
    if goal is None:
        _fail(f"Goal {goal_id} not found.")
    _emit(goal)


def goals_update(
    user: str,
    goal_id: str,
    title: str | None,
    target: float | None,
    current: float | None,
    status: str | None,
    priority: str | None,
) -> None:
    """Update only the options given on the command line."""
    supplied = {
        "title": title,
        "target_value": target,
        "current_value": current,
        "status": status,
        "priority": priority,
    }
    patch = _build(GoalPatch, **{k: v for k, v in supplied.items() if v is not None})
    goal = _runtime().engine.update_goal(user, goal_id, patch)
    if goal is None:
        _fail(f"Could not update goal {goal_id}.")
    _emit(goal)


def goals_track(user: str, goal_id: str, value: float, note: str | None) -> None:
    """Record a progress delta."""
    goal = _runtime().engine.track_goal_progress(user, goal_id, value, note=note)
    if goal is None:
        _fail(f"Could not record progress on goal {goal_id}.")
    _emit(goal)


def goals_history(user: str, goal_id: str, limit: int) -> None:
    """Show progress history."""
    _emit(_runtime().engine.get_goal_progress_history(user, goal_id, limit=limit))


def goals_milestone(user: str, goal_id: str, milestone_id: str, completed: bool) -> None:
    """Toggle a milestone."""
    goal = _runtime().engine.update_goal_milestone(user, goal_id, milestone_id, completed)
    if goal is None:
        _fail(f"Could not update milestone {milestone_id} on goal {goal_id}.")
    _emit(goal)


def goals_streak(user: str, goal_id: str, streak: int) -> None:
    """Set the current streak."""
    goal = _runtime().engine.update_goal_streak(user, goal_id, streak)
    if goal is None:
        _fail(f"Could not update streak on goal {goal_id}.")
    _emit(goal)


def goals_delete(user: str, goal_id: str) -> None:
    """Delete a goal."""
    if not _runtime().engine.delete_goal(user, goal_id):
        _fail(f"Could not delete goal {goal_id}.")
    typer.echo(f"Deleted goal: {goal_id}")


def templates_list() -> None:
    """List catalog templates."""
    _emit(_runtime().engine.list_goal_templates())


def templates_recommend(user: str) -> None:
    """List templates recommended for the user."""
    _emit(_runtime().engine.get_recommended_goal_templates(user))


def templates_use(
    user: str,
    template_id: str,
    title: str | None,
    target: float | None,
    priority: str | None,
) -> None:
    """Instantiate a template."""
    supplied = {"title": title, "target_value": target, "priority": priority}
    customizations = _build(GoalPatch, **{k: v for k, v in supplied.items() if v is not None})
    goal = _runtime().engine.create_goal_from_template(user, template_id, customizations)
    if goal is None:
        _fail(f"Could not create a goal from template {template_id}.")
    _emit(goal)


def profile_set(user: str, training_goals: list[str], experience: str) -> None:
    """Store training preferences."""
    profile = _runtime().profiles.save_profile(user, training_goals, experience)
    if profile is None:
        _fail("Could not save profile.")
    _emit(profile)


def profile_show(user: str) -> None:
    """Show training preferences."""
    profile = _runtime().profiles.get_profile(user)
    if profile is None:
        _fail(f"No profile for user {user}.")
    _emit(profile)


def config_show() -> None:
    """Show effective runtime config."""
    _emit(_runtime().config)


def _json_safe(payload: object) -> object:
    """Convert models and datetimes to JSON-compatible values."""
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json", by_alias=True)
    if isinstance(payload, dict):
        return {k: _json_safe(v) for k, v in payload.items()}
    if isinstance(payload, list):
        return [_json_safe(v) for v in payload]
    if hasattr(payload, "isoformat"):
        return payload.isoformat()
    return payload
