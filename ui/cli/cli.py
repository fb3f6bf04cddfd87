"""CLI entrypoint for the goal engine."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ui.cli import commands

app = typer.Typer(help="Personal goal tracking engine")
goals_app = typer.Typer(help="Goal commands")
templates_app = typer.Typer(help="Goal template commands")
profile_app = typer.Typer(help="Training profile commands")
config_app = typer.Typer(help="Configuration commands")


@app.callback()
def main_callback(
    root: Optional[Path] = typer.Option(None, "--root", help="Project root holding config/ and data"),
) -> None:
    """Select the runtime root for all commands."""
    commands.set_root(root)


@goals_app.command("add")
def goals_add_cmd(
    title: str = typer.Argument(..., help="Goal title"),
    user: str = typer.Option(..., "--user", "-u", help="Owner user id"),
    category: str = typer.Option("custom", help="fitness, nutrition, wellness or custom"),
    goal_type: str = typer.Option("habit", "--type", help="habit, milestone or challenge"),
    description: str = typer.Option("", help="Goal description"),
    target: Optional[float] = typer.Option(None, help="Target value"),
    current: float = typer.Option(0, help="Starting value"),
    unit: Optional[str] = typer.Option(None, help="Unit label"),
    priority: str = typer.Option("medium", help="low, medium or high"),
    tag: list[str] = typer.Option([], "--tag", help="Tag (repeatable)"),
) -> None:
    """Create a goal."""
    commands.goals_add(
        user=user,
        title=title,
        category=category,
        goal_type=goal_type,
        description=description,
        target=target,
        current=current,
        unit=unit,
        priority=priority,
        tags=tag,
    )


@goals_app.command("list")
def goals_list_cmd(
    user: str = typer.Option(..., "--user", "-u"),
    category: Optional[str] = typer.Option(None),
    status: Optional[str] = typer.Option(None),
    priority: Optional[str] = typer.Option(None),
    search: Optional[str] = typer.Option(None, help="Substring of title or description"),
) -> None:
    """List goals."""
    commands.goals_list(user=user, category=category, status=status, priority=priority, search=search)


@goals_app.command("show")
def goals_show_cmd(goal_id: str, user: str = typer.Option(..., "--user", "-u")) -> None:
    """Show one goal."""
    commands.goals_show(user=user, goal_id=goal_id)


@goals_app.command("update")
def goals_update_cmd(
    goal_id: str,
    user: str = typer.Option(..., "--user", "-u"),
    title: Optional[str] = typer.Option(None),
    target: Optional[float] = typer.Option(None),
    current: Optional[float] = typer.Option(None),
    status: Optional[str] = typer.Option(None),
    priority: Optional[str] = typer.Option(None),
) -> None:
    """Update selected fields of a goal."""
    commands.goals_update(
        user=user,
        goal_id=goal_id,
        title=title,
        target=target,
        current=current,
        status=status,
        priority=priority,
    )


@goals_app.command("track")
def goals_track_cmd(
    goal_id: str,
    value: float = typer.Argument(..., help="Amount to add (negative to correct)"),
    user: str = typer.Option(..., "--user", "-u"),
    note: Optional[str] = typer.Option(None),
) -> None:
    """Record progress on a goal."""
    commands.goals_track(user=user, goal_id=goal_id, value=value, note=note)


@goals_app.command("history")
def goals_history_cmd(
    goal_id: str,
    user: str = typer.Option(..., "--user", "-u"),
    limit: int = typer.Option(10, min=1, max=500),
) -> None:
    """Show progress history, newest first."""
    commands.goals_history(user=user, goal_id=goal_id, limit=limit)


@goals_app.command("milestone")
def goals_milestone_cmd(
    goal_id: str,
    milestone_id: str,
    user: str = typer.Option(..., "--user", "-u"),
    done: bool = typer.Option(True, "--done/--undo"),
) -> None:
    """Complete or reopen a milestone."""
    commands.goals_milestone(user=user, goal_id=goal_id, milestone_id=milestone_id, completed=done)


@goals_app.command("streak")
def goals_streak_cmd(
    goal_id: str,
    streak: int = typer.Argument(..., min=0),
    user: str = typer.Option(..., "--user", "-u"),
) -> None:
    """Set the current streak of a goal."""
    commands.goals_streak(user=user, goal_id=goal_id, streak=streak)


@goals_app.command("delete")
def goals_delete_cmd(goal_id: str, user: str = typer.Option(..., "--user", "-u")) -> None:
    """Delete a goal."""
    commands.goals_delete(user=user, goal_id=goal_id)


@templates_app.command("list")
def templates_list_cmd() -> None:
    """List the template catalog."""
    commands.templates_list()


@templates_app.command("recommend")
def templates_recommend_cmd(user: str = typer.Option(..., "--user", "-u")) -> None:
    """Templates personalized for a user."""
    commands.templates_recommend(user=user)


@templates_app.command("use")
def templates_use_cmd(
    template_id: str,
    user: str = typer.Option(..., "--user", "-u"),
    title: Optional[str] = typer.Option(None),
    target: Optional[float] = typer.Option(None),
    priority: Optional[str] = typer.Option(None),
) -> None:
    """Create a goal from a template."""
    commands.templates_use(user=user, template_id=template_id, title=title, target=target, priority=priority)


@profile_app.command("set")
def profile_set_cmd(
    user: str = typer.Option(..., "--user", "-u"),
    goal: list[str] = typer.Option([], "--goal", help="Training goal tag (repeatable)"),
    experience: str = typer.Option("beginner", help="beginner, intermediate or advanced"),
) -> None:
    """Store training preferences."""
    commands.profile_set(user=user, training_goals=goal, experience=experience)


@profile_app.command("show")
def profile_show_cmd(user: str = typer.Option(..., "--user", "-u")) -> None:
    """Show training preferences."""
    commands.profile_show(user=user)


@config_app.command("show")
def config_show_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


app.add_typer(goals_app, name="goals")
app.add_typer(templates_app, name="templates")
app.add_typer(profile_app, name="profile")
app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
