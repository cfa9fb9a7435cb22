"""Goal ledger: goal CRUD and progress counting for Sprout."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable

from sprout.errors import NotFoundError, ValidationError
from sprout.fileio import read_document, write_document
from sprout.ids import IdGenerator, MillisecondIds
from sprout.models import DEFAULT_GOAL_UNIT, Goal, GoalsFile
from sprout.workspace import goals_path

logger = logging.getLogger(__name__)

_ALIASES = {"total_tasks": "totalTasks", "completed_tasks": "completedTasks"}


def validate_goal(goal: dict[str, Any]) -> list[str]:
    """Validate goal fields and return list of errors (empty if valid)."""
    errors = []
    if not str(goal.get("title") or "").strip():
        errors.append("Missing required field: title")
    total = goal.get("totalTasks")
    if not isinstance(total, int) or isinstance(total, bool) or total <= 0:
        errors.append("totalTasks must be a positive integer")
    done = goal.get("completedTasks", 0)
    if not isinstance(done, int) or done < 0:
        errors.append("completedTasks must be a non-negative integer")
    return errors


def status_for(completed_tasks: int, total_tasks: int) -> str:
    return "completed" if completed_tasks >= total_tasks else "active"


def progress_increment(goal: Goal) -> int:
    """Percentage points one completion is worth: 100 / total, rounded half up."""
    return int(math.floor(100 / goal.total_tasks + 0.5))


def progress_percent(goal: Goal) -> float:
    """Current progress for display; exceeds 100 when a goal overshoots."""
    return round(goal.completed_tasks / goal.total_tasks * 100, 1)


def load_goals(root: Path | None = None) -> GoalsFile:
    """Load goals.yaml, logging and skipping records that fail validation."""
    path = goals_path(root)
    raw = read_document(path).get("goals") or []
    if not isinstance(raw, list):
        logger.warning("Ignoring %s: goals should be a list", path)
        return GoalsFile()
    goals = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            logger.warning("Skipping goal #%d in %s: not a mapping", i, path)
            continue
        errors = validate_goal({_ALIASES.get(k, k): v for k, v in item.items()})
        if errors:
            logger.warning("Skipping goal %s in %s: %s", item.get("id", f"#{i}"), path, "; ".join(errors))
            continue
        goals.append(Goal.from_dict(item))
    return GoalsFile(goals=tuple(goals))


def save_goals(goals_file: GoalsFile, root: Path | None = None) -> None:
    write_document(goals_path(root), goals_file.to_dict())


class GoalLedger:
    """Owns goal definitions. Status is derived, never assigned."""

    def __init__(
        self,
        snapshot: GoalsFile | None = None,
        id_generator: IdGenerator | None = None,
    ) -> None:
        self._snapshot = snapshot or GoalsFile()
        self._new_id = id_generator or MillisecondIds()
        self._listeners: list[Callable[[GoalsFile], None]] = []

    @property
    def snapshot(self) -> GoalsFile:
        return self._snapshot

    @property
    def goals(self) -> tuple[Goal, ...]:
        return self._snapshot.goals

    def subscribe(self, listener: Callable[[GoalsFile], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def find(self, goal_id: str) -> Goal | None:
        for g in self._snapshot.goals:
            if g.id == goal_id:
                return g
        return None

    def get(self, goal_id: str) -> Goal:
        goal = self.find(goal_id)
        if goal is None:
            raise NotFoundError("Goal", goal_id)
        return goal

    def create_goal(self, data: dict[str, Any]) -> Goal:
        fields = {_ALIASES.get(k, k): v for k, v in data.items()}
        fields.update(completedTasks=0)
        errors = validate_goal(fields)
        if errors:
            raise ValidationError(errors)
        goal = Goal(
            id=self._new_id(),
            title=str(fields["title"]).strip(),
            total_tasks=fields["totalTasks"],
            completed_tasks=0,
            status="active",
            color=fields.get("color") or None,
            unit=str(fields.get("unit") or DEFAULT_GOAL_UNIT),
        )
        self._commit(self._snapshot.goals + (goal,))
        logger.info("Created goal %s (%s, target %d)", goal.id, goal.title, goal.total_tasks)
        return goal

    def update_goal(self, goal_id: str, updates: dict[str, Any]) -> Goal:
        """Merge *updates*; a changed target or count re-derives the status."""
        before = self.get(goal_id)
        changes = {_ALIASES.get(k, k): v for k, v in updates.items()}
        changes.pop("id", None)
        changes.pop("status", None)
        merged = before.to_dict()
        merged.update(changes)
        errors = validate_goal(merged)
        if errors:
            raise ValidationError(errors)
        merged["status"] = status_for(merged["completedTasks"], merged["totalTasks"])
        return self._replace(Goal.from_dict(merged))

    def delete_goal(self, goal_id: str) -> Goal:
        goal = self.get(goal_id)
        self._commit(tuple(g for g in self._snapshot.goals if g.id != goal_id))
        logger.info("Deleted goal %s", goal_id)
        return goal

    def record_task_completion(self, goal_id: str) -> Goal:
        """Count one completed task toward the goal. Never capped at the target."""
        goal = self.get(goal_id)
        done = goal.completed_tasks + 1
        updated = replace(goal, completed_tasks=done, status=status_for(done, goal.total_tasks))
        if goal.status != updated.status:
            logger.info("Goal %s is now %s (%d/%d)", goal_id, updated.status, done, goal.total_tasks)
        return self._replace(updated)

    def _replace(self, goal: Goal) -> Goal:
        self._commit(tuple(goal if g.id == goal.id else g for g in self._snapshot.goals))
        return goal

    def _commit(self, goals: tuple[Goal, ...]) -> None:
        self._snapshot = GoalsFile(goals=goals)
        for listener in list(self._listeners):
            listener(self._snapshot)
