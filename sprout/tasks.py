"""Task store: template CRUD, validation and occurrence resolution for Sprout."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Callable

from sprout.errors import InvariantViolation, NotFoundError, ValidationError
from sprout.fileio import read_document, write_document
from sprout.ids import IdGenerator, MillisecondIds
from sprout.models import (
    NO_REPEAT,
    QUADRANTS,
    REPEAT_KINDS,
    Occurrence,
    Task,
    TasksFile,
    derive_duration,
    parse_hhmm,
)
from sprout.workspace import tasks_path as _tasks_path

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[TasksFile], None]
CompletionListener = Callable[[Task], None]


# ── Validation ────────────────────────────────────────────────


_ALIASES = {
    "start_time": "startTime",
    "end_time": "endTime",
    "goal_id": "goalId",
    "parent_id": "parentId",
    "repeat_custom_days": "repeatCustomDays",
}


def normalize_task_data(data: dict[str, Any]) -> dict[str, Any]:
    """Map snake_case keys onto the camelCase document keys."""
    return {_ALIASES.get(k, k): v for k, v in data.items()}


def validate_task(task: dict[str, Any]) -> list[str]:
    """Validate task fields and return list of errors (empty if valid)."""
    errors = []
    if not str(task.get("title") or "").strip():
        errors.append("Missing required field: title")

    if not task.get("date"):
        errors.append("Missing required field: date")
    else:
        try:
            date.fromisoformat(str(task["date"]))
        except ValueError:
            errors.append(f"Invalid date: {task['date']}")

    if task.get("quadrant") not in QUADRANTS:
        errors.append(f"Invalid quadrant: {task.get('quadrant')!r}")

    for key in ("startTime", "endTime"):
        if task.get(key):
            try:
                parse_hhmm(task[key])
            except ValidationError:
                errors.append(f"Invalid {key}: {task[key]}")

    repeat = task.get("repeat") or "none"
    if repeat not in REPEAT_KINDS:
        errors.append(f"Invalid repeat: {repeat}")
    elif repeat == "custom":
        days = task.get("repeatCustomDays")
        if not days:
            errors.append("repeatCustomDays is required for custom repeat")
        elif not all(isinstance(x, int) and 0 <= x <= 6 for x in days):
            errors.append("repeatCustomDays must be weekday indices 0-6")

    if task.get("duration") is not None:
        if not isinstance(task["duration"], int) or task["duration"] <= 0:
            errors.append("duration must be a positive integer")

    if "completed" in task and not isinstance(task["completed"], bool):
        errors.append("completed must be true or false")

    order = task.get("order")
    if order is not None and (isinstance(order, bool) or not isinstance(order, (int, float))):
        errors.append("order must be a number")

    deps = task.get("dependencies")
    if deps is not None and not isinstance(deps, (list, tuple)):
        errors.append("dependencies must be a list of task ids")

    return errors


# ── Persistence ───────────────────────────────────────────────


def load_tasks(root: Path | None = None) -> TasksFile:
    """Load tasks.yaml into a TasksFile model.

    Records that fail validation are logged and skipped.
    """
    path = _tasks_path(root)
    raw = read_document(path).get("tasks") or []
    if not isinstance(raw, list):
        logger.warning("Ignoring %s: tasks should be a list", path)
        return TasksFile()
    tasks = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            logger.warning("Skipping task #%d in %s: not a mapping", i, path)
            continue
        errors = validate_task(normalize_task_data(item))
        if errors:
            logger.warning("Skipping task %s in %s: %s", item.get("id", f"#{i}"), path, "; ".join(errors))
            continue
        tasks.append(Task.from_dict(item))
    return TasksFile(tasks=tuple(tasks))


def save_tasks(tasks_file: TasksFile, root: Path | None = None) -> None:
    """Save TasksFile back to tasks.yaml atomically."""
    write_document(_tasks_path(root), tasks_file.to_dict())


def find_task(tasks_file: TasksFile, task_id: str) -> Task | None:
    """Find a task by ID."""
    for t in tasks_file.tasks:
        if t.id == task_id:
            return t
    return None


# ── Store ─────────────────────────────────────────────────────


class TaskStore:
    """Owns the canonical task snapshot.

    Every mutation builds a new TasksFile and hands it to snapshot
    listeners. A completed flag flipping from false to true is published
    to completion listeners after the snapshot is committed.
    """

    def __init__(
        self,
        snapshot: TasksFile | None = None,
        id_generator: IdGenerator | None = None,
    ) -> None:
        self._snapshot = snapshot or TasksFile()
        self._new_id = id_generator or MillisecondIds()
        self._listeners: list[SnapshotListener] = []
        self._completion_listeners: list[CompletionListener] = []

    @property
    def snapshot(self) -> TasksFile:
        return self._snapshot

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self._snapshot.tasks

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def on_completed(self, listener: CompletionListener) -> None:
        self._completion_listeners.append(listener)

    # ── queries ──

    def find(self, task_id: str) -> Task | None:
        return find_task(self._snapshot, task_id)

    def get(self, task_id: str) -> Task:
        task = self.find(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def find_resolved(self, parent_id: str, day: str) -> Task | None:
        for t in self._snapshot.tasks:
            if t.parent_id == parent_id and t.date == day:
                return t
        return None

    # ── mutations ──

    def create_template(self, data: dict[str, Any]) -> Task:
        fields = normalize_task_data(data)
        fields.pop("id", None)
        if fields.get("parentId"):
            raise ValidationError("parentId is only set when resolving an occurrence")
        errors = validate_task(fields)
        if errors:
            raise ValidationError(errors)

        if fields.get("duration") is None and fields.get("startTime") and fields.get("endTime"):
            fields["duration"] = derive_duration(fields["startTime"], fields["endTime"]) or None
        if fields.get("order") is None:
            fields["order"] = self._next_order()

        task = Task.from_dict({**fields, "id": self._new_id()})
        self._commit(self._snapshot.tasks + (task,))
        logger.info("Created task %s (%s, repeat=%s)", task.id, task.title, task.repeat.kind)
        return task

    def update_template(self, task_id: str, updates: dict[str, Any]) -> Task:
        before = self.get(task_id)
        changes = normalize_task_data(updates)
        changes.pop("id", None)
        changes.pop("parentId", None)

        merged = before.to_dict()
        merged.update(changes)
        times_changed = "startTime" in changes or "endTime" in changes
        if times_changed and "duration" not in changes:
            merged.pop("duration", None)
            if merged.get("startTime") and merged.get("endTime"):
                merged["duration"] = derive_duration(merged["startTime"], merged["endTime"]) or None

        errors = validate_task(merged)
        if errors:
            raise ValidationError(errors)
        if not before.parent_id and merged["date"] != before.date:
            clash = self.find_resolved(task_id, str(merged["date"]))
            if clash is not None:
                raise ValidationError(
                    f"{task_id} already has occurrence {clash.id} on {merged['date']}"
                )

        after = Task.from_dict(merged)
        self._commit(tuple(after if t.id == task_id else t for t in self._snapshot.tasks))
        logger.debug("Updated task %s: %s", task_id, sorted(changes))
        if not before.completed and after.completed:
            self._publish_completion(after)
        return after

    def delete_template(self, task_id: str) -> list[str]:
        """Remove a task and every occurrence resolved from it. Returns removed ids."""
        self.get(task_id)
        removed = [t.id for t in self._snapshot.tasks if t.id == task_id or t.parent_id == task_id]
        self._commit(tuple(t for t in self._snapshot.tasks if t.id not in removed))
        logger.info("Deleted task %s (cascade: %d resolved)", task_id, len(removed) - 1)
        return removed

    def resolve_occurrence(self, occurrence: Occurrence | Task, completed: bool) -> Task:
        """Persist a virtual occurrence as its own record.

        Resolving the same (parent, date) twice returns the existing record.
        """
        virtual = occurrence.task if isinstance(occurrence, Occurrence) else occurrence
        if not virtual.parent_id:
            raise InvariantViolation(f"{virtual.id} is not a generated occurrence")
        parent = self.get(virtual.parent_id)
        if virtual.date == parent.date:
            raise InvariantViolation(
                f"{virtual.id} falls on the anchor date of {parent.id}; update the task instead"
            )

        existing = self.find_resolved(parent.id, virtual.date)
        if existing is not None:
            logger.debug("Occurrence %s already resolved as %s", virtual.id, existing.id)
            return existing

        resolved = replace(
            virtual,
            id=self._new_id(),
            parent_id=parent.id,
            repeat=NO_REPEAT,
            completed=completed,
            order=None,
        )
        self._commit(self._snapshot.tasks + (resolved,))
        logger.info("Resolved %s on %s as %s", parent.id, virtual.date, resolved.id)
        if completed:
            self._publish_completion(resolved)
        return resolved

    def clear_goal(self, goal_id: str) -> int:
        """Drop a goal reference from every task. Returns how many changed."""
        hits = [t.id for t in self._snapshot.tasks if t.goal_id == goal_id]
        if hits:
            self._commit(tuple(
                replace(t, goal_id=None) if t.goal_id == goal_id else t
                for t in self._snapshot.tasks
            ))
        return len(hits)

    def set_orders(self, orders: dict[str, float | None]) -> None:
        self._commit(tuple(
            replace(t, order=orders[t.id]) if t.id in orders else t
            for t in self._snapshot.tasks
        ))

    # ── internals ──

    def _next_order(self) -> float:
        keys = [t.order for t in self._snapshot.tasks if t.order is not None]
        return max(keys) + 1 if keys else 0.0

    def _commit(self, tasks: tuple[Task, ...]) -> None:
        self._snapshot = TasksFile(tasks=tasks)
        for listener in list(self._listeners):
            listener(self._snapshot)

    def _publish_completion(self, task: Task) -> None:
        for listener in list(self._completion_listeners):
            listener(task)
