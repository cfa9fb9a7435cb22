"""Typed dataclasses for the Sprout data model.

All models use from_dict/to_dict for JSON/YAML serialization.
camelCase in JSON is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.

Tasks, goals and occurrences are frozen: stores hand out snapshots and
produce new ones on every mutation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, ClassVar, Union

from sprout.errors import ValidationError


QUADRANTS = ("A", "B", "C", "D")
REPEAT_KINDS = ("none", "daily", "weekly", "monthly", "custom")
GOAL_STATUSES = ("active", "completed")
DEFAULT_GOAL_UNIT = "times"


# ── Primitives ────────────────────────────────────────────────


def parse_day(value: date | str) -> date:
    """Accept a date or an ISO 'YYYY-MM-DD' string."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}") from None


def parse_hhmm(value: str) -> time:
    """Parse a local wall-clock 'HH:mm' string."""
    parts = str(value).split(":")
    if len(parts) != 2 or not all(p.isdigit() and len(p) == 2 for p in parts):
        raise ValidationError(f"Invalid time: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if hour > 23 or minute > 59:
        raise ValidationError(f"Invalid time: {value!r}")
    return time(hour, minute)


def derive_duration(start: str, end: str) -> int:
    """Minutes between two HH:mm times; an end before the start wraps past midnight."""
    s = parse_hhmm(start)
    e = parse_hhmm(end)
    minutes = (e.hour * 60 + e.minute) - (s.hour * 60 + s.minute)
    if minutes < 0:
        minutes += 24 * 60
    return minutes


def weekday_index(d: date) -> int:
    """Weekday with Sunday = 0 ... Saturday = 6."""
    return d.isoweekday() % 7


# ── Repeat rules ──────────────────────────────────────────────


@dataclass(frozen=True)
class NoRepeat:
    kind: ClassVar[str] = "none"


@dataclass(frozen=True)
class Daily:
    kind: ClassVar[str] = "daily"


@dataclass(frozen=True)
class Weekly:
    kind: ClassVar[str] = "weekly"


@dataclass(frozen=True)
class Monthly:
    kind: ClassVar[str] = "monthly"


@dataclass(frozen=True)
class Custom:
    """Repeat on a fixed set of weekdays (Sunday = 0)."""

    kind: ClassVar[str] = "custom"
    days: tuple[int, ...] = ()


Repeat = Union[NoRepeat, Daily, Weekly, Monthly, Custom]

NO_REPEAT = NoRepeat()

_SIMPLE_REPEATS: dict[str, Repeat] = {
    "none": NO_REPEAT,
    "daily": Daily(),
    "weekly": Weekly(),
    "monthly": Monthly(),
}


def repeat_from_fields(kind: str | None, days: Any = None) -> Repeat:
    """Build a repeat rule from its serialized kind and custom-day list."""
    kind = (kind or "none").strip().lower()
    if kind == "custom":
        return Custom(days=tuple(sorted({int(x) for x in (days or [])})))
    if kind not in _SIMPLE_REPEATS:
        raise ValidationError(f"Invalid repeat: {kind}")
    return _SIMPLE_REPEATS[kind]


# ── Tasks ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Task:
    """A task template, or a resolved occurrence when parent_id is set."""

    id: str = ""
    title: str = ""
    date: str = ""  # ISO date; anchor for recurring templates
    quadrant: str = ""  # A, B, C, D
    start_time: str | None = None  # HH:mm
    end_time: str | None = None  # HH:mm
    completed: bool = False
    duration: int | None = None  # minutes
    repeat: Repeat = NO_REPEAT
    goal_id: str | None = None
    parent_id: str | None = None
    dependencies: tuple[str, ...] = ()
    order: float | None = None

    @property
    def repeat_custom_days(self) -> tuple[int, ...] | None:
        if isinstance(self.repeat, Custom):
            return self.repeat.days
        return None

    @property
    def is_recurring(self) -> bool:
        return not isinstance(self.repeat, NoRepeat)

    @property
    def is_resolved(self) -> bool:
        return self.parent_id is not None

    @property
    def template_id(self) -> str:
        return self.parent_id or self.id

    def effective_duration(self) -> int | None:
        if self.duration is not None:
            return self.duration
        if self.start_time and self.end_time:
            return derive_duration(self.start_time, self.end_time)
        return None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Task:
        duration = d.get("duration")
        order = d.get("order")
        return cls(
            id=str(d.get("id", "")),
            title=str(d.get("title", "")),
            date=str(d.get("date", "")),
            quadrant=str(d.get("quadrant", "")),
            start_time=d.get("startTime", d.get("start_time")) or None,
            end_time=d.get("endTime", d.get("end_time")) or None,
            completed=bool(d.get("completed", False)),
            duration=int(duration) if duration is not None else None,
            repeat=repeat_from_fields(
                d.get("repeat"),
                d.get("repeatCustomDays", d.get("repeat_custom_days")),
            ),
            goal_id=d.get("goalId", d.get("goal_id")) or None,
            parent_id=d.get("parentId", d.get("parent_id")) or None,
            dependencies=tuple(str(x) for x in (d.get("dependencies") or [])),
            order=float(order) if order is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "quadrant": self.quadrant,
            "completed": self.completed,
            "repeat": self.repeat.kind,
        }
        if self.start_time:
            d["startTime"] = self.start_time
        if self.end_time:
            d["endTime"] = self.end_time
        if self.duration is not None:
            d["duration"] = self.duration
        if isinstance(self.repeat, Custom):
            d["repeatCustomDays"] = list(self.repeat.days)
        if self.goal_id:
            d["goalId"] = self.goal_id
        if self.parent_id:
            d["parentId"] = self.parent_id
        if self.dependencies:
            d["dependencies"] = list(self.dependencies)
        if self.order is not None:
            d["order"] = self.order
        return d


@dataclass(frozen=True)
class TasksFile:
    tasks: tuple[Task, ...] = ()

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TasksFile:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(tasks=tuple(Task.from_dict(t) for t in (d.get("tasks") or [])))

    def to_dict(self) -> dict[str, Any]:
        return {"tasks": [t.to_dict() for t in self.tasks]}


# ── Occurrences ───────────────────────────────────────────────


@dataclass(frozen=True)
class Occurrence:
    """One task instance on one calendar day."""

    TEMPLATE: ClassVar[str] = "template"
    VIRTUAL: ClassVar[str] = "virtual"
    RESOLVED: ClassVar[str] = "resolved"

    task: Task
    kind: str = "template"

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def date(self) -> str:
        return self.task.date

    @property
    def completed(self) -> bool:
        return self.task.completed

    @property
    def template_id(self) -> str:
        return self.task.template_id

    @property
    def is_virtual(self) -> bool:
        return self.kind == self.VIRTUAL

    def to_dict(self) -> dict[str, Any]:
        d = self.task.to_dict()
        d["kind"] = self.kind
        return d


# ── Goals ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Goal:
    id: str = ""
    title: str = ""
    total_tasks: int = 1
    completed_tasks: int = 0
    status: str = "active"  # active, completed
    color: str | None = None
    unit: str = DEFAULT_GOAL_UNIT

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Goal:
        return cls(
            id=str(d.get("id", "")),
            title=str(d.get("title", "")),
            total_tasks=int(d.get("totalTasks", d.get("total_tasks", 1))),
            completed_tasks=int(d.get("completedTasks", d.get("completed_tasks", 0))),
            status=str(d.get("status", "active")),
            color=d.get("color") or None,
            unit=str(d.get("unit") or DEFAULT_GOAL_UNIT),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "status": self.status,
            "unit": self.unit,
        }
        if self.color:
            d["color"] = self.color
        return d


@dataclass(frozen=True)
class GoalsFile:
    goals: tuple[Goal, ...] = ()

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> GoalsFile:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(goals=tuple(Goal.from_dict(g) for g in (d.get("goals") or [])))

    def to_dict(self) -> dict[str, Any]:
        return {"goals": [g.to_dict() for g in self.goals]}


# ── Rewards ───────────────────────────────────────────────────


@dataclass(frozen=True)
class RewardNotification:
    increment: int = 0  # percentage points
    seeds_earned: int = 0
    goal_snapshot: Goal | None = None
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "increment": self.increment,
            "seedsEarned": self.seeds_earned,
            "goal": self.goal_snapshot.to_dict() if self.goal_snapshot else None,
            "createdAt": self.created_at,
        }


# ── Wallet ────────────────────────────────────────────────────


@dataclass
class Medal:
    id: str = ""
    name: str = ""
    description: str = ""
    icon: str = ""
    unlocked: bool = False
    cost: int | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Medal:
        cost = d.get("cost")
        return cls(
            id=str(d.get("id", "")),
            name=str(d.get("name", "")),
            description=str(d.get("description", "")),
            icon=str(d.get("icon", "")),
            unlocked=bool(d.get("unlocked", False)),
            cost=int(cost) if cost is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "unlocked": self.unlocked,
        }
        if self.cost is not None:
            d["cost"] = self.cost
        return d


@dataclass
class Wallet:
    seeds: int = 0
    focus_time: int = 0  # minutes
    medals: list[Medal] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Wallet:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            seeds=int(d.get("seeds", 0) or 0),
            focus_time=int(d.get("focusTime", 0) or 0),
            medals=[Medal.from_dict(m) for m in (d.get("medals") or [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "seeds": self.seeds,
            "focusTime": self.focus_time,
            "medals": [m.to_dict() for m in self.medals],
        }
