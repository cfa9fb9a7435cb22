"""Period statistics over materialized occurrences.

The flow index weights completed minutes by quadrant (important/urgent work
counts more) and scales by how far the user's goals have progressed.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable

from sprout.models import QUADRANTS, Goal, Occurrence

QUADRANT_WEIGHTS = {"A": 1.5, "B": 1.2, "C": 0.8, "D": 0.5}
DEFAULT_DURATION = 60  # minutes, for tasks with no time slot


@dataclass
class PeriodStats:
    total: int = 0
    completed: int = 0
    completion_rate: float = 0.0
    flow_index: float = 0.0
    goal_rate: float = 0.0
    completion_by_quadrant: dict[str, float] = field(default_factory=dict)
    daily: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "completionRate": round(self.completion_rate, 3),
            "flowIndex": round(self.flow_index, 1),
            "goalRate": round(self.goal_rate, 3),
            "completionByQuadrant": self.completion_by_quadrant,
            "daily": self.daily,
        }


def goal_rate(goals: Iterable[Goal]) -> float:
    """Mean goal progress, each goal capped at 100%. No goals counts as 1."""
    rates = [min(1.0, g.completed_tasks / g.total_tasks) for g in goals if g.total_tasks > 0]
    if not rates:
        return 1.0
    return sum(rates) / len(rates)


def flow_index(occurrences: Iterable[Occurrence], rate: float = 1.0) -> float:
    done = [o for o in occurrences if o.completed]
    if not done:
        return 0.0
    weighted = 0.0
    total = 0
    for occ in done:
        minutes = occ.task.effective_duration() or DEFAULT_DURATION
        weighted += minutes * QUADRANT_WEIGHTS.get(occ.task.quadrant, 1.0)
        total += minutes
    return weighted / total * rate * 100


def compute_stats(occurrences: Iterable[Occurrence], goals: Iterable[Goal] = ()) -> PeriodStats:
    occs = list(occurrences)
    stats = PeriodStats(total=len(occs), goal_rate=goal_rate(goals))
    stats.completed = sum(1 for o in occs if o.completed)
    if occs:
        stats.completion_rate = stats.completed / len(occs)
    stats.flow_index = flow_index(occs, stats.goal_rate)

    quad_total: dict[str, int] = defaultdict(int)
    quad_done: dict[str, int] = defaultdict(int)
    day_done: dict[str, int] = defaultdict(int)
    day_open: dict[str, int] = defaultdict(int)
    for occ in occs:
        quad_total[occ.task.quadrant] += 1
        if occ.completed:
            quad_done[occ.task.quadrant] += 1
            day_done[occ.date] += 1
        else:
            day_open[occ.date] += 1

    stats.completion_by_quadrant = {
        q: round(quad_done[q] / quad_total[q], 3)
        for q in QUADRANTS
        if quad_total[q] > 0
    }
    stats.daily = [
        {"date": day, "completed": day_done[day], "uncompleted": day_open[day]}
        for day in sorted(set(day_done) | set(day_open))
    ]
    return stats
