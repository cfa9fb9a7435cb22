"""Planner: the single object the UI talks to.

Wires the task store, goal ledger, wallet and reward engine together,
loads and saves them from the workspace, and runs shell hooks after
completion and reward events.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable

from sprout.errors import InvariantViolation
from sprout.goals import GoalLedger, load_goals, save_goals
from sprout.hooks import run_hooks
from sprout.ids import IdGenerator, MillisecondIds
from sprout.materialize import find_occurrence
from sprout.materialize import materialize as _materialize
from sprout.models import Goal, GoalsFile, Occurrence, RewardNotification, Task, TasksFile, Wallet
from sprout.ordering import dependency_links, reorder as _reorder, sort_occurrences
from sprout.rewards import RewardEngine, TimerFactory, thread_timer
from sprout.stats import PeriodStats, compute_stats
from sprout.tasks import TaskStore, load_tasks, save_tasks
from sprout.wallet import (
    add_focus_time as _add_focus_time,
    load_wallet,
    save_wallet,
    unlock_medal as _unlock_medal,
    with_default_medals,
)
from sprout.workspace import now_local, workspace_root

logger = logging.getLogger(__name__)


class Planner:
    def __init__(
        self,
        tasks: TasksFile | None = None,
        goals: GoalsFile | None = None,
        wallet: Wallet | None = None,
        *,
        root: Path | None = None,
        id_generator: IdGenerator | None = None,
        timer_factory: TimerFactory = thread_timer,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.root = root
        ids = id_generator or MillisecondIds()
        self.store = TaskStore(tasks, ids)
        self.ledger = GoalLedger(goals, ids)
        self.wallet = with_default_medals(wallet or Wallet())
        self.rewards = RewardEngine(
            self.ledger,
            self.wallet,
            timer_factory=timer_factory,
            clock=clock or datetime.now,
        )
        self.store.on_completed(self._on_task_completed)

    @classmethod
    def load(cls, root: Path | None = None, **kwargs: Any) -> Planner:
        """Build a planner from the workspace files under *root*."""
        if root is None:
            root = workspace_root()
        kwargs.setdefault("clock", lambda: now_local(root))
        planner = cls(load_tasks(root), load_goals(root), load_wallet(root), root=root, **kwargs)
        logger.info(
            "Loaded %d tasks, %d goals from %s",
            len(planner.store.tasks), len(planner.ledger.goals), root,
        )
        return planner

    def save(self) -> None:
        if self.root is None:
            raise InvariantViolation("Planner has no workspace root to save to")
        save_tasks(self.store.snapshot, self.root)
        save_goals(self.ledger.snapshot, self.root)
        save_wallet(self.wallet, self.root)

    # ── occurrences ──

    def materialize(self, start: date | str, end: date | str) -> list[Occurrence]:
        """Occurrences for [start, end] in display order."""
        tasks = self.store.tasks
        return sort_occurrences(_materialize(tasks, start, end), tasks)

    def find_occurrence(self, occurrence_id: str) -> Occurrence:
        return find_occurrence(self.store.tasks, occurrence_id)

    def links(self, start: date | str, end: date | str) -> list[tuple[str, str]]:
        return dependency_links(self.materialize(start, end))

    def toggle_occurrence(self, occurrence: Occurrence | str) -> Task:
        """Flip completion on whatever record backs an occurrence.

        Virtual occurrences are resolved; templates and resolved records
        are updated in place.
        """
        if isinstance(occurrence, str):
            occurrence = self.find_occurrence(occurrence)
        if occurrence.is_virtual:
            return self.store.resolve_occurrence(occurrence, not occurrence.completed)
        current = self.store.get(occurrence.id)
        return self.store.update_template(current.id, {"completed": not current.completed})

    # ── templates ──

    def create_template(self, data: dict[str, Any]) -> Task:
        return self.store.create_template(data)

    def update_template(self, task_id: str, updates: dict[str, Any]) -> Task:
        return self.store.update_template(task_id, updates)

    def delete_template(self, task_id: str) -> list[str]:
        return self.store.delete_template(task_id)

    def resolve_occurrence(self, occurrence: Occurrence | Task, completed: bool) -> Task:
        return self.store.resolve_occurrence(occurrence, completed)

    def reorder(self, active_id: str, over_id: str) -> bool:
        return _reorder(self.store, active_id, over_id)

    # ── goals ──

    def create_goal(self, data: dict[str, Any]) -> Goal:
        return self.ledger.create_goal(data)

    def update_goal(self, goal_id: str, updates: dict[str, Any]) -> Goal:
        return self.ledger.update_goal(goal_id, updates)

    def delete_goal(self, goal_id: str) -> Goal:
        goal = self.ledger.delete_goal(goal_id)
        cleared = self.store.clear_goal(goal_id)
        logger.debug("Cleared goal %s from %d tasks", goal_id, cleared)
        return goal

    def record_task_completion(self, goal_id: str) -> Goal:
        return self.ledger.record_task_completion(goal_id)

    # ── rewards & wallet ──

    @property
    def current_notification(self) -> RewardNotification | None:
        return self.rewards.current_notification

    def dismiss_notification(self) -> None:
        self.rewards.dismiss_notification()

    @property
    def seeds(self) -> int:
        return self.wallet.seeds

    def add_focus_time(self, minutes: int) -> int:
        return _add_focus_time(self.wallet, minutes)

    def unlock_medal(self, medal_id: str) -> bool:
        unlocked = _unlock_medal(self.wallet, medal_id)
        if unlocked:
            self._hook("on_medal_unlock", {"medalId": medal_id, "seeds": self.wallet.seeds})
        return unlocked

    def stats(self, start: date | str, end: date | str) -> PeriodStats:
        return compute_stats(self.materialize(start, end), self.ledger.goals)

    # ── events ──

    def _on_task_completed(self, task: Task) -> None:
        notification = self.rewards.on_task_completed(task)
        self._hook("on_task_complete", {"task": task.to_dict()})
        if notification is None:
            return
        self._hook("on_reward", notification.to_dict())
        goal = notification.goal_snapshot
        if goal is not None and goal.completed_tasks == goal.total_tasks:
            self._hook("on_goal_complete", {"goal": goal.to_dict()})

    def _hook(self, hook_point: str, context: dict[str, Any]) -> None:
        if self.root is None:
            return
        run_hooks(hook_point, context, self.root)
