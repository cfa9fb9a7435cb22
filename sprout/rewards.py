"""Reward engine: goal progress, seed grants and the reward popup slot.

A task completion (false -> true) linked to an existing goal advances the
goal, grants seeds and publishes a RewardNotification. The notification
expires on its own after NOTIFICATION_TTL seconds. Only one notification is
live; showing a new one cancels the previous expiry timer.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Protocol

from sprout.goals import GoalLedger, progress_increment
from sprout.models import RewardNotification, Task, Wallet
from sprout.wallet import add_seeds

logger = logging.getLogger(__name__)

SEEDS_PER_COMPLETION = 10
NOTIFICATION_TTL = 3.0  # seconds


class Cancellable(Protocol):
    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Cancellable]
NotificationListener = Callable[["RewardNotification | None"], None]


def thread_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    """Single-shot daemon timer."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class RewardEngine:
    def __init__(
        self,
        ledger: GoalLedger,
        wallet: Wallet,
        timer_factory: TimerFactory = thread_timer,
        clock: Callable[[], datetime] = datetime.now,
        ttl: float = NOTIFICATION_TTL,
        seeds_per_completion: int = SEEDS_PER_COMPLETION,
    ) -> None:
        self.ledger = ledger
        self.wallet = wallet
        self.timer_factory = timer_factory
        self.clock = clock
        self.ttl = ttl
        self.seeds_per_completion = seeds_per_completion
        self._lock = threading.Lock()
        self._current: RewardNotification | None = None
        self._timer: Cancellable | None = None
        self._listeners: list[NotificationListener] = []

    @property
    def current_notification(self) -> RewardNotification | None:
        return self._current

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def on_task_completed(self, task: Task) -> RewardNotification | None:
        """React to a completion transition. Returns the notification, if any."""
        if not task.goal_id:
            return None
        if self.ledger.find(task.goal_id) is None:
            logger.warning("Task %s references unknown goal %s; no reward", task.id, task.goal_id)
            return None

        goal = self.ledger.record_task_completion(task.goal_id)
        add_seeds(self.wallet, self.seeds_per_completion)
        notification = RewardNotification(
            increment=progress_increment(goal),
            seeds_earned=self.seeds_per_completion,
            goal_snapshot=goal,
            created_at=self.clock().isoformat(timespec="milliseconds"),
        )
        logger.info(
            "Reward for %s: goal %s +%d%%, +%d seeds",
            task.id, goal.id, notification.increment, notification.seeds_earned,
        )
        self._show(notification)
        return notification

    def dismiss_notification(self) -> None:
        with self._lock:
            if self._current is None:
                return
            self._cancel_timer()
            self._current = None
        self._publish(None)

    def _show(self, notification: RewardNotification) -> None:
        with self._lock:
            self._cancel_timer()
            self._current = notification
            self._timer = self.timer_factory(self.ttl, lambda: self._expire(notification))
        self._publish(notification)

    def _expire(self, notification: RewardNotification) -> None:
        with self._lock:
            # a superseded notification's timer must not clear the newer one
            if self._current is not notification:
                return
            self._current = None
            self._timer = None
        self._publish(None)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _publish(self, notification: RewardNotification | None) -> None:
        for listener in list(self._listeners):
            listener(notification)
