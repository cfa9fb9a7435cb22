"""Monotonic id generation for tasks and goals."""

from __future__ import annotations

import threading
import time
from typing import Callable

IdGenerator = Callable[[], str]


class MillisecondIds:
    """Millisecond-clock ids that never repeat or go backwards within a process."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            value = max(int(self._clock() * 1000), self._last + 1)
            self._last = value
            return str(value)


class SequentialIds:
    """Prefixed counter ids, handy for fixtures: t1, t2, ..."""

    def __init__(self, prefix: str = "", start: int = 1) -> None:
        self._prefix = prefix
        self._next = start

    def __call__(self) -> str:
        value = f"{self._prefix}{self._next}"
        self._next += 1
        return value
