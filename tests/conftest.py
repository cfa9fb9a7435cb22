"""Shared test fixtures for Sprout tests."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Callable

import pytest
import yaml

from sprout.ids import SequentialIds
from sprout.planner import Planner


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        """Run the callback even if cancelled, like a timer that lost the race."""
        self.callback()


class FakeTimers:
    """Timer factory that records timers instead of starting threads."""

    def __init__(self) -> None:
        self.created: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.created.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.created[-1]


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def planner(timers: FakeTimers) -> Planner:
    """In-memory planner with predictable ids and no workspace."""
    return Planner(id_generator=SequentialIds("id"), timer_factory=timers)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with standard structure."""
    root = tmp_path / "workspace"
    (root / "data").mkdir(parents=True)

    (root / "data" / "profile.yaml").write_text(
        yaml.dump({"timezone": "UTC"}), encoding="utf-8"
    )

    tasks = {
        "tasks": [
            {
                "id": "standup",
                "title": "Team standup",
                "date": "2024-01-01",
                "startTime": "09:00",
                "endTime": "09:15",
                "duration": 15,
                "quadrant": "B",
                "completed": False,
                "repeat": "weekly",
                "order": 0,
            },
            {
                "id": "read",
                "title": "Read a chapter",
                "date": "2024-01-02",
                "quadrant": "B",
                "completed": False,
                "repeat": "custom",
                "repeatCustomDays": [2, 4],
                "goalId": "books",
                "order": 1,
            },
            {
                "id": "prd",
                "title": "Draft the PRD",
                "date": "2024-01-03",
                "startTime": "14:00",
                "endTime": "16:00",
                "quadrant": "A",
                "completed": False,
                "repeat": "none",
                "order": 2,
            },
        ],
    }
    (root / "data" / "tasks.yaml").write_text(
        yaml.dump(tasks, default_flow_style=False, sort_keys=False), encoding="utf-8"
    )

    goals = {
        "goals": [
            {"id": "books", "title": "Read 5 books", "totalTasks": 5, "completedTasks": 2, "status": "active"},
        ],
    }
    (root / "data" / "goals.yaml").write_text(
        yaml.dump(goals, default_flow_style=False, sort_keys=False), encoding="utf-8"
    )

    wallet = {"seeds": 120, "focusTime": 340, "medals": []}
    (root / "data" / "wallet.json").write_text(json.dumps(wallet, indent=2), encoding="utf-8")

    os.environ["SPROUT_ROOT"] = str(root)
    yield root
    if "SPROUT_ROOT" in os.environ:
        del os.environ["SPROUT_ROOT"]
