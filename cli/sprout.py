#!/usr/bin/env python3
"""Sprout TUI — a week agenda in the terminal, powered by Textual."""

from __future__ import annotations

import logging
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Callable

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.timer import Timer
from textual.widgets import DataTable, Footer, Header, Static

from sprout.errors import SproutError
from sprout.goals import progress_percent
from sprout.logging_setup import setup_logging
from sprout.models import Occurrence, RewardNotification, parse_day
from sprout.planner import Planner
from sprout.workspace import today_str, workspace_root

logger = logging.getLogger("sprout.cli")


CSS = """
Screen {
    background: $surface;
}

#week-label {
    height: 1;
    padding: 0 1;
    text-style: bold;
}

#agenda {
    height: 1fr;
}

#reward {
    height: auto;
    padding: 0 1;
    background: $success-darken-2;
    color: $text;
    display: none;
}

#reward.live {
    display: block;
}

#wallet {
    height: 1;
    padding: 0 1;
    color: $text-muted;
}
"""

DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class _TextualTimer:
    """Adapts a Textual timer to the engine's cancel() interface."""

    def __init__(self, timer: Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.stop()


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def format_reward(note: RewardNotification) -> str:
    goal = note.goal_snapshot
    line = f"+{note.seeds_earned} seeds"
    if goal is not None:
        line += (
            f"  {goal.title}: +{note.increment}% "
            f"({goal.completed_tasks}/{goal.total_tasks} {goal.unit}, {progress_percent(goal):.0f}%)"
        )
        if goal.status == "completed":
            line += "  goal reached!"
    return line


class SproutApp(App):
    """Sprout — weekly agenda with completion rewards."""

    TITLE = "Sprout"
    CSS = CSS

    BINDINGS = [
        Binding("space", "toggle", "Done/undo"),
        Binding("n", "next_week", "Next week"),
        Binding("p", "prev_week", "Prev week"),
        Binding("t", "this_week", "Today"),
        Binding("shift+up", "move_up", "Move up"),
        Binding("shift+down", "move_down", "Move down"),
        Binding("x", "dismiss", "Dismiss"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, root: Path) -> None:
        super().__init__()
        self._root = root
        self._start = week_start(parse_day(today_str(root)))
        self._rows: list[Occurrence] = []
        self.planner = Planner.load(root, timer_factory=self._make_timer)

    def _make_timer(self, delay: float, callback: Callable[[], None]) -> _TextualTimer:
        return _TextualTimer(self.set_timer(delay, callback))

    def compose(self) -> ComposeResult:
        yield Header()
        yield Vertical(
            Static(id="week-label"),
            DataTable(id="agenda", cursor_type="row", zebra_stripes=True),
            Static(id="reward"),
            Static(id="wallet"),
        )
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#agenda", DataTable)
        table.add_columns("Day", "Time", "Q", "Task", "")
        self.planner.rewards.subscribe(self._on_reward)
        self._refresh()

    # ── rendering ──

    def _refresh(self, keep: str | None = None) -> None:
        end = self._start + timedelta(days=6)
        self.query_one("#week-label", Static).update(
            f"Week of {self._start.isoformat()} → {end.isoformat()}"
        )
        table = self.query_one("#agenda", DataTable)
        table.clear()
        self._rows = self.planner.materialize(self._start, end)
        for occ in self._rows:
            task = occ.task
            day = parse_day(occ.date)
            when = f"{task.start_time}-{task.end_time}" if task.start_time and task.end_time else ""
            flags = "↻" if task.is_recurring or occ.kind != Occurrence.TEMPLATE else ""
            title = f"[strike]{task.title}[/strike]" if task.completed else task.title
            table.add_row(
                f"{DAY_NAMES[day.weekday()]} {day.day:02d}",
                when,
                task.quadrant,
                title,
                flags,
                key=occ.id,
            )
        if keep is not None:
            for i, occ in enumerate(self._rows):
                if occ.id == keep or occ.template_id == keep:
                    table.move_cursor(row=i)
                    break
        wallet = self.planner.wallet
        self.query_one("#wallet", Static).update(
            f"Seeds: {wallet.seeds}   Focus: {wallet.focus_time} min"
        )

    def _on_reward(self, note: RewardNotification | None) -> None:
        panel = self.query_one("#reward", Static)
        if note is None:
            panel.remove_class("live")
            panel.update("")
            return
        panel.update(format_reward(note))
        panel.add_class("live")

    def _selected(self) -> Occurrence | None:
        table = self.query_one("#agenda", DataTable)
        if not self._rows or table.cursor_row is None:
            return None
        if 0 <= table.cursor_row < len(self._rows):
            return self._rows[table.cursor_row]
        return None

    # ── actions ──

    def action_toggle(self) -> None:
        occ = self._selected()
        if occ is None:
            return
        try:
            task = self.planner.toggle_occurrence(occ)
            self.planner.save()
        except SproutError as e:
            self.notify(str(e), severity="error")
            return
        self._refresh(keep=task.id)

    def _move(self, step: int) -> None:
        occ = self._selected()
        if occ is None:
            return
        same_day = [o for o in self._rows if o.date == occ.date]
        idx = same_day.index(occ) + step
        if not 0 <= idx < len(same_day):
            return
        try:
            if self.planner.reorder(occ.id, same_day[idx].id):
                self.planner.save()
        except SproutError as e:
            self.notify(str(e), severity="error")
            return
        self._refresh(keep=occ.id)

    def action_move_up(self) -> None:
        self._move(-1)

    def action_move_down(self) -> None:
        self._move(1)

    def action_next_week(self) -> None:
        self._start += timedelta(days=7)
        self._refresh()

    def action_prev_week(self) -> None:
        self._start -= timedelta(days=7)
        self._refresh()

    def action_this_week(self) -> None:
        self._start = week_start(parse_day(today_str(self._root)))
        self._refresh()

    def action_dismiss(self) -> None:
        self.planner.dismiss_notification()


# ── Entry point ────────────────────────────────────────────────


def main() -> None:
    root = workspace_root()
    if not root.exists():
        print(f"Workspace not found: {root}")
        print("Set SPROUT_ROOT to your Sprout workspace.")
        sys.exit(1)

    setup_logging(console=False)
    logger.info("Starting TUI on %s", root)
    SproutApp(root).run()


if __name__ == "__main__":
    main()
