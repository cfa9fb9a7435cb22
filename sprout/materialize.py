"""Occurrence materialization: expand task templates over a date range.

A template appears on its anchor date as itself. Recurring templates
additionally produce a virtual occurrence on every matching later day.
Resolved records are emitted on their own date and stand in for their
template on that day, so a (template, day) pair never shows twice.
"""

from __future__ import annotations

import re
from dataclasses import replace
from datetime import date, timedelta
from typing import Iterable, Iterator

from sprout.errors import NotFoundError
from sprout.models import (
    Custom,
    Daily,
    Monthly,
    NoRepeat,
    Occurrence,
    Task,
    Weekly,
    parse_day,
    weekday_index,
)

View = str | int

_VIRTUAL_ID = re.compile(r"^(?P<template>.+)-(?P<day>\d{4}-\d{2}-\d{2})$")


def iter_days(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def occurs_on(task: Task, anchor: date, day: date) -> bool:
    """Does the repeat rule of *task* (anchored at *anchor*) fall on *day*?

    Monthly rules are not clamped: a 31st anchor skips shorter months.
    """
    if day < anchor:
        return False
    if day == anchor:
        return True
    rule = task.repeat
    if isinstance(rule, NoRepeat):
        return False
    if isinstance(rule, Daily):
        return True
    if isinstance(rule, Weekly):
        return day.weekday() == anchor.weekday()
    if isinstance(rule, Monthly):
        return day.day == anchor.day
    if isinstance(rule, Custom):
        return weekday_index(day) in rule.days
    raise TypeError(f"Unknown repeat rule: {rule!r}")


def virtual_occurrence(template: Task, day: str) -> Task:
    """Derived, non-persistent copy of *template* for *day*; never completed."""
    return replace(
        template,
        id=f"{template.id}-{day}",
        parent_id=template.id,
        date=day,
        completed=False,
    )


def materialize(
    templates: Iterable[Task],
    range_start: date | str,
    range_end: date | str,
) -> list[Occurrence]:
    """Produce the occurrences to display for every day in [range_start, range_end].

    Output follows day order, then input order. The function is pure: the
    same inputs always give the same list.
    """
    start = parse_day(range_start)
    end = parse_day(range_end)
    records = list(templates)
    if start > end:
        return []

    anchors = {t.id: parse_day(t.date) for t in records}
    resolved = {(t.parent_id, t.date) for t in records if t.parent_id}

    out: list[Occurrence] = []
    for day in iter_days(start, end):
        day_str = day.isoformat()
        for t in records:
            anchor = anchors[t.id]
            if t.parent_id:
                if anchor == day:
                    out.append(Occurrence(task=t, kind=Occurrence.RESOLVED))
                continue
            if not occurs_on(t, anchor, day) or (t.id, day_str) in resolved:
                continue
            if anchor == day:
                out.append(Occurrence(task=t, kind=Occurrence.TEMPLATE))
            else:
                out.append(Occurrence(task=virtual_occurrence(t, day_str), kind=Occurrence.VIRTUAL))
    return out


def parse_virtual_id(occurrence_id: str) -> tuple[str, str] | None:
    """Split "{templateId}-{YYYY-MM-DD}" into (templateId, day), or None."""
    m = _VIRTUAL_ID.match(occurrence_id)
    if m is None:
        return None
    return m.group("template"), m.group("day")


def find_occurrence(templates: Iterable[Task], occurrence_id: str) -> Occurrence:
    """Look up a stored record or rebuild the virtual occurrence an id names."""
    records = list(templates)
    by_id = {t.id: t for t in records}
    task = by_id.get(occurrence_id)
    if task is not None:
        kind = Occurrence.RESOLVED if task.parent_id else Occurrence.TEMPLATE
        return Occurrence(task=task, kind=kind)

    parsed = parse_virtual_id(occurrence_id)
    if parsed is not None:
        template_id, day = parsed
        template = by_id.get(template_id)
        if template is not None and not template.parent_id:
            for t in records:
                if t.parent_id == template_id and t.date == day:
                    return Occurrence(task=t, kind=Occurrence.RESOLVED)
            anchor = parse_day(template.date)
            target = parse_day(day)
            if target != anchor and occurs_on(template, anchor, target):
                return Occurrence(task=virtual_occurrence(template, day), kind=Occurrence.VIRTUAL)
    raise NotFoundError("Occurrence", occurrence_id)


def occurrences_on(occurrences: Iterable[Occurrence], day: date | str) -> list[Occurrence]:
    day_str = parse_day(day).isoformat()
    return [o for o in occurrences if o.date == day_str]


def visible_range(current: date | str, view: View = "month") -> tuple[date, date]:
    """Window of days a calendar view displays around *current*.

    "month" is the Monday-first week grid covering the month, an integer n
    is n days starting at *current*, "quadrant" is the single day.
    """
    current = parse_day(current)
    if view == "month":
        first = current.replace(day=1)
        next_month = (first + timedelta(days=32)).replace(day=1)
        last = next_month - timedelta(days=1)
        start = first - timedelta(days=first.weekday())
        end = last + timedelta(days=6 - last.weekday())
        return start, end
    if view == "quadrant":
        return current, current
    if isinstance(view, int) and view > 0:
        return current, current + timedelta(days=view - 1)
    raise ValueError(f"Unknown view: {view!r}")
