"""Manual ordering of sibling templates, plus advisory dependency links.

Drag-reorder works on template identity: dropping a virtual occurrence of
one template onto another's reorders the templates themselves, so every
future day keeps the new order.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sprout.errors import NotFoundError
from sprout.materialize import parse_virtual_id
from sprout.models import Occurrence, Task
from sprout.tasks import TaskStore

logger = logging.getLogger(__name__)


def template_identity(occurrence_id: str, tasks: Iterable[Task]) -> str:
    """Map a template, resolved or virtual occurrence id onto its template id."""
    by_id = {t.id: t for t in tasks}
    task = by_id.get(occurrence_id)
    if task is not None:
        return task.template_id
    parsed = parse_virtual_id(occurrence_id)
    if parsed is not None and parsed[0] in by_id:
        return by_id[parsed[0]].template_id
    raise NotFoundError("Task", occurrence_id)


def ordered_templates(tasks: Iterable[Task]) -> list[Task]:
    """Top-level templates by order key; unkeyed ones last, in stored order."""
    templates = [t for t in tasks if t.parent_id is None]
    return [
        t for _, t in sorted(
            enumerate(templates),
            key=lambda pair: (pair[1].order is None, pair[1].order or 0.0, pair[0]),
        )
    ]


def reorder(store: TaskStore, active_id: str, over_id: str) -> bool:
    """Move the active template to the over template's slot. Returns False on a no-op."""
    active = template_identity(active_id, store.tasks)
    over = template_identity(over_id, store.tasks)
    if active == over:
        return False

    ids = [t.id for t in ordered_templates(store.tasks)]
    old, new = ids.index(active), ids.index(over)
    ids.insert(new, ids.pop(old))
    store.set_orders({tid: float(i) for i, tid in enumerate(ids)})
    logger.debug("Reordered %s onto %s", active, over)
    return True


def sort_occurrences(occurrences: Iterable[Occurrence], tasks: Iterable[Task]) -> list[Occurrence]:
    """Display order: by day, then by the owning template's position."""
    rank = {t.id: i for i, t in enumerate(ordered_templates(tasks))}
    return sorted(occurrences, key=lambda o: (o.date, rank.get(o.template_id, len(rank))))


def dependency_links(occurrences: Iterable[Occurrence]) -> list[tuple[str, str]]:
    """(prerequisite id, dependent id) pairs between occurrences on the same day.

    A dependency names a task id or a template id; it links to whichever
    occurrence on that day carries it.
    """
    by_day: dict[str, list[Occurrence]] = {}
    for occ in occurrences:
        by_day.setdefault(occ.date, []).append(occ)

    links = []
    for day_occs in by_day.values():
        for occ in day_occs:
            for dep in occ.task.dependencies:
                for other in day_occs:
                    if other is not occ and dep in (other.id, other.template_id):
                        links.append((other.id, occ.id))
                        break
    return links
