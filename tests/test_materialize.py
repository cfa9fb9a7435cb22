"""Tests for sprout/materialize.py — recurrence expansion and overrides."""

from collections import Counter
from datetime import date

import pytest

from sprout.errors import NotFoundError
from sprout.materialize import (
    find_occurrence,
    materialize,
    occurrences_on,
    parse_virtual_id,
    visible_range,
)
from sprout.models import Custom, Daily, Monthly, Occurrence, Task, Weekly


def _task(**kw) -> Task:
    base = dict(id="t", title="Task", date="2024-01-01", quadrant="B")
    base.update(kw)
    return Task(**base)


def _dates(occs):
    return [o.date for o in occs]


def test_weekly_only_on_anchor_weekday():
    t = _task(repeat=Weekly())  # 2024-01-01 is a Monday
    occs = materialize([t], "2024-01-01", "2024-01-21")
    assert _dates(occs) == ["2024-01-01", "2024-01-08", "2024-01-15"]
    assert "2024-01-02" not in _dates(occs)


def test_anchor_day_is_the_template_itself():
    t = _task(repeat=Weekly())
    occs = materialize([t], "2024-01-01", "2024-01-08")
    assert occs[0].kind == Occurrence.TEMPLATE
    assert occs[0].task is t
    assert occs[1].kind == Occurrence.VIRTUAL
    assert occs[1].id == "t-2024-01-08"
    assert occs[1].task.parent_id == "t"


def test_custom_days_mon_wed_fri():
    t = _task(date="2023-12-31", repeat=Custom(days=(1, 3, 5)))
    occs = materialize([t], "2024-01-01", "2024-01-07")
    assert _dates(occs) == ["2024-01-01", "2024-01-03", "2024-01-05"]


def test_daily():
    t = _task(repeat=Daily())
    assert len(materialize([t], "2024-01-01", "2024-01-10")) == 10


def test_never_before_anchor():
    t = _task(date="2024-01-10", repeat=Daily())
    occs = materialize([t], "2024-01-01", "2024-01-12")
    assert _dates(occs) == ["2024-01-10", "2024-01-11", "2024-01-12"]


def test_monthly_31st_skips_short_months():
    t = _task(date="2024-01-31", repeat=Monthly())
    occs = materialize([t], "2024-01-01", "2024-05-31")
    assert _dates(occs) == ["2024-01-31", "2024-03-31", "2024-05-31"]


def test_one_off_only_on_its_date():
    t = _task(date="2024-01-03")
    assert _dates(materialize([t], "2024-01-01", "2024-01-07")) == ["2024-01-03"]


def test_virtual_never_completed():
    t = _task(repeat=Daily(), completed=True)
    occs = materialize([t], "2024-01-01", "2024-01-05")
    virtual = [o for o in occs if o.is_virtual]
    assert len(virtual) == 4
    assert all(not o.completed for o in virtual)


def test_resolved_record_replaces_virtual():
    t = _task(repeat=Daily())
    resolved = _task(id="r1", date="2024-01-03", parent_id="t", completed=True)
    occs = materialize([t, resolved], "2024-01-01", "2024-01-05")
    on_day = occurrences_on(occs, "2024-01-03")
    assert len(on_day) == 1
    assert on_day[0].kind == Occurrence.RESOLVED
    assert on_day[0].id == "r1"
    assert on_day[0].completed is True


def test_at_most_one_per_template_and_day():
    templates = [
        _task(id="a", repeat=Daily()),
        _task(id="b", date="2024-01-02", repeat=Weekly()),
        _task(id="c", date="2023-12-01", repeat=Custom(days=(0, 1, 2, 3, 4, 5, 6))),
        _task(id="ra", date="2024-01-04", parent_id="a"),
        _task(id="rc", date="2024-01-04", parent_id="c"),
    ]
    occs = materialize(templates, "2024-01-01", "2024-02-15")
    counts = Counter((o.template_id, o.date) for o in occs)
    assert max(counts.values()) == 1


def test_deterministic():
    templates = [
        _task(id="a", repeat=Daily()),
        _task(id="b", date="2024-01-02", repeat=Monthly()),
        _task(id="ra", date="2024-01-04", parent_id="a"),
    ]
    first = materialize(templates, "2024-01-01", "2024-03-01")
    second = materialize(templates, "2024-01-01", "2024-03-01")
    assert first == second


def test_empty_when_range_inverted():
    assert materialize([_task(repeat=Daily())], "2024-01-05", "2024-01-01") == []


def test_accepts_date_objects():
    occs = materialize([_task(repeat=Daily())], date(2024, 1, 1), date(2024, 1, 2))
    assert len(occs) == 2


def test_parse_virtual_id():
    assert parse_virtual_id("1712-2024-01-08") == ("1712", "2024-01-08")
    assert parse_virtual_id("1712") is None


def test_find_occurrence_rebuilds_virtual():
    t = _task(id="t", repeat=Weekly())
    occ = find_occurrence([t], "t-2024-01-08")
    assert occ.is_virtual
    assert occ.date == "2024-01-08"


def test_find_occurrence_prefers_resolved():
    t = _task(id="t", repeat=Weekly())
    r = _task(id="r", date="2024-01-08", parent_id="t", completed=True)
    occ = find_occurrence([t, r], "t-2024-01-08")
    assert occ.kind == Occurrence.RESOLVED
    assert occ.id == "r"


def test_find_occurrence_off_schedule_day():
    t = _task(id="t", repeat=Weekly())
    with pytest.raises(NotFoundError):
        find_occurrence([t], "t-2024-01-09")


def test_visible_range_month_grid():
    start, end = visible_range("2024-02-14", "month")
    assert start == date(2024, 1, 29)  # Monday before Feb 1
    assert end == date(2024, 3, 3)  # Sunday after Feb 29


def test_visible_range_days_and_quadrant():
    assert visible_range("2024-02-14", 3) == (date(2024, 2, 14), date(2024, 2, 16))
    assert visible_range("2024-02-14", "quadrant") == (date(2024, 2, 14), date(2024, 2, 14))
    with pytest.raises(ValueError):
        visible_range("2024-02-14", "year")


def test_resolved_record_on_anchor_day_hides_template():
    t = _task(date="2024-01-03", repeat=Daily())
    resolved = _task(id="r1", date="2024-01-03", parent_id="t", completed=True)
    occs = materialize([t, resolved], "2024-01-01", "2024-01-04")
    assert [(o.id, o.kind) for o in occurrences_on(occs, "2024-01-03")] == [("r1", Occurrence.RESOLVED)]
    assert [o.kind for o in occurrences_on(occs, "2024-01-04")] == [Occurrence.VIRTUAL]
