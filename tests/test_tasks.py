"""Tests for sprout/tasks.py — validation, template CRUD, occurrence resolution."""

import pytest

from sprout.errors import InvariantViolation, NotFoundError, ValidationError
from sprout.ids import SequentialIds
from sprout.materialize import find_occurrence, materialize
from sprout.models import Occurrence, TasksFile
from sprout.tasks import TaskStore, load_tasks, save_tasks, validate_task


@pytest.fixture
def store():
    return TaskStore(id_generator=SequentialIds("t"))


def _weekly(store, **kw):
    data = {"title": "Gym", "date": "2024-01-01", "quadrant": "B", "repeat": "weekly"}
    data.update(kw)
    return store.create_template(data)


# ── validation ──


def test_validate_task_valid():
    assert validate_task({"title": "Write", "date": "2024-01-01", "quadrant": "A"}) == []


def test_validate_task_missing_fields():
    errors = validate_task({})
    assert any("title" in e for e in errors)
    assert any("date" in e for e in errors)
    assert any("quadrant" in e for e in errors)


def test_validate_task_bad_values():
    errors = validate_task({
        "title": "x",
        "date": "2024-13-01",
        "quadrant": "E",
        "startTime": "25:00",
        "repeat": "yearly",
        "duration": -5,
    })
    assert len(errors) == 5


def test_validate_custom_repeat_needs_days():
    base = {"title": "x", "date": "2024-01-01", "quadrant": "A", "repeat": "custom"}
    assert validate_task(base)
    assert validate_task({**base, "repeatCustomDays": [7]})
    assert validate_task({**base, "repeatCustomDays": [0, 6]}) == []


def test_create_rejects_invalid(store):
    with pytest.raises(ValidationError) as exc:
        store.create_template({"title": "", "date": "2024-01-01", "quadrant": "A"})
    assert exc.value.errors == ["Missing required field: title"]
    assert store.tasks == ()


def test_create_rejects_parent_id(store):
    with pytest.raises(ValidationError):
        store.create_template({"title": "x", "date": "2024-01-01", "quadrant": "A", "parentId": "p"})


# ── create / update / delete ──


def test_create_assigns_id_order_and_duration(store):
    a = store.create_template({
        "id": "ignored",
        "title": "Deep work",
        "date": "2024-01-01",
        "quadrant": "A",
        "startTime": "09:00",
        "endTime": "10:30",
    })
    b = _weekly(store)
    assert a.id == "t1"
    assert b.id == "t2"
    assert a.duration == 90
    assert (a.order, b.order) == (0.0, 1.0)
    assert a.completed is False


def test_create_accepts_snake_case(store):
    task = store.create_template({
        "title": "Run",
        "date": "2024-01-01",
        "quadrant": "B",
        "repeat": "custom",
        "repeat_custom_days": [1, 3, 5],
        "goal_id": "g1",
    })
    assert task.repeat_custom_days == (1, 3, 5)
    assert task.goal_id == "g1"


def test_subscribe_receives_snapshots(store):
    seen = []
    unsubscribe = store.subscribe(seen.append)
    _weekly(store)
    unsubscribe()
    _weekly(store)
    assert len(seen) == 1
    assert isinstance(seen[0], TasksFile)
    assert len(seen[0].tasks) == 1


def test_update_rederives_duration(store):
    task = store.create_template({
        "title": "Deep work", "date": "2024-01-01", "quadrant": "A",
        "startTime": "09:00", "endTime": "10:00",
    })
    updated = store.update_template(task.id, {"endTime": "11:15"})
    assert updated.duration == 135
    assert store.get(task.id) == updated


def test_update_publishes_completion_once(store):
    completed = []
    store.on_completed(completed.append)
    task = _weekly(store)
    store.update_template(task.id, {"title": "Gym (legs)"})
    store.update_template(task.id, {"completed": True})
    store.update_template(task.id, {"completed": True})
    store.update_template(task.id, {"completed": False})
    assert [t.id for t in completed] == [task.id]


def test_update_ignores_id_and_parent(store):
    task = _weekly(store)
    updated = store.update_template(task.id, {"id": "other", "parentId": "x"})
    assert updated.id == task.id
    assert updated.parent_id is None


def test_update_invalid_keeps_snapshot(store):
    task = _weekly(store)
    before = store.snapshot
    with pytest.raises(ValidationError):
        store.update_template(task.id, {"quadrant": "Z"})
    assert store.snapshot is before


def test_update_unknown_task(store):
    with pytest.raises(NotFoundError):
        store.update_template("nope", {"title": "x"})


def test_delete_cascades_to_resolved(store):
    task = _weekly(store)
    other = _weekly(store, title="Read")
    occ = find_occurrence(store.tasks, f"{task.id}-2024-01-08")
    resolved = store.resolve_occurrence(occ, completed=True)

    removed = store.delete_template(task.id)
    assert removed == [task.id, resolved.id]
    assert [t.id for t in store.tasks] == [other.id]
    occs = materialize(store.tasks, "2024-01-01", "2024-01-31")
    assert {o.template_id for o in occs} == {other.id}


# ── resolution ──


def test_resolve_creates_record(store):
    task = _weekly(store, goalId="g1")
    occ = find_occurrence(store.tasks, f"{task.id}-2024-01-15")
    resolved = store.resolve_occurrence(occ, completed=True)
    assert resolved.id == "t2"
    assert resolved.parent_id == task.id
    assert resolved.date == "2024-01-15"
    assert resolved.completed is True
    assert resolved.is_recurring is False
    assert resolved.goal_id == "g1"

    on_day = [o for o in materialize(store.tasks, "2024-01-15", "2024-01-15")]
    assert len(on_day) == 1
    assert on_day[0].kind == Occurrence.RESOLVED


def test_resolve_is_idempotent(store):
    task = _weekly(store)
    occ = find_occurrence(store.tasks, f"{task.id}-2024-01-08")
    first = store.resolve_occurrence(occ, completed=True)
    second = store.resolve_occurrence(occ, completed=False)
    assert first == second
    assert len(store.tasks) == 2


def test_resolve_publishes_only_when_completed(store):
    completed = []
    store.on_completed(completed.append)
    task = _weekly(store)
    store.resolve_occurrence(find_occurrence(store.tasks, f"{task.id}-2024-01-08"), completed=False)
    store.resolve_occurrence(find_occurrence(store.tasks, f"{task.id}-2024-01-15"), completed=True)
    assert [t.date for t in completed] == ["2024-01-15"]


def test_resolve_on_anchor_day_rejected(store):
    task = _weekly(store)
    with pytest.raises(InvariantViolation):
        store.resolve_occurrence(task, completed=True)


def test_resolve_unknown_parent(store):
    task = _weekly(store)
    occ = find_occurrence(store.tasks, f"{task.id}-2024-01-08")
    store.delete_template(task.id)
    with pytest.raises(NotFoundError):
        store.resolve_occurrence(occ, completed=True)


def test_clear_goal(store):
    _weekly(store, goalId="g1")
    _weekly(store, goalId="g2")
    assert store.clear_goal("g1") == 1
    assert [t.goal_id for t in store.tasks] == [None, "g2"]
    assert store.clear_goal("g1") == 0


# ── persistence ──


def test_load_tasks(workspace):
    tf = load_tasks(workspace)
    assert [t.id for t in tf.tasks] == ["standup", "read", "prd"]
    assert tf.tasks[1].repeat_custom_days == (2, 4)


def test_save_load_round_trip(workspace):
    store = TaskStore(load_tasks(workspace), SequentialIds("n"))
    occ = find_occurrence(store.tasks, "standup-2024-01-08")
    store.resolve_occurrence(occ, completed=True)
    save_tasks(store.snapshot, workspace)

    reloaded = load_tasks(workspace)
    assert reloaded == store.snapshot
    assert reloaded.tasks[-1].parent_id == "standup"


def test_load_missing_file(tmp_path):
    assert load_tasks(tmp_path) == TasksFile()


# ── input hardening ──


def test_move_anchor_onto_resolved_day_rejected(store):
    task = store.create_template({"title": "Gym", "date": "2024-01-01", "quadrant": "B", "repeat": "daily"})
    store.resolve_occurrence(find_occurrence(store.tasks, f"{task.id}-2024-01-03"), completed=True)
    before = store.snapshot
    with pytest.raises(ValidationError):
        store.update_template(task.id, {"date": "2024-01-03"})
    assert store.snapshot is before

    moved = store.update_template(task.id, {"date": "2024-01-02"})
    occs = materialize(store.tasks, "2024-01-01", "2024-01-05")
    assert moved.date == "2024-01-02"
    assert len(occs) == len({(o.template_id, o.date) for o in occs}) == 4


def test_completed_must_be_bool(store):
    completed = []
    store.on_completed(completed.append)
    assert validate_task({"title": "x", "date": "2024-01-01", "quadrant": "A", "completed": "false"})
    with pytest.raises(ValidationError):
        store.create_template({"title": "x", "date": "2024-01-01", "quadrant": "A", "completed": "false"})

    task = _weekly(store)
    with pytest.raises(ValidationError):
        store.update_template(task.id, {"completed": "false"})
    assert store.get(task.id).completed is False
    assert completed == []


def test_order_must_be_numeric(store):
    with pytest.raises(ValidationError) as exc:
        store.create_template({"title": "x", "date": "2024-01-01", "quadrant": "A", "order": "first"})
    assert exc.value.errors == ["order must be a number"]
    assert store.create_template({"title": "x", "date": "2024-01-01", "quadrant": "A", "order": 7}).order == 7.0


def test_load_skips_invalid_records(workspace, caplog):
    path = workspace / "data" / "tasks.yaml"
    path.write_text(
        "tasks:\n"
        "  - {id: ok, title: Fine, date: '2024-01-01', quadrant: A}\n"
        "  - {id: bad-repeat, title: Odd, date: '2024-01-01', quadrant: A, repeat: yearly}\n"
        "  - {id: bad-date, title: Odd, date: someday, quadrant: A}\n"
        "  - just a string\n",
        encoding="utf-8",
    )
    tf = load_tasks(workspace)
    assert [t.id for t in tf.tasks] == ["ok"]
    assert "bad-repeat" in caplog.text
    assert "bad-date" in caplog.text
