"""Sprout web API — JSON endpoints over the planner, served by FastAPI.

Run with: uvicorn ui.app:app
"""

from __future__ import annotations

import logging
import os
import secrets
import threading
from contextlib import asynccontextmanager
from datetime import date as date_type
from typing import Any, AsyncIterator

from fastapi import Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from sprout import (
    InvariantViolation,
    NotFoundError,
    Planner,
    StorageError,
    ValidationError,
    progress_percent,
    today_str,
    visible_range,
    workspace_root,
)
from sprout.logging_setup import setup_logging

logger = logging.getLogger("sprout.ui")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    setup_logging()
    logger.info("Sprout API serving %s", workspace_root())
    yield


app = FastAPI(title="Sprout", version="0.1.0", lifespan=lifespan)


# ── Errors ────────────────────────────────────────────────────


@app.exception_handler(ValidationError)
def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": "; ".join(exc.errors)})


@app.exception_handler(NotFoundError)
def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvariantViolation)
def _invariant(request: Request, exc: InvariantViolation) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(StorageError)
def _storage(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Workspace storage error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# ── Auth ──────────────────────────────────────────────────────

security = HTTPBasic(auto_error=False)


def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("SPROUT_USERNAME", "")
    expected_password = os.environ.get("SPROUT_PASSWORD", "")

    if not expected_username or not expected_password:
        return "guest"

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


# ── Planner ───────────────────────────────────────────────────

# One planner per process so the reward popup slot outlives a request.
_planner: Planner | None = None
_planner_lock = threading.Lock()
# Held across mutate-and-save; sync endpoints run on the threadpool.
_write_lock = threading.Lock()


def get_planner() -> Planner:
    global _planner
    root = workspace_root()
    with _planner_lock:
        if _planner is None or _planner.root != root:
            _planner = Planner.load(root)
        return _planner


def _day(value: str | None, default: str) -> date_type:
    try:
        return date_type.fromisoformat(value or default)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")


def _range(start: str | None, end: str | None, view: str) -> tuple[date_type, date_type]:
    today = today_str()
    if start and end:
        return _day(start, today), _day(end, today)
    anchor = _day(start, today)
    try:
        return visible_range(anchor, int(view) if view.isdigit() else view)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ── Endpoints ─────────────────────────────────────────────────

@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


@app.get("/api/occurrences")
def api_occurrences(
    start: str | None = None,
    end: str | None = None,
    view: str = "month",
    username: str = Depends(get_current_user),
    planner: Planner = Depends(get_planner),
) -> dict[str, Any]:
    """Materialized occurrences for a window (explicit start/end, or a view around start)."""
    first, last = _range(start, end, view)
    occurrences = planner.materialize(first, last)
    return {
        "start": first.isoformat(),
        "end": last.isoformat(),
        "occurrences": [o.to_dict() for o in occurrences],
        "links": [list(pair) for pair in planner.links(first, last)],
    }


@app.post("/api/occurrences/{occurrence_id}/toggle")
def api_toggle_occurrence(
    occurrence_id: str,
    username: str = Depends(get_current_user),
    planner: Planner = Depends(get_planner),
) -> dict[str, Any]:
    with _write_lock:
        task = planner.toggle_occurrence(occurrence_id)
        planner.save()
    return {"ok": True, "task": task.to_dict(), "notification": _notification(planner)}


@app.post("/api/occurrences/{occurrence_id}/resolve")
def api_resolve_occurrence(
    occurrence_id: str,
    payload: dict[str, Any] = Body(default={}),
    username: str = Depends(get_current_user),
    planner: Planner = Depends(get_planner),
) -> dict[str, Any]:
    completed = payload.get("completed", False)
    if not isinstance(completed, bool):
        raise HTTPException(status_code=400, detail="completed must be true or false")
    with _write_lock:
        occurrence = planner.find_occurrence(occurrence_id)
        task = planner.resolve_occurrence(occurrence, completed)
        planner.save()
    return {"ok": True, "task": task.to_dict(), "notification": _notification(planner)}


@app.get("/api/tasks")
def api_list_tasks(username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    return {"tasks": [t.to_dict() for t in planner.store.tasks]}


@app.post("/api/tasks")
def api_create_task(payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    with _write_lock:
        task = planner.create_template(payload)
        planner.save()
    return {"ok": True, "task": task.to_dict()}


@app.put("/api/tasks/{task_id}")
def api_update_task(task_id: str, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    with _write_lock:
        task = planner.update_template(task_id, payload)
        planner.save()
    return {"ok": True, "task": task.to_dict(), "notification": _notification(planner)}


@app.delete("/api/tasks/{task_id}")
def api_delete_task(task_id: str, username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    with _write_lock:
        removed = planner.delete_template(task_id)
        planner.save()
    return {"ok": True, "removed": removed}


@app.post("/api/reorder")
def api_reorder(payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    active_id = payload.get("activeId")
    over_id = payload.get("overId")
    if not active_id or not over_id:
        raise HTTPException(status_code=400, detail="Missing activeId or overId")
    with _write_lock:
        changed = planner.reorder(str(active_id), str(over_id))
        if changed:
            planner.save()
    return {"ok": True, "changed": changed}


@app.get("/api/goals")
def api_list_goals(username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    return {
        "goals": [
            {**g.to_dict(), "progress": progress_percent(g)}
            for g in planner.ledger.goals
        ]
    }


@app.post("/api/goals")
def api_create_goal(payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    with _write_lock:
        goal = planner.create_goal(payload)
        planner.save()
    return {"ok": True, "goal": goal.to_dict()}


@app.put("/api/goals/{goal_id}")
def api_update_goal(goal_id: str, payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    with _write_lock:
        goal = planner.update_goal(goal_id, payload)
        planner.save()
    return {"ok": True, "goal": goal.to_dict()}


@app.delete("/api/goals/{goal_id}")
def api_delete_goal(goal_id: str, username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    with _write_lock:
        planner.delete_goal(goal_id)
        planner.save()
    return {"ok": True, "goal_id": goal_id}


def _notification(planner: Planner) -> dict[str, Any] | None:
    note = planner.current_notification
    return note.to_dict() if note else None


@app.get("/api/notification")
def api_notification(username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    return {"notification": _notification(planner)}


@app.post("/api/notification/dismiss")
def api_dismiss_notification(username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    with _write_lock:
        planner.dismiss_notification()
    return {"ok": True}


@app.post("/api/focus_time")
def api_focus_time(payload: dict[str, Any] = Body(...), username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    """Credit minutes from a finished focus countdown."""
    try:
        minutes = int(payload.get("minutes", 0))
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="minutes must be an integer")
    with _write_lock:
        total = planner.add_focus_time(minutes)
        planner.save()
    return {"ok": True, "focusTime": total}


@app.get("/api/wallet")
def api_wallet(username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    return planner.wallet.to_dict()


@app.post("/api/medals/{medal_id}/unlock")
def api_unlock_medal(medal_id: str, username: str = Depends(get_current_user), planner: Planner = Depends(get_planner)) -> dict[str, Any]:
    with _write_lock:
        unlocked = planner.unlock_medal(medal_id)
        if unlocked:
            planner.save()
    return {"ok": unlocked, "seeds": planner.seeds}


@app.get("/api/stats")
def api_stats(
    start: str | None = None,
    end: str | None = None,
    view: str = "7",
    username: str = Depends(get_current_user),
    planner: Planner = Depends(get_planner),
) -> dict[str, Any]:
    first, last = _range(start, end, view)
    stats = planner.stats(first, last)
    return {"start": first.isoformat(), "end": last.isoformat(), **stats.to_dict()}
