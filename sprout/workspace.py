"""Workspace root, timezone and path helpers for Sprout.

The workspace root comes from SPROUT_ROOT (default ~/sprout). Data files
live under <root>/data, logs under <root>/logs.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sprout.errors import StorageError
from sprout.fileio import read_document

logger = logging.getLogger(__name__)


def workspace_root() -> Path:
    """Get the workspace root directory (contains data/ and logs/)."""
    return Path(
        os.environ.get("SPROUT_ROOT", str(Path.home() / "sprout"))
    ).expanduser().resolve()


def get_user_timezone(root: Path | None = None) -> ZoneInfo:
    """Get user's timezone from profile.yaml, defaulting to UTC."""
    try:
        profile = read_document(profile_path(root))
        if "timezone" in profile:
            return ZoneInfo(str(profile["timezone"]))
    except (StorageError, ZoneInfoNotFoundError, ValueError) as e:
        logger.warning("Falling back to UTC: %s", e)
    return ZoneInfo("UTC")


def now_local(root: Path | None = None) -> datetime:
    """Get current datetime in user's timezone."""
    return datetime.now(get_user_timezone(root))


def today_str(root: Path | None = None) -> str:
    """Get today's date string (YYYY-MM-DD) in user's timezone."""
    return now_local(root).date().isoformat()


# ── Path helpers ──────────────────────────────────────────────

def data_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "data"


def tasks_path(root: Path | None = None) -> Path:
    return data_dir(root) / "tasks.yaml"


def goals_path(root: Path | None = None) -> Path:
    return data_dir(root) / "goals.yaml"


def wallet_path(root: Path | None = None) -> Path:
    return data_dir(root) / "wallet.json"


def profile_path(root: Path | None = None) -> Path:
    return data_dir(root) / "profile.yaml"


def hooks_config_path(root: Path | None = None) -> Path:
    return data_dir(root) / "hooks.yaml"


def log_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "logs"
