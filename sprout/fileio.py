"""Atomic document I/O for the Sprout workspace.

Documents are YAML (hand-editable task and goal lists) or JSON (machine
state). The format is picked from the file suffix.
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from sprout.errors import StorageError

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = {".yaml", ".yml"}


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in _YAML_SUFFIXES


def read_document(path: Path) -> dict[str, Any]:
    """Read a YAML or JSON mapping; a missing or blank file reads as {}."""
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        result = yaml.safe_load(text) if _is_yaml(path) else json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise StorageError(f"Cannot parse {path}: {e}") from e
    if not isinstance(result, dict):
        logger.warning("Ignoring %s: top level is %s, not a mapping", path, type(result).__name__)
        return {}
    return result


def dump_document(path: Path, data: dict[str, Any]) -> str:
    if _is_yaml(path):
        return yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_document(path: Path, data: dict[str, Any]) -> None:
    """Atomic write with file locking: temp file + flock + rename."""
    content = dump_document(path, data)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=path.suffix)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        os.replace(temp_path, path)
    except Exception:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
    logger.debug("Wrote %s (%d bytes)", path, len(content))
