"""Shell hooks fired on Sprout events.

Configured via data/hooks.yaml, e.g.:

    on_reward:
      - notify-send "Sprout" "+10 seeds"
    on_goal_complete:
      - command: ./scripts/celebrate.sh
        timeout: 10

Each hook gets the event context as JSON on stdin.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from sprout.fileio import read_document
from sprout.workspace import hooks_config_path, workspace_root

logger = logging.getLogger(__name__)

VALID_HOOK_POINTS = {
    "on_task_complete",
    "on_goal_complete",
    "on_reward",
    "on_medal_unlock",
}

DEFAULT_TIMEOUT = 30
OUTPUT_CAP = 4096


def load_hooks_config(root: Path | None = None) -> dict[str, Any]:
    return read_document(hooks_config_path(root))


def run_hooks(
    hook_point: str,
    context: dict[str, Any],
    root: Path | None = None,
) -> list[dict[str, Any]]:
    """Run all hooks registered for a hook point.

    Returns one result per hook with exit code and captured output. A
    failing hook is reported in its result and never raises.
    """
    if hook_point not in VALID_HOOK_POINTS:
        logger.warning("Unknown hook point: %s", hook_point)
        return []
    if root is None:
        root = workspace_root()

    hooks = load_hooks_config(root).get(hook_point) or []
    if not isinstance(hooks, list):
        logger.warning("hooks.yaml: %s should be a list", hook_point)
        return []

    results = []
    payload = json.dumps({"event": hook_point, **context}, ensure_ascii=False)
    for hook in hooks:
        if isinstance(hook, dict):
            command = str(hook.get("command", ""))
            timeout = hook.get("timeout", DEFAULT_TIMEOUT)
        else:
            command = str(hook)
            timeout = DEFAULT_TIMEOUT
        if not command:
            continue

        result: dict[str, Any] = {"command": command, "hook_point": hook_point}
        try:
            proc = subprocess.run(
                command,
                shell=True,
                input=payload,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=str(root),
            )
            result["exit_code"] = proc.returncode
            result["stdout"] = proc.stdout[:OUTPUT_CAP]
            result["stderr"] = proc.stderr[:OUTPUT_CAP]
            if proc.returncode != 0:
                logger.warning("Hook %r exited %d", command, proc.returncode)
        except subprocess.TimeoutExpired:
            result["exit_code"] = -1
            result["error"] = f"Hook timed out after {timeout}s"
            logger.warning("Hook %r timed out after %ss", command, timeout)
        except OSError as e:
            result["exit_code"] = -1
            result["error"] = str(e)
            logger.warning("Hook %r failed: %s", command, e)
        results.append(result)

    return results
