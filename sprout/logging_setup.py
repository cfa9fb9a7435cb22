"""Logging configuration for the Sprout entry points (TUI and web API)."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from sprout.workspace import log_dir as _log_dir


class _ConsoleNoiseFilter(logging.Filter):
    """Keep sprout logs on the console; third parties only on ERROR."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "sprout" or record.name.startswith("sprout."):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path | None = None,
    console: bool = True,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """Install a console handler and a full-detail file handler.

    Call once, early. Returns the log file path.
    """
    directory = Path(log_dir) if log_dir is not None else _log_dir()
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / "sprout.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if console:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(console_level)
        ch.setFormatter(fmt)
        ch.addFilter(_ConsoleNoiseFilter())
        root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
    return log_file
