"""Logging setup shared by every jobmerge module.

``get_logger`` configures the root logger on first use: a console handler on
stdout and, unless ``JOBMERGE_LOG_FILE`` is off, a dated file under
``logs/`` (or ``JOBMERGE_LOG_DIR``). ``LOG_LEVEL`` sets the console level;
the file always gets DEBUG.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"
_DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"

_configured = False
_console: logging.Handler | None = None


def get_logger(name: str) -> logging.Logger:
    """Return a named logger; configures root handlers on first call."""
    global _configured
    if not _configured:
        _configure(os.environ.get("LOG_LEVEL", "INFO"))
        _configured = True
    return logging.getLogger(name)


def set_level(level_name: str) -> None:
    """Change the console level after startup (the file handler stays at DEBUG)."""
    level = _parse_level(level_name)
    root = logging.getLogger()
    if _console is None:
        root.setLevel(level)
        return
    _console.setLevel(level)
    root.setLevel(min(root.level, level))


def _parse_level(level_name: str) -> int:
    return getattr(logging, str(level_name).upper(), logging.INFO)


def _file_enabled() -> bool:
    return os.environ.get("JOBMERGE_LOG_FILE", "1").lower() not in ("0", "false", "no")


def log_file_path(day: datetime | None = None) -> Path:
    log_dir = Path(os.environ.get("JOBMERGE_LOG_DIR") or _DEFAULT_LOG_DIR)
    return log_dir / f"jobmerge_{(day or datetime.now()).strftime('%Y-%m-%d')}.log"


def _configure(level_name: str) -> None:
    global _console
    level = _parse_level(level_name)
    root = logging.getLogger()
    root.setLevel(level)

    # someone (pytest, an embedding app) already owns the handlers
    if root.handlers:
        return

    formatter = logging.Formatter(FORMAT, datefmt=DATE_FMT)
    _console = logging.StreamHandler(sys.stdout)
    _console.setLevel(level)
    _console.setFormatter(formatter)
    root.addHandler(_console)

    if not _file_enabled():
        return
    path = log_file_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        root.warning("File logging disabled, cannot open %s: %s", path, exc)
        return
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)
    root.addHandler(fh)
    root.setLevel(logging.DEBUG)
