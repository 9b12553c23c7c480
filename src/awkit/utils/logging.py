"""Logging setup for the awkit command line.

Stdout carries the transformed document, so console records always go to
stderr. A rotating log file keeps the full debug trail of each run.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import TextIO

__all__ = ["setup_logging", "log_path", "reset_logging"]

LOG_FILE_NAME = "awkit.log"
CONSOLE_FORMAT = "awkit: %(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_QUIET_LOGGERS: tuple[str, ...] = ("asyncio",)
_LOG_PATH: Path | None = None


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    stream: TextIO | None = None,
    max_bytes: int = 512_000,
    backup_count: int = 2,
    force: bool = False,
) -> Path:
    """Install a rotating file handler and a stderr console handler.

    The console only shows warnings unless ``level`` asks for debug output,
    so a normal run prints nothing but the document. Repeated calls are
    no-ops unless ``force`` is set.
    """

    global _LOG_PATH
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    directory = default_log_dir() if log_dir is None else Path(log_dir).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / LOG_FILE_NAME

    file_handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handlers: list[logging.Handler] = [file_handler]

    if console:
        console_handler = logging.StreamHandler(stream or sys.stderr)
        console_handler.setLevel(level if level <= logging.DEBUG else max(level, logging.WARNING))
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        handlers.append(console_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _LOG_PATH = path
    return path


def default_log_dir() -> Path:
    """``AWKIT_LOG_DIR``, else ``$XDG_STATE_HOME/awkit``, else ``~/.awkit/logs``."""

    override = os.environ.get("AWKIT_LOG_DIR")
    if override:
        return Path(override).expanduser()
    state_home = os.environ.get("XDG_STATE_HOME")
    if state_home:
        return Path(state_home).expanduser() / "awkit"
    return Path.home() / ".awkit" / "logs"


def log_path() -> Path | None:
    return _LOG_PATH


def reset_logging() -> None:
    """Drop the handlers installed by :func:`setup_logging`."""

    global _LOG_PATH
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    _LOG_PATH = None
