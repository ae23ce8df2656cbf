"""Logging setup that keeps log records off the painted screen."""

from __future__ import annotations

import logging as py_logging
import os
import sys
from pathlib import Path
from typing import TextIO

LOG_LEVEL_NAMES = ("DEBUG", "INFO", "WARN", "ERROR")
LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
DEFAULT_LOG_PATH = Path("~/.config/branchdeck/logs/branchdeck.log")
_FALLBACK_LOG_PATH = Path(".branchdeck/logs/branchdeck.log")
_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s:%(lineno)d %(message)s"
_ROOT_LOGGER = "branchdeck"


def normalize_level(level: str) -> str:
    """Upper-case a level name, folding ``WARNING`` into ``WARN``."""
    normalized = level.strip().upper()
    if normalized == "WARNING":
        return "WARN"
    return normalized


def default_log_path() -> Path:
    try:
        return DEFAULT_LOG_PATH.expanduser()
    except RuntimeError:
        return (Path.cwd() / _FALLBACK_LOG_PATH).resolve()


def shares_stream(first: TextIO, second: TextIO) -> bool:
    """True when both streams write to the same file or terminal."""
    if first is second:
        return True
    try:
        first_stat = os.fstat(first.fileno())
        second_stat = os.fstat(second.fileno())
    except (AttributeError, OSError, ValueError):
        return False
    return (first_stat.st_dev, first_stat.st_ino) == (second_stat.st_dev, second_stat.st_ino)


def _resolve_log_file(log_file: str | Path) -> Path:
    try:
        path = Path(log_file).expanduser()
    except RuntimeError:
        path = Path(log_file)
    if not path.is_absolute():
        path = path.resolve()
    return path


def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
    painted: TextIO | None = None,
) -> py_logging.Logger:
    """(Re)configure the ``branchdeck`` logger.

    ``painted`` is the stream the terminal screen draws frames on. When the
    console stream lands on the same file, no console handler is installed
    and records only reach ``log_file``. Handlers from a previous call are
    closed.
    """
    resolved = LOG_LEVELS.get(normalize_level(level), py_logging.INFO)
    console = stream or sys.stderr

    logger = py_logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(resolved)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.propagate = False
    formatter = py_logging.Formatter(_FORMAT)

    if painted is None or not shares_stream(console, painted):
        handler = py_logging.StreamHandler(console)
        handler.setLevel(resolved)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    file_error: OSError | None = None
    if log_file:
        log_path = _resolve_log_file(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = py_logging.FileHandler(log_path, encoding="utf-8")
        except OSError as exc:
            file_error = exc
        else:
            file_handler.setLevel(py_logging.DEBUG)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    if not logger.handlers:
        # Keeps the stdlib last-resort handler from writing onto the screen.
        logger.addHandler(py_logging.NullHandler())
    if file_error is not None:
        logger.warning("Log file unavailable path=%s: %s", log_file, file_error)
    return logger
