# src/focusflow/logging_setup.py

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "focusflow.log"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that write from background threads; they would interleave with the REPL prompt.
BACKGROUND_LOGGERS = ("focusflow.tasks.reminders", "focusflow.core.effects")


class _ConsoleNoiseFilter(logging.Filter):
    """Console gate: app records pass, background ones need WARNING, anything else needs ERROR."""

    def __init__(self, background: Iterable[str] = BACKGROUND_LOGGERS) -> None:
        super().__init__()
        self._background = tuple(background)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("focusflow."):
            # py.warnings lands here too
            return record.levelno >= logging.ERROR
        if name.startswith(self._background):
            return record.levelno >= logging.WARNING
        return True


def _owned(handler: logging.Handler) -> bool:
    return getattr(handler, "_focusflow", False)


def setup_logging(
    *,
    log_dir: str | Path = ".local/focusflow",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Install a filtered stderr handler and a rotating file handler on the root logger.

    Handlers installed by an earlier call are replaced, others are left alone.
    Returns the path of the log file.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(min(logging.DEBUG, console_level, file_level))
    for handler in [h for h in root.handlers if _owned(h)]:
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.addFilter(_ConsoleNoiseFilter())

    logfile = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    logfile.setLevel(file_level)

    for handler in (console, logfile):
        handler.setFormatter(formatter)
        handler._focusflow = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    logging.captureWarnings(True)
    return log_file
