"""Structured JSON logging for lit.

Every project-mode invocation appends JSON lines to ``.lit/lit.log``
(rotated at 5MB, 3 backups). Records carry the logger name plus any of the
``command``, ``issue_id``, ``duration_ms`` and ``error`` extras; the
``command_timer`` context manager emits one summary record per CLI command.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from collections.abc import Generator
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FILENAME = "lit.log"
ROOT_LOGGER = "lit"
_MAX_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 3
_EXTRA_FIELDS = ("command", "issue_id", "duration_ms", "error")

_setup_lock = threading.Lock()


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, keyed ts/level/logger/msg plus known extras."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update({attr: getattr(record, attr) for attr in _EXTRA_FIELDS if hasattr(record, attr)})
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, default=str)


def _file_handlers(logger: logging.Logger) -> list[RotatingFileHandler]:
    return [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]


def setup_logging(log_dir: Path) -> logging.Logger:
    """Attach the rotating JSON handler for *log_dir* to the ``lit`` logger.

    Repeated calls with the same directory keep the existing handler;
    pointing at another directory swaps it out.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    log_path = os.path.abspath(str(log_dir / LOG_FILENAME))

    with _setup_lock:
        current = _file_handlers(logger)
        if any(h.baseFilename == log_path for h in current):
            return logger
        for stale in current:
            logger.removeHandler(stale)
            stale.close()

        handler = RotatingFileHandler(log_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT)
        handler.setFormatter(JsonLineFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


@contextmanager
def command_timer(command: str) -> Generator[None, None, None]:
    """Log one record with the command's wall time, and its error if it raised."""
    logger = logging.getLogger(f"{ROOT_LOGGER}.cli")
    start = time.monotonic()
    try:
        yield
    except Exception as exc:
        elapsed = round((time.monotonic() - start) * 1000, 1)
        logger.warning(
            "Command %s failed", command, extra={"command": command, "duration_ms": elapsed, "error": str(exc)}
        )
        raise
    elapsed = round((time.monotonic() - start) * 1000, 1)
    logger.info("Command %s finished", command, extra={"command": command, "duration_ms": elapsed})
