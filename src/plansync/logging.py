"""Structured JSON logging for plansync.

Writes JSONL to .plansync/plansync.log with rotation (5MB, 3 backups).
Records may carry structured extras: ``tool``, ``args_data``, ``duration_ms``
and ``error`` from the MCP server; ``plan`` and ``counts`` from the sync engine.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FILENAME = "plansync.log"
_setup_lock = threading.Lock()
_MAX_BYTES = 5 * 1024 * 1024  # 5MB
_BACKUP_COUNT = 3

# record attribute -> JSON key
_EXTRA_FIELDS: tuple[tuple[str, str], ...] = (
    ("tool", "tool"),
    ("args_data", "args"),
    ("duration_ms", "duration_ms"),
    ("error", "error"),
    ("plan", "plan"),
    ("counts", "counts"),
)


class _JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for attr, key in _EXTRA_FIELDS:
            if hasattr(record, attr):
                entry[key] = getattr(record, attr)
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, default=str)


def setup_logging(plansync_dir: Path, *, level: int = logging.INFO) -> logging.Logger:
    """Set up structured JSON logging to .plansync/plansync.log.

    Idempotent per log path: calling twice with the same directory keeps a
    single handler, and pointing at a new directory replaces the old one.
    """
    logger = logging.getLogger("plansync")
    log_path = plansync_dir / LOG_FILENAME
    target_filename = os.path.abspath(str(log_path))

    with _setup_lock:
        for h in logger.handlers[:]:
            if not isinstance(h, RotatingFileHandler):
                continue
            if h.baseFilename == target_filename:
                logger.setLevel(level)
                return logger
            logger.removeHandler(h)
            h.close()

        handler = RotatingFileHandler(
            str(log_path),
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(_JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(level)
    return logger
