from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from carevoice.core.constants import LOG_BACKUP_COUNT, LOG_FILE_NAME, LOG_MAX_SIZE_BYTES


class _JSONFormatter(logging.Formatter):
    """Produces one JSON object per log record for file output."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


class _ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter with timestamp and level."""

    FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self.FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


_setup_done: bool = False


def parse_level(level: int | str) -> int:
    """Accept ``"DEBUG"``/``"info"``/``20`` and return the numeric level."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(
    log_dir: Optional[str | Path] = "logs",
    level: int | str = logging.INFO,
    max_bytes: int = LOG_MAX_SIZE_BYTES,
    backup_count: int = LOG_BACKUP_COUNT,
) -> None:
    """Configure the root logger with console and rotating file handlers.

    Passing ``log_dir=None`` skips the file handler.  Safe to call multiple
    times; subsequent calls are no-ops.
    """
    global _setup_done
    if _setup_done:
        return
    _setup_done = True

    numeric_level = parse_level(level)

    root = logging.getLogger()
    root.setLevel(numeric_level)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(_ConsoleFormatter())
    root.addHandler(console_handler)

    if log_dir is None:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    # Rotating file handler (JSON)
    file_handler = RotatingFileHandler(
        filename=str(log_path / LOG_FILE_NAME),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(_JSONFormatter())
    root.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Return a logger with the given name."""
    return logging.getLogger(name)
