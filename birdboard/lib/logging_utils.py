from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Dict

LOGGER_NAME = "birdboard"

_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class ExtraFieldsFormatter(logging.Formatter):
    """Formatter that appends ``extra={...}`` payloads as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras: Dict[str, Any] = {
            key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS
        }
        if not extras:
            return line
        fields = " ".join(f"{key}={value!r}" for key, value in sorted(extras.items()))
        return f"{line} | {fields}"


def setup_logging(
    base_dir: Path,
    *,
    level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    console: bool = True,
) -> logging.Logger:
    """
    Attach handlers to the ``birdboard`` logger tree: a debug file at
    ``<base_dir>/logs/debug.log`` and, optionally, a stderr stream.
    Safe to call multiple times; handlers are added once.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    formatter = ExtraFieldsFormatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    log_dir = base_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_dir / "debug.log", encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    logger.setLevel(min(level, file_level))
    logger.propagate = False
    return logger
