"""
logging_config.py - Centralized logging configuration.

Provides consistent logging setup for the agent, the clients and the tests.
"""

from __future__ import annotations

import json
import logging
import sys

LOG_LEVELS: dict[str, int] = {
    "spam": logging.DEBUG,
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}


def parse_log_level(name: str) -> int:
    """Map a CLI log level name (case-insensitive) to a logging level."""
    key = str(name or "").strip().lower()
    if key not in LOG_LEVELS:
        raise ValueError(f"Unknown log level {name!r}; choose one of {sorted(LOG_LEVELS)}")
    return LOG_LEVELS[key]


class JsonLineFormatter(logging.Formatter):
    """One JSON object per line; the message is escaped, so quotes in it are safe."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: int = logging.INFO, json_format: bool = False) -> None:
    """Configure root logger with consistent formatting.

    Args:
        level: Logging level.
        json_format: If True, emit one JSON object per line.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if json_format:
        formatter = JsonLineFormatter(datefmt="%H:%M:%S")
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(name)-20s] %(levelname)-7s %(message)s",
            datefmt="%H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    # httpx logs every request at INFO; keep it for debug runs only.
    logging.getLogger("httpx").setLevel(level if level <= logging.DEBUG else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger."""
    return logging.getLogger(name)
