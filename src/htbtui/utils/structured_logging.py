"""Structured logging utilities for htbtui.

The TUI owns the terminal, so nothing is logged to the console while it
runs; every record goes to JSON Lines files in a per-session directory.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Tuple

__all__ = ["JSONFormatter", "setup_structured_logging"]

_PACKAGE = "htbtui"
_COMPONENT_TO_MODULES: Dict[str, Tuple[str, ...]] = {
    "gateway.jsonl": ("htbtui.gateway",),
    "app.jsonl": ("htbtui.app", "htbtui.events", "htbtui.input_mode"),
    "tui.jsonl": ("htbtui.tui",),
}
_NOISY_THIRD_PARTY_LOGGERS = (
    "aiohttp",
    "aiohttp.client",
    "aiohttp.internal",
    "asyncio",
    "urllib3",
)


class JSONFormatter(logging.Formatter):
    """Format log records as JSON Lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": _to_iso_millis(datetime.now(timezone.utc)),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _LOG_RECORD_IGNORED_FIELDS:
                continue
            entry[key] = _json_safe(value)

        return json.dumps(entry)


_LOG_RECORD_IGNORED_FIELDS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
    "getMessage",
}


def setup_structured_logging(
    logs_dir: Path,
    session_id: str,
    level: str = "INFO",
) -> Path:
    """Configure JSONL logging for the current session and return its directory."""
    session_dir = logs_dir / session_id
    session_dir.mkdir(parents=True, exist_ok=True)
    file_level = _parse_level(level)
    formatter = JSONFormatter()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(file_level)

    package_logger = logging.getLogger(_PACKAGE)
    package_logger.setLevel(file_level)

    for filename, modules in _COMPONENT_TO_MODULES.items():
        handler = _file_handler(session_dir / filename, formatter, file_level)
        for module_prefix in modules:
            component_logger = logging.getLogger(module_prefix)
            component_logger.handlers.clear()
            component_logger.setLevel(file_level)
            component_logger.propagate = False
            component_logger.addHandler(handler)

    root_logger.addHandler(
        _file_handler(session_dir / "other.jsonl", formatter, file_level)
    )
    _limit_third_party_noise()
    return session_dir


def _file_handler(path: Path, formatter: logging.Formatter, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _parse_level(level: Optional[str]) -> int:
    value = logging.getLevelName(str(level or "INFO").upper())
    return value if isinstance(value, int) else logging.INFO


def _limit_third_party_noise() -> None:
    for name in _NOISY_THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _to_iso_millis(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def _json_safe(value: object) -> object:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value
