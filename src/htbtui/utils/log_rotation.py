"""Log rotation and cleanup utilities."""

from __future__ import annotations

import logging
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

__all__ = [
    "cleanup_excess_sessions",
    "cleanup_old_logs",
    "get_log_directories_by_age",
    "new_session_id",
]

SESSION_DIR_PREFIX = "session_"
_TIMESTAMP_SLICE = slice(8, 23)  # session_YYYYMMDD_HHMMSS
_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
_DEFAULT_RETENTION_DAYS = 7


def new_session_id(now: Optional[datetime] = None) -> str:
    """Name of the log directory for a session starting at ``now``."""
    moment = now or datetime.now(timezone.utc)
    return f"{SESSION_DIR_PREFIX}{moment.strftime(_TIMESTAMP_FORMAT)}"


def cleanup_old_logs(
    logs_dir: Path, retention_days: int = _DEFAULT_RETENTION_DAYS
) -> int:
    """Remove session log directories older than ``retention_days``."""
    if not logs_dir.exists():
        return 0

    cutoff_date = datetime.now(timezone.utc) - timedelta(days=retention_days)
    cleanup_count = 0

    for session_dir in _iter_session_directories(logs_dir):
        timestamp = _extract_session_timestamp(session_dir)
        if timestamp is None:
            logger.warning("Failed to parse timestamp for %s", session_dir)
            continue
        if timestamp < cutoff_date:
            try:
                logger.info("Removing old log directory: %s", session_dir)
                shutil.rmtree(session_dir)
                cleanup_count += 1
            except OSError as exc:  # pragma: no cover - best effort cleanup
                logger.warning("Failed to remove %s: %s", session_dir, exc)

    return cleanup_count


def get_log_directories_by_age(logs_dir: Path) -> List[Tuple[Path, datetime]]:
    """Return ``(path, timestamp)`` entries for session logs sorted oldest first."""
    entries: List[Tuple[Path, datetime]] = []
    if not logs_dir.exists():
        return entries

    for session_dir in _iter_session_directories(logs_dir):
        timestamp = _extract_session_timestamp(session_dir)
        if timestamp is not None:
            entries.append((session_dir, timestamp))

    entries.sort(key=lambda item: item[1])
    return entries


def _iter_session_directories(logs_dir: Path) -> Iterable[Path]:
    return (
        path for path in logs_dir.glob(f"{SESSION_DIR_PREFIX}*") if path.is_dir()
    )


def _extract_session_timestamp(session_dir: Path) -> Optional[datetime]:
    name = session_dir.name
    if not name.startswith(SESSION_DIR_PREFIX):
        return None
    try:
        dt = datetime.strptime(name[_TIMESTAMP_SLICE], _TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return dt.replace(tzinfo=timezone.utc)


def cleanup_excess_sessions(logs_dir: Path, keep: int) -> int:
    """Remove the oldest session directories beyond the newest ``keep``."""
    entries = get_log_directories_by_age(logs_dir)
    excess = entries[: max(0, len(entries) - keep)] if keep > 0 else []
    removed = 0
    for session_dir, _ in excess:
        try:
            shutil.rmtree(session_dir)
            removed += 1
        except OSError as exc:  # pragma: no cover - best effort cleanup
            logger.warning("Failed to remove %s: %s", session_dir, exc)
    return removed
