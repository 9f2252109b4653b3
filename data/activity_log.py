"""
Activity Log Module

This module provides the durable activity log: an append-only ring buffer of
structured events that is persisted as a flat JSON array and can be exported
for later inspection. Every entry is also forwarded to the application logger.
"""

import json
import logging
import os
import threading
import uuid
from collections import deque
from typing import Any, Deque, List, Optional, Union

from config import settings
from data.models import LogEntry, LogLevel
from utils.helpers import date_stamp, ensure_dir_exists, iso_timestamp
from utils.logger import get_logger

logger = get_logger(__name__)
activity_logger = get_logger("activity")

_LEVEL_MAP = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class ActivityLog:
    """Ring buffer of structured activity events."""

    def __init__(self, storage_path: Optional[str] = None, max_entries: Optional[int] = None):
        """
        Initialize the activity log.

        Args:
            storage_path: JSON file the buffer is persisted to, or None to keep it in memory only.
            max_entries: Capacity of the buffer; the oldest entries are evicted first.
        """
        self.storage_path = storage_path
        self.max_entries = max_entries or settings.MAX_LOG_ENTRIES
        self._entries: Deque[LogEntry] = deque(maxlen=self.max_entries)
        self._lock = threading.RLock()

        if self.storage_path:
            self._load()

    def _load(self) -> None:
        if not os.path.exists(self.storage_path):
            return
        try:
            with open(self.storage_path, 'r', encoding='utf-8') as f:
                raw_entries = json.load(f)
            for raw in raw_entries[-self.max_entries:]:
                self._entries.append(LogEntry.from_dict(raw))
            logger.debug(f"Loaded {len(self._entries)} activity log entries from {self.storage_path}")
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Failed to load activity log from {self.storage_path}: {e}")

    def _persist(self) -> None:
        if not self.storage_path:
            return
        try:
            ensure_dir_exists(os.path.dirname(self.storage_path) or ".")
            with open(self.storage_path, 'w', encoding='utf-8') as f:
                json.dump([entry.to_dict() for entry in self._entries], f, ensure_ascii=False, default=str)
        except OSError as e:
            logger.error(f"Failed to persist activity log to {self.storage_path}: {e}")

    def add(self, level: Union[LogLevel, str], message: str, details: Any = None) -> LogEntry:
        """
        Append an event to the log.

        Args:
            level: One of info, success, warning, error.
            message: Short human-readable description.
            details: Arbitrary structured diagnostic payload.

        Returns:
            LogEntry: The stored entry.
        """
        level = LogLevel(level)
        entry = LogEntry(
            id=str(uuid.uuid4()),
            timestamp=iso_timestamp(),
            type=level,
            message=message,
            details=details,
        )
        with self._lock:
            self._entries.append(entry)
            self._persist()

        activity_logger.log(_LEVEL_MAP[level], message)
        return entry

    def info(self, message: str, details: Any = None) -> LogEntry:
        return self.add(LogLevel.INFO, message, details)

    def success(self, message: str, details: Any = None) -> LogEntry:
        return self.add(LogLevel.SUCCESS, message, details)

    def warning(self, message: str, details: Any = None) -> LogEntry:
        return self.add(LogLevel.WARNING, message, details)

    def error(self, message: str, details: Any = None) -> LogEntry:
        return self.add(LogLevel.ERROR, message, details)

    def entries(self, level: Optional[Union[LogLevel, str]] = None) -> List[LogEntry]:
        """Return entries oldest first, optionally filtered by type."""
        with self._lock:
            entries = list(self._entries)
        if level is not None:
            level = LogLevel(level)
            entries = [entry for entry in entries if entry.type == level]
        return entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        """Drop every entry, then record that the log was cleared."""
        with self._lock:
            self._entries.clear()
            self._persist()
        self.info("Logs cleared")

    def export_data(self) -> List[dict]:
        """Entries in the log export format."""
        return [entry.to_export_dict() for entry in self.entries()]

    def export(self, directory: str) -> str:
        """
        Write the log export file.

        Args:
            directory: Target directory, created if missing.

        Returns:
            str: Path of the written app_logs_YYYY-MM-DD.json file.
        """
        ensure_dir_exists(directory)
        path = os.path.join(directory, f"app_logs_{date_stamp()}.json")
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.export_data(), f, indent=2, ensure_ascii=False, default=str)
        logger.info(f"Exported {len(self)} log entries to {path}")
        return path
