"""
Notifier Module

The short-lived notification channel shown to the user (the "toast"),
separate from the durable activity log.
"""

import logging

from data.models import LogLevel
from utils.logger import get_logger

_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class LoggingNotifier:
    """Shows notifications as console log lines."""

    def __init__(self):
        self.logger = get_logger("notifications")

    def notify(self, level: LogLevel, title: str, message: str) -> None:
        self.logger.log(_LEVELS[LogLevel(level)], f"{title}: {message}")
