"""Notification collaborator used to surface exhausted call failures."""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Notifier(Protocol):
    def display(self, message: str, severity: str = "error") -> None: ...


class LogNotifier:
    """Writes notifications to the ``apihub.notify`` logger."""

    def display(self, message: str, severity: str = "error") -> None:
        logger.log(_LEVELS.get(severity, logging.ERROR), message)


class RecordingNotifier:
    """Keeps notifications in memory, for tests and diagnostics pages."""

    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def display(self, message: str, severity: str = "error") -> None:
        self.messages.append((message, severity))
