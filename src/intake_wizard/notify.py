from __future__ import annotations

import logging
from typing import List, Protocol, Tuple

from intake_wizard.schemas import Severity

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """What the wizard needs from a toast area."""

    def show(self, message: str, severity: Severity = "success") -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...


class Notifier:
    """Base sink with the severity shorthands the wizard calls."""

    def show(self, message: str, severity: Severity = "success") -> None:
        raise NotImplementedError

    def success(self, message: str) -> None:
        self.show(message, "success")

    def error(self, message: str) -> None:
        self.show(message, "error")

    def warning(self, message: str) -> None:
        self.show(message, "warning")


class LoggingNotifier(Notifier):
    _LEVELS = {"success": logging.INFO, "error": logging.ERROR, "warning": logging.WARNING}

    def show(self, message: str, severity: Severity = "success") -> None:
        logger.log(self._LEVELS.get(severity, logging.INFO), "[toast:%s] %s", severity, message)


class RecordingNotifier(Notifier):
    """Keeps every notification in order; used by tests and headless runs."""

    def __init__(self) -> None:
        self.messages: List[Tuple[str, Severity]] = []

    def show(self, message: str, severity: Severity = "success") -> None:
        self.messages.append((message, severity))

    def of(self, severity: Severity) -> List[str]:
        return [m for m, s in self.messages if s == severity]
