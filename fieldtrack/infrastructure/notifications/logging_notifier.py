"""Notifier adapters for headless use: log outcomes, optionally keep them."""

import logging
from dataclasses import dataclass, field

from fieldtrack.application.interfaces import Notifier

logger = logging.getLogger(__name__)


class LoggingNotifier(Notifier):
    """Writes outcomes to the log instead of showing toasts."""

    def succeeded(self, message: str) -> None:
        logger.info("✓ %s", message)

    def failed(self, category: str, message: str) -> None:
        logger.error("✗ [%s] %s", category, message)


@dataclass
class RecordingNotifier(Notifier):
    """Keeps every outcome in memory, e.g. for a CLI summary."""

    successes: list[str] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)

    def succeeded(self, message: str) -> None:
        self.successes.append(message)

    def failed(self, category: str, message: str) -> None:
        self.failures.append((category, message))
