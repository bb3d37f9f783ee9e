"""Outcome reporter — the single path from failures to user notifications."""

import logging

from fieldtrack.application.interfaces import Notifier
from fieldtrack.domain.exceptions import FieldTrackError

logger = logging.getLogger(__name__)


class OutcomeReporter:
    """Forwards outcomes to the notifier with a short category label.

    Each failure passed in produces exactly one notification and one log line.
    """

    def __init__(self, notifier: Notifier):
        self._notifier = notifier

    def succeeded(self, message: str) -> None:
        logger.debug("Outcome succeeded: %s", message)
        self._notifier.succeeded(message)

    def failed(self, error: FieldTrackError) -> None:
        category = error.kind.value
        logger.warning("Outcome failed [%s]: %s", category, error.message)
        self._notifier.failed(category, error.message)
