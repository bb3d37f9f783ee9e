"""Abstract user-notification interface (toast / haptics)."""

from abc import ABC, abstractmethod


class Notifier(ABC):
    """Port — presents abstract outcomes to the user."""

    @abstractmethod
    def succeeded(self, message: str) -> None:
        ...

    @abstractmethod
    def failed(self, category: str, message: str) -> None:
        """Present a failure with its short category label and message."""
        ...
