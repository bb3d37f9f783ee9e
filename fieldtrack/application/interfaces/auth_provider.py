"""Abstract authentication provider interface."""

from abc import ABC, abstractmethod

from fieldtrack.domain.entities import Credential


class AuthProvider(ABC):
    """Port — supplies the bearer credential and identity of the current user."""

    @abstractmethod
    async def current_credential(self) -> Credential | None:
        """Return the current credential, or ``None`` when nobody is signed in."""
        ...
