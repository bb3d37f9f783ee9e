"""Abstract remote data service interface — port for the row store adapter."""

from abc import ABC, abstractmethod
from typing import Any

Row = dict[str, Any]


class RemoteService(ABC):
    """Port — typed read/insert/update/delete over entity collections.

    Identifiers and timestamps are assigned by the service. Every method is a
    single round-trip and never retries.

    Raises:
        RemoteFailure: If the service rejects the call or cannot be reached.
    """

    @abstractmethod
    async def select(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
        order: list[tuple[str, bool]] | None = None,
        *,
        columns: str = "*",
    ) -> list[Row]:
        """Return the rows of ``collection`` matching the equality ``filter``.

        ``order`` is a list of ``(column, ascending)`` pairs.
        """
        ...

    @abstractmethod
    async def insert(self, collection: str, fields: Row) -> Row:
        """Insert one row and return it as stored by the service."""
        ...

    @abstractmethod
    async def update(self, collection: str, row_id: int, fields: Row) -> Row:
        """Update one row by id and return the authoritative row."""
        ...

    @abstractmethod
    async def delete(self, collection: str, row_id: int) -> None:
        """Delete one row by id."""
        ...
