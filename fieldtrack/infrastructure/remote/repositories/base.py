"""Generic repositories over a RemoteService collection."""

import logging
from abc import abstractmethod
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel

from fieldtrack.application.interfaces import (
    EntityRepository,
    ReadRepository,
    RemoteService,
    Row,
)
from fieldtrack.domain.exceptions import FailureKind, RemoteFailure
from fieldtrack.infrastructure.remote.repositories.row_mapping import encode_fields

logger = logging.getLogger(__name__)

E = TypeVar("E")


class RemoteReadRepository(ReadRepository[E]):
    """Reads one collection; subclasses map rows to entities in ``_to_entity``."""

    collection: str
    order: list[tuple[str, bool]] = []

    def __init__(self, service: RemoteService):
        self._service = service

    @abstractmethod
    def _to_entity(self, row: Row) -> E:
        """Map one row of ``collection`` to its domain entity."""
        ...

    async def list(self, filter: Mapping[str, Any] | None = None) -> list[E]:
        rows = await self._service.select(
            self.collection, dict(filter or {}), self.order or None
        )
        return [self._to_entity(row) for row in rows]

    async def get(self, entity_id: int) -> E:
        rows = await self._service.select(self.collection, {"id": entity_id})
        if not rows:
            raise RemoteFailure(
                FailureKind.NOT_FOUND,
                f"{self.entity_name} {entity_id} not found",
                collection=self.collection,
            )
        return self._to_entity(rows[0])


class RemoteEntityRepository(RemoteReadRepository[E], EntityRepository[E]):
    """Full create/update/delete over one collection for optimistic entities."""

    def _to_payload(self, fields: Mapping[str, Any]) -> Row:
        return encode_fields(dict(fields))

    async def create(self, draft: BaseModel) -> E:
        row = await self._service.insert(
            self.collection, self._to_payload(draft.model_dump(exclude_none=True))
        )
        return self._to_entity(row)

    async def update(self, entity_id: int, fields: Mapping[str, Any]) -> E:
        row = await self._service.update(self.collection, entity_id, self._to_payload(fields))
        return self._to_entity(row)

    async def delete(self, entity_id: int) -> None:
        await self._service.delete(self.collection, entity_id)
        logger.debug("Deleted %s %s", self.entity_name, entity_id)
