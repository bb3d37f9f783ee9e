"""Abstract repository interfaces (ports) for optimistic-mutation entities."""

from abc import ABC, abstractmethod
from typing import Any, Generic, Mapping, TypeVar

from pydantic import BaseModel

from fieldtrack.application.schemas.validation import validate_model

E = TypeVar("E")


class ReadRepository(ABC, Generic[E]):
    """Port for read-only collections."""

    entity_name: str = "Entity"

    @abstractmethod
    async def list(self, filter: Mapping[str, Any] | None = None) -> list[E]:
        """Return the rows matching ``filter`` in the collection's display order."""
        ...

    @abstractmethod
    async def get(self, entity_id: int) -> E:
        """Return one row by id.

        Raises:
            RemoteFailure: With kind ``not-found`` if no such row exists.
        """
        ...


class EntityRepository(ReadRepository[E]):
    """Port for entity kinds that go through the optimistic mutation protocol.

    Subclasses name the pydantic schemas their drafts and partial updates are
    validated with; validation happens before any remote call.
    """

    create_schema: type[BaseModel]
    update_schema: type[BaseModel]

    def validate_draft(self, draft: BaseModel | Mapping[str, Any]) -> BaseModel:
        """Validate a create draft.

        Raises:
            ValidationFailure: If the draft is rejected.
        """
        return validate_model(self.create_schema, draft)

    def validate_update(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Validate a partial update and return only the fields that were set."""
        model = validate_model(self.update_schema, dict(fields))
        return model.model_dump(exclude_unset=True)

    @abstractmethod
    def build_optimistic(self, draft: BaseModel, local_id: int) -> E:
        """Build the placeholder row shown while a create is in flight."""
        ...

    @abstractmethod
    async def create(self, draft: BaseModel) -> E:
        """Persist a validated draft and return the server row."""
        ...

    @abstractmethod
    async def update(self, entity_id: int, fields: Mapping[str, Any]) -> E:
        """Apply a partial update and return the authoritative server row."""
        ...

    @abstractmethod
    async def delete(self, entity_id: int) -> None:
        ...
