"""Abstract repository interface (port) for attachment records."""

from abc import ABC, abstractmethod

from fieldtrack.application.schemas import AttachmentCreate
from fieldtrack.domain.entities import MediaAttachment, OwnerKind


class AttachmentRepository(ABC):
    """Port for the attachment-record table of one owner kind."""

    owner_kind: OwnerKind

    @abstractmethod
    async def list_for_owner(self, owner_id: int) -> list[MediaAttachment]:
        """Return the owner's attachments, newest first."""
        ...

    @abstractmethod
    async def create(self, draft: AttachmentCreate) -> MediaAttachment:
        """Insert an attachment record referencing an uploaded object."""
        ...

    @abstractmethod
    async def delete(self, attachment_id: int) -> None:
        ...
