"""Remote repositories for attachment records (``task_media`` / ``expense_media``)."""

from fieldtrack.application.interfaces import AttachmentRepository, RemoteService, Row
from fieldtrack.application.schemas import AttachmentCreate
from fieldtrack.domain.entities import MediaAttachment, OwnerKind
from fieldtrack.infrastructure.remote.repositories.row_mapping import timestamp_fields

_TABLES: dict[OwnerKind, tuple[str, str]] = {
    OwnerKind.TASK: ("task_media", "task_id"),
    OwnerKind.EXPENSE: ("expense_media", "expense_id"),
}


class RemoteAttachmentRepository(AttachmentRepository):
    """Attachment records of one owner kind, newest first."""

    def __init__(self, service: RemoteService, owner_kind: OwnerKind):
        self._service = service
        self.owner_kind = owner_kind
        self.collection, self.owner_column = _TABLES[owner_kind]

    def _to_entity(self, row: Row) -> MediaAttachment:
        return MediaAttachment(
            id=row["id"],
            owner_id=row[self.owner_column],
            owner_kind=self.owner_kind,
            storage_path=row["storage_path"],
            created_by=row.get("created_by"),
            **timestamp_fields(row, "created_at"),
        )

    async def list_for_owner(self, owner_id: int) -> list[MediaAttachment]:
        rows = await self._service.select(
            self.collection, {self.owner_column: owner_id}, [("created_at", False)]
        )
        return [self._to_entity(row) for row in rows]

    async def create(self, draft: AttachmentCreate) -> MediaAttachment:
        row = await self._service.insert(
            self.collection,
            {
                self.owner_column: draft.owner_id,
                "storage_path": draft.storage_path,
                "created_by": draft.created_by,
            },
        )
        return self._to_entity(row)

    async def delete(self, attachment_id: int) -> None:
        await self._service.delete(self.collection, attachment_id)
