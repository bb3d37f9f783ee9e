"""Remote repository for tasks."""

from pydantic import BaseModel

from fieldtrack.application.interfaces import Row
from fieldtrack.application.schemas import TaskCreate, TaskUpdate
from fieldtrack.domain.entities import Task, TaskPriority, TaskStatus
from fieldtrack.infrastructure.remote.repositories.base import RemoteEntityRepository
from fieldtrack.infrastructure.remote.repositories.row_mapping import (
    parse_date,
    timestamp_fields,
)


class RemoteTaskRepository(RemoteEntityRepository[Task]):
    """Implements the task EntityRepository over the ``tasks`` collection."""

    entity_name = "Task"
    collection = "tasks"
    order = [("updated_at", False)]
    create_schema = TaskCreate
    update_schema = TaskUpdate

    def _to_entity(self, row: Row) -> Task:
        """Map row → domain entity."""
        return Task(
            id=row["id"],
            project_id=row["project_id"],
            title=row["title"],
            description=row.get("description"),
            status=TaskStatus(row.get("status") or TaskStatus.TODO),
            priority=TaskPriority(row.get("priority") or TaskPriority.MEDIUM),
            due_date=parse_date(row.get("due_date")),
            created_by=row.get("created_by"),
            **timestamp_fields(row, "created_at", "updated_at"),
        )

    def build_optimistic(self, draft: BaseModel, local_id: int) -> Task:
        return Task(id=local_id, **draft.model_dump())
