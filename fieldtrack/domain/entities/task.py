"""Domain entity for tasks — the main unit of optimistic mutation."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum


class TaskStatus(str, Enum):
    """Workflow states of a task."""

    TODO = "todo"
    DOING = "doing"
    DONE = "done"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Task:
    """A task of a project.

    ``id`` is server-assigned once persisted; while a create is in flight it
    holds a negative local identifier.
    """

    project_id: int
    title: str
    id: int | None = None
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None
    created_by: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_persisted(self) -> bool:
        return self.id is not None and self.id > 0
