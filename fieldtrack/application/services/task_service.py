"""Application service (use case) for Task operations."""

from datetime import date

from fieldtrack.application.services.mutation_manager import OptimisticMutationManager
from fieldtrack.application.services.outcome_reporter import OutcomeReporter
from fieldtrack.domain.entities import (
    MutationRecord,
    ScreenContext,
    Task,
    TaskPriority,
    TaskStatus,
)
from fieldtrack.domain.exceptions import PreconditionFailure


class TaskService:
    """Task use cases of one project screen. Every edit is optimistic."""

    def __init__(
        self,
        manager: OptimisticMutationManager[Task],
        context: ScreenContext,
        reporter: OutcomeReporter,
    ):
        self._manager = manager
        self._context = context
        self._reporter = reporter

    @property
    def manager(self) -> OptimisticMutationManager[Task]:
        return self._manager

    async def load_tasks(self, status: TaskStatus | None = None) -> list[Task]:
        filter: dict[str, object] = {"project_id": self._project_id()}
        if status is not None:
            filter["status"] = status.value
        return await self._manager.load(filter)

    async def create_task(
        self,
        title: str,
        description: str | None = None,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        due_date: date | str | None = None,
    ) -> MutationRecord:
        draft = {
            "project_id": self._project_id(),
            "title": title,
            "description": description,
            "priority": priority,
            "due_date": due_date,
        }
        return await self._manager.create(draft, success_message="Task added.")

    async def set_status(self, task_id: int, status: TaskStatus | str) -> MutationRecord:
        return await self._manager.update(
            task_id, {"status": status}, success_message="Status updated."
        )

    async def set_priority(self, task_id: int, priority: TaskPriority | str) -> MutationRecord:
        return await self._manager.update(
            task_id, {"priority": priority}, success_message="Priority updated."
        )

    async def save_description(self, task_id: int, description: str | None) -> MutationRecord:
        """Save the description; blank text clears it."""
        return await self._manager.update(
            task_id, {"description": description or ""}, success_message="Description saved."
        )

    def _project_id(self) -> int:
        if self._context.project_id is None:
            error = PreconditionFailure("No project selected")
            self._reporter.failed(error)
            raise error
        return self._context.project_id
