"""Application service (use case) for Expense operations."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from fieldtrack.application.interfaces import AuthProvider, ReadRepository
from fieldtrack.application.schemas import ExpenseCreate, validate_model
from fieldtrack.application.services.media_pipeline import MediaAttachmentPipeline
from fieldtrack.application.services.mutation_manager import OptimisticMutationManager
from fieldtrack.application.services.outcome_reporter import OutcomeReporter
from fieldtrack.domain.entities import (
    AttachmentUpload,
    CapturedImage,
    Credential,
    Expense,
    MutationRecord,
    MutationState,
    Project,
    ScreenContext,
    is_local_id,
)
from fieldtrack.domain.exceptions import (
    EntityNotFoundError,
    FieldTrackError,
    PreconditionFailure,
    RemoteFailure,
)

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[int], MediaAttachmentPipeline]


@dataclass
class ExpenseSubmission:
    """Outcome of creating an expense together with its photos."""

    record: MutationRecord
    uploads: list[AttachmentUpload] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.record.state is MutationState.CONFIRMED and all(
            job.succeeded for job in self.uploads
        )


class ExpenseService:
    """Expense use cases of one project (or task) screen.

    Photos belong to an expense, so they are uploaded only once the expense
    itself is persisted, and deleted before the expense is deleted.
    """

    def __init__(
        self,
        manager: OptimisticMutationManager[Expense],
        context: ScreenContext,
        reporter: OutcomeReporter,
        *,
        auth: AuthProvider,
        projects: ReadRepository[Project],
        pipeline_factory: PipelineFactory,
        currency: str = "TRY",
    ):
        self._manager = manager
        self._context = context
        self._reporter = reporter
        self._auth = auth
        self._projects = projects
        self._pipeline_factory = pipeline_factory
        self._currency = currency

    @property
    def manager(self) -> OptimisticMutationManager[Expense]:
        return self._manager

    async def load_expenses(self) -> list[Expense]:
        filter: dict[str, object] = {"project_id": self._project_id()}
        if self._context.task_id is not None:
            filter["task_id"] = self._context.task_id
        return await self._manager.load(filter)

    async def create_expense(
        self,
        amount: str | Decimal | float,
        description: str | None = None,
        spent_at: date | str | None = None,
        photos: Sequence[CapturedImage] = (),
    ) -> ExpenseSubmission:
        """Save an expense from form input, then upload its photos.

        Uploading stops at the first photo that fails; the expense and the
        photos already attached are kept.

        Raises:
            ValidationFailure: If the form input is rejected.
            PreconditionFailure: If there is no project or no session.
            RemoteFailure: If the owning company cannot be resolved.
        """
        fields: dict[str, object] = {
            "project_id": self._project_id(),
            "task_id": self._context.task_id,
            "amount": amount,
            "currency": self._currency,
            "description": description,
        }
        if spent_at is not None:
            fields["spent_at"] = spent_at
        try:
            draft = validate_model(ExpenseCreate, fields)
        except FieldTrackError as exc:
            self._reporter.failed(exc)
            raise

        credential = await self._require_credential()
        company_id = await self._company_id(draft.project_id)
        draft = draft.model_copy(
            update={"company_id": company_id, "created_by": credential.user_id}
        )

        record = await self._manager.create(draft)
        submission = ExpenseSubmission(record)
        if record.state is not MutationState.CONFIRMED:
            return submission

        if photos:
            pipeline = self._pipeline_factory(record.result_id)
            try:
                for photo in photos:
                    job = await pipeline.upload(photo)
                    submission.uploads.append(job)
                    if not job.succeeded:
                        logger.info(
                            "Stopped photo uploads of expense %s after %d of %d",
                            record.result_id, len(submission.uploads), len(photos),
                        )
                        break
            finally:
                pipeline.close()

        if submission.succeeded:
            self._reporter.succeeded("Expense saved.")
        return submission

    async def edit_expense(
        self,
        expense_id: int,
        *,
        amount: str | Decimal | float | None = None,
        description: str | None = None,
        spent_at: date | str | None = None,
    ) -> MutationRecord:
        """Edit amount, date and description; omitted values stay as they are.

        An empty description clears it.
        """
        changes: dict[str, object] = {}
        if amount is not None:
            changes["amount"] = amount
        if description is not None:
            changes["description"] = description
        if spent_at is not None:
            changes["spent_at"] = spent_at
        return await self._manager.update(
            expense_id, changes, success_message="Expense updated."
        )

    async def delete_expense(self, expense_id: int) -> bool:
        """Delete the expense's photos in one batch, then the expense.

        If the photos cannot be deleted the expense is left untouched.
        """
        expense = self._manager.get(expense_id)
        if expense is None:
            error = EntityNotFoundError("Expense", expense_id)
            self._reporter.failed(error)
            raise error

        if not is_local_id(expense.id):
            pipeline = self._pipeline_factory(expense.id)
            try:
                await pipeline.delete_all_for_owner()
            except RemoteFailure as exc:
                self._reporter.failed(exc)
                return False
            finally:
                pipeline.close()

        record = await self._manager.remove(expense.id, success_message="Expense removed.")
        return record.state is MutationState.CONFIRMED

    # ── Helpers ──────────────────────────────────────────────────────

    def _project_id(self) -> int:
        if self._context.project_id is None:
            error = PreconditionFailure("No project selected")
            self._reporter.failed(error)
            raise error
        return self._context.project_id

    async def _require_credential(self) -> Credential:
        credential = await self._auth.current_credential()
        if credential is None or not credential.user_id:
            error = PreconditionFailure("Session not found. Please sign in again.")
            self._reporter.failed(error)
            raise error
        return credential

    async def _company_id(self, project_id: int) -> int:
        if self._context.company_id is not None:
            return self._context.company_id
        try:
            project = await self._projects.get(project_id)
        except RemoteFailure as exc:
            self._reporter.failed(exc)
            raise
        return project.company_id
