"""Unit tests for the ExpenseService."""

from datetime import date
from decimal import Decimal

import pytest

from fieldtrack.application.services import ExpenseService, OptimisticMutationManager
from fieldtrack.domain.entities import CapturedImage, MutationState, OwnerKind, ScreenContext, UploadStage
from fieldtrack.domain.exceptions import (
    FailureKind,
    PreconditionFailure,
    RemoteFailure,
    ValidationFailure,
)
from fieldtrack.infrastructure.remote.repositories import (
    RemoteExpenseRepository,
    RemoteProjectRepository,
)


@pytest.fixture
def make_service(remote, reporter, auth, make_pipeline):
    remote.seed("projects", id=1, company_id=12, name="North tower")

    def factory(context: ScreenContext | None = None) -> ExpenseService:
        manager = OptimisticMutationManager(RemoteExpenseRepository(remote), reporter)
        return ExpenseService(
            manager,
            context or ScreenContext(project_id=1, task_id=7),
            reporter,
            auth=auth,
            projects=RemoteProjectRepository(remote),
            pipeline_factory=lambda expense_id: make_pipeline(expense_id, OwnerKind.EXPENSE),
        )

    return factory


def _photo(name: str) -> CapturedImage:
    return CapturedImage(f"/photos/{name}.jpg", 4000, 3000)


# ── Create ──


@pytest.mark.asyncio
async def test_create_expense_resolves_company_and_creator(make_service, remote, notifier):
    service = make_service()

    submission = await service.create_expense("12,50", " cement ", "2025-03-04")

    assert submission.succeeded
    row = remote.tables["expenses"][submission.record.result_id]
    assert row["company_id"] == 12
    assert row["project_id"] == 1
    assert row["task_id"] == 7
    assert row["amount"] == 12.5
    assert row["currency"] == "TRY"
    assert row["description"] == "cement"
    assert row["spent_at"] == "2025-03-04"
    assert row["created_by"] == "user-1"
    assert notifier.successes == ["Expense saved."]

    expense = service.manager.get(submission.record.result_id)
    assert expense.amount == Decimal("12.50")
    assert expense.spent_at == date(2025, 3, 4)


@pytest.mark.asyncio
async def test_company_from_context_skips_project_lookup(make_service, remote):
    service = make_service(ScreenContext(project_id=1, company_id=99))

    submission = await service.create_expense("5")

    assert remote.tables["expenses"][submission.record.result_id]["company_id"] == 99
    assert remote.count("select", "projects") == 0


@pytest.mark.asyncio
async def test_invalid_amount_is_rejected_before_any_call(make_service, remote, notifier):
    service = make_service()

    with pytest.raises(ValidationFailure):
        await service.create_expense("-5")

    assert remote.calls == []
    assert notifier.failures == [("validation", "Amount must be greater than zero")]


@pytest.mark.asyncio
async def test_missing_session_is_a_precondition_failure(make_service, auth, remote):
    auth.credential = None

    with pytest.raises(PreconditionFailure):
        await make_service().create_expense("10")

    assert remote.count("insert", "expenses") == 0


@pytest.mark.asyncio
async def test_photos_upload_after_the_expense_exists(make_service, remote, events):
    service = make_service()

    submission = await service.create_expense("10", photos=[_photo("a"), _photo("b")])

    assert [job.stage for job in submission.uploads] == [UploadStage.RECORDED] * 2
    expense_id = submission.record.result_id
    kinds = [event[:2] for event in events]
    assert kinds.index(("insert", "expenses")) < kinds.index(("upload", "expense-media"))
    media = remote.tables["expense_media"].values()
    assert {row["expense_id"] for row in media} == {expense_id}
    assert all(row["storage_path"].startswith(f"user-1/{expense_id}/") for row in media)


@pytest.mark.asyncio
async def test_photo_uploads_stop_at_first_failure(make_service, storage, notifier):
    storage.upload_status = 500
    service = make_service()

    submission = await service.create_expense("10", photos=[_photo("a"), _photo("b")])

    assert submission.record.state is MutationState.CONFIRMED
    assert [job.stage for job in submission.uploads] == [UploadStage.UPLOAD_FAILED]
    assert not submission.succeeded
    assert notifier.successes == []
    assert notifier.failures[0][0] == "network"


# ── Edit & delete ──


@pytest.mark.asyncio
async def test_edit_expense(make_service, notifier):
    service = make_service()
    created = await service.create_expense("10")

    record = await service.edit_expense(created.record.result_id, amount="20,10", description="")

    assert record.state is MutationState.CONFIRMED
    expense = service.manager.get(created.record.result_id)
    assert expense.amount == Decimal("20.10")
    assert expense.description is None
    assert notifier.successes[-1] == "Expense updated."


@pytest.mark.asyncio
async def test_delete_expense_removes_media_first(make_service, remote, events):
    service = make_service()
    created = await service.create_expense("10", photos=[_photo("a")])
    expense_id = created.record.result_id
    events.clear()

    assert await service.delete_expense(expense_id) is True

    kinds = [event[0] for event in events]
    assert kinds.index("storage-delete") < kinds.index("delete")
    assert expense_id not in remote.tables["expenses"]


@pytest.mark.asyncio
async def test_failed_media_delete_keeps_expense(make_service, remote, storage, notifier):
    service = make_service()
    created = await service.create_expense("10", photos=[_photo("a")])
    expense_id = created.record.result_id
    storage.delete_error = RemoteFailure(FailureKind.NETWORK, "offline")

    assert await service.delete_expense(expense_id) is False

    assert expense_id in remote.tables["expenses"]
    assert service.manager.get(expense_id) is not None
    assert remote.count("delete", "expenses") == 0
    assert notifier.failures == [("network", "offline")]
