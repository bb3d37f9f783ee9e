"""Remote repository for expenses."""

from pydantic import BaseModel

from fieldtrack.application.interfaces import Row
from fieldtrack.application.schemas import ExpenseCreate, ExpenseUpdate
from fieldtrack.domain.entities import Expense
from fieldtrack.infrastructure.remote.repositories.base import RemoteEntityRepository
from fieldtrack.infrastructure.remote.repositories.row_mapping import (
    parse_date,
    parse_decimal,
    timestamp_fields,
)


class RemoteExpenseRepository(RemoteEntityRepository[Expense]):
    """Implements the expense EntityRepository over the ``expenses`` collection."""

    entity_name = "Expense"
    collection = "expenses"
    order = [("spent_at", False)]
    create_schema = ExpenseCreate
    update_schema = ExpenseUpdate

    def _to_entity(self, row: Row) -> Expense:
        """Map row → domain entity."""
        fields = {
            "id": row["id"],
            "company_id": row["company_id"],
            "project_id": row["project_id"],
            "task_id": row.get("task_id"),
            "amount": parse_decimal(row["amount"]),
            "currency": row.get("currency") or "TRY",
            "description": row.get("description"),
            "created_by": row.get("created_by"),
            **timestamp_fields(row, "created_at", "updated_at"),
        }
        spent_at = parse_date(row.get("spent_at"))
        if spent_at is not None:
            fields["spent_at"] = spent_at
        return Expense(**fields)

    def build_optimistic(self, draft: BaseModel, local_id: int) -> Expense:
        return Expense(id=local_id, **draft.model_dump())
