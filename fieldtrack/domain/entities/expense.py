"""Domain entity for task-scoped expenses."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal


@dataclass(frozen=True)
class Expense:
    """An amount spent for a project, optionally attached to one of its tasks."""

    company_id: int
    project_id: int
    amount: Decimal
    id: int | None = None
    task_id: int | None = None
    currency: str = "TRY"
    description: str | None = None
    spent_at: date = field(default_factory=date.today)
    created_by: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = None

    @property
    def is_persisted(self) -> bool:
        return self.id is not None and self.id > 0
