"""Read-only entities the client browses: companies and their projects."""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class Company:
    id: int
    name: str
    description: str | None = None
    status: str = "active"
    created_at: datetime | None = None


@dataclass(frozen=True)
class Project:
    id: int
    company_id: int
    name: str
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: str = "active"
    created_at: datetime | None = None
