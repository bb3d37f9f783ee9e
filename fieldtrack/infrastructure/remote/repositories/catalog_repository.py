"""Read-only remote repositories for companies and projects."""

from fieldtrack.application.interfaces import Row
from fieldtrack.domain.entities import Company, Project
from fieldtrack.infrastructure.remote.repositories.base import RemoteReadRepository
from fieldtrack.infrastructure.remote.repositories.row_mapping import (
    parse_date,
    parse_datetime,
)


class RemoteCompanyRepository(RemoteReadRepository[Company]):
    entity_name = "Company"
    collection = "companies"
    order = [("created_at", False)]

    def _to_entity(self, row: Row) -> Company:
        return Company(
            id=row["id"],
            name=row["name"],
            description=row.get("description"),
            status=row.get("status") or "active",
            created_at=parse_datetime(row.get("created_at")),
        )


class RemoteProjectRepository(RemoteReadRepository[Project]):
    entity_name = "Project"
    collection = "projects"
    order = [("created_at", False)]

    def _to_entity(self, row: Row) -> Project:
        return Project(
            id=row["id"],
            company_id=row["company_id"],
            name=row["name"],
            description=row.get("description"),
            start_date=parse_date(row.get("start_date")),
            end_date=parse_date(row.get("end_date")),
            status=row.get("status") or "active",
            created_at=parse_datetime(row.get("created_at")),
        )
