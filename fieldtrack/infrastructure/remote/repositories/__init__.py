from .attachment_repository import RemoteAttachmentRepository
from .base import RemoteEntityRepository, RemoteReadRepository
from .catalog_repository import RemoteCompanyRepository, RemoteProjectRepository
from .expense_repository import RemoteExpenseRepository
from .task_repository import RemoteTaskRepository

__all__ = [
    "RemoteAttachmentRepository",
    "RemoteEntityRepository",
    "RemoteReadRepository",
    "RemoteCompanyRepository",
    "RemoteProjectRepository",
    "RemoteExpenseRepository",
    "RemoteTaskRepository",
]
