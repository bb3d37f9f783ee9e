from .catalog import Company, Project
from .context import ScreenContext
from .expense import Expense
from .media import (
    AttachmentUpload,
    CapturedImage,
    MediaAttachment,
    OwnerKind,
    SignedUrl,
    TransformedImage,
    UploadStage,
)
from .mutation import (
    MutationOperation,
    MutationRecord,
    MutationState,
    is_local_id,
    new_local_id,
)
from .session import Credential
from .task import Task, TaskPriority, TaskStatus

__all__ = [
    "Company",
    "Project",
    "ScreenContext",
    "Expense",
    "AttachmentUpload",
    "CapturedImage",
    "MediaAttachment",
    "OwnerKind",
    "SignedUrl",
    "TransformedImage",
    "UploadStage",
    "MutationOperation",
    "MutationRecord",
    "MutationState",
    "is_local_id",
    "new_local_id",
    "Credential",
    "Task",
    "TaskPriority",
    "TaskStatus",
]
