from .entity_queue import EntityQueue
from .expense_service import ExpenseService, ExpenseSubmission
from .media_pipeline import AttachmentListSnapshot, MediaAttachmentPipeline
from .media_store import MediaStore
from .mutation_manager import EntityListSnapshot, OptimisticMutationManager
from .orphan_ledger import OrphanLedger
from .outcome_reporter import OutcomeReporter
from .signed_url_cache import SignedUrlCache
from .state_broadcaster import StateBroadcaster
from .task_service import TaskService

__all__ = [
    "EntityQueue",
    "ExpenseService",
    "ExpenseSubmission",
    "AttachmentListSnapshot",
    "MediaAttachmentPipeline",
    "MediaStore",
    "EntityListSnapshot",
    "OptimisticMutationManager",
    "OrphanLedger",
    "OutcomeReporter",
    "SignedUrlCache",
    "StateBroadcaster",
    "TaskService",
]
