from .attachment import AttachmentCreate
from .expense import ExpenseCreate, ExpenseUpdate, parse_amount
from .task import TaskCreate, TaskUpdate
from .validation import validate_model

__all__ = [
    "AttachmentCreate",
    "ExpenseCreate",
    "ExpenseUpdate",
    "parse_amount",
    "TaskCreate",
    "TaskUpdate",
    "validate_model",
]
