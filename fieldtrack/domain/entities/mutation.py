"""Domain entity for optimistic mutations — ephemeral, in-memory only."""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fieldtrack.domain.exceptions import FieldTrackError

_last_local_id = 0


def new_local_id() -> int:
    """Return a negative, process-unique placeholder id for an unsaved row.

    Derived from the monotonic clock and kept strictly decreasing, so two
    calls in the same microsecond still differ.
    """
    global _last_local_id
    candidate = -(time.monotonic_ns() // 1000) - 1
    _last_local_id = min(candidate, _last_local_id - 1)
    return _last_local_id


def is_local_id(entity_id: int | None) -> bool:
    return entity_id is not None and entity_id < 0


class MutationOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REMOVE = "remove"


class MutationState(str, Enum):
    """Lifecycle states of a mutation record."""

    APPLIED = "applied"
    IN_FLIGHT = "in_flight"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


@dataclass
class MutationRecord:
    """One optimistic edit of one entity, from local apply to reconciliation.

    ``previous`` is the rollback snapshot of every changed field. A REMOVE
    record keeps the removed row and its list position instead.
    """

    entity_id: int
    operation: MutationOperation
    changes: dict[str, Any] = field(default_factory=dict)
    previous: dict[str, Any] = field(default_factory=dict)
    state: MutationState = MutationState.APPLIED
    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    result_id: int | None = None
    removed_row: Any = None
    removed_index: int | None = None
    error: FieldTrackError | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (MutationState.CONFIRMED, MutationState.ROLLED_BACK)

    def mark_in_flight(self) -> None:
        self.state = MutationState.IN_FLIGHT

    def mark_confirmed(self, result_id: int | None = None) -> None:
        self.state = MutationState.CONFIRMED
        self.result_id = result_id if result_id is not None else self.entity_id

    def mark_rolled_back(self, error: FieldTrackError | None = None) -> None:
        self.state = MutationState.ROLLED_BACK
        self.error = error
