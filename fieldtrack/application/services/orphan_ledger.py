"""Process-wide ledger of attachment records whose storage object is gone."""

from fieldtrack.domain.entities import OwnerKind


class OrphanLedger:
    """Remembers record ids to delete again after a failed record delete.

    The storage object of such a record was already deleted, so the record is
    hidden from loads and its removal retried; it is never re-linked.
    """

    def __init__(self) -> None:
        self._ids: dict[OwnerKind, set[int]] = {}

    def add(self, kind: OwnerKind, attachment_id: int) -> None:
        self._ids.setdefault(kind, set()).add(attachment_id)

    def discard(self, kind: OwnerKind, attachment_id: int) -> None:
        self._ids.get(kind, set()).discard(attachment_id)

    def contains(self, kind: OwnerKind, attachment_id: int) -> bool:
        return attachment_id in self._ids.get(kind, set())

    def pending(self, kind: OwnerKind) -> list[int]:
        return sorted(self._ids.get(kind, set()))

    def __len__(self) -> int:
        return sum(len(ids) for ids in self._ids.values())
