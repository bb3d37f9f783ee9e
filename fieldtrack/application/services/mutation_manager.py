"""Optimistic mutation manager — local-first edits reconciled with the data service.

Every edit goes through the same protocol, whatever the entity kind:

    Applied (local change visible) → InFlight → Confirmed | RolledBack

The local change is applied synchronously and published before the remote
call is even queued. Remote calls for one entity run strictly one after the
other through an ``EntityQueue``; calls for different entities overlap.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Generic, Mapping, TypeVar

from pydantic import BaseModel

from fieldtrack.application.interfaces import EntityRepository
from fieldtrack.application.services.entity_queue import EntityQueue
from fieldtrack.application.services.outcome_reporter import OutcomeReporter
from fieldtrack.application.services.state_broadcaster import StateBroadcaster
from fieldtrack.domain.entities import (
    MutationOperation,
    MutationRecord,
    is_local_id,
    new_local_id,
)
from fieldtrack.domain.exceptions import (
    EntityNotFoundError,
    FieldTrackError,
    RemoteFailure,
    ValidationFailure,
)

logger = logging.getLogger(__name__)

E = TypeVar("E")


@dataclass(frozen=True)
class EntityListSnapshot(Generic[E]):
    """Immutable view of a manager's list, as handed to observers."""

    entities: tuple[E, ...]
    pending_ids: frozenset[int]

    def get(self, entity_id: int) -> E | None:
        return next((e for e in self.entities if getattr(e, "id", None) == entity_id), None)

    def is_pending(self, entity_id: int) -> bool:
        return entity_id in self.pending_ids


class OptimisticMutationManager(Generic[E]):
    """Owns one screen's in-memory list of entities of a single kind.

    The manager is parameterized by an ``EntityRepository``; it never talks to
    the data service directly. After ``close()`` remote calls already queued
    still run to completion, but their reconciliation touches nothing and
    publishes nothing.
    """

    def __init__(
        self,
        repository: EntityRepository[E],
        reporter: OutcomeReporter,
        *,
        queue: EntityQueue | None = None,
        broadcaster: StateBroadcaster[EntityListSnapshot[E]] | None = None,
    ):
        self._repository = repository
        self._reporter = reporter
        self._queue = queue or EntityQueue()
        self._broadcaster = broadcaster or StateBroadcaster()
        self._entities: dict[int, E] = {}
        self._pending: dict[int, list[MutationRecord]] = {}
        self._aliases: dict[int, int] = {}
        self._closed = False

    # ── State ────────────────────────────────────────────────────────

    @property
    def broadcaster(self) -> StateBroadcaster[EntityListSnapshot[E]]:
        return self._broadcaster

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> EntityListSnapshot[E]:
        pending = frozenset(
            key for key, records in self._pending.items()
            if records and key in self._entities
        )
        return EntityListSnapshot(tuple(self._entities.values()), pending)

    def get(self, entity_id: int) -> E | None:
        return self._entities.get(self._resolve(entity_id))

    def is_pending(self, entity_id: int) -> bool:
        return bool(self._pending.get(self._resolve(entity_id)))

    def close(self) -> None:
        """Tear down: discard observers; in-flight calls finish unobserved."""
        self._closed = True
        self._broadcaster.shutdown()

    async def wait_idle(self) -> None:
        """Wait for every queued remote call to reach a terminal state."""
        await self._queue.drain()

    # ── Load ─────────────────────────────────────────────────────────

    async def load(self, filter: Mapping[str, Any] | None = None) -> list[E]:
        """Replace the list with fresh rows, keeping pending optimistic edits on top."""
        try:
            rows = await self._repository.list(filter)
        except RemoteFailure as exc:
            self._reporter.failed(exc)
            raise
        if self._closed:
            return rows

        fresh: dict[int, E] = {
            key: entity for key, entity in self._entities.items()
            if is_local_id(key) and self._pending.get(key)
        }
        for row in rows:
            records = self._pending.get(row.id, [])
            if any(r.operation is MutationOperation.REMOVE for r in records):
                continue
            fresh[row.id] = self._merge(row, records)

        self._entities = fresh
        self._publish()
        return list(fresh.values())

    # ── Create ───────────────────────────────────────────────────────

    def submit_create(
        self, draft: BaseModel | Mapping[str, Any], *, success_message: str | None = None
    ) -> "asyncio.Task[MutationRecord]":
        """Show a placeholder row under a local id now; persist it in the background."""
        try:
            validated = self._repository.validate_draft(draft)
        except FieldTrackError as exc:
            self._reporter.failed(exc)
            raise

        local_id = new_local_id()
        optimistic = self._repository.build_optimistic(validated, local_id)
        record = MutationRecord(
            entity_id=local_id,
            operation=MutationOperation.CREATE,
            changes=validated.model_dump(exclude_none=True),
        )
        self._entities = {local_id: optimistic, **self._entities}
        self._track(local_id, record)
        self._publish()
        logger.debug("Applied create %s as %s", record.correlation_id, local_id)
        return self._queue.submit(
            local_id, lambda: self._run_create(record, validated, success_message)
        )

    async def create(
        self, draft: BaseModel | Mapping[str, Any], *, success_message: str | None = None
    ) -> MutationRecord:
        return await self.submit_create(draft, success_message=success_message)

    async def _run_create(
        self, record: MutationRecord, draft: BaseModel, success_message: str | None
    ) -> MutationRecord:
        record.mark_in_flight()
        try:
            row = await self._repository.create(draft)
        except RemoteFailure as exc:
            record.mark_rolled_back(exc)
            self._discard_local(record)
            self._reporter.failed(exc)
            return record

        record.mark_confirmed(row.id)
        self._adopt(record, row)
        logger.info(
            "Created %s %s (placeholder %s)",
            self._repository.entity_name, row.id, record.entity_id,
        )
        if success_message:
            self._reporter.succeeded(success_message)
        return record

    def _adopt(self, record: MutationRecord, row: E) -> None:
        """Replace the placeholder row by the server row, matched by correlation."""
        local_id = record.entity_id
        self._aliases[local_id] = row.id
        self._queue.alias(local_id, row.id)

        later = self._detach(local_id, record)
        self._pending.pop(local_id, None)
        if later:
            self._pending[row.id] = later
        if self._closed:
            return

        merged = self._merge(row, later)
        if local_id in self._entities:
            self._entities = {
                (row.id if key == local_id else key): (merged if key == local_id else entity)
                for key, entity in self._entities.items()
            }
        else:
            self._hand_to_removal(later, merged)
        self._publish()

    def _discard_local(self, record: MutationRecord) -> None:
        self._detach(record.entity_id, record)
        if self._closed:
            return
        self._entities.pop(record.entity_id, None)
        self._publish()

    # ── Update ───────────────────────────────────────────────────────

    def submit_update(
        self,
        entity_id: int,
        changes: Mapping[str, Any],
        *,
        success_message: str | None = None,
    ) -> "asyncio.Task[MutationRecord]":
        """Apply ``changes`` locally now and queue the remote update.

        Raises:
            ValidationFailure: If the changes are rejected (state untouched).
            EntityNotFoundError: If the entity is not in the list.
        """
        key = self._resolve(entity_id)
        try:
            fields = self._repository.validate_update(changes)
            if not fields:
                raise ValidationFailure("Nothing to update")
            entity = self._entities.get(key)
            if entity is None:
                raise EntityNotFoundError(self._repository.entity_name, entity_id)
        except FieldTrackError as exc:
            self._reporter.failed(exc)
            raise

        record = MutationRecord(
            entity_id=key,
            operation=MutationOperation.UPDATE,
            changes=fields,
            previous={name: getattr(entity, name) for name in fields},
        )
        self._entities[key] = replace(entity, **fields)
        self._track(key, record)
        self._publish()
        logger.debug("Applied update of %s %s: %s", self._repository.entity_name, key, sorted(fields))
        return self._queue.submit(key, lambda: self._run_update(record, success_message))

    async def update(
        self,
        entity_id: int,
        changes: Mapping[str, Any],
        *,
        success_message: str | None = None,
    ) -> MutationRecord:
        return await self.submit_update(entity_id, changes, success_message=success_message)

    async def _run_update(
        self, record: MutationRecord, success_message: str | None
    ) -> MutationRecord:
        key = self._resolve(record.entity_id)
        if is_local_id(key):
            # The create this edit waited on never reached the server.
            self._detach(key, record)
            record.mark_rolled_back()
            logger.info("Dropped update of unsaved %s %s", self._repository.entity_name, key)
            return record

        record.mark_in_flight()
        try:
            row = await self._repository.update(key, record.changes)
        except RemoteFailure as exc:
            record.mark_rolled_back(exc)
            self._roll_back(record)
            self._reporter.failed(exc)
            return record

        record.mark_confirmed(row.id)
        self._confirm(record, row)
        if success_message:
            self._reporter.succeeded(success_message)
        return record

    def _confirm(self, record: MutationRecord, row: E) -> None:
        key = self._resolve(record.entity_id)
        later = self._detach(key, record)
        if self._closed:
            return
        merged = self._merge(row, later)
        if key in self._entities:
            self._entities[key] = merged
        else:
            self._hand_to_removal(later, merged)
        self._publish()

    def _roll_back(self, record: MutationRecord) -> None:
        """Restore the snapshot, except fields a later pending edit has overwritten.

        Such a later edit inherits the snapshot value as its own rollback value,
        so undoing every edit still lands on the original state.
        """
        key = self._resolve(record.entity_id)
        later = self._detach(key, record)
        if self._closed:
            return

        restore: dict[str, Any] = {}
        for name, value in record.previous.items():
            heir = next((r for r in later if name in r.changes), None)
            if heir is None:
                restore[name] = value
            else:
                heir.previous[name] = value

        if restore:
            if key in self._entities:
                self._entities[key] = replace(self._entities[key], **restore)
            else:
                removal = self._pending_removal(later)
                if removal is not None:
                    removal.removed_row = replace(removal.removed_row, **restore)
        self._publish()

    # ── Remove ───────────────────────────────────────────────────────

    def submit_remove(
        self, entity_id: int, *, success_message: str | None = None
    ) -> "asyncio.Task[MutationRecord]":
        """Drop the entity from the list now and queue the remote delete."""
        key = self._resolve(entity_id)
        entity = self._entities.get(key)
        if entity is None:
            error = EntityNotFoundError(self._repository.entity_name, entity_id)
            self._reporter.failed(error)
            raise error

        record = MutationRecord(
            entity_id=key,
            operation=MutationOperation.REMOVE,
            removed_row=entity,
            removed_index=list(self._entities).index(key),
        )
        del self._entities[key]
        self._track(key, record)
        self._publish()
        return self._queue.submit(key, lambda: self._run_remove(record, success_message))

    async def remove(self, entity_id: int, *, success_message: str | None = None) -> MutationRecord:
        return await self.submit_remove(entity_id, success_message=success_message)

    async def _run_remove(
        self, record: MutationRecord, success_message: str | None
    ) -> MutationRecord:
        key = self._resolve(record.entity_id)
        if is_local_id(key):
            self._detach(key, record)
            record.mark_confirmed()
            return record

        record.mark_in_flight()
        try:
            await self._repository.delete(key)
        except RemoteFailure as exc:
            record.mark_rolled_back(exc)
            self._restore_removed(record)
            self._reporter.failed(exc)
            return record

        record.mark_confirmed(key)
        self._detach(key, record)
        self._publish()
        if success_message:
            self._reporter.succeeded(success_message)
        return record

    def _restore_removed(self, record: MutationRecord) -> None:
        key = self._resolve(record.entity_id)
        self._detach(key, record)
        if self._closed:
            return
        items = list(self._entities.items())
        index = min(record.removed_index or 0, len(items))
        items.insert(index, (key, record.removed_row))
        self._entities = dict(items)
        self._publish()

    # ── Helpers ──────────────────────────────────────────────────────

    def _resolve(self, entity_id: int) -> int:
        return self._aliases.get(entity_id, entity_id)

    def _track(self, key: int, record: MutationRecord) -> None:
        self._pending.setdefault(key, []).append(record)

    def _detach(self, key: int, record: MutationRecord) -> list[MutationRecord]:
        """Forget a terminal record; return the records still pending after it."""
        remaining = [r for r in self._pending.get(key, []) if r is not record]
        if remaining:
            self._pending[key] = remaining
        else:
            self._pending.pop(key, None)
        return list(remaining)

    @staticmethod
    def _overlay(records: list[MutationRecord]) -> dict[str, Any]:
        overlay: dict[str, Any] = {}
        for record in records:
            overlay.update(record.changes)
        return overlay

    @staticmethod
    def _rebase(records: list[MutationRecord], row: Any) -> None:
        """Point the first pending edit of each field at the authoritative value."""
        seen: set[str] = set()
        for record in records:
            if record.operation is not MutationOperation.UPDATE:
                continue
            for name in record.changes:
                if name not in seen:
                    record.previous[name] = getattr(row, name)
                    seen.add(name)

    def _merge(self, row: E, later: list[MutationRecord]) -> E:
        self._rebase(later, row)
        overlay = self._overlay([r for r in later if r.operation is MutationOperation.UPDATE])
        return replace(row, **overlay) if overlay else row

    @staticmethod
    def _pending_removal(records: list[MutationRecord]) -> MutationRecord | None:
        return next((r for r in records if r.operation is MutationOperation.REMOVE), None)

    def _hand_to_removal(self, later: list[MutationRecord], row: E) -> None:
        removal = self._pending_removal(later)
        if removal is not None:
            removal.removed_row = row

    def _publish(self) -> None:
        if not self._closed:
            self._broadcaster.publish(self.snapshot())
