"""Media attachment pipeline — turns captured photos into durable attachments.

Upload:   Captured → Transformed → Uploading → Uploaded → Recorded
          (Uploading may end in UploadFailed, Recorded in RecordFailed)
Delete:   drop from list → delete stored object → delete record

A record is inserted only after its object was stored, and an object is
deleted before its record, so no record ever points at a missing object.
"""

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass

from fieldtrack.application.interfaces import (
    AttachmentRepository,
    AuthProvider,
    LocalCapture,
    LocalTransform,
)
from fieldtrack.application.schemas import AttachmentCreate
from fieldtrack.application.services.media_store import MediaStore
from fieldtrack.application.services.orphan_ledger import OrphanLedger
from fieldtrack.application.services.outcome_reporter import OutcomeReporter
from fieldtrack.application.services.signed_url_cache import SignedUrlCache
from fieldtrack.application.services.state_broadcaster import StateBroadcaster
from fieldtrack.domain.entities import (
    AttachmentUpload,
    CapturedImage,
    Credential,
    MediaAttachment,
    OwnerKind,
    UploadStage,
    is_local_id,
)
from fieldtrack.domain.exceptions import (
    EntityNotFoundError,
    FailureKind,
    MediaTransformError,
    PreconditionFailure,
    RecordFailed,
    RemoteFailure,
)
from fieldtrack.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("fieldtrack.pipeline")

DEFAULT_MAX_EDGE = 1600
DEFAULT_QUALITY = 80


@dataclass(frozen=True)
class AttachmentListSnapshot:
    """Immutable view of a pipeline's attachment list."""

    attachments: tuple[MediaAttachment, ...]
    uploading: int = 0

    @property
    def busy(self) -> bool:
        return self.uploading > 0


class MediaAttachmentPipeline:
    """Photo attachments of one owner (a task or an expense).

    The owner id is passed in explicitly. The attachment list belongs to this
    instance only; the signed URL cache and orphan ledger are shared.
    """

    def __init__(
        self,
        owner_id: int | None,
        owner_kind: OwnerKind,
        *,
        capture: LocalCapture,
        transform: LocalTransform,
        store: MediaStore,
        repository: AttachmentRepository,
        auth: AuthProvider,
        url_cache: SignedUrlCache,
        reporter: OutcomeReporter,
        orphans: OrphanLedger | None = None,
        max_edge: int = DEFAULT_MAX_EDGE,
        quality: int = DEFAULT_QUALITY,
        broadcaster: StateBroadcaster[AttachmentListSnapshot] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._owner_id = owner_id
        self._owner_kind = owner_kind
        self._capture = capture
        self._transform = transform
        self._store = store
        self._repository = repository
        self._auth = auth
        self._url_cache = url_cache
        self._reporter = reporter
        self._orphans = orphans if orphans is not None else OrphanLedger()
        self._max_edge = max_edge
        self._quality = quality
        self._broadcaster = broadcaster or StateBroadcaster()
        self._clock = clock
        self._attachments: list[MediaAttachment] = []
        self._uploading = 0
        self._closed = False
        # ids whose object delete is in flight
        self._deleting: set[int] = set()
        # (recorded?, attachment) changes made while a load is running
        self._journal: list[tuple[bool, MediaAttachment]] = []
        self._loads = 0

    # ── State ────────────────────────────────────────────────────────

    @property
    def owner_id(self) -> int | None:
        return self._owner_id

    @property
    def owner_kind(self) -> OwnerKind:
        return self._owner_kind

    @property
    def broadcaster(self) -> StateBroadcaster[AttachmentListSnapshot]:
        return self._broadcaster

    @property
    def attachments(self) -> tuple[MediaAttachment, ...]:
        return tuple(self._attachments)

    def snapshot(self) -> AttachmentListSnapshot:
        return AttachmentListSnapshot(tuple(self._attachments), self._uploading)

    def close(self) -> None:
        """Tear down; running operations complete without touching state."""
        self._closed = True
        self._broadcaster.shutdown()

    # ── Load ─────────────────────────────────────────────────────────

    async def load(self) -> list[MediaAttachment]:
        """Fetch the owner's attachments and attach signed URLs in one batch."""
        owner_id = self._require_owner()
        await self.sweep_orphans()
        mark = len(self._journal)
        self._loads += 1
        try:
            try:
                rows = await self._repository.list_for_owner(owner_id)
            except RemoteFailure as exc:
                self._reporter.failed(exc)
                raise

            rows = [row for row in rows if not self._orphans.contains(self._owner_kind, row.id)]
            attachments = self._merge_local_changes(await self._attach_urls(rows), mark)
        finally:
            self._loads -= 1
            if not self._loads:
                self._journal.clear()
        if not self._closed:
            self._attachments = attachments
            self._publish()
        return attachments

    async def _attach_urls(self, rows: list[MediaAttachment]) -> list[MediaAttachment]:
        try:
            urls = await self._url_cache.resolve_many(rows)
        except RemoteFailure as exc:
            self._reporter.failed(exc)
            return rows
        return [row.with_signed_url(urls.get(row.id)) for row in rows]

    # ── Upload ───────────────────────────────────────────────────────

    async def capture_and_upload(self, source: str) -> AttachmentUpload | None:
        """Capture an image from ``source`` and upload it; ``None`` if cancelled."""
        captured = await self._capture.pick_or_capture(source)
        if captured is None:
            plog.detail("Capture cancelled", source=source)
            return None
        return await self.upload(captured)

    async def upload(self, captured: CapturedImage) -> AttachmentUpload:
        """Run one captured image through transform, upload and record.

        Remote failures end in a terminal stage of the returned upload and are
        reported; a missing session or owner raises ``PreconditionFailure``.
        """
        plog.separator(f"{self._owner_kind.value} {self._owner_id} photo")
        plog.step_start(
            PipelineStage.CAPTURE, "Captured image",
            uri=captured.uri, size=f"{captured.width}x{captured.height}",
        )
        owner_id = self._require_owner()
        credential = await self._require_credential()

        job = AttachmentUpload(owner_id=owner_id, owner_kind=self._owner_kind, source=captured)
        self._uploading += 1
        self._publish()
        try:
            await self._transform_step(job)
            try:
                uploaded = await self._upload_step(job, credential)
            finally:
                self._transform.discard(job.transformed.uri)
            if not uploaded:
                return job
            return await self._record_step(job)
        finally:
            self._uploading -= 1
            self._publish()

    async def retry_record(self, job: AttachmentUpload) -> AttachmentUpload:
        """Insert the record of an already uploaded object again, without re-uploading."""
        if job.stage is not UploadStage.RECORD_FAILED:
            error = PreconditionFailure("Only uploads whose record insert failed can be retried")
            self._reporter.failed(error)
            raise error
        plog.separator(f"retry record {job.storage_path}")
        return await self._record_step(job)

    def target_width(self, width: int, height: int) -> int:
        """Width that clamps the longer edge to ``max_edge``, keeping aspect ratio."""
        if width <= 0 or height <= 0:
            return self._max_edge
        longer = max(width, height)
        if longer <= self._max_edge:
            return width
        return max(1, round(width * self._max_edge / longer))

    def build_storage_path(self, uploader_id: str, owner_id: int) -> str:
        """``{uploader}/{owner}/{millis}_{token}.jpg`` — fixed prefix, unique suffix."""
        millis = int(self._clock() * 1000)
        return f"{uploader_id}/{owner_id}/{millis}_{secrets.token_hex(4)}.jpg"

    async def _transform_step(self, job: AttachmentUpload) -> None:
        source = job.source
        width = self.target_width(source.width, source.height)
        try:
            with plog.timed_step(PipelineStage.TRANSFORM, "Resizing photo", width=width):
                image = await self._transform.resize(
                    source.uri, width, self._quality, max_edge=self._max_edge
                )
        except MediaTransformError as exc:
            self._reporter.failed(exc)
            raise
        job.mark_transformed(image)
        plog.detail("Transformed", size=f"{image.width}x{image.height}", bytes=image.size_bytes)

    async def _upload_step(self, job: AttachmentUpload, credential: Credential) -> bool:
        path = self.build_storage_path(credential.user_id, job.owner_id)
        job.mark_uploading(path, credential.user_id)
        plog.step_start(PipelineStage.UPLOAD, "Uploading photo", bucket=self._store.bucket, path=path)
        try:
            status = await self._store.upload_file(path, job.transformed.uri, credential)
        except RemoteFailure as exc:
            job.mark_upload_failed(exc)
            plog.step_error(PipelineStage.UPLOAD, "Upload failed; nothing recorded", exc)
            self._reporter.failed(exc)
            return False
        job.mark_uploaded()
        plog.step_complete(PipelineStage.UPLOAD, "Uploaded", status=status)
        return True

    async def _record_step(self, job: AttachmentUpload) -> AttachmentUpload:
        draft = AttachmentCreate(
            owner_id=job.owner_id,
            storage_path=job.storage_path,
            created_by=job.uploader_id,
        )
        plog.step_start(PipelineStage.RECORD, "Inserting attachment record", path=job.storage_path)
        try:
            attachment = await self._repository.create(draft)
        except RemoteFailure as exc:
            error = RecordFailed(job.storage_path, exc)
            job.mark_record_failed(error)
            plog.step_error(PipelineStage.RECORD, "Record insert failed; object kept for retry", exc)
            self._reporter.failed(error)
            return job

        attachment = await self._with_signed_url(attachment)
        job.mark_recorded(attachment)
        self._note(True, attachment)
        if not self._closed:
            self._attachments = [attachment, *(a for a in self._attachments if a.id != attachment.id)]
            self._publish()
        plog.step_complete(PipelineStage.COMPLETE, "Photo attached", id=attachment.id)
        self._reporter.succeeded("Photo added.")
        return job

    async def _with_signed_url(self, attachment: MediaAttachment) -> MediaAttachment:
        try:
            signed = await self._url_cache.resolve_signed(attachment)
        except RemoteFailure as exc:
            logger.warning("No signed URL for new attachment %s: %s", attachment.id, exc)
            self._reporter.failed(exc)
            return attachment
        return attachment.with_signed_url(signed)

    # ── Delete ───────────────────────────────────────────────────────

    async def delete(self, attachment_id: int) -> bool:
        """Remove one attachment: list entry first, then object, then record.

        Returns True when both the object and the record are gone. A failed
        object delete restores the list entry. A failed record delete after a
        successful object delete keeps the entry removed and hands the record
        to the orphan sweep.
        """
        index = next(
            (i for i, a in enumerate(self._attachments) if a.id == attachment_id), None
        )
        if index is None:
            error = EntityNotFoundError("Attachment", attachment_id)
            self._reporter.failed(error)
            raise error

        attachment = self._attachments.pop(index)
        self._deleting.add(attachment.id)
        self._publish()

        plog.step_start(PipelineStage.UNSTORE, "Deleting stored object", path=attachment.storage_path)
        try:
            await self._store.delete([attachment.storage_path])
        except RemoteFailure as exc:
            plog.step_error(PipelineStage.UNSTORE, "Storage delete failed; photo restored", exc)
            self._deleting.discard(attachment.id)
            self._restore(index, attachment)
            self._reporter.failed(exc)
            return False
        self._url_cache.invalidate(attachment)

        plog.step_start(PipelineStage.UNRECORD, "Deleting attachment record", id=attachment.id)
        try:
            await self._repository.delete(attachment.id)
        except RemoteFailure as exc:
            self._orphans.add(self._owner_kind, attachment.id)
            plog.step_error(PipelineStage.UNRECORD, "Record delete failed; queued for sweep", exc)
            self._reporter.failed(exc)
            return False
        finally:
            self._deleting.discard(attachment.id)
            self._note(False, attachment)

        plog.step_complete(PipelineStage.COMPLETE, "Photo removed", id=attachment.id)
        self._reporter.succeeded("Photo removed.")
        return True

    async def delete_all_for_owner(self) -> list[str]:
        """Delete every stored object of the owner with one storage call.

        Used before deleting the owner itself: the caller must not delete the
        owner unless this returns.

        Raises:
            RemoteFailure: If listing or deleting fails (not reported here).
        """
        owner_id = self._require_owner()
        rows = await self._repository.list_for_owner(owner_id)
        paths = [row.storage_path for row in rows]
        plog.step_start(
            PipelineStage.UNSTORE,
            f"Deleting all objects of {self._owner_kind.value} {owner_id}",
            count=len(paths),
        )
        try:
            await self._store.delete(paths)
        except RemoteFailure as exc:
            plog.step_error(PipelineStage.UNSTORE, "Batch delete failed; owner kept", exc)
            raise

        for row in rows:
            self._url_cache.invalidate(row)
        if not self._closed:
            self._attachments = []
            self._publish()
        plog.step_complete(PipelineStage.UNSTORE, "Objects deleted", count=len(paths))
        return paths

    async def sweep_orphans(self) -> int:
        """Retry record deletes left behind by failed deletions; return how many succeeded."""
        removed = 0
        for attachment_id in self._orphans.pending(self._owner_kind):
            try:
                await self._repository.delete(attachment_id)
            except RemoteFailure as exc:
                if exc.kind is not FailureKind.NOT_FOUND:
                    plog.step_error(
                        PipelineStage.SWEEP, f"Orphan record {attachment_id} still present", exc
                    )
                    continue
            self._orphans.discard(self._owner_kind, attachment_id)
            removed += 1
        if removed:
            plog.step_complete(PipelineStage.SWEEP, "Orphan records removed", count=removed)
        return removed

    # ── Helpers ──────────────────────────────────────────────────────

    def _require_owner(self) -> int:
        if self._owner_id is None or self._owner_id <= 0 or is_local_id(self._owner_id):
            error = PreconditionFailure(f"{self._owner_kind.value.capitalize()} id is missing")
            self._reporter.failed(error)
            raise error
        return self._owner_id

    async def _require_credential(self) -> Credential:
        credential = await self._auth.current_credential()
        if credential is None or not credential.token or not credential.user_id:
            error = PreconditionFailure("Session not found. Please sign in again.")
            self._reporter.failed(error)
            raise error
        return credential

    def _note(self, recorded: bool, attachment: MediaAttachment) -> None:
        if self._loads:
            self._journal.append((recorded, attachment))

    def _merge_local_changes(
        self, fresh: list[MediaAttachment], mark: int
    ) -> list[MediaAttachment]:
        """Apply uploads and deletes that finished while a load was waiting on the server."""
        added: dict[int, MediaAttachment] = {}
        removed: set[int] = set()
        for recorded, attachment in self._journal[mark:]:
            if recorded:
                added[attachment.id] = attachment
                removed.discard(attachment.id)
            else:
                added.pop(attachment.id, None)
                removed.add(attachment.id)
        hidden = removed | self._deleting
        kept = [a for a in fresh if a.id not in hidden and a.id not in added]
        return [*(a for a in reversed(added.values()) if a.id not in hidden), *kept]

    def _restore(self, index: int, attachment: MediaAttachment) -> None:
        if self._closed or any(a.id == attachment.id for a in self._attachments):
            return
        self._attachments.insert(min(index, len(self._attachments)), attachment)
        self._publish()

    def _publish(self) -> None:
        if not self._closed:
            self._broadcaster.publish(self.snapshot())
