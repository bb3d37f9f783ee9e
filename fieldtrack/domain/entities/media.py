"""Domain entities for photo attachments and their upload lifecycle."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from fieldtrack.domain.exceptions import FieldTrackError


class OwnerKind(str, Enum):
    """Kind of entity an attachment belongs to."""

    TASK = "task"
    EXPENSE = "expense"


@dataclass(frozen=True)
class SignedUrl:
    """A time-limited retrieval link for a private storage object.

    ``expires_at`` is a POSIX timestamp.
    """

    url: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class MediaAttachment:
    """One uploaded photo attached to a task or an expense.

    ``storage_path`` is immutable once created. ``signed_url`` is a derived,
    cacheable view and is never persisted.
    """

    id: int
    owner_id: int
    owner_kind: OwnerKind
    storage_path: str
    created_by: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    signed_url: SignedUrl | None = None

    def with_signed_url(self, signed_url: SignedUrl | None) -> "MediaAttachment":
        return replace(self, signed_url=signed_url)


@dataclass(frozen=True)
class CapturedImage:
    """A local image picked from the library or taken with the camera."""

    uri: str
    width: int
    height: int


@dataclass(frozen=True)
class TransformedImage:
    """A resized, recompressed copy of a captured image."""

    uri: str
    width: int
    height: int
    size_bytes: int = 0


class UploadStage(str, Enum):
    """Lifecycle states of an attachment in progress."""

    CAPTURED = "captured"
    TRANSFORMED = "transformed"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    RECORDED = "recorded"
    UPLOAD_FAILED = "upload_failed"
    RECORD_FAILED = "record_failed"


@dataclass
class AttachmentUpload:
    """Tracks one captured image through transform, upload and record.

    ``RECORDED`` and ``UPLOAD_FAILED`` are terminal. ``RECORD_FAILED`` leaves
    the object in storage at ``storage_path`` so the record insert alone can
    be retried.
    """

    owner_id: int
    owner_kind: OwnerKind
    source: CapturedImage
    stage: UploadStage = UploadStage.CAPTURED
    transformed: TransformedImage | None = None
    storage_path: str | None = None
    uploader_id: str | None = None
    attachment: MediaAttachment | None = None
    error: FieldTrackError | None = None

    @property
    def succeeded(self) -> bool:
        return self.stage is UploadStage.RECORDED

    def mark_transformed(self, image: TransformedImage) -> None:
        """Keep only the transformed copy; the original is no longer referenced."""
        self.stage = UploadStage.TRANSFORMED
        self.transformed = image

    def mark_uploading(self, storage_path: str, uploader_id: str) -> None:
        self.stage = UploadStage.UPLOADING
        self.storage_path = storage_path
        self.uploader_id = uploader_id

    def mark_uploaded(self) -> None:
        self.stage = UploadStage.UPLOADED

    def mark_recorded(self, attachment: MediaAttachment) -> None:
        self.stage = UploadStage.RECORDED
        self.attachment = attachment
        self.error = None

    def mark_upload_failed(self, error: FieldTrackError) -> None:
        self.stage = UploadStage.UPLOAD_FAILED
        self.error = error

    def mark_record_failed(self, error: FieldTrackError) -> None:
        self.stage = UploadStage.RECORD_FAILED
        self.error = error
