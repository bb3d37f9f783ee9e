"""Domain-specific exceptions — framework-independent.

Every failure carries a machine-readable ``kind`` (used as the short
category label of user notifications) and a human ``message``.
"""

from enum import Enum


class FailureKind(str, Enum):
    """Category of a failure, as surfaced to the user."""

    NETWORK = "network"
    VALIDATION = "validation"
    NOT_FOUND = "not-found"
    PERMISSION = "permission"
    PRECONDITION = "precondition"

    @classmethod
    def from_status(cls, status_code: int) -> "FailureKind":
        """Map an HTTP status code to a failure kind."""
        if status_code in (401, 403):
            return cls.PERMISSION
        if status_code == 404:
            return cls.NOT_FOUND
        if status_code in (400, 409, 413, 415, 422):
            return cls.VALIDATION
        return cls.NETWORK


class FieldTrackError(Exception):
    """Base class for every failure the client core reports."""

    kind: FailureKind = FailureKind.NETWORK

    def __init__(self, message: str, kind: FailureKind | None = None):
        if kind is not None:
            self.kind = kind
        self.message = message
        super().__init__(message)


class RemoteFailure(FieldTrackError):
    """Raised when the data service or object storage rejects a call."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        status_code: int | None = None,
        collection: str | None = None,
    ):
        self.status_code = status_code
        self.collection = collection
        super().__init__(message, kind)

    def __str__(self) -> str:
        where = f" ({self.collection})" if self.collection else ""
        return f"[{self.kind.value}]{where} {self.message}"


class UploadFailed(RemoteFailure):
    """Raised when object storage answers an upload with a non-2xx status."""

    def __init__(self, status_code: int, storage_path: str, message: str = ""):
        self.storage_path = storage_path
        super().__init__(
            FailureKind.from_status(status_code),
            message or f"Photo could not be uploaded (HTTP {status_code})",
            status_code=status_code,
        )


class RecordFailed(FieldTrackError):
    """Partial failure: the object was uploaded but its record insert failed.

    The object stays in storage at ``storage_path`` so the insert alone can
    be retried without uploading again.
    """

    def __init__(self, storage_path: str, cause: RemoteFailure):
        self.storage_path = storage_path
        self.cause = cause
        super().__init__(cause.message, cause.kind)


class PreconditionFailure(FieldTrackError):
    """Raised when an operation cannot start (no session, no owner id, ...)."""

    kind = FailureKind.PRECONDITION


class EntityNotFoundError(PreconditionFailure):
    """Raised when a requested entity is not part of the loaded state."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class ValidationFailure(FieldTrackError):
    """Raised when user input is rejected before any remote call."""

    kind = FailureKind.VALIDATION

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class MediaTransformError(FieldTrackError):
    """Raised when a local image cannot be decoded or re-encoded."""

    kind = FailureKind.VALIDATION
