from .attachment_repository import AttachmentRepository
from .auth_provider import AuthProvider
from .entity_repository import EntityRepository, ReadRepository
from .media_device import LocalCapture, LocalTransform
from .notifier import Notifier
from .object_storage import ObjectStorage
from .remote_service import RemoteService, Row

__all__ = [
    "AttachmentRepository",
    "AuthProvider",
    "EntityRepository",
    "ReadRepository",
    "LocalCapture",
    "LocalTransform",
    "Notifier",
    "ObjectStorage",
    "RemoteService",
    "Row",
]
