"""Abstract object storage interface — port for binary media storage."""

from abc import ABC, abstractmethod

from fieldtrack.domain.entities import Credential, SignedUrl


class ObjectStorage(ABC):
    """Port — authenticated uploads, deletions and signed retrieval URLs."""

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        credential: Credential,
        *,
        content_type: str = "image/jpeg",
    ) -> int:
        """Upload ``data`` to ``bucket/path`` and return the HTTP status code.

        Raises:
            UploadFailed: On any non-2xx response.
        """
        ...

    @abstractmethod
    async def delete(self, bucket: str, paths: list[str]) -> None:
        """Delete every object in ``paths`` with a single call."""
        ...

    @abstractmethod
    async def sign(self, bucket: str, path: str, ttl_seconds: int) -> SignedUrl:
        """Issue a signed retrieval URL valid for ``ttl_seconds``."""
        ...

    @abstractmethod
    async def sign_many(
        self, bucket: str, paths: list[str], ttl_seconds: int
    ) -> dict[str, SignedUrl | None]:
        """Issue signed URLs for several objects in one call.

        Objects the service could not sign map to ``None``.
        """
        ...
