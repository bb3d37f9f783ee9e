"""Media store — object storage operations bound to one bucket."""

import asyncio
import logging
from pathlib import Path

from fieldtrack.application.interfaces import ObjectStorage
from fieldtrack.domain.entities import Credential, SignedUrl

logger = logging.getLogger(__name__)


class MediaStore:
    """Wraps ``ObjectStorage`` for a single bucket and signed URL lifetime."""

    def __init__(self, storage: ObjectStorage, bucket: str, *, ttl_seconds: int = 3600):
        self._storage = storage
        self._bucket = bucket
        self._ttl_seconds = ttl_seconds

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    async def upload_file(self, path: str, local_uri: str, credential: Credential) -> int:
        """Read a local file and upload its bytes to ``path``."""
        data = await asyncio.to_thread(Path(local_uri).read_bytes)
        return await self.upload(path, data, credential)

    async def upload(self, path: str, data: bytes, credential: Credential) -> int:
        status = await self._storage.upload(self._bucket, path, data, credential)
        logger.info("Uploaded %s/%s (%d bytes, HTTP %d)", self._bucket, path, len(data), status)
        return status

    async def delete(self, paths: list[str]) -> None:
        if not paths:
            return
        await self._storage.delete(self._bucket, list(paths))
        logger.info("Deleted %d object(s) from %s", len(paths), self._bucket)

    async def sign(self, path: str) -> SignedUrl:
        return await self._storage.sign(self._bucket, path, self._ttl_seconds)

    async def sign_many(self, paths: list[str]) -> dict[str, SignedUrl | None]:
        if not paths:
            return {}
        return await self._storage.sign_many(self._bucket, list(paths), self._ttl_seconds)
