"""Supabase Storage client — implements the ObjectStorage interface over ``/storage/v1``."""

import logging
import time
from collections.abc import Callable
from urllib.parse import quote

import httpx

from fieldtrack.application.interfaces import AuthProvider, ObjectStorage
from fieldtrack.domain.entities import Credential, SignedUrl
from fieldtrack.domain.exceptions import UploadFailed
from fieldtrack.infrastructure.remote.base_client import (
    SupabaseHttpClient,
    failure_from_response,
)

logger = logging.getLogger(__name__)

_UPLOAD_OK = (200, 201)


class SupabaseStorageClient(SupabaseHttpClient, ObjectStorage):
    """Infrastructure adapter — private buckets with signed retrieval URLs.

    Uploads are sent as raw bodies with the uploader's bearer token and never
    overwrite an existing object.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        auth: AuthProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(base_url, api_key, auth=auth, http_client=http_client, timeout=timeout)
        self._clock = clock

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        credential: Credential,
        *,
        content_type: str = "image/jpeg",
    ) -> int:
        response = await self._send(
            "POST",
            f"object/{bucket}/{quote(path)}",
            collection=bucket,
            token=credential.token,
            headers={"Content-Type": content_type, "x-upsert": "false"},
            content=data,
        )
        if response.status_code not in _UPLOAD_OK:
            failure = failure_from_response(response, bucket)
            logger.warning("Upload of %s/%s → HTTP %d", bucket, path, response.status_code)
            raise UploadFailed(response.status_code, path, failure.message)
        return response.status_code

    async def delete(self, bucket: str, paths: list[str]) -> None:
        response = await self._send(
            "DELETE",
            f"object/{bucket}",
            collection=bucket,
            json={"prefixes": list(paths)},
        )
        if not response.is_success:
            raise failure_from_response(response, bucket)
        logger.debug("Deleted %d object(s) from %s", len(paths), bucket)

    async def sign(self, bucket: str, path: str, ttl_seconds: int) -> SignedUrl:
        issued_at = self._clock()
        response = await self._send(
            "POST",
            f"object/sign/{bucket}/{quote(path)}",
            collection=bucket,
            json={"expiresIn": ttl_seconds},
        )
        if not response.is_success:
            raise failure_from_response(response, bucket)
        data = self._json(response, bucket)
        return SignedUrl(self._absolute(data["signedURL"]), issued_at + ttl_seconds)

    async def sign_many(
        self, bucket: str, paths: list[str], ttl_seconds: int
    ) -> dict[str, SignedUrl | None]:
        issued_at = self._clock()
        response = await self._send(
            "POST",
            f"object/sign/{bucket}",
            collection=bucket,
            json={"expiresIn": ttl_seconds, "paths": list(paths)},
        )
        if not response.is_success:
            raise failure_from_response(response, bucket)

        signed: dict[str, SignedUrl | None] = {path: None for path in paths}
        for item in self._json(response, bucket):
            path = item.get("path")
            url = item.get("signedURL")
            if path in signed and url and not item.get("error"):
                signed[path] = SignedUrl(self._absolute(url), issued_at + ttl_seconds)
        return signed

    def _absolute(self, signed_path: str) -> str:
        if signed_path.startswith(("http://", "https://")):
            return signed_path
        return f"{self._base_url}/{signed_path.lstrip('/')}"
