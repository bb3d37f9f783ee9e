"""Signed URL cache — process-wide memo of retrieval links per attachment."""

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Mapping

from fieldtrack.application.services.media_store import MediaStore
from fieldtrack.domain.entities import MediaAttachment, OwnerKind, SignedUrl

logger = logging.getLogger(__name__)

_Key = tuple[OwnerKind, int]


class SignedUrlCache:
    """Memoizes ``(url, expiry)`` per attachment until the URL expires.

    A lookup before expiry is served from memory; a lookup at or after expiry
    signs again and replaces the entry. Entries are dropped only by expiry or
    ``invalidate``. Replacing an entry is idempotent, so screens can share one
    cache without coordination.
    """

    def __init__(
        self,
        stores: Mapping[OwnerKind, MediaStore],
        *,
        clock: Callable[[], float] = time.time,
    ):
        self._stores = dict(stores)
        self._clock = clock
        self._entries: dict[_Key, SignedUrl] = {}
        self._inflight: dict[_Key, asyncio.Task[SignedUrl]] = {}
        # bumped by invalidate; a signature started under an older value is not stored
        self._generations: dict[_Key, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, attachment: MediaAttachment) -> SignedUrl | None:
        """Return the cached entry if still valid, without any network call."""
        entry = self._entries.get(self._key(attachment))
        if entry is not None and entry.is_valid(self._clock()):
            return entry
        return None

    async def resolve(self, attachment: MediaAttachment) -> str:
        """Return a usable signed URL for ``attachment``.

        Raises:
            RemoteFailure: If the storage service refuses to sign.
        """
        return (await self.resolve_signed(attachment)).url

    async def resolve_signed(self, attachment: MediaAttachment) -> SignedUrl:
        cached = self.peek(attachment)
        if cached is not None:
            return cached

        key = self._key(attachment)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(
                self._sign(key, attachment, self._generation(key))
            )
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        return await asyncio.shield(task)

    async def resolve_many(
        self, attachments: Iterable[MediaAttachment]
    ) -> dict[int, SignedUrl | None]:
        """Resolve several attachments, signing all misses of a bucket in one call.

        The result is keyed by attachment id. Objects the storage service
        could not sign map to ``None``.

        Raises:
            RemoteFailure: If a batched sign call fails as a whole.
        """
        now = self._clock()
        resolved: dict[int, SignedUrl | None] = {}
        misses: dict[OwnerKind, list[MediaAttachment]] = {}
        for attachment in attachments:
            entry = self._entries.get(self._key(attachment))
            if entry is not None and entry.is_valid(now):
                resolved[attachment.id] = entry
            else:
                misses.setdefault(attachment.owner_kind, []).append(attachment)

        for kind, pending in misses.items():
            started = {a.id: self._generation(self._key(a)) for a in pending}
            signed = await self._store(kind).sign_many([a.storage_path for a in pending])
            for attachment in pending:
                entry = signed.get(attachment.storage_path)
                if entry is None:
                    logger.warning(
                        "No signed URL for %s attachment %s (%s)",
                        kind.value, attachment.id, attachment.storage_path,
                    )
                elif self._generation(self._key(attachment)) == started[attachment.id]:
                    self._entries[self._key(attachment)] = entry
                resolved[attachment.id] = entry
        return resolved

    def invalidate(self, attachment: MediaAttachment) -> None:
        key = self._key(attachment)
        self._entries.pop(key, None)
        self._generations[key] = self._generation(key) + 1
        self._inflight.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    async def _sign(self, key: _Key, attachment: MediaAttachment, started: int) -> SignedUrl:
        signed = await self._store(attachment.owner_kind).sign(attachment.storage_path)
        if self._generation(key) != started:
            logger.debug("Dropped signature of invalidated %s attachment %s", key[0].value, key[1])
            return signed
        self._entries[key] = signed
        logger.debug("Signed %s attachment %s until %.0f", key[0].value, key[1], signed.expires_at)
        return signed

    def _store(self, kind: OwnerKind) -> MediaStore:
        store = self._stores.get(kind)
        if store is None:
            raise KeyError(f"No media store configured for {kind.value} attachments")
        return store

    def _generation(self, key: _Key) -> int:
        return self._generations.get(key, 0)

    def _forget(self, key: _Key, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    @staticmethod
    def _key(attachment: MediaAttachment) -> _Key:
        return (attachment.owner_kind, attachment.id)
