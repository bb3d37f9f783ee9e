"""Shared in-memory fakes for the ports, exposed as fixtures."""

import asyncio
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from fieldtrack.application.interfaces import (
    AuthProvider,
    LocalCapture,
    LocalTransform,
    Notifier,
    ObjectStorage,
    RemoteService,
    Row,
)
from fieldtrack.application.services import (
    MediaAttachmentPipeline,
    MediaStore,
    OrphanLedger,
    OutcomeReporter,
    SignedUrlCache,
)
from fieldtrack.domain.entities import (
    CapturedImage,
    Credential,
    OwnerKind,
    SignedUrl,
    TransformedImage,
)
from fieldtrack.domain.exceptions import (
    FailureKind,
    MediaTransformError,
    RemoteFailure,
    UploadFailed,
)
from fieldtrack.infrastructure.remote.repositories import RemoteAttachmentRepository


# ── Fakes ──


class FakeNotifier(Notifier):
    def __init__(self):
        self.successes: list[str] = []
        self.failures: list[tuple[str, str]] = []

    def succeeded(self, message: str) -> None:
        self.successes.append(message)

    def failed(self, category: str, message: str) -> None:
        self.failures.append((category, message))


class FakeAuth(AuthProvider):
    def __init__(self, credential: Credential | None = None):
        self.credential = credential

    async def current_credential(self) -> Credential | None:
        return self.credential


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRemoteService(RemoteService):
    """Row store over dicts with scripted failures and gates.

    ``fail(op, collection)`` makes the next matching call raise;
    ``hold(op, collection)`` makes it wait until the returned event is set.
    """

    def __init__(self, events: list[tuple] | None = None):
        self.tables: dict[str, dict[int, Row]] = defaultdict(dict)
        self.calls: list[tuple[str, str, Any]] = []
        self.events = events if events is not None else []
        self._failures: dict[tuple[str, str], list[RemoteFailure]] = defaultdict(list)
        self._gates: dict[tuple[str, str], list[asyncio.Event]] = defaultdict(list)
        self._next_id = 100
        self._tick = 0

    def seed(self, collection: str, **fields: Any) -> Row:
        row_id = fields.pop("id", None) or self._new_id()
        row = {"id": row_id, "created_at": self._now(), "updated_at": self._now(), **fields}
        self.tables[collection][row_id] = row
        return dict(row)

    def fail(
        self,
        op: str,
        collection: str,
        kind: FailureKind = FailureKind.NETWORK,
        message: str = "network error",
    ) -> None:
        self._failures[(op, collection)].append(RemoteFailure(kind, message, collection=collection))

    def hold(self, op: str, collection: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[(op, collection)].append(gate)
        return gate

    def count(self, op: str, collection: str) -> int:
        return sum(1 for call in self.calls if call[:2] == (op, collection))

    async def _enter(self, op: str, collection: str, detail: Any) -> None:
        self.calls.append((op, collection, detail))
        gates = self._gates.get((op, collection))
        if gates:
            await gates.pop(0).wait()
        failures = self._failures.get((op, collection))
        if failures:
            self.events.append((f"{op}-failed", collection, detail))
            raise failures.pop(0)
        self.events.append((op, collection, detail))

    async def select(self, collection, filter=None, order=None, *, columns="*"):
        await self._enter("select", collection, dict(filter or {}))
        rows = [
            dict(row) for row in self.tables[collection].values()
            if all(row.get(k) == v for k, v in (filter or {}).items())
        ]
        for column, ascending in reversed(order or []):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=not ascending)
        return rows

    async def insert(self, collection, fields):
        await self._enter("insert", collection, dict(fields))
        return self.seed(collection, **fields)

    async def update(self, collection, row_id, fields):
        await self._enter("update", collection, (row_id, dict(fields)))
        row = self.tables[collection].get(row_id)
        if row is None:
            raise RemoteFailure(FailureKind.NOT_FOUND, "not found", collection=collection)
        row.update(fields, updated_at=self._now())
        return dict(row)

    async def delete(self, collection, row_id):
        await self._enter("delete", collection, row_id)
        self.tables[collection].pop(row_id, None)

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _now(self) -> str:
        self._tick += 1
        return datetime(2025, 1, 1, tzinfo=timezone.utc).replace(second=self._tick % 60).isoformat()


class FakeObjectStorage(ObjectStorage):
    def __init__(self, clock: FakeClock, events: list[tuple] | None = None):
        self.clock = clock
        self.objects: dict[tuple[str, str], bytes] = {}
        self.events = events if events is not None else []
        self.upload_status: int | None = None
        self.delete_error: RemoteFailure | None = None
        self.sign_error: RemoteFailure | None = None
        self.sign_calls: list[str] = []
        self.sign_many_calls: list[list[str]] = []
        self.unsignable: set[str] = set()
        self.sign_gate: asyncio.Event | None = None
        self.sign_many_gate: asyncio.Event | None = None

    async def upload(self, bucket, path, data, credential, *, content_type="image/jpeg"):
        self.events.append(("upload", bucket, path))
        if self.upload_status is not None:
            raise UploadFailed(self.upload_status, path)
        self.objects[(bucket, path)] = data
        return 200

    async def delete(self, bucket, paths):
        self.events.append(("storage-delete", bucket, list(paths)))
        if self.delete_error is not None:
            raise self.delete_error
        for path in paths:
            self.objects.pop((bucket, path), None)

    async def sign(self, bucket, path, ttl_seconds):
        self.sign_calls.append(path)
        if self.sign_gate is not None:
            await self.sign_gate.wait()
        if self.sign_error is not None:
            raise self.sign_error
        return SignedUrl(f"https://cdn.test/{bucket}/{path}?v={len(self.sign_calls)}", self.clock() + ttl_seconds)

    async def sign_many(self, bucket, paths, ttl_seconds):
        self.sign_many_calls.append(list(paths))
        if self.sign_many_gate is not None:
            await self.sign_many_gate.wait()
        if self.sign_error is not None:
            raise self.sign_error
        return {
            path: None if path in self.unsignable
            else SignedUrl(f"https://cdn.test/{bucket}/{path}", self.clock() + ttl_seconds)
            for path in paths
        }


class FakeCapture(LocalCapture):
    def __init__(self, image: CapturedImage | None = None):
        self.image = image

    async def pick_or_capture(self, source: str) -> CapturedImage | None:
        return self.image


class FakeTransform(LocalTransform):
    """Writes a small placeholder file and reports the requested width."""

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.calls: list[tuple[str, int, int]] = []
        self.max_edges: list[int | None] = []
        self.discarded: list[str] = []
        self.error: MediaTransformError | None = None

    async def resize(self, uri, max_width, quality, *, max_edge=None) -> TransformedImage:
        self.calls.append((uri, max_width, quality))
        self.max_edges.append(max_edge)
        if self.error is not None:
            raise self.error
        dest = self.output_dir / f"out_{len(self.calls)}.jpg"
        dest.write_bytes(b"\xff\xd8jpeg\xff\xd9")
        return TransformedImage(str(dest), max_width, 0, dest.stat().st_size)

    def discard(self, uri: str) -> None:
        self.discarded.append(uri)
        Path(uri).unlink(missing_ok=True)


# ── Fixtures ──


@pytest.fixture
def events() -> list[tuple]:
    return []


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def reporter(notifier: FakeNotifier) -> OutcomeReporter:
    return OutcomeReporter(notifier)


@pytest.fixture
def credential() -> Credential:
    return Credential(token="token-1", user_id="user-1")


@pytest.fixture
def auth(credential: Credential) -> FakeAuth:
    return FakeAuth(credential)


@pytest.fixture
def remote(events: list[tuple]) -> FakeRemoteService:
    return FakeRemoteService(events)


@pytest.fixture
def storage(clock: FakeClock, events: list[tuple]) -> FakeObjectStorage:
    return FakeObjectStorage(clock, events)


@pytest.fixture
def media_stores(storage: FakeObjectStorage) -> dict[OwnerKind, MediaStore]:
    return {
        OwnerKind.TASK: MediaStore(storage, "task-media"),
        OwnerKind.EXPENSE: MediaStore(storage, "expense-media"),
    }


@pytest.fixture
def url_cache(media_stores, clock: FakeClock) -> SignedUrlCache:
    return SignedUrlCache(media_stores, clock=clock)


@pytest.fixture
def orphans() -> OrphanLedger:
    return OrphanLedger()


@pytest.fixture
def capture() -> FakeCapture:
    return FakeCapture(CapturedImage("/photos/site.jpg", 3000, 2000))


@pytest.fixture
def transform(tmp_path: Path) -> FakeTransform:
    return FakeTransform(tmp_path)


@pytest.fixture
def make_pipeline(
    remote, media_stores, auth, url_cache, reporter, orphans, capture, transform, clock
):
    """Factory for pipelines sharing the same fakes, cache and orphan ledger."""

    def factory(owner_id: int | None = 7, owner_kind: OwnerKind = OwnerKind.TASK):
        return MediaAttachmentPipeline(
            owner_id,
            owner_kind,
            capture=capture,
            transform=transform,
            store=media_stores[owner_kind],
            repository=RemoteAttachmentRepository(remote, owner_kind),
            auth=auth,
            url_cache=url_cache,
            reporter=reporter,
            orphans=orphans,
            clock=clock,
        )

    return factory
