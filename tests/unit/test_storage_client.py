"""Unit tests for the SupabaseStorageClient."""

import json

import httpx
import pytest

from fieldtrack.domain.entities import Credential
from fieldtrack.domain.exceptions import FailureKind, RemoteFailure, UploadFailed
from fieldtrack.infrastructure.remote.storage_client import SupabaseStorageClient


# ── Helpers ──

BASE = "https://demo.supabase.co/storage/v1"


def _make_client(handler, now: float = 1000.0) -> SupabaseStorageClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseStorageClient(BASE, "anon-key", http_client=client, clock=lambda: now)


# ── Tests ──


@pytest.mark.asyncio
async def test_upload_posts_raw_jpeg_without_upsert():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"Key": "task-media/u1/7/1_ab.jpg"})

    status = await _make_client(handler).upload(
        "task-media", "u1/7/1_ab.jpg", b"jpeg-bytes", Credential("user-token", "u1")
    )

    assert status == 200
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/storage/v1/object/task-media/u1/7/1_ab.jpg"
    assert request.headers["authorization"] == "Bearer user-token"
    assert request.headers["content-type"] == "image/jpeg"
    assert request.headers["x-upsert"] == "false"
    assert request.content == b"jpeg-bytes"


@pytest.mark.asyncio
@pytest.mark.parametrize("status, kind", [(400, FailureKind.VALIDATION), (403, FailureKind.PERMISSION), (500, FailureKind.NETWORK)])
async def test_non_success_upload_raises_upload_failed(status, kind):
    client = _make_client(lambda request: httpx.Response(status, json={"message": "nope"}))

    with pytest.raises(UploadFailed) as info:
        await client.upload("task-media", "u1/7/x.jpg", b"x", Credential("t", "u1"))

    assert info.value.status_code == status
    assert info.value.storage_path == "u1/7/x.jpg"
    assert info.value.kind is kind


@pytest.mark.asyncio
async def test_delete_sends_all_paths_in_one_request():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    await _make_client(handler).delete("expense-media", ["a.jpg", "b.jpg"])

    assert len(seen) == 1
    assert seen[0].method == "DELETE"
    assert seen[0].url.path == "/storage/v1/object/expense-media"
    assert json.loads(seen[0].content) == {"prefixes": ["a.jpg", "b.jpg"]}


@pytest.mark.asyncio
async def test_delete_failure_is_raised():
    client = _make_client(lambda request: httpx.Response(403, json={"message": "denied"}))

    with pytest.raises(RemoteFailure) as info:
        await client.delete("task-media", ["a.jpg"])

    assert info.value.kind is FailureKind.PERMISSION


@pytest.mark.asyncio
async def test_sign_returns_absolute_url_with_expiry():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"signedURL": "/object/sign/task-media/a.jpg?token=abc"})

    signed = await _make_client(handler, now=1000.0).sign("task-media", "a.jpg", 3600)

    assert signed.url == f"{BASE}/object/sign/task-media/a.jpg?token=abc"
    assert signed.expires_at == 4600.0
    assert json.loads(seen[0].content) == {"expiresIn": 3600}


@pytest.mark.asyncio
async def test_sign_many_maps_each_path():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body == {"expiresIn": 60, "paths": ["a.jpg", "gone.jpg"]}
        return httpx.Response(
            200,
            json=[
                {"path": "a.jpg", "signedURL": "/object/sign/task-media/a.jpg?token=1", "error": None},
                {"path": "gone.jpg", "signedURL": None, "error": "Either the object does not exist or you do not have access to it"},
            ],
        )

    signed = await _make_client(handler).sign_many("task-media", ["a.jpg", "gone.jpg"], 60)

    assert signed["a.jpg"].url.endswith("a.jpg?token=1")
    assert signed["a.jpg"].expires_at == 1060.0
    assert signed["gone.jpg"] is None
