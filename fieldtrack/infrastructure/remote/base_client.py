"""Shared httpx plumbing for the Supabase REST, storage and auth endpoints."""

import logging
from typing import Any

import httpx

from fieldtrack.application.interfaces import AuthProvider
from fieldtrack.domain.exceptions import FailureKind, RemoteFailure

logger = logging.getLogger(__name__)

# PostgREST error codes that do not follow the HTTP status
_NOT_FOUND_CODES = frozenset({"PGRST116"})
_PERMISSION_CODES = frozenset({"42501", "PGRST301", "PGRST302"})


def failure_kind_for_code(code: Any) -> FailureKind | None:
    """Map a PostgreSQL/PostgREST error code to a failure kind, if it implies one."""
    if not isinstance(code, str):
        return None
    if code in _NOT_FOUND_CODES:
        return FailureKind.NOT_FOUND
    if code in _PERMISSION_CODES:
        return FailureKind.PERMISSION
    # class 22 = data exception, class 23 = integrity constraint violation
    if len(code) == 5 and code[:2] in ("22", "23"):
        return FailureKind.VALIDATION
    return None


def failure_from_response(
    response: httpx.Response, collection: str | None = None
) -> RemoteFailure:
    """Build a RemoteFailure from an error response of any Supabase endpoint."""
    code = None
    message = response.text or response.reason_phrase
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        code = data.get("code")
        message = (
            data.get("message")
            or data.get("error_description")
            or data.get("msg")
            or data.get("error")
            or message
        )
    kind = failure_kind_for_code(code) or FailureKind.from_status(response.status_code)
    return RemoteFailure(kind, str(message), status_code=response.status_code, collection=collection)


class SupabaseHttpClient:
    """Base for adapters talking to one Supabase endpoint with httpx.

    An injected ``http_client`` is shared and never closed here; without one,
    a short-lived client is opened per request.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        auth: AuthProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._auth = auth
        self._http_client = http_client
        self._timeout = timeout

    async def _get_client(self) -> httpx.AsyncClient:
        """Return the injected client or create a new one."""
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self._timeout)

    async def _get_headers(self, token: str | None = None) -> dict[str, str]:
        """``apikey`` plus a bearer token: the given one, the session's, or the anon key."""
        if token is None and self._auth is not None:
            credential = await self._auth.current_credential()
            token = credential.token if credential is not None else None
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {token or self._api_key}",
        }

    async def _send(
        self,
        method: str,
        path: str,
        *,
        collection: str | None = None,
        token: str | None = None,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request; transport errors become network failures."""
        request_headers = await self._get_headers(token)
        if headers:
            request_headers.update(headers)
        url = f"{self._base_url}/{path.lstrip('/')}"

        client = await self._get_client()
        should_close = self._http_client is None
        try:
            return await client.request(method, url, headers=request_headers, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise RemoteFailure(
                FailureKind.NETWORK,
                f"Network error: {exc}" if str(exc) else "Network error",
                collection=collection,
            ) from exc
        finally:
            if should_close:
                await client.aclose()

    @staticmethod
    def _json(response: httpx.Response, collection: str | None = None) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteFailure(
                FailureKind.NETWORK,
                "Malformed response from the server",
                status_code=response.status_code,
                collection=collection,
            ) from exc
