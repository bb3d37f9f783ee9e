"""PostgREST client — implements the RemoteService interface over Supabase ``/rest/v1``."""

import logging
from typing import Any

import httpx

from fieldtrack.application.interfaces import AuthProvider, RemoteService, Row
from fieldtrack.domain.exceptions import FailureKind, RemoteFailure
from fieldtrack.infrastructure.remote.base_client import (
    SupabaseHttpClient,
    failure_from_response,
)

logger = logging.getLogger(__name__)


def filter_value(value: Any) -> str:
    """Encode one equality filter operand in PostgREST syntax."""
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"is.{str(value).lower()}"
    if hasattr(value, "value"):
        value = value.value
    return f"eq.{value}"


def order_clause(order: list[tuple[str, bool]]) -> str:
    return ",".join(f"{column}.{'asc' if ascending else 'desc'}" for column, ascending in order)


class PostgrestRemoteService(SupabaseHttpClient, RemoteService):
    """Infrastructure adapter — row store operations through PostgREST.

    Requests carry the signed-in user's token so row-level security applies;
    without a session the anon key is used.
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
        super().__init__(base_url, api_key, auth=auth, http_client=http_client, timeout=timeout)

    async def select(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
        order: list[tuple[str, bool]] | None = None,
        *,
        columns: str = "*",
    ) -> list[Row]:
        params: dict[str, str] = {"select": columns}
        for column, value in (filter or {}).items():
            params[column] = filter_value(value)
        if order:
            params["order"] = order_clause(order)

        response = await self._send("GET", collection, collection=collection, params=params)
        self._check(response, collection)
        rows = self._json(response, collection)
        logger.debug("Selected %d row(s) from %s", len(rows), collection)
        return rows

    async def insert(self, collection: str, fields: Row) -> Row:
        response = await self._send(
            "POST",
            collection,
            collection=collection,
            headers={"Prefer": "return=representation"},
            json=fields,
        )
        self._check(response, collection)
        rows = self._json(response, collection)
        if not rows:
            raise RemoteFailure(
                FailureKind.NETWORK, "Insert returned no row", collection=collection
            )
        return rows[0]

    async def update(self, collection: str, row_id: int, fields: Row) -> Row:
        response = await self._send(
            "PATCH",
            collection,
            collection=collection,
            headers={"Prefer": "return=representation"},
            params={"id": filter_value(row_id)},
            json=fields,
        )
        self._check(response, collection)
        rows = self._json(response, collection)
        if not rows:
            raise RemoteFailure(
                FailureKind.NOT_FOUND,
                f"No {collection} row with id {row_id}",
                status_code=response.status_code,
                collection=collection,
            )
        return rows[0]

    async def delete(self, collection: str, row_id: int) -> None:
        response = await self._send(
            "DELETE",
            collection,
            collection=collection,
            params={"id": filter_value(row_id)},
        )
        self._check(response, collection)

    @staticmethod
    def _check(response: httpx.Response, collection: str) -> None:
        if response.is_success:
            return
        failure = failure_from_response(response, collection)
        logger.warning("PostgREST %s → HTTP %d: %s", collection, response.status_code, failure.message)
        raise failure
