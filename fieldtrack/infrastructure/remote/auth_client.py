"""Supabase Auth (GoTrue) client — implements the AuthProvider interface over ``/auth/v1``."""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from fieldtrack.application.interfaces import AuthProvider
from fieldtrack.domain.entities import Credential
from fieldtrack.domain.exceptions import FailureKind, RemoteFailure
from fieldtrack.infrastructure.remote.base_client import (
    SupabaseHttpClient,
    failure_from_response,
)

logger = logging.getLogger(__name__)

# Refresh this many seconds before the access token actually expires
REFRESH_MARGIN_SECONDS = 60


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: str
    user_id: str
    expires_at: float

    def credential(self) -> Credential:
        return Credential(token=self.access_token, user_id=self.user_id)


class SupabaseAuthClient(SupabaseHttpClient, AuthProvider):
    """Infrastructure adapter — password sessions with automatic token refresh."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(base_url, api_key, http_client=http_client, timeout=timeout)
        self._clock = clock
        self._session: AuthSession | None = None
        self._refresh_lock = asyncio.Lock()

    @property
    def session(self) -> AuthSession | None:
        return self._session

    @property
    def signed_in(self) -> bool:
        return self._session is not None

    async def sign_in(self, email: str, password: str) -> Credential:
        """Start a session with email and password.

        Raises:
            RemoteFailure: If the credentials are rejected or the service is unreachable.
        """
        session = await self._token_request("password", {"email": email, "password": password})
        self._session = session
        logger.info("Signed in as %s", session.user_id)
        return session.credential()

    async def sign_out(self) -> None:
        """End the session locally, and on the server when possible."""
        session, self._session = self._session, None
        if session is None:
            return
        response = await self._send("POST", "logout", token=session.access_token)
        if not response.is_success and response.status_code not in (401, 403, 404):
            raise failure_from_response(response)
        logger.info("Signed out %s", session.user_id)

    async def refresh(self) -> Credential | None:
        """Exchange the refresh token for a new access token.

        A rejected refresh token ends the session and returns ``None``.
        """
        async with self._refresh_lock:
            session = self._session
            if session is None:
                return None
            if not self._expiring(session):
                return session.credential()
            try:
                fresh = await self._token_request(
                    "refresh_token", {"refresh_token": session.refresh_token}
                )
            except RemoteFailure as exc:
                if exc.kind is FailureKind.NETWORK:
                    logger.warning("Token refresh failed, keeping current token: %s", exc)
                    return session.credential()
                logger.warning("Refresh token rejected, session ended: %s", exc)
                self._session = None
                return None
            self._session = fresh
            logger.debug("Refreshed access token of %s", fresh.user_id)
            return fresh.credential()

    async def current_credential(self) -> Credential | None:
        session = self._session
        if session is None:
            return None
        if self._expiring(session):
            return await self.refresh()
        return session.credential()

    def _expiring(self, session: AuthSession) -> bool:
        return session.expires_at - REFRESH_MARGIN_SECONDS <= self._clock()

    async def _token_request(self, grant_type: str, body: dict[str, str]) -> AuthSession:
        requested_at = self._clock()
        response = await self._send(
            "POST", "token", token=self._api_key, params={"grant_type": grant_type}, json=body
        )
        if not response.is_success:
            raise failure_from_response(response)
        data = self._json(response)
        user = data.get("user") or {}
        expires_at = data.get("expires_at") or requested_at + int(data.get("expires_in", 3600))
        return AuthSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", ""),
            user_id=str(user.get("id", "")),
            expires_at=float(expires_at),
        )
