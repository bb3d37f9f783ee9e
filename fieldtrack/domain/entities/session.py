"""Authentication session data handed out by the auth provider."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Credential:
    """Bearer token plus the identity of the signed-in user."""

    token: str
    user_id: str
