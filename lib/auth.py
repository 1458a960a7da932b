"""
Auth - Arsenal Module
Bearer-token verification against Supabase Auth.
"""

import logging
from typing import Optional, Protocol

import httpx

from lib.errors import AuthError

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    async def verify(self, token: str) -> str: ...


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of an `Authorization: Bearer <token>` header."""
    if not authorization:
        raise AuthError("Authorization token required")
    parts = authorization.split(" ")
    if len(parts) < 2 or not parts[1].strip():
        raise AuthError("Authorization token required")
    return parts[1].strip()


class SupabaseIdentityProvider:
    """Resolves an access token to a user id via `GET /auth/v1/user`."""

    def __init__(self, base_url: str, api_key: str, timeout_seconds: float = 10.0) -> None:
        if not base_url:
            raise ValueError("Supabase URL is required")
        if not api_key:
            raise ValueError("Supabase API key is required")
        self.user_url = f"{base_url.rstrip('/')}/auth/v1/user"
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    async def verify(self, token: str) -> str:
        if not token:
            raise AuthError("Authorization token required")

        headers = {"apikey": self.api_key, "Authorization": f"Bearer {token}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(self.user_url, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Identity provider unreachable: %s", exc)
            raise AuthError("Invalid authorization token") from exc

        if response.status_code != 200:
            logger.info("Token rejected by identity provider (%s)", response.status_code)
            raise AuthError("Invalid authorization token")

        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthError("Invalid authorization token") from exc

        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not isinstance(user_id, str) or not user_id:
            raise AuthError("Invalid authorization token")
        return user_id
