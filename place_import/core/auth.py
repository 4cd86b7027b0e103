"""
Authentication for place import requests.

The service does not manage users itself. It asks an AuthProvider to turn
a session token into a user id; the default provider validates tokens
against Supabase Auth. With ENABLE_AUTH disabled every request runs as
DEV_USER_ID.
"""
from abc import ABC, abstractmethod
from typing import Optional
import logging

from fastapi import Request

from place_import.core.config import get_settings, Settings
from place_import.core.exceptions import AuthenticationError
from place_import.core.http_client import HTTPClientManager, get_http_client_manager
from place_import.core.logging_config import bind_user_id

# Configure logger
logger = logging.getLogger(__name__)


class AuthProvider(ABC):
    """Resolves a session token to a user id."""

    @abstractmethod
    async def get_user_id(self, token: str) -> Optional[str]:
        """
        Validate a token.

        Args:
            token: Bearer token from the client

        Returns:
            Optional[str]: The user id, or None if the token is not valid
        """


class SupabaseAuthProvider(AuthProvider):
    """
    Validates tokens with ``GET {SUPABASE_URL}/auth/v1/user``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[HTTPClientManager] = None
    ):
        self.settings = settings or get_settings()
        self.http_client = http_client or get_http_client_manager()

    async def get_user_id(self, token: str) -> Optional[str]:
        if not self.settings.SUPABASE_URL:
            logger.error("SUPABASE_URL is not configured; rejecting token")
            return None

        headers = {"Authorization": f"Bearer {token}"}
        if self.settings.SUPABASE_ANON_KEY:
            headers["apikey"] = self.settings.SUPABASE_ANON_KEY

        result = await self.http_client.make_request(
            f"{self.settings.SUPABASE_URL.rstrip('/')}/auth/v1/user",
            method="GET",
            headers=headers,
        )
        if not result.get("success"):
            logger.info("Token rejected by auth service", extra={"status_code": result.get("status_code")})
            return None

        content = result.get("content")
        if isinstance(content, dict) and content.get("id"):
            return str(content["id"])
        return None


def bearer_token(request: Request) -> Optional[str]:
    """Read the token from an ``Authorization: Bearer`` header."""
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None


async def authenticate_request(
    request: Request,
    provider: AuthProvider,
    access_token: Optional[str] = None,
    settings: Optional[Settings] = None
) -> str:
    """
    Resolve the current user for a request.

    The Authorization header wins over an ``access_token`` in the body.

    Args:
        request: The incoming request
        provider: Token validator
        access_token: Token sent in the request body
        settings: Optional settings instance

    Returns:
        str: The user id

    Raises:
        AuthenticationError: If no valid token was supplied
    """
    settings = settings or get_settings()
    if not settings.ENABLE_AUTH:
        user_id = settings.DEV_USER_ID
    else:
        user_id = await _user_from_token(request, provider, access_token)

    request.state.user_id = user_id
    bind_user_id(user_id)
    return user_id


async def _user_from_token(request: Request, provider: AuthProvider, access_token: Optional[str]) -> str:
    token = bearer_token(request) or (access_token or "").strip()
    if not token:
        raise AuthenticationError()

    user_id = await provider.get_user_id(token)
    if not user_id:
        raise AuthenticationError(detail="Your session has expired. Sign in again to import places.")
    return user_id
