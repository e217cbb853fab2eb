"""
Identity collaborator.

Resolves a bearer token to a user id by asking the identity provider
(Supabase-style `GET /auth/v1/user`). The pipeline never issues or
validates tokens itself.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from healthbridge.config import Settings
from healthbridge.shared.errors import MisconfiguredError, UnauthenticatedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    """Caller identity as reported by the identity provider."""

    id: str
    email: Optional[str] = None


class IdentityClient:
    """
    Usage:
        identity = IdentityClient(settings)
        user = await identity.get_user(token)   # raises UnauthenticatedError
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.user_url = settings.auth_user_url
        self.api_key = settings.auth_api_key
        self._transport = transport

    async def get_user(self, token: str) -> AuthenticatedUser:
        """
        Raises:
            MisconfiguredError: No identity endpoint configured
            UnauthenticatedError: Token rejected or no user id returned
        """
        if not self.user_url:
            raise MisconfiguredError("Identity endpoint not configured")

        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(self.user_url, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Identity provider unreachable: {e}")
            raise UnauthenticatedError("Invalid token")

        if not response.is_success:
            logger.info(f"Identity provider rejected token: {response.status_code}")
            raise UnauthenticatedError("Invalid token")

        try:
            data = response.json()
        except ValueError:
            raise UnauthenticatedError("Invalid token")

        user_id = data.get("id") if isinstance(data, dict) else None
        if not user_id:
            raise UnauthenticatedError("Invalid token")

        return AuthenticatedUser(id=str(user_id), email=data.get("email"))


def bearer_token(authorization: Optional[str]) -> str:
    """
    Extract the token from an Authorization header.

    Raises:
        UnauthenticatedError: Header missing or empty
    """
    if not authorization:
        raise UnauthenticatedError()
    token = authorization[7:] if authorization.startswith("Bearer ") else authorization
    token = token.strip()
    if not token:
        raise UnauthenticatedError()
    return token
