"""
Google Fit OAuth flow.

Handles:
- Authorization URL generation
- Code exchange for tokens
- Token refresh
- Token revocation (disconnect)
"""

import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlencode

import httpx

from healthbridge.config import Settings
from healthbridge.shared.errors import HealthBridgeError, MisconfiguredError

logger = logging.getLogger(__name__)


# Read-only scopes; nothing is ever written back to Google Fit.
GOOGLE_FIT_SCOPES = [
    "https://www.googleapis.com/auth/fitness.activity.read",
    "https://www.googleapis.com/auth/fitness.body.read",
    "https://www.googleapis.com/auth/fitness.heart_rate.read",
    "https://www.googleapis.com/auth/fitness.sleep.read",
]


# =============================================================================
# Exceptions
# =============================================================================

class GoogleFitError(HealthBridgeError):
    """Base provider integration error. `detail` holds the provider body."""

    status_code = 500
    public_message = "Google Fit request failed"


class ExchangeFailedError(GoogleFitError):
    """Authorization code exchange failed."""

    status_code = 400
    public_message = "Failed to exchange code"


class RefreshFailedError(GoogleFitError):
    """Refresh-token grant failed."""

    public_message = "Token refresh failed"


class AggregateFailedError(GoogleFitError):
    """Dataset aggregation call failed."""

    public_message = "Google Fit aggregate failed"


# =============================================================================
# Token payloads
# =============================================================================

@dataclass(frozen=True)
class TokenGrant:
    """Result of an authorization-code exchange."""

    access_token: str
    refresh_token: str
    expires_in: int  # seconds, 0 if unknown
    scopes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RefreshedToken:
    """Result of a refresh-token grant."""

    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None  # only when the provider rotates it


# =============================================================================
# OAuth handler
# =============================================================================

class GoogleFitOAuth:
    """
    Google Fit OAuth handler.

    Usage:
        oauth = GoogleFitOAuth(settings)
        auth_url = oauth.authorization_url(state=signed_state)
        grant = await oauth.exchange_code(code, redirect_uri)
        refreshed = await oauth.refresh(grant.refresh_token)

    `transport` lets tests plug an httpx.MockTransport.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = settings.google_fit_client_id
        self.client_secret = settings.google_fit_client_secret
        self.redirect_uri = settings.google_fit_redirect_url
        self.authorize_url = settings.google_fit_authorize_url
        self.token_url = settings.google_fit_token_url
        self.revoke_url = settings.google_fit_revoke_url
        self._transport = transport

    def _require_client(self) -> None:
        if not self.client_id or not self.client_secret:
            raise MisconfiguredError("Google Fit client config missing")

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport)

    def authorization_url(self, state: str, scopes: Optional[list[str]] = None) -> str:
        """
        Generate the Google consent screen URL.

        `access_type=offline` plus `prompt=consent` make Google return a
        refresh token on every exchange, not only the first one.
        """
        if not self.client_id or not self.redirect_uri:
            raise MisconfiguredError()

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "access_type": "offline",
            "prompt": "consent",
            "scope": " ".join(scopes or GOOGLE_FIT_SCOPES),
            "state": state,
        }
        return f"{self.authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: Optional[str] = None) -> TokenGrant:
        """
        Exchange authorization code for tokens.

        Raises:
            ExchangeFailedError: Non-2xx response or tokens missing from it
        """
        self._require_client()
        try:
            async with self._http() as client:
                response = await client.post(
                    self.token_url,
                    data={
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": redirect_uri or self.redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"Google Fit token exchange unreachable: {e}")
            raise ExchangeFailedError(detail=str(e))

        if not response.is_success:
            logger.error(f"Google Fit token exchange failed: {response.status_code}")
            raise ExchangeFailedError(detail=response.text)

        try:
            payload = response.json()
            access_token = str(payload.get("access_token") or "")
            refresh_token = str(payload.get("refresh_token") or "")
            scope = str(payload.get("scope") or "")
            expires_in = int(payload.get("expires_in") or 0)
        except (ValueError, TypeError, AttributeError) as e:
            logger.error(f"Google Fit token exchange returned an unreadable body: {e}")
            raise ExchangeFailedError(detail=str(e))

        if not access_token or not refresh_token:
            raise ExchangeFailedError("Missing tokens from provider")

        return TokenGrant(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            scopes=scope.split() if scope else [],
        )

    async def refresh(self, refresh_token: str) -> RefreshedToken:
        """
        Refresh an access token.

        Raises:
            RefreshFailedError: Non-2xx response or no access token in it
        """
        self._require_client()
        try:
            async with self._http() as client:
                response = await client.post(
                    self.token_url,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "grant_type": "refresh_token",
                        "refresh_token": refresh_token,
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"Google Fit token refresh unreachable: {e}")
            raise RefreshFailedError(detail=str(e))

        if not response.is_success:
            logger.error(f"Google Fit token refresh failed: {response.status_code}")
            raise RefreshFailedError(detail=response.text)

        try:
            payload = response.json()
            access_token = str(payload.get("access_token") or "")
            expires_in = int(payload.get("expires_in") or 0)
            rotated = payload.get("refresh_token") or None
        except (ValueError, TypeError, AttributeError) as e:
            logger.error(f"Google Fit token refresh returned an unreadable body: {e}")
            raise RefreshFailedError(detail=str(e))

        if not access_token:
            raise RefreshFailedError("Missing access token")

        return RefreshedToken(
            access_token=access_token,
            expires_in=expires_in,
            refresh_token=str(rotated) if rotated else None,
        )

    async def revoke(self, token: str) -> bool:
        """
        Revoke a token at Google (user disconnect).

        Returns:
            True if Google accepted the revocation
        """
        async with self._http() as client:
            response = await client.post(self.revoke_url, data={"token": token})
        return response.is_success
