"""
Shared FastAPI dependencies.

Components are built from the injected Settings, so tests override
`get_settings` (or a single component) instead of patching the
environment. A component whose secret is missing raises
MisconfiguredError (500) when a request needs it.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.config import Settings, get_settings
from healthbridge.db.session import get_async_db
from healthbridge.shared.errors import MisconfiguredError
from healthbridge.shared.state_token import StateTokenCodec
from healthbridge.shared.vault import CredentialVault, VaultError
from healthbridge.features.auth import AuthenticatedUser, IdentityClient, bearer_token
from healthbridge.features.google_fit import GoogleFitOAuth, GoogleFitClient, GoogleFitConnectService
from healthbridge.features.google_fit.pull import DailyMetricsPullService


# =============================================================================
# Identity
# =============================================================================

def get_identity_client(settings: Settings = Depends(get_settings)) -> IdentityClient:
    return IdentityClient(settings)


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    identity: IdentityClient = Depends(get_identity_client),
) -> AuthenticatedUser:
    """Resolve the bearer token to a user (401 on failure)."""
    token = bearer_token(authorization)
    return await identity.get_user(token)


# =============================================================================
# Security components
# =============================================================================

def get_state_codec(settings: Settings = Depends(get_settings)) -> StateTokenCodec:
    if not settings.google_fit_state_secret:
        raise MisconfiguredError()
    return StateTokenCodec(settings.google_fit_state_secret, ttl_seconds=settings.oauth_state_ttl_seconds)


def get_vault(settings: Settings = Depends(get_settings)) -> CredentialVault:
    if not settings.google_fit_token_enc_key:
        raise MisconfiguredError()
    try:
        return CredentialVault(settings.google_fit_token_enc_key)
    except VaultError:
        raise MisconfiguredError()


# =============================================================================
# Google Fit
# =============================================================================

def get_google_fit_oauth(settings: Settings = Depends(get_settings)) -> GoogleFitOAuth:
    if not (
        settings.google_fit_client_id
        and settings.google_fit_client_secret
        and settings.google_fit_redirect_url
    ):
        raise MisconfiguredError()
    return GoogleFitOAuth(settings)


def get_google_fit_client(settings: Settings = Depends(get_settings)) -> GoogleFitClient:
    return GoogleFitClient(settings)


def get_connect_service(
    db: AsyncSession = Depends(get_async_db),
    codec: StateTokenCodec = Depends(get_state_codec),
    vault: CredentialVault = Depends(get_vault),
    oauth: GoogleFitOAuth = Depends(get_google_fit_oauth),
) -> GoogleFitConnectService:
    return GoogleFitConnectService(db, codec, vault, oauth)


def get_pull_service(
    db: AsyncSession = Depends(get_async_db),
    settings: Settings = Depends(get_settings),
    vault: CredentialVault = Depends(get_vault),
    oauth: GoogleFitOAuth = Depends(get_google_fit_oauth),
    client: GoogleFitClient = Depends(get_google_fit_client),
) -> DailyMetricsPullService:
    return DailyMetricsPullService(db, settings, vault, oauth, client)
