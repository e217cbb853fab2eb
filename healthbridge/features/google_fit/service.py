"""
Google Fit connection service.

OAuth handshake and connection lifecycle:
- start: signed state + consent screen URL
- complete: verify state, exchange code, store encrypted tokens
- status / disconnect
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.shared.clock import utcnow
from healthbridge.shared.errors import NotConnectedError, StorageError
from healthbridge.shared.state_token import StateTokenCodec
from healthbridge.shared.vault import CredentialVault
from .models import SourceConnection
from .oauth import GoogleFitOAuth, GOOGLE_FIT_SCOPES
from .repository import SourceConnectionRepository
from .schemas import AuthStartResponse, ConnectionStatus

logger = logging.getLogger(__name__)


class GoogleFitConnectService:
    """
    Usage:
        service = GoogleFitConnectService(db, codec, vault, oauth)
        start = service.start(user_id)
        connection = await service.complete(code, state)
    """

    def __init__(
        self,
        db: AsyncSession,
        codec: StateTokenCodec,
        vault: CredentialVault,
        oauth: GoogleFitOAuth,
    ):
        self.db = db
        self.codec = codec
        self.vault = vault
        self.oauth = oauth
        self.connections = SourceConnectionRepository(db)

    def start(self, user_id: str, now: Optional[datetime] = None) -> AuthStartResponse:
        """Issue a signed state for `user_id` and build the consent URL."""
        state = self.codec.issue(user_id, now)
        url = self.oauth.authorization_url(state)
        logger.info(f"Google Fit OAuth initiated for user {user_id}")
        return AuthStartResponse(url=url, scope=list(GOOGLE_FIT_SCOPES))

    async def complete(self, code: str, state: str, now: Optional[datetime] = None) -> SourceConnection:
        """
        Finish the handshake from the provider redirect.

        The state is verified before any provider call; identity comes from
        the state, not from a bearer token.

        Raises:
            InvalidStateError: Bad or expired state
            ExchangeFailedError: Provider rejected the code
            StorageError: Connection upsert failed
        """
        payload = self.codec.verify(state, now)
        grant = await self.oauth.exchange_code(code)

        now = now or utcnow()
        expires_at = now + timedelta(seconds=grant.expires_in) if grant.expires_in else None

        try:
            connection = await self.connections.save_connection(
                owner_id=payload.uid,
                scopes=grant.scopes,
                access_token_encrypted=self.vault.encrypt(grant.access_token),
                refresh_token_encrypted=self.vault.encrypt(grant.refresh_token),
                expires_at=expires_at,
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"source_connections upsert failed for user {payload.uid}: {e}")
            raise StorageError("Failed to store tokens")

        logger.info(f"Google Fit connected: user={payload.uid}, scopes={len(grant.scopes)}")
        return connection

    async def status(self, owner_id: str) -> ConnectionStatus:
        connection = await self.connections.get_for_owner(owner_id)
        if not connection or not connection.is_connected:
            return ConnectionStatus(connected=False)
        return ConnectionStatus(
            connected=True,
            scopes=connection.scopes or [],
            expires_at=connection.expires_at,
        )

    async def disconnect(self, owner_id: str) -> None:
        """
        Revoke at Google (best effort) and delete the connection.

        Raises:
            NotConnectedError: No connection stored
        """
        connection = await self.connections.get_for_owner(owner_id)
        if not connection:
            raise NotConnectedError()

        if connection.refresh_token_encrypted:
            try:
                token = self.vault.decrypt(connection.refresh_token_encrypted)
                revoked = await self.oauth.revoke(token)
                if not revoked:
                    logger.warning(f"Google Fit revoke rejected for user {owner_id}")
            except Exception as e:
                logger.warning(f"Google Fit revoke failed for user {owner_id}: {e}")

        try:
            await self.connections.delete_for_owner(owner_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"source_connections delete failed for user {owner_id}: {e}")
            raise StorageError("Failed to disconnect")

        logger.info(f"Google Fit disconnected: user={owner_id}")
