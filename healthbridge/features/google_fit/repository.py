"""
Google Fit repositories.

Data access layer for provider connections.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.shared.clock import utcnow
from healthbridge.shared.repository import BaseRepository
from .models import SourceConnection, PROVIDER_GOOGLE_FIT, STATUS_CONNECTED


class SourceConnectionRepository(BaseRepository[SourceConnection]):
    """Repository for provider connections."""

    def __init__(self, db: AsyncSession, provider: str = PROVIDER_GOOGLE_FIT):
        super().__init__(db, SourceConnection)
        self.provider = provider

    async def get_for_owner(self, owner_id: str) -> SourceConnection | None:
        """Get the connection of `owner_id` for this provider."""
        return await self.get_by(owner_id=owner_id, provider=self.provider)

    async def list_connected(self) -> list[SourceConnection]:
        """All connections currently marked connected."""
        return await self.get_all(provider=self.provider, status=STATUS_CONNECTED)

    async def save_connection(
        self,
        owner_id: str,
        scopes: list[str],
        access_token_encrypted: str,
        refresh_token_encrypted: str,
        expires_at: Optional[datetime],
    ) -> SourceConnection:
        """
        Create or overwrite the connection after a successful OAuth callback.

        Keyed by (owner_id, provider).
        """
        now = utcnow()
        return await self.upsert(
            {
                "owner_id": owner_id,
                "provider": self.provider,
                "status": STATUS_CONNECTED,
                "scopes": scopes,
                "access_token_encrypted": access_token_encrypted,
                "refresh_token_encrypted": refresh_token_encrypted,
                "expires_at": expires_at,
                "created_at": now,
                "updated_at": now,
            },
            conflict_columns=["owner_id", "provider"],
            update_columns=[
                "status",
                "scopes",
                "access_token_encrypted",
                "refresh_token_encrypted",
                "expires_at",
                "updated_at",
            ],
        )

    async def update_tokens(
        self,
        connection: SourceConnection,
        access_token_encrypted: str,
        expires_at: Optional[datetime],
        refresh_token_encrypted: Optional[str] = None,
    ) -> SourceConnection:
        """
        Store a refreshed access token.

        The refresh token is replaced only when the provider rotated it.
        """
        fields = {
            "access_token_encrypted": access_token_encrypted,
            "expires_at": expires_at,
            "updated_at": utcnow(),
        }
        if refresh_token_encrypted:
            fields["refresh_token_encrypted"] = refresh_token_encrypted
        return await self.update(connection, **fields)

    async def delete_for_owner(self, owner_id: str) -> int:
        """Remove the connection (disconnect)."""
        return await self.delete_by(owner_id=owner_id, provider=self.provider)
