"""
Consent repository.

Data access layer for consent records.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.shared.clock import utcnow
from healthbridge.shared.repository import BaseRepository
from .models import Consent


class ConsentRepository(BaseRepository[Consent]):
    """Repository for consent records."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Consent)

    async def get_for(self, owner_id: str, scope: str, purpose: str) -> Consent | None:
        """Get the single consent record for (owner, scope, purpose)."""
        return await self.get_by(owner_id=owner_id, scope=scope, purpose=purpose)

    async def set_consent(
        self,
        owner_id: str,
        scope: str,
        purpose: str,
        granted: bool,
        expires_at: Optional[datetime] = None,
        metadata: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Consent:
        """
        Grant or revoke consent (upsert keyed by owner, scope, purpose).

        Granting stamps granted_at and clears revoked_at. Revoking stamps
        revoked_at and leaves the previous granted_at in place.
        """
        now = now or utcnow()
        values = {
            "owner_id": owner_id,
            "scope": scope,
            "purpose": purpose,
            "granted": granted,
            "expires_at": expires_at,
            "consent_metadata": metadata or {},
            "created_at": now,
            "updated_at": now,
        }
        if granted:
            values["granted_at"] = now
            values["revoked_at"] = None
        else:
            values["revoked_at"] = now

        update_columns = [
            c for c in values
            if c not in ("owner_id", "scope", "purpose", "created_at")
        ]
        return await self.upsert(
            values,
            conflict_columns=["owner_id", "scope", "purpose"],
            update_columns=update_columns,
        )
