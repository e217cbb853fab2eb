"""Governance envelope repository (insert and read only)."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.shared.repository import BaseRepository
from .models import GovernanceEnvelope


class GovernanceEnvelopeRepository(BaseRepository[GovernanceEnvelope]):
    """Repository for governance envelopes."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, GovernanceEnvelope)

    async def list_for_subject(self, subject_table: str, subject_key: str) -> list[GovernanceEnvelope]:
        """Envelopes covering one governed row, oldest first."""
        result = await self.db.execute(
            select(GovernanceEnvelope)
            .where(
                GovernanceEnvelope.subject_table == subject_table,
                GovernanceEnvelope.subject_key == subject_key,
            )
            .order_by(GovernanceEnvelope.created_at)
        )
        return list(result.scalars().all())
