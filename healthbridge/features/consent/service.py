"""
Consent service.

Business logic behind the consent-setting endpoints.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.shared.clock import ensure_utc
from healthbridge.shared.errors import StorageError
from .gate import ConsentPurpose
from .models import Consent
from .repository import ConsentRepository
from .schemas import SetConsentRequest

logger = logging.getLogger(__name__)


class ConsentService:
    """
    Grant and revoke consent.

    Usage:
        service = ConsentService(db)
        consent = await service.set_consent(user_id, DAILY_METRICS_INGEST, request)
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = ConsentRepository(db)

    async def set_consent(
        self,
        owner_id: str,
        consent: ConsentPurpose,
        request: SetConsentRequest,
        now: Optional[datetime] = None,
    ) -> Consent:
        """
        Upsert the consent record for (owner, scope, purpose).

        Raises:
            StorageError: If the upsert fails
        """
        try:
            record = await self.repository.set_consent(
                owner_id=owner_id,
                scope=consent.scope,
                purpose=consent.purpose,
                granted=request.granted,
                expires_at=ensure_utc(request.expires_at) if request.expires_at else None,
                metadata=request.metadata,
                now=now,
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Consent upsert failed for owner {owner_id}: {e}")
            raise StorageError("Failed to store consent")

        logger.info(
            f"Consent {'granted' if request.granted else 'revoked'}: "
            f"owner={owner_id} {consent.scope}/{consent.purpose}"
        )
        return record
