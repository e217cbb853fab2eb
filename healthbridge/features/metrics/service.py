"""
Manual ingestion service.

Users (or their devices) may submit daily metrics and active hours
directly. Writes go through the same consent gate and governed writer as
provider pulls.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.config import Settings
from healthbridge.features.consent import ConsentGate, DAILY_METRICS_INGEST, ACTIVE_HOURS_INGEST
from healthbridge.features.governance.writer import GovernedWriter
from .models import DailyMetric, ActiveHours
from .schemas import DailyMetricsIngestRequest, ActiveHoursIngestRequest

logger = logging.getLogger(__name__)


class ManualIngestService:
    """
    Usage:
        service = ManualIngestService(db, settings)
        metric = await service.ingest_daily_metrics(user_id, request)
    """

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.gate = ConsentGate(db)
        self.writer = GovernedWriter(db, retention_days=settings.governance_retention_days)

    async def ingest_daily_metrics(
        self,
        owner_id: str,
        request: DailyMetricsIngestRequest,
        now: Optional[datetime] = None,
    ) -> DailyMetric:
        """
        Raises:
            ConsentRequiredError: daily_metrics_ingest consent not active
        """
        await self.gate.require(owner_id, DAILY_METRICS_INGEST, now)
        logger.info(f"Manual daily metrics for owner {owner_id} on {request.metric_date}")
        return await self.writer.write_metric(
            owner_id,
            request.metric_date,
            request.metric_values(),
            source=request.source,
            confidence=request.confidence,
            now=now,
        )

    async def ingest_active_hours(
        self,
        owner_id: str,
        request: ActiveHoursIngestRequest,
        now: Optional[datetime] = None,
    ) -> ActiveHours:
        await self.gate.require(owner_id, ACTIVE_HOURS_INGEST, now)
        return await self.writer.write_active_hours(
            owner_id,
            request.active_date,
            request.minutes_active,
            source=request.source,
            confidence=request.confidence,
            now=now,
        )
