"""
Manual Ingestion Routes

- /ingest/daily-metrics - Store derived daily totals
- /ingest/active-hours - Store daily active minutes
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.api.deps import get_current_user
from healthbridge.config import Settings, get_settings
from healthbridge.db.session import get_async_db
from healthbridge.features.auth import AuthenticatedUser
from healthbridge.features.metrics import (
    ActiveHoursIngestRequest,
    ActiveHoursResponse,
    DailyMetricResponse,
    DailyMetricsIngestRequest,
)
from healthbridge.features.metrics.service import ManualIngestService

router = APIRouter()


def get_ingest_service(
    db: AsyncSession = Depends(get_async_db),
    settings: Settings = Depends(get_settings),
) -> ManualIngestService:
    return ManualIngestService(db, settings)


@router.post("/daily-metrics")
async def ingest_daily_metrics(
    request: DailyMetricsIngestRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ManualIngestService = Depends(get_ingest_service),
):
    """Store daily totals (raw samples are never accepted)."""
    metric = await service.ingest_daily_metrics(user.id, request)
    return {
        "ok": True,
        "dailyMetrics": DailyMetricResponse.model_validate(metric).model_dump(mode="json"),
    }


@router.post("/active-hours")
async def ingest_active_hours(
    request: ActiveHoursIngestRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ManualIngestService = Depends(get_ingest_service),
):
    """Store active minutes for one day."""
    record = await service.ingest_active_hours(user.id, request)
    return {
        "ok": True,
        "activeHours": ActiveHoursResponse.model_validate(record).model_dump(mode="json"),
    }
