"""
Consent Routes

- /consents/daily-metrics - Grant/revoke daily metrics ingestion
- /consents/active-hours - Grant/revoke active hours ingestion
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.api.deps import get_current_user
from healthbridge.db.session import get_async_db
from healthbridge.features.auth import AuthenticatedUser
from healthbridge.features.consent import (
    ConsentPurpose,
    ConsentResponse,
    ConsentService,
    SetConsentRequest,
    DAILY_METRICS_INGEST,
    ACTIVE_HOURS_INGEST,
)

router = APIRouter()


async def _set_consent(db: AsyncSession, user_id: str, consent: ConsentPurpose, request: SetConsentRequest) -> dict:
    record = await ConsentService(db).set_consent(user_id, consent, request)
    return {
        "ok": True,
        "consent": ConsentResponse.model_validate(record).model_dump(mode="json"),
    }


@router.post("/daily-metrics")
async def set_daily_metrics_consent(
    request: SetConsentRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Grant or revoke consent for daily metrics ingestion."""
    return await _set_consent(db, user.id, DAILY_METRICS_INGEST, request)


@router.post("/active-hours")
async def set_active_hours_consent(
    request: SetConsentRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Grant or revoke consent for active hours ingestion."""
    return await _set_consent(db, user.id, ACTIVE_HOURS_INGEST, request)
