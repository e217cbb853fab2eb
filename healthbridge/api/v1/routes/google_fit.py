"""
Google Fit Routes

Endpoints for the Google Fit integration:
- /google-fit/auth-start - Build the consent screen URL
- /google-fit/auth-callback - Handle the OAuth redirect
- /google-fit/pull-daily-metrics - Pull one day into daily_metrics
- /google-fit/status - Connection status
- /google-fit/disconnect - Revoke and forget tokens
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from healthbridge.api.deps import get_current_user, get_connect_service, get_pull_service
from healthbridge.shared.errors import ValidationError
from healthbridge.features.auth import AuthenticatedUser
from healthbridge.features.google_fit import (
    AuthStartResponse,
    GoogleFitConnectService,
    PullDailyMetricsRequest,
)
from healthbridge.features.google_fit.pull import DailyMetricsPullService
from healthbridge.features.metrics import DailyMetricResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# OAuth Flow
# =============================================================================

@router.post("/auth-start", response_model=AuthStartResponse)
async def auth_start(
    user: AuthenticatedUser = Depends(get_current_user),
    service: GoogleFitConnectService = Depends(get_connect_service),
):
    """
    Initiate Google Fit OAuth flow.

    Returns the consent screen URL; the client opens it in a browser.
    """
    return service.start(user.id)


@router.get("/auth-callback")
async def auth_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    service: GoogleFitConnectService = Depends(get_connect_service),
):
    """
    Handle Google OAuth callback.

    Identity comes from the signed state; no bearer token is involved.
    """
    if error:
        logger.warning(f"Google Fit OAuth error: {error}")
        raise ValidationError("Authorization denied", detail=error)

    if not code or not state:
        raise ValidationError("Missing code or state")

    await service.complete(code, state)
    return {"ok": True}


# =============================================================================
# Connection
# =============================================================================

@router.get("/status")
async def status(
    user: AuthenticatedUser = Depends(get_current_user),
    service: GoogleFitConnectService = Depends(get_connect_service),
):
    """Check Google Fit connection status."""
    result = await service.status(user.id)
    return result.model_dump(mode="json", by_alias=True)


@router.post("/disconnect")
async def disconnect(
    user: AuthenticatedUser = Depends(get_current_user),
    service: GoogleFitConnectService = Depends(get_connect_service),
):
    """Disconnect Google Fit (revokes at Google, deletes stored tokens)."""
    await service.disconnect(user.id)
    return {"ok": True}


# =============================================================================
# Pull
# =============================================================================

@router.post("/pull-daily-metrics")
async def pull_daily_metrics(
    request: Optional[PullDailyMetricsRequest] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    service: DailyMetricsPullService = Depends(get_pull_service),
):
    """
    Pull one day of Google Fit data.

    Body is optional; `metricDate` defaults to today in the configured
    timezone.
    """
    metric_date = request.metric_date if request else None
    metric = await service.pull(user.id, metric_date)
    return {
        "ok": True,
        "dailyMetrics": DailyMetricResponse.model_validate(metric).model_dump(mode="json"),
    }
