"""
Google Fit integration module.

Usage:
    from healthbridge.features.google_fit import GoogleFitOAuth, GoogleFitClient
    from healthbridge.features.google_fit.pull import DailyMetricsPullService

Components:
- GoogleFitOAuth: OAuth flow (auth URL, token exchange, refresh, revoke)
- GoogleFitClient: dataset aggregation
- normalize: aggregate payload -> DailyTotals
- GoogleFitConnectService: connect/status/disconnect

Models:
- SourceConnection: encrypted OAuth tokens per owner
"""

from .models import SourceConnection, PROVIDER_GOOGLE_FIT, STATUS_CONNECTED, STATUS_DISCONNECTED
from .oauth import (
    GoogleFitOAuth,
    GoogleFitError,
    ExchangeFailedError,
    RefreshFailedError,
    AggregateFailedError,
    TokenGrant,
    RefreshedToken,
    GOOGLE_FIT_SCOPES,
)
from .client import GoogleFitClient, AGGREGATED_DATA_TYPES
from .normalizer import DailyTotals, normalize
from .repository import SourceConnectionRepository
from .schemas import AuthStartResponse, ConnectionStatus, PullDailyMetricsRequest
from .service import GoogleFitConnectService

__all__ = [
    # Models
    "SourceConnection",
    "PROVIDER_GOOGLE_FIT",
    "STATUS_CONNECTED",
    "STATUS_DISCONNECTED",
    # OAuth
    "GoogleFitOAuth",
    "GoogleFitError",
    "ExchangeFailedError",
    "RefreshFailedError",
    "AggregateFailedError",
    "TokenGrant",
    "RefreshedToken",
    "GOOGLE_FIT_SCOPES",
    # Client
    "GoogleFitClient",
    "AGGREGATED_DATA_TYPES",
    # Normalizer
    "DailyTotals",
    "normalize",
    # Repositories
    "SourceConnectionRepository",
    # Schemas
    "AuthStartResponse",
    "ConnectionStatus",
    "PullDailyMetricsRequest",
    # Service
    "GoogleFitConnectService",
]
