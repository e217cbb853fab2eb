"""
Google Fit schemas.

Pydantic models for the connect, status and pull endpoints.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from healthbridge.shared.clock import parse_iso_date


class AuthStartResponse(BaseModel):
    """Consent screen URL and the scopes it requests."""

    url: str
    scope: list[str]


class ConnectionStatus(BaseModel):
    """Connection state for the current user. Never includes tokens."""

    model_config = ConfigDict(populate_by_name=True)

    connected: bool
    scopes: list[str] = Field(default_factory=list)
    expires_at: Optional[datetime] = Field(default=None, serialization_alias="expiresAt")


class PullDailyMetricsRequest(BaseModel):
    """Optional day to pull; defaults to today in the configured timezone."""

    model_config = ConfigDict(populate_by_name=True)

    metric_date: Optional[date] = Field(default=None, alias="metricDate")

    @field_validator("metric_date", mode="before")
    @classmethod
    def _metric_date(cls, v):
        if v is None or isinstance(v, date):
            return v
        return parse_iso_date(v, "metricDate")
