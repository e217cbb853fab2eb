"""
Consent schemas.

Pydantic models for the consent-setting endpoints.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool


class SetConsentRequest(BaseModel):
    """Grant or revoke consent."""

    model_config = ConfigDict(populate_by_name=True)

    granted: StrictBool
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    metadata: Optional[dict[str, Any]] = None


class ConsentResponse(BaseModel):
    """Stored consent record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    scope: str
    purpose: str
    granted: bool
    granted_at: Optional[datetime]
    revoked_at: Optional[datetime]
    expires_at: Optional[datetime]
    metadata: Optional[dict[str, Any]] = Field(default=None, validation_alias="consent_metadata")
    updated_at: Optional[datetime]
