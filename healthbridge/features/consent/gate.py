"""
Consent gate.

Every governed write consults the consent record for its
(owner, scope, purpose) before touching storage. Denial reasons are
distinguished for logging only; callers outside the service see a single
ConsentRequiredError.

The same check runs a second time inside the governed repositories'
upsert (storage-side guard), so either layer may reject first.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.shared.clock import ensure_utc, utcnow
from healthbridge.shared.errors import ConsentRequiredError
from .models import Consent
from .repository import ConsentRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsentPurpose:
    """A (scope, purpose) pair a consent record is keyed by."""

    scope: str
    purpose: str


DAILY_METRICS_INGEST = ConsentPurpose("daily_metrics", "daily_metrics_ingest")
ACTIVE_HOURS_INGEST = ConsentPurpose("active_hours", "active_hours_ingest")


class DenialReason(str, Enum):
    NOT_FOUND = "not_found"
    NOT_GRANTED = "not_granted"
    REVOKED = "revoked"
    EXPIRED = "expired"


@dataclass(frozen=True)
class ConsentDecision:
    """Outcome of a consent check: active, or denied with a reason."""

    active: bool
    reason: Optional[DenialReason] = None

    @classmethod
    def allow(cls) -> "ConsentDecision":
        return cls(active=True)

    @classmethod
    def deny(cls, reason: DenialReason) -> "ConsentDecision":
        return cls(active=False, reason=reason)


def evaluate_consent(record: Optional[Consent], now: Optional[datetime] = None) -> ConsentDecision:
    """
    Apply the active-consent predicate to a record.

    Checked in order: existence, granted flag, revocation, expiry.
    """
    if record is None:
        return ConsentDecision.deny(DenialReason.NOT_FOUND)
    if record.granted is not True:
        return ConsentDecision.deny(DenialReason.NOT_GRANTED)
    if record.revoked_at is not None:
        return ConsentDecision.deny(DenialReason.REVOKED)
    if record.expires_at is not None and ensure_utc(record.expires_at) <= ensure_utc(now or utcnow()):
        return ConsentDecision.deny(DenialReason.EXPIRED)
    return ConsentDecision.allow()


class ConsentGate:
    """
    Authorize writes against consent records.

    Usage:
        gate = ConsentGate(db)
        await gate.require(user_id, DAILY_METRICS_INGEST)   # raises ConsentRequiredError
    """

    def __init__(self, db: AsyncSession, repository: Optional[ConsentRepository] = None):
        self.repository = repository or ConsentRepository(db)

    async def authorize(
        self,
        owner_id: str,
        scope: str,
        purpose: str,
        now: Optional[datetime] = None,
    ) -> ConsentDecision:
        """Look up the consent record and evaluate it."""
        record = await self.repository.get_for(owner_id, scope, purpose)
        return evaluate_consent(record, now)

    async def require(
        self,
        owner_id: str,
        consent: ConsentPurpose,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Raise unless consent is active.

        Raises:
            ConsentRequiredError: For any denial reason
        """
        decision = await self.authorize(owner_id, consent.scope, consent.purpose, now)
        if not decision.active:
            logger.info(
                f"Consent denied for owner {owner_id} "
                f"({consent.scope}/{consent.purpose}): {decision.reason.value}"
            )
            raise ConsentRequiredError(consent.purpose)
