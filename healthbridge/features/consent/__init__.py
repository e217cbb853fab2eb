"""
Consent module.

Usage:
    from healthbridge.features.consent import ConsentGate, DAILY_METRICS_INGEST

Components:
- ConsentGate: active-consent check before any governed write
- ConsentService: grant/revoke consent
"""

from .models import Consent
from .repository import ConsentRepository
from .gate import (
    ConsentGate,
    ConsentDecision,
    ConsentPurpose,
    DenialReason,
    evaluate_consent,
    DAILY_METRICS_INGEST,
    ACTIVE_HOURS_INGEST,
)
from .schemas import SetConsentRequest, ConsentResponse
from .service import ConsentService

__all__ = [
    # Models
    "Consent",
    # Repositories
    "ConsentRepository",
    # Gate
    "ConsentGate",
    "ConsentDecision",
    "ConsentPurpose",
    "DenialReason",
    "evaluate_consent",
    "DAILY_METRICS_INGEST",
    "ACTIVE_HOURS_INGEST",
    # Schemas
    "SetConsentRequest",
    "ConsentResponse",
    # Service
    "ConsentService",
]
