"""
Governance module.

Usage:
    from healthbridge.features.governance import GovernedWriter

Components:
- GovernedWriter: record + envelope write with compensating delete
- canonical_hash / build_envelope: envelope document helpers
"""

from .models import GovernanceEnvelope
from .repository import GovernanceEnvelopeRepository
from .envelope import build_envelope, canonical_hash, canonical_json, ENVELOPE_VERSION
from .writer import GovernedWriter, WriteState

__all__ = [
    "GovernanceEnvelope",
    "GovernanceEnvelopeRepository",
    "build_envelope",
    "canonical_hash",
    "canonical_json",
    "ENVELOPE_VERSION",
    "GovernedWriter",
    "WriteState",
]
