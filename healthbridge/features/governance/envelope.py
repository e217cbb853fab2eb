"""
Governance envelope document and request hash.

The request hash is a SHA-256 over the canonical JSON of the logical
payload (camelCase keys, sorted, no whitespace), so identical writes hash
identically whatever order their fields were assembled in.
"""

import hashlib
import json
from datetime import date, datetime
from typing import Any, Optional

from healthbridge.shared.clock import ensure_utc, utcnow

ENVELOPE_VERSION = "1.0"


def _json_default(value: Any) -> str:
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


def canonical_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=_json_default)


def canonical_hash(payload: dict[str, Any]) -> str:
    """SHA-256 hex digest of the canonical JSON of `payload`."""
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


def build_envelope(
    owner_id: str,
    purpose: str,
    subject_table: str,
    subject_key: str,
    request_hash: str,
    source: str,
    confidence: int,
    retention_days: int,
    created_at: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Build the envelope JSON document.

    Raw provider samples are never stored, so `rawSamplesStored` is always
    false.
    """
    return {
        "version": ENVELOPE_VERSION,
        "createdAt": ensure_utc(created_at or utcnow()).isoformat(),
        "ownerId": owner_id,
        "purpose": purpose,
        "subject": {"table": subject_table, "key": subject_key},
        "requestHash": request_hash,
        "dataMinimization": {
            "rawSamplesStored": False,
            "retentionDays": retention_days,
        },
        "provenance": {"source": source, "confidence": confidence},
    }
