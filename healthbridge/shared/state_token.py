"""
Signed OAuth state tokens.

The state parameter carries the requesting user's identity through the
provider redirect, so the callback needs no session:

    token = base64(payload_json) + "." + base64(HMAC-SHA256(secret, payload_json))

Payload:
    {"uid": "<user id>", "exp": <epoch millis>, "nonce": "<uuid4>"}

The nonce is not tracked server-side, so an intercepted token can be
replayed until it expires.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from healthbridge.shared.clock import to_epoch_millis, utcnow
from healthbridge.shared.errors import HealthBridgeError

logger = logging.getLogger(__name__)

DEFAULT_STATE_TTL_SECONDS = 10 * 60


class InvalidStateError(HealthBridgeError):
    """
    State token rejected.

    Raised for malformed tokens, signature mismatch and expiry alike;
    the API never tells the caller which one it was.
    """

    status_code = 400
    public_message = "Invalid state"


class StateExpiredError(InvalidStateError):
    """State token signature is valid but its expiry has passed."""


@dataclass(frozen=True)
class StatePayload:
    """Decoded OAuth state."""

    uid: str
    exp: int  # epoch milliseconds
    nonce: str

    def to_json(self) -> str:
        return json.dumps(
            {"uid": self.uid, "exp": self.exp, "nonce": self.nonce},
            separators=(",", ":"),
        )


class StateTokenCodec:
    """
    Sign and verify OAuth state tokens.

    Usage:
        codec = StateTokenCodec(secret=settings.google_fit_state_secret)
        state = codec.issue(user_id)
        payload = codec.verify(state)   # raises InvalidStateError
    """

    def __init__(self, secret: str, ttl_seconds: int = DEFAULT_STATE_TTL_SECONDS):
        if not secret:
            raise ValueError("State secret must not be empty")
        self._secret = secret.encode("utf-8")
        self.ttl_seconds = ttl_seconds

    def issue(self, user_id: str, now: Optional[datetime] = None) -> str:
        """Build a fresh payload for `user_id` and sign it."""
        now = now or utcnow()
        payload = StatePayload(
            uid=user_id,
            exp=to_epoch_millis(now) + self.ttl_seconds * 1000,
            nonce=str(uuid.uuid4()),
        )
        return self.sign(payload)

    def sign(self, payload: StatePayload) -> str:
        payload_json = payload.to_json().encode("utf-8")
        signature = self._signature(payload_json)
        return (
            f"{base64.b64encode(payload_json).decode('ascii')}"
            f".{base64.b64encode(signature).decode('ascii')}"
        )

    def verify(self, token: str, now: Optional[datetime] = None) -> StatePayload:
        """
        Verify signature and expiry.

        Args:
            token: State token from the provider redirect
            now: Override current time (tests)

        Returns:
            Decoded payload

        Raises:
            InvalidStateError: Malformed token or signature mismatch
            StateExpiredError: Valid signature, expired payload
        """
        payload_b64, sep, signature_b64 = (token or "").partition(".")
        if not sep or not payload_b64 or not signature_b64:
            raise InvalidStateError("Invalid state")

        try:
            payload_json = base64.b64decode(payload_b64, validate=True)
            signature = base64.b64decode(signature_b64, validate=True)
        except (binascii.Error, ValueError):
            raise InvalidStateError("Invalid state")

        if not hmac.compare_digest(signature, self._signature(payload_json)):
            logger.warning("OAuth state signature mismatch")
            raise InvalidStateError("Invalid state")

        try:
            raw = json.loads(payload_json)
            payload = StatePayload(
                uid=str(raw.get("uid") or ""),
                exp=int(raw.get("exp") or 0),
                nonce=str(raw.get("nonce") or ""),
            )
        except (ValueError, TypeError, AttributeError):
            raise InvalidStateError("Invalid state")

        if not payload.uid:
            raise InvalidStateError("Invalid state")

        if payload.exp < to_epoch_millis(now or utcnow()):
            logger.info(f"OAuth state expired for user {payload.uid}")
            raise StateExpiredError("Invalid state")

        return payload

    def _signature(self, payload_json: bytes) -> bytes:
        return hmac.new(self._secret, payload_json, hashlib.sha256).digest()
