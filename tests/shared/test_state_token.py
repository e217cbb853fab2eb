"""
Tests for signed OAuth state tokens.
"""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest

from healthbridge.shared.state_token import (
    InvalidStateError,
    StateExpiredError,
    StatePayload,
    StateTokenCodec,
)


NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def codec():
    return StateTokenCodec("state-secret")


# =============================================================================
# Round trip
# =============================================================================

class TestSignVerify:
    """verify(sign(p)) == p before expiry."""

    def test_round_trip(self, codec):
        payload = StatePayload(uid="user-1", exp=1_710_504_600_000, nonce="n-1")
        token = codec.sign(payload)

        assert codec.verify(token, now=NOW) == payload

    def test_issue_sets_ten_minute_expiry(self, codec):
        token = codec.issue("user-1", now=NOW)
        payload = codec.verify(token, now=NOW)

        assert payload.uid == "user-1"
        assert payload.exp == int(NOW.timestamp() * 1000) + 600_000
        assert payload.nonce

    def test_issue_uses_fresh_nonce(self, codec):
        first = codec.verify(codec.issue("user-1", now=NOW), now=NOW)
        second = codec.verify(codec.issue("user-1", now=NOW), now=NOW)

        assert first.nonce != second.nonce

    def test_token_shape(self, codec):
        token = codec.issue("user-1", now=NOW)
        payload_b64, signature_b64 = token.split(".")

        payload = json.loads(base64.b64decode(payload_b64))
        assert set(payload) == {"uid", "exp", "nonce"}
        assert len(base64.b64decode(signature_b64)) == 32  # SHA-256

    def test_valid_just_before_expiry(self, codec):
        token = codec.issue("user-1", now=NOW)
        assert codec.verify(token, now=NOW + timedelta(seconds=599))


# =============================================================================
# Rejections
# =============================================================================

class TestRejections:
    """Every failure surfaces as InvalidStateError."""

    def test_expired(self, codec):
        token = codec.issue("user-1", now=NOW)

        with pytest.raises(StateExpiredError):
            codec.verify(token, now=NOW + timedelta(minutes=11))

    def test_expired_is_invalid_state(self, codec):
        token = codec.issue("user-1", now=NOW)

        with pytest.raises(InvalidStateError) as exc_info:
            codec.verify(token, now=NOW + timedelta(minutes=11))
        assert exc_info.value.to_body() == {"error": "Invalid state"}

    def test_wrong_secret(self, codec):
        token = StateTokenCodec("other-secret").issue("user-1", now=NOW)

        with pytest.raises(InvalidStateError):
            codec.verify(token, now=NOW)

    def test_modified_payload(self, codec):
        token = codec.issue("user-1", now=NOW)
        _, signature_b64 = token.split(".")
        forged = json.dumps({"uid": "attacker", "exp": 9_999_999_999_999, "nonce": "x"})
        forged_token = base64.b64encode(forged.encode()).decode() + "." + signature_b64

        with pytest.raises(InvalidStateError):
            codec.verify(forged_token, now=NOW)

    def test_modified_signature(self, codec):
        token = codec.issue("user-1", now=NOW)
        payload_b64, _ = token.split(".")
        bad_signature = base64.b64encode(b"\x00" * 32).decode()

        with pytest.raises(InvalidStateError):
            codec.verify(f"{payload_b64}.{bad_signature}", now=NOW)

    @pytest.mark.parametrize("token", ["", "no-separator", ".", "abc.", ".abc", "!!!.???"])
    def test_malformed(self, codec, token):
        with pytest.raises(InvalidStateError):
            codec.verify(token, now=NOW)

    def test_signed_non_json_payload(self, codec):
        payload_json = b"not json"
        signature = codec._signature(payload_json)
        token = base64.b64encode(payload_json).decode() + "." + base64.b64encode(signature).decode()

        with pytest.raises(InvalidStateError):
            codec.verify(token, now=NOW)

    def test_empty_uid(self, codec):
        token = codec.sign(StatePayload(uid="", exp=9_999_999_999_999, nonce="n"))

        with pytest.raises(InvalidStateError):
            codec.verify(token, now=NOW)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            StateTokenCodec("")
