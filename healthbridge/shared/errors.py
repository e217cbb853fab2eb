"""
Error taxonomy for the ingestion pipeline.

Every error raised across a feature boundary derives from HealthBridgeError.
It carries the HTTP status and the public message the API returns, so a
single exception handler in main.py can render every failure as flat JSON:

    {"error": "...", "detail": "..."}   # detail only for upstream errors
"""

from typing import Any, Optional


class HealthBridgeError(Exception):
    """Base error with an HTTP mapping."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.detail = detail

    def to_body(self) -> dict[str, Any]:
        """JSON body returned to the client."""
        body: dict[str, Any] = {"error": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


class UnauthenticatedError(HealthBridgeError):
    """Missing or invalid bearer token."""

    status_code = 401
    public_message = "Unauthorized"


class ValidationError(HealthBridgeError):
    """Malformed request body."""

    status_code = 400
    public_message = "Invalid request body"


class ConsentRequiredError(HealthBridgeError):
    """
    Consent check failed.

    All denial reasons collapse into this one error so clients cannot
    infer the shape of the consent policy.
    """

    status_code = 403
    public_message = "Consent required"

    def __init__(self, purpose: str):
        super().__init__(f"Consent required for {purpose}")
        self.purpose = purpose


class NotConnectedError(HealthBridgeError):
    """Provider connection missing, disconnected or without tokens."""

    status_code = 400
    public_message = "Google Fit not connected"


class StorageError(HealthBridgeError):
    """Datastore write failed before anything was persisted."""

    status_code = 500
    public_message = "Storage error"


class GovernanceWriteFailedError(HealthBridgeError):
    """Envelope insert failed; the governed record was rolled back."""

    status_code = 500
    public_message = "Failed to store governance envelope"

    def __init__(self, message: Optional[str] = None, rollback_failed: bool = False):
        super().__init__(message)
        self.rollback_failed = rollback_failed


class MisconfiguredError(HealthBridgeError):
    """A required secret or URL is not configured."""

    status_code = 500
    public_message = "Server misconfigured"
