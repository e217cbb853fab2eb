"""
Google Fit connection model.

Models:
- SourceConnection: encrypted OAuth credentials per (owner, provider)
"""

import uuid

from sqlalchemy import Column, String, DateTime, Text, JSON, UniqueConstraint

from healthbridge.models.base import Base
from healthbridge.shared.clock import utcnow

PROVIDER_GOOGLE_FIT = "google_fit"

STATUS_CONNECTED = "connected"
STATUS_DISCONNECTED = "disconnected"


class SourceConnection(Base):
    """
    Provider OAuth connection.

    Tokens are stored only as vault envelopes (v1:...), never in plaintext.
    Mutated on every refresh; deleted on disconnect.
    """

    __tablename__ = "source_connections"
    __table_args__ = (
        UniqueConstraint("owner_id", "provider", name="uq_source_connections_owner_provider"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(36), nullable=False, index=True)
    provider = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False, default=STATUS_CONNECTED)

    # Granted OAuth scopes
    scopes = Column(JSON, nullable=False, default=list)

    # Vault envelopes
    access_token_encrypted = Column(Text, nullable=True)
    refresh_token_encrypted = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)  # access token expiry

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def is_connected(self) -> bool:
        return self.status == STATUS_CONNECTED

    @property
    def has_tokens(self) -> bool:
        return bool(self.access_token_encrypted and self.refresh_token_encrypted)

    def __repr__(self):
        return f"<SourceConnection owner={self.owner_id} provider={self.provider} status={self.status}>"
