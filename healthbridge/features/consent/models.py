"""
Consent model.

Models:
- Consent: per (owner, scope, purpose) grant; soft-revoked, never deleted
"""

import uuid

from sqlalchemy import Column, String, DateTime, Boolean, JSON, UniqueConstraint

from healthbridge.models.base import Base
from healthbridge.shared.clock import utcnow


class Consent(Base):
    """
    Consent record.

    Single source of truth for whether a governed write may proceed.
    Active iff granted AND revoked_at IS NULL AND (expires_at IS NULL OR expires_at > now).
    """

    __tablename__ = "consents"
    __table_args__ = (
        UniqueConstraint("owner_id", "scope", "purpose", name="uq_consents_owner_scope_purpose"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(36), nullable=False, index=True)
    scope = Column(String(64), nullable=False)
    purpose = Column(String(64), nullable=False)

    granted = Column(Boolean, nullable=False, default=False)
    granted_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    # Free-form client metadata (UI version, locale, ...)
    consent_metadata = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Consent owner={self.owner_id} {self.scope}/{self.purpose} granted={self.granted}>"
