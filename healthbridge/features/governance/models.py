"""
Governance envelope model.

One envelope is appended per governed write. Envelopes are never updated
or deleted by the pipeline (append-only audit trail).
"""

import uuid

from sqlalchemy import Column, String, DateTime, JSON, Index

from healthbridge.models.base import Base
from healthbridge.shared.clock import utcnow


class GovernanceEnvelope(Base):
    """Provenance and data-minimization record for one governed write."""

    __tablename__ = "governance_envelopes"
    __table_args__ = (
        Index("ix_governance_envelopes_subject", "subject_table", "subject_key"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(36), nullable=False, index=True)
    purpose = Column(String(64), nullable=False)

    # Governed row this envelope covers
    subject_table = Column(String(64), nullable=False)
    subject_key = Column(String(36), nullable=False)

    request_hash = Column(String(64), nullable=False)  # SHA-256 hex
    envelope = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<GovernanceEnvelope {self.subject_table}/{self.subject_key} {self.purpose}>"
