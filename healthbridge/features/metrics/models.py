"""
Governed metric models.

Models:
- DailyMetric: daily totals per (owner, metric_date)
- ActiveHours: active minutes per (owner, active_date)

Both are derived aggregates only; raw samples are never stored.
Each row must be accompanied by a GovernanceEnvelope.
"""

import uuid

from sqlalchemy import Column, String, DateTime, Date, Integer, UniqueConstraint

from healthbridge.models.base import Base
from healthbridge.shared.clock import utcnow


class DailyMetric(Base):
    """Canonical daily activity totals (last write wins per day)."""

    __tablename__ = "daily_metrics"
    __table_args__ = (
        UniqueConstraint("owner_id", "metric_date", name="uq_daily_metrics_owner_date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(36), nullable=False, index=True)
    metric_date = Column(Date, nullable=False)

    # Canonical totals
    steps = Column(Integer, nullable=True)
    calories_kcal = Column(Integer, nullable=True)
    avg_hr_bpm = Column(Integer, nullable=True)
    sleep_minutes = Column(Integer, nullable=True)

    # Activity-specific minute counters
    gym_minutes = Column(Integer, nullable=True)
    badminton_minutes = Column(Integer, nullable=True)
    swim_minutes = Column(Integer, nullable=True)

    # Provenance
    source = Column(String(64), nullable=False, default="unknown")
    confidence = Column(Integer, nullable=False, default=100)  # 0-100

    computed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<DailyMetric owner={self.owner_id} {self.metric_date} steps={self.steps}>"


class ActiveHours(Base):
    """Daily active minutes (last write wins per day)."""

    __tablename__ = "active_hours"
    __table_args__ = (
        UniqueConstraint("owner_id", "active_date", name="uq_active_hours_owner_date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(36), nullable=False, index=True)
    active_date = Column(Date, nullable=False)

    minutes_active = Column(Integer, nullable=False, default=0)

    source = Column(String(64), nullable=False, default="unknown")
    confidence = Column(Integer, nullable=False, default=100)

    computed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<ActiveHours owner={self.owner_id} {self.active_date} minutes={self.minutes_active}>"
