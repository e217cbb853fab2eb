"""
Governed writer.

Writes a governed record and its governance envelope as two separately
committed steps, compensating the first when the second fails:

    PENDING --upsert--> METRIC_WRITTEN --insert envelope--> ENVELOPE_WRITTEN
                              |
                              +--envelope failed--> ROLLED_BACK

A governed record never outlives a failed envelope write, unless the
compensating delete itself fails (logged, not retried).
"""

import logging
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.shared.clock import utcnow
from healthbridge.shared.errors import GovernanceWriteFailedError, StorageError
from healthbridge.features.metrics.models import DailyMetric, ActiveHours
from healthbridge.features.metrics.repository import (
    GovernedRepository,
    DailyMetricRepository,
    ActiveHoursRepository,
)
from .envelope import build_envelope, canonical_hash
from .repository import GovernanceEnvelopeRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETENTION_DAYS = 183

ACTIVITY_MINUTES_DEFAULTS = {"gym_minutes": 0, "badminton_minutes": 0, "swim_minutes": 0}


class WriteState(str, Enum):
    PENDING = "pending"
    METRIC_WRITTEN = "metric_written"
    ENVELOPE_WRITTEN = "envelope_written"
    ROLLED_BACK = "rolled_back"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class GovernedWriter:
    """
    Persist governed records together with their envelopes.

    Usage:
        writer = GovernedWriter(db, retention_days=settings.governance_retention_days)
        metric = await writer.write_metric(user_id, day, totals, "google_fit", 90)

    `state` holds the state reached by the last `write` call.
    """

    def __init__(
        self,
        db: AsyncSession,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        envelope_repository: Optional[GovernanceEnvelopeRepository] = None,
    ):
        self.db = db
        self.retention_days = retention_days
        self.envelopes = envelope_repository or GovernanceEnvelopeRepository(db)
        self.state = WriteState.PENDING

    async def write(
        self,
        repository: GovernedRepository[T],
        values: dict[str, Any],
        source: str,
        confidence: int,
        now: Optional[datetime] = None,
    ) -> T:
        """
        Upsert a governed record, then append its envelope.

        Args:
            repository: Governed repository of the target table
            values: Column values including owner_id and the natural key
            source: Provenance source label
            confidence: Provenance confidence, 0-100

        Raises:
            ConsentRequiredError: Storage-side consent guard rejected the write
            StorageError: Record upsert failed; nothing was stored
            GovernanceWriteFailedError: Envelope insert failed; record removed
        """
        now = now or utcnow()
        self.state = WriteState.PENDING
        owner_id = values["owner_id"]
        table = repository.table_name
        purpose = repository.consent.purpose

        row = {**values, "source": source, "confidence": confidence, "computed_at": now, "updated_at": now}

        # Step 1: governed record
        try:
            record = await repository.upsert(row, now=now)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to upsert {table} for owner {owner_id}: {e}")
            raise StorageError(f"Failed to store {table.replace('_', ' ')}")

        record_id = record.id
        self.state = WriteState.METRIC_WRITTEN

        # Step 2: request hash over the logical payload
        request_hash = canonical_hash({
            _camel(key): value
            for key, value in row.items()
            if key not in ("computed_at", "updated_at")
        })

        # Step 3: envelope
        envelope = build_envelope(
            owner_id=owner_id,
            purpose=purpose,
            subject_table=table,
            subject_key=record_id,
            request_hash=request_hash,
            source=source,
            confidence=confidence,
            retention_days=self.retention_days,
            created_at=now,
        )
        try:
            await self.envelopes.create(
                owner_id=owner_id,
                purpose=purpose,
                subject_table=table,
                subject_key=record_id,
                request_hash=request_hash,
                envelope=envelope,
                created_at=now,
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Envelope insert failed for {table}/{record_id}: {e}")
            await self._compensate(repository, record_id)
            raise GovernanceWriteFailedError(rollback_failed=self.state is not WriteState.ROLLED_BACK)

        self.state = WriteState.ENVELOPE_WRITTEN
        logger.info(f"Governed write {table}/{record_id} for owner {owner_id} ({source})")
        return record

    async def _compensate(self, repository: GovernedRepository, record_id: str) -> None:
        """Delete the record written in step 1."""
        await self.db.rollback()
        try:
            await repository.delete_by(id=record_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Compensating delete failed for {repository.table_name}/{record_id}: {e}")
            return
        self.state = WriteState.ROLLED_BACK
        logger.warning(f"Rolled back {repository.table_name}/{record_id} after envelope failure")

    async def write_metric(
        self,
        owner_id: str,
        metric_date: date,
        totals: Any,
        source: str,
        confidence: int,
        now: Optional[datetime] = None,
    ) -> DailyMetric:
        """
        Write daily metrics (whole row, last write wins).

        `totals` is either a DailyTotals from a provider pull, whose
        activity minute counters are stored as 0, or a mapping of every
        metric column (None allowed) from manual ingestion.
        """
        if is_dataclass(totals):
            metrics: Mapping[str, Any] = {**ACTIVITY_MINUTES_DEFAULTS, **asdict(totals)}
        else:
            metrics = totals
        values = {"owner_id": owner_id, "metric_date": metric_date, **metrics}
        return await self.write(DailyMetricRepository(self.db), values, source, confidence, now)

    async def write_active_hours(
        self,
        owner_id: str,
        active_date: date,
        minutes_active: int,
        source: str,
        confidence: int,
        now: Optional[datetime] = None,
    ) -> ActiveHours:
        values = {"owner_id": owner_id, "active_date": active_date, "minutes_active": minutes_active}
        return await self.write(ActiveHoursRepository(self.db), values, source, confidence, now)
