"""
Governed metric repositories.

Upserts here carry a storage-side consent guard: the write is refused
unless the owner's consent for the record's purpose is active, no matter
which code path called it.
"""

from datetime import datetime
from typing import Any, Iterable, Optional, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.shared.repository import BaseRepository
from healthbridge.features.consent.gate import (
    ConsentGate,
    ConsentPurpose,
    DAILY_METRICS_INGEST,
    ACTIVE_HOURS_INGEST,
)
from .models import DailyMetric, ActiveHours

T = TypeVar("T")


class GovernedRepository(BaseRepository[T]):
    """
    Repository for records that need consent and a governance envelope.

    Subclasses declare the consent they require and their natural key.
    """

    consent: ConsentPurpose
    key_columns: tuple[str, ...]

    def __init__(self, db: AsyncSession, model: Type[T]):
        super().__init__(db, model)
        self._gate = ConsentGate(db)

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    async def upsert(
        self,
        values: dict[str, Any],
        conflict_columns: Optional[Iterable[str]] = None,
        update_columns: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> T:
        """
        Upsert by natural key after re-checking consent.

        `now` is the instant consent expiry is judged at (default: wall clock).

        Raises:
            ConsentRequiredError: Owner's consent is not active
        """
        await self._gate.require(values["owner_id"], self.consent, now)
        return await super().upsert(
            values,
            conflict_columns=conflict_columns or self.key_columns,
            update_columns=update_columns,
        )


class DailyMetricRepository(GovernedRepository[DailyMetric]):
    """Repository for daily metric totals."""

    consent = DAILY_METRICS_INGEST
    key_columns = ("owner_id", "metric_date")

    def __init__(self, db: AsyncSession):
        super().__init__(db, DailyMetric)


class ActiveHoursRepository(GovernedRepository[ActiveHours]):
    """Repository for daily active minutes."""

    consent = ACTIVE_HOURS_INGEST
    key_columns = ("owner_id", "active_date")

    def __init__(self, db: AsyncSession):
        super().__init__(db, ActiveHours)
