"""
Tests for ManualIngestService.
"""

import pytest
from sqlalchemy import func, select

from healthbridge.shared.errors import ConsentRequiredError
from healthbridge.features.consent import ACTIVE_HOURS_INGEST
from healthbridge.features.governance import GovernanceEnvelope, GovernanceEnvelopeRepository
from healthbridge.features.metrics import (
    ActiveHoursIngestRequest,
    DailyMetric,
    DailyMetricsIngestRequest,
)
from healthbridge.features.metrics.service import ManualIngestService


def daily_request(**overrides) -> DailyMetricsIngestRequest:
    body = {"metricDate": "2024-03-15", "steps": 1200, "gymMinutes": 30, "source": "manual", **overrides}
    return DailyMetricsIngestRequest.model_validate(body)


class TestIngestDailyMetrics:

    async def test_writes_metric_and_envelope(self, db, settings, grant_consent, owner_id, now):
        await grant_consent()
        service = ManualIngestService(db, settings)

        metric = await service.ingest_daily_metrics(owner_id, daily_request(), now=now)

        assert metric.steps == 1200
        assert metric.gym_minutes == 30
        assert metric.calories_kcal is None
        assert metric.source == "manual"
        assert metric.confidence == 100

        envelopes = await GovernanceEnvelopeRepository(db).list_for_subject("daily_metrics", metric.id)
        assert len(envelopes) == 1
        assert envelopes[0].envelope["provenance"] == {"source": "manual", "confidence": 100}

    async def test_overwrites_pulled_row(self, db, settings, grant_consent, owner_id, now):
        await grant_consent()
        service = ManualIngestService(db, settings)

        await service.ingest_daily_metrics(owner_id, daily_request(steps=5000), now=now)
        metric = await service.ingest_daily_metrics(owner_id, daily_request(steps=None, sleepMinutes=400), now=now)

        assert metric.steps is None
        assert metric.sleep_minutes == 400
        assert await db.scalar(select(func.count()).select_from(DailyMetric)) == 1

    async def test_requires_consent(self, db, settings, owner_id, now):
        service = ManualIngestService(db, settings)

        with pytest.raises(ConsentRequiredError):
            await service.ingest_daily_metrics(owner_id, daily_request(), now=now)

        assert await db.scalar(select(func.count()).select_from(DailyMetric)) == 0
        assert await db.scalar(select(func.count()).select_from(GovernanceEnvelope)) == 0

    async def test_active_hours_consent_does_not_cover_metrics(self, db, settings, grant_consent, owner_id, now):
        await grant_consent(consent=ACTIVE_HOURS_INGEST)

        with pytest.raises(ConsentRequiredError):
            await ManualIngestService(db, settings).ingest_daily_metrics(owner_id, daily_request(), now=now)


class TestIngestActiveHours:

    async def test_writes_record(self, db, settings, grant_consent, owner_id, now):
        await grant_consent(consent=ACTIVE_HOURS_INGEST)
        request = ActiveHoursIngestRequest.model_validate(
            {"activeDate": "2024-03-15", "minutesActive": 75.6, "source": "watch", "confidence": 70}
        )

        record = await ManualIngestService(db, settings).ingest_active_hours(owner_id, request, now=now)

        assert record.minutes_active == 75
        assert record.source == "watch"
        assert record.confidence == 70

    async def test_requires_consent(self, db, settings, grant_consent, owner_id, now):
        await grant_consent()  # daily metrics only
        request = ActiveHoursIngestRequest.model_validate({"activeDate": "2024-03-15", "minutesActive": 10})

        with pytest.raises(ConsentRequiredError, match="active_hours_ingest"):
            await ManualIngestService(db, settings).ingest_active_hours(owner_id, request, now=now)
