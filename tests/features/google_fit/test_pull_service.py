"""
Tests for DailyMetricsPullService.

Scenarios run against an in-memory database with Google faked by
httpx.MockTransport.
"""

import json
from datetime import timedelta

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from healthbridge.shared.clock import ensure_utc, local_day_range_millis
from healthbridge.shared.errors import ConsentRequiredError, NotConnectedError
from healthbridge.features.google_fit import (
    AggregateFailedError,
    GoogleFitClient,
    GoogleFitOAuth,
    GOOGLE_FIT_SCOPES,
    RefreshFailedError,
    SourceConnection,
    SourceConnectionRepository,
    STATUS_DISCONNECTED,
)
from healthbridge.features.google_fit.pull import DailyMetricsPullService
from healthbridge.features.governance import GovernanceEnvelope
from healthbridge.features.metrics import DailyMetric


STEPS_AND_CALORIES = {"bucket": [{"dataset": [
    {
        "dataSourceId": "derived:com.google.step_count.delta:com.google.android.gms:aggregated",
        "point": [{"value": [{"intVal": 1200}]}, {"value": [{"intVal": 900}]}],
    },
    {
        "dataSourceId": "derived:com.google.calories.expended:com.google.android.gms:aggregated",
        "point": [{"value": [{"fpVal": 310.5}]}],
    },
]}]}


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def service(db, settings, vault, google):
    return DailyMetricsPullService(
        db,
        settings,
        vault,
        GoogleFitOAuth(settings, transport=google.transport),
        GoogleFitClient(settings, transport=google.transport),
    )


@pytest.fixture
def connect(db, vault, owner_id):
    """Store a connection whose access token expires at `expires_at`."""

    async def _connect(expires_at, access="access-1", refresh="refresh-1"):
        connection = await SourceConnectionRepository(db).save_connection(
            owner_id=owner_id,
            scopes=list(GOOGLE_FIT_SCOPES),
            access_token_encrypted=vault.encrypt(access),
            refresh_token_encrypted=vault.encrypt(refresh),
            expires_at=expires_at,
        )
        await db.commit()
        return connection

    return _connect


async def count(session_factory, model) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(model))


# =============================================================================
# Happy path
# =============================================================================

class TestPull:

    async def test_steps_and_calories_scenario(
        self, service, connect, grant_consent, google, owner_id, now, metric_day, session_factory
    ):
        """Steps [1200, 900] + calories [310.5] -> 2100 / 311 with one envelope."""
        await grant_consent()
        await connect(expires_at=now + timedelta(hours=1))
        google.aggregate_response = httpx.Response(200, json=STEPS_AND_CALORIES)

        metric = await service.pull(owner_id, metric_day, now=now)

        assert metric.steps == 2100
        assert metric.calories_kcal == 311
        assert metric.avg_hr_bpm == 0
        assert metric.sleep_minutes == 0
        assert metric.source == "google_fit"
        assert metric.confidence == 90
        assert await count(session_factory, DailyMetric) == 1
        assert await count(session_factory, GovernanceEnvelope) == 1
        assert google.calls("/token") == []

        async with session_factory() as session:
            envelope = await session.scalar(select(GovernanceEnvelope))
        assert envelope.subject_table == "daily_metrics"
        assert envelope.subject_key == metric.id
        assert envelope.purpose == "daily_metrics_ingest"

    async def test_uses_local_day_range(self, service, connect, grant_consent, google, owner_id, now, metric_day):
        await grant_consent()
        await connect(expires_at=now + timedelta(hours=1))

        await service.pull(owner_id, now=now)

        body = json.loads(google.calls("dataset:aggregate")[0].content)
        start, end = local_day_range_millis(metric_day, "UTC")
        assert body["startTimeMillis"] == start
        assert body["endTimeMillis"] == end
        assert google.calls("dataset:aggregate")[0].headers["Authorization"] == "Bearer access-1"

    async def test_repeat_pull_updates_same_row(
        self, service, connect, grant_consent, google, owner_id, now, metric_day, session_factory
    ):
        await grant_consent()
        await connect(expires_at=now + timedelta(hours=2))

        await service.pull(owner_id, metric_day, now=now)
        google.aggregate_response = httpx.Response(200, json=STEPS_AND_CALORIES)
        metric = await service.pull(owner_id, metric_day, now=now + timedelta(minutes=5))

        assert metric.steps == 2100
        assert await count(session_factory, DailyMetric) == 1
        assert await count(session_factory, GovernanceEnvelope) == 2


# =============================================================================
# Consent and connection
# =============================================================================

class TestPreconditions:

    async def test_no_consent(self, service, connect, google, owner_id, now, metric_day, session_factory):
        """No consent -> ConsentRequiredError, nothing written, Google untouched."""
        await connect(expires_at=now + timedelta(hours=1))

        with pytest.raises(ConsentRequiredError) as exc_info:
            await service.pull(owner_id, metric_day, now=now)

        assert exc_info.value.status_code == 403
        assert str(exc_info.value) == "Consent required for daily_metrics_ingest"
        assert await count(session_factory, DailyMetric) == 0
        assert await count(session_factory, GovernanceEnvelope) == 0
        assert google.requests == []

    async def test_expired_consent(self, service, connect, grant_consent, owner_id, now, metric_day):
        await grant_consent(expires_at=now - timedelta(days=1))
        await connect(expires_at=now + timedelta(hours=1))

        with pytest.raises(ConsentRequiredError):
            await service.pull(owner_id, metric_day, now=now)

    async def test_not_connected(self, service, grant_consent, owner_id, now):
        await grant_consent()

        with pytest.raises(NotConnectedError):
            await service.pull(owner_id, now=now)

    async def test_disconnected_status(self, service, connect, grant_consent, db, owner_id, now):
        await grant_consent()
        connection = await connect(expires_at=now + timedelta(hours=1))
        await SourceConnectionRepository(db).update(connection, status=STATUS_DISCONNECTED)
        await db.commit()

        with pytest.raises(NotConnectedError):
            await service.pull(owner_id, now=now)


# =============================================================================
# Token refresh
# =============================================================================

class TestRefresh:

    async def test_refresh_when_expiring_in_30_seconds(
        self, service, connect, grant_consent, google, vault, owner_id, now, metric_day, session_factory
    ):
        await grant_consent()
        await connect(expires_at=now + timedelta(seconds=30))
        google.token_responses.append(httpx.Response(200, json={"access_token": "access-2", "expires_in": 3600}))

        await service.pull(owner_id, metric_day, now=now)

        paths = [r.url.path for r in google.requests]
        assert paths[0] == "/token"
        assert paths[1].endswith("dataset:aggregate")
        assert google.requests[1].headers["Authorization"] == "Bearer access-2"

        async with session_factory() as session:
            stored = await session.scalar(select(SourceConnection))
        assert vault.decrypt(stored.access_token_encrypted) == "access-2"
        assert vault.decrypt(stored.refresh_token_encrypted) == "refresh-1"
        assert ensure_utc(stored.expires_at) == now + timedelta(seconds=3600)

    async def test_refresh_when_expiry_unknown(self, service, connect, grant_consent, google, owner_id, now):
        await grant_consent()
        await connect(expires_at=None)
        google.token_responses.append(httpx.Response(200, json={"access_token": "access-2", "expires_in": 3600}))

        await service.pull(owner_id, now=now)

        assert len(google.calls("/token")) == 1

    async def test_no_refresh_outside_margin(self, service, connect, grant_consent, google, owner_id, now):
        await grant_consent()
        await connect(expires_at=now + timedelta(seconds=61))

        await service.pull(owner_id, now=now)

        assert google.calls("/token") == []

    async def test_rotated_refresh_token_stored(
        self, service, connect, grant_consent, google, vault, owner_id, now, session_factory
    ):
        await grant_consent()
        await connect(expires_at=now - timedelta(minutes=5))
        google.token_responses.append(httpx.Response(200, json={
            "access_token": "access-2", "expires_in": 3600, "refresh_token": "refresh-2",
        }))

        await service.pull(owner_id, now=now)

        async with session_factory() as session:
            stored = await session.scalar(select(SourceConnection))
        assert vault.decrypt(stored.refresh_token_encrypted) == "refresh-2"

    async def test_refresh_failure_aborts(
        self, service, connect, grant_consent, google, owner_id, now, session_factory
    ):
        await grant_consent()
        await connect(expires_at=now)
        google.token_responses.append(httpx.Response(400, text='{"error": "invalid_grant"}'))

        with pytest.raises(RefreshFailedError):
            await service.pull(owner_id, now=now)

        assert google.calls("dataset:aggregate") == []
        assert await count(session_factory, DailyMetric) == 0

    async def test_token_store_failure_does_not_abort(
        self, service, connect, grant_consent, google, owner_id, now, caplog
    ):
        await grant_consent()
        await connect(expires_at=now)
        google.token_responses.append(httpx.Response(200, json={"access_token": "access-2", "expires_in": 3600}))

        async def failing_update(*args, **kwargs):
            raise SQLAlchemyError("connection lost")

        service.connections.update_tokens = failing_update

        metric = await service.pull(owner_id, now=now)

        assert metric.source == "google_fit"
        assert google.calls("dataset:aggregate")[0].headers["Authorization"] == "Bearer access-2"
        assert "Failed to store refreshed token" in caplog.text


# =============================================================================
# Provider failures
# =============================================================================

class TestAggregateFailure:

    async def test_no_partial_write(self, service, connect, grant_consent, google, owner_id, now, session_factory):
        await grant_consent()
        await connect(expires_at=now + timedelta(hours=1))
        google.aggregate_response = httpx.Response(500, text="backend error")

        with pytest.raises(AggregateFailedError):
            await service.pull(owner_id, now=now)

        assert await count(session_factory, DailyMetric) == 0
        assert await count(session_factory, GovernanceEnvelope) == 0
