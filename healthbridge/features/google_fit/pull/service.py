"""
Daily metrics pull service.

Pulls one local day of Google Fit data for an owner and stores it as a
governed daily metric row.

Flow:
    consent -> connection -> decrypt -> refresh if near expiry
    -> aggregate -> normalize -> governed write
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.config import Settings
from healthbridge.shared.clock import ensure_utc, local_today, local_day_range_millis, utcnow
from healthbridge.shared.errors import NotConnectedError
from healthbridge.shared.vault import CredentialVault
from healthbridge.features.consent import ConsentGate, DAILY_METRICS_INGEST
from healthbridge.features.governance.writer import GovernedWriter
from healthbridge.features.metrics.models import DailyMetric

from ..client import GoogleFitClient
from ..models import SourceConnection
from ..normalizer import normalize
from ..oauth import GoogleFitOAuth
from ..repository import SourceConnectionRepository
from .config import PullConfig

logger = logging.getLogger(__name__)


class DailyMetricsPullService:
    """
    Usage:
        service = DailyMetricsPullService(db, settings, vault, oauth, client)
        metric = await service.pull(user_id)                    # today
        metric = await service.pull(user_id, date(2024, 3, 1))
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        vault: CredentialVault,
        oauth: GoogleFitOAuth,
        client: GoogleFitClient,
    ):
        self.db = db
        self.vault = vault
        self.oauth = oauth
        self.client = client
        self.timezone = settings.metrics_timezone
        self.refresh_margin = timedelta(seconds=settings.token_refresh_margin_seconds)
        self.gate = ConsentGate(db)
        self.connections = SourceConnectionRepository(db)
        self.writer = GovernedWriter(db, retention_days=settings.governance_retention_days)

    async def pull(
        self,
        owner_id: str,
        metric_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> DailyMetric:
        """
        Pull and store one day of metrics.

        Raises:
            ConsentRequiredError: daily_metrics_ingest consent not active
            NotConnectedError: No usable Google Fit connection
            VaultError: Stored tokens cannot be decrypted
            RefreshFailedError / AggregateFailedError: Provider call failed
            StorageError / GovernanceWriteFailedError: Write failed
        """
        now = now or utcnow()

        await self.gate.require(owner_id, DAILY_METRICS_INGEST, now)

        connection = await self.connections.get_for_owner(owner_id)
        if not connection or not connection.is_connected or not connection.has_tokens:
            raise NotConnectedError()

        access_token = self.vault.decrypt(connection.access_token_encrypted)
        if self._needs_refresh(connection, now):
            access_token = await self._refresh(connection, now)

        day = metric_date or local_today(self.timezone, now)
        start_millis, end_millis = local_day_range_millis(day, self.timezone)

        payload = await self.client.aggregate(access_token, start_millis, end_millis)
        totals = normalize(payload)
        logger.info(
            f"Google Fit totals for owner {owner_id} on {day}: "
            f"steps={totals.steps} kcal={totals.calories_kcal} "
            f"hr={totals.avg_hr_bpm} sleep={totals.sleep_minutes}"
        )

        return await self.writer.write_metric(
            owner_id,
            day,
            totals,
            source=PullConfig.SOURCE,
            confidence=PullConfig.CONFIDENCE,
            now=now,
        )

    def _needs_refresh(self, connection: SourceConnection, now: datetime) -> bool:
        if connection.expires_at is None:
            return True
        return ensure_utc(connection.expires_at) - ensure_utc(now) < self.refresh_margin

    async def _refresh(self, connection: SourceConnection, now: datetime) -> str:
        """
        Refresh the access token and store it.

        A failure to store the new token does not abort the pull; the next
        pull simply refreshes again.
        """
        refresh_token = self.vault.decrypt(connection.refresh_token_encrypted)
        refreshed = await self.oauth.refresh(refresh_token)
        owner_id = connection.owner_id

        expires_at = now + timedelta(seconds=refreshed.expires_in) if refreshed.expires_in else None
        rotated = self.vault.encrypt(refreshed.refresh_token) if refreshed.refresh_token else None

        try:
            await self.connections.update_tokens(
                connection,
                access_token_encrypted=self.vault.encrypt(refreshed.access_token),
                expires_at=expires_at,
                refresh_token_encrypted=rotated,
            )
            await self.db.commit()
            logger.info(f"Refreshed Google Fit token for owner {owner_id}")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to store refreshed token for owner {owner_id}: {e}")

        return refreshed.access_token


def build_pull_service(db: AsyncSession, settings: Settings) -> DailyMetricsPullService:
    """Pull service wired from settings (used by the scheduled runner)."""
    return DailyMetricsPullService(
        db,
        settings,
        vault=CredentialVault(settings.google_fit_token_enc_key or ""),
        oauth=GoogleFitOAuth(settings),
        client=GoogleFitClient(settings),
    )
