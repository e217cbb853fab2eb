"""
Background pull runner.

Handles scheduled pulls of the previous local day for every owner with a
connected Google Fit account. Consent is still checked per owner by the
pull service; owners without consent are skipped.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from healthbridge.config import Settings
from healthbridge.shared.clock import local_today
from healthbridge.shared.errors import ConsentRequiredError

from ..repository import SourceConnectionRepository
from .config import PullConfig
from .service import DailyMetricsPullService, build_pull_service

logger = logging.getLogger(__name__)


ServiceFactory = Callable[[AsyncSession], DailyMetricsPullService]


class BackgroundPullRunner:
    """
    Background task runner for scheduled pulls.

    Call `start()` to begin background pulls.
    Call `stop()` to gracefully stop.

    Usage:
        runner = BackgroundPullRunner(settings)
        await runner.start(AsyncSessionLocal)
        # ... later ...
        await runner.stop()
    """

    def __init__(
        self,
        settings: Settings,
        service_factory: Optional[ServiceFactory] = None,
    ):
        self.settings = settings
        self.interval_seconds = settings.scheduled_pull_interval_seconds
        self._service_factory = service_factory or (lambda db: build_pull_service(db, settings))
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._db_factory = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self, db_factory):
        """Start background pull loop."""
        if self._running:
            return

        self._running = True
        self._db_factory = db_factory
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Background pull started")

    async def stop(self):
        """Stop background pull loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Background pull stopped")

    async def _run_loop(self):
        """Main pull loop."""
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Pull batch error: {e}")

            # Wait before next batch
            await asyncio.sleep(self.interval_seconds)

    async def run_once(self, db_factory=None, now: Optional[datetime] = None) -> dict:
        """
        Pull the previous local day for every connected owner.

        Per-owner failures are logged and do not stop the batch.

        Returns:
            Counts: {"pulled", "skipped", "failed"}
        """
        db_factory = db_factory or self._db_factory
        day = local_today(self.settings.metrics_timezone, now) - timedelta(
            days=PullConfig.SCHEDULED_DAYS_BACK
        )

        async with db_factory() as db:
            connections = await SourceConnectionRepository(db).list_connected()
            owner_ids = [c.owner_id for c in connections]

        stats = {"pulled": 0, "skipped": 0, "failed": 0}
        if not owner_ids:
            return stats

        logger.info(f"Processing pull batch: {len(owner_ids)} owners for {day}")

        for index, owner_id in enumerate(owner_ids):
            if index:
                await asyncio.sleep(PullConfig.OWNER_DELAY_SECONDS)
            try:
                async with db_factory() as db:
                    service = self._service_factory(db)
                    await service.pull(owner_id, day, now=now)
                stats["pulled"] += 1
            except ConsentRequiredError:
                logger.info(f"Skipping scheduled pull for {owner_id}: no active consent")
                stats["skipped"] += 1
            except Exception as e:
                logger.error(f"Scheduled pull failed for {owner_id}: {e}")
                stats["failed"] += 1

        logger.info(f"Pull batch done for {day}: {stats}")
        return stats
