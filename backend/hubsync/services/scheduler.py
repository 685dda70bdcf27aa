"""
Daily sync scheduling with APScheduler.

One cron job per process runs a full sync. Failures are logged and never
escape the job, so the next day's run is still scheduled.
"""

import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from hubsync.services.hubspot_sync.sync_orchestrator import SyncRunResult

logger = logging.getLogger(__name__)

SyncRunner = Callable[[], Awaitable[SyncRunResult]]

DAILY_SYNC_JOB_ID = "hubspot_daily_sync"


async def run_scheduled_sync(run_sync: SyncRunner) -> Optional[SyncRunResult]:
    """
    Execute one scheduled sync.

    Returns:
        The run result, or None when the run failed
    """
    logger.info("⏰ Scheduled HubSpot sync triggered")
    try:
        result = await run_sync()
    except Exception as e:
        logger.error(f"❌ Scheduled HubSpot sync failed: {e}", exc_info=True)
        return None

    logger.info(
        f"✅ Scheduled HubSpot sync finished: {result.status}",
        extra={"api_key": result.domain_api_key, "errors": len(result.errors)},
    )
    return result


class SyncScheduler:
    """
    Runs the HubSpot sync once a day.

    Example usage:
        scheduler = SyncScheduler(run_sync, hour=0, minute=0)
        scheduler.start()
        ...
        scheduler.shutdown()
    """

    def __init__(
        self,
        run_sync: SyncRunner,
        hour: int = 0,
        minute: int = 0,
        timezone: str = "UTC",
    ):
        self.run_sync = run_sync
        self.hour = hour
        self.minute = minute
        self.timezone = timezone
        self._scheduler = AsyncIOScheduler(timezone=timezone)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        """Register the daily job and start the scheduler (needs a running event loop)."""
        if self._scheduler.running:
            return

        self._scheduler.add_job(
            run_scheduled_sync,
            trigger=CronTrigger(hour=self.hour, minute=self.minute, timezone=self.timezone),
            args=[self.run_sync],
            id=DAILY_SYNC_JOB_ID,
            name="HubSpot daily sync",
            replace_existing=True,
            coalesce=True,  # Skip missed runs
            max_instances=1,  # Don't overlap
        )
        self._scheduler.start()
        logger.info(f"Sync scheduler started (daily at {self.hour:02d}:{self.minute:02d} {self.timezone})")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Sync scheduler shutdown")

    def next_run_time(self) -> Optional[datetime]:
        """When the daily job fires next (None before start)."""
        if not self._scheduler.running:
            return None
        job = self._scheduler.get_job(DAILY_SYNC_JOB_ID)
        return job.next_run_time if job else None
