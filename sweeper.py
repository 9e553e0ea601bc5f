"""Background removal of expired pastes.

Lazy expiry in ``PasteStore.view`` only catches pastes that somebody opens;
``ExpirySweeper`` deletes the rest from an APScheduler interval job for the
lifetime of the process.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from models import PasteStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 300
JOB_ID = "expiry-sweep"


class ExpirySweeper:
    def __init__(self, store: PasteStore, interval: float = DEFAULT_INTERVAL):
        self.store = store
        self.interval = interval
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._job: Optional[Job] = None

    async def sweep_once(self) -> int:
        removed = await self.store.sweep_expired(self.store.clock())
        if removed:
            logger.info(f"Cleaned up {removed} expired pastes")
        return removed

    async def tick(self) -> None:
        """Scheduled job: one sweep, failures logged so later ticks still run."""
        try:
            await self.sweep_once()
        except Exception:
            logger.exception("Expiry sweep failed")

    def start(self) -> Job:
        """Schedule the sweep; the first tick runs immediately.

        Must be called from inside the running event loop.
        """
        if self.scheduler is not None and self.scheduler.running:
            return self._job
        self.scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        self._job = self.scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self.interval),
            id=JOB_ID,
            name="Expiry Sweep",
            next_run_time=datetime.now(timezone.utc),
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
        )
        self.scheduler.start()
        logger.info(f"Expiry sweeper started (every {self.interval}s)")
        return self._job

    def stop(self) -> None:
        if self.scheduler is None or not self.scheduler.running:
            return
        # cancels a tick that is still in flight
        self.scheduler.shutdown(wait=False)
        self._job = None
        logger.info("Expiry sweeper stopped")
