"""Recurring expiry scans: one daily at a fixed time, one urgent on an interval."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from .evaluator import SCAN_DAILY, SCAN_URGENT

if TYPE_CHECKING:
    from .config import SchedulerConfig
    from .scanner import ExpiryScanner, ScanResult

logger = logging.getLogger(__name__)


class ExpiryScheduler:
    """Owns the daily and urgent scan jobs.

    Each scan kind runs at most once at a time. A tick or manual trigger that
    arrives while the same kind is still running is skipped, not queued. The
    two kinds may overlap with each other.
    """

    def __init__(
        self,
        scanner: ExpiryScanner,
        config: SchedulerConfig,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._scanner = scanner
        self._config = config
        self._tz = ZoneInfo(config.timezone)
        self._scheduler = AsyncIOScheduler(timezone=self._tz)
        self._clock = clock or (lambda: datetime.now(self._tz))
        self._locks = {SCAN_DAILY: asyncio.Lock(), SCAN_URGENT: asyncio.Lock()}
        self._scan_tasks: set[asyncio.Task] = set()
        self._running = False

    def setup_jobs(self) -> None:
        """Register the daily and urgent jobs, replacing any already registered."""
        # replace_existing does not dedupe jobs queued before start()
        self._scheduler.remove_all_jobs()
        daily = self._config.daily_time
        self._scheduler.add_job(
            self._job_daily_scan,
            trigger=CronTrigger(hour=daily.hour, minute=daily.minute, timezone=self._tz),
            id="daily_expiry_scan",
            name="Daily expiry scan",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Daily expiry scan registered at %s %s", daily.strftime("%H:%M"), self._tz)

        interval = self._config.urgent_interval
        self._scheduler.add_job(
            self._job_urgent_scan,
            trigger=IntervalTrigger(seconds=interval.total_seconds(), timezone=self._tz),
            id="urgent_expiry_scan",
            name="Urgent expiry scan",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Urgent expiry scan registered every %s", interval)

    def start(self) -> bool:
        """Start the recurring jobs. Returns False if already running."""
        if self._running:
            logger.warning("Expiry scheduler already running")
            return False
        self.setup_jobs()
        self._scheduler.start()
        self._running = True
        logger.info("Expiry scheduler started")
        return True

    def stop(self) -> None:
        """Cancel future ticks. A scan already in progress runs to completion.

        Use :meth:`wait_for_scans` to block until such a scan has finished.
        """
        if self._running:
            self._scheduler.remove_all_jobs()
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Expiry scheduler stopped")

    @property
    def running(self) -> bool:
        return self._running

    def now(self) -> datetime:
        return self._clock()

    def is_scanning(self, kind: str) -> bool:
        return self._locks[kind].locked()

    async def wait_for_scans(self) -> None:
        """Wait for scheduled scans that are still running."""
        if self._scan_tasks:
            await asyncio.gather(*self._scan_tasks, return_exceptions=True)

    def get_jobs(self) -> list[dict]:
        """Return info about scheduled jobs."""
        jobs = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": str(next_run) if next_run else None,
            })
        return jobs

    def next_daily_run(self) -> datetime:
        """Next wall-clock time the daily scan fires."""
        daily = self._config.daily_time
        trigger = CronTrigger(hour=daily.hour, minute=daily.minute, timezone=self._tz)
        return trigger.get_next_fire_time(None, self.now())

    async def trigger_manual_scan(self) -> ScanResult | None:
        """Run the daily scan now. Returns None if a daily scan is in progress.

        Scan-level failures propagate to the caller.
        """
        logger.info("Manual expiry scan requested")
        return await self._run_scan(SCAN_DAILY)

    async def trigger_urgent_scan(self) -> ScanResult | None:
        return await self._run_scan(SCAN_URGENT)

    async def _run_scan(self, kind: str) -> ScanResult | None:
        lock = self._locks[kind]
        if lock.locked():
            logger.warning("%s expiry scan already running, skipping", kind.capitalize())
            return None
        async with lock:
            now = self.now()
            if kind == SCAN_DAILY:
                return await self._scanner.run_daily_scan(now)
            return await self._scanner.run_urgent_scan(now)

    async def _job_daily_scan(self) -> None:
        await self._run_job(SCAN_DAILY)

    async def _job_urgent_scan(self) -> None:
        await self._run_job(SCAN_URGENT)

    async def _run_job(self, kind: str) -> None:
        # Shutting down the scheduler cancels running job coroutines. The scan
        # runs in its own task so a cancelled tick cannot stop it between the
        # notification write and the latch write.
        task = asyncio.ensure_future(self._logged_scan(kind))
        self._scan_tasks.add(task)
        task.add_done_callback(self._scan_tasks.discard)
        await asyncio.shield(task)

    async def _logged_scan(self, kind: str) -> None:
        try:
            await self._run_scan(kind)
        except Exception:
            logger.exception("%s expiry scan failed", kind.capitalize())
