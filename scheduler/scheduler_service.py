"""
Periodic scheduling of sync cycles.

This module provides:
- Unique periodic registration with APScheduler (an existing job is kept)
- A single active cycle at a time
- Exponential backoff retries after transient failures
- Graceful shutdown
"""

import asyncio
import signal
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from circulars.exceptions import SnapshotStoreError
from scheduler.models import CycleReport, SchedulerConfig, SyncOutcome
from scheduler.sync_engine import SyncEngine

logger = structlog.get_logger(__name__)

POLL_WORK_NAME = "poll_work"
RETRY_WORK_NAME = "poll_work_retry"


class SchedulerService:
    """Scheduler service for periodic circular polling."""

    def __init__(self, config: SchedulerConfig, engine: SyncEngine, scheduler: Optional[AsyncIOScheduler] = None):
        """
        Initialize scheduler service.

        Args:
            config: Scheduler configuration
            engine: Sync engine running the cycles
            scheduler: APScheduler instance (created when omitted)
        """
        self.config = config
        self.engine = engine
        self.scheduler = scheduler or AsyncIOScheduler(timezone=config.timezone)
        self.logger = logger.bind(component="scheduler_service")

        self._cycle_lock = asyncio.Lock()
        self._retry_attempts = 0
        self._stopped: Optional[asyncio.Event] = None

        self._setup_scheduler_listeners()

    def _setup_scheduler_listeners(self) -> None:
        """Setup scheduler event listeners."""
        def job_executed_listener(event):
            retval = event.retval if isinstance(event.retval, dict) else {}
            self.logger.info(
                "Job executed",
                job_id=event.job_id,
                outcome=retval.get('outcome'),
                duration=retval.get('duration', 0)
            )

        def job_error_listener(event):
            self.logger.error(
                "Job execution failed",
                job_id=event.job_id,
                error=str(event.exception)
            )

        self.scheduler.add_listener(job_executed_listener, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)

    def enqueue(self) -> bool:
        """
        Register the periodic poll job according to the user preferences.

        When notifications are disabled the job is cancelled instead. When a
        poll job is already registered it is kept as is.

        Returns:
            True if a new job was registered
        """
        if not self.config.notifications_enabled:
            self.cancel()
            return False

        if self.scheduler.get_job(POLL_WORK_NAME) is not None:
            self.logger.debug("Poll job already registered, keeping existing", job_id=POLL_WORK_NAME)
            return False

        self.scheduler.add_job(
            func=self._poll_job,
            trigger=IntervalTrigger(
                minutes=self.config.poll_interval_minutes,
                jitter=self.config.flex_interval_minutes * 60,
                timezone=self.config.timezone
            ),
            id=POLL_WORK_NAME,
            name='Poll Circulars',
            max_instances=1,
            coalesce=True,
            replace_existing=False
        )
        self.logger.info(
            "Registered periodic poll job",
            interval_minutes=self.config.poll_interval_minutes,
            flex_minutes=self.config.flex_interval_minutes
        )
        return True

    def cancel(self) -> bool:
        """
        Remove the poll job and any pending retry.

        Returns:
            True if a job was removed
        """
        removed = False
        for job_id in (POLL_WORK_NAME, RETRY_WORK_NAME):
            if self.scheduler.get_job(job_id) is not None:
                self.scheduler.remove_job(job_id)
                removed = True

        if removed:
            self.logger.info("Cancelled poll jobs")
        self._retry_attempts = 0
        return removed

    async def _poll_job(self) -> Dict:
        """Run one cycle and translate its outcome into scheduling decisions."""
        if self._cycle_lock.locked():
            self.logger.info("Sync cycle already running, skipping trigger")
            return {'outcome': 'skipped', 'duration': 0}

        async with self._cycle_lock:
            start_time = datetime.utcnow()
            try:
                report = await self.engine.run_cycle()
            except SnapshotStoreError as e:
                self.logger.error("Sync cycle failed on snapshot store", error=str(e))
                self._schedule_retry()
                return {
                    'outcome': 'failed',
                    'error': str(e),
                    'duration': (datetime.utcnow() - start_time).total_seconds()
                }

            if report.outcome == SyncOutcome.RETRY:
                self._schedule_retry()
            else:
                self._reset_retry()

            return {
                'cycle_id': report.cycle_id,
                'outcome': report.outcome.value,
                'new_items': report.new_items,
                'duration': report.duration_seconds
            }

    def _next_backoff(self) -> float:
        """Exponential backoff delay for the next retry, capped."""
        delay = self.config.retry_backoff_seconds * (2 ** self._retry_attempts)
        return min(delay, self.config.max_retry_backoff_seconds)

    def _schedule_retry(self) -> None:
        """Schedule a one-shot retry of the poll job."""
        delay = self._next_backoff()
        self._retry_attempts += 1

        self.scheduler.add_job(
            func=self._poll_job,
            trigger=DateTrigger(run_date=datetime.now(timezone.utc) + timedelta(seconds=delay)),
            id=RETRY_WORK_NAME,
            name='Retry Poll Circulars',
            max_instances=1,
            replace_existing=True
        )
        self.logger.info(
            "Scheduled poll retry",
            attempt=self._retry_attempts,
            delay_seconds=delay
        )

    def _reset_retry(self) -> None:
        self._retry_attempts = 0
        if self.scheduler.get_job(RETRY_WORK_NAME) is not None:
            self.scheduler.remove_job(RETRY_WORK_NAME)

    async def run_once(self) -> CycleReport:
        """Run a single sync cycle outside the schedule."""
        async with self._cycle_lock:
            return await self.engine.run_cycle()

    async def start(self) -> None:
        """Start the scheduler and block until stop() is called."""
        self.logger.info("Starting scheduler service")
        self._stopped = asyncio.Event()

        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.stop)
            except NotImplementedError:
                # Signal handlers are unavailable on some platforms
                pass

        self.scheduler.start()
        self.enqueue()

        self.logger.info(
            "Scheduler service started",
            timezone=self.config.timezone,
            notifications_enabled=self.config.notifications_enabled
        )

        await self._stopped.wait()

    def stop(self) -> None:
        """Stop the scheduler service."""
        self.logger.info("Stopping scheduler service")

        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        if self._stopped is not None:
            self._stopped.set()

        self.logger.info("Scheduler service stopped")

    def get_scheduler_status(self) -> Dict:
        """Get current scheduler status."""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run_time = getattr(job, 'next_run_time', None)
            jobs.append({
                'id': job.id,
                'name': job.name,
                'next_run_time': next_run_time.isoformat() if next_run_time else None,
                'trigger': str(job.trigger)
            })

        return {
            'running': self.scheduler.running,
            'timezone': self.config.timezone,
            'retry_attempts': self._retry_attempts,
            'jobs': jobs,
            'job_count': len(jobs)
        }
