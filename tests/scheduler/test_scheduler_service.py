"""
Test cases for periodic registration, retries and single-cycle runs.
"""

from unittest.mock import AsyncMock

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from circulars.exceptions import SnapshotStoreError
from scheduler.models import CycleReport, SchedulerConfig, SyncOutcome
from scheduler.scheduler_service import POLL_WORK_NAME, RETRY_WORK_NAME, SchedulerService
from scheduler.sync_engine import SyncEngine


@pytest.fixture
def mock_engine():
    """Mock sync engine reporting success."""
    engine = AsyncMock(spec=SyncEngine)
    engine.run_cycle.return_value = CycleReport(cycle_id="cycle-1", outcome=SyncOutcome.SUCCESS)
    return engine


@pytest.fixture
def service(scheduler_config, mock_engine):
    """Scheduler service with a scheduler that is never started."""
    return SchedulerService(scheduler_config, mock_engine, scheduler=AsyncIOScheduler(timezone="UTC"))


class TestRegistration:
    """Unique periodic registration."""

    def test_enqueue_registers_poll_job(self, service):
        assert service.enqueue() is True

        job = service.scheduler.get_job(POLL_WORK_NAME)
        assert job is not None
        assert job.name == 'Poll Circulars'
        assert job.max_instances == 1

    def test_enqueue_keeps_existing_job(self, service):
        """A second registration does not replace or duplicate the first."""
        service.enqueue()
        first = service.scheduler.get_job(POLL_WORK_NAME)

        assert service.enqueue() is False

        jobs = [job for job in service.scheduler.get_jobs() if job.id == POLL_WORK_NAME]
        assert len(jobs) == 1
        assert jobs[0] is first

    def test_disabled_notifications_cancel_job(self, scheduler_config, mock_engine):
        scheduler = AsyncIOScheduler(timezone="UTC")
        enabled = SchedulerService(scheduler_config, mock_engine, scheduler=scheduler)
        enabled.enqueue()

        disabled_config = scheduler_config.model_copy(update={"notifications_enabled": False})
        disabled = SchedulerService(disabled_config, mock_engine, scheduler=scheduler)

        assert disabled.enqueue() is False
        assert scheduler.get_job(POLL_WORK_NAME) is None

    def test_cancel_without_jobs(self, service):
        assert service.cancel() is False

    def test_status_lists_jobs(self, service):
        service.enqueue()

        status = service.get_scheduler_status()

        assert status['running'] is False
        assert status['job_count'] == 1
        assert status['jobs'][0]['id'] == POLL_WORK_NAME


class TestRetryHandling:
    """Outcome interpretation and backoff."""

    @pytest.mark.asyncio
    async def test_retry_outcome_schedules_retry(self, service, mock_engine):
        mock_engine.run_cycle.return_value = CycleReport(cycle_id="cycle-2", outcome=SyncOutcome.RETRY)

        result = await service._poll_job()

        assert result['outcome'] == 'retry'
        assert service.scheduler.get_job(RETRY_WORK_NAME) is not None
        assert service._retry_attempts == 1

    @pytest.mark.asyncio
    async def test_backoff_doubles_and_caps(self, service, mock_engine):
        mock_engine.run_cycle.return_value = CycleReport(cycle_id="cycle-3", outcome=SyncOutcome.RETRY)

        delays = []
        for _ in range(6):
            delays.append(service._next_backoff())
            await service._poll_job()

        assert delays == [30, 60, 120, 240, 300, 300]

    @pytest.mark.asyncio
    async def test_success_resets_backoff(self, service, mock_engine):
        mock_engine.run_cycle.return_value = CycleReport(cycle_id="cycle-4", outcome=SyncOutcome.RETRY)
        await service._poll_job()

        mock_engine.run_cycle.return_value = CycleReport(cycle_id="cycle-5", outcome=SyncOutcome.SUCCESS)
        result = await service._poll_job()

        assert result['outcome'] == 'success'
        assert service._retry_attempts == 0
        assert service.scheduler.get_job(RETRY_WORK_NAME) is None

    @pytest.mark.asyncio
    async def test_store_failure_schedules_retry(self, service, mock_engine):
        mock_engine.run_cycle.side_effect = SnapshotStoreError("write failed", operation="append_all")

        result = await service._poll_job()

        assert result['outcome'] == 'failed'
        assert service.scheduler.get_job(RETRY_WORK_NAME) is not None

    @pytest.mark.asyncio
    async def test_overlapping_trigger_is_skipped(self, service, mock_engine):
        """Only one cycle runs at a time."""
        async with service._cycle_lock:
            result = await service._poll_job()

        assert result['outcome'] == 'skipped'
        mock_engine.run_cycle.assert_not_called()


class TestRunOnce:

    @pytest.mark.asyncio
    async def test_run_once_returns_report(self, service, mock_engine):
        report = await service.run_once()

        assert report.cycle_id == "cycle-1"
        mock_engine.run_cycle.assert_called_once()


class TestSchedulerConfig:
    """Validation of scheduler configuration."""

    def test_defaults(self):
        config = SchedulerConfig()

        assert config.notifications_enabled is True
        assert config.poll_interval_minutes == 15
        assert config.flex_interval_minutes == 10

    def test_interval_below_minimum_rejected(self):
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            SchedulerConfig(poll_interval_minutes=5)

        with pytest.raises(ValidationError):
            SchedulerConfig(flex_interval_minutes=1)
