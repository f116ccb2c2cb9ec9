"""
Sync cycle orchestration: read snapshot, fetch, diff, notify, commit.
"""

import asyncio
import uuid
from datetime import datetime

import structlog

from circulars.exceptions import SnapshotStoreError, TransientIOError
from circulars.source import CircularSource
from circulars.store import SnapshotStore
from scheduler.alerting import NotificationEmitter
from scheduler.change_detector import detect_changes
from scheduler.models import CycleReport, DiffMode, SyncOutcome
from scheduler.notifications import NotificationBuilder
from utilities.logger import SyncLogger

logger = structlog.get_logger(__name__)


class SyncEngine:
    """Runs one polling cycle against injected collaborators."""

    def __init__(
        self,
        store: SnapshotStore,
        source: CircularSource,
        emitter: NotificationEmitter,
        builder: NotificationBuilder = None,
        diff_mode: DiffMode = DiffMode.LENGTH,
        emission_timeout: float = 30.0
    ):
        """
        Initialize the sync engine.

        Args:
            store: Snapshot store holding already-known circulars
            source: Remote source client
            emitter: Notification surface
            builder: Notification content builder
            diff_mode: Novelty rule used by the change detector
            emission_timeout: Seconds to wait for the emitter before committing anyway
        """
        self.store = store
        self.source = source
        self.emitter = emitter
        self.builder = builder or NotificationBuilder()
        self.diff_mode = diff_mode
        self.emission_timeout = emission_timeout
        self.logger = logger.bind(component="sync_engine")

    async def run_cycle(self) -> CycleReport:
        """
        Run a single sync cycle.

        A transient fetch failure ends the cycle with RETRY and leaves the
        snapshot untouched. Notifications are emitted before the commit;
        emission failures are logged and do not stop the commit.

        Returns:
            CycleReport with the outcome

        Raises:
            SnapshotStoreError: if the snapshot cannot be read or written
        """
        cycle_id = str(uuid.uuid4())
        start_time = datetime.utcnow()
        sync_logger = SyncLogger("sync_cycle").bind_context(cycle_id=cycle_id)

        old_list = await self.store.read_all()
        sync_logger.log_cycle_start(len(old_list))

        report = CycleReport(cycle_id=cycle_id, started_at=start_time, snapshot_size=len(old_list))

        try:
            new_list = await self.source.fetch()
        except TransientIOError as e:
            sync_logger.log_fetch_failed(str(e))
            report.outcome = SyncOutcome.RETRY
            report.errors.append(str(e))
            report.duration_seconds = (datetime.utcnow() - start_time).total_seconds()
            sync_logger.log_cycle_complete(report.outcome.value, report.duration_seconds)
            return report

        report.fetched_size = len(new_list)

        diff = detect_changes(old_list, new_list, self.diff_mode)
        sync_logger.log_diff(len(old_list), len(new_list), len(diff.new_items), diff.must_replace)

        if diff.changed:
            # A shrink to an empty list clears the snapshot without notifying
            if diff.new_items:
                batch = self.builder.build(diff.new_items)
                try:
                    await asyncio.wait_for(self.emitter.emit(batch), timeout=self.emission_timeout)
                    report.notifications_emitted = True
                except Exception as e:
                    sync_logger.log_emission_failed(str(e))
                    report.errors.append(f"Notification emission failed: {e}")

            operation = "replace_all" if diff.must_replace else "append_all"
            try:
                if diff.must_replace:
                    await self.store.replace_all(list(new_list))
                else:
                    await self.store.append_all(diff.new_items)
            except SnapshotStoreError:
                sync_logger.log_store_operation(operation, success=False)
                raise
            sync_logger.log_store_operation(operation, success=True, count=len(diff.new_items))

            report.new_items = len(diff.new_items)
            report.replaced = diff.must_replace

        report.outcome = SyncOutcome.SUCCESS
        report.duration_seconds = (datetime.utcnow() - start_time).total_seconds()
        sync_logger.log_cycle_complete(report.outcome.value, report.duration_seconds, report.new_items)
        return report
