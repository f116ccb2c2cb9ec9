"""
Unit tests for the logging helpers.
"""

import pytest
from structlog.testing import capture_logs

import utilities.logger as logger_module
from scheduler.models import SyncOutcome
from utilities.logger import SyncLogger


class TestSyncLogger:

    def test_bound_context_is_attached_to_every_event(self):
        sync_logger = SyncLogger("sync_cycle").bind_context(cycle_id="abc")

        with capture_logs() as logs:
            sync_logger.log_cycle_start(3)
            sync_logger.log_diff(3, 4, 1, False)
            sync_logger.log_cycle_complete("success", 0.1, new_items=1)

        assert [entry["event"] for entry in logs] == [
            "Sync cycle started",
            "Circular list compared",
            "Sync cycle completed",
        ]
        assert all(entry["cycle_id"] == "abc" for entry in logs)

    def test_failed_store_operation_logged_as_error(self):
        with capture_logs() as logs:
            SyncLogger().log_store_operation("append_all", success=False, count=2)

        assert logs[0]["log_level"] == "error"
        assert logs[0]["operation"] == "append_all"

    def test_module_exposes_only_used_helpers(self):
        """Modules log through structlog.get_logger directly."""
        assert not hasattr(logger_module, "get_logger")
        assert not hasattr(SyncLogger, "clear_context")

    @pytest.mark.asyncio
    async def test_cycle_events_share_cycle_id(self, sync_engine, mock_source, circulars):
        mock_source.fetch.return_value = circulars((1, "A"))

        with capture_logs() as logs:
            report = await sync_engine.run_cycle()

        assert report.outcome == SyncOutcome.SUCCESS
        cycle_events = [entry for entry in logs if "cycle_id" in entry]
        assert cycle_events
        assert {entry["cycle_id"] for entry in cycle_events} == {report.cycle_id}
