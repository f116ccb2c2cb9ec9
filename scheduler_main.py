"""
Main entry point for the circular poller.

Starts the scheduler service, or runs a single sync cycle with --once.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

import structlog
from utilities.logger import setup_logging
from utilities.config import PollerConfig, config
from circulars.source import HttpCircularSource
from circulars.store import InMemorySnapshotStore, MongoSnapshotStore
from scheduler.alerting import LogNotificationEmitter, WebhookNotificationEmitter
from scheduler.models import SchedulerConfig
from scheduler.notifications import NotificationBuilder
from scheduler.scheduler_service import SchedulerService
from scheduler.sync_engine import SyncEngine


def build_store(settings: PollerConfig):
    """Create the snapshot store selected by configuration."""
    if settings.store_backend == "memory":
        return InMemorySnapshotStore()
    return MongoSnapshotStore(
        connection_url=settings.mongodb_url,
        database_name=settings.mongodb_database,
        collection_name=settings.mongodb_collection,
        snapshot_key=settings.snapshot_key
    )


def build_emitter(settings: PollerConfig):
    """Create the notification emitter selected by configuration."""
    if settings.notification_webhook_url:
        return WebhookNotificationEmitter(settings.notification_webhook_url, timeout=settings.request_timeout)
    return LogNotificationEmitter()


def build_service(settings: PollerConfig, store) -> SchedulerService:
    """Wire the sync engine and scheduler service."""
    engine = SyncEngine(
        store=store,
        source=HttpCircularSource(settings),
        emitter=build_emitter(settings),
        builder=NotificationBuilder(viewer_deep_link=settings.viewer_deep_link),
        diff_mode=settings.diff_mode
    )

    scheduler_config = SchedulerConfig(
        notifications_enabled=settings.notifications_enabled,
        poll_interval_minutes=settings.poll_interval_minutes,
        flex_interval_minutes=settings.flex_interval_minutes,
        retry_backoff_seconds=settings.retry_backoff_seconds,
        max_retry_backoff_seconds=settings.max_retry_backoff_seconds
    )
    return SchedulerService(scheduler_config, engine)


async def main():
    """Main function to start the poller."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )

    logger = structlog.get_logger(__name__)

    run_once = False
    if len(sys.argv) > 1:
        if sys.argv[1] == '--once':
            run_once = True
        elif sys.argv[1] != '--daemon':
            print(f"Unknown argument: {sys.argv[1]}")
            print("Usage: python scheduler_main.py [--once|--daemon]")
            sys.exit(1)

    store = build_store(config)
    try:
        if isinstance(store, MongoSnapshotStore):
            await store.connect()

        service = build_service(config, store)
        logger.info(
            "Circular poller configured",
            source_url=config.source_url,
            store_backend=config.store_backend,
            diff_mode=config.diff_mode.value,
            poll_interval_minutes=config.poll_interval_minutes,
            run_once=run_once
        )

        if run_once:
            report = await service.run_once()
            logger.info("Single sync cycle finished", **report.model_dump(mode="json"))
        else:
            await service.start()

    except Exception as e:
        logger.error("Circular poller failed", error=str(e))
        sys.exit(1)

    finally:
        if isinstance(store, MongoSnapshotStore):
            await store.disconnect()


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
