"""
Pytest configuration and shared fixtures.
"""

import pytest
from unittest.mock import AsyncMock

from circulars.models import Circular
from circulars.source import HttpCircularSource
from circulars.store import InMemorySnapshotStore
from scheduler.alerting import LogNotificationEmitter
from scheduler.models import SchedulerConfig
from scheduler.sync_engine import SyncEngine


def make_circulars(*pairs):
    """Build circulars from (id, name) pairs."""
    return [
        Circular(id=circular_id, name=name, url=f"https://www.example.edu/circolari/{circular_id}.pdf")
        for circular_id, name in pairs
    ]


@pytest.fixture
def circulars():
    """Factory building circulars from (id, name) pairs."""
    return make_circulars


@pytest.fixture
def sample_circulars():
    """Three circulars in remote order."""
    return make_circulars((1, "A"), (2, "B"), (3, "C"))


@pytest.fixture
def memory_store():
    """Empty in-memory snapshot store."""
    return InMemorySnapshotStore()


@pytest.fixture
def mock_source():
    """Mock remote source returning an empty list."""
    source = AsyncMock(spec=HttpCircularSource)
    source.fetch.return_value = []
    return source


@pytest.fixture
def mock_emitter():
    """Mock notification emitter."""
    return AsyncMock(spec=LogNotificationEmitter)


@pytest.fixture
def sync_engine(memory_store, mock_source, mock_emitter):
    """Sync engine wired to the in-memory store and mocks."""
    return SyncEngine(store=memory_store, source=mock_source, emitter=mock_emitter)


@pytest.fixture
def scheduler_config():
    """Create scheduler configuration for testing."""
    return SchedulerConfig(
        notifications_enabled=True,
        poll_interval_minutes=15,
        flex_interval_minutes=10,
        retry_backoff_seconds=30,
        max_retry_backoff_seconds=300
    )
