"""
Models for the sync engine.

This module defines Pydantic models for:
- Diff results
- Notification descriptors
- Cycle outcomes and reports
- Scheduler configuration
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from circulars.models import Circular


class DiffMode(str, Enum):
    """How novelty is decided."""
    LENGTH = "length"
    BY_ID = "by_id"


class SyncOutcome(str, Enum):
    """Result of one sync cycle, as seen by the scheduler."""
    SUCCESS = "success"
    RETRY = "retry"


class DiffResult(BaseModel):
    """Comparison between the stored snapshot and a fetch result."""
    changed: bool = Field(default=False)
    inserted_start: int = Field(default=0, ge=0, description="Index in new_list of the first new item")
    new_items: List[Circular] = Field(default_factory=list)
    must_replace: bool = Field(default=False, description="Store must discard prior entries")


class NotificationAction(BaseModel):
    """Action reference attached to a notification. Passed through untouched."""
    url: str = Field(..., description="Circular document location")
    mime_type: str = Field(default="application/pdf")
    deep_link: str = Field(..., description="Link to the in-app viewer")


class ItemNotification(BaseModel):
    """Per-circular notification, keyed by circular id."""
    key: int = Field(..., description="Dedupe key; re-posting a key updates the notification")
    group_key: str = Field(..., description="Group the notification collapses into")
    title: str
    body: str
    action: NotificationAction


class SummaryNotification(BaseModel):
    """Group header collapsing the per-item notifications of a cycle."""
    group_key: str
    title: str
    body: str
    count: int = Field(..., ge=0)
    lines: List[str] = Field(default_factory=list, description="Inbox style lines, one per circular")


class NotificationBatch(BaseModel):
    """Everything one cycle asks the emitter to post."""
    items: List[ItemNotification] = Field(default_factory=list)
    summary: SummaryNotification


class CycleReport(BaseModel):
    """Summary of one sync cycle."""
    cycle_id: str = Field(..., description="Unique cycle identifier")
    started_at: datetime = Field(default_factory=datetime.utcnow)
    outcome: SyncOutcome = Field(default=SyncOutcome.SUCCESS)

    snapshot_size: int = Field(default=0)
    fetched_size: Optional[int] = Field(default=None)
    new_items: int = Field(default=0)
    replaced: bool = Field(default=False)
    notifications_emitted: bool = Field(default=False)

    duration_seconds: float = Field(default=0.0)
    errors: List[str] = Field(default_factory=list)


class SchedulerConfig(BaseModel):
    """Configuration for the periodic poll registration."""
    notifications_enabled: bool = Field(default=True)
    poll_interval_minutes: int = Field(default=15, ge=15, description="Repeat interval")
    flex_interval_minutes: int = Field(default=10, ge=5, description="Window in which a run may start")
    retry_backoff_seconds: int = Field(default=30, ge=1)
    max_retry_backoff_seconds: int = Field(default=5 * 60 * 60, ge=1)
    timezone: str = Field(default="UTC")
