"""
Notification delivery for new circulars.

This module provides:
- The emitter port used by the sync engine
- A log-based emitter that tracks posted notifications by key
- A webhook emitter that forwards batches as JSON
"""

from collections import OrderedDict
from datetime import datetime
from typing import Optional, Protocol

import httpx
import structlog

from scheduler.models import ItemNotification, NotificationBatch, SummaryNotification

logger = structlog.get_logger(__name__)


class NotificationEmitter(Protocol):
    """Port for the notification surface."""

    async def emit(self, batch: NotificationBatch) -> None:
        """Post every item notification, then the group summary."""
        ...


class LogNotificationEmitter:
    """Posts notifications to the structured log."""

    def __init__(self, max_active: int = 500):
        self.logger = logger.bind(component="notification_emitter")
        # Most recently posted notifications; posting an existing key updates it
        self.active: "OrderedDict[int, ItemNotification]" = OrderedDict()
        self.max_active = max_active
        self.last_summary: Optional[SummaryNotification] = None
        self.last_emitted_at: Optional[datetime] = None

    async def emit(self, batch: NotificationBatch) -> None:
        """
        Post a batch of notifications.

        Args:
            batch: Item notifications and their summary
        """
        for item in batch.items:
            updated = item.key in self.active
            self._track(item)
            self.logger.info(
                "Circular notification posted",
                key=item.key,
                group_key=item.group_key,
                title=item.title,
                body=item.body,
                url=item.action.url,
                updated=updated
            )

        self.last_summary = batch.summary
        self.logger.info(
            "Circular summary posted",
            group_key=batch.summary.group_key,
            title=batch.summary.title,
            message=self._create_summary_content(batch.summary),
            count=batch.summary.count
        )
        self.last_emitted_at = datetime.utcnow()

    def _track(self, item: ItemNotification) -> None:
        """Remember a posted key, evicting the oldest beyond max_active."""
        self.active[item.key] = item
        self.active.move_to_end(item.key)
        while len(self.active) > self.max_active:
            self.active.popitem(last=False)

    def _create_summary_content(self, summary: SummaryNotification) -> str:
        """Create the summary text with one line per circular."""
        if not summary.lines:
            return summary.body
        return f"{summary.body}: " + "; ".join(summary.lines)


class WebhookNotificationEmitter:
    """Forwards notification batches to an HTTP endpoint."""

    def __init__(self, webhook_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.webhook_url = webhook_url
        self.logger = logger.bind(component="webhook_emitter")
        self.client_config = {"timeout": timeout}
        if transport is not None:
            self.client_config["transport"] = transport

    async def emit(self, batch: NotificationBatch) -> None:
        async with httpx.AsyncClient(**self.client_config) as client:
            response = await client.post(self.webhook_url, json=batch.model_dump(mode="json"))
            response.raise_for_status()

        self.logger.info(
            "Notification batch delivered",
            url=self.webhook_url,
            items=len(batch.items),
            status_code=response.status_code
        )
