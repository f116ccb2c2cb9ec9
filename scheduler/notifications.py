"""
Notification content for newly published circulars.
"""

from typing import List, Sequence

from circulars.models import Circular
from scheduler.models import ItemNotification, NotificationAction, NotificationBatch, SummaryNotification

GROUP_KEY = "circulars.NEW_CIRCULAR"

ITEM_TITLE_TEMPLATE = "Circular {id}"
SUMMARY_TITLE = "New circulars"


def pluralize_new_circulars(count: int) -> str:
    """Summary body for `count` new circulars."""
    if count == 1:
        return "1 new circular"
    return f"{count} new circulars"


class NotificationBuilder:
    """Builds per-item and summary notifications for a cycle's new circulars."""

    def __init__(self, viewer_deep_link: str = "circulars://viewer", group_key: str = GROUP_KEY):
        self.viewer_deep_link = viewer_deep_link
        self.group_key = group_key

    def build_item(self, circular: Circular) -> ItemNotification:
        return ItemNotification(
            key=circular.id,
            group_key=self.group_key,
            title=ITEM_TITLE_TEMPLATE.format(id=circular.id),
            body=circular.name,
            action=NotificationAction(
                url=circular.url,
                deep_link=f"{self.viewer_deep_link}/{circular.id}"
            )
        )

    def build_summary(self, new_items: Sequence[Circular]) -> SummaryNotification:
        # The count is always the number of items classified as new
        count = len(new_items)
        return SummaryNotification(
            group_key=self.group_key,
            title=SUMMARY_TITLE,
            body=pluralize_new_circulars(count),
            count=count,
            lines=[circular.name for circular in new_items]
        )

    def build(self, new_items: Sequence[Circular]) -> NotificationBatch:
        """
        Build the notification batch for a cycle.

        Args:
            new_items: Circulars classified as new, in notification order

        Returns:
            One item notification per circular plus a single summary
        """
        items: List[ItemNotification] = [self.build_item(circular) for circular in new_items]
        return NotificationBatch(items=items, summary=self.build_summary(new_items))
