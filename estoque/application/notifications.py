"""
Committed-change notifications.

Use cases publish after their transaction commits. Subscribers (demand
tracking, reimbursements) react without the inventory
core depending on them. A failing subscriber is logged and skipped; it never
undoes the committed operation.
"""

from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from estoque.config import get_logger

logger = get_logger(__name__)


class InventoryEvent(str, Enum):
    """Notifications published after commit."""

    MATERIAL_CHANGED = "material_changed"
    ALLOCATION_CREATED = "allocation_created"
    ALLOCATION_CLOSED = "allocation_closed"
    SERIAL_TRANSITIONED = "serial_transitioned"


@dataclass
class Notification:
    event: InventoryEvent
    material_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    published_at: datetime = field(default_factory=lambda: datetime.now(UTC))


Subscriber = Callable[[Notification], Awaitable[None]]


class InventoryNotifier:
    """In-process publish/subscribe for committed inventory changes."""

    def __init__(self) -> None:
        self._subscribers: defaultdict[InventoryEvent, list[Subscriber]] = defaultdict(list)

    def subscribe(self, event: InventoryEvent, subscriber: Subscriber) -> None:
        self._subscribers[event].append(subscriber)

    def unsubscribe(self, event: InventoryEvent, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers[event]:
            self._subscribers[event].remove(subscriber)

    async def publish(self, notification: Notification) -> int:
        """
        Deliver to every subscriber of the event.

        Returns:
            Number of subscribers that handled the notification
        """
        delivered = 0
        for subscriber in list(self._subscribers[notification.event]):
            try:
                await subscriber(notification)
                delivered += 1
            except Exception as e:
                logger.error(
                    "notification_subscriber_failed",
                    notification_event=notification.event.value,
                    material_id=notification.material_id,
                    subscriber=getattr(subscriber, "__qualname__", repr(subscriber)),
                    error=str(e),
                )
        return delivered


# Global notifier
_notifier: InventoryNotifier | None = None


def get_notifier() -> InventoryNotifier:
    """Get or create the global notifier."""
    global _notifier
    if _notifier is None:
        _notifier = InventoryNotifier()
    return _notifier


def reset_notifier() -> None:
    """Reset notifier (for testing)."""
    global _notifier
    _notifier = None
