"""Tests for the in-process inventory notifier."""

from estoque.application.notifications import (
    InventoryEvent,
    InventoryNotifier,
    Notification,
    get_notifier,
    reset_notifier,
)


class TestInventoryNotifier:
    async def test_delivers_to_subscribers_of_the_event(self):
        notifier = InventoryNotifier()
        received = []

        async def on_created(notification: Notification) -> None:
            received.append(notification)

        notifier.subscribe(InventoryEvent.ALLOCATION_CREATED, on_created)

        delivered = await notifier.publish(
            Notification(event=InventoryEvent.ALLOCATION_CREATED, material_id="MAT1", payload={"a": 1})
        )
        await notifier.publish(Notification(event=InventoryEvent.MATERIAL_CHANGED, material_id="MAT1"))

        assert delivered == 1
        assert [n.payload for n in received] == [{"a": 1}]

    async def test_failing_subscriber_is_skipped(self):
        notifier = InventoryNotifier()
        received = []

        async def broken(notification: Notification) -> None:
            raise RuntimeError("downstream unavailable")

        async def healthy(notification: Notification) -> None:
            received.append(notification.material_id)

        notifier.subscribe(InventoryEvent.ALLOCATION_CLOSED, broken)
        notifier.subscribe(InventoryEvent.ALLOCATION_CLOSED, healthy)

        delivered = await notifier.publish(
            Notification(event=InventoryEvent.ALLOCATION_CLOSED, material_id="MAT2")
        )
        assert delivered == 1
        assert received == ["MAT2"]

    async def test_unsubscribe(self):
        notifier = InventoryNotifier()
        received = []

        async def subscriber(notification: Notification) -> None:
            received.append(notification)

        notifier.subscribe(InventoryEvent.SERIAL_TRANSITIONED, subscriber)
        notifier.unsubscribe(InventoryEvent.SERIAL_TRANSITIONED, subscriber)
        notifier.unsubscribe(InventoryEvent.SERIAL_TRANSITIONED, subscriber)

        assert await notifier.publish(
            Notification(event=InventoryEvent.SERIAL_TRANSITIONED, material_id="MAT1")
        ) == 0
        assert received == []

    def test_global_notifier_is_shared_until_reset(self):
        first = get_notifier()
        assert get_notifier() is first
        reset_notifier()
        assert get_notifier() is not first
