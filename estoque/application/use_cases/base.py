"""Shared wiring for inventory use cases."""

from estoque.application.notifications import (
    InventoryEvent,
    InventoryNotifier,
    Notification,
    get_notifier,
)
from estoque.application.services import get_serial_registry
from estoque.core.interfaces.inventory_store import IInventoryStore
from estoque.core.services import SerialRegistry


class InventoryUseCase:
    """Lazily resolves the store, serial registry and notifier."""

    def __init__(
        self,
        store: IInventoryStore | None = None,
        notifier: InventoryNotifier | None = None,
        registry: SerialRegistry | None = None,
    ):
        self._store = store
        self._notifier = notifier
        self._registry = registry

    async def _get_store(self) -> IInventoryStore:
        if self._store is None:
            from estoque.infrastructure.storage.sqlite import get_inventory_store

            self._store = await get_inventory_store()
        return self._store

    def _get_registry(self) -> SerialRegistry:
        if self._registry is None:
            self._registry = get_serial_registry()
        return self._registry

    async def _publish(self, event: InventoryEvent, material_id: str, **payload) -> None:
        """Notify subscribers; only call after the transaction committed."""
        notifier = self._notifier or get_notifier()
        await notifier.publish(Notification(event=event, material_id=material_id, payload=payload))
