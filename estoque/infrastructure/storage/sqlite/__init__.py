"""SQLite storage implementations."""

from estoque.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_pool,
)
from estoque.infrastructure.storage.sqlite.inventory_store import (
    SQLiteInventoryStore,
    SQLiteInventoryUnitOfWork,
)

# Type alias for convenience
InventoryStore = SQLiteInventoryStore

# Singleton instance
_inventory_store: SQLiteInventoryStore | None = None


async def get_inventory_store() -> SQLiteInventoryStore:
    """Get singleton inventory store instance."""
    global _inventory_store
    if _inventory_store is None:
        _inventory_store = SQLiteInventoryStore()
    return _inventory_store


def reset_inventory_store() -> None:
    """Drop the singleton store (for testing)."""
    global _inventory_store
    _inventory_store = None


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    # Store classes
    "SQLiteInventoryStore",
    "SQLiteInventoryUnitOfWork",
    "InventoryStore",
    # Factory functions
    "get_inventory_store",
    "reset_inventory_store",
]
