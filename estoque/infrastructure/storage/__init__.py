"""Storage infrastructure implementations."""

from estoque.infrastructure.storage.sqlite import (
    SQLiteInventoryStore,
    close_pool,
    get_inventory_store,
    get_pool,
)

__all__ = [
    # SQLite stores
    "SQLiteInventoryStore",
    "get_inventory_store",
    # Connection pool
    "get_pool",
    "close_pool",
]
