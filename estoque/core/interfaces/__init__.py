"""Core interfaces (ports) for dependency injection."""

from estoque.core.interfaces.inventory_store import IInventoryStore, IInventoryUnitOfWork

__all__ = [
    "IInventoryStore",
    "IInventoryUnitOfWork",
]
