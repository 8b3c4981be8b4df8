"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates business logic by:
1. Defining request/response DTOs for API contracts
2. Implementing use cases that run inventory operations in one transaction
3. Providing factory functions for dependency injection

Use cases are the only entry point for API handlers.
"""

from estoque.application.notifications import (
    InventoryEvent,
    InventoryNotifier,
    Notification,
    get_notifier,
    reset_notifier,
)
from estoque.application.retry import run_with_retry
from estoque.application.services import get_serial_registry, reset_services
from estoque.application.use_cases import (
    AdjustQuantityUseCase,
    AllocateMaterialUseCase,
    AuditLedgerUseCase,
    CorrectSerialUseCase,
    CreateMaterialUseCase,
    EventAllocationsUseCase,
    QuantityMaintenanceUseCase,
    RegisterSerialUseCase,
    ReplayLedgerUseCase,
    ResolveReturnUseCase,
    RetireMaterialUseCase,
    StockDashboardUseCase,
    SyncQuantitiesUseCase,
    TransitionSerialUseCase,
)

__all__ = [
    # Notifications
    "InventoryEvent",
    "InventoryNotifier",
    "Notification",
    "get_notifier",
    "reset_notifier",
    # Retry
    "run_with_retry",
    # Use Cases
    "CreateMaterialUseCase",
    "AdjustQuantityUseCase",
    "QuantityMaintenanceUseCase",
    "RetireMaterialUseCase",
    "SyncQuantitiesUseCase",
    "RegisterSerialUseCase",
    "TransitionSerialUseCase",
    "CorrectSerialUseCase",
    "AllocateMaterialUseCase",
    "ResolveReturnUseCase",
    "EventAllocationsUseCase",
    "ReplayLedgerUseCase",
    "AuditLedgerUseCase",
    "StockDashboardUseCase",
    # Service factories
    "get_serial_registry",
    "reset_services",
]
