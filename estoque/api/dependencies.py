"""
Dependency injection container for FastAPI.

Provides the inventory store and use case instances to route handlers.
"""

from fastapi import Depends

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
from estoque.core.interfaces import IInventoryStore
from estoque.infrastructure.storage.sqlite import get_inventory_store


# Store dependencies
async def get_inv_store() -> IInventoryStore:
    """Get inventory store."""
    return await get_inventory_store()


# Catalog
def get_create_material_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> CreateMaterialUseCase:
    return CreateMaterialUseCase(store=store)


def get_adjust_quantity_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> AdjustQuantityUseCase:
    return AdjustQuantityUseCase(store=store)


def get_quantity_maintenance_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> QuantityMaintenanceUseCase:
    return QuantityMaintenanceUseCase(store=store)


def get_retire_material_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> RetireMaterialUseCase:
    return RetireMaterialUseCase(store=store)


def get_sync_quantities_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> SyncQuantitiesUseCase:
    return SyncQuantitiesUseCase(store=store)


# Serial registry
def get_register_serial_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> RegisterSerialUseCase:
    return RegisterSerialUseCase(store=store)


def get_transition_serial_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> TransitionSerialUseCase:
    return TransitionSerialUseCase(store=store)


def get_correct_serial_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> CorrectSerialUseCase:
    return CorrectSerialUseCase(store=store)


# Allocations
def get_allocate_material_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> AllocateMaterialUseCase:
    """Get allocate material use case."""
    return AllocateMaterialUseCase(store=store)


def get_resolve_return_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> ResolveReturnUseCase:
    """Get resolve return use case."""
    return ResolveReturnUseCase(store=store)


def get_event_allocations_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> EventAllocationsUseCase:
    return EventAllocationsUseCase(store=store)


# Ledger and reporting
def get_replay_ledger_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> ReplayLedgerUseCase:
    return ReplayLedgerUseCase(store=store)


def get_audit_ledger_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> AuditLedgerUseCase:
    return AuditLedgerUseCase(store=store)


def get_stock_dashboard_use_case(
    store: IInventoryStore = Depends(get_inv_store),
) -> StockDashboardUseCase:
    """Get dashboard use case (shares the process-wide snapshot cache)."""
    return StockDashboardUseCase(store=store)
