"""Application use cases."""

from estoque.application.use_cases.adjust_quantity import AdjustQuantityUseCase, StockChangeResult
from estoque.application.use_cases.allocate_material import AllocateMaterialUseCase, AllocationResult
from estoque.application.use_cases.audit_ledger import AuditLedgerUseCase, AuditReport, Discrepancy
from estoque.application.use_cases.base import InventoryUseCase
from estoque.application.use_cases.create_material import (
    CreateMaterialResult,
    CreateMaterialUseCase,
    serial_prefix,
)
from estoque.application.use_cases.event_allocations import (
    EventAllocations,
    EventAllocationsUseCase,
)
from estoque.application.use_cases.quantity_maintenance import QuantityMaintenanceUseCase
from estoque.application.use_cases.register_serial import (
    RegisterSerialResult,
    RegisterSerialUseCase,
)
from estoque.application.use_cases.replay_ledger import LedgerReplay, ReplayLedgerUseCase
from estoque.application.use_cases.resolve_return import ResolveReturnUseCase, ReturnResult
from estoque.application.use_cases.retire_material import RetireMaterialUseCase
from estoque.application.use_cases.stock_dashboard import (
    DashboardResult,
    SnapshotCache,
    StockDashboardUseCase,
    get_snapshot_cache,
)
from estoque.application.use_cases.sync_quantities import (
    QuantityDrift,
    SyncQuantitiesUseCase,
    SyncResult,
)
from estoque.application.use_cases.transition_serial import (
    CorrectSerialUseCase,
    TransitionSerialUseCase,
)

__all__ = [
    "InventoryUseCase",
    # Catalog
    "CreateMaterialUseCase",
    "CreateMaterialResult",
    "serial_prefix",
    "AdjustQuantityUseCase",
    "StockChangeResult",
    "QuantityMaintenanceUseCase",
    "RetireMaterialUseCase",
    "SyncQuantitiesUseCase",
    "SyncResult",
    "QuantityDrift",
    # Serial registry
    "RegisterSerialUseCase",
    "RegisterSerialResult",
    "TransitionSerialUseCase",
    "CorrectSerialUseCase",
    # Allocations
    "AllocateMaterialUseCase",
    "AllocationResult",
    "ResolveReturnUseCase",
    "ReturnResult",
    "EventAllocationsUseCase",
    "EventAllocations",
    # Ledger
    "LedgerReplay",
    "ReplayLedgerUseCase",
    "AuditLedgerUseCase",
    "AuditReport",
    "Discrepancy",
    # Dashboard
    "StockDashboardUseCase",
    "DashboardResult",
    "SnapshotCache",
    "get_snapshot_cache",
]
