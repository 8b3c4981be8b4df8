"""Core domain entities."""

from estoque.core.entities.allocation import (
    Allocation,
    Evidence,
    ReturnOutcome,
    ReturnStatus,
    ShipmentType,
)
from estoque.core.entities.dashboard import (
    CategoryBreakdown,
    MaterialTotals,
    StockSnapshot,
)
from estoque.core.entities.ledger import LedgerEntry, OperationKind
from estoque.core.entities.material import ControlMode, Material
from estoque.core.entities.serial import (
    TERMINAL_STATUSES,
    LossRecord,
    SerialStatus,
    SerialUnit,
)

__all__ = [
    # Catalog
    "Material",
    "ControlMode",
    # Serial registry
    "SerialUnit",
    "SerialStatus",
    "LossRecord",
    "TERMINAL_STATUSES",
    # Allocations
    "Allocation",
    "Evidence",
    "ShipmentType",
    "ReturnOutcome",
    "ReturnStatus",
    # Ledger
    "LedgerEntry",
    "OperationKind",
    # Dashboard
    "StockSnapshot",
    "CategoryBreakdown",
    "MaterialTotals",
]
