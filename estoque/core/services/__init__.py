"""
Core business logic services.

Layer-pure services that depend only on:
- estoque/core/entities/*
- estoque/core/interfaces/*
- estoque/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from estoque.core.services.ledger_fold import (
    StockCounters,
    fold_material,
    fold_serial,
    fold_serials,
)
from estoque.core.services.serial_lifecycle import (
    TRANSITIONS,
    SerialEvent,
    TransitionContext,
    apply_transition,
    next_status,
)
from estoque.core.services.serial_registry import SerialRegistry, TransitionResult

__all__ = [
    # Lifecycle
    "SerialEvent",
    "TRANSITIONS",
    "TransitionContext",
    "apply_transition",
    "next_status",
    # Registry
    "SerialRegistry",
    "TransitionResult",
    # Ledger fold
    "StockCounters",
    "fold_material",
    "fold_serial",
    "fold_serials",
]
