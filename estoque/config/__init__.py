"""Configuration module."""

from estoque.config.logging import (
    bind_operation,
    clear_operation,
    configure_logging,
    get_logger,
)
from estoque.config.settings import (
    InventorySettings,
    Settings,
    get_settings,
    reset_settings,
)

__all__ = [
    "Settings",
    "InventorySettings",
    "get_settings",
    "reset_settings",
    "configure_logging",
    "get_logger",
    "bind_operation",
    "clear_operation",
]
