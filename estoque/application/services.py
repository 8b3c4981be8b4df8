"""
Service factory functions for dependency injection.

This module wires settings and infrastructure into core services. Use cases
should import from here.

Clean Architecture: Application layer orchestrates DI, not core layer.
"""

from estoque.config import get_settings
from estoque.core.services import SerialRegistry

# Singleton service instances
_serial_registry: SerialRegistry | None = None


def get_serial_registry() -> SerialRegistry:
    """
    Get or create the SerialRegistry.

    Location names for available and maintenance units come from
    ``inventory`` settings.
    """
    global _serial_registry
    if _serial_registry is None:
        settings = get_settings().inventory
        _serial_registry = SerialRegistry(
            default_location=settings.default_location,
            maintenance_location=settings.maintenance_location,
        )
    return _serial_registry


def reset_services() -> None:
    """Reset all service singletons (for testing)."""
    global _serial_registry
    _serial_registry = None
