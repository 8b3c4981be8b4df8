"""
Domain exceptions for the inventory service.

Every failure an inventory operation can report is one of these kinds. Only
``ConflictRetryableError`` is meant to be retried automatically; the rest are
business-rule violations or caller mistakes that must reach the operator.
"""

from typing import Any


class EstoqueError(Exception):
    """Base exception for all inventory errors."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Lookup
class NotFoundError(EstoqueError):
    """Unknown material, serial or allocation id."""

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"{entity} not found: {entity_id}",
            code=f"{entity.upper()}_NOT_FOUND",
            details={"entity": entity, "id": entity_id},
        )


class DuplicateKeyError(EstoqueError):
    """Serial number already registered for the material."""

    def __init__(self, material_id: str, numero: str):
        super().__init__(
            f"Serial '{numero}' already exists for material {material_id}",
            code="DUPLICATE_SERIAL",
            details={"material_id": material_id, "numero": numero},
        )


# Business rules
class InvalidOperationError(EstoqueError):
    """Operation does not apply to the material (wrong control mode, retired, ...)."""

    def __init__(self, message: str, **details: Any):
        super().__init__(message, code="INVALID_OPERATION", details=details)


class InvalidTransitionError(EstoqueError):
    """Serial state machine violation."""

    def __init__(self, serial_id: int, status: str, event: str, reason: str | None = None):
        message = f"Serial {serial_id} cannot handle '{event}' while '{status}'"
        if reason:
            message += f": {reason}"
        super().__init__(
            message,
            code="INVALID_TRANSITION",
            details={"serial_id": serial_id, "status": status, "event": event},
        )


class InsufficientStockError(EstoqueError):
    """Not enough available quantity."""

    def __init__(self, material_id: str, requested: float, available: float):
        super().__init__(
            f"Insufficient stock for {material_id}: requested {requested}, available {available}",
            code="INSUFFICIENT_STOCK",
            details={
                "material_id": material_id,
                "requested": requested,
                "available": available,
            },
        )


class SerialUnavailableError(EstoqueError):
    """A named serial is not available for allocation."""

    def __init__(self, serial_id: int, numero: str | None = None, status: str | None = None):
        label = numero or str(serial_id)
        message = f"Serial {label} is not available"
        if status:
            message += f" (status: {status})"
        super().__init__(
            message,
            code="SERIAL_UNAVAILABLE",
            details={"serial_id": serial_id, "numero": numero, "status": status},
        )


class AllocationClosedError(EstoqueError):
    """Return attempted against an allocation that is already closed."""

    def __init__(self, allocation_id: int):
        super().__init__(
            f"Allocation {allocation_id} is already closed",
            code="ALLOCATION_CLOSED",
            details={"allocation_id": allocation_id},
        )


class OverReturnError(EstoqueError):
    """Return quantity exceeds what is still open on the allocation."""

    def __init__(self, allocation_id: int, requested: float, pending: float):
        super().__init__(
            f"Allocation {allocation_id} has only {pending} pending, got {requested}",
            code="OVER_RETURN",
            details={
                "allocation_id": allocation_id,
                "requested": requested,
                "pending": pending,
            },
        )


# Concurrency
class ConflictRetryableError(EstoqueError):
    """Concurrent modification detected; retry the whole operation."""

    retryable = True

    def __init__(self, entity: str, entity_id: Any, reason: str = "version mismatch"):
        super().__init__(
            f"Concurrent modification of {entity} {entity_id}: {reason}",
            code="CONFLICT_RETRYABLE",
            details={"entity": entity, "id": entity_id, "reason": reason},
        )


# Storage
class DatabaseError(EstoqueError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


# Validation
class ValidationError(EstoqueError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value else None,
            },
        )


class ConfigurationError(EstoqueError):
    """Configuration error."""

    pass
