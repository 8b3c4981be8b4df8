"""Data Transfer Objects for API layer.

Request DTOs: Validate and parse incoming API requests.
Response DTOs: Structure and serialize API responses.

These are the ONLY contracts between API handlers and use cases.
"""

from estoque.application.dto.requests import (
    AdjustQuantityRequest,
    AllocateMaterialRequest,
    CorrectSerialRequest,
    CreateMaterialRequest,
    QuantityMaintenanceRequest,
    RegisterSerialRequest,
    ResolveReturnRequest,
    SerialTransitionRequest,
)
from estoque.application.dto.responses import (
    AllocateMaterialResponse,
    AllocationResponse,
    AuditDiscrepancyResponse,
    AuditReportResponse,
    CreateMaterialResponse,
    DashboardResponse,
    ErrorResponse,
    EventAllocationsResponse,
    HealthResponse,
    LedgerEntryResponse,
    LedgerReplayResponse,
    MaterialListResponse,
    MaterialResponse,
    PaginatedResponse,
    ProviderHealthResponse,
    SchemaGuardResponse,
    QuantitySyncResponse,
    ResolveReturnResponse,
    SerialResponse,
    SerialTransitionResponse,
    StockChangeResponse,
)

__all__ = [
    # Requests
    "CreateMaterialRequest",
    "AdjustQuantityRequest",
    "QuantityMaintenanceRequest",
    "RegisterSerialRequest",
    "SerialTransitionRequest",
    "CorrectSerialRequest",
    "AllocateMaterialRequest",
    "ResolveReturnRequest",
    # Responses
    "MaterialResponse",
    "MaterialListResponse",
    "CreateMaterialResponse",
    "StockChangeResponse",
    "QuantitySyncResponse",
    "SerialResponse",
    "SerialTransitionResponse",
    "AllocationResponse",
    "AllocateMaterialResponse",
    "ResolveReturnResponse",
    "EventAllocationsResponse",
    "LedgerEntryResponse",
    "LedgerReplayResponse",
    "AuditReportResponse",
    "AuditDiscrepancyResponse",
    "DashboardResponse",
    "HealthResponse",
    "ProviderHealthResponse",
    "SchemaGuardResponse",
    "ErrorResponse",
    "PaginatedResponse",
]
