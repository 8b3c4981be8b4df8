"""Response DTOs for API endpoints.

Pydantic v2 models for API response serialization.
These are the ONLY contracts between use cases and API layer.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from estoque.core.entities.allocation import ReturnStatus, ShipmentType
from estoque.core.entities.ledger import OperationKind
from estoque.core.entities.material import ControlMode
from estoque.core.entities.serial import SerialStatus


class ProviderHealthResponse(BaseModel):
    """Dependency health status."""

    name: str
    available: bool
    latency_ms: float | None = None
    error: str | None = None


class SchemaGuardResponse(BaseModel):
    """One schema guard and what it lacks."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    passed: bool
    missing: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float
    database: ProviderHealthResponse | None = None
    schema_version: str | None = None
    guards: list[SchemaGuardResponse] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. SERIAL_UNAVAILABLE)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    details: dict[str, Any] = Field(default_factory=dict, description="Structured error context")
    retryable: bool = Field(default=False, description="Whether the same request may succeed if retried")
    path: str | None = Field(default=None, description="Request path")
    request_id: str | None = Field(default=None, description="Id echoed in the X-Request-ID header")
    timestamp: datetime = Field(default_factory=datetime.now)


class PaginatedResponse(BaseModel):
    """Base for paginated responses."""

    total: int
    limit: int
    offset: int
    has_more: bool


# --- Catalog ---


class MaterialResponse(BaseModel):
    """Catalog entry with its stock counters."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    nome: str
    categoria: str
    tipo_controle: ControlMode
    descricao: str | None = None
    unidade: str
    valor_unitario: float | None = None
    quantidade_total: int
    quantidade_disponivel: int
    quantidade_manutencao: int
    quantidade_em_uso: int
    ativo: bool
    version: int
    created_at: datetime
    updated_at: datetime


class MaterialListResponse(PaginatedResponse):
    items: list[MaterialResponse]


class LedgerEntryResponse(BaseModel):
    """One movement ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    material_id: str
    serial_id: int | None = None
    serial_numero: str | None = None
    evento_id: str | None = None
    evento_nome: str | None = None
    alocacao_id: int | None = None
    operacao: OperationKind
    quantidade: int
    status_serial: SerialStatus | None = None
    tipo_envio: str | None = None
    transportadora: str | None = None
    responsavel: str | None = None
    usuario: str | None = None
    observacoes: str | None = None
    fotos: list[str] = Field(default_factory=list)
    registrado_em: datetime


class LossRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    evento_id: str | None = None
    data: datetime
    motivo: str | None = None
    fotos: list[str] = Field(default_factory=list)


class SerialResponse(BaseModel):
    """Serial unit state."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    material_id: str
    numero: str
    status: SerialStatus
    localizacao: str | None = None
    evento_id: str | None = None
    evento_nome: str | None = None
    tags: list[str] = Field(default_factory=list)
    data_aquisicao: date | None = None
    ultima_manutencao: datetime | None = None
    observacoes: str | None = None
    perda: LossRecordResponse | None = None
    version: int
    created_at: datetime
    updated_at: datetime


class CreateMaterialResponse(BaseModel):
    material: MaterialResponse
    seriais: list[SerialResponse] = Field(default_factory=list)
    movimentos: list[LedgerEntryResponse] = Field(default_factory=list)


class StockChangeResponse(BaseModel):
    """Material after a stock change and the entry that recorded it."""

    material: MaterialResponse
    movimento: LedgerEntryResponse


class QuantityDriftResponse(BaseModel):
    """Counter that was out of step with the serial registry."""

    material_id: str
    campo: str
    valor_anterior: int
    valor_novo: int


class QuantitySyncResponse(BaseModel):
    verificados: int
    corrigidos: list[QuantityDriftResponse] = Field(default_factory=list)


class SerialTransitionResponse(BaseModel):
    serial: SerialResponse
    status_anterior: SerialStatus
    movimento: LedgerEntryResponse


# --- Allocations ---


class AllocationResponse(BaseModel):
    """Allocation with its return balance."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    material_id: str
    serial_id: int | None = None
    serial_numero: str | None = None
    evento_id: str
    evento_nome: str | None = None
    tipo_envio: ShipmentType
    transportadora: str | None = None
    rastreamento: str | None = None
    responsavel: str | None = None
    data_envio: datetime | None = None
    quantidade_alocada: int
    quantidade_devolvida: int
    quantidade_baixada: int
    quantidade_pendente: int
    status_devolucao: ReturnStatus
    data_devolucao: datetime | None = None
    observacoes_devolucao: str | None = None
    fotos_devolucao: list[str] = Field(default_factory=list)
    fechada: bool
    created_at: datetime
    updated_at: datetime


class AllocateMaterialResponse(BaseModel):
    material: MaterialResponse
    alocacoes: list[AllocationResponse]
    movimentos: list[LedgerEntryResponse]


class ResolveReturnResponse(BaseModel):
    alocacao: AllocationResponse
    material: MaterialResponse
    movimento: LedgerEntryResponse
    serial: SerialResponse | None = None


class EventAllocationsResponse(BaseModel):
    """Open allocations of one event (archive guard)."""

    evento_id: str
    devolucoes_pendentes: bool
    alocacoes: list[AllocationResponse] = Field(default_factory=list)


# --- Ledger ---


class LedgerReplayResponse(BaseModel):
    material_id: str | None = None
    serial_id: int | None = None
    as_of: datetime | None = None
    total: int
    entries: list[LedgerEntryResponse]


class AuditDiscrepancyResponse(BaseModel):
    material_id: str
    serial_id: int | None = None
    campo: str
    ledger: str | int | None = None
    persistido: str | int | None = None


class AuditReportResponse(BaseModel):
    """Ledger fold compared with persisted state."""

    materiais_verificados: int
    seriais_verificados: int
    consistente: bool
    discrepancias: list[AuditDiscrepancyResponse] = Field(default_factory=list)


# --- Dashboard ---


class CategoryBreakdownResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    categoria: str
    por_status: dict[str, int]
    total: int


class MaterialTotalsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    material_id: str
    nome: str
    categoria: str
    tipo_controle: str
    quantidade_total: int
    quantidade_disponivel: int
    quantidade_manutencao: int
    quantidade_em_uso: int


class DashboardResponse(BaseModel):
    categorias: list[CategoryBreakdownResponse]
    materiais: list[MaterialTotalsResponse]
    gerado_em: datetime
    idade_segundos: float
