"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

# --- Catalog ---


class CreateMaterialRequest(BaseModel):
    """Request to add a material to the catalog."""

    id: str | None = Field(
        default=None,
        description="Material ID (generated as MAT<n> when omitted)",
        examples=["MAT12"],
    )
    nome: str = Field(..., min_length=1, max_length=200, examples=["Rádio HT Motorola"])
    categoria: str = Field(default="", max_length=100, examples=["Comunicação"])
    tipo_controle: Literal["serial", "quantidade"] = Field(
        ...,
        description="Track individually numbered units or a bulk quantity",
    )
    descricao: str | None = None
    unidade: str | None = Field(default=None, max_length=20, description="Defaults to inventory.default_unit")
    valor_unitario: float | None = Field(default=None, ge=0)
    quantidade_inicial: int = Field(
        default=0,
        ge=0,
        description="Opening stock (quantity mode only)",
    )
    quantidade_seriais: int = Field(
        default=0,
        ge=0,
        le=1000,
        description="Serial units to create as <PFX>-001..<PFX>-n (serial mode only)",
    )
    localizacao_padrao: str | None = Field(
        default=None,
        description="Location of seeded serial units (defaults to the main warehouse)",
    )
    usuario: str | None = None


class AdjustQuantityRequest(BaseModel):
    """Manual stock change for a quantity-mode material.

    Either ``delta`` (signed) or ``modo`` + ``quantidade`` must be given.
    ``definir`` sets the total to ``quantidade``.
    """

    delta: int | None = Field(default=None, description="Signed change to the total")
    modo: Literal["adicionar", "remover", "definir"] | None = None
    quantidade: int | None = Field(default=None, ge=0)
    tipo: Literal["ajuste_inventario", "entrada_estoque"] = "ajuste_inventario"
    motivo: str = Field(..., description="Reason for the adjustment (min. 3 characters)")
    usuario: str | None = None


class QuantityMaintenanceRequest(BaseModel):
    """Move bulk units between available and maintenance."""

    quantidade: int = Field(..., gt=0)
    observacoes: str | None = None
    usuario: str | None = None


# --- Serial registry ---


class RegisterSerialRequest(BaseModel):
    """Register a new serial unit under a serial-mode material."""

    numero: str = Field(..., min_length=1, max_length=100, examples=["RAD-014"])
    localizacao: str | None = None
    tags: list[str] = Field(default_factory=list)
    data_aquisicao: date | None = None
    observacoes: str | None = None
    usuario: str | None = None


class SerialTransitionRequest(BaseModel):
    """Trigger a lifecycle event on a serial unit."""

    evento: str = Field(
        ...,
        description="Lifecycle event",
        examples=["start_maintenance", "maintenance_done"],
    )
    observacoes: str | None = None
    fotos: list[str] = Field(default_factory=list)
    usuario: str | None = None


class CorrectSerialRequest(BaseModel):
    """Audited correction of a serial unit's status."""

    status: str = Field(..., examples=["disponivel"])
    motivo: str = Field(..., description="Why the recorded state is wrong")
    usuario: str = Field(..., min_length=1)


# --- Allocations ---


class AllocateMaterialRequest(BaseModel):
    """Commit quantity or specific serial units to an event."""

    evento_id: str = Field(..., min_length=1)
    evento_nome: str | None = None
    quantidade: int | None = Field(default=None, gt=0, description="Quantity mode")
    serial_ids: list[int] | None = Field(default=None, description="Serial mode")
    tipo_envio: Literal["antecipado", "com_tecnicos", "comTecnicos"] = "antecipado"
    transportadora: str | None = None
    rastreamento: str | None = None
    responsavel: str | None = None
    data_envio: datetime | None = None
    usuario: str | None = None


class ResolveReturnRequest(BaseModel):
    """Resolve (part of) an allocation's open balance."""

    resultado: Literal["devolvido_ok", "devolvido_danificado", "perdido", "consumido"]
    quantidade: int | None = Field(
        default=None,
        gt=0,
        description="Units resolved (defaults to the open balance)",
    )
    observacoes: str | None = None
    fotos: list[str] = Field(default_factory=list)
    usuario: str | None = None
