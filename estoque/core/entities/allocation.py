"""
Allocation entities.

An allocation commits catalog quantity, or one specific serial unit, to an
event. Allocations are never deleted: once every allocated unit is returned or
written off the record is closed and kept for history.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class ShipmentType(str, Enum):
    """How the material travels to the event."""

    ANTECIPADO = "antecipado"
    COM_TECNICOS = "com_tecnicos"

    @classmethod
    def _missing_(cls, value: object) -> "ShipmentType | None":
        if value == "comTecnicos":
            return cls.COM_TECNICOS
        return None


class ReturnOutcome(str, Enum):
    """How an allocated unit comes back (or doesn't)."""

    DEVOLVIDO_OK = "devolvido_ok"
    DEVOLVIDO_DANIFICADO = "devolvido_danificado"
    PERDIDO = "perdido"
    CONSUMIDO = "consumido"

    @property
    def is_terminal(self) -> bool:
        """Lost and consumed units leave the stock for good."""
        return self in (ReturnOutcome.PERDIDO, ReturnOutcome.CONSUMIDO)

    @property
    def requires_notes(self) -> bool:
        return self in (ReturnOutcome.DEVOLVIDO_DANIFICADO, ReturnOutcome.PERDIDO)


class ReturnStatus(str, Enum):
    """Return status of an allocation."""

    PENDENTE = "pendente"
    PARCIAL = "parcial"
    DEVOLVIDO_OK = "devolvido_ok"
    DEVOLVIDO_DANIFICADO = "devolvido_danificado"
    PERDIDO = "perdido"
    CONSUMIDO = "consumido"

    @classmethod
    def from_outcome(cls, outcome: ReturnOutcome) -> "ReturnStatus":
        return cls(outcome.value)


class Evidence(BaseModel):
    """Notes and photo references attached to a return."""

    observacoes: str | None = None
    fotos: list[str] = Field(default_factory=list)

    @property
    def has_notes(self) -> bool:
        return bool(self.observacoes and self.observacoes.strip())


class Allocation(BaseModel):
    """Quantity or a single serial committed to one event (MaterialAlocado)."""

    id: int | None = None
    material_id: str
    serial_id: int | None = None
    serial_numero: str | None = None
    evento_id: str
    evento_nome: str | None = None
    tipo_envio: ShipmentType = ShipmentType.ANTECIPADO
    transportadora: str | None = None
    rastreamento: str | None = None
    responsavel: str | None = None
    data_envio: datetime | None = None
    quantidade_alocada: int
    quantidade_devolvida: int = 0
    quantidade_baixada: int = 0
    status_devolucao: ReturnStatus = ReturnStatus.PENDENTE
    data_devolucao: datetime | None = None
    observacoes_devolucao: str | None = None
    fotos_devolucao: list[str] = Field(default_factory=list)
    fechada: bool = False
    version: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def quantidade_pendente(self) -> int:
        """Units still out at the event."""
        return self.quantidade_alocada - self.quantidade_devolvida - self.quantidade_baixada

    def record_return(
        self,
        outcome: ReturnOutcome,
        quantidade: int,
        evidence: Evidence,
        when: datetime,
    ) -> None:
        """Apply a resolved quantity and close the allocation when nothing is pending."""
        if outcome.is_terminal:
            self.quantidade_baixada += quantidade
        else:
            self.quantidade_devolvida += quantidade

        self.fechada = self.quantidade_pendente == 0
        self.status_devolucao = (
            ReturnStatus.from_outcome(outcome) if self.fechada else ReturnStatus.PARCIAL
        )
        self.data_devolucao = when
        if evidence.has_notes:
            self.observacoes_devolucao = evidence.observacoes
        self.fotos_devolucao = [*self.fotos_devolucao, *evidence.fotos]
