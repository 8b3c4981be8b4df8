"""
Movement ledger entities.

The ledger is the append-only history of every inventory state change.
Entries are immutable once built; the store assigns the id on append.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from estoque.core.entities.allocation import Allocation
from estoque.core.entities.serial import SerialStatus, SerialUnit


class OperationKind(str, Enum):
    """Kinds of ledger entries."""

    ALOCACAO = "alocacao"
    DEVOLUCAO_OK = "devolucao_ok"
    DEVOLUCAO_DANIFICADO = "devolucao_danificado"
    PERDA = "perda"
    CONSUMO = "consumo"
    ENTRADA_ESTOQUE = "entrada_estoque"
    AJUSTE_INVENTARIO = "ajuste_inventario"
    MANUTENCAO_INICIADA = "manutencao_iniciada"
    MANUTENCAO_CONCLUIDA = "manutencao_concluida"


class LedgerEntry(BaseModel):
    """One immutable movement record."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    material_id: str
    serial_id: int | None = None
    serial_numero: str | None = None
    evento_id: str | None = None
    evento_nome: str | None = None
    alocacao_id: int | None = None
    operacao: OperationKind
    quantidade: int
    status_serial: SerialStatus | None = None  # state after the entry, serial entries only
    tipo_envio: str | None = None
    transportadora: str | None = None
    responsavel: str | None = None
    usuario: str | None = None
    observacoes: str | None = None
    fotos: list[str] = Field(default_factory=list)
    registrado_em: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (self.registrado_em, self.id or 0)

    @classmethod
    def for_serial(
        cls,
        serial: SerialUnit,
        operacao: OperationKind,
        allocation: Allocation | None = None,
        **extra,
    ) -> "LedgerEntry":
        """Entry for a single serial unit, snapshotting its allocation if any."""
        fields = {
            "material_id": serial.material_id,
            "serial_id": serial.id,
            "serial_numero": serial.numero,
            "operacao": operacao,
            "quantidade": 1,
            "status_serial": serial.status,
        }
        if allocation is not None:
            fields.update(_allocation_snapshot(allocation))
        fields.update(extra)
        return cls(**fields)

    @classmethod
    def for_allocation(
        cls,
        allocation: Allocation,
        operacao: OperationKind,
        quantidade: int,
        **extra,
    ) -> "LedgerEntry":
        """Entry for a quantity-mode allocation or return."""
        fields = {
            "material_id": allocation.material_id,
            "operacao": operacao,
            "quantidade": quantidade,
            **_allocation_snapshot(allocation),
        }
        fields.update(extra)
        return cls(**fields)


def _allocation_snapshot(allocation: Allocation) -> dict:
    return {
        "evento_id": allocation.evento_id,
        "evento_nome": allocation.evento_nome,
        "alocacao_id": allocation.id,
        "tipo_envio": allocation.tipo_envio.value,
        "transportadora": allocation.transportadora,
        "responsavel": allocation.responsavel,
    }
