"""
Material domain entity for the equipment catalog.

A material is one kind of equipment, tracked either as an undifferentiated
quantity or as individually numbered serial units.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class ControlMode(str, Enum):
    """How the units of a material are tracked."""

    SERIAL = "serial"
    QUANTITY = "quantidade"

    @classmethod
    def _missing_(cls, value: object) -> "ControlMode | None":
        if value == "quantity":
            return cls.QUANTITY
        return None


class Material(BaseModel):
    """
    A catalog entry with its aggregate stock counters.

    For serial-controlled materials the counters are a cache of the serial
    registry and are recomputed by the store on every write.
    """

    id: str | None = None
    nome: str
    categoria: str = ""
    tipo_controle: ControlMode
    descricao: str | None = None
    unidade: str = "un"
    valor_unitario: float | None = None
    quantidade_total: int = 0
    quantidade_disponivel: int = 0
    quantidade_manutencao: int = 0
    ativo: bool = True
    version: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_serial(self) -> bool:
        return self.tipo_controle == ControlMode.SERIAL

    @property
    def quantidade_em_uso(self) -> int:
        """Units currently out at events."""
        return self.quantidade_total - self.quantidade_disponivel - self.quantidade_manutencao

    @property
    def counters_consistent(self) -> bool:
        """True when ``0 <= disponivel <= total`` and nothing is double counted."""
        return (
            0 <= self.quantidade_disponivel <= self.quantidade_total
            and self.quantidade_manutencao >= 0
            and self.quantidade_em_uso >= 0
        )
