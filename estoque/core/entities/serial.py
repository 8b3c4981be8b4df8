"""Serial unit entity: one individually tracked piece of a serial material."""

from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, Field


class SerialStatus(str, Enum):
    """Lifecycle states of a serial unit."""

    DISPONIVEL = "disponivel"
    EM_USO = "em-uso"
    MANUTENCAO = "manutencao"
    PERDIDO = "perdido"
    CONSUMIDO = "consumido"

    @classmethod
    def _missing_(cls, value: object) -> "SerialStatus | None":
        # Database rows from the web client store "em_uso".
        if value == "em_uso":
            return cls.EM_USO
        return None

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def counts_in_stock(self) -> bool:
        """Whether a unit in this state is part of ``quantidade_total``."""
        return self not in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({SerialStatus.PERDIDO, SerialStatus.CONSUMIDO})


class LossRecord(BaseModel):
    """Why and where a serial unit was lost."""

    evento_id: str | None = None
    data: datetime
    motivo: str | None = None
    fotos: list[str] = Field(default_factory=list)


class SerialUnit(BaseModel):
    """A numbered unit owned by exactly one material."""

    id: int | None = None
    material_id: str
    numero: str
    status: SerialStatus = SerialStatus.DISPONIVEL
    localizacao: str | None = None
    evento_id: str | None = None
    evento_nome: str | None = None
    tags: list[str] = Field(default_factory=list)
    data_aquisicao: date | None = None
    ultima_manutencao: datetime | None = None
    observacoes: str | None = None
    perda: LossRecord | None = None
    version: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
