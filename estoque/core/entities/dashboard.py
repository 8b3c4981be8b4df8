"""Read-model for the stock dashboard."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from estoque.core.entities.serial import SerialStatus


class MaterialTotals(BaseModel):
    """Per-material counters as shown on the dashboard."""

    material_id: str
    nome: str
    categoria: str
    tipo_controle: str
    quantidade_total: int
    quantidade_disponivel: int
    quantidade_manutencao: int
    quantidade_em_uso: int


class CategoryBreakdown(BaseModel):
    """Serial unit counts for one category, keyed by status value."""

    categoria: str
    por_status: dict[str, int] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.por_status.values())


class StockSnapshot(BaseModel):
    """Point-in-time aggregate of the serial registry and catalog."""

    categorias: list[CategoryBreakdown] = Field(default_factory=list)
    materiais: list[MaterialTotals] = Field(default_factory=list)
    gerado_em: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def count(self, categoria: str, status: SerialStatus) -> int:
        for breakdown in self.categorias:
            if breakdown.categoria == categoria:
                return breakdown.por_status.get(status.value, 0)
        return 0
