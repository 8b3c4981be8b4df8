"""
Stock Dashboard Use Case — aggregate counts for operators.

Served from an in-process snapshot that is rebuilt once it is older than
``inventory.snapshot_ttl_seconds``. Allocation logic never reads it.
"""

import time
from collections import defaultdict
from dataclasses import dataclass

from estoque.application.dto.responses import (
    CategoryBreakdownResponse,
    DashboardResponse,
    MaterialTotalsResponse,
)
from estoque.application.use_cases.base import InventoryUseCase
from estoque.config import get_logger, get_settings
from estoque.core.entities.dashboard import CategoryBreakdown, MaterialTotals, StockSnapshot
from estoque.core.interfaces.inventory_store import IInventoryStore

logger = get_logger(__name__)


class SnapshotCache:
    """Last snapshot and when it was built."""

    def __init__(self) -> None:
        self.snapshot: StockSnapshot | None = None
        self.built_at: float = 0.0

    def get(self, ttl_seconds: float) -> StockSnapshot | None:
        if self.snapshot is not None and time.time() - self.built_at < ttl_seconds:
            return self.snapshot
        return None

    def put(self, snapshot: StockSnapshot) -> None:
        self.snapshot = snapshot
        self.built_at = time.time()

    @property
    def age_seconds(self) -> float:
        return time.time() - self.built_at if self.snapshot is not None else 0.0

    def invalidate(self) -> None:
        self.snapshot = None
        self.built_at = 0.0


_cache = SnapshotCache()


def get_snapshot_cache() -> SnapshotCache:
    return _cache


@dataclass
class DashboardResult:
    snapshot: StockSnapshot
    age_seconds: float


async def build_snapshot(store: IInventoryStore) -> StockSnapshot:
    """Count serial units per category and status, plus per-material totals."""
    by_category: defaultdict[str, dict[str, int]] = defaultdict(dict)
    for categoria, status, count in await store.count_serials_by_category():
        by_category[categoria][status] = count

    materials = await store.list_materials(limit=None)
    return StockSnapshot(
        categorias=[
            CategoryBreakdown(categoria=categoria, por_status=counts)
            for categoria, counts in sorted(by_category.items())
        ],
        materiais=[
            MaterialTotals(
                material_id=m.id,
                nome=m.nome,
                categoria=m.categoria,
                tipo_controle=m.tipo_controle.value,
                quantidade_total=m.quantidade_total,
                quantidade_disponivel=m.quantidade_disponivel,
                quantidade_manutencao=m.quantidade_manutencao,
                quantidade_em_uso=m.quantidade_em_uso,
            )
            for m in materials
        ],
    )


class StockDashboardUseCase(InventoryUseCase):
    """Dashboard counts from a TTL-cached snapshot."""

    def __init__(self, *args, cache: SnapshotCache | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._cache = cache or get_snapshot_cache()

    async def execute(self, force_refresh: bool = False) -> DashboardResult:
        ttl = get_settings().inventory.snapshot_ttl_seconds
        snapshot = None if force_refresh else self._cache.get(ttl)

        if snapshot is None:
            store = await self._get_store()
            snapshot = await build_snapshot(store)
            self._cache.put(snapshot)
            logger.debug(
                "dashboard_snapshot_built",
                categorias=len(snapshot.categorias),
                materiais=len(snapshot.materiais),
            )

        return DashboardResult(snapshot=snapshot, age_seconds=self._cache.age_seconds)

    def to_response(self, result: DashboardResult) -> DashboardResponse:
        snapshot = result.snapshot
        return DashboardResponse(
            categorias=[CategoryBreakdownResponse.model_validate(c) for c in snapshot.categorias],
            materiais=[MaterialTotalsResponse.model_validate(m) for m in snapshot.materiais],
            gerado_em=snapshot.gerado_em,
            idade_segundos=round(result.age_seconds, 3),
        )
