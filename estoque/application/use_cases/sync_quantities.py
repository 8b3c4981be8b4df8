"""
Sync Quantities Use Case — repair serial-material counters.

Counters of serial materials are a cache of the serial registry. Rows written
outside this service (imports, manual SQL) can leave them stale; this use case
recomputes them and reports what changed. No ledger entry is written because
no unit moved.
"""

from dataclasses import dataclass, field

from estoque.application.dto.responses import QuantityDriftResponse, QuantitySyncResponse
from estoque.application.retry import run_with_retry
from estoque.application.use_cases.base import InventoryUseCase
from estoque.config import get_logger
from estoque.core.exceptions import InvalidOperationError, NotFoundError
from estoque.core.interfaces.inventory_store import IInventoryStore

logger = get_logger(__name__)

COUNTER_FIELDS = ("quantidade_total", "quantidade_disponivel", "quantidade_manutencao")


@dataclass
class QuantityDrift:
    material_id: str
    campo: str
    valor_anterior: int
    valor_novo: int


@dataclass
class SyncResult:
    checked: int = 0
    drifts: list[QuantityDrift] = field(default_factory=list)


class SyncQuantitiesUseCase(InventoryUseCase):
    """Recompute serial-material counters from the serial registry."""

    async def execute(self, material_id: str | None = None) -> SyncResult:
        store = await self._get_store()
        result = await run_with_retry(self._sync, store, material_id)

        if result.drifts:
            logger.warning(
                "quantities_resynced",
                checked=result.checked,
                drifted=sorted({d.material_id for d in result.drifts}),
            )
        else:
            logger.info("quantities_in_sync", checked=result.checked)
        return result

    async def _sync(self, store: IInventoryStore, material_id: str | None) -> SyncResult:
        result = SyncResult()

        async with store.transaction() as uow:
            materials = await uow.list_serial_materials(material_id)
            if material_id is not None and not materials:
                if await uow.get_material(material_id) is None:
                    raise NotFoundError("Material", material_id)
                raise InvalidOperationError(
                    f"Material {material_id} is not serial-controlled", material_id=material_id
                )

            for material in materials:
                refreshed = await uow.refresh_serial_counters(material.id)
                result.checked += 1
                for campo in COUNTER_FIELDS:
                    before = getattr(material, campo)
                    after = getattr(refreshed, campo)
                    if before != after:
                        result.drifts.append(
                            QuantityDrift(
                                material_id=material.id,
                                campo=campo,
                                valor_anterior=before,
                                valor_novo=after,
                            )
                        )

        return result

    def to_response(self, result: SyncResult) -> QuantitySyncResponse:
        return QuantitySyncResponse(
            verificados=result.checked,
            corrigidos=[
                QuantityDriftResponse(
                    material_id=d.material_id,
                    campo=d.campo,
                    valor_anterior=d.valor_anterior,
                    valor_novo=d.valor_novo,
                )
                for d in result.drifts
            ],
        )
