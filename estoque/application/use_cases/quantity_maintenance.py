"""Quantity Maintenance Use Case — bulk units in and out of maintenance."""

from datetime import UTC, datetime
from typing import Literal

from estoque.application.dto.requests import QuantityMaintenanceRequest
from estoque.application.dto.responses import (
    LedgerEntryResponse,
    MaterialResponse,
    StockChangeResponse,
)
from estoque.application.notifications import InventoryEvent
from estoque.application.retry import run_with_retry
from estoque.application.use_cases.adjust_quantity import (
    StockChangeResult,
    require_quantity_material,
)
from estoque.application.use_cases.base import InventoryUseCase
from estoque.config import get_logger
from estoque.core.entities.ledger import LedgerEntry, OperationKind
from estoque.core.exceptions import InsufficientStockError, InvalidOperationError
from estoque.core.interfaces.inventory_store import IInventoryStore

logger = get_logger(__name__)

MaintenanceAction = Literal["start", "finish"]


class QuantityMaintenanceUseCase(InventoryUseCase):
    """
    Move bulk units between available and maintenance.

    ``start`` takes units out of the available pool, ``finish`` puts repaired
    units back. Units returned damaged are already in maintenance.
    """

    async def execute(
        self,
        material_id: str,
        request: QuantityMaintenanceRequest,
        action: MaintenanceAction,
    ) -> StockChangeResult:
        """Execute quantity maintenance use case."""
        store = await self._get_store()
        result = await run_with_retry(self._move, store, material_id, request, action)

        logger.info(
            "quantity_maintenance_complete",
            material_id=material_id,
            action=action,
            quantidade=request.quantidade,
            quantidade_manutencao=result.material.quantidade_manutencao,
        )
        await self._publish(InventoryEvent.MATERIAL_CHANGED, material_id, action=f"maintenance_{action}")
        return result

    async def _move(
        self,
        store: IInventoryStore,
        material_id: str,
        request: QuantityMaintenanceRequest,
        action: MaintenanceAction,
    ) -> StockChangeResult:
        quantidade = request.quantidade

        async with store.transaction() as uow:
            material = require_quantity_material(await uow.get_material(material_id), material_id)

            if action == "start":
                if material.quantidade_disponivel < quantidade:
                    raise InsufficientStockError(
                        material_id=material_id,
                        requested=quantidade,
                        available=material.quantidade_disponivel,
                    )
                kind = OperationKind.MANUTENCAO_INICIADA
                disponivel = material.quantidade_disponivel - quantidade
                manutencao = material.quantidade_manutencao + quantidade
            else:
                if material.quantidade_manutencao < quantidade:
                    raise InvalidOperationError(
                        f"Only {material.quantidade_manutencao} units of {material_id} "
                        "are in maintenance",
                        material_id=material_id,
                        requested=quantidade,
                    )
                kind = OperationKind.MANUTENCAO_CONCLUIDA
                disponivel = material.quantidade_disponivel + quantidade
                manutencao = material.quantidade_manutencao - quantidade

            material = await uow.update_material(
                material.model_copy(
                    update={
                        "quantidade_disponivel": disponivel,
                        "quantidade_manutencao": manutencao,
                    }
                )
            )
            entry = await uow.append_ledger(
                LedgerEntry(
                    material_id=material_id,
                    operacao=kind,
                    quantidade=quantidade,
                    usuario=request.usuario,
                    observacoes=request.observacoes,
                    registrado_em=datetime.now(UTC),
                )
            )

        return StockChangeResult(material=material, entry=entry)

    def to_response(self, result: StockChangeResult) -> StockChangeResponse:
        """Convert result to API response."""
        return StockChangeResponse(
            material=MaterialResponse.model_validate(result.material),
            movimento=LedgerEntryResponse.model_validate(result.entry),
        )
