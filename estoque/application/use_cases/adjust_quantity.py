"""Adjust Quantity Use Case — manual stock change for bulk materials."""

from dataclasses import dataclass
from datetime import UTC, datetime

from estoque.application.dto.requests import AdjustQuantityRequest
from estoque.application.dto.responses import (
    LedgerEntryResponse,
    MaterialResponse,
    StockChangeResponse,
)
from estoque.application.notifications import InventoryEvent
from estoque.application.retry import run_with_retry
from estoque.application.use_cases.base import InventoryUseCase
from estoque.config import get_logger
from estoque.core.entities.ledger import LedgerEntry, OperationKind
from estoque.core.entities.material import Material
from estoque.core.exceptions import (
    InsufficientStockError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from estoque.core.interfaces.inventory_store import IInventoryStore

logger = get_logger(__name__)

MIN_REASON_LENGTH = 3


@dataclass
class StockChangeResult:
    """Material after the change and the ledger entry recording it."""

    material: Material
    entry: LedgerEntry


def resolve_delta(request: AdjustQuantityRequest, material: Material) -> int:
    """Signed change to the total implied by the request."""
    if request.delta is not None:
        return request.delta
    if request.modo == "adicionar":
        return request.quantidade
    if request.modo == "remover":
        return -request.quantidade
    return request.quantidade - material.quantidade_total


def require_quantity_material(material: Material | None, material_id: str) -> Material:
    """Existing, active, quantity-mode material or the matching error."""
    if material is None:
        raise NotFoundError("Material", material_id)
    if material.is_serial:
        raise InvalidOperationError(
            f"Material {material_id} is serial-controlled; use the serial registry",
            material_id=material_id,
        )
    if not material.ativo:
        raise InvalidOperationError(f"Material {material_id} is retired", material_id=material_id)
    return material


class AdjustQuantityUseCase(InventoryUseCase):
    """Inventory adjustment or stock entry for a quantity-mode material."""

    async def execute(self, material_id: str, request: AdjustQuantityRequest) -> StockChangeResult:
        """Execute adjust quantity use case."""
        if request.delta is not None and request.modo is not None:
            raise ValidationError("delta", "use either delta or modo, not both")
        if request.delta is None and (request.modo is None or request.quantidade is None):
            raise ValidationError("modo", "modo and quantidade are required without delta")
        if len(request.motivo.strip()) < MIN_REASON_LENGTH:
            raise ValidationError("motivo", "must have at least 3 characters", request.motivo)

        logger.info(
            "adjust_quantity_started",
            material_id=material_id,
            tipo=request.tipo,
            modo=request.modo,
            delta=request.delta,
        )

        store = await self._get_store()
        result = await run_with_retry(self._adjust, store, material_id, request)

        logger.info(
            "adjust_quantity_complete",
            material_id=material_id,
            delta=result.entry.quantidade,
            quantidade_total=result.material.quantidade_total,
            quantidade_disponivel=result.material.quantidade_disponivel,
        )
        await self._publish(InventoryEvent.MATERIAL_CHANGED, material_id, action="adjusted")
        return result

    async def _adjust(
        self,
        store: IInventoryStore,
        material_id: str,
        request: AdjustQuantityRequest,
    ) -> StockChangeResult:
        kind = OperationKind(request.tipo)

        async with store.transaction() as uow:
            material = require_quantity_material(await uow.get_material(material_id), material_id)
            delta = resolve_delta(request, material)

            if delta == 0:
                raise ValidationError("quantidade", "adjustment does not change the stock")
            if kind == OperationKind.ENTRADA_ESTOQUE and delta < 0:
                raise ValidationError("delta", "stock entries must be positive", delta)
            if material.quantidade_disponivel + delta < 0:
                raise InsufficientStockError(
                    material_id=material_id,
                    requested=-delta,
                    available=material.quantidade_disponivel,
                )

            material = await uow.update_material(
                material.model_copy(
                    update={
                        "quantidade_total": material.quantidade_total + delta,
                        "quantidade_disponivel": material.quantidade_disponivel + delta,
                    }
                )
            )
            entry = await uow.append_ledger(
                LedgerEntry(
                    material_id=material_id,
                    operacao=kind,
                    quantidade=delta,
                    usuario=request.usuario,
                    observacoes=request.motivo.strip(),
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
