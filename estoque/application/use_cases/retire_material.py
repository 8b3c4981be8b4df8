"""Retire Material Use Case — soft delete of a catalog entry."""

from estoque.application.dto.responses import MaterialResponse
from estoque.application.notifications import InventoryEvent
from estoque.application.retry import run_with_retry
from estoque.application.use_cases.base import InventoryUseCase
from estoque.config import get_logger
from estoque.core.entities.material import Material
from estoque.core.entities.serial import SerialStatus
from estoque.core.exceptions import InvalidOperationError, NotFoundError
from estoque.core.interfaces.inventory_store import IInventoryStore

logger = get_logger(__name__)


class RetireMaterialUseCase(InventoryUseCase):
    """Mark a material inactive once nothing of it is out at an event."""

    async def execute(self, material_id: str) -> Material:
        store = await self._get_store()
        material = await run_with_retry(self._retire, store, material_id)
        logger.info("material_retired", material_id=material_id)
        await self._publish(InventoryEvent.MATERIAL_CHANGED, material_id, action="retired")
        return material

    async def _retire(self, store: IInventoryStore, material_id: str) -> Material:
        async with store.transaction() as uow:
            material = await uow.get_material(material_id)
            if material is None:
                raise NotFoundError("Material", material_id)
            if not material.ativo:
                raise InvalidOperationError(
                    f"Material {material_id} is already retired", material_id=material_id
                )

            in_use = await uow.count_serials(material_id, SerialStatus.EM_USO)
            open_allocations = await uow.count_open_allocations(material_id)
            if in_use or open_allocations:
                raise InvalidOperationError(
                    f"Material {material_id} still has units out at events",
                    material_id=material_id,
                    serials_em_uso=in_use,
                    open_allocations=open_allocations,
                )

            return await uow.update_material(material.model_copy(update={"ativo": False}))

    def to_response(self, material: Material) -> MaterialResponse:
        return MaterialResponse.model_validate(material)
