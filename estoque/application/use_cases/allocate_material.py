"""
Allocate Material Use Case — commit stock to an event.

Quantity materials get one allocation for the requested amount. Serial
materials get one allocation per named unit. Every unit is validated before
anything is written, and the whole request commits or fails together.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from estoque.application.dto.requests import AllocateMaterialRequest
from estoque.application.dto.responses import (
    AllocateMaterialResponse,
    AllocationResponse,
    LedgerEntryResponse,
    MaterialResponse,
)
from estoque.application.notifications import InventoryEvent
from estoque.application.retry import run_with_retry
from estoque.application.use_cases.base import InventoryUseCase
from estoque.config import bind_operation, get_logger
from estoque.core.entities.allocation import Allocation, ShipmentType
from estoque.core.entities.ledger import LedgerEntry, OperationKind
from estoque.core.entities.material import Material
from estoque.core.entities.serial import SerialStatus, SerialUnit
from estoque.core.exceptions import (
    InsufficientStockError,
    InvalidOperationError,
    NotFoundError,
    SerialUnavailableError,
    ValidationError,
)
from estoque.core.interfaces.inventory_store import IInventoryStore, IInventoryUnitOfWork
from estoque.core.services.serial_lifecycle import SerialEvent, TransitionContext

logger = get_logger(__name__)


@dataclass
class AllocationResult:
    """Result of an allocation."""

    material: Material
    allocations: list[Allocation] = field(default_factory=list)
    entries: list[LedgerEntry] = field(default_factory=list)


def _new_allocation(material_id: str, request: AllocateMaterialRequest, **fields) -> Allocation:
    return Allocation(
        material_id=material_id,
        evento_id=request.evento_id,
        evento_nome=request.evento_nome,
        tipo_envio=ShipmentType(request.tipo_envio),
        transportadora=request.transportadora,
        rastreamento=request.rastreamento,
        responsavel=request.responsavel,
        data_envio=request.data_envio,
        **fields,
    )


class AllocateMaterialUseCase(InventoryUseCase):
    """Allocate quantity or serial units of one material to an event."""

    async def execute(self, material_id: str, request: AllocateMaterialRequest) -> AllocationResult:
        """Execute allocation use case."""
        has_quantity = request.quantidade is not None
        has_serials = bool(request.serial_ids)
        if has_quantity == has_serials:
            raise ValidationError("quantidade", "give either quantidade or serial_ids")
        if has_serials and len(set(request.serial_ids)) != len(request.serial_ids):
            raise ValidationError("serial_ids", "serial ids must be unique", request.serial_ids)

        bind_operation(material_id=material_id, evento_id=request.evento_id)
        logger.info(
            "allocation_started",
            quantidade=request.quantidade,
            serial_ids=request.serial_ids,
        )

        store = await self._get_store()
        result = await run_with_retry(self._allocate, store, material_id, request)

        logger.info(
            "allocation_created",
            allocation_ids=[a.id for a in result.allocations],
            quantidade_disponivel=result.material.quantidade_disponivel,
        )
        for allocation in result.allocations:
            await self._publish(
                InventoryEvent.ALLOCATION_CREATED,
                material_id,
                allocation_id=allocation.id,
                evento_id=allocation.evento_id,
                serial_id=allocation.serial_id,
                quantidade=allocation.quantidade_alocada,
            )
        return result

    async def _allocate(
        self,
        store: IInventoryStore,
        material_id: str,
        request: AllocateMaterialRequest,
    ) -> AllocationResult:
        async with store.transaction() as uow:
            material = await uow.get_material(material_id)
            if material is None:
                raise NotFoundError("Material", material_id)
            if not material.ativo:
                raise InvalidOperationError(
                    f"Material {material_id} is retired", material_id=material_id
                )

            if material.is_serial:
                if request.quantidade is not None:
                    raise InvalidOperationError(
                        f"Material {material_id} is serial-controlled; name the serial units",
                        material_id=material_id,
                    )
                return await self._allocate_serials(uow, material, request)

            if request.serial_ids:
                raise InvalidOperationError(
                    f"Material {material_id} is quantity-controlled; give a quantity",
                    material_id=material_id,
                )
            return await self._allocate_quantity(uow, material, request)

    async def _allocate_quantity(
        self,
        uow: IInventoryUnitOfWork,
        material: Material,
        request: AllocateMaterialRequest,
    ) -> AllocationResult:
        quantidade = request.quantidade
        if material.quantidade_disponivel < quantidade:
            raise InsufficientStockError(
                material_id=material.id,
                requested=quantidade,
                available=material.quantidade_disponivel,
            )

        allocation = await uow.insert_allocation(
            _new_allocation(material.id, request, quantidade_alocada=quantidade)
        )
        material = await uow.update_material(
            material.model_copy(
                update={"quantidade_disponivel": material.quantidade_disponivel - quantidade}
            )
        )
        entry = await uow.append_ledger(
            LedgerEntry.for_allocation(
                allocation,
                OperationKind.ALOCACAO,
                quantidade,
                usuario=request.usuario,
                registrado_em=datetime.now(UTC),
            )
        )
        return AllocationResult(material=material, allocations=[allocation], entries=[entry])

    async def _allocate_serials(
        self,
        uow: IInventoryUnitOfWork,
        material: Material,
        request: AllocateMaterialRequest,
    ) -> AllocationResult:
        serials = [
            await self._check_serial(uow, material, serial_id) for serial_id in request.serial_ids
        ]

        registry = self._get_registry()
        result = AllocationResult(material=material)
        context = TransitionContext(
            evento_id=request.evento_id,
            evento_nome=request.evento_nome,
            usuario=request.usuario,
            when=datetime.now(UTC),
        )
        for serial in serials:
            allocation = await uow.insert_allocation(
                _new_allocation(
                    material.id,
                    request,
                    serial_id=serial.id,
                    serial_numero=serial.numero,
                    quantidade_alocada=1,
                )
            )
            transition = await registry.transition(
                uow, serial.id, SerialEvent.ALLOCATE, context, allocation=allocation
            )
            result.allocations.append(allocation)
            result.entries.append(transition.entry)

        result.material = await uow.get_material(material.id)
        return result

    @staticmethod
    async def _check_serial(
        uow: IInventoryUnitOfWork,
        material: Material,
        serial_id: int,
    ) -> SerialUnit:
        serial = await uow.get_serial(serial_id)
        if serial is None:
            raise NotFoundError("Serial", serial_id)
        if serial.material_id != material.id:
            raise SerialUnavailableError(serial_id, serial.numero, f"belongs to {serial.material_id}")
        if serial.status != SerialStatus.DISPONIVEL:
            raise SerialUnavailableError(serial_id, serial.numero, serial.status.value)
        if await uow.get_open_allocation_for_serial(serial_id) is not None:
            raise SerialUnavailableError(serial_id, serial.numero, "open allocation")
        return serial

    def to_response(self, result: AllocationResult) -> AllocateMaterialResponse:
        """Convert result to API response."""
        return AllocateMaterialResponse(
            material=MaterialResponse.model_validate(result.material),
            alocacoes=[AllocationResponse.model_validate(a) for a in result.allocations],
            movimentos=[LedgerEntryResponse.model_validate(e) for e in result.entries],
        )
