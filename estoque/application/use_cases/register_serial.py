"""Register Serial Use Case — new numbered unit enters stock."""

from dataclasses import dataclass
from datetime import UTC, datetime

from estoque.application.dto.requests import RegisterSerialRequest
from estoque.application.dto.responses import (
    LedgerEntryResponse,
    SerialResponse,
    SerialTransitionResponse,
)
from estoque.application.notifications import InventoryEvent
from estoque.application.retry import run_with_retry
from estoque.application.use_cases.base import InventoryUseCase
from estoque.config import get_logger, get_settings
from estoque.core.entities.ledger import LedgerEntry, OperationKind
from estoque.core.entities.material import Material
from estoque.core.entities.serial import SerialStatus, SerialUnit
from estoque.core.exceptions import DuplicateKeyError, InvalidOperationError, NotFoundError
from estoque.core.interfaces.inventory_store import IInventoryStore

logger = get_logger(__name__)


@dataclass
class RegisterSerialResult:
    serial: SerialUnit
    entry: LedgerEntry
    material: Material


class RegisterSerialUseCase(InventoryUseCase):
    """Register a serial unit as available stock."""

    async def execute(self, material_id: str, request: RegisterSerialRequest) -> RegisterSerialResult:
        """Execute register serial use case."""
        store = await self._get_store()
        result = await run_with_retry(self._register, store, material_id, request)

        logger.info(
            "serial_registered",
            material_id=material_id,
            serial_id=result.serial.id,
            numero=result.serial.numero,
            quantidade_total=result.material.quantidade_total,
        )
        await self._publish(
            InventoryEvent.MATERIAL_CHANGED,
            material_id,
            action="serial_registered",
            serial_id=result.serial.id,
        )
        return result

    async def _register(
        self,
        store: IInventoryStore,
        material_id: str,
        request: RegisterSerialRequest,
    ) -> RegisterSerialResult:
        numero = request.numero.strip()

        async with store.transaction() as uow:
            material = await uow.get_material(material_id)
            if material is None:
                raise NotFoundError("Material", material_id)
            if not material.is_serial:
                raise InvalidOperationError(
                    f"Material {material_id} is quantity-controlled", material_id=material_id
                )
            if not material.ativo:
                raise InvalidOperationError(
                    f"Material {material_id} is retired", material_id=material_id
                )
            if await uow.get_serial_by_number(material_id, numero) is not None:
                raise DuplicateKeyError(material_id, numero)

            serial = await uow.insert_serial(
                SerialUnit(
                    material_id=material_id,
                    numero=numero,
                    status=SerialStatus.DISPONIVEL,
                    localizacao=request.localizacao or get_settings().inventory.default_location,
                    tags=request.tags,
                    data_aquisicao=request.data_aquisicao,
                    observacoes=request.observacoes,
                )
            )
            entry = await uow.append_ledger(
                LedgerEntry.for_serial(
                    serial,
                    OperationKind.ENTRADA_ESTOQUE,
                    usuario=request.usuario,
                    observacoes=request.observacoes,
                    registrado_em=datetime.now(UTC),
                )
            )
            material = await uow.refresh_serial_counters(material_id)

        return RegisterSerialResult(serial=serial, entry=entry, material=material)

    def to_response(self, result: RegisterSerialResult) -> SerialTransitionResponse:
        """Convert result to API response."""
        return SerialTransitionResponse(
            serial=SerialResponse.model_validate(result.serial),
            status_anterior=result.serial.status,
            movimento=LedgerEntryResponse.model_validate(result.entry),
        )
