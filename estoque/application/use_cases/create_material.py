"""Create Material Use Case — catalog entry with opening stock."""

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import UTC, datetime

from estoque.application.dto.requests import CreateMaterialRequest
from estoque.application.dto.responses import (
    CreateMaterialResponse,
    LedgerEntryResponse,
    MaterialResponse,
    SerialResponse,
)
from estoque.application.notifications import InventoryEvent
from estoque.application.retry import run_with_retry
from estoque.application.use_cases.base import InventoryUseCase
from estoque.config import get_logger, get_settings
from estoque.core.entities.ledger import LedgerEntry, OperationKind
from estoque.core.entities.material import ControlMode, Material
from estoque.core.entities.serial import SerialUnit
from estoque.core.exceptions import InvalidOperationError
from estoque.core.interfaces.inventory_store import IInventoryStore

logger = get_logger(__name__)


def serial_prefix(nome: str) -> str:
    """First three letters of the name, upper-cased and without accents."""
    ascii_name = (
        unicodedata.normalize("NFKD", nome).encode("ascii", "ignore").decode("ascii")
    )
    letters = re.sub(r"[^A-Za-z0-9]", "", ascii_name).upper()
    return letters[:3] or "SER"


@dataclass
class CreateMaterialResult:
    """Result of creating a material."""

    material: Material
    serials: list[SerialUnit] = field(default_factory=list)
    entries: list[LedgerEntry] = field(default_factory=list)


class CreateMaterialUseCase(InventoryUseCase):
    """Add a material to the catalog, optionally with opening stock."""

    async def execute(self, request: CreateMaterialRequest) -> CreateMaterialResult:
        """Execute create material use case."""
        mode = ControlMode(request.tipo_controle)
        if mode == ControlMode.SERIAL and request.quantidade_inicial:
            raise InvalidOperationError(
                "Serial materials derive their quantity from registered serials",
                quantidade_inicial=request.quantidade_inicial,
            )
        if mode == ControlMode.QUANTITY and request.quantidade_seriais:
            raise InvalidOperationError(
                "Quantity materials have no serial units",
                quantidade_seriais=request.quantidade_seriais,
            )

        logger.info(
            "create_material_started",
            nome=request.nome,
            tipo_controle=mode.value,
        )

        store = await self._get_store()
        result = await run_with_retry(self._create, store, request, mode)

        logger.info(
            "create_material_complete",
            material_id=result.material.id,
            serials=len(result.serials),
            quantidade_total=result.material.quantidade_total,
        )
        await self._publish(InventoryEvent.MATERIAL_CHANGED, result.material.id, action="created")
        return result

    async def _create(
        self,
        store: IInventoryStore,
        request: CreateMaterialRequest,
        mode: ControlMode,
    ) -> CreateMaterialResult:
        settings = get_settings().inventory
        opening = request.quantidade_inicial if mode == ControlMode.QUANTITY else 0

        async with store.transaction() as uow:
            when = datetime.now(UTC)
            material_id = request.id or await uow.next_material_id()
            material = await uow.insert_material(
                Material(
                    id=material_id,
                    nome=request.nome.strip(),
                    categoria=request.categoria.strip(),
                    tipo_controle=mode,
                    descricao=request.descricao,
                    unidade=request.unidade or settings.default_unit,
                    valor_unitario=request.valor_unitario,
                    quantidade_total=opening,
                    quantidade_disponivel=opening,
                )
            )
            result = CreateMaterialResult(material=material)

            if opening > 0:
                entry = LedgerEntry(
                    material_id=material_id,
                    operacao=OperationKind.ENTRADA_ESTOQUE,
                    quantidade=opening,
                    usuario=request.usuario,
                    observacoes="Estoque inicial",
                    registrado_em=when,
                )
                result.entries.append(await uow.append_ledger(entry))

            if mode == ControlMode.SERIAL and request.quantidade_seriais > 0:
                prefix = serial_prefix(request.nome)
                location = request.localizacao_padrao or settings.default_location
                for index in range(1, request.quantidade_seriais + 1):
                    serial = await uow.insert_serial(
                        SerialUnit(
                            material_id=material_id,
                            numero=f"{prefix}-{index:03d}",
                            localizacao=location,
                        )
                    )
                    result.serials.append(serial)
                    entry = LedgerEntry.for_serial(
                        serial,
                        OperationKind.ENTRADA_ESTOQUE,
                        usuario=request.usuario,
                        registrado_em=when,
                    )
                    result.entries.append(await uow.append_ledger(entry))
                result.material = await uow.refresh_serial_counters(material_id)

        return result

    def to_response(self, result: CreateMaterialResult) -> CreateMaterialResponse:
        """Convert result to API response."""
        return CreateMaterialResponse(
            material=MaterialResponse.model_validate(result.material),
            seriais=[SerialResponse.model_validate(s) for s in result.serials],
            movimentos=[LedgerEntryResponse.model_validate(e) for e in result.entries],
        )
