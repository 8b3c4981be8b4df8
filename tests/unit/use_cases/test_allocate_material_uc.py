"""Tests for AllocateMaterialUseCase."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from estoque.application.dto.requests import AllocateMaterialRequest
from estoque.application.notifications import InventoryEvent
from estoque.application.use_cases.allocate_material import AllocateMaterialUseCase
from estoque.core.entities import (
    ControlMode,
    Material,
    OperationKind,
    SerialStatus,
    SerialUnit,
    ShipmentType,
)
from estoque.core.exceptions import (
    InsufficientStockError,
    InvalidOperationError,
    NotFoundError,
    SerialUnavailableError,
    ValidationError,
)
from estoque.core.services import SerialRegistry


def _tables(**overrides) -> Material:
    fields = {
        "id": "MAT3",
        "nome": "Mesa dobrável",
        "tipo_controle": ControlMode.QUANTITY,
        "quantidade_total": 10,
        "quantidade_disponivel": 6,
    }
    fields.update(overrides)
    return Material(**fields)


def _radios() -> Material:
    return Material(
        id="MAT1",
        nome="Rádio",
        tipo_controle=ControlMode.SERIAL,
        quantidade_total=2,
        quantidade_disponivel=2,
    )


@pytest.fixture
def use_case(mock_store: MagicMock, mock_notifier: AsyncMock) -> AllocateMaterialUseCase:
    registry = SerialRegistry(default_location="Depósito", maintenance_location="Oficina")
    return AllocateMaterialUseCase(store=mock_store, notifier=mock_notifier, registry=registry)


class TestRequestValidation:
    @pytest.mark.parametrize(
        "fields",
        [
            {},
            {"quantidade": 2, "serial_ids": [1]},
            {"serial_ids": [1, 1]},
        ],
    )
    async def test_quantity_xor_serials(self, use_case, mock_uow, fields: dict):
        with pytest.raises(ValidationError):
            await use_case.execute("MAT3", AllocateMaterialRequest(evento_id="EVT-1", **fields))
        mock_uow.get_material.assert_not_awaited()

    async def test_unknown_material(self, use_case, mock_uow):
        mock_uow.get_material.return_value = None
        with pytest.raises(NotFoundError):
            await use_case.execute("MAT9", AllocateMaterialRequest(evento_id="EVT-1", quantidade=1))

    async def test_retired_material(self, use_case, mock_uow):
        mock_uow.get_material.return_value = _tables(ativo=False)
        with pytest.raises(InvalidOperationError):
            await use_case.execute("MAT3", AllocateMaterialRequest(evento_id="EVT-1", quantidade=1))

    async def test_mode_mismatch(self, use_case, mock_uow):
        mock_uow.get_material.return_value = _tables()
        with pytest.raises(InvalidOperationError):
            await use_case.execute("MAT3", AllocateMaterialRequest(evento_id="EVT-1", serial_ids=[4]))

        mock_uow.get_material.return_value = _radios()
        with pytest.raises(InvalidOperationError):
            await use_case.execute("MAT1", AllocateMaterialRequest(evento_id="EVT-1", quantidade=1))


class TestQuantityAllocation:
    async def test_allocates_and_records(self, use_case, mock_uow, mock_notifier):
        mock_uow.get_material.return_value = _tables()
        request = AllocateMaterialRequest(
            evento_id="EVT-1",
            evento_nome="Feira",
            quantidade=4,
            tipo_envio="comTecnicos",
            responsavel="Bruno",
        )
        result = await use_case.execute("MAT3", request)

        [allocation] = result.allocations
        assert allocation.id == 10
        assert allocation.quantidade_alocada == 4
        assert allocation.tipo_envio == ShipmentType.COM_TECNICOS
        assert result.material.quantidade_disponivel == 2
        assert result.material.quantidade_total == 10

        [entry] = result.entries
        assert entry.operacao == OperationKind.ALOCACAO
        assert entry.quantidade == 4
        assert entry.alocacao_id == 10
        assert entry.evento_nome == "Feira"
        assert entry.responsavel == "Bruno"

        notification = mock_notifier.publish.call_args[0][0]
        assert notification.event == InventoryEvent.ALLOCATION_CREATED
        assert notification.payload["allocation_id"] == 10

    async def test_insufficient_stock_writes_nothing(self, use_case, mock_uow, mock_notifier):
        mock_uow.get_material.return_value = _tables()
        with pytest.raises(InsufficientStockError) as exc_info:
            await use_case.execute("MAT3", AllocateMaterialRequest(evento_id="EVT-1", quantidade=7))

        assert exc_info.value.details["available"] == 6
        mock_uow.insert_allocation.assert_not_awaited()
        mock_uow.append_ledger.assert_not_awaited()
        mock_notifier.publish.assert_not_awaited()


class TestSerialAllocation:
    async def test_unavailable_serial_fails_whole_request(self, use_case, mock_uow):
        mock_uow.get_material.return_value = _radios()
        serials = {
            1: SerialUnit(id=1, material_id="MAT1", numero="RAD-001"),
            2: SerialUnit(id=2, material_id="MAT1", numero="RAD-002", status=SerialStatus.MANUTENCAO),
        }
        mock_uow.get_serial.side_effect = lambda serial_id: serials.get(serial_id)
        mock_uow.get_open_allocation_for_serial.return_value = None

        with pytest.raises(SerialUnavailableError):
            await use_case.execute("MAT1", AllocateMaterialRequest(evento_id="EVT-1", serial_ids=[1, 2]))
        mock_uow.insert_allocation.assert_not_awaited()

    async def test_serial_of_other_material(self, use_case, mock_uow):
        mock_uow.get_material.return_value = _radios()
        mock_uow.get_serial.return_value = SerialUnit(id=7, material_id="MAT8", numero="CAM-001")
        with pytest.raises(SerialUnavailableError):
            await use_case.execute("MAT1", AllocateMaterialRequest(evento_id="EVT-1", serial_ids=[7]))

    async def test_allocates_each_serial(self, use_case, mock_uow):
        mock_uow.get_material.return_value = _radios()
        serial = SerialUnit(id=1, material_id="MAT1", numero="RAD-001")
        mock_uow.get_serial.return_value = serial
        inserted = []

        async def insert_allocation(allocation):
            saved = allocation.model_copy(update={"id": 10})
            inserted.append(saved)
            return saved

        mock_uow.insert_allocation.side_effect = insert_allocation
        mock_uow.get_open_allocation_for_serial.side_effect = lambda serial_id: (
            inserted[-1] if inserted else None
        )
        mock_uow.update_serial.side_effect = lambda s: s

        result = await use_case.execute(
            "MAT1", AllocateMaterialRequest(evento_id="EVT-1", serial_ids=[1])
        )

        [allocation] = result.allocations
        assert allocation.serial_id == 1
        assert allocation.quantidade_alocada == 1
        [entry] = result.entries
        assert entry.operacao == OperationKind.ALOCACAO
        assert entry.status_serial == SerialStatus.EM_USO
        assert entry.alocacao_id == 10
        mock_uow.refresh_serial_counters.assert_awaited_with("MAT1")
