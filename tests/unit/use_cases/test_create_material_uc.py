"""Tests for CreateMaterialUseCase."""

from itertools import count
from unittest.mock import AsyncMock, MagicMock

import pytest

from estoque.application.dto.requests import CreateMaterialRequest
from estoque.application.notifications import InventoryEvent
from estoque.application.use_cases.create_material import CreateMaterialUseCase, serial_prefix
from estoque.core.entities import ControlMode, OperationKind
from estoque.core.exceptions import InvalidOperationError


@pytest.fixture
def use_case(mock_store: MagicMock, mock_notifier: AsyncMock) -> CreateMaterialUseCase:
    return CreateMaterialUseCase(store=mock_store, notifier=mock_notifier)


class TestSerialPrefix:
    @pytest.mark.parametrize(
        "nome,expected",
        [
            ("Rádio HT", "RAD"),
            ("câmera", "CAM"),
            ("TV 55 pol", "TV5"),
            ("!!", "SER"),
        ],
    )
    def test_prefix(self, nome: str, expected: str):
        assert serial_prefix(nome) == expected


class TestCreateMaterialUseCase:
    async def test_quantity_material_with_opening_stock(
        self, use_case, mock_uow, mock_notifier
    ):
        request = CreateMaterialRequest(
            nome="Cabo XLR", tipo_controle="quantidade", quantidade_inicial=40, usuario="ana"
        )
        result = await use_case.execute(request)

        assert result.material.id == "MAT1"
        assert result.material.tipo_controle == ControlMode.QUANTITY
        assert result.material.quantidade_total == 40
        assert result.material.quantidade_disponivel == 40
        [entry] = result.entries
        assert entry.operacao == OperationKind.ENTRADA_ESTOQUE
        assert entry.quantidade == 40
        assert entry.usuario == "ana"

        notification = mock_notifier.publish.call_args[0][0]
        assert notification.event == InventoryEvent.MATERIAL_CHANGED
        assert notification.material_id == "MAT1"

    async def test_no_entry_without_opening_stock(self, use_case, mock_uow):
        result = await use_case.execute(
            CreateMaterialRequest(nome="Cabo XLR", tipo_controle="quantidade")
        )
        assert result.entries == []
        mock_uow.append_ledger.assert_not_awaited()

    async def test_explicit_id_skips_generation(self, use_case, mock_uow):
        result = await use_case.execute(
            CreateMaterialRequest(id="MAT99", nome="Cabo", tipo_controle="quantidade")
        )
        assert result.material.id == "MAT99"
        mock_uow.next_material_id.assert_not_awaited()

    async def test_serial_material_seeds_units(self, use_case, mock_uow):
        ids = count(1)
        mock_uow.insert_serial.side_effect = lambda s: s.model_copy(update={"id": next(ids)})
        mock_uow.refresh_serial_counters.side_effect = lambda material_id: (
            mock_uow.insert_material.call_args[0][0].model_copy(
                update={"quantidade_total": 3, "quantidade_disponivel": 3}
            )
        )

        result = await use_case.execute(
            CreateMaterialRequest(nome="Rádio HT", tipo_controle="serial", quantidade_seriais=3)
        )

        assert [s.numero for s in result.serials] == ["RAD-001", "RAD-002", "RAD-003"]
        assert all(s.localizacao == "Depósito Principal" for s in result.serials)
        assert [e.serial_id for e in result.entries] == [1, 2, 3]
        assert result.material.quantidade_total == 3
        mock_uow.refresh_serial_counters.assert_awaited_once_with("MAT1")

    async def test_serial_material_rejects_opening_quantity(self, use_case, mock_uow):
        with pytest.raises(InvalidOperationError):
            await use_case.execute(
                CreateMaterialRequest(nome="Rádio", tipo_controle="serial", quantidade_inicial=5)
            )
        mock_uow.insert_material.assert_not_awaited()

    async def test_quantity_material_rejects_serials(self, use_case):
        with pytest.raises(InvalidOperationError):
            await use_case.execute(
                CreateMaterialRequest(nome="Cabo", tipo_controle="quantidade", quantidade_seriais=2)
            )

    async def test_to_response(self, use_case):
        result = await use_case.execute(
            CreateMaterialRequest(nome="Cabo", tipo_controle="quantidade", quantidade_inicial=2)
        )
        response = use_case.to_response(result)
        assert response.material.id == "MAT1"
        assert len(response.movimentos) == 1
        assert response.seriais == []
