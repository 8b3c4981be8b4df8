"""Tests for the SerialUnit entity."""

import pytest

from estoque.core.entities import SerialStatus, SerialUnit


class TestSerialStatus:
    def test_in_use_value_uses_hyphen(self):
        assert SerialStatus.EM_USO.value == "em-uso"

    def test_underscore_alias(self):
        assert SerialStatus("em_uso") == SerialStatus.EM_USO

    def test_unknown_value(self):
        with pytest.raises(ValueError):
            SerialStatus("emprestado")

    @pytest.mark.parametrize(
        "status,terminal",
        [
            (SerialStatus.DISPONIVEL, False),
            (SerialStatus.EM_USO, False),
            (SerialStatus.MANUTENCAO, False),
            (SerialStatus.PERDIDO, True),
            (SerialStatus.CONSUMIDO, True),
        ],
    )
    def test_terminal(self, status: SerialStatus, terminal: bool):
        assert status.is_terminal is terminal
        assert status.counts_in_stock is not terminal


class TestSerialUnit:
    def test_defaults(self):
        serial = SerialUnit(material_id="MAT1", numero="RAD-001")
        assert serial.status == SerialStatus.DISPONIVEL
        assert serial.tags == []
        assert serial.perda is None
        assert not serial.is_terminal
