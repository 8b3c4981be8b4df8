"""Tests for the serial state machine."""

from datetime import UTC, datetime

import pytest

from estoque.core.entities import SerialStatus, SerialUnit
from estoque.core.exceptions import InvalidTransitionError
from estoque.core.services.serial_lifecycle import (
    EVENT_OPERATION,
    FORBIDS_OPEN_ALLOCATION,
    MAINTENANCE_EVENTS,
    OUTCOME_EVENT,
    REQUIRES_OPEN_ALLOCATION,
    TRANSITIONS,
    SerialEvent,
    TransitionContext,
    apply_correction,
    apply_transition,
    next_status,
)

WHEN = datetime(2025, 5, 10, 9, 30, tzinfo=UTC)
DEPOSITO = "Depósito Principal"
OFICINA = "Manutenção"


def _serial(status: SerialStatus = SerialStatus.DISPONIVEL, **kwargs) -> SerialUnit:
    return SerialUnit(id=1, material_id="MAT1", numero="RAD-001", status=status, **kwargs)


def _move(serial: SerialUnit, event: SerialEvent, **context) -> SerialUnit:
    return apply_transition(serial, event, TransitionContext(when=WHEN, **context), DEPOSITO, OFICINA)


class TestTransitionTable:
    def test_every_pair_is_either_valid_or_rejected(self):
        for status in SerialStatus:
            for event in SerialEvent:
                serial = _serial(status)
                if (status, event) in TRANSITIONS:
                    assert next_status(serial, event) == TRANSITIONS[(status, event)]
                else:
                    with pytest.raises(InvalidTransitionError):
                        next_status(serial, event)

    @pytest.mark.parametrize("status", [SerialStatus.PERDIDO, SerialStatus.CONSUMIDO])
    def test_terminal_states_have_no_exits(self, status: SerialStatus):
        assert not [pair for pair in TRANSITIONS if pair[0] == status]
        with pytest.raises(InvalidTransitionError, match="terminal state"):
            next_status(_serial(status), SerialEvent.RETURN_OK)

    def test_every_event_writes_a_ledger_kind(self):
        assert set(EVENT_OPERATION) == set(SerialEvent)

    def test_allocation_preconditions_are_disjoint(self):
        assert not REQUIRES_OPEN_ALLOCATION & FORBIDS_OPEN_ALLOCATION
        assert REQUIRES_OPEN_ALLOCATION == set(OUTCOME_EVENT.values())

    def test_maintenance_events(self):
        assert MAINTENANCE_EVENTS == {SerialEvent.START_MAINTENANCE, SerialEvent.MAINTENANCE_DONE}

    def test_maintenance_is_idempotent_target(self):
        assert next_status(_serial(SerialStatus.MANUTENCAO), SerialEvent.START_MAINTENANCE) == (
            SerialStatus.MANUTENCAO
        )


class TestApplyTransition:
    def test_allocate_links_event(self):
        moved = _move(_serial(), SerialEvent.ALLOCATE, evento_id="EVT-1", evento_nome="Rock Fest")
        assert moved.status == SerialStatus.EM_USO
        assert moved.evento_id == "EVT-1"
        assert moved.localizacao == "Rock Fest"
        assert moved.updated_at == WHEN

    def test_allocate_without_name_uses_event_id_as_location(self):
        moved = _move(_serial(), SerialEvent.ALLOCATE, evento_id="EVT-1")
        assert moved.localizacao == "EVT-1"

    def test_return_ok_goes_back_to_warehouse(self):
        serial = _serial(SerialStatus.EM_USO, evento_id="EVT-1", localizacao="Rock Fest")
        moved = _move(serial, SerialEvent.RETURN_OK)
        assert moved.status == SerialStatus.DISPONIVEL
        assert moved.evento_id is None
        assert moved.localizacao == DEPOSITO

    def test_damaged_return_goes_to_maintenance(self):
        moved = _move(_serial(SerialStatus.EM_USO, evento_id="EVT-1"), SerialEvent.RETURN_DAMAGED)
        assert moved.status == SerialStatus.MANUTENCAO
        assert moved.localizacao == OFICINA

    def test_loss_records_event_and_evidence(self):
        serial = _serial(SerialStatus.EM_USO, evento_id="EVT-1", localizacao="Rock Fest")
        moved = _move(serial, SerialEvent.REPORT_LOST, observacoes="furtado", fotos=["bo.pdf"])
        assert moved.status == SerialStatus.PERDIDO
        assert moved.perda.evento_id == "EVT-1"
        assert moved.perda.motivo == "furtado"
        assert moved.perda.fotos == ["bo.pdf"]
        assert moved.perda.data == WHEN
        assert moved.evento_id is None

    def test_maintenance_done_stamps_date(self):
        moved = _move(_serial(SerialStatus.MANUTENCAO), SerialEvent.MAINTENANCE_DONE)
        assert moved.status == SerialStatus.DISPONIVEL
        assert moved.ultima_manutencao == WHEN

    def test_original_is_untouched(self):
        serial = _serial()
        _move(serial, SerialEvent.ALLOCATE, evento_id="EVT-1")
        assert serial.status == SerialStatus.DISPONIVEL

    def test_identity_is_kept(self):
        moved = _move(_serial(), SerialEvent.START_MAINTENANCE)
        assert (moved.id, moved.material_id, moved.numero) == (1, "MAT1", "RAD-001")


class TestApplyCorrection:
    def test_recover_lost_unit(self):
        serial = _serial(SerialStatus.PERDIDO)
        fixed = apply_correction(serial, SerialStatus.DISPONIVEL, "achado", WHEN, DEPOSITO, OFICINA)
        assert fixed.status == SerialStatus.DISPONIVEL
        assert fixed.perda is None
        assert fixed.localizacao == DEPOSITO

    def test_write_off_records_reason(self):
        fixed = apply_correction(_serial(), SerialStatus.PERDIDO, "não localizado", WHEN, DEPOSITO, OFICINA)
        assert fixed.perda.motivo == "não localizado"
        assert fixed.perda.data == WHEN
