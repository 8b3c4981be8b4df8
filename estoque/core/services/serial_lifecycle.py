"""
Serial unit state machine.

Pure functions over ``SerialUnit``: the transition table, the ledger kind each
event writes and the side effects a target state has on location, event link
and loss metadata. NO infrastructure imports.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from estoque.core.entities.allocation import ReturnOutcome
from estoque.core.entities.ledger import OperationKind
from estoque.core.entities.serial import LossRecord, SerialStatus, SerialUnit
from estoque.core.exceptions import InvalidTransitionError


class SerialEvent(str, Enum):
    """Events that move a serial unit between states."""

    ALLOCATE = "allocate"
    RETURN_OK = "return_ok"
    RETURN_DAMAGED = "return_damaged"
    REPORT_LOST = "report_lost"
    REPORT_CONSUMED = "report_consumed"
    MAINTENANCE_DONE = "maintenance_done"
    START_MAINTENANCE = "start_maintenance"


# (from, event) -> to. Pairs missing here are invalid; terminal states have none.
TRANSITIONS: dict[tuple[SerialStatus, SerialEvent], SerialStatus] = {
    (SerialStatus.DISPONIVEL, SerialEvent.ALLOCATE): SerialStatus.EM_USO,
    (SerialStatus.EM_USO, SerialEvent.RETURN_OK): SerialStatus.DISPONIVEL,
    (SerialStatus.EM_USO, SerialEvent.RETURN_DAMAGED): SerialStatus.MANUTENCAO,
    (SerialStatus.EM_USO, SerialEvent.REPORT_LOST): SerialStatus.PERDIDO,
    (SerialStatus.EM_USO, SerialEvent.REPORT_CONSUMED): SerialStatus.CONSUMIDO,
    (SerialStatus.MANUTENCAO, SerialEvent.MAINTENANCE_DONE): SerialStatus.DISPONIVEL,
    (SerialStatus.DISPONIVEL, SerialEvent.START_MAINTENANCE): SerialStatus.MANUTENCAO,
    (SerialStatus.MANUTENCAO, SerialEvent.START_MAINTENANCE): SerialStatus.MANUTENCAO,
}

EVENT_OPERATION: dict[SerialEvent, OperationKind] = {
    SerialEvent.ALLOCATE: OperationKind.ALOCACAO,
    SerialEvent.RETURN_OK: OperationKind.DEVOLUCAO_OK,
    SerialEvent.RETURN_DAMAGED: OperationKind.DEVOLUCAO_DANIFICADO,
    SerialEvent.REPORT_LOST: OperationKind.PERDA,
    SerialEvent.REPORT_CONSUMED: OperationKind.CONSUMO,
    SerialEvent.MAINTENANCE_DONE: OperationKind.MANUTENCAO_CONCLUIDA,
    SerialEvent.START_MAINTENANCE: OperationKind.MANUTENCAO_INICIADA,
}

OUTCOME_EVENT: dict[ReturnOutcome, SerialEvent] = {
    ReturnOutcome.DEVOLVIDO_OK: SerialEvent.RETURN_OK,
    ReturnOutcome.DEVOLVIDO_DANIFICADO: SerialEvent.RETURN_DAMAGED,
    ReturnOutcome.PERDIDO: SerialEvent.REPORT_LOST,
    ReturnOutcome.CONSUMIDO: SerialEvent.REPORT_CONSUMED,
}

# Events resolving an allocation need one open; the others must not have one.
REQUIRES_OPEN_ALLOCATION = frozenset(OUTCOME_EVENT.values())
FORBIDS_OPEN_ALLOCATION = frozenset({SerialEvent.ALLOCATE, SerialEvent.START_MAINTENANCE})

# Events a caller may trigger directly, outside the allocation/return flows.
MAINTENANCE_EVENTS = frozenset({SerialEvent.START_MAINTENANCE, SerialEvent.MAINTENANCE_DONE})


@dataclass
class TransitionContext:
    """Event data carried into a transition."""

    evento_id: str | None = None
    evento_nome: str | None = None
    usuario: str | None = None
    observacoes: str | None = None
    fotos: list[str] = field(default_factory=list)
    when: datetime = field(default_factory=lambda: datetime.now(UTC))


def next_status(serial: SerialUnit, event: SerialEvent) -> SerialStatus:
    """Look up the target state, raising ``InvalidTransitionError`` for unknown pairs."""
    target = TRANSITIONS.get((serial.status, event))
    if target is None:
        reason = "terminal state" if serial.status.is_terminal else None
        raise InvalidTransitionError(serial.id, serial.status.value, event.value, reason)
    return target


def apply_transition(
    serial: SerialUnit,
    event: SerialEvent,
    context: TransitionContext,
    default_location: str,
    maintenance_location: str,
) -> SerialUnit:
    """Return a copy of ``serial`` moved through ``event``."""
    target = next_status(serial, event)
    update: dict = {"status": target, "updated_at": context.when}

    if target == SerialStatus.EM_USO:
        update["evento_id"] = context.evento_id
        update["evento_nome"] = context.evento_nome
        update["localizacao"] = context.evento_nome or context.evento_id
    elif target == SerialStatus.DISPONIVEL:
        update.update(evento_id=None, evento_nome=None, localizacao=default_location)
    elif target == SerialStatus.MANUTENCAO:
        update.update(evento_id=None, evento_nome=None, localizacao=maintenance_location)
    elif target == SerialStatus.PERDIDO:
        update["perda"] = LossRecord(
            evento_id=serial.evento_id,
            data=context.when,
            motivo=context.observacoes,
            fotos=list(context.fotos),
        )
        update.update(evento_id=None, evento_nome=None)
    else:
        update.update(evento_id=None, evento_nome=None)

    if event == SerialEvent.MAINTENANCE_DONE:
        update["ultima_manutencao"] = context.when

    return serial.model_copy(update=update)


def apply_correction(
    serial: SerialUnit,
    status: SerialStatus,
    reason: str,
    when: datetime,
    default_location: str,
    maintenance_location: str,
) -> SerialUnit:
    """Copy of ``serial`` forced into ``status`` by an inventory adjustment."""
    update: dict = {
        "status": status,
        "evento_id": None,
        "evento_nome": None,
        "updated_at": when,
    }
    if status == SerialStatus.DISPONIVEL:
        update["localizacao"] = default_location
    elif status == SerialStatus.MANUTENCAO:
        update["localizacao"] = maintenance_location

    if status == SerialStatus.PERDIDO:
        update["perda"] = LossRecord(data=when, motivo=reason)
    else:
        update["perda"] = None

    return serial.model_copy(update=update)
