"""
Serial registry service.

Drives serial units through the lifecycle inside a caller's unit of work:
checks the transition table and the allocation preconditions, persists the
new state, appends the ledger entry and refreshes the material counters.
Layer-pure: the unit of work is passed in, nothing is imported from
infrastructure.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from estoque.config import get_logger
from estoque.core.entities.allocation import Allocation
from estoque.core.entities.ledger import LedgerEntry, OperationKind
from estoque.core.entities.serial import SerialStatus, SerialUnit
from estoque.core.exceptions import (
    InvalidOperationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from estoque.core.interfaces.inventory_store import IInventoryUnitOfWork
from estoque.core.services.serial_lifecycle import (
    EVENT_OPERATION,
    FORBIDS_OPEN_ALLOCATION,
    REQUIRES_OPEN_ALLOCATION,
    SerialEvent,
    TransitionContext,
    apply_correction,
    apply_transition,
    next_status,
)

logger = get_logger(__name__)

MIN_REASON_LENGTH = 3


@dataclass
class TransitionResult:
    """Serial after the transition and the ledger entry it wrote."""

    serial: SerialUnit
    entry: LedgerEntry
    previous_status: SerialStatus


class SerialRegistry:
    """
    Serial unit state changes.

    The registry never opens transactions itself; every method takes the
    unit of work of the operation it belongs to.
    """

    def __init__(self, default_location: str, maintenance_location: str) -> None:
        self._default_location = default_location
        self._maintenance_location = maintenance_location

    async def load(self, uow: IInventoryUnitOfWork, serial_id: int) -> SerialUnit:
        serial = await uow.get_serial(serial_id)
        if serial is None:
            raise NotFoundError("Serial", serial_id)
        return serial

    async def transition(
        self,
        uow: IInventoryUnitOfWork,
        serial_id: int,
        event: SerialEvent,
        context: TransitionContext,
        allocation: Allocation | None = None,
    ) -> TransitionResult:
        """
        Apply ``event`` to a serial unit.

        Args:
            uow: Unit of work of the enclosing operation
            serial_id: Serial unit to move
            event: Lifecycle event
            context: Event link, actor and evidence for the ledger entry
            allocation: Allocation being created (allocate) or resolved (returns)

        Raises:
            NotFoundError: Unknown serial
            InvalidTransitionError: Pair not in the table or allocation precondition broken
        """
        serial = await self.load(uow, serial_id)
        next_status(serial, event)

        open_allocation = await uow.get_open_allocation_for_serial(serial_id)
        if event in REQUIRES_OPEN_ALLOCATION and open_allocation is None:
            raise InvalidTransitionError(
                serial_id, serial.status.value, event.value, "no open allocation"
            )
        if event in FORBIDS_OPEN_ALLOCATION and open_allocation is not None:
            if allocation is None or open_allocation.id != allocation.id:
                raise InvalidTransitionError(
                    serial_id,
                    serial.status.value,
                    event.value,
                    f"open allocation {open_allocation.id}",
                )

        if context.evento_id is None and open_allocation is not None:
            context.evento_id = open_allocation.evento_id
            context.evento_nome = open_allocation.evento_nome

        moved = apply_transition(
            serial,
            event,
            context,
            self._default_location,
            self._maintenance_location,
        )
        saved = await uow.update_serial(moved)

        entry = LedgerEntry.for_serial(
            saved,
            EVENT_OPERATION[event],
            allocation=allocation or open_allocation,
            usuario=context.usuario,
            observacoes=context.observacoes,
            fotos=list(context.fotos),
            registrado_em=context.when,
        )
        entry = await uow.append_ledger(entry)
        await uow.refresh_serial_counters(saved.material_id)

        logger.info(
            "serial_transitioned",
            serial_id=serial_id,
            numero=saved.numero,
            serial_event=event.value,
            from_status=serial.status.value,
            to_status=saved.status.value,
        )
        return TransitionResult(serial=saved, entry=entry, previous_status=serial.status)

    async def correct(
        self,
        uow: IInventoryUnitOfWork,
        serial_id: int,
        status: SerialStatus,
        reason: str,
        usuario: str,
    ) -> TransitionResult:
        """
        Force a serial unit into ``status`` with an audited inventory adjustment.

        This is the only way out of ``perdido``/``consumido``. Units with an
        open allocation must go through the return workflow instead.
        """
        if not reason or len(reason.strip()) < MIN_REASON_LENGTH:
            raise ValidationError("motivo", "must have at least 3 characters", reason)
        if not usuario or not usuario.strip():
            raise ValidationError("usuario", "an actor is required for corrections")
        if status == SerialStatus.EM_USO:
            raise InvalidOperationError(
                "Serials enter 'em-uso' only through an allocation",
                serial_id=serial_id,
            )

        serial = await self.load(uow, serial_id)
        if serial.status == status:
            raise InvalidOperationError(
                f"Serial {serial.numero} is already '{status.value}'",
                serial_id=serial_id,
            )
        open_allocation = await uow.get_open_allocation_for_serial(serial_id)
        if open_allocation is not None:
            raise InvalidOperationError(
                f"Serial {serial.numero} has open allocation {open_allocation.id}",
                serial_id=serial_id,
                allocation_id=open_allocation.id,
            )

        when = datetime.now(UTC)
        corrected = apply_correction(
            serial,
            status,
            reason.strip(),
            when,
            self._default_location,
            self._maintenance_location,
        )
        saved = await uow.update_serial(corrected)

        # Signed like any adjustment: -1 when the unit leaves the stock.
        quantidade = -1 if status.is_terminal and serial.status.counts_in_stock else 1
        entry = LedgerEntry.for_serial(
            saved,
            OperationKind.AJUSTE_INVENTARIO,
            quantidade=quantidade,
            usuario=usuario,
            observacoes=reason.strip(),
            registrado_em=when,
        )
        entry = await uow.append_ledger(entry)
        await uow.refresh_serial_counters(saved.material_id)

        logger.warning(
            "serial_corrected",
            serial_id=serial_id,
            numero=saved.numero,
            from_status=serial.status.value,
            to_status=status.value,
            usuario=usuario,
        )
        return TransitionResult(serial=saved, entry=entry, previous_status=serial.status)
