"""
Serial transition use cases.

Maintenance events are triggered directly; allocation and return events only
through their own workflows, which carry the allocation they act on.
Corrections are the audited way out of a terminal state.
"""

from estoque.application.dto.requests import CorrectSerialRequest, SerialTransitionRequest
from estoque.application.dto.responses import (
    LedgerEntryResponse,
    SerialResponse,
    SerialTransitionResponse,
)
from estoque.application.notifications import InventoryEvent
from estoque.application.retry import run_with_retry
from estoque.application.use_cases.base import InventoryUseCase
from estoque.config import get_logger
from estoque.core.entities.serial import SerialStatus
from estoque.core.exceptions import InvalidOperationError, ValidationError
from estoque.core.interfaces.inventory_store import IInventoryStore
from estoque.core.services.serial_lifecycle import (
    MAINTENANCE_EVENTS,
    SerialEvent,
    TransitionContext,
    next_status,
)
from estoque.core.services.serial_registry import TransitionResult

logger = get_logger(__name__)


def parse_event(value: str) -> SerialEvent:
    try:
        return SerialEvent(value)
    except ValueError as e:
        allowed = ", ".join(event.value for event in SerialEvent)
        raise ValidationError("evento", f"unknown event, expected one of: {allowed}", value) from e


def parse_status(value: str) -> SerialStatus:
    try:
        return SerialStatus(value)
    except ValueError as e:
        allowed = ", ".join(status.value for status in SerialStatus)
        raise ValidationError("status", f"unknown status, expected one of: {allowed}", value) from e


class TransitionSerialUseCase(InventoryUseCase):
    """Apply a maintenance event to a serial unit."""

    async def execute(self, serial_id: int, request: SerialTransitionRequest) -> TransitionResult:
        """Execute transition use case."""
        event = parse_event(request.evento)
        store = await self._get_store()
        result = await run_with_retry(self._transition, store, serial_id, event, request)

        await self._publish(
            InventoryEvent.SERIAL_TRANSITIONED,
            result.serial.material_id,
            serial_id=serial_id,
            serial_event=event.value,
            status=result.serial.status.value,
        )
        return result

    async def _transition(
        self,
        store: IInventoryStore,
        serial_id: int,
        event: SerialEvent,
        request: SerialTransitionRequest,
    ) -> TransitionResult:
        registry = self._get_registry()

        async with store.transaction() as uow:
            serial = await registry.load(uow, serial_id)
            next_status(serial, event)
            if event not in MAINTENANCE_EVENTS:
                raise InvalidOperationError(
                    f"'{event.value}' runs through the allocation and return workflow",
                    serial_id=serial_id,
                    event=event.value,
                )
            context = TransitionContext(
                usuario=request.usuario,
                observacoes=request.observacoes,
                fotos=request.fotos,
            )
            return await registry.transition(uow, serial_id, event, context)

    def to_response(self, result: TransitionResult) -> SerialTransitionResponse:
        """Convert result to API response."""
        return SerialTransitionResponse(
            serial=SerialResponse.model_validate(result.serial),
            status_anterior=result.previous_status,
            movimento=LedgerEntryResponse.model_validate(result.entry),
        )


class CorrectSerialUseCase(InventoryUseCase):
    """Audited inventory adjustment of a serial unit's status."""

    async def execute(self, serial_id: int, request: CorrectSerialRequest) -> TransitionResult:
        status = parse_status(request.status)
        store = await self._get_store()
        result = await run_with_retry(self._correct, store, serial_id, status, request)

        await self._publish(
            InventoryEvent.SERIAL_TRANSITIONED,
            result.serial.material_id,
            serial_id=serial_id,
            serial_event="correction",
            status=status.value,
        )
        return result

    async def _correct(
        self,
        store: IInventoryStore,
        serial_id: int,
        status: SerialStatus,
        request: CorrectSerialRequest,
    ) -> TransitionResult:
        registry = self._get_registry()
        async with store.transaction() as uow:
            return await registry.correct(uow, serial_id, status, request.motivo, request.usuario)

    def to_response(self, result: TransitionResult) -> SerialTransitionResponse:
        return SerialTransitionResponse(
            serial=SerialResponse.model_validate(result.serial),
            status_anterior=result.previous_status,
            movimento=LedgerEntryResponse.model_validate(result.entry),
        )
