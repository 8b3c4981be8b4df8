"""
Resolve Return Use Case — settle what came back from an event.

Each call resolves part or all of one allocation's open balance with a single
outcome and writes exactly one ledger entry. Lost and consumed units settle
the whole balance at once.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from estoque.application.dto.requests import ResolveReturnRequest
from estoque.application.dto.responses import (
    AllocationResponse,
    LedgerEntryResponse,
    MaterialResponse,
    ResolveReturnResponse,
    SerialResponse,
)
from estoque.application.notifications import InventoryEvent
from estoque.application.retry import run_with_retry
from estoque.application.use_cases.base import InventoryUseCase
from estoque.config import bind_operation, get_logger
from estoque.core.entities.allocation import Allocation, Evidence, ReturnOutcome
from estoque.core.entities.ledger import LedgerEntry
from estoque.core.entities.material import Material
from estoque.core.entities.serial import SerialUnit
from estoque.core.exceptions import (
    AllocationClosedError,
    InvalidOperationError,
    NotFoundError,
    OverReturnError,
    ValidationError,
)
from estoque.core.interfaces.inventory_store import IInventoryStore, IInventoryUnitOfWork
from estoque.core.services.serial_lifecycle import (
    EVENT_OPERATION,
    OUTCOME_EVENT,
    TransitionContext,
)

logger = get_logger(__name__)


@dataclass
class ReturnResult:
    """Result of resolving a return."""

    allocation: Allocation
    material: Material
    entry: LedgerEntry
    serial: SerialUnit | None = None


def _quantity_counters(material: Material, outcome: ReturnOutcome, quantidade: int) -> dict:
    if outcome == ReturnOutcome.DEVOLVIDO_OK:
        return {"quantidade_disponivel": material.quantidade_disponivel + quantidade}
    if outcome == ReturnOutcome.DEVOLVIDO_DANIFICADO:
        return {"quantidade_manutencao": material.quantidade_manutencao + quantidade}
    return {"quantidade_total": material.quantidade_total - quantidade}


class ResolveReturnUseCase(InventoryUseCase):
    """Resolve an allocation's open balance."""

    async def execute(self, allocation_id: int, request: ResolveReturnRequest) -> ReturnResult:
        """Execute return use case."""
        outcome = ReturnOutcome(request.resultado)
        evidence = Evidence(observacoes=request.observacoes, fotos=request.fotos)
        if outcome.requires_notes and not evidence.has_notes:
            raise ValidationError("observacoes", f"notes are required for '{outcome.value}'")

        bind_operation(allocation_id=allocation_id)
        logger.info("return_started", resultado=outcome.value, quantidade=request.quantidade)

        store = await self._get_store()
        result = await run_with_retry(self._resolve, store, allocation_id, outcome, evidence, request)

        allocation = result.allocation
        logger.info(
            "return_resolved",
            material_id=allocation.material_id,
            resultado=outcome.value,
            quantidade=result.entry.quantidade,
            pendente=allocation.quantidade_pendente,
            fechada=allocation.fechada,
        )
        await self._publish(
            InventoryEvent.MATERIAL_CHANGED,
            allocation.material_id,
            action="return",
            allocation_id=allocation.id,
        )
        if allocation.fechada:
            await self._publish(
                InventoryEvent.ALLOCATION_CLOSED,
                allocation.material_id,
                allocation_id=allocation.id,
                evento_id=allocation.evento_id,
                status_devolucao=allocation.status_devolucao.value,
            )
        return result

    async def _resolve(
        self,
        store: IInventoryStore,
        allocation_id: int,
        outcome: ReturnOutcome,
        evidence: Evidence,
        request: ResolveReturnRequest,
    ) -> ReturnResult:
        async with store.transaction() as uow:
            allocation = await uow.get_allocation(allocation_id)
            if allocation is None:
                raise NotFoundError("Allocation", allocation_id)
            if allocation.fechada:
                raise AllocationClosedError(allocation_id)

            pending = allocation.quantidade_pendente
            quantidade = request.quantidade if request.quantidade is not None else pending
            if quantidade > pending:
                raise OverReturnError(allocation_id, quantidade, pending)

            when = datetime.now(UTC)
            if allocation.serial_id is not None:
                return await self._resolve_serial(uow, allocation, outcome, evidence, request, when)

            if outcome.is_terminal and quantidade != pending:
                raise InvalidOperationError(
                    f"'{outcome.value}' settles the whole open balance of {pending}",
                    allocation_id=allocation_id,
                    requested=quantidade,
                )
            return await self._resolve_quantity(
                uow, allocation, outcome, quantidade, evidence, request, when
            )

    async def _resolve_quantity(
        self,
        uow: IInventoryUnitOfWork,
        allocation: Allocation,
        outcome: ReturnOutcome,
        quantidade: int,
        evidence: Evidence,
        request: ResolveReturnRequest,
        when: datetime,
    ) -> ReturnResult:
        material = await uow.get_material(allocation.material_id)
        material = await uow.update_material(
            material.model_copy(update=_quantity_counters(material, outcome, quantidade))
        )

        resolved = allocation.model_copy(deep=True)
        resolved.record_return(outcome, quantidade, evidence, when)
        resolved = await uow.update_allocation(resolved)

        entry = await uow.append_ledger(
            LedgerEntry.for_allocation(
                resolved,
                EVENT_OPERATION[OUTCOME_EVENT[outcome]],
                quantidade,
                usuario=request.usuario,
                observacoes=evidence.observacoes,
                fotos=evidence.fotos,
                registrado_em=when,
            )
        )
        return ReturnResult(allocation=resolved, material=material, entry=entry)

    async def _resolve_serial(
        self,
        uow: IInventoryUnitOfWork,
        allocation: Allocation,
        outcome: ReturnOutcome,
        evidence: Evidence,
        request: ResolveReturnRequest,
        when: datetime,
    ) -> ReturnResult:
        context = TransitionContext(
            evento_id=allocation.evento_id,
            evento_nome=allocation.evento_nome,
            usuario=request.usuario,
            observacoes=evidence.observacoes,
            fotos=evidence.fotos,
            when=when,
        )
        transition = await self._get_registry().transition(
            uow,
            allocation.serial_id,
            OUTCOME_EVENT[outcome],
            context,
            allocation=allocation,
        )

        resolved = allocation.model_copy(deep=True)
        resolved.record_return(outcome, 1, evidence, when)
        resolved = await uow.update_allocation(resolved)

        material = await uow.get_material(allocation.material_id)
        return ReturnResult(
            allocation=resolved,
            material=material,
            entry=transition.entry,
            serial=transition.serial,
        )

    def to_response(self, result: ReturnResult) -> ResolveReturnResponse:
        """Convert result to API response."""
        return ResolveReturnResponse(
            alocacao=AllocationResponse.model_validate(result.allocation),
            material=MaterialResponse.model_validate(result.material),
            movimento=LedgerEntryResponse.model_validate(result.entry),
            serial=SerialResponse.model_validate(result.serial) if result.serial else None,
        )
