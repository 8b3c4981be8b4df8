"""Event Allocations Use Case — what an event still has to return."""

from dataclasses import dataclass, field

from estoque.application.dto.responses import AllocationResponse, EventAllocationsResponse
from estoque.application.use_cases.base import InventoryUseCase
from estoque.core.entities.allocation import Allocation


@dataclass
class EventAllocations:
    evento_id: str
    pending_returns: bool
    allocations: list[Allocation] = field(default_factory=list)


class EventAllocationsUseCase(InventoryUseCase):
    """Open allocations of an event; an event must not be archived while any remain."""

    async def execute(self, evento_id: str) -> EventAllocations:
        store = await self._get_store()
        allocations = await store.list_allocations(evento_id=evento_id, open_only=True, limit=None)
        return EventAllocations(
            evento_id=evento_id,
            pending_returns=bool(allocations),
            allocations=allocations,
        )

    async def has_pending_returns(self, evento_id: str) -> bool:
        store = await self._get_store()
        return await store.has_pending_returns(evento_id)

    def to_response(self, result: EventAllocations) -> EventAllocationsResponse:
        return EventAllocationsResponse(
            evento_id=result.evento_id,
            devolucoes_pendentes=result.pending_returns,
            alocacoes=[AllocationResponse.model_validate(a) for a in result.allocations],
        )
