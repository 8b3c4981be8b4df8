"""Allocation and return endpoints."""

from fastapi import APIRouter, Depends, Query

from estoque.api.dependencies import (
    get_event_allocations_use_case,
    get_inv_store,
    get_resolve_return_use_case,
)
from estoque.application.dto.requests import ResolveReturnRequest
from estoque.application.dto.responses import (
    AllocationResponse,
    ErrorResponse,
    EventAllocationsResponse,
    ResolveReturnResponse,
)
from estoque.application.use_cases import EventAllocationsUseCase, ResolveReturnUseCase
from estoque.core.exceptions import NotFoundError
from estoque.core.interfaces import IInventoryStore

router = APIRouter(prefix="/api/estoque", tags=["alocacoes"])


@router.get("/alocacoes", response_model=list[AllocationResponse])
async def list_allocations(
    material_id: str | None = None,
    evento_id: str | None = None,
    abertas: bool = False,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    store: IInventoryStore = Depends(get_inv_store),
) -> list[AllocationResponse]:
    """List allocations, optionally only those with an open balance."""
    allocations = await store.list_allocations(
        material_id=material_id,
        evento_id=evento_id,
        open_only=abertas,
        limit=limit,
        offset=offset,
    )
    return [AllocationResponse.model_validate(a) for a in allocations]


@router.get(
    "/alocacoes/{allocation_id}",
    response_model=AllocationResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_allocation(
    allocation_id: int,
    store: IInventoryStore = Depends(get_inv_store),
) -> AllocationResponse:
    """Get one allocation with its return progress."""
    allocation = await store.get_allocation(allocation_id)
    if allocation is None:
        raise NotFoundError("Allocation", allocation_id)
    return AllocationResponse.model_validate(allocation)


@router.post(
    "/alocacoes/{allocation_id}/devolucao",
    response_model=ResolveReturnResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def resolve_return(
    allocation_id: int,
    request: ResolveReturnRequest,
    use_case: ResolveReturnUseCase = Depends(get_resolve_return_use_case),
) -> ResolveReturnResponse:
    """Record what came back (or did not) for an allocation."""
    result = await use_case.execute(allocation_id, request)
    return use_case.to_response(result)


@router.get("/eventos/{evento_id}/alocacoes", response_model=EventAllocationsResponse)
async def event_allocations(
    evento_id: str,
    use_case: EventAllocationsUseCase = Depends(get_event_allocations_use_case),
) -> EventAllocationsResponse:
    """Open allocations of an event; non-empty means returns are pending."""
    result = await use_case.execute(evento_id)
    return use_case.to_response(result)
