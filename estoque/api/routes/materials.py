"""Material catalog endpoints."""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from estoque.api.dependencies import (
    get_adjust_quantity_use_case,
    get_allocate_material_use_case,
    get_create_material_use_case,
    get_inv_store,
    get_quantity_maintenance_use_case,
    get_register_serial_use_case,
    get_replay_ledger_use_case,
    get_retire_material_use_case,
    get_sync_quantities_use_case,
)
from estoque.application.dto.requests import (
    AdjustQuantityRequest,
    AllocateMaterialRequest,
    CreateMaterialRequest,
    QuantityMaintenanceRequest,
    RegisterSerialRequest,
)
from estoque.application.dto.responses import (
    AllocateMaterialResponse,
    CreateMaterialResponse,
    ErrorResponse,
    LedgerReplayResponse,
    MaterialListResponse,
    MaterialResponse,
    QuantitySyncResponse,
    SerialResponse,
    SerialTransitionResponse,
    StockChangeResponse,
)
from estoque.application.use_cases import (
    AdjustQuantityUseCase,
    AllocateMaterialUseCase,
    CreateMaterialUseCase,
    QuantityMaintenanceUseCase,
    RegisterSerialUseCase,
    ReplayLedgerUseCase,
    RetireMaterialUseCase,
    SyncQuantitiesUseCase,
)
from estoque.application.use_cases.transition_serial import parse_status
from estoque.core.exceptions import NotFoundError
from estoque.core.interfaces import IInventoryStore

router = APIRouter(prefix="/api/estoque/materiais", tags=["materiais"])

_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=CreateMaterialResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def create_material(
    request: CreateMaterialRequest,
    use_case: CreateMaterialUseCase = Depends(get_create_material_use_case),
) -> CreateMaterialResponse:
    """Add a material to the catalog, with opening stock or serial units."""
    result = await use_case.execute(request)
    return use_case.to_response(result)


@router.get("", response_model=MaterialListResponse)
async def list_materials(
    categoria: str | None = None,
    incluir_inativos: bool = False,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    store: IInventoryStore = Depends(get_inv_store),
) -> MaterialListResponse:
    """List catalog materials."""
    materials = await store.list_materials(
        categoria=categoria,
        include_retired=incluir_inativos,
        limit=limit,
        offset=offset,
    )
    return MaterialListResponse(
        items=[MaterialResponse.model_validate(m) for m in materials],
        total=len(materials),
        limit=limit,
        offset=offset,
        has_more=len(materials) == limit,
    )


@router.post("/sincronizar", response_model=QuantitySyncResponse)
async def sync_all_quantities(
    use_case: SyncQuantitiesUseCase = Depends(get_sync_quantities_use_case),
) -> QuantitySyncResponse:
    """Recompute the counters of every serial material from its units."""
    result = await use_case.execute()
    return use_case.to_response(result)


@router.get("/{material_id}", response_model=MaterialResponse, responses={404: {"model": ErrorResponse}})
async def get_material(
    material_id: str,
    store: IInventoryStore = Depends(get_inv_store),
) -> MaterialResponse:
    """Get a material with its current counters."""
    material = await store.get_material(material_id)
    if material is None:
        raise NotFoundError("Material", material_id)
    return MaterialResponse.model_validate(material)


@router.post("/{material_id}/desativar", response_model=MaterialResponse, responses=_ERRORS)
async def retire_material(
    material_id: str,
    use_case: RetireMaterialUseCase = Depends(get_retire_material_use_case),
) -> MaterialResponse:
    """Retire a material; history is kept."""
    material = await use_case.execute(material_id)
    return use_case.to_response(material)


@router.post("/{material_id}/ajustes", response_model=StockChangeResponse, responses=_ERRORS)
async def adjust_quantity(
    material_id: str,
    request: AdjustQuantityRequest,
    use_case: AdjustQuantityUseCase = Depends(get_adjust_quantity_use_case),
) -> StockChangeResponse:
    """Manual stock entry or correction for a quantity material."""
    result = await use_case.execute(material_id, request)
    return use_case.to_response(result)


@router.post(
    "/{material_id}/manutencao/{acao}",
    response_model=StockChangeResponse,
    responses=_ERRORS,
)
async def quantity_maintenance(
    material_id: str,
    acao: Literal["iniciar", "concluir"],
    request: QuantityMaintenanceRequest,
    use_case: QuantityMaintenanceUseCase = Depends(get_quantity_maintenance_use_case),
) -> StockChangeResponse:
    """Send bulk units to maintenance or bring them back."""
    action = "start" if acao == "iniciar" else "finish"
    result = await use_case.execute(material_id, request, action)
    return use_case.to_response(result)


@router.post("/{material_id}/sincronizar", response_model=QuantitySyncResponse, responses=_ERRORS)
async def sync_quantities(
    material_id: str,
    use_case: SyncQuantitiesUseCase = Depends(get_sync_quantities_use_case),
) -> QuantitySyncResponse:
    """Recompute one serial material's counters from its units."""
    result = await use_case.execute(material_id)
    return use_case.to_response(result)


@router.post(
    "/{material_id}/seriais",
    response_model=SerialTransitionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def register_serial(
    material_id: str,
    request: RegisterSerialRequest,
    use_case: RegisterSerialUseCase = Depends(get_register_serial_use_case),
) -> SerialTransitionResponse:
    """Register a new serial unit of a material."""
    result = await use_case.execute(material_id, request)
    return use_case.to_response(result)


@router.get(
    "/{material_id}/seriais",
    response_model=list[SerialResponse],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def list_serials(
    material_id: str,
    status_filter: str | None = Query(default=None, alias="status"),
    store: IInventoryStore = Depends(get_inv_store),
) -> list[SerialResponse]:
    """List the serial units of a material, optionally by status."""
    if await store.get_material(material_id) is None:
        raise NotFoundError("Material", material_id)
    serial_status = parse_status(status_filter) if status_filter else None
    serials = await store.list_serials(material_id, status=serial_status)
    return [SerialResponse.model_validate(s) for s in serials]


@router.post(
    "/{material_id}/alocacoes",
    response_model=AllocateMaterialResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def allocate_material(
    material_id: str,
    request: AllocateMaterialRequest,
    use_case: AllocateMaterialUseCase = Depends(get_allocate_material_use_case),
) -> AllocateMaterialResponse:
    """Allocate a quantity or specific serial units to an event."""
    result = await use_case.execute(material_id, request)
    return use_case.to_response(result)


@router.get(
    "/{material_id}/historico",
    response_model=LedgerReplayResponse,
    responses={404: {"model": ErrorResponse}},
)
async def material_history(
    material_id: str,
    as_of: datetime | None = None,
    use_case: ReplayLedgerUseCase = Depends(get_replay_ledger_use_case),
) -> LedgerReplayResponse:
    """Ledger entries of a material in the order they were recorded."""
    replay = await use_case.execute(material_id=material_id, as_of=as_of)
    return await use_case.to_response(replay)
