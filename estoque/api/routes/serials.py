"""Serial unit endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends

from estoque.api.dependencies import (
    get_correct_serial_use_case,
    get_inv_store,
    get_replay_ledger_use_case,
    get_transition_serial_use_case,
)
from estoque.application.dto.requests import CorrectSerialRequest, SerialTransitionRequest
from estoque.application.dto.responses import (
    ErrorResponse,
    LedgerReplayResponse,
    SerialResponse,
    SerialTransitionResponse,
)
from estoque.application.use_cases import (
    CorrectSerialUseCase,
    ReplayLedgerUseCase,
    TransitionSerialUseCase,
)
from estoque.core.exceptions import NotFoundError
from estoque.core.interfaces import IInventoryStore

router = APIRouter(prefix="/api/estoque/seriais", tags=["seriais"])

_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


@router.get("/{serial_id}", response_model=SerialResponse, responses={404: {"model": ErrorResponse}})
async def get_serial(
    serial_id: int,
    store: IInventoryStore = Depends(get_inv_store),
) -> SerialResponse:
    """Get a serial unit."""
    serial = await store.get_serial(serial_id)
    if serial is None:
        raise NotFoundError("Serial", serial_id)
    return SerialResponse.model_validate(serial)


@router.post("/{serial_id}/eventos", response_model=SerialTransitionResponse, responses=_ERRORS)
async def transition_serial(
    serial_id: int,
    request: SerialTransitionRequest,
    use_case: TransitionSerialUseCase = Depends(get_transition_serial_use_case),
) -> SerialTransitionResponse:
    """
    Apply a maintenance event to a serial unit.

    Allocation and return events go through the allocation endpoints.
    """
    result = await use_case.execute(serial_id, request)
    return use_case.to_response(result)


@router.post("/{serial_id}/correcao", response_model=SerialTransitionResponse, responses=_ERRORS)
async def correct_serial(
    serial_id: int,
    request: CorrectSerialRequest,
    use_case: CorrectSerialUseCase = Depends(get_correct_serial_use_case),
) -> SerialTransitionResponse:
    """Administrative status correction, recorded as an inventory adjustment."""
    result = await use_case.execute(serial_id, request)
    return use_case.to_response(result)


@router.get(
    "/{serial_id}/historico",
    response_model=LedgerReplayResponse,
    responses={404: {"model": ErrorResponse}},
)
async def serial_history(
    serial_id: int,
    as_of: datetime | None = None,
    use_case: ReplayLedgerUseCase = Depends(get_replay_ledger_use_case),
) -> LedgerReplayResponse:
    """Ledger entries of one serial unit."""
    replay = await use_case.execute(serial_id=serial_id, as_of=as_of)
    return await use_case.to_response(replay)
