"""
Error handling middleware.

Domain errors become JSON bodies with a stable ``error_code``, a hint and the
request id. Conflicts the client may simply retry are sent as 503 with a
``Retry-After`` header.
"""

import traceback
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from estoque.application.dto.responses import ErrorResponse
from estoque.config import get_logger
from estoque.core.exceptions import (
    AllocationClosedError,
    ConfigurationError,
    ConflictRetryableError,
    DatabaseError,
    DuplicateKeyError,
    EstoqueError,
    InsufficientStockError,
    InvalidOperationError,
    InvalidTransitionError,
    NotFoundError,
    OverReturnError,
    SerialUnavailableError,
    ValidationError,
)

logger = get_logger(__name__)


EXCEPTION_STATUS_MAP: dict[type[Exception], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    DuplicateKeyError: status.HTTP_409_CONFLICT,
    SerialUnavailableError: status.HTTP_409_CONFLICT,
    AllocationClosedError: status.HTTP_409_CONFLICT,
    InsufficientStockError: status.HTTP_409_CONFLICT,
    InvalidTransitionError: 422,
    OverReturnError: 422,
    InvalidOperationError: 422,
    ConflictRetryableError: status.HTTP_503_SERVICE_UNAVAILABLE,
    DatabaseError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

HINT_MAP: dict[str, str] = {
    "MATERIAL_NOT_FOUND": "Check the material ID and try GET /api/estoque/materiais to list materials.",
    "SERIAL_NOT_FOUND": "Check the serial ID and try GET /api/estoque/materiais/{id}/seriais.",
    "ALLOCATION_NOT_FOUND": "Check the allocation ID and try GET /api/estoque/eventos/{id}/alocacoes.",
    "DUPLICATE_SERIAL": "This serial number is already registered for the material.",
    "SERIAL_UNAVAILABLE": "The unit is not available. Check its status and open allocations.",
    "INSUFFICIENT_STOCK": "Not enough units are available. Reduce the quantity or return stock first.",
    "ALLOCATION_CLOSED": "The allocation has no open balance left.",
    "OVER_RETURN": "The quantity exceeds the allocation's open balance.",
    "INVALID_TRANSITION": "The serial status does not allow this event.",
    "INVALID_OPERATION": "The operation is not allowed for this material or state.",
    "CONFLICT_RETRYABLE": "Another operation changed the same records. Retry the request.",
    "VALIDATION_ERROR": "Check the request body against the API schema.",
    "DATABASE_ERROR": "A database operation failed. Check server logs.",
}

STATUS_HINTS: dict[int, str] = {
    400: "Check the request parameters and body.",
    404: "The requested resource was not found. Verify the ID.",
    409: "The request conflicts with the current stock state.",
    422: "The request could not be processed. Check the input format.",
    500: "An internal error occurred. Check server logs.",
    503: "The service is temporarily unavailable. Retry later.",
}

RETRY_AFTER_SECONDS = 1


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _get_hint(error_code: str, status_code: int) -> str:
    """Resolve hint from error code, falling back to status-based hint."""
    return HINT_MAP.get(error_code) or STATUS_HINTS.get(status_code, "")


def status_for(exc: Exception) -> int:
    """HTTP status for an exception, 500 when unmapped."""
    for exc_type, code in EXCEPTION_STATUS_MAP.items():
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def build_error_response(request: Request, exc: Exception) -> JSONResponse:
    """Convert exception to standardized JSON response."""
    status_code = status_for(exc)

    if isinstance(exc, EstoqueError):
        error_code = exc.code
        details = exc.details
        retryable = exc.retryable
    else:
        error_code = exc.__class__.__name__
        details = {}
        retryable = False

    request_id = _request_id(request)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "request_error",
        request_id=request_id,
        path=request.url.path,
        error_type=error_code,
        status=status_code,
        error=str(exc),
        traceback=traceback.format_exc() if status_code >= 500 else None,
    )

    error_response = ErrorResponse(
        error_code=error_code,
        message=str(exc),
        hint=_get_hint(error_code, status_code),
        details=details,
        retryable=retryable,
        path=request.url.path,
        request_id=request_id,
    )

    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if retryable else None
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json"),
        headers=headers,
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Converts exceptions that escaped the route handlers to standardized
    JSON error responses.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Handle request with error catching."""
        try:
            return await call_next(request)

        except Exception as e:
            return build_error_response(request, e)


def setup_exception_handlers(app: FastAPI) -> None:
    """Set up FastAPI exception handlers."""
    from fastapi.exceptions import RequestValidationError
    from starlette.exceptions import HTTPException

    @app.exception_handler(EstoqueError)
    async def estoque_exception_handler(
        request: Request,
        exc: EstoqueError,
    ) -> JSONResponse:
        """Handle domain errors raised by use cases."""
        return build_error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Handle Pydantic validation errors."""
        errors = [
            {"campo": ".".join(str(part) for part in error["loc"] if part != "body"), "erro": error["msg"]}
            for error in exc.errors()
        ]

        return JSONResponse(
            status_code=422,
            content=ErrorResponse(
                error_code="VALIDATION_ERROR",
                message="Request validation failed",
                hint="Check the request body fields and types.",
                detail="; ".join(f"{e['campo']}: {e['erro']}" for e in errors),
                details={"errors": errors},
                path=request.url.path,
                request_id=_request_id(request),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request,
        exc: HTTPException,
    ) -> JSONResponse:
        """Handle HTTP exceptions with standardized format."""
        error_code = _infer_error_code(exc.status_code)
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error_code=error_code,
                message=exc.detail or "An error occurred",
                hint=_get_hint(error_code, exc.status_code),
                path=request.url.path,
                request_id=_request_id(request),
            ).model_dump(mode="json"),
        )


def _infer_error_code(status_code: int) -> str:
    """Infer a machine-readable error code from an HTTP status."""
    return {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "UNPROCESSABLE_ENTITY",
    }.get(status_code, "HTTP_ERROR")
