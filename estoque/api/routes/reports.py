"""Ledger audit and dashboard endpoints."""

from fastapi import APIRouter, Depends

from estoque.api.dependencies import get_audit_ledger_use_case, get_stock_dashboard_use_case
from estoque.application.dto.responses import AuditReportResponse, DashboardResponse, ErrorResponse
from estoque.application.use_cases import AuditLedgerUseCase, StockDashboardUseCase

router = APIRouter(prefix="/api/estoque", tags=["relatorios"])


@router.get(
    "/auditoria",
    response_model=AuditReportResponse,
    responses={404: {"model": ErrorResponse}},
)
async def audit_ledger(
    material_id: str | None = None,
    use_case: AuditLedgerUseCase = Depends(get_audit_ledger_use_case),
) -> AuditReportResponse:
    """Check stored counters and serial statuses against the ledger."""
    report = await use_case.execute(material_id)
    return use_case.to_response(report)


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    refresh: bool = False,
    use_case: StockDashboardUseCase = Depends(get_stock_dashboard_use_case),
) -> DashboardResponse:
    """Aggregate counts per category and material; may lag recent writes."""
    result = await use_case.execute(force_refresh=refresh)
    return use_case.to_response(result)
