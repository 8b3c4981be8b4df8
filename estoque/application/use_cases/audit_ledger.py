"""
Audit Ledger Use Case — verify persisted state against the ledger.

Folds every material's ledger and compares the result with the stored
counters and, for serial materials, with each unit's stored status. Any
difference means state was written without a matching ledger entry.
"""

from dataclasses import dataclass, field

from estoque.application.dto.responses import AuditDiscrepancyResponse, AuditReportResponse
from estoque.application.use_cases.base import InventoryUseCase
from estoque.application.use_cases.replay_ledger import LedgerReplay
from estoque.config import get_logger
from estoque.core.entities.material import Material
from estoque.core.exceptions import NotFoundError
from estoque.core.interfaces.inventory_store import IInventoryStore
from estoque.core.services.ledger_fold import StockCounters, fold_material, fold_serials

logger = get_logger(__name__)


@dataclass
class Discrepancy:
    material_id: str
    campo: str
    ledger: str | int | None
    persistido: str | int | None
    serial_id: int | None = None


@dataclass
class AuditReport:
    materials_checked: int = 0
    serials_checked: int = 0
    discrepancies: list[Discrepancy] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.discrepancies


class AuditLedgerUseCase(InventoryUseCase):
    """Compare the ledger fold with persisted catalog and serial state."""

    async def execute(self, material_id: str | None = None) -> AuditReport:
        store = await self._get_store()

        if material_id is not None:
            material = await store.get_material(material_id)
            if material is None:
                raise NotFoundError("Material", material_id)
            materials = [material]
        else:
            materials = await store.list_materials(include_retired=True, limit=None)

        report = AuditReport()
        for material in materials:
            await self._audit_material(store, material, report)

        if report.consistent:
            logger.info(
                "ledger_audit_passed",
                materials=report.materials_checked,
                serials=report.serials_checked,
            )
        else:
            logger.warning(
                "ledger_audit_failed",
                materials=report.materials_checked,
                discrepancies=len(report.discrepancies),
            )
        return report

    async def _audit_material(
        self,
        store: IInventoryStore,
        material: Material,
        report: AuditReport,
    ) -> None:
        entries = await LedgerReplay(store, material_id=material.id).collect()
        report.materials_checked += 1

        folded = fold_material(material, entries)
        persisted = StockCounters.of(material)
        for campo, attr in (
            ("quantidade_total", "total"),
            ("quantidade_disponivel", "disponivel"),
            ("quantidade_manutencao", "manutencao"),
        ):
            expected, actual = getattr(folded, attr), getattr(persisted, attr)
            if expected != actual:
                report.discrepancies.append(
                    Discrepancy(
                        material_id=material.id,
                        campo=campo,
                        ledger=expected,
                        persistido=actual,
                    )
                )

        if not material.is_serial:
            return

        statuses = fold_serials(entries)
        for serial in await store.list_serials(material.id):
            report.serials_checked += 1
            expected = statuses.get(serial.id)
            if expected != serial.status:
                report.discrepancies.append(
                    Discrepancy(
                        material_id=material.id,
                        serial_id=serial.id,
                        campo="status",
                        ledger=expected.value if expected else None,
                        persistido=serial.status.value,
                    )
                )

    def to_response(self, report: AuditReport) -> AuditReportResponse:
        return AuditReportResponse(
            materiais_verificados=report.materials_checked,
            seriais_verificados=report.serials_checked,
            consistente=report.consistent,
            discrepancias=[
                AuditDiscrepancyResponse(
                    material_id=d.material_id,
                    serial_id=d.serial_id,
                    campo=d.campo,
                    ledger=d.ledger,
                    persistido=d.persistido,
                )
                for d in report.discrepancies
            ],
        )
