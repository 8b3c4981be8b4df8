"""
Ledger fold.

Rebuilds stock state from movement entries alone. Quantity materials sum the
per-operation effects; serial materials replay each unit's status and count
the results. Used by the audit to compare the ledger with persisted state.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from estoque.core.entities.ledger import LedgerEntry, OperationKind
from estoque.core.entities.material import Material
from estoque.core.entities.serial import SerialStatus

# Multipliers applied to the entry quantity: (total, disponivel, manutencao).
QUANTITY_EFFECTS: dict[OperationKind, tuple[int, int, int]] = {
    OperationKind.ENTRADA_ESTOQUE: (1, 1, 0),
    OperationKind.AJUSTE_INVENTARIO: (1, 1, 0),
    OperationKind.ALOCACAO: (0, -1, 0),
    OperationKind.DEVOLUCAO_OK: (0, 1, 0),
    OperationKind.DEVOLUCAO_DANIFICADO: (0, 0, 1),
    OperationKind.PERDA: (-1, 0, 0),
    OperationKind.CONSUMO: (-1, 0, 0),
    OperationKind.MANUTENCAO_INICIADA: (0, -1, 1),
    OperationKind.MANUTENCAO_CONCLUIDA: (0, 1, -1),
}

# Status a serial unit is in after each operation. Adjustments record it explicitly.
SERIAL_RESULT: dict[OperationKind, SerialStatus | None] = {
    OperationKind.ENTRADA_ESTOQUE: SerialStatus.DISPONIVEL,
    OperationKind.AJUSTE_INVENTARIO: None,
    OperationKind.ALOCACAO: SerialStatus.EM_USO,
    OperationKind.DEVOLUCAO_OK: SerialStatus.DISPONIVEL,
    OperationKind.DEVOLUCAO_DANIFICADO: SerialStatus.MANUTENCAO,
    OperationKind.PERDA: SerialStatus.PERDIDO,
    OperationKind.CONSUMO: SerialStatus.CONSUMIDO,
    OperationKind.MANUTENCAO_INICIADA: SerialStatus.MANUTENCAO,
    OperationKind.MANUTENCAO_CONCLUIDA: SerialStatus.DISPONIVEL,
}


@dataclass(frozen=True)
class StockCounters:
    """The three aggregate counters of a material."""

    total: int = 0
    disponivel: int = 0
    manutencao: int = 0

    @classmethod
    def of(cls, material: Material) -> "StockCounters":
        return cls(
            total=material.quantidade_total,
            disponivel=material.quantidade_disponivel,
            manutencao=material.quantidade_manutencao,
        )

    @classmethod
    def from_statuses(cls, statuses: Iterable[SerialStatus]) -> "StockCounters":
        total = disponivel = manutencao = 0
        for status in statuses:
            if status.counts_in_stock:
                total += 1
            if status == SerialStatus.DISPONIVEL:
                disponivel += 1
            elif status == SerialStatus.MANUTENCAO:
                manutencao += 1
        return cls(total=total, disponivel=disponivel, manutencao=manutencao)


def serial_result(entry: LedgerEntry) -> SerialStatus | None:
    """Status of the entry's serial unit after the entry."""
    result = SERIAL_RESULT[entry.operacao]
    if result is None:
        return entry.status_serial
    return result


def fold_serial(entries: Iterable[LedgerEntry]) -> SerialStatus | None:
    """Final status of one serial unit, or None when it has no entries."""
    status = None
    for entry in entries:
        result = serial_result(entry)
        if result is not None:
            status = result
    return status


def fold_serials(entries: Iterable[LedgerEntry]) -> dict[int, SerialStatus]:
    """Final status per serial id for a material's ordered entries."""
    statuses: dict[int, SerialStatus] = {}
    for entry in entries:
        if entry.serial_id is None:
            continue
        result = serial_result(entry)
        if result is not None:
            statuses[entry.serial_id] = result
    return statuses


def fold_quantity(entries: Iterable[LedgerEntry]) -> StockCounters:
    totals: defaultdict[str, int] = defaultdict(int)
    for entry in entries:
        d_total, d_disp, d_manut = QUANTITY_EFFECTS[entry.operacao]
        totals["total"] += d_total * entry.quantidade
        totals["disponivel"] += d_disp * entry.quantidade
        totals["manutencao"] += d_manut * entry.quantidade
    return StockCounters(**totals)


def fold_material(material: Material, entries: Iterable[LedgerEntry]) -> StockCounters:
    """Counters implied by the ledger for ``material``."""
    if material.is_serial:
        return StockCounters.from_statuses(fold_serials(entries).values())
    return fold_quantity(entries)
