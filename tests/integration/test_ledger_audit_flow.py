"""Ledger completeness, replay and audit against the SQLite store."""

import pytest

from estoque.application.dto.requests import (
    AdjustQuantityRequest,
    AllocateMaterialRequest,
    CorrectSerialRequest,
    QuantityMaintenanceRequest,
    RegisterSerialRequest,
    ResolveReturnRequest,
)
from estoque.application.use_cases import (
    AdjustQuantityUseCase,
    AllocateMaterialUseCase,
    AuditLedgerUseCase,
    CorrectSerialUseCase,
    LedgerReplay,
    QuantityMaintenanceUseCase,
    RegisterSerialUseCase,
    ReplayLedgerUseCase,
    ResolveReturnUseCase,
    StockDashboardUseCase,
    SyncQuantitiesUseCase,
)
from estoque.application.use_cases.stock_dashboard import SnapshotCache
from estoque.config import reset_settings
from estoque.core.entities import LedgerEntry, OperationKind
from estoque.core.exceptions import DuplicateKeyError, NotFoundError, ValidationError


async def _busy_day(store, chairs, radios) -> None:
    """A mix of every operation on both materials."""
    material, serials = radios
    await AdjustQuantityUseCase(store=store).execute(
        chairs.id, AdjustQuantityRequest(modo="adicionar", quantidade=10, motivo="compra")
    )
    await QuantityMaintenanceUseCase(store=store).execute(
        chairs.id, QuantityMaintenanceRequest(quantidade=3), "start"
    )
    chair_alloc = await AllocateMaterialUseCase(store=store).execute(
        chairs.id, AllocateMaterialRequest(evento_id="EVT-1", quantidade=12)
    )
    await ResolveReturnUseCase(store=store).execute(
        chair_alloc.allocations[0].id, ResolveReturnRequest(resultado="devolvido_ok", quantidade=7)
    )

    await RegisterSerialUseCase(store=store).execute(material.id, RegisterSerialRequest(numero="RAD-010"))
    radio_alloc = await AllocateMaterialUseCase(store=store).execute(
        material.id, AllocateMaterialRequest(evento_id="EVT-1", serial_ids=[serials[0].id, serials[1].id])
    )
    await ResolveReturnUseCase(store=store).execute(
        radio_alloc.allocations[0].id,
        ResolveReturnRequest(resultado="devolvido_danificado", observacoes="antena torta"),
    )
    await ResolveReturnUseCase(store=store).execute(
        radio_alloc.allocations[1].id,
        ResolveReturnRequest(resultado="perdido", observacoes="extraviado"),
    )
    await CorrectSerialUseCase(store=store).execute(
        serials[2].id, CorrectSerialRequest(status="consumido", motivo="sucata", usuario="ana")
    )


class TestLedger:
    async def test_every_change_has_an_entry(self, store, chairs, radios):
        await _busy_day(store, chairs, radios)

        chair_ops = [e.operacao for e in await LedgerReplay(store, material_id=chairs.id).collect()]
        assert chair_ops == [
            OperationKind.ENTRADA_ESTOQUE,
            OperationKind.AJUSTE_INVENTARIO,
            OperationKind.MANUTENCAO_INICIADA,
            OperationKind.ALOCACAO,
            OperationKind.DEVOLUCAO_OK,
        ]

        material, _ = radios
        radio_ops = [e.operacao for e in await LedgerReplay(store, material_id=material.id).collect()]
        assert radio_ops.count(OperationKind.ENTRADA_ESTOQUE) == 4
        assert radio_ops[-5:] == [
            OperationKind.ALOCACAO,
            OperationKind.ALOCACAO,
            OperationKind.DEVOLUCAO_DANIFICADO,
            OperationKind.PERDA,
            OperationKind.AJUSTE_INVENTARIO,
        ]

    async def test_audit_is_consistent_after_operations(self, store, chairs, radios):
        await _busy_day(store, chairs, radios)
        report = await AuditLedgerUseCase(store=store).execute()
        assert report.consistent
        assert report.materials_checked == 2
        assert report.serials_checked == 4

    async def test_replay_is_restartable_and_paged(self, store, chairs, radios):
        await _busy_day(store, chairs, radios)
        material, _ = radios
        replay = LedgerReplay(store, material_id=material.id, page_size=2)

        first = [e.id async for e in replay]
        second = [e.id async for e in replay]
        assert first == second
        assert first == sorted(first)
        assert len(first) == 9

    async def test_replay_pins_the_cutoff(self, store, chairs):
        replay = await ReplayLedgerUseCase(store=store).execute(material_id=chairs.id)
        before = await replay.collect()
        await AdjustQuantityUseCase(store=store).execute(
            chairs.id, AdjustQuantityRequest(delta=1, motivo="achado")
        )
        assert await replay.collect() == before

    async def test_replay_ignores_entries_committed_after_pinning(self, store, chairs):
        async with store.transaction() as uow:
            pending = await uow.append_ledger(
                LedgerEntry(material_id=chairs.id, operacao=OperationKind.AJUSTE_INVENTARIO, quantidade=1)
            )
            replay = await ReplayLedgerUseCase(store=store).execute(material_id=chairs.id)
            first = [e.id for e in await replay.collect()]

        assert pending.registrado_em <= replay.as_of
        assert [e.id for e in await replay.collect()] == first
        assert pending.id not in first

        fresh = await ReplayLedgerUseCase(store=store).execute(material_id=chairs.id)
        assert [e.id for e in await fresh.collect()] == [*first, pending.id]

    async def test_replay_validation(self, store, radios):
        replays = ReplayLedgerUseCase(store=store)
        with pytest.raises(ValidationError):
            await replays.execute()
        with pytest.raises(NotFoundError):
            await replays.execute(material_id="MAT404")
        with pytest.raises(NotFoundError):
            await replays.execute(serial_id=9999)

        _, serials = radios
        replay = await replays.execute(serial_id=serials[0].id)
        response = await replays.to_response(replay)
        assert response.total == 1
        assert response.entries[0].serial_id == serials[0].id


class TestDriftRepair:
    async def test_audit_detects_writes_outside_the_ledger(self, store, pool, chairs, radios):
        material, serials = radios
        async with pool.transaction() as conn:
            await conn.execute(
                "UPDATE materiais_estoque SET quantidade_disponivel = 49 WHERE id = ?", (chairs.id,)
            )
            await conn.execute(
                "UPDATE materiais_seriais SET status = 'manutencao' WHERE id = ?", (serials[0].id,)
            )

        report = await AuditLedgerUseCase(store=store).execute()
        found = {(d.material_id, d.campo, d.serial_id) for d in report.discrepancies}
        assert (chairs.id, "quantidade_disponivel", None) in found
        assert (material.id, "status", serials[0].id) in found
        assert not report.consistent

        single = await AuditLedgerUseCase(store=store).execute(material_id=chairs.id)
        assert single.materials_checked == 1
        with pytest.raises(NotFoundError):
            await AuditLedgerUseCase(store=store).execute(material_id="MAT404")

    async def test_sync_recomputes_serial_counters(self, store, pool, radios):
        material, _ = radios
        async with pool.transaction() as conn:
            await conn.execute(
                "UPDATE materiais_estoque SET quantidade_total = 9, quantidade_disponivel = 9 WHERE id = ?",
                (material.id,),
            )

        result = await SyncQuantitiesUseCase(store=store).execute()
        assert result.checked == 1
        assert {(d.campo, d.valor_anterior, d.valor_novo) for d in result.drifts} == {
            ("quantidade_total", 9, 3),
            ("quantidade_disponivel", 9, 3),
        }
        assert (await SyncQuantitiesUseCase(store=store).execute()).drifts == []
        assert (await AuditLedgerUseCase(store=store).execute()).consistent

    async def test_duplicate_serial_number(self, store, radios):
        material, serials = radios
        with pytest.raises(DuplicateKeyError):
            await RegisterSerialUseCase(store=store).execute(
                material.id, RegisterSerialRequest(numero=serials[0].numero)
            )


class TestDashboard:
    async def test_snapshot_is_cached_until_refresh(self, store, chairs, radios):
        cache = SnapshotCache()
        dashboard = StockDashboardUseCase(store=store, cache=cache)

        first = await dashboard.execute()
        [categoria] = first.snapshot.categorias
        assert categoria.categoria == "comunicacao"
        assert categoria.por_status == {"disponivel": 3}
        assert {m.material_id for m in first.snapshot.materiais} == {chairs.id, radios[0].id}

        await AdjustQuantityUseCase(store=store).execute(
            chairs.id, AdjustQuantityRequest(delta=5, motivo="compra")
        )
        cached = await dashboard.execute()
        assert cached.snapshot is first.snapshot

        refreshed = await dashboard.execute(force_refresh=True)
        totals = {m.material_id: m.quantidade_total for m in refreshed.snapshot.materiais}
        assert totals[chairs.id] == 55

    async def test_expired_snapshot_is_rebuilt(self, store, chairs, monkeypatch):
        monkeypatch.setenv("INVENTORY_SNAPSHOT_TTL_SECONDS", "0")
        reset_settings()
        dashboard = StockDashboardUseCase(store=store, cache=SnapshotCache())
        first = await dashboard.execute()
        second = await dashboard.execute()
        assert second.snapshot is not first.snapshot
