"""Tests for SQLiteInventoryStore against a migrated temp database."""

from datetime import UTC, datetime, timedelta

import aiosqlite
import pytest

from estoque.core.entities import (
    Allocation,
    ControlMode,
    LedgerEntry,
    Material,
    OperationKind,
    SerialStatus,
    SerialUnit,
)
from estoque.core.exceptions import (
    ConflictRetryableError,
    DatabaseError,
    DuplicateKeyError,
    InvalidOperationError,
    SerialUnavailableError,
)
from estoque.infrastructure.storage.sqlite import ConnectionPool, SQLiteInventoryStore


async def _material(store: SQLiteInventoryStore, **overrides) -> Material:
    fields = {"nome": "Rádio", "categoria": "comunicacao", "tipo_controle": ControlMode.SERIAL}
    fields.update(overrides)
    async with store.transaction() as uow:
        material_id = fields.pop("id", None) or await uow.next_material_id()
        return await uow.insert_material(Material(id=material_id, **fields))


async def _serial(store: SQLiteInventoryStore, material_id: str, numero: str, **kwargs) -> SerialUnit:
    async with store.transaction() as uow:
        serial = await uow.insert_serial(SerialUnit(material_id=material_id, numero=numero, **kwargs))
        await uow.refresh_serial_counters(material_id)
        return serial


class TestMaterials:
    async def test_insert_and_get(self, store: SQLiteInventoryStore):
        created = await _material(store, nome="Caixa de som", categoria="audio")
        assert created.id == "MAT1"

        loaded = await store.get_material("MAT1")
        assert loaded is not None
        assert loaded.nome == "Caixa de som"
        assert loaded.tipo_controle == ControlMode.SERIAL
        assert loaded.version == 0

    async def test_ids_are_sequential(self, store: SQLiteInventoryStore):
        await _material(store)
        await _material(store)
        async with store.transaction() as uow:
            assert await uow.next_material_id() == "MAT3"

    async def test_duplicate_id(self, store: SQLiteInventoryStore):
        await _material(store, id="MAT7")
        with pytest.raises(InvalidOperationError):
            await _material(store, id="MAT7")

    async def test_missing(self, store: SQLiteInventoryStore):
        assert await store.get_material("MAT404") is None

    async def test_list_hides_retired_by_default(self, store: SQLiteInventoryStore):
        await _material(store, nome="B", categoria="x")
        retired = await _material(store, nome="A", categoria="x")
        async with store.transaction() as uow:
            await uow.update_material(retired.model_copy(update={"ativo": False}))

        assert [m.nome for m in await store.list_materials()] == ["B"]
        assert [m.nome for m in await store.list_materials(include_retired=True)] == ["A", "B"]
        assert len(await store.list_materials(limit=None)) == 1

    async def test_stale_version_conflicts(self, store: SQLiteInventoryStore):
        material = await _material(store, tipo_controle=ControlMode.QUANTITY)
        async with store.transaction() as uow:
            updated = await uow.update_material(material.model_copy(update={"nome": "Novo"}))
        assert updated.version == 1

        with pytest.raises(ConflictRetryableError):
            async with store.transaction() as uow:
                await uow.update_material(material.model_copy(update={"nome": "Velho"}))
        assert (await store.get_material(material.id)).nome == "Novo"

    async def test_inconsistent_counters_are_refused(self, store: SQLiteInventoryStore):
        material = await _material(
            store, tipo_controle=ControlMode.QUANTITY, quantidade_total=5, quantidade_disponivel=5
        )
        with pytest.raises(DatabaseError):
            async with store.transaction() as uow:
                await uow.update_material(material.model_copy(update={"quantidade_disponivel": 6}))

        stored = await store.get_material(material.id)
        assert stored.quantidade_disponivel == 5
        assert stored.version == 0


class TestSerials:
    async def test_counters_follow_serials(self, store: SQLiteInventoryStore):
        material = await _material(store)
        await _serial(store, material.id, "RAD-001")
        await _serial(store, material.id, "RAD-002", status=SerialStatus.MANUTENCAO)
        await _serial(store, material.id, "RAD-003", status=SerialStatus.PERDIDO)

        loaded = await store.get_material(material.id)
        assert loaded.quantidade_total == 2
        assert loaded.quantidade_disponivel == 1
        assert loaded.quantidade_manutencao == 1

    async def test_duplicate_number(self, store: SQLiteInventoryStore):
        material = await _material(store)
        await _serial(store, material.id, "RAD-001")
        with pytest.raises(DuplicateKeyError):
            await _serial(store, material.id, "RAD-001")

    async def test_list_filters_by_status(self, store: SQLiteInventoryStore):
        material = await _material(store)
        await _serial(store, material.id, "RAD-002")
        await _serial(store, material.id, "RAD-001", status=SerialStatus.MANUTENCAO)

        assert [s.numero for s in await store.list_serials(material.id)] == ["RAD-001", "RAD-002"]
        in_repair = await store.list_serials(material.id, SerialStatus.MANUTENCAO)
        assert [s.numero for s in in_repair] == ["RAD-001"]

    async def test_identity_is_immutable(self, store: SQLiteInventoryStore, pool: ConnectionPool):
        material = await _material(store)
        serial = await _serial(store, material.id, "RAD-001")
        with pytest.raises(aiosqlite.IntegrityError, match="immutable"):
            async with pool.transaction() as conn:
                await conn.execute(
                    "UPDATE materiais_seriais SET numero = 'RAD-999' WHERE id = ?", (serial.id,)
                )

    async def test_stale_version_conflicts(self, store: SQLiteInventoryStore):
        material = await _material(store)
        serial = await _serial(store, material.id, "RAD-001")
        async with store.transaction() as uow:
            await uow.update_serial(serial.model_copy(update={"localizacao": "Palco"}))
        with pytest.raises(ConflictRetryableError):
            async with store.transaction() as uow:
                await uow.update_serial(serial.model_copy(update={"localizacao": "Depósito"}))


class TestAllocations:
    async def test_one_open_allocation_per_serial(self, store: SQLiteInventoryStore):
        material = await _material(store)
        serial = await _serial(store, material.id, "RAD-001")
        allocation = Allocation(
            material_id=material.id,
            serial_id=serial.id,
            serial_numero=serial.numero,
            evento_id="EVT-1",
            quantidade_alocada=1,
        )
        async with store.transaction() as uow:
            first = await uow.insert_allocation(allocation)
            assert (await uow.get_open_allocation_for_serial(serial.id)).id == first.id

        with pytest.raises(SerialUnavailableError):
            async with store.transaction() as uow:
                await uow.insert_allocation(allocation.model_copy(update={"evento_id": "EVT-2"}))

        async with store.transaction() as uow:
            await uow.update_allocation(first.model_copy(update={"fechada": True}))
            await uow.insert_allocation(allocation.model_copy(update={"evento_id": "EVT-2"}))

        assert len(await store.list_allocations(material_id=material.id)) == 2
        assert [a.evento_id for a in await store.list_allocations(open_only=True)] == ["EVT-2"]
        assert await store.has_pending_returns("EVT-2") is True
        assert await store.has_pending_returns("EVT-1") is False

    async def test_never_deleted(self, store: SQLiteInventoryStore, pool: ConnectionPool):
        material = await _material(store, tipo_controle=ControlMode.QUANTITY)
        async with store.transaction() as uow:
            await uow.insert_allocation(
                Allocation(material_id=material.id, evento_id="EVT-1", quantidade_alocada=2)
            )
        with pytest.raises(aiosqlite.IntegrityError, match="never deleted"):
            async with pool.transaction() as conn:
                await conn.execute("DELETE FROM materiais_alocados")
        with pytest.raises(aiosqlite.IntegrityError, match="retired"):
            async with pool.transaction() as conn:
                await conn.execute("DELETE FROM materiais_estoque")


class TestLedger:
    async def _append(self, store: SQLiteInventoryStore, material_id: str, **kwargs) -> LedgerEntry:
        fields = {"material_id": material_id, "operacao": OperationKind.ENTRADA_ESTOQUE, "quantidade": 1}
        fields.update(kwargs)
        async with store.transaction() as uow:
            return await uow.append_ledger(LedgerEntry(**fields))

    async def test_append_only(self, store: SQLiteInventoryStore, pool: ConnectionPool):
        material = await _material(store, tipo_controle=ControlMode.QUANTITY)
        entry = await self._append(store, material.id)
        assert entry.id is not None

        with pytest.raises(aiosqlite.IntegrityError, match="append-only"):
            async with pool.transaction() as conn:
                await conn.execute("UPDATE materiais_historico SET quantidade = 5")
        with pytest.raises(aiosqlite.IntegrityError, match="append-only"):
            async with pool.transaction() as conn:
                await conn.execute("DELETE FROM materiais_historico")

    async def test_keyset_paging(self, store: SQLiteInventoryStore):
        material = await _material(store, tipo_controle=ControlMode.QUANTITY)
        same_instant = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
        for quantidade in (1, 2, 3):
            await self._append(store, material.id, quantidade=quantidade, registrado_em=same_instant)
        await self._append(
            store, material.id, quantidade=4, registrado_em=same_instant - timedelta(hours=1)
        )

        first = await store.list_ledger_page(material_id=material.id, limit=2)
        second = await store.list_ledger_page(
            material_id=material.id, after=first[-1].sort_key, limit=2
        )
        assert [e.quantidade for e in first + second] == [4, 1, 2, 3]

    async def test_as_of_cutoff(self, store: SQLiteInventoryStore):
        material = await _material(store, tipo_controle=ControlMode.QUANTITY)
        cutoff = datetime(2026, 3, 1, tzinfo=UTC)
        await self._append(store, material.id, quantidade=1, registrado_em=cutoff - timedelta(days=1))
        await self._append(store, material.id, quantidade=2, registrado_em=cutoff + timedelta(days=1))

        entries = await store.list_ledger_page(material_id=material.id, as_of=cutoff)
        assert [e.quantidade for e in entries] == [1]

    async def test_up_to_id_bound(self, store: SQLiteInventoryStore):
        material = await _material(store, tipo_controle=ControlMode.QUANTITY)
        assert await store.max_ledger_id() == 0
        first = await self._append(store, material.id, quantidade=1)
        pinned = await store.max_ledger_id()
        await self._append(store, material.id, quantidade=2)

        assert pinned == first.id
        entries = await store.list_ledger_page(material_id=material.id, up_to_id=pinned)
        assert [e.quantidade for e in entries] == [1]

    async def test_round_trips_fields(self, store: SQLiteInventoryStore):
        material = await _material(store)
        serial = await _serial(store, material.id, "RAD-001")
        await self._append(
            store,
            material.id,
            serial_id=serial.id,
            serial_numero=serial.numero,
            operacao=OperationKind.PERDA,
            status_serial=SerialStatus.PERDIDO,
            fotos=["foto1.jpg"],
        )
        [entry] = await store.list_ledger_page(serial_id=serial.id)
        assert entry.operacao == OperationKind.PERDA
        assert entry.status_serial == SerialStatus.PERDIDO
        assert entry.fotos == ["foto1.jpg"]
        assert entry.registrado_em.tzinfo is not None


class TestCategoryCounts:
    async def test_active_materials_only(self, store: SQLiteInventoryStore):
        radio = await _material(store, categoria="comunicacao")
        await _serial(store, radio.id, "RAD-001")
        await _serial(store, radio.id, "RAD-002")
        await _serial(store, radio.id, "RAD-003", status=SerialStatus.MANUTENCAO)

        old = await _material(store, categoria="video")
        await _serial(store, old.id, "VID-001")
        async with store.transaction() as uow:
            current = await uow.get_material(old.id)
            await uow.update_material(current.model_copy(update={"ativo": False}))

        assert await store.count_serials_by_category() == [
            ("comunicacao", "disponivel", 2),
            ("comunicacao", "manutencao", 1),
        ]
