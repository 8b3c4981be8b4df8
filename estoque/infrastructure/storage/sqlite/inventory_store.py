"""SQLite implementation of inventory storage."""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime

import aiosqlite

from estoque.config import get_logger
from estoque.core.entities.allocation import Allocation, ReturnStatus, ShipmentType
from estoque.core.entities.ledger import LedgerEntry, OperationKind
from estoque.core.entities.material import ControlMode, Material
from estoque.core.entities.serial import LossRecord, SerialStatus, SerialUnit
from estoque.core.exceptions import (
    ConflictRetryableError,
    DatabaseError,
    DuplicateKeyError,
    InvalidOperationError,
    SerialUnavailableError,
)
from estoque.core.interfaces.inventory_store import IInventoryStore, IInventoryUnitOfWork
from estoque.infrastructure.storage.sqlite.connection import ConnectionPool, get_pool

logger = get_logger(__name__)

MATERIAL_ID_PREFIX = "MAT"


def _ts(value: datetime | None) -> str | None:
    """Fixed-width UTC timestamp so text ordering matches time ordering."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _dumps(values: list[str]) -> str:
    return json.dumps(values, ensure_ascii=False)


def _loads(value: str | None) -> list[str]:
    return json.loads(value) if value else []


def _row_to_material(row: aiosqlite.Row) -> Material:
    return Material(
        id=row["id"],
        nome=row["nome"],
        categoria=row["categoria"],
        tipo_controle=ControlMode(row["tipo_controle"]),
        descricao=row["descricao"],
        unidade=row["unidade"],
        valor_unitario=row["valor_unitario"],
        quantidade_total=row["quantidade_total"],
        quantidade_disponivel=row["quantidade_disponivel"],
        quantidade_manutencao=row["quantidade_manutencao"],
        ativo=bool(row["ativo"]),
        version=row["version"],
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _row_to_serial(row: aiosqlite.Row) -> SerialUnit:
    perda = None
    if row["perda_data"]:
        perda = LossRecord(
            evento_id=row["perda_evento_id"],
            data=_parse_ts(row["perda_data"]),
            motivo=row["perda_motivo"],
            fotos=_loads(row["perda_fotos"]),
        )
    return SerialUnit(
        id=row["id"],
        material_id=row["material_id"],
        numero=row["numero"],
        status=SerialStatus(row["status"]),
        localizacao=row["localizacao"],
        evento_id=row["evento_id"],
        evento_nome=row["evento_nome"],
        tags=_loads(row["tags"]),
        data_aquisicao=date.fromisoformat(row["data_aquisicao"]) if row["data_aquisicao"] else None,
        ultima_manutencao=_parse_ts(row["ultima_manutencao"]),
        observacoes=row["observacoes"],
        perda=perda,
        version=row["version"],
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _row_to_allocation(row: aiosqlite.Row) -> Allocation:
    return Allocation(
        id=row["id"],
        material_id=row["material_id"],
        serial_id=row["serial_id"],
        serial_numero=row["serial_numero"],
        evento_id=row["evento_id"],
        evento_nome=row["evento_nome"],
        tipo_envio=ShipmentType(row["tipo_envio"]),
        transportadora=row["transportadora"],
        rastreamento=row["rastreamento"],
        responsavel=row["responsavel"],
        data_envio=_parse_ts(row["data_envio"]),
        quantidade_alocada=row["quantidade_alocada"],
        quantidade_devolvida=row["quantidade_devolvida"],
        quantidade_baixada=row["quantidade_baixada"],
        status_devolucao=ReturnStatus(row["status_devolucao"]),
        data_devolucao=_parse_ts(row["data_devolucao"]),
        observacoes_devolucao=row["observacoes_devolucao"],
        fotos_devolucao=_loads(row["fotos_devolucao"]),
        fechada=bool(row["fechada"]),
        version=row["version"],
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _row_to_entry(row: aiosqlite.Row) -> LedgerEntry:
    return LedgerEntry(
        id=row["id"],
        material_id=row["material_id"],
        serial_id=row["serial_id"],
        serial_numero=row["serial_numero"],
        evento_id=row["evento_id"],
        evento_nome=row["evento_nome"],
        alocacao_id=row["alocacao_id"],
        operacao=OperationKind(row["operacao"]),
        quantidade=row["quantidade"],
        status_serial=SerialStatus(row["status_serial"]) if row["status_serial"] else None,
        tipo_envio=row["tipo_envio"],
        transportadora=row["transportadora"],
        responsavel=row["responsavel"],
        usuario=row["usuario"],
        observacoes=row["observacoes"],
        fotos=_loads(row["fotos"]),
        registrado_em=_parse_ts(row["registrado_em"]),
    )


class SQLiteInventoryUnitOfWork(IInventoryUnitOfWork):
    """Unit of work over a connection already inside ``BEGIN IMMEDIATE``."""

    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def _fetchone(self, sql: str, params: tuple = ()) -> aiosqlite.Row | None:
        cursor = await self._conn.execute(sql, params)
        return await cursor.fetchone()

    async def _scalar(self, sql: str, params: tuple = ()) -> int:
        row = await self._fetchone(sql, params)
        return row[0] if row and row[0] is not None else 0

    # Materials

    async def get_material(self, material_id: str) -> Material | None:
        row = await self._fetchone("SELECT * FROM materiais_estoque WHERE id = ?", (material_id,))
        return _row_to_material(row) if row else None

    async def next_material_id(self) -> str:
        last = await self._scalar(
            """
            SELECT MAX(CAST(SUBSTR(id, 4) AS INTEGER)) FROM materiais_estoque
            WHERE id GLOB 'MAT[0-9]*'
            """
        )
        return f"{MATERIAL_ID_PREFIX}{last + 1}"

    async def insert_material(self, material: Material) -> Material:
        now = datetime.now(UTC)
        material = material.model_copy(update={"version": 0, "created_at": now, "updated_at": now})
        try:
            await self._conn.execute(
                """
                INSERT INTO materiais_estoque (
                    id, nome, categoria, tipo_controle, descricao, unidade, valor_unitario,
                    quantidade_total, quantidade_disponivel, quantidade_manutencao,
                    ativo, version, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    material.id,
                    material.nome,
                    material.categoria,
                    material.tipo_controle.value,
                    material.descricao,
                    material.unidade,
                    material.valor_unitario,
                    material.quantidade_total,
                    material.quantidade_disponivel,
                    material.quantidade_manutencao,
                    int(material.ativo),
                    material.version,
                    _ts(material.created_at),
                    _ts(material.updated_at),
                ),
            )
        except aiosqlite.IntegrityError as e:
            if "UNIQUE" in str(e) or "PRIMARY KEY" in str(e):
                raise InvalidOperationError(
                    f"Material {material.id} already exists", material_id=material.id
                ) from e
            raise DatabaseError("insert_material", str(e)) from e
        logger.info("material_inserted", material_id=material.id, tipo=material.tipo_controle.value)
        return material

    async def update_material(self, material: Material) -> Material:
        if not material.counters_consistent:
            raise DatabaseError(
                "update_material",
                f"inconsistent counters for {material.id}: total={material.quantidade_total} "
                f"disponivel={material.quantidade_disponivel} manutencao={material.quantidade_manutencao}",
            )
        now = datetime.now(UTC)
        try:
            cursor = await self._conn.execute(
                """
                UPDATE materiais_estoque SET
                    nome = ?, categoria = ?, descricao = ?, unidade = ?, valor_unitario = ?,
                    quantidade_total = ?, quantidade_disponivel = ?, quantidade_manutencao = ?,
                    ativo = ?, version = version + 1, updated_at = ?
                WHERE id = ? AND version = ?
                """,
                (
                    material.nome,
                    material.categoria,
                    material.descricao,
                    material.unidade,
                    material.valor_unitario,
                    material.quantidade_total,
                    material.quantidade_disponivel,
                    material.quantidade_manutencao,
                    int(material.ativo),
                    _ts(now),
                    material.id,
                    material.version,
                ),
            )
        except aiosqlite.IntegrityError as e:
            raise DatabaseError("update_material", str(e)) from e
        if cursor.rowcount == 0:
            raise ConflictRetryableError("Material", material.id)
        return material.model_copy(update={"version": material.version + 1, "updated_at": now})

    async def refresh_serial_counters(self, material_id: str) -> Material:
        material = await self.get_material(material_id)
        if material is None:
            raise DatabaseError("refresh_serial_counters", f"material {material_id} missing")

        cursor = await self._conn.execute(
            """
            SELECT status, COUNT(*) AS n FROM materiais_seriais
            WHERE material_id = ? GROUP BY status
            """,
            (material_id,),
        )
        counts = {SerialStatus(row["status"]): row["n"] for row in await cursor.fetchall()}
        total = sum(n for status, n in counts.items() if status.counts_in_stock)
        disponivel = counts.get(SerialStatus.DISPONIVEL, 0)
        manutencao = counts.get(SerialStatus.MANUTENCAO, 0)

        if (
            material.quantidade_total == total
            and material.quantidade_disponivel == disponivel
            and material.quantidade_manutencao == manutencao
        ):
            return material

        refreshed = material.model_copy(
            update={
                "quantidade_total": total,
                "quantidade_disponivel": disponivel,
                "quantidade_manutencao": manutencao,
            }
        )
        return await self.update_material(refreshed)

    async def list_serial_materials(self, material_id: str | None = None) -> list[Material]:
        sql = "SELECT * FROM materiais_estoque WHERE tipo_controle = 'serial'"
        params: tuple = ()
        if material_id is not None:
            sql += " AND id = ?"
            params = (material_id,)
        cursor = await self._conn.execute(sql + " ORDER BY id", params)
        return [_row_to_material(row) for row in await cursor.fetchall()]

    # Serial units

    async def get_serial(self, serial_id: int) -> SerialUnit | None:
        row = await self._fetchone("SELECT * FROM materiais_seriais WHERE id = ?", (serial_id,))
        return _row_to_serial(row) if row else None

    async def get_serial_by_number(self, material_id: str, numero: str) -> SerialUnit | None:
        row = await self._fetchone(
            "SELECT * FROM materiais_seriais WHERE material_id = ? AND numero = ?",
            (material_id, numero),
        )
        return _row_to_serial(row) if row else None

    async def insert_serial(self, serial: SerialUnit) -> SerialUnit:
        now = datetime.now(UTC)
        perda = serial.perda
        try:
            cursor = await self._conn.execute(
                """
                INSERT INTO materiais_seriais (
                    material_id, numero, status, localizacao, evento_id, evento_nome,
                    tags, data_aquisicao, ultima_manutencao, observacoes,
                    perda_evento_id, perda_data, perda_motivo, perda_fotos,
                    version, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    serial.material_id,
                    serial.numero,
                    serial.status.value,
                    serial.localizacao,
                    serial.evento_id,
                    serial.evento_nome,
                    _dumps(serial.tags),
                    serial.data_aquisicao.isoformat() if serial.data_aquisicao else None,
                    _ts(serial.ultima_manutencao),
                    serial.observacoes,
                    perda.evento_id if perda else None,
                    _ts(perda.data) if perda else None,
                    perda.motivo if perda else None,
                    _dumps(perda.fotos if perda else []),
                    _ts(now),
                    _ts(now),
                ),
            )
        except aiosqlite.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise DuplicateKeyError(serial.material_id, serial.numero) from e
            raise DatabaseError("insert_serial", str(e)) from e
        return serial.model_copy(
            update={"id": cursor.lastrowid, "version": 0, "created_at": now, "updated_at": now}
        )

    async def update_serial(self, serial: SerialUnit) -> SerialUnit:
        now = datetime.now(UTC)
        perda = serial.perda
        cursor = await self._conn.execute(
            """
            UPDATE materiais_seriais SET
                status = ?, localizacao = ?, evento_id = ?, evento_nome = ?,
                tags = ?, data_aquisicao = ?, ultima_manutencao = ?, observacoes = ?,
                perda_evento_id = ?, perda_data = ?, perda_motivo = ?, perda_fotos = ?,
                version = version + 1, updated_at = ?
            WHERE id = ? AND version = ?
            """,
            (
                serial.status.value,
                serial.localizacao,
                serial.evento_id,
                serial.evento_nome,
                _dumps(serial.tags),
                serial.data_aquisicao.isoformat() if serial.data_aquisicao else None,
                _ts(serial.ultima_manutencao),
                serial.observacoes,
                perda.evento_id if perda else None,
                _ts(perda.data) if perda else None,
                perda.motivo if perda else None,
                _dumps(perda.fotos if perda else []),
                _ts(now),
                serial.id,
                serial.version,
            ),
        )
        if cursor.rowcount == 0:
            raise ConflictRetryableError("Serial", serial.id)
        return serial.model_copy(update={"version": serial.version + 1, "updated_at": now})

    async def count_serials(self, material_id: str, status: SerialStatus) -> int:
        return await self._scalar(
            "SELECT COUNT(*) FROM materiais_seriais WHERE material_id = ? AND status = ?",
            (material_id, status.value),
        )

    # Allocations

    async def get_allocation(self, allocation_id: int) -> Allocation | None:
        row = await self._fetchone(
            "SELECT * FROM materiais_alocados WHERE id = ?", (allocation_id,)
        )
        return _row_to_allocation(row) if row else None

    async def get_open_allocation_for_serial(self, serial_id: int) -> Allocation | None:
        row = await self._fetchone(
            "SELECT * FROM materiais_alocados WHERE serial_id = ? AND fechada = 0",
            (serial_id,),
        )
        return _row_to_allocation(row) if row else None

    async def count_open_allocations(self, material_id: str) -> int:
        return await self._scalar(
            "SELECT COUNT(*) FROM materiais_alocados WHERE material_id = ? AND fechada = 0",
            (material_id,),
        )

    async def insert_allocation(self, allocation: Allocation) -> Allocation:
        now = datetime.now(UTC)
        try:
            cursor = await self._conn.execute(
                """
                INSERT INTO materiais_alocados (
                    material_id, serial_id, serial_numero, evento_id, evento_nome,
                    tipo_envio, transportadora, rastreamento, responsavel, data_envio,
                    quantidade_alocada, quantidade_devolvida, quantidade_baixada,
                    status_devolucao, fotos_devolucao, fechada, version, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, 0, ?, '[]', 0, 0, ?, ?)
                """,
                (
                    allocation.material_id,
                    allocation.serial_id,
                    allocation.serial_numero,
                    allocation.evento_id,
                    allocation.evento_nome,
                    allocation.tipo_envio.value,
                    allocation.transportadora,
                    allocation.rastreamento,
                    allocation.responsavel,
                    _ts(allocation.data_envio),
                    allocation.quantidade_alocada,
                    ReturnStatus.PENDENTE.value,
                    _ts(now),
                    _ts(now),
                ),
            )
        except aiosqlite.IntegrityError as e:
            if allocation.serial_id is not None and "UNIQUE" in str(e):
                raise SerialUnavailableError(
                    allocation.serial_id, allocation.serial_numero, SerialStatus.EM_USO.value
                ) from e
            raise DatabaseError("insert_allocation", str(e)) from e
        logger.debug("allocation_inserted", allocation_id=cursor.lastrowid)
        return allocation.model_copy(
            update={"id": cursor.lastrowid, "version": 0, "created_at": now, "updated_at": now}
        )

    async def update_allocation(self, allocation: Allocation) -> Allocation:
        now = datetime.now(UTC)
        try:
            cursor = await self._conn.execute(
                """
                UPDATE materiais_alocados SET
                    quantidade_devolvida = ?, quantidade_baixada = ?, status_devolucao = ?,
                    data_devolucao = ?, observacoes_devolucao = ?, fotos_devolucao = ?,
                    fechada = ?, version = version + 1, updated_at = ?
                WHERE id = ? AND version = ?
                """,
                (
                    allocation.quantidade_devolvida,
                    allocation.quantidade_baixada,
                    allocation.status_devolucao.value,
                    _ts(allocation.data_devolucao),
                    allocation.observacoes_devolucao,
                    _dumps(allocation.fotos_devolucao),
                    int(allocation.fechada),
                    _ts(now),
                    allocation.id,
                    allocation.version,
                ),
            )
        except aiosqlite.IntegrityError as e:
            raise DatabaseError("update_allocation", str(e)) from e
        if cursor.rowcount == 0:
            raise ConflictRetryableError("Allocation", allocation.id)
        return allocation.model_copy(update={"version": allocation.version + 1, "updated_at": now})

    # Ledger

    async def append_ledger(self, entry: LedgerEntry) -> LedgerEntry:
        cursor = await self._conn.execute(
            """
            INSERT INTO materiais_historico (
                material_id, serial_id, serial_numero, evento_id, evento_nome, alocacao_id,
                operacao, quantidade, status_serial, tipo_envio, transportadora,
                responsavel, usuario, observacoes, fotos, registrado_em
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.material_id,
                entry.serial_id,
                entry.serial_numero,
                entry.evento_id,
                entry.evento_nome,
                entry.alocacao_id,
                entry.operacao.value,
                entry.quantidade,
                entry.status_serial.value if entry.status_serial else None,
                entry.tipo_envio,
                entry.transportadora,
                entry.responsavel,
                entry.usuario,
                entry.observacoes,
                _dumps(entry.fotos),
                _ts(entry.registrado_em),
            ),
        )
        logger.debug(
            "ledger_entry_appended",
            entry_id=cursor.lastrowid,
            material_id=entry.material_id,
            operacao=entry.operacao.value,
            quantidade=entry.quantidade,
        )
        return entry.model_copy(update={"id": cursor.lastrowid})


class SQLiteInventoryStore(IInventoryStore):
    """SQLite implementation of catalog, serial, allocation and ledger storage."""

    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    async def _get_pool(self) -> ConnectionPool:
        if self._pool is None:
            self._pool = await get_pool()
        return self._pool

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SQLiteInventoryUnitOfWork]:
        pool = await self._get_pool()
        async with pool.transaction() as conn:
            yield SQLiteInventoryUnitOfWork(conn)

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[aiosqlite.Connection]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            yield conn

    async def get_material(self, material_id: str) -> Material | None:
        async with self._connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM materiais_estoque WHERE id = ?", (material_id,)
            )
            row = await cursor.fetchone()
            return _row_to_material(row) if row else None

    async def list_materials(
        self,
        categoria: str | None = None,
        include_retired: bool = False,
        limit: int | None = 100,
        offset: int = 0,
    ) -> list[Material]:
        conditions = []
        params: list = []
        if categoria is not None:
            conditions.append("categoria = ?")
            params.append(categoria)
        if not include_retired:
            conditions.append("ativo = 1")
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        async with self._connection() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM materiais_estoque {where}
                ORDER BY categoria, nome, id
                LIMIT ? OFFSET ?
                """,
                (*params, limit if limit is not None else -1, offset),
            )
            return [_row_to_material(row) for row in await cursor.fetchall()]

    async def get_serial(self, serial_id: int) -> SerialUnit | None:
        async with self._connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM materiais_seriais WHERE id = ?", (serial_id,)
            )
            row = await cursor.fetchone()
            return _row_to_serial(row) if row else None

    async def list_serials(
        self,
        material_id: str,
        status: SerialStatus | None = None,
    ) -> list[SerialUnit]:
        sql = "SELECT * FROM materiais_seriais WHERE material_id = ?"
        params: tuple = (material_id,)
        if status is not None:
            sql += " AND status = ?"
            params = (material_id, status.value)
        async with self._connection() as conn:
            cursor = await conn.execute(sql + " ORDER BY numero", params)
            return [_row_to_serial(row) for row in await cursor.fetchall()]

    async def get_allocation(self, allocation_id: int) -> Allocation | None:
        async with self._connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM materiais_alocados WHERE id = ?", (allocation_id,)
            )
            row = await cursor.fetchone()
            return _row_to_allocation(row) if row else None

    async def list_allocations(
        self,
        material_id: str | None = None,
        evento_id: str | None = None,
        open_only: bool = False,
        limit: int | None = 100,
        offset: int = 0,
    ) -> list[Allocation]:
        conditions = []
        params: list = []
        if material_id is not None:
            conditions.append("material_id = ?")
            params.append(material_id)
        if evento_id is not None:
            conditions.append("evento_id = ?")
            params.append(evento_id)
        if open_only:
            conditions.append("fechada = 0")
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        async with self._connection() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM materiais_alocados {where}
                ORDER BY id
                LIMIT ? OFFSET ?
                """,
                (*params, limit if limit is not None else -1, offset),
            )
            return [_row_to_allocation(row) for row in await cursor.fetchall()]

    async def has_pending_returns(self, evento_id: str) -> bool:
        async with self._connection() as conn:
            cursor = await conn.execute(
                "SELECT 1 FROM materiais_alocados WHERE evento_id = ? AND fechada = 0 LIMIT 1",
                (evento_id,),
            )
            return await cursor.fetchone() is not None

    async def list_ledger_page(
        self,
        material_id: str | None = None,
        serial_id: int | None = None,
        as_of: datetime | None = None,
        after: tuple[datetime, int] | None = None,
        limit: int = 200,
        up_to_id: int | None = None,
    ) -> list[LedgerEntry]:
        conditions = []
        params: list = []
        if material_id is not None:
            conditions.append("material_id = ?")
            params.append(material_id)
        if serial_id is not None:
            conditions.append("serial_id = ?")
            params.append(serial_id)
        if as_of is not None:
            conditions.append("registrado_em <= ?")
            params.append(_ts(as_of))
        if up_to_id is not None:
            conditions.append("id <= ?")
            params.append(up_to_id)
        if after is not None:
            last_ts, last_id = after
            conditions.append("(registrado_em > ? OR (registrado_em = ? AND id > ?))")
            params.extend([_ts(last_ts), _ts(last_ts), last_id])
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        async with self._connection() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM materiais_historico {where}
                ORDER BY registrado_em, id
                LIMIT ?
                """,
                (*params, limit),
            )
            return [_row_to_entry(row) for row in await cursor.fetchall()]

    async def max_ledger_id(self) -> int:
        async with self._connection() as conn:
            cursor = await conn.execute("SELECT COALESCE(MAX(id), 0) FROM materiais_historico")
            return (await cursor.fetchone())[0]

    async def count_serials_by_category(self) -> list[tuple[str, str, int]]:
        async with self._connection() as conn:
            cursor = await conn.execute(
                """
                SELECT m.categoria, s.status, COUNT(*) AS n
                FROM materiais_seriais s
                JOIN materiais_estoque m ON m.id = s.material_id
                WHERE m.ativo = 1
                GROUP BY m.categoria, s.status
                ORDER BY m.categoria, s.status
                """
            )
            return [(row["categoria"], row["status"], row["n"]) for row in await cursor.fetchall()]
