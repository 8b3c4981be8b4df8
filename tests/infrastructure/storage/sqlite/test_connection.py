"""Unit tests for SQLite connection pool."""

import sqlite3
from pathlib import Path

import pytest

from estoque.core.exceptions import ConflictRetryableError
from estoque.infrastructure.storage.sqlite.connection import ConnectionPool, is_lock_error


class TestConnectionPoolInit:
    """Tests for ConnectionPool initialization."""

    def test_defaults(self, db_path: Path):
        pool = ConnectionPool(db_path)
        assert pool.db_path == db_path
        assert pool.pool_size == 5
        assert pool.busy_timeout == 30000
        assert pool._initialized is False
        assert len(pool._connections) == 0

    def test_custom_values(self, db_path: Path):
        pool = ConnectionPool(db_path, pool_size=2, busy_timeout=1000)
        assert pool.pool_size == 2
        assert pool.busy_timeout == 1000

    def test_from_settings(self, tmp_path: Path):
        pool = ConnectionPool.from_settings()
        assert pool.db_path == tmp_path / "data" / "estoque.db"
        assert pool.pool_size == 5


class TestConnectionPoolLifecycle:
    async def test_initialize_creates_directory(self, tmp_path: Path):
        db_path = tmp_path / "nested" / "dir" / "estoque.db"
        pool = ConnectionPool(db_path, pool_size=1)
        await pool.initialize()
        assert db_path.parent.exists()
        assert len(pool._connections) == 1
        await pool.close()

    async def test_initialize_is_idempotent(self, db_path: Path):
        pool = ConnectionPool(db_path, pool_size=2)
        await pool.initialize()
        await pool.initialize()
        assert len(pool._connections) == 2
        await pool.close()

    async def test_connections_use_wal_and_foreign_keys(self, db_path: Path):
        pool = ConnectionPool(db_path, pool_size=1)
        async with pool.acquire() as conn:
            cursor = await conn.execute("PRAGMA journal_mode")
            assert (await cursor.fetchone())[0] == "wal"
            cursor = await conn.execute("PRAGMA foreign_keys")
            assert (await cursor.fetchone())[0] == 1
        await pool.close()

    async def test_idle_count_tracks_borrowed_connections(self, db_path: Path):
        pool = ConnectionPool(db_path, pool_size=2)
        await pool.initialize()
        assert pool.idle == 2
        async with pool.acquire():
            assert pool.idle == 1
        assert pool.idle == 2
        await pool.close()

    async def test_open_transaction_is_rolled_back_on_release(self, db_path: Path):
        pool = ConnectionPool(db_path, pool_size=1)
        async with pool.transaction() as conn:
            await conn.execute("CREATE TABLE t (v INTEGER)")

        async with pool.acquire() as conn:
            await conn.execute("BEGIN")
            await conn.execute("INSERT INTO t VALUES (1)")

        async with pool.acquire() as conn:
            assert not conn.in_transaction
            cursor = await conn.execute("SELECT COUNT(*) FROM t")
            assert (await cursor.fetchone())[0] == 0
        await pool.close()

    async def test_close_allows_reinitialize(self, db_path: Path):
        pool = ConnectionPool(db_path, pool_size=1)
        await pool.initialize()
        await pool.close()
        assert pool._initialized is False
        async with pool.acquire() as conn:
            await conn.execute("SELECT 1")
        await pool.close()


class TestTransaction:
    async def test_commit_on_success(self, db_path: Path):
        pool = ConnectionPool(db_path, pool_size=1)
        async with pool.transaction() as conn:
            await conn.execute("CREATE TABLE t (v INTEGER)")
            await conn.execute("INSERT INTO t VALUES (1)")
        async with pool.acquire() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM t")
            assert (await cursor.fetchone())[0] == 1
            assert not conn.in_transaction
        await pool.close()

    async def test_rollback_on_error(self, db_path: Path):
        pool = ConnectionPool(db_path, pool_size=1)
        async with pool.transaction() as conn:
            await conn.execute("CREATE TABLE t (v INTEGER)")

        with pytest.raises(RuntimeError):
            async with pool.transaction() as conn:
                await conn.execute("INSERT INTO t VALUES (1)")
                raise RuntimeError("boom")

        async with pool.acquire() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM t")
            assert (await cursor.fetchone())[0] == 0
        await pool.close()

    async def test_lock_timeout_is_retryable(self, db_path: Path):
        holder = ConnectionPool(db_path, pool_size=1, busy_timeout=50)
        waiter = ConnectionPool(db_path, pool_size=1, busy_timeout=50)

        async with holder.transaction() as conn:
            await conn.execute("CREATE TABLE t (v INTEGER)")
            with pytest.raises(ConflictRetryableError):
                async with waiter.transaction():
                    pass

        await holder.close()
        await waiter.close()


class TestLockErrors:
    @pytest.mark.parametrize(
        "message,expected",
        [
            ("database is locked", True),
            ("database table is locked", True),
            ("Database is busy", True),
            ("no such table: t", False),
        ],
    )
    def test_is_lock_error(self, message: str, expected: bool):
        assert is_lock_error(sqlite3.OperationalError(message)) is expected
