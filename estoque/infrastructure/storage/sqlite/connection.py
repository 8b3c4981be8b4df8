"""
Async SQLite connection pool for the inventory database.

Connections run in autocommit mode. Writes go through ``transaction()``,
which opens ``BEGIN IMMEDIATE`` so SQLite serialises writers up front and the
reads a use case makes before writing see the state it is about to change.
A writer that cannot get the lock within ``busy_timeout`` fails with
``ConflictRetryableError`` and the use case retries from scratch.
"""

import asyncio
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from estoque.config import get_logger, get_settings
from estoque.core.exceptions import ConflictRetryableError

logger = get_logger(__name__)

LOCK_ERRORS = ("database is locked", "database table is locked", "database is busy")

PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
)


def is_lock_error(error: sqlite3.OperationalError) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in LOCK_ERRORS)


class ConnectionPool:
    """
    Fixed-size pool of autocommit aiosqlite connections.

    ``acquire`` lends a connection for reads; ``transaction`` lends one inside
    a write transaction. Connections are opened on first use.
    """

    def __init__(self, db_path: Path, pool_size: int = 5, busy_timeout: int = 30000):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout

        self._idle: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue(maxsize=pool_size)
        self._connections: list[aiosqlite.Connection] = []
        self._initialized = False
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls) -> "ConnectionPool":
        storage = get_settings().storage
        return cls(storage.db_path, pool_size=storage.pool_size, busy_timeout=storage.busy_timeout)

    @property
    def idle(self) -> int:
        """Connections not currently lent out."""
        return self._idle.qsize()

    async def initialize(self) -> None:
        async with self._lock:
            if self._initialized:
                return
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            for _ in range(self.pool_size):
                conn = await self._open()
                self._connections.append(conn)
                self._idle.put_nowait(conn)
            self._initialized = True
            logger.info("connection_pool_initialized", db_path=str(self.db_path), pool_size=self.pool_size)

    async def _open(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path, isolation_level=None)
        for pragma in PRAGMAS:
            await conn.execute(pragma)
        await conn.execute(f"PRAGMA busy_timeout={self.busy_timeout}")
        conn.row_factory = aiosqlite.Row
        return conn

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection; it goes back to the pool on exit.

        A connection handed back with a transaction still open is rolled back
        first so the next borrower starts clean.
        """
        if not self._initialized:
            await self.initialize()

        conn = await self._idle.get()
        try:
            yield conn
        finally:
            if conn.in_transaction:
                logger.warning("connection_returned_in_transaction", db_path=str(self.db_path))
                await self._rollback(conn)
            self._idle.put_nowait(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection inside ``BEGIN IMMEDIATE``.

        Commits when the block exits normally and rolls back otherwise. Lock
        timeouts surface as ``ConflictRetryableError``.
        """
        async with self.acquire() as conn:
            try:
                await conn.execute("BEGIN IMMEDIATE")
                yield conn
                await conn.execute("COMMIT")
            except sqlite3.OperationalError as e:
                await self._rollback(conn)
                if not is_lock_error(e):
                    raise
                logger.warning("transaction_lock_conflict", error=str(e))
                raise ConflictRetryableError("database", str(self.db_path), str(e)) from e
            except BaseException:
                await self._rollback(conn)
                raise

    @staticmethod
    async def _rollback(conn: aiosqlite.Connection) -> None:
        if conn.in_transaction:
            await conn.execute("ROLLBACK")

    async def close(self) -> None:
        async with self._lock:
            for conn in self._connections:
                await conn.close()
            self._connections.clear()
            self._idle = asyncio.Queue(maxsize=self.pool_size)
            self._initialized = False
            logger.info("connection_pool_closed", db_path=str(self.db_path))


_pool: ConnectionPool | None = None


async def get_pool() -> ConnectionPool:
    """Process-wide pool over the configured database."""
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_settings()
        await _pool.initialize()
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
