"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest

from estoque.application import reset_notifier, reset_services
from estoque.application.use_cases.stock_dashboard import get_snapshot_cache
from estoque.config import reset_settings
from estoque.infrastructure.storage.sqlite import (
    ConnectionPool,
    SQLiteInventoryStore,
    reset_inventory_store,
)
from estoque.infrastructure.storage.sqlite.migrations.migrator import initialize_database


def _reset_singletons() -> None:
    reset_settings()
    reset_services()
    reset_notifier()
    reset_inventory_store()
    get_snapshot_cache().invalidate()


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Point storage at a temp dir and make retries fast."""
    monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("INVENTORY_RETRY_DELAY", "0.001")
    _reset_singletons()
    yield
    _reset_singletons()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Temporary database path."""
    return tmp_path / "estoque_test.db"


@pytest.fixture
async def migrated_db(db_path: Path) -> Path:
    """Database with the full schema applied."""
    await initialize_database(db_path, create_backup_before=False)
    return db_path


@pytest.fixture
async def pool(migrated_db: Path) -> AsyncGenerator[ConnectionPool, None]:
    """Small connection pool over the migrated database."""
    pool = ConnectionPool(migrated_db, pool_size=2, busy_timeout=5000)
    await pool.initialize()
    yield pool
    await pool.close()


@pytest.fixture
def store(pool: ConnectionPool) -> SQLiteInventoryStore:
    """Inventory store backed by the temp database."""
    return SQLiteInventoryStore(pool)
