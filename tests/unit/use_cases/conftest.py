"""Fixtures for use case tests with a mocked store."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from estoque.application.notifications import InventoryNotifier
from estoque.core.interfaces import IInventoryStore, IInventoryUnitOfWork


@pytest.fixture
def mock_uow() -> AsyncMock:
    uow = AsyncMock(spec=IInventoryUnitOfWork)
    uow.next_material_id.return_value = "MAT1"
    uow.insert_material.side_effect = lambda m: m
    uow.update_material.side_effect = lambda m: m.model_copy(update={"version": m.version + 1})
    uow.insert_allocation.side_effect = lambda a: a.model_copy(update={"id": 10})
    uow.update_allocation.side_effect = lambda a: a.model_copy(update={"version": a.version + 1})
    uow.append_ledger.side_effect = lambda e: e.model_copy(update={"id": 1})
    return uow


@pytest.fixture
def mock_store(mock_uow: AsyncMock) -> MagicMock:
    store = MagicMock(spec=IInventoryStore)

    @asynccontextmanager
    async def transaction():
        yield mock_uow

    store.transaction = transaction
    return store


@pytest.fixture
def mock_notifier() -> AsyncMock:
    notifier = AsyncMock(spec=InventoryNotifier)
    notifier.publish.return_value = 0
    return notifier
