"""Fixtures for flows against a real SQLite store."""

import pytest

from estoque.application.dto.requests import CreateMaterialRequest
from estoque.application.use_cases import CreateMaterialUseCase
from estoque.core.entities import Material, SerialUnit
from estoque.infrastructure.storage.sqlite import SQLiteInventoryStore


@pytest.fixture
async def radios(store: SQLiteInventoryStore) -> tuple[Material, list[SerialUnit]]:
    """Serial material with three available radios."""
    result = await CreateMaterialUseCase(store=store).execute(
        CreateMaterialRequest(
            nome="Rádio HT", categoria="comunicacao", tipo_controle="serial", quantidade_seriais=3
        )
    )
    return result.material, result.serials


@pytest.fixture
async def chairs(store: SQLiteInventoryStore) -> Material:
    """Quantity material with 50 chairs in stock."""
    result = await CreateMaterialUseCase(store=store).execute(
        CreateMaterialRequest(
            nome="Cadeira", categoria="mobiliario", tipo_controle="quantidade", quantidade_inicial=50
        )
    )
    return result.material
