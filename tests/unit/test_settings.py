"""Tests for inventory settings validation."""

import pytest
from pydantic import ValidationError

from estoque.config import InventorySettings, get_settings


def test_defaults():
    settings = InventorySettings()
    assert settings.default_location == "Depósito Principal"
    assert settings.maintenance_location == "Manutenção"
    assert settings.max_retries == 3


def test_env_override(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("INVENTORY_MAINTENANCE_LOCATION", "Oficina")
    assert InventorySettings().maintenance_location == "Oficina"


def test_locations_must_differ():
    with pytest.raises(ValidationError):
        InventorySettings(default_location="Galpão", maintenance_location="Galpão")


def test_blank_location_refused():
    with pytest.raises(ValidationError):
        InventorySettings(default_location="  ")


def test_retries_at_least_one():
    with pytest.raises(ValidationError):
        InventorySettings(max_retries=0)


def test_data_dir_created(tmp_path):
    settings = get_settings()
    assert settings.storage.data_dir == tmp_path / "data"
    assert settings.storage.data_dir.is_dir()
