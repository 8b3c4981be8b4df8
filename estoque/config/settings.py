"""
Application settings with Pydantic v2 validation.

Every group reads its own environment prefix (``STORAGE_``, ``INVENTORY_``,
``API_``); a ``.env`` file in the working directory is honoured as well.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Where the inventory database lives and how it is opened."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "estoque.db"

    pool_size: int = Field(default=5, ge=1)
    busy_timeout: int = Field(default=30000, ge=0)  # ms, before a lock becomes a retryable conflict

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


class InventorySettings(BaseSettings):
    """Locations, conflict retries and read-side tuning."""

    model_config = SettingsConfigDict(env_prefix="INVENTORY_")

    default_location: str = "Depósito Principal"
    maintenance_location: str = "Manutenção"
    default_unit: str = "un"

    max_retries: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=0.05, ge=0)
    retry_multiplier: float = Field(default=2.0, ge=1)

    snapshot_ttl_seconds: float = Field(default=30.0, ge=0)
    replay_page_size: int = Field(default=200, ge=1, le=5000)

    @field_validator("default_location", "maintenance_location", "default_unit")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def distinct_locations(self) -> "InventorySettings":
        if self.default_location == self.maintenance_location:
            raise ValueError("maintenance_location must differ from default_location")
        return self


class APISettings(BaseSettings):
    """HTTP server."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["*"]


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Estoque de Eventos"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    storage: StorageSettings = Field(default_factory=StorageSettings)
    inventory: InventorySettings = Field(default_factory=InventorySettings)
    api: APISettings = Field(default_factory=APISettings)

    @field_validator("storage", mode="before")
    @classmethod
    def ensure_data_dir(cls, v: Any) -> StorageSettings:
        storage = StorageSettings(**v) if isinstance(v, dict) else v or StorageSettings()
        storage.data_dir.mkdir(parents=True, exist_ok=True)
        return storage


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
