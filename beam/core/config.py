"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from pathlib import Path
from typing import List, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False


class StorageSettings(BaseModel):
    upload_dir: Path = Field(default=Path("uploads"))
    max_upload_bytes: int = Field(default=500 * 1024 * 1024, gt=0)
    default_extension: str = ".mp4"
    chunk_size: int = Field(default=1024 * 1024, gt=0)
    allowed_type_prefixes: List[str] = Field(default_factory=lambda: ["video/"])

    @field_validator("default_extension")
    @classmethod
    def _dotted(cls, value: str) -> str:
        value = value.strip().lower()
        return value if value.startswith(".") else f".{value}"


class ExpirySettings(BaseModel):
    ttl_seconds: float = Field(default=60 * 60, ge=0)
    sweep_interval_seconds: float = Field(default=15 * 60, gt=0)
    sweep_on_startup: bool = True


class LoggingSettings(BaseModel):
    level: str = "INFO"


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Beam"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    storage: StorageSettings = StorageSettings()
    expiry: ExpirySettings = ExpirySettings()
    logging: LoggingSettings = LoggingSettings()

    static_dir: Path = Path(__file__).resolve().parent.parent / "web" / "static"
    template_dir: Path = Path(__file__).resolve().parent.parent / "web" / "templates"

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def upload_dir(self) -> Path:
        return self.storage.upload_dir

    @property
    def max_upload_bytes(self) -> int:
        return self.storage.max_upload_bytes

    @property
    def ttl_seconds(self) -> float:
        return self.expiry.ttl_seconds

    @property
    def sweep_interval_seconds(self) -> float:
        return self.expiry.sweep_interval_seconds


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()
