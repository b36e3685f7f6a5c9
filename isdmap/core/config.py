"""Application settings loaded from environment variables."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "ISD-Map"
    app_version: str = "0.1.0"
    api_prefix: str = "/api"
    host: str = "0.0.0.0"
    port: int = 8000
    # Ingestion inputs; either may be empty.
    data_file: str | None = None
    data_directory: str | None = None
    render_dir: str | None = None
    max_stations: int | None = None
    max_measurements: int | None = None
    ingest_threads: int = 8
    ingest_queue_size: int = 64
    progress_interval_seconds: float = 1.0
    tile_size: int = 256
    max_zoom: int = 22
    metrics_enabled: bool = True
    metrics_host: str = "0.0.0.0"
    metrics_port: int = 9500
    profile_path: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("ingest_threads", "ingest_queue_size", "tile_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("max_stations", "max_measurements")
    @classmethod
    def _positive_cap(cls, value: int | None) -> int | None:
        if value is not None and value < 1:
            raise ValueError("must be at least 1 when set")
        return value


settings = Settings()

__all__ = ["settings", "Settings"]
