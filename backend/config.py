"""
Analytical Query Engine - Configuration

Layered configuration using Pydantic Settings.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Query pipeline configuration."""

    model_config = SettingsConfigDict(env_prefix="ENGINE_")

    top_n_categories: int = Field(
        default=10,
        description="Categories kept before the rest is bucketed into Others"
    )
    others_label: str = Field(
        default="Others",
        description="Label of the synthetic long-tail bucket"
    )
    list_limit: int = Field(
        default=20,
        description="Maximum distinct values enumerated by list answers"
    )
    row_limit: int = Field(
        default=2000,
        description="Maximum rows fetched per data source"
    )


class StoreSettings(BaseSettings):
    """Tabular data store configuration."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    backend: Literal["local", "postgrest"] = Field(
        default="local",
        description="Where datasets are fetched from"
    )
    base_url: str = Field(
        default="http://localhost:54321",
        description="PostgREST base URL"
    )
    api_key: str = Field(
        default="",
        description="API key sent as apikey/Bearer header"
    )
    timeout: float = Field(
        default=30.0,
        description="Request timeout in seconds"
    )
    data_sources_table: str = Field(default="data_sources")
    files_table: str = Field(default="uploaded_files")
    records_table: str = Field(default="data_records")


class CacheSettings(BaseSettings):
    """Fetched-dataset cache configuration."""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    enabled: bool = Field(default=False, description="Cache fetched datasets")
    max_size: int = Field(default=32, description="LRU cache max size")
    ttl_seconds: int = Field(default=300, description="Cache TTL in seconds")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="DEBUG", description="Minimum log level")
    dir: str = Field(default="logs", description="Directory for log files")
    file_enabled: bool = Field(default=True, description="Write rotating log files")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Application
    app_name: str = "Analytical Query Engine"
    app_version: str = "1.0.0"
    debug: bool = Field(default=False, description="Debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # File Upload
    max_file_size_mb: int = Field(
        default=100,
        description="Maximum file size in MB"
    )
    upload_dir: str = Field(
        default="./uploads",
        description="Directory for uploaded datasets"
    )

    # Nested settings
    engine: EngineSettings = Field(default_factory=EngineSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
