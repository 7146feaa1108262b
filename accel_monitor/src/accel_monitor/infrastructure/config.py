"""Configuration for the accelerator monitor."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LibraryConfig(BaseModel):
    """Management library provider selection."""

    mode: Literal["real", "static", "simulated"] = Field(default="real")
    verbose: bool = Field(default=False)
    pci_devices_path: Path = Field(default=Path("/sys/bus/pci/devices"))
    simulation_seed: int | None = Field(default=None)


class WatcherConfig(BaseModel):
    """Health event watcher configuration."""

    health_check_interval_seconds: float = Field(default=10.0, gt=0)
    wait_timeout_ms: int = Field(default=1000, gt=0)
    error_backoff_seconds: float = Field(default=2.0, ge=0)


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    environment: str = Field(default="development")
    otlp_endpoint: str | None = Field(default=None)
    metrics_enabled: bool = Field(default=False)
    metrics_port: int = Field(default=8005)


class Config(BaseSettings):
    """Main configuration."""

    model_config = SettingsConfigDict(env_prefix="ACCEL_MONITOR_", env_nested_delimiter="__")

    library: LibraryConfig = Field(default_factory=LibraryConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    return Config()
