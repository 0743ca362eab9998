"""
Configuration management with Pydantic validation.

Loads settings from an optional YAML config file and environment variables.
"""

from __future__ import annotations

import decimal
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

_ROUNDING_MODES = {
    name for name in dir(decimal) if name.startswith("ROUND_")
}


class LedgerConfig(BaseModel):
    """Ledger arithmetic and processing configuration."""

    amount_scale: int = Field(default=4, ge=0, le=12)
    rounding: str = "ROUND_HALF_EVEN"
    shard_count: int = Field(default=1, ge=1, le=256)
    shard_queue_size: int = Field(default=1024, ge=1, le=1_000_000)

    @field_validator("rounding")
    @classmethod
    def validate_rounding(cls, v: str) -> str:
        mode = v.strip().upper()
        if mode not in _ROUNDING_MODES:
            raise ValueError(f"unknown rounding mode {v!r}")
        return mode


class InputConfig(BaseModel):
    """Transaction file parsing configuration."""

    delimiter: str = Field(default=",", min_length=1, max_length=1)
    trim_whitespace: bool = True
    encoding: str = "utf-8"


class OutputConfig(BaseModel):
    """Account table rendering configuration."""

    delimiter: str = Field(default=",", min_length=1, max_length=1)
    sort_accounts: bool = True


class StorageConfig(BaseModel):
    """Storage paths configuration."""

    logs_path: str | None = None
    journal_path: str | None = None


class MonitoringConfig(BaseModel):
    """Logging and metrics configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    error_log_max_bytes: int = Field(default=5_000_000, ge=100_000, le=50_000_000)
    error_log_backup_count: int = Field(default=3, ge=1, le=20)
    metrics_textfile: str | None = None


class Settings(BaseSettings):
    """Main application settings."""

    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = {
        "env_prefix": "TXLEDGER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "env_nested_delimiter": "__",
        "populate_by_name": True,
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Config file values arrive as init kwargs; environment must win over them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: str | Path | None = None) -> Settings:
    """
    Load settings from YAML config file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file values
    3. Default values
    """
    config_data = {}

    if config_path is None:
        config_path = os.environ.get("TXLEDGER_CONFIG", "txledger.yaml")

    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file) as f:
            config_data = yaml.safe_load(f) or {}

    env_path = config_file.parent / ".env"
    return Settings(**config_data, _env_file=env_path)
